class BillingError(Exception):
    """Typed failure surfaced to callers of the billing operations."""
    code = "billing_error"
    http_status = 400

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self):
        payload = {"error": self.message, "code": self.code}
        payload.update({k: v for k, v in self.context.items() if v is not None})
        return payload


class InvalidInput(BillingError):
    code = "invalid_input"
    http_status = 400


class NotFound(BillingError):
    code = "not_found"
    http_status = 404


class InvalidState(BillingError):
    code = "invalid_state"
    http_status = 409


class UpstreamFailure(BillingError):
    code = "upstream_failure"
    http_status = 502
