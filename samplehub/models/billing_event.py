from sqlalchemy import text
from sqlalchemy.dialects.postgresql import JSONB
from samplehub.extensions import db
from samplehub.utils.helpers import utcnow

class BillingEventLog(db.Model):
    __tablename__ = "billing_event_logs"

    id = db.Column(db.Integer, primary_key=True)
    stripe_event_id = db.Column(db.String(255), nullable=False, unique=True, index=True)
    type = db.Column(db.String(80), nullable=False, index=True)
    signature_valid = db.Column(db.Boolean, nullable=False, default=True, server_default=text("true"))
    payload = db.Column(db.JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict)
    retries = db.Column(db.Integer, nullable=False, default=0, server_default=text("0"))
    # handled | skipped | ignored | invalid_input:<msg> | upstream_failure | handler_error:<exc>
    notes = db.Column(db.String(255), nullable=True)

    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<BillingEventLog id={self.id} event={self.stripe_event_id!r} type={self.type!r}>"
