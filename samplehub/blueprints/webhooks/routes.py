import hashlib
import json
import stripe
from flask import request, jsonify, abort, current_app
from . import bp
from samplehub.extensions import db, csrf
from samplehub.observability import log_event
from samplehub.models import BillingEventLog
from samplehub.billing.errors import InvalidInput, UpstreamFailure
from samplehub.billing.events import parse_event
from samplehub.billing.reconciler import reconcile
from samplehub.utils.helpers import utcnow

# ----- Stripe Webhook (subscriptions lifecycle) -----
@csrf.exempt
@bp.post("/stripe")
def stripe_webhook():
    """
    Stripe → /webhooks/stripe
    Verifies signature, logs event, idempotently reconciles Subscription/Customer.
    """
    # 1) Verify signature
    secret = current_app.config.get("STRIPE_WEBHOOK_SECRET")
    if not secret:
        abort(500, description="Stripe webhook secret not configured")

    raw_bytes = request.get_data(cache=False, as_text=False)
    sig_header = request.headers.get("Stripe-Signature", "")

    try:
        event = stripe.Webhook.construct_event(
            payload=raw_bytes.decode("utf-8"),
            sig_header=sig_header,
            secret=secret,
        )
    except (ValueError, UnicodeDecodeError, stripe.SignatureVerificationError):
        # Log invalid attempts with a deterministic synthetic id (no payload trust)
        digest = hashlib.sha256(raw_bytes).hexdigest()[:32]
        synthetic_id = f"invalid:{digest}"
        if not BillingEventLog.query.filter_by(stripe_event_id=synthetic_id).first():
            db.session.add(BillingEventLog(
                stripe_event_id=synthetic_id,
                type="signature_invalid",
                signature_valid=False,
                payload={},
            ))
            db.session.commit()
        return jsonify({"error": "invalid_signature"}), 400

    # 2) Idempotency guard (short-circuit if already processed)
    ev_id = event.get("id")
    ev_type = event.get("type")
    if not ev_id or not ev_type:
        return jsonify({"error": "malformed_event"}), 400

    log = BillingEventLog.query.filter_by(stripe_event_id=ev_id).first()
    if log and log.processed_at:
        return jsonify({"ok": True, "duplicate": True}), 200

    # 3) Persist raw payload to log (for audit/forensics); redeliveries bump retries
    if log is None:
        try:
            payload_json = json.loads(raw_bytes.decode("utf-8"))
        except ValueError:
            payload_json = {"_decode_error": True}
        log = BillingEventLog(
            stripe_event_id=ev_id,
            type=ev_type,
            signature_valid=True,
            payload=payload_json,
        )
        db.session.add(log)
    else:
        log.retries = (log.retries or 0) + 1
    db.session.commit()
    log_id = log.id

    # 4) Parse + reconcile
    status_code = 200
    body = {"ok": True}
    try:
        outcome = reconcile(parse_event(event))
        body["outcome"] = outcome.value
        note = outcome.value
    except InvalidInput as e:
        # Retrying cannot fix a payload that lacks the ids we need
        db.session.rollback()
        current_app.logger.warning("stripe_webhook_invalid_input id=%s type=%s: %s", ev_id, ev_type, e.message)
        body["outcome"] = "invalid_input"
        note = f"invalid_input:{e.message}"[:255]
    except UpstreamFailure as e:
        # Leave unprocessed and answer non-2xx so Stripe redelivers
        db.session.rollback()
        current_app.logger.warning("stripe_webhook_upstream_failure id=%s type=%s: %s", ev_id, ev_type, e.message)
        status_code = 502
        body = {"ok": False, "error": "upstream_failure"}
        note = "upstream_failure"
    except Exception as e:
        # Attach note and surface 200 to prevent endless Stripe retries; ops can review logs
        db.session.rollback()
        current_app.logger.exception("stripe_webhook_handler_error")
        note = f"handler_error:{type(e).__name__}"

    log = db.session.get(BillingEventLog, log_id)
    log.notes = note
    if status_code == 200:
        log.processed_at = utcnow()
    db.session.commit()

    log_event("stripe_webhook", stripe_event_id=ev_id, type=ev_type, notes=note, status=status_code)
    return jsonify(body), status_code
