from flask import request, jsonify, current_app
from flask_login import current_user
from . import bp
from samplehub.billing.errors import InvalidInput
from samplehub.credits import rules as credit_rules
from samplehub.security.policy import require_admin


@bp.get("/credit-rules.json")
@require_admin
def get_credit_rules_json():
    return jsonify(credit_rules.get_rules())


@bp.put("/credit-rules.json")
@require_admin
def put_credit_rules_json():
    payload = request.get_json(silent=True)
    try:
        saved = credit_rules.save_rules(payload)
    except InvalidInput as e:
        return jsonify(e.to_dict()), e.http_status
    current_app.logger.info("admin.credit_rules.saved user_id=%s", current_user.id)
    return jsonify(saved)


@bp.post("/credit-rules/reset")
@require_admin
def reset_credit_rules():
    saved = credit_rules.reset_rules()
    current_app.logger.info("admin.credit_rules.reset user_id=%s", current_user.id)
    return jsonify(saved)
