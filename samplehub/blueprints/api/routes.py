from flask import jsonify, abort
from . import bp
from samplehub.extensions import db
from samplehub.models import Sample
from samplehub.credits import rules as credit_rules
from samplehub.credits.pricing import SampleType, cost_range


@bp.get("/samples/<int:sample_id>/cost")
def sample_cost(sample_id: int):
    sample = db.session.get(Sample, sample_id)
    if sample is None:
        abort(404)
    return jsonify(credit_rules.quote_sample(sample))


@bp.get("/credits/costs")
def credit_costs():
    """Active price table plus per-tier ranges for display."""
    table = credit_rules.load_price_table()
    std_min, std_max = cost_range(False, table)
    prem_min, prem_max = cost_range(True, table)
    return jsonify({
        "standard": {t.value: table.standard[t] for t in SampleType},
        "premium": {t.value: table.premium[t] for t in SampleType},
        "stems_bundle": table.stems_bundle_cost,
        "full_pack_download": table.full_pack_download_cost,
        "ranges": {
            "standard": {"min": std_min, "max": std_max},
            "premium": {"min": prem_min, "max": prem_max},
        },
    })
