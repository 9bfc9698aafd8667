from sqlalchemy import func, text
from samplehub.extensions import db
from samplehub.credits.pricing import DEFAULT_PRICE_TABLE, DEFAULT_FULL_PACK_DOWNLOAD_COST, SampleType

_STD = DEFAULT_PRICE_TABLE.standard
_PREM = DEFAULT_PRICE_TABLE.premium

class CreditRules(db.Model):
    """Singleton row (id=1) holding the admin-editable credit price table."""
    __tablename__ = "credit_rules"

    id = db.Column(db.Integer, primary_key=True)
    one_shot_standard = db.Column(db.Integer, nullable=False, default=_STD[SampleType.ONE_SHOT])
    loop_standard = db.Column(db.Integer, nullable=False, default=_STD[SampleType.LOOP])
    one_shot_premium = db.Column(db.Integer, nullable=False, default=_PREM[SampleType.ONE_SHOT])
    loop_premium = db.Column(db.Integer, nullable=False, default=_PREM[SampleType.LOOP])
    stems_bundle = db.Column(db.Integer, nullable=False, default=DEFAULT_PRICE_TABLE.stems_bundle_cost)
    full_pack_download = db.Column(db.Integer, nullable=False, default=DEFAULT_FULL_PACK_DOWNLOAD_COST)
    allow_pack_overrides = db.Column(db.Boolean, nullable=False, default=True, server_default=text("true"))

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def to_dict(self):
        return dict(
            one_shot_standard=self.one_shot_standard,
            loop_standard=self.loop_standard,
            one_shot_premium=self.one_shot_premium,
            loop_premium=self.loop_premium,
            stems_bundle=self.stems_bundle,
            full_pack_download=self.full_pack_download,
            allow_pack_overrides=bool(self.allow_pack_overrides),
            updated_at=self.updated_at.isoformat() if self.updated_at else None,
        )
