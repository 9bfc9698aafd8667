from sqlalchemy import func, text
from sqlalchemy.dialects.postgresql import JSONB
from samplehub.extensions import db

class PlanTier(db.Model):
    """Active-plan catalog; upgrades may only target a price listed here."""
    __tablename__ = "plan_tiers"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False, unique=True)
    display_name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)
    billing_cycle = db.Column(db.String(16), nullable=False, default="month", server_default=text("'month'"))
    price = db.Column(db.Numeric(10, 2), nullable=False, default=0, server_default=text("0"))
    credits_monthly = db.Column(db.Integer, nullable=False, default=0, server_default=text("0"))
    is_popular = db.Column(db.Boolean, nullable=False, default=False, server_default=text("false"))
    is_active = db.Column(db.Boolean, nullable=False, default=True, server_default=text("true"))
    features = db.Column(db.JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list)
    sort_order = db.Column(db.Integer, nullable=False, default=0, server_default=text("0"))
    stripe_price_id = db.Column(db.String(64), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def to_dict(self):
        return dict(
            id=self.id,
            name=self.name,
            display_name=self.display_name,
            description=self.description,
            billing_cycle=self.billing_cycle or "month",
            price=float(self.price or 0),
            credits_monthly=int(self.credits_monthly or 0),
            is_popular=bool(self.is_popular),
            features=list(self.features or []),
            sort_order=int(self.sort_order or 0),
            stripe_price_id=self.stripe_price_id,
        )

    def __repr__(self) -> str:
        return f"<PlanTier id={self.id} name={self.name!r} price_id={self.stripe_price_id!r}>"
