from sqlalchemy import func, text
from samplehub.extensions import db
from samplehub.utils.helpers import utcnow

# Local statuses that count as a current subscription
ACTIVE_STATUSES = ("active", "trialing")

class Subscription(db.Model):
    __tablename__ = "subscriptions"

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True)

    # Upsert key: webhook redeliveries converge on this row
    stripe_subscription_id = db.Column(db.String(64), nullable=False, unique=True, index=True)
    stripe_price_id = db.Column(db.String(64), nullable=True, index=True)

    tier = db.Column(db.String(32), nullable=False, default="free", server_default=text("'free'"))
    status = db.Column(db.String(32), nullable=False, index=True, default="incomplete", server_default=text("'incomplete'"))
    stripe_status = db.Column(db.String(32), nullable=True)

    current_period_start = db.Column(db.DateTime(timezone=True), nullable=True)
    current_period_end = db.Column(db.DateTime(timezone=True), nullable=True, index=True)
    cancel_at_period_end = db.Column(db.Boolean, nullable=False, default=False, server_default=text("false"))
    trial_start = db.Column(db.DateTime(timezone=True), nullable=True)
    trial_end = db.Column(db.DateTime(timezone=True), nullable=True)

    started_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    @property
    def is_current(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def to_dict(self):
        return dict(
            id=self.id,
            customer_id=self.customer_id,
            stripe_subscription_id=self.stripe_subscription_id,
            stripe_price_id=self.stripe_price_id,
            tier=self.tier,
            status=self.status,
            stripe_status=self.stripe_status,
            current_period_start=self.current_period_start.isoformat() if self.current_period_start else None,
            current_period_end=self.current_period_end.isoformat() if self.current_period_end else None,
            cancel_at_period_end=bool(self.cancel_at_period_end),
            trial_start=self.trial_start.isoformat() if self.trial_start else None,
            trial_end=self.trial_end.isoformat() if self.trial_end else None,
        )

    def __repr__(self) -> str:
        return f"<Subscription id={self.id} customer_id={self.customer_id} status={self.status!r} tier={self.tier!r}>"
