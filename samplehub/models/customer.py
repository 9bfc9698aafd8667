from sqlalchemy import func, text
from samplehub.extensions import db
from samplehub.billing.tiers import TIER_FREE

class Customer(db.Model):
    __tablename__ = "customers"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True)

    email = db.Column(db.String(255), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=True)

    stripe_customer_id = db.Column(db.String(64), nullable=True, unique=True, index=True)

    # Denormalized read cache of the current subscription's tier; Subscription rows are authoritative
    subscription_tier = db.Column(db.String(32), nullable=False, default=TIER_FREE, server_default=text("'free'"))
    status = db.Column(db.String(32), nullable=False, default="active", server_default=text("'active'"))

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<Customer id={self.id} email={self.email!r} tier={self.subscription_tier!r}>"
