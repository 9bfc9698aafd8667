from sqlalchemy import func, text
from samplehub.extensions import db

class Pack(db.Model):
    __tablename__ = "packs"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    is_premium = db.Column(db.Boolean, nullable=False, default=False, server_default=text("false"))
    is_active = db.Column(db.Boolean, nullable=False, default=True, server_default=text("true"))

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    samples = db.relationship("Sample", back_populates="pack", lazy="selectin")

    def __repr__(self) -> str:
        return f"<Pack id={self.id} name={self.name!r} premium={self.is_premium}>"


class Sample(db.Model):
    __tablename__ = "samples"

    id = db.Column(db.Integer, primary_key=True)
    pack_id = db.Column(db.Integer, db.ForeignKey("packs.id", ondelete="CASCADE"), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    # "One-shot" | "Loop"; stems are bundles attached to a sample, not a sample type
    sample_type = db.Column(db.String(16), nullable=False, default="One-shot", server_default=text("'One-shot'"))
    has_stems = db.Column(db.Boolean, nullable=False, default=False, server_default=text("false"))
    # Admin-set fixed price; only values > 0 take effect
    credit_cost_override = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    pack = db.relationship("Pack", back_populates="samples")

    __table_args__ = (
        db.CheckConstraint("sample_type IN ('One-shot', 'Loop')", name="ck_samples_sample_type"),
    )

    def __repr__(self) -> str:
        return f"<Sample id={self.id} type={self.sample_type!r} stems={self.has_stems}>"
