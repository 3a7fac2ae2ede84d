from app.extensions import db
from sqlalchemy.sql import func
from .enums import VerificationAction


class MemberVerification(db.Model):
    """One member's vote on one join request."""

    __tablename__ = "member_verifications"

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(
        db.Integer, db.ForeignKey("church_verification_requests.id"), nullable=False
    )
    verifier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    action = db.Column(db.Enum(VerificationAction), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.TIMESTAMP(timezone=True), nullable=False, server_default=func.now()
    )

    request = db.relationship(
        "ChurchVerificationRequest",
        backref=db.backref("member_verifications", lazy="dynamic"),
    )
    verifier = db.relationship("User")

    # A member votes on a request at most once
    __table_args__ = (
        db.UniqueConstraint("request_id", "verifier_id", name="uq_member_verification_request_verifier"),
    )

    def __repr__(self):
        return f"<MemberVerification request_id={self.request_id} verifier_id={self.verifier_id} action={self.action}>"
