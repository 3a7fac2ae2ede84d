from app.extensions import db
from sqlalchemy.sql import func
from .enums import VerificationRequestStatus
from app.utils.time import isoformat


class ChurchVerificationRequest(db.Model):
    __tablename__ = "church_verification_requests"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    church_id = db.Column(db.Integer, db.ForeignKey("churches.id"), nullable=False)
    requester_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    status = db.Column(
        db.Enum(VerificationRequestStatus),
        nullable=False,
        default=VerificationRequestStatus.PENDING,
    )
    notes = db.Column(db.Text, nullable=True)
    decided_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    verified_at = db.Column(db.TIMESTAMP(timezone=True), nullable=True)
    rejected_at = db.Column(db.TIMESTAMP(timezone=True), nullable=True)
    created_at = db.Column(
        db.TIMESTAMP(timezone=True), nullable=False, server_default=func.now()
    )

    # Relationships
    user = db.relationship("User", foreign_keys=[user_id])
    church = db.relationship(
        "Church", backref=db.backref("verification_requests", lazy="dynamic")
    )

    # One join request per user per church
    __table_args__ = (
        db.UniqueConstraint("user_id", "church_id", name="uq_verification_request_user_church"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "church_id": self.church_id,
            "requester_id": self.requester_id,
            "status": self.status.value,
            "notes": self.notes,
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<ChurchVerificationRequest user_id={self.user_id} church_id={self.church_id} status={self.status}>"
