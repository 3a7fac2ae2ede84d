from app.extensions import db
from app.constants import DEFAULT_MIN_VERIFICATIONS
from .enums import ApplicationStatus
from app.utils.time import isoformat


class Church(db.Model):
    __tablename__ = 'churches'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), unique=True, nullable=False)
    lead_pastor_name = db.Column(db.String(255), nullable=True)
    website = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(100), nullable=True)
    state = db.Column(db.String(50), nullable=True)
    zip_code = db.Column(db.String(20), nullable=True)
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)

    application_status = db.Column(
        db.Enum(ApplicationStatus), nullable=False, default=ApplicationStatus.PENDING
    )
    application_notes = db.Column(db.Text, nullable=True)
    approved_at = db.Column(db.TIMESTAMP(timezone=True), nullable=True)
    rejected_at = db.Column(db.TIMESTAMP(timezone=True), nullable=True)

    lead_contact_id = db.Column(
        db.Integer,
        db.ForeignKey('users.id', use_alter=True, name='fk_churches_lead_contact_id'),
        unique=True,
        nullable=False,
    )
    requires_verification = db.Column(db.Boolean, nullable=False, default=True)
    min_verifications_required = db.Column(
        db.Integer, nullable=False, default=DEFAULT_MIN_VERIFICATIONS
    )

    updated_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    created_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False, server_default=db.func.now())

    lead_contact = db.relationship('User', foreign_keys=[lead_contact_id])

    @property
    def is_approved(self):
        return self.application_status == ApplicationStatus.APPROVED

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'lead_pastor_name': self.lead_pastor_name,
            'website': self.website,
            'address': self.address,
            'city': self.city,
            'state': self.state,
            'zip_code': self.zip_code,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'application_status': self.application_status.value,
            'lead_contact_id': self.lead_contact_id,
            'requires_verification': self.requires_verification,
            'min_verifications_required': self.min_verifications_required,
            'approved_at': isoformat(self.approved_at),
            'created_at': isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<Church id={self.id} name='{self.name}' status={self.application_status}>"
