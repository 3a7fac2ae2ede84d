from app.extensions import db
from .enums import UserRole, ChurchMembershipStatus
from app.utils.time import isoformat


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    role = db.Column(db.Enum(UserRole), nullable=False, default=UserRole.USER)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(50), nullable=True)
    last_name = db.Column(db.String(50), nullable=True)
    phone = db.Column(db.String(20), nullable=True)
    city = db.Column(db.String(100), nullable=True)
    state = db.Column(db.String(50), nullable=True)
    bio = db.Column(db.Text, nullable=True)

    # Church membership
    church_id = db.Column(db.Integer, db.ForeignKey('churches.id'), nullable=True)
    church_membership_status = db.Column(
        db.Enum(ChurchMembershipStatus),
        nullable=False,
        default=ChurchMembershipStatus.NONE,
    )
    verified_at = db.Column(db.TIMESTAMP(timezone=True), nullable=True)
    church_join_requested_at = db.Column(db.TIMESTAMP(timezone=True), nullable=True)

    # Referral
    inviter_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    # Account state / membership enforcement
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    disabled_reason = db.Column(db.String(50), nullable=True)
    warning_email_sent_at = db.Column(db.TIMESTAMP(timezone=True), nullable=True)
    membership_enforcement_exempt = db.Column(db.Boolean, nullable=False, default=False)

    reset_token = db.Column(db.String(100), unique=True, nullable=True)
    reset_token_expiration = db.Column(db.TIMESTAMP(timezone=True), nullable=True)

    updated_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    created_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False, server_default=db.func.now())

    church = db.relationship('Church', foreign_keys=[church_id], backref=db.backref('members', lazy='dynamic'))
    inviter = db.relationship('User', remote_side=[id], backref=db.backref('invitees', lazy='dynamic'))

    @property
    def display_name(self):
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.email

    @property
    def is_verified_member(self):
        return (
            self.church_membership_status == ChurchMembershipStatus.VERIFIED
            and self.church_id is not None
        )

    def to_dict(self, include_contact=True):
        data = {
            'id': self.id,
            'role': self.role.value if self.role else None,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'city': self.city,
            'state': self.state,
            'bio': self.bio,
            'church_id': self.church_id,
            'church': self.church.name if self.church_id and self.church else None,
            'church_membership_status': self.church_membership_status.value if self.church_membership_status else None,
            'verified_at': isoformat(self.verified_at),
            'is_active': self.is_active,
            'disabled_reason': self.disabled_reason,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }
        if include_contact:
            data['email'] = self.email
            data['phone'] = self.phone
        return data

    def __repr__(self):
        return (
            f"User("
            f"id={self.id}, "
            f"email='{self.email}', "
            f"role={self.role}, "
            f"church_id={self.church_id}, "
            f"church_membership_status={self.church_membership_status}"
            f")"
        )
