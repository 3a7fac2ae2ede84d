from app.extensions import db
from .enums import ItemStatus, ModerationStatus
from app.utils.time import isoformat


class Item(db.Model):
    __tablename__ = 'items'

    id = db.Column(db.Integer, primary_key=True)
    church_id = db.Column(db.Integer, db.ForeignKey('churches.id'), nullable=False)
    posted_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)

    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(50), nullable=True)
    condition = db.Column(db.String(50), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(100), nullable=True)
    state = db.Column(db.String(50), nullable=True)
    zip_code = db.Column(db.String(20), nullable=True)

    status = db.Column(db.Enum(ItemStatus), nullable=False, default=ItemStatus.AVAILABLE)
    moderation_status = db.Column(
        db.Enum(ModerationStatus), nullable=False, default=ModerationStatus.PENDING
    )
    moderation_notes = db.Column(db.Text, nullable=True)
    moderated_at = db.Column(db.TIMESTAMP(timezone=True), nullable=True)

    # Claim state; claimer_id is set exactly while status == CLAIMED
    claimer_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    claimed_at = db.Column(db.TIMESTAMP(timezone=True), nullable=True)
    completed_at = db.Column(db.TIMESTAMP(timezone=True), nullable=True)
    completed_claimer_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    # Internal re-offer to the claiming church's members
    offer_to_members = db.Column(db.Boolean, nullable=False, default=False)
    member_description = db.Column(db.Text, nullable=True)

    updated_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    created_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False, server_default=db.func.now())

    church = db.relationship('Church', backref=db.backref('items', lazy='dynamic'))
    posted_by = db.relationship('User', foreign_keys=[posted_by_id])
    claimer = db.relationship('User', foreign_keys=[claimer_id])
    completed_claimer = db.relationship('User', foreign_keys=[completed_claimer_id])

    def to_dict(self):
        return {
            'id': self.id,
            'church_id': self.church_id,
            'church_name': self.church.name if self.church else None,
            'posted_by_id': self.posted_by_id,
            'title': self.title,
            'description': self.description,
            'category': self.category,
            'condition': self.condition,
            'address': self.address,
            'city': self.city,
            'state': self.state,
            'zip_code': self.zip_code,
            'status': self.status.value,
            'moderation_status': self.moderation_status.value,
            'claimer_id': self.claimer_id,
            'claimed_at': isoformat(self.claimed_at),
            'completed_at': isoformat(self.completed_at),
            'completed_claimer_id': self.completed_claimer_id,
            'offer_to_members': self.offer_to_members,
            'member_description': self.member_description,
            'created_at': isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<Item id={self.id} title='{self.title}' status={self.status}>"
