from typing import List
from sqlalchemy import or_
from app.extensions import db
from app.models import Church
from app.models.enums import ApplicationStatus


class ChurchRepository:
    @staticmethod
    def add(church: Church) -> Church:
        db.session.add(church)
        db.session.flush()
        return church

    @staticmethod
    def find_by_id(church_id: int):
        return db.session.get(Church, church_id)

    @staticmethod
    def lock(church_id: int):
        return Church.query.filter_by(id=church_id).with_for_update().one()

    @staticmethod
    def find_by_name(name):
        return Church.query.filter(db.func.lower(Church.name) == name.strip().lower()).first()

    @staticmethod
    def find_by_lead_contact(user_id: int):
        return Church.query.filter_by(lead_contact_id=user_id).first()

    @staticmethod
    def find_by_status(status: ApplicationStatus) -> List[Church]:
        return Church.query.filter_by(application_status=status).order_by(Church.name).all()

    @staticmethod
    def search_approved(term=None) -> List[Church]:
        query = Church.query.filter(Church.application_status == ApplicationStatus.APPROVED)
        if term:
            pattern = f"%{term.strip()}%"
            query = query.filter(or_(Church.name.ilike(pattern), Church.city.ilike(pattern)))
        return query.order_by(Church.name).all()
