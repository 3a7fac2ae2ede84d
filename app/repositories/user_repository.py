from app.extensions import db
from app.models import User


class UserRepository:
    @staticmethod
    def add(user: User) -> User:
        db.session.add(user)
        db.session.flush()
        return user

    @staticmethod
    def find_by_email(email):
        return User.query.filter(db.func.lower(User.email) == email.lower()).first()

    @staticmethod
    def find_by_id(user_id: int):
        return db.session.get(User, user_id)

    @staticmethod
    def find_by_reset_token(token):
        return User.query.filter_by(reset_token=token).first()
