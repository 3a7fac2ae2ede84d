import os
from app import create_app
from app.models import User
from app.models.enums import UserRole
from app.extensions import db
from werkzeug.security import generate_password_hash


def create_admin_user(update=False):
    email = os.getenv("ADMIN_EMAIL", "admin@example.com")
    password = os.getenv("ADMIN_PASSWORD", "admin123")

    app = create_app()
    with app.app_context():
        # Check if admin already exists
        admin = User.query.filter_by(email=email).first()
        if not admin:
            admin = User(
                email=email,
                password=generate_password_hash(password),
                role=UserRole.ADMIN,
                first_name='Admin',
                last_name='User',
                membership_enforcement_exempt=True,
            )
            db.session.add(admin)
            db.session.commit()
            print("Admin user created successfully!")
        elif update:
            admin.password = generate_password_hash(password)
            admin.role = UserRole.ADMIN
            admin.membership_enforcement_exempt = True
            db.session.commit()
            print("Admin user updated successfully!")
        else:
            print("Admin user already exists!")


if __name__ == '__main__':
    create_admin_user(update=True)
