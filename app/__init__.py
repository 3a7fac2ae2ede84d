from flask import Flask, jsonify
from flask_cors import CORS
from dotenv import load_dotenv
import os
from app.extensions import db, migrate, jwt, mail, limiter
from app.exceptions import ServiceError
from datetime import timedelta
import logging

# Load environment variables
load_dotenv()


def create_app(config_overrides=None):
    app = Flask(__name__)

    # Set testing mode from environment variable
    app.config["TESTING"] = os.getenv("FLASK_ENV") in ["development", "testing"]

    # Configure logging
    logging.basicConfig(level=logging.INFO)
    app.logger.setLevel(logging.INFO)

    # Configure database
    app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv(
        "DATABASE_URL", "postgresql://localhost/inhouse"
    )
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

    # Configure JWT
    app.config["JWT_SECRET_KEY"] = os.getenv("JWT_SECRET_KEY", "your-secret-key")
    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(days=1)
    app.config["JWT_TOKEN_LOCATION"] = ["headers"]
    app.config["JWT_HEADER_NAME"] = "Authorization"
    app.config["JWT_HEADER_TYPE"] = "Bearer"

    # Email configuration
    app.config["MAIL_SERVER"] = os.getenv("MAIL_SERVER")
    app.config["MAIL_PORT"] = int(os.getenv("MAIL_PORT", 587))
    app.config["MAIL_USE_TLS"] = os.getenv("MAIL_USE_TLS", "true").lower() in ["true", "1", "t"]
    app.config["MAIL_USERNAME"] = os.getenv("MAIL_USERNAME")
    app.config["MAIL_PASSWORD"] = os.getenv("MAIL_PASSWORD")
    app.config["MAIL_DEFAULT_SENDER"] = os.getenv("MAIL_DEFAULT_SENDER", "noreply@inhouse-app.com")
    app.config["SUPPORT_EMAIL"] = os.getenv("SUPPORT_EMAIL", "support@inhouse-app.com")
    app.config["CLIENT_URL"] = os.getenv("CLIENT_URL", "http://localhost:3000")

    # Push notifications (Firebase service account)
    app.config["FIREBASE_PROJECT_ID"] = os.getenv("FIREBASE_PROJECT_ID", "")
    app.config["FIREBASE_CLIENT_EMAIL"] = os.getenv("FIREBASE_CLIENT_EMAIL", "")
    app.config["FIREBASE_PRIVATE_KEY"] = os.getenv("FIREBASE_PRIVATE_KEY", "")

    # Shared secret for scheduled sweeps
    app.config["CRON_SECRET"] = os.getenv("CRON_SECRET", "development-secret")

    app.config["RATELIMIT_STORAGE_URI"] = os.getenv("LIMITER_STORAGE_URI", "memory://")

    if config_overrides:
        app.config.update(config_overrides)

    if app.config["TESTING"]:
        app.config.setdefault("RATELIMIT_ENABLED", False)

    # Initialize Flask extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    mail.init_app(app)
    limiter.init_app(app)

    # Register blueprints
    from app.routes.user_routes import user_bp
    from app.routes.church_routes import church_bp
    from app.routes.verification_routes import verification_bp
    from app.routes.item_routes import item_bp
    from app.routes.member_routes import member_bp
    from app.routes.message_routes import message_bp
    from app.routes.invitation_routes import invitation_bp
    from app.routes.ping_routes import ping_bp
    from app.routes.admin_routes import admin_bp
    from app.routes.cron_routes import cron_bp

    app.register_blueprint(user_bp, url_prefix="/api/user")
    app.register_blueprint(church_bp, url_prefix="/api")
    app.register_blueprint(verification_bp, url_prefix="/api")
    app.register_blueprint(item_bp, url_prefix="/api")
    app.register_blueprint(member_bp, url_prefix="/api")
    app.register_blueprint(message_bp, url_prefix="/api")
    app.register_blueprint(invitation_bp, url_prefix="/api")
    app.register_blueprint(ping_bp, url_prefix="/api")
    app.register_blueprint(admin_bp, url_prefix="/api")
    app.register_blueprint(cron_bp, url_prefix="/api/cron")

    # Set up CORS
    cors_origins = os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000",
    ).split(",")
    app.logger.info(f"Initializing CORS with origins: {cors_origins}")

    CORS(
        app,
        resources={
            r"/api/*": {"origins": cors_origins},
        },
        supports_credentials=True,
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept"],
        expose_headers=["Content-Type"],
    )

    register_error_handlers(app)

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "healthy"}), 200

    return app


def register_error_handlers(app):
    @app.errorhandler(ServiceError)
    def handle_service_error(error):
        db.session.rollback()
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(500)
    def handle_internal_error(error):
        db.session.rollback()
        app.logger.error(f"Unhandled error: {error}", exc_info=True)
        return jsonify({"error": "An unexpected error occurred"}), 500
