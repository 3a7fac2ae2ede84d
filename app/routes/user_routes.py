from flask import Blueprint, jsonify, make_response
from app.extensions import limiter
from app.exceptions import MissingFieldsError
from app.services import UserService, VerificationService
from app.utils.auth import get_current_user, get_json_body
from flask_jwt_extended import jwt_required

user_bp = Blueprint("user", __name__)


@user_bp.route("/signup", methods=["POST"])
@limiter.limit("20 per hour")
def sign_up():
    user_data = get_json_body()
    if not user_data:
        return jsonify({"error": "No data provided"}), 400

    result = UserService.sign_up(user_data)
    return make_response(jsonify(result), 201)


@user_bp.route("/signin", methods=["POST"])
@limiter.limit("10 per minute")
def sign_in():
    user_data = get_json_body()
    missing_fields = [field for field in ["email", "password"] if field not in user_data]
    if missing_fields:
        raise MissingFieldsError(missing_fields)

    result = UserService.sign_in(user_data["email"], user_data["password"])
    return jsonify(result), 200


@user_bp.route("/validate-token", methods=["GET"])
@jwt_required()
def validate_token():
    current_user = get_current_user()
    return jsonify({"valid": True, "user": current_user.to_dict(), "is_active": current_user.is_active})


@user_bp.route("/forgot-password", methods=["POST"])
@limiter.limit("5 per minute")
def forgot_password():
    data = get_json_body()
    if "email" not in data:
        return jsonify({"error": "Email is required"}), 400

    result = UserService.forgot_password(data["email"])
    return jsonify(result), 200


@user_bp.route("/reset-password/<token>", methods=["POST"])
def reset_password(token):
    data = get_json_body()
    if "password" not in data:
        return jsonify({"error": "Password is required"}), 400

    result = UserService.reset_password(token, data["password"])
    return jsonify(result), 200


@user_bp.route("/profile", methods=["GET"])
@jwt_required()
def get_profile():
    return jsonify(get_current_user().to_dict())


@user_bp.route("/profile", methods=["PUT"])
@jwt_required()
def update_profile():
    user = UserService.update_profile(get_current_user(), get_json_body())
    return jsonify(user.to_dict())


@user_bp.route("/church-status", methods=["GET"])
@jwt_required()
def church_status():
    return jsonify(VerificationService.get_my_status(get_current_user()))
