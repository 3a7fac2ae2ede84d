from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from app.exceptions import MissingFieldsError
from app.services import VerificationService
from app.utils.auth import get_current_user, get_json_body

verification_bp = Blueprint("verification", __name__)


@verification_bp.route("/churches/join-request", methods=["POST"])
@jwt_required()
def request_to_join():
    data = get_json_body()
    if "church_id" not in data:
        raise MissingFieldsError(["church_id"])

    verification_request = VerificationService.request_join(
        get_current_user(), data["church_id"], data.get("notes")
    )
    return (
        jsonify(
            {
                "message": "Join request submitted successfully",
                "request": verification_request.to_dict(),
            }
        ),
        201,
    )


@verification_bp.route("/churches/member-requests", methods=["GET"])
@jwt_required()
def get_verification_queue():
    church_id = request.args.get("church_id", type=int)
    queue = VerificationService.get_queue(get_current_user(), church_id)
    return jsonify({"requests": queue})


@verification_bp.route("/churches/verify-member", methods=["POST"])
@jwt_required()
def verify_member():
    data = get_json_body()
    missing = [field for field in ("request_id", "action") if field not in data]
    if missing:
        raise MissingFieldsError(missing)

    result = VerificationService.verify_member(
        get_current_user(), data["request_id"], data["action"], data.get("notes")
    )
    return jsonify(result)


@verification_bp.route("/churches/<int:church_id>/vouch/<int:requester_id>", methods=["POST"])
@jwt_required()
def vouch(church_id, requester_id):
    result = VerificationService.vouch(
        get_current_user(), requester_id, church_id, get_json_body().get("notes")
    )
    return jsonify(result)


@verification_bp.route("/churches/<int:church_id>/progress/<int:requester_id>", methods=["GET"])
@jwt_required()
def verification_progress(church_id, requester_id):
    return jsonify(VerificationService.get_progress(get_current_user(), requester_id, church_id))


@verification_bp.route("/churches/leave", methods=["POST"])
@jwt_required()
def leave_church():
    user = VerificationService.leave_church(get_current_user())
    return jsonify({"message": "You have left your church", "user": user.to_dict()})
