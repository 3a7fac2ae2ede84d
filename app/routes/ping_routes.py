from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from app.exceptions import MissingFieldsError, ValidationError
from app.services import PingService
from app.utils.auth import get_current_user, get_json_body

ping_bp = Blueprint("ping", __name__)


@ping_bp.route("/ping/send", methods=["POST"])
@jwt_required()
def send_ping():
    data = get_json_body()
    if "receiver_id" not in data:
        raise MissingFieldsError(["receiver_id"])
    ping = PingService.send(get_current_user(), data["receiver_id"], data.get("message"))
    return jsonify({"ping": ping.to_dict()}), 201


@ping_bp.route("/ping/respond", methods=["POST"])
@jwt_required()
def respond_to_ping():
    data = get_json_body()
    missing = [field for field in ("ping_id", "response") if field not in data]
    if missing:
        raise MissingFieldsError(missing)
    response = str(data["response"]).upper()
    if response not in ("ACCEPTED", "REJECTED"):
        raise ValidationError("response must be ACCEPTED or REJECTED")

    ping = PingService.respond(get_current_user(), data["ping_id"], response == "ACCEPTED")
    return jsonify({"ping": ping.to_dict()})


@ping_bp.route("/ping/status", methods=["GET"])
@jwt_required()
def ping_status():
    target_user_id = request.args.get("target_user_id", type=int)
    if not target_user_id:
        raise MissingFieldsError(["target_user_id"])
    return jsonify(PingService.status_between(get_current_user(), target_user_id))


@ping_bp.route("/ping/pending", methods=["GET"])
@jwt_required()
def pending_pings():
    return jsonify(PingService.pending(get_current_user()))


@ping_bp.route("/ping/count", methods=["GET"])
@jwt_required()
def ping_count():
    return jsonify(PingService.counts(get_current_user()))


@ping_bp.route("/users/<int:user_id>/contact", methods=["GET"])
@jwt_required()
def contact_info(user_id):
    return jsonify(PingService.contact_info(get_current_user(), user_id))


@ping_bp.route("/fcm/register", methods=["POST"])
@jwt_required()
def register_device():
    data = get_json_body()
    PingService.register_device(get_current_user(), data.get("token"), data.get("device_type"))
    return jsonify({"success": True})
