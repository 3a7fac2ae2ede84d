from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from app.services import MessageService
from app.utils.auth import get_current_user, get_json_body

message_bp = Blueprint("message", __name__)


@message_bp.route("/church/messages", methods=["GET"])
@jwt_required()
def church_messages():
    return jsonify(MessageService.church_dashboard(get_current_user()))


@message_bp.route("/church/messages", methods=["POST"])
@jwt_required()
def create_message():
    user = get_current_user()
    message = MessageService.create_message(user, get_json_body())
    return jsonify({"message": message.to_dict(viewer=user)}), 201


@message_bp.route("/church/messages/<int:message_id>", methods=["PUT"])
@jwt_required()
def update_message(message_id):
    user = get_current_user()
    message = MessageService.update_message(user, message_id, get_json_body())
    return jsonify({"message": message.to_dict(viewer=user)})


@message_bp.route("/church/messages/<int:message_id>", methods=["DELETE"])
@jwt_required()
def delete_message(message_id):
    MessageService.delete_message(get_current_user(), message_id)
    return jsonify({"success": True})


@message_bp.route("/church/messages/<int:message_id>/publish", methods=["POST"])
@jwt_required()
def publish_message(message_id):
    user = get_current_user()
    message = MessageService.publish_message(user, message_id)
    return jsonify({"message": message.to_dict(viewer=user)})


@message_bp.route("/church/messages/<int:message_id>/archive", methods=["POST"])
@jwt_required()
def archive_message(message_id):
    user = get_current_user()
    message = MessageService.archive_message(user, message_id)
    return jsonify({"message": message.to_dict(viewer=user)})


@message_bp.route("/messages/active", methods=["GET"])
@jwt_required()
def active_messages():
    church_id = request.args.get("church_id", type=int)
    return jsonify({"messages": MessageService.feed(get_current_user(), church_id)})


@message_bp.route("/user/messages", methods=["POST"])
@jwt_required()
def share_message():
    user = get_current_user()
    message = MessageService.share(user, get_json_body())
    return jsonify({"message": message.to_dict(viewer=user)}), 201


@message_bp.route("/user/messages/<int:message_id>", methods=["DELETE"])
@jwt_required()
def delete_shared_message(message_id):
    MessageService.delete_message(get_current_user(), message_id)
    return jsonify({"success": True})
