from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required
from app.services import MemberRequestService
from app.utils.auth import get_current_user, get_json_body

member_bp = Blueprint("member", __name__)


@member_bp.route("/user/available-items", methods=["GET"])
@jwt_required()
def available_items():
    return jsonify({"items": MemberRequestService.list_available(get_current_user())})


@member_bp.route("/user/items/<int:item_id>/request", methods=["POST"])
@jwt_required()
def request_item(item_id):
    member_request = MemberRequestService.request_item(
        get_current_user(), item_id, get_json_body().get("notes")
    )
    return jsonify({"message": "Item requested", "request": member_request.to_dict()}), 201


@member_bp.route("/user/my-requests", methods=["GET"])
@jwt_required()
def my_requests():
    requests = MemberRequestService.my_requests(get_current_user())
    return jsonify({"requests": [r.to_dict() for r in requests]})


@member_bp.route("/user/requests/<int:request_id>/cancel", methods=["POST"])
@jwt_required()
def cancel_request(request_id):
    member_request = MemberRequestService.cancel_request(get_current_user(), request_id)
    return jsonify({"message": "Request cancelled", "request": member_request.to_dict()})


@member_bp.route("/user/requests/<int:request_id>/received", methods=["POST"])
@jwt_required()
def mark_received(request_id):
    member_request = MemberRequestService.mark_received(get_current_user(), request_id)
    return jsonify({"message": "Item marked as received", "request": member_request.to_dict()})
