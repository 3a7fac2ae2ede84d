from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from app.services import ChurchService
from app.utils.auth import get_current_user, get_json_body

church_bp = Blueprint("church", __name__)


@church_bp.route("/churches/approved", methods=["GET"])
def list_approved_churches():
    churches = ChurchService.list_approved()
    return jsonify({"churches": [church.to_dict() for church in churches]})


@church_bp.route("/churches/search", methods=["GET"])
def search_churches():
    churches = ChurchService.list_approved(request.args.get("q"))
    return jsonify({"churches": [church.to_dict() for church in churches]})


@church_bp.route("/churches/<int:church_id>", methods=["GET"])
def get_church(church_id):
    return jsonify(ChurchService.get_church(church_id).to_dict())


@church_bp.route("/church/apply", methods=["POST"])
@jwt_required()
def apply_for_church():
    church = ChurchService.apply(get_current_user(), get_json_body())
    return jsonify({"message": "Church application submitted", "church": church.to_dict()}), 201
