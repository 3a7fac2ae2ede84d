from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required
from app.services import ItemService
from app.utils.auth import get_current_user, get_json_body

item_bp = Blueprint("item", __name__)


@item_bp.route("/items", methods=["GET"])
@jwt_required()
def list_available_items():
    items = ItemService.list_available(get_current_user())
    return jsonify({"items": [item.to_dict() for item in items]})


@item_bp.route("/items/<int:item_id>", methods=["GET"])
@jwt_required()
def get_item(item_id):
    get_current_user()
    return jsonify(ItemService.get_item(item_id).to_dict())


@item_bp.route("/items/<int:item_id>/claim", methods=["POST"])
@jwt_required()
def claim_item(item_id):
    item = ItemService.claim_item(get_current_user(), item_id)
    return jsonify({"message": "Item claimed successfully", "item": item.to_dict()})


@item_bp.route("/items/<int:item_id>/unclaim", methods=["POST"])
@jwt_required()
def unclaim_item(item_id):
    item = ItemService.unclaim_item(get_current_user(), item_id)
    return jsonify({"message": "Item released successfully", "item": item.to_dict()})


@item_bp.route("/items/<int:item_id>/complete", methods=["POST"])
@jwt_required()
def complete_item(item_id):
    item = ItemService.complete_item(get_current_user(), item_id)
    return jsonify({"message": "Item marked as completed", "item": item.to_dict()})


@item_bp.route("/church/items", methods=["GET"])
@jwt_required()
def list_church_items():
    items = ItemService.list_church_items(get_current_user())
    return jsonify(
        {
            "posted": [item.to_dict() for item in items["posted"]],
            "claimed": [item.to_dict() for item in items["claimed"]],
        }
    )


@item_bp.route("/church/items", methods=["POST"])
@jwt_required()
def create_item():
    item = ItemService.create_item(get_current_user(), get_json_body())
    return jsonify({"message": "Item submitted for review", "item": item.to_dict()}), 201


@item_bp.route("/church/items/<int:item_id>", methods=["PUT"])
@jwt_required()
def update_item(item_id):
    item = ItemService.update_item(get_current_user(), item_id, get_json_body())
    return jsonify(item.to_dict())


@item_bp.route("/church/items/<int:item_id>", methods=["DELETE"])
@jwt_required()
def delete_item(item_id):
    ItemService.delete_item(get_current_user(), item_id)
    return jsonify({"message": "Item deleted"})


@item_bp.route("/church/items/<int:item_id>/member-settings", methods=["PATCH"])
@jwt_required()
def update_member_settings(item_id):
    result = ItemService.update_member_settings(get_current_user(), item_id, get_json_body())
    return jsonify(result)
