from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from app.exceptions import MissingFieldsError
from app.services import (
    ActivityLogService,
    AnalyticsService,
    ChurchService,
    InvitationService,
    InviteCodeService,
    ItemService,
    MembershipService,
    MessageService,
)
from app.services.permissions import require
from app.utils.auth import get_current_user, get_json_body

admin_bp = Blueprint("admin", __name__)


@admin_bp.route("/admin/check", methods=["GET"])
@jwt_required()
def check_admin():
    """Check if current user is an admin"""
    user = get_current_user()
    require("admin.users", user)
    return jsonify({"is_admin": True})


@admin_bp.route("/admin/applications", methods=["GET"])
@jwt_required()
def list_applications():
    require("church.review", get_current_user())
    churches = ChurchService.list_applications(request.args.get("status"))
    return jsonify({"applications": [church.to_dict() for church in churches]})


@admin_bp.route("/admin/applications/<int:church_id>", methods=["PATCH"])
@jwt_required()
def review_application(church_id):
    """Approve or reject a church application (admin only)"""
    data = get_json_body()
    if "action" not in data:
        raise MissingFieldsError(["action"])

    admin = get_current_user()
    if data["action"] == "approve":
        church = ChurchService.approve(admin, church_id, data.get("notes"))
    elif data["action"] == "reject":
        church = ChurchService.reject(admin, church_id, data.get("notes"))
    else:
        return jsonify({"error": "action must be 'approve' or 'reject'"}), 400
    return jsonify({"church": church.to_dict()})


@admin_bp.route("/admin/churches/<int:church_id>", methods=["PATCH"])
@jwt_required()
def update_church_settings(church_id):
    church = ChurchService.update_settings(get_current_user(), church_id, get_json_body())
    return jsonify({"church": church.to_dict()})


@admin_bp.route("/admin/users", methods=["GET"])
@jwt_required()
def get_all_users():
    """Get all users (admin only)"""
    users = MembershipService.list_users(
        get_current_user(),
        role=request.args.get("role"),
        status=request.args.get("status"),
        search=request.args.get("search"),
    )
    return jsonify({"users": [user.to_dict() for user in users]})


@admin_bp.route("/admin/users/<int:user_id>", methods=["PATCH"])
@jwt_required()
def update_user(user_id):
    """Apply an account action: activate, deactivate, reactivate, change_role, exempt, remove_exemption"""
    data = get_json_body()
    if "action" not in data:
        raise MissingFieldsError(["action"])
    user = MembershipService.apply_user_action(get_current_user(), user_id, data["action"], data)
    return jsonify({"user": user.to_dict()})


@admin_bp.route("/admin/items", methods=["GET"])
@jwt_required()
def pending_items():
    items = ItemService.list_pending_moderation(get_current_user())
    return jsonify({"items": [item.to_dict() for item in items]})


@admin_bp.route("/admin/items/<int:item_id>", methods=["PATCH"])
@jwt_required()
def moderate_item(item_id):
    data = get_json_body()
    item = ItemService.moderate_item(get_current_user(), item_id, data.get("status"), data.get("notes"))
    return jsonify({"item": item.to_dict()})


@admin_bp.route("/admin/items/<int:item_id>", methods=["DELETE"])
@jwt_required()
def delete_item(item_id):
    ItemService.delete_item(get_current_user(), item_id)
    return jsonify({"message": "Item deleted"})


@admin_bp.route("/admin/messages", methods=["GET"])
@jwt_required()
def list_shares():
    admin = get_current_user()
    messages = MessageService.list_shares(admin, request.args.get("moderation_status"))
    return jsonify({"messages": [message.to_dict(viewer=admin) for message in messages]})


@admin_bp.route("/admin/messages/<int:message_id>", methods=["PATCH"])
@jwt_required()
def moderate_message(message_id):
    admin = get_current_user()
    data = get_json_body()
    message = MessageService.moderate(admin, message_id, data.get("status"), data.get("notes"))
    return jsonify({"message": message.to_dict(viewer=admin)})


@admin_bp.route("/admin/messages/<int:message_id>", methods=["DELETE"])
@jwt_required()
def delete_message(message_id):
    MessageService.delete_message(get_current_user(), message_id)
    return jsonify({"success": True})


@admin_bp.route("/admin/analytics/invitations", methods=["GET"])
@jwt_required()
def invitation_overview():
    return jsonify(InvitationService.admin_overview(get_current_user(), request.args.get("status")))


@admin_bp.route("/admin/analytics/invitations/<int:invitation_id>/resend", methods=["POST"])
@jwt_required()
def resend_invitation(invitation_id):
    invitation = InvitationService.resend(get_current_user(), invitation_id)
    return jsonify({"invitation": invitation.to_dict()})


@admin_bp.route("/admin/analytics/invitations/<int:invitation_id>/expire", methods=["POST"])
@jwt_required()
def expire_invitation(invitation_id):
    invitation = InvitationService.expire(get_current_user(), invitation_id)
    return jsonify({"invitation": invitation.to_dict()})


@admin_bp.route("/admin/analytics/leaderboard", methods=["GET"])
@jwt_required()
def leaderboard():
    limit = request.args.get("limit", default=20, type=int)
    return jsonify({"leaderboard": AnalyticsService.leaderboard(get_current_user(), limit)})


@admin_bp.route("/admin/invite-codes/<code>/expire", methods=["POST"])
@jwt_required()
def expire_invite_code(code):
    invite_code = InviteCodeService.expire(get_current_user(), code)
    return jsonify({"invite_code": invite_code.to_dict()})


@admin_bp.route("/admin/activity-logs", methods=["GET"])
@jwt_required()
def activity_logs():
    require("admin.activity", get_current_user())
    return jsonify(
        ActivityLogService.list_activity(
            category=request.args.get("category"),
            action=request.args.get("action"),
            page=request.args.get("page", default=1, type=int),
            per_page=request.args.get("per_page", default=50, type=int),
        )
    )
