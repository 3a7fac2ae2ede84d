from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from app.services import AnalyticsService, InvitationService, InviteCodeService
from app.utils.auth import get_current_user, get_json_body

invitation_bp = Blueprint("invitation", __name__)


@invitation_bp.route("/church-invitations", methods=["POST"])
@jwt_required()
def send_church_invitation():
    invitation = InvitationService.create(get_current_user(), get_json_body())
    return (
        jsonify(
            {
                "success": True,
                "invitation_id": invitation.id,
                "message": "Church invitation sent successfully",
            }
        ),
        201,
    )


@invitation_bp.route("/church-invitations", methods=["GET"])
@jwt_required()
def my_church_invitations():
    invitations = InvitationService.list_sent(get_current_user())
    return jsonify({"invitations": [i.to_dict() for i in invitations]})


@invitation_bp.route("/church-invitations/check", methods=["GET"])
@jwt_required()
def check_church_invitation():
    get_current_user()
    return jsonify(InvitationService.check_email(request.args.get("email")))


@invitation_bp.route("/church-invitations/<int:invitation_id>", methods=["GET"])
@jwt_required()
def get_church_invitation(invitation_id):
    get_current_user()
    return jsonify(InvitationService.get(invitation_id).to_dict())


@invitation_bp.route("/church-invitations/<int:invitation_id>/cancel", methods=["POST"])
@jwt_required()
def cancel_church_invitation(invitation_id):
    invitation = InvitationService.cancel(get_current_user(), invitation_id)
    return jsonify({"invitation": invitation.to_dict()})


@invitation_bp.route("/church-invitations/<int:invitation_id>/resend", methods=["POST"])
@jwt_required()
def resend_church_invitation(invitation_id):
    invitation = InvitationService.resend(get_current_user(), invitation_id)
    return jsonify({"message": "Invitation resent", "invitation": invitation.to_dict()})


@invitation_bp.route("/church-signup/<token>", methods=["GET"])
def validate_church_signup(token):
    return jsonify(InvitationService.validate_signup_token(token))


@invitation_bp.route("/church-signup/<token>", methods=["POST"])
def church_signup(token):
    result = InvitationService.church_signup(token, get_json_body())
    return jsonify({"success": True, **result}), 201


@invitation_bp.route("/invite-code", methods=["GET"])
@jwt_required()
def my_invite_code():
    invite_code = InviteCodeService.get_or_create(get_current_user())
    return jsonify(invite_code.to_dict())


@invitation_bp.route("/invite-code/<code>", methods=["GET"])
def lookup_invite_code(code):
    invite_code = InviteCodeService.lookup(code)
    return jsonify(
        {
            "valid": True,
            "code": invite_code.code,
            "inviter_name": invite_code.user.display_name,
            "church_name": invite_code.user.church.name if invite_code.user.church else None,
        }
    )


@invitation_bp.route("/invite-code/<code>/scan", methods=["POST"])
def scan_invite_code(code):
    invite_code = InviteCodeService.record_scan(code)
    return jsonify({"success": True, "scans": invite_code.scans})


@invitation_bp.route("/invite/analytics", methods=["GET"])
@jwt_required()
def my_invite_analytics():
    return jsonify(AnalyticsService.for_user(get_current_user()))
