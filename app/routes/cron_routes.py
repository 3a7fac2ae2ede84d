from flask import Blueprint, jsonify
from app.services import InvitationService, MemberRequestService, MembershipService, MessageService, PingService
from app.utils.auth import cron_secret_required

cron_bp = Blueprint("cron", __name__)


@cron_bp.route("/expire-member-requests", methods=["POST"])
@cron_secret_required
def expire_member_requests():
    return jsonify(MemberRequestService.expire_due())


@cron_bp.route("/expire-church-invitations", methods=["POST"])
@cron_secret_required
def expire_church_invitations():
    return jsonify(InvitationService.expire_due())


@cron_bp.route("/expire-pings", methods=["POST"])
@cron_secret_required
def expire_pings():
    return jsonify(PingService.expire_due())


@cron_bp.route("/message-cleanup", methods=["POST"])
@cron_secret_required
def message_cleanup():
    return jsonify(MessageService.cleanup())


@cron_bp.route("/enforce-church-membership", methods=["POST"])
@cron_secret_required
def enforce_church_membership():
    return jsonify(MembershipService.enforce())
