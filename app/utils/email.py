from flask import current_app
from flask_mail import Message
from threading import Thread
from app.extensions import mail


def send_async_email(app, msg):
    with app.app_context():
        try:
            mail.send(msg)
        except Exception as e:
            app.logger.error(f"Failed to send email: {e}")


def dispatch_email(subject, recipients, body, background=True):
    """Send a plain-text email.

    Returns False only when delivery is known to have failed; background
    sends are fire-and-forget and report True once queued. In testing mode
    the email is written to the log instead of being sent.
    """
    app = current_app._get_current_object()

    if app.testing:
        app.logger.info("--- MOCK EMAIL ---")
        app.logger.info(f"To: {', '.join(recipients)}")
        app.logger.info(f"Subject: {subject}")
        app.logger.info(f"Body: {body}")
        app.logger.info("--- END MOCK EMAIL ---")
        return True

    msg = Message(
        subject,
        sender=("InHouse", app.config.get("MAIL_DEFAULT_SENDER")),
        recipients=recipients,
    )
    msg.body = body

    if background:
        Thread(target=send_async_email, args=(app, msg)).start()
        return True

    try:
        mail.send(msg)
        return True
    except Exception as e:
        app.logger.error(f"Failed to send email to {recipients}: {e}")
        return False


def send_password_reset_email(user, token):
    reset_url = f"{current_app.config.get('CLIENT_URL')}/reset-password/{token}"
    body = f"""
Hi {user.first_name},

To reset your password, visit the following link:
{reset_url}

This link expires in one hour. If you did not request a reset, you can ignore this email.

The InHouse Team
"""
    return dispatch_email("InHouse Password Reset", [user.email], body)


def send_church_invitation_email(invitation, reminder=False):
    signup_url = f"{current_app.config.get('CLIENT_URL')}/church-signup/{invitation.token}"
    subject = f"You've been invited to join InHouse by {invitation.inviter_name}"
    if reminder:
        subject = f"Reminder: {subject}"

    custom = f"\n{invitation.custom_message}\n" if invitation.custom_message else ""
    phone = f"\nPhone: {invitation.inviter_phone}" if invitation.inviter_phone else ""
    body = f"""
Hello,

{invitation.inviter_name} ({invitation.inviter_email}) has invited your church to join InHouse.
{custom}
Create your church account here:
{signup_url}

This invitation expires on {invitation.expires_at.strftime('%B %d, %Y')}.{phone}

The InHouse Team
"""
    return dispatch_email(subject, [invitation.church_email], body)


def send_membership_warning_email(user, days_remaining):
    church_search_url = f"{current_app.config.get('CLIENT_URL')}/dashboard/churches"
    body = f"""
Hi {user.first_name},

InHouse accounts must belong to a verified church. Your account will be disabled in {days_remaining} days unless you join a church.

Find a church: {church_search_url}

Questions? Contact {current_app.config.get('SUPPORT_EMAIL')}.
"""
    return dispatch_email(
        f"Action Required: Church Membership Needed ({days_remaining} Days Remaining)",
        [user.email],
        body,
        background=False,
    )


def send_account_disabled_email(user):
    church_search_url = f"{current_app.config.get('CLIENT_URL')}/dashboard/churches"
    body = f"""
Hi {user.first_name},

Your account has been temporarily disabled because it is not linked to a verified church.
Request to join a church and your account will be reactivated once you are verified.

Find a church: {church_search_url}

Questions? Contact {current_app.config.get('SUPPORT_EMAIL')}.
"""
    return dispatch_email(
        "Account Temporarily Disabled - Church Membership Required",
        [user.email],
        body,
        background=False,
    )


def send_account_reactivated_email(user, church):
    body = f"""
Welcome back, {user.first_name}!

You are now a verified member of {church.name} and your account has been reactivated.

The InHouse Team
"""
    return dispatch_email(
        "Your InHouse Account Has Been Reactivated",
        [user.email],
        body,
    )
