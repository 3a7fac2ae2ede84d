import firebase_admin
from firebase_admin import credentials, messaging
from firebase_admin.exceptions import FirebaseError
from flask import current_app

FIREBASE_APP_NAME = "inhouse"


def _firebase_app(config):
    """The Firebase app for these credentials, initialised on first use."""
    try:
        return firebase_admin.get_app(FIREBASE_APP_NAME)
    except ValueError:
        certificate = credentials.Certificate(
            {
                "type": "service_account",
                "project_id": config["FIREBASE_PROJECT_ID"],
                "client_email": config["FIREBASE_CLIENT_EMAIL"],
                "private_key": config["FIREBASE_PRIVATE_KEY"].replace("\\n", "\n"),
                "token_uri": "https://oauth2.googleapis.com/token",
            }
        )
        return firebase_admin.initialize_app(certificate, name=FIREBASE_APP_NAME)


def push_configured(config) -> bool:
    return all(
        config.get(key) for key in ("FIREBASE_PROJECT_ID", "FIREBASE_CLIENT_EMAIL", "FIREBASE_PRIVATE_KEY")
    )


def send_push_to_tokens(tokens, title, body, data=None):
    """Deliver one notification to every device token.

    Returns ``{token: delivered}``. Delivery failures are logged, never raised.
    """
    app = current_app._get_current_object()
    tokens = list(tokens)
    if not tokens:
        return {}

    if app.testing or not push_configured(app.config):
        app.logger.info("--- MOCK PUSH ---")
        app.logger.info(f"Tokens: {tokens}")
        app.logger.info(f"Title: {title}")
        app.logger.info(f"Body: {body}")
        app.logger.info(f"Data: {data or {}}")
        app.logger.info("--- END MOCK PUSH ---")
        return {token: True for token in tokens}

    message = messaging.MulticastMessage(
        tokens=tokens,
        notification=messaging.Notification(title=title, body=body),
        data={key: str(value) for key, value in (data or {}).items()},
    )
    try:
        response = messaging.send_each_for_multicast(message, app=_firebase_app(app.config))
    except (FirebaseError, ValueError) as e:
        app.logger.error(f"Failed to send push notification: {e}")
        return {token: False for token in tokens}

    delivered = {}
    for token, result in zip(tokens, response.responses):
        delivered[token] = result.success
        if not result.success:
            app.logger.error(f"Push to token {token} failed: {result.exception}")
    app.logger.info(f"Push '{title}': {response.success_count} sent, {response.failure_count} failed")
    return delivered
