"""
Email background tasks.

Password reset emails sent through Resend.
"""

import logging

import resend

from taskspace.core.config import settings
from taskspace.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


def build_reset_url(frontend_url: str, reset_token: str) -> str:
    return f"{frontend_url.rstrip('/')}/reset-password?token={reset_token}"


@celery_app.task(name="taskspace.workers.email_tasks.send_password_reset_email", bind=True, max_retries=3)
def send_password_reset_email(
    self,  # type: ignore[no-untyped-def]
    to_email: str,
    reset_token: str,
    frontend_url: str,
) -> dict[str, str]:
    """
    Send a password reset email via Resend.

    Args:
        to_email: Recipient email address.
        reset_token: Secure reset token.
        frontend_url: Frontend base URL for constructing the reset link.

    Returns:
        Dict with status and, when sent, message_id.
    """
    if not settings.RESEND_API_KEY:
        logger.warning("RESEND_API_KEY not set, skipping password reset email to %s", to_email)
        return {"status": "skipped"}

    reset_url = build_reset_url(frontend_url, reset_token)
    expires = settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES

    try:
        resend.api_key = settings.RESEND_API_KEY

        params: resend.Emails.SendParams = {
            "from": settings.EMAIL_FROM,
            "to": [to_email],
            "subject": "Reset your TaskSpace password",
            "html": f"""
                <h2>Reset your password</h2>
                <p>We received a request to reset your TaskSpace password.</p>
                <p>
                    <a href="{reset_url}"
                       style="background:#6366f1;color:#fff;padding:12px 24px;
                              border-radius:6px;text-decoration:none;display:inline-block;">
                        Reset Password
                    </a>
                </p>
                <p>This link expires in {expires} minutes.</p>
                <p>If you did not request a password reset, you can safely ignore this email.</p>
            """,
        }

        response = resend.Emails.send(params)
        return {"status": "sent", "message_id": response["id"]}

    except Exception as exc:
        logger.warning("Password reset email to %s failed: %s", to_email, exc)
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))
