"""Delivery gateway: one report email to one address via Resend."""

import logging

from study_tracker.config import RESEND_API_KEY, RESEND_FROM_EMAIL, RESEND_FROM_NAME

logger = logging.getLogger(__name__)


def send_email(to_email: str, subject: str, html: str) -> bool:
    """Send an email via Resend.

    Returns True if Resend accepted the message. Transport and auth errors are
    logged and reported as False; nothing is retried here.
    """
    if not RESEND_API_KEY:
        logger.error("RESEND_API_KEY not set, cannot send report to %s", to_email)
        return False

    try:
        import resend

        if not resend.api_key:
            resend.api_key = RESEND_API_KEY

        result = resend.Emails.send({
            "from": f"{RESEND_FROM_NAME} <{RESEND_FROM_EMAIL}>",
            "to": [to_email],
            "subject": subject,
            "html": html,
        })
    except Exception as e:
        logger.error("Send to %s failed: %s", to_email, e)
        return False

    logger.info("Email sent to %s (resend id %s)", to_email, (result or {}).get("id", ""))
    return True
