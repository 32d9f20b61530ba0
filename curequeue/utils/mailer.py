import asyncio

import resend

from curequeue.config import get_settings
from curequeue.utils.logger import get_logger

logger = get_logger("mailer")


async def send_email(to: str | None, subject: str, html: str) -> bool:
    """Send one transactional email through Resend.

    Returns False without sending when there is no recipient or no API key
    (dev mode). Provider errors propagate to the caller.
    """
    settings = get_settings()
    if not to:
        logger.info(f"[MAIL:SKIP] no recipient subject={subject!r}")
        return False
    if not settings.RESEND_API_KEY:
        logger.info(f"[MAIL:SKIP] to={to} subject={subject!r}")
        return False

    resend.api_key = settings.RESEND_API_KEY
    # the Resend SDK is synchronous
    await asyncio.to_thread(
        resend.Emails.send,
        {
            "from": settings.EMAIL_FROM,
            "to": [to],
            "subject": subject,
            "html": html,
        },
    )
    logger.info(f"[MAIL] sent to={to} subject={subject!r}")
    return True
