# utils/email_service.py

import logging

from fastapi_mail import FastMail, MessageSchema, ConnectionConfig
from fastapi_mail.errors import ConnectionErrors

from core.config import Settings

logger = logging.getLogger(__name__)


def connection_config(settings: Settings) -> ConnectionConfig:
    # without a mail server the message is built but never sent
    return ConnectionConfig(
        MAIL_USERNAME=settings.MAIL_USERNAME,
        MAIL_PASSWORD=settings.MAIL_PASSWORD,
        MAIL_FROM=settings.MAIL_FROM,
        MAIL_FROM_NAME=settings.MAIL_FROM_NAME,
        MAIL_PORT=settings.MAIL_PORT,
        MAIL_SERVER=settings.MAIL_SERVER or "localhost",
        MAIL_STARTTLS=settings.MAIL_STARTTLS,
        MAIL_SSL_TLS=settings.MAIL_SSL_TLS,
        USE_CREDENTIALS=bool(settings.MAIL_USERNAME),
        VALIDATE_CERTS=True,
        SUPPRESS_SEND=0 if settings.MAIL_SERVER else 1,
    )


class EmailService:
    def __init__(self, settings: Settings):
        self.fm = FastMail(connection_config(settings))

    async def send_verification_email(self, email: str, first_name: str, code: str,
                                      ttl_minutes: int = 10) -> bool:
        message = MessageSchema(
            subject="Membership Verification Code",
            recipients=[email],
            body=(
                f"Hello {first_name},\n\n"
                f"Your verification code is: {code}\n\n"
                f"The code expires in {ttl_minutes} minutes."
            ),
            subtype="plain"
        )
        try:
            await self.fm.send_message(message)
        except ConnectionErrors as exc:
            logger.error("Failed to send verification email to %s: %s", email, exc)
            return False
        return True
