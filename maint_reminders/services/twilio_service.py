import asyncio
import logging
from typing import Protocol

from twilio.rest import Client
from twilio.base.exceptions import TwilioRestException

from maint_reminders.config import settings
from maint_reminders.exceptions import TransportError
from maint_reminders.schemas.reminder import ReminderPayload

logger = logging.getLogger(__name__)


class NotificationTransport(Protocol):
    """Anything that can deliver a reminder and return a provider message id."""

    @property
    def is_configured(self) -> bool:
        ...

    async def send(self, destination: str, payload: ReminderPayload) -> str:
        ...


def to_e164(phone: str) -> str:
    """Stored phones are digits only; Twilio wants +<country><number>."""
    digits = "".join(ch for ch in phone if ch.isdigit())
    if not digits:
        raise ValueError("Phone number has no digits")
    return f"+{digits}"


def mask_phone(phone: str) -> str:
    return f"***{phone[-4:]}" if phone else "***"


class TwilioService:
    """Deliver reminders over Twilio WhatsApp or SMS."""

    def __init__(self, channel: str | None = None):
        self.account_sid = settings.TWILIO_ACCOUNT_SID
        self.auth_token = settings.TWILIO_AUTH_TOKEN
        self.phone_number = settings.TWILIO_PHONE_NUMBER
        self.channel = channel or settings.TWILIO_CHANNEL

        if self.account_sid and self.auth_token and self.phone_number:
            self.client = Client(self.account_sid, self.auth_token)
        else:
            self.client = None
            logger.warning("Twilio credentials not configured")

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    def _address(self, number: str) -> str:
        number = to_e164(number)
        if self.channel == "whatsapp":
            return f"whatsapp:{number}"
        return number

    async def send(self, destination: str, payload: ReminderPayload) -> str:
        """Send a reminder and return the Twilio message SID."""
        if not self.client:
            raise TransportError("Twilio", "client not configured")

        try:
            to = self._address(destination)
        except ValueError as e:
            raise TransportError("Twilio", str(e)) from e

        try:
            message = await asyncio.to_thread(
                self.client.messages.create,
                to=to,
                from_=self._address(self.phone_number),
                body=payload.body,
            )
        except TwilioRestException as e:
            logger.error(f"Twilio error: {e.msg}")
            raise TransportError("Twilio", e.msg) from e

        logger.info(f"{self.channel} reminder sent: {message.sid} to {mask_phone(destination)}")
        return message.sid


class MockTwilioService(TwilioService):
    """Mock Twilio service for testing and local development."""

    def __init__(self, fail_for: set[str] | None = None):
        self.phone_number = "+15555555555"
        self.channel = "whatsapp"
        self.client = None
        self.fail_for = set(fail_for or ())
        self._sent_messages = []

    @property
    def is_configured(self) -> bool:
        return True

    @property
    def sent_messages(self) -> list[dict]:
        return list(self._sent_messages)

    async def send(self, destination: str, payload: ReminderPayload) -> str:
        """Mock sending; destinations in ``fail_for`` raise TransportError."""
        if destination in self.fail_for:
            raise TransportError("Twilio", f"mock failure for {mask_phone(destination)}")

        sid = f"SM{len(self._sent_messages):032d}"
        self._sent_messages.append({
            "to": destination,
            "plate": payload.plate,
            "body": payload.body,
            "sid": sid,
        })

        logger.info(f"Mock reminder sent to {mask_phone(destination)}")
        return sid
