from __future__ import annotations

import logging
import os
from typing import Tuple

logger = logging.getLogger(__name__)


class MessageProvider:
    def send(
        self,
        *,
        channel: str,
        template_key: str,
        recipient: str,
        subject: str,
        context: dict,
        correlation_id: str | None,
    ) -> None:
        raise NotImplementedError


class NoopProvider(MessageProvider):
    def send(
        self,
        *,
        channel: str,
        template_key: str,
        recipient: str,
        subject: str,
        context: dict,
        correlation_id: str | None,
    ) -> None:
        return None


class LogProvider(MessageProvider):
    """Development provider: writes the rendered message to the log."""

    def send(
        self,
        *,
        channel: str,
        template_key: str,
        recipient: str,
        subject: str,
        context: dict,
        correlation_id: str | None,
    ) -> None:
        logger.info(
            "Outbound %s message %s to %s: %s %s",
            channel,
            template_key,
            recipient,
            subject,
            context,
        )


_ENV_KEYS = {
    "email": ("NOTIFICATIONS_EMAIL_PROVIDER", "EMAIL_PROVIDER"),
    "sms": ("NOTIFICATIONS_SMS_PROVIDER", "SMS_PROVIDER"),
}


def get_message_provider(channel: str) -> Tuple[MessageProvider, bool]:
    keys = _ENV_KEYS.get(channel)
    if keys is None:
        raise ValueError(f"Unsupported channel: {channel}")
    provider_name = ""
    for key in keys:
        provider_name = (os.getenv(key) or "").strip().lower()
        if provider_name:
            break
    if not provider_name or provider_name in {"none", "noop", "disabled"}:
        return NoopProvider(), False
    if provider_name == "log":
        return LogProvider(), True
    raise ValueError(f"Unsupported {channel} provider: {provider_name}")
