from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Iterable, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from . import models, providers

logger = logging.getLogger(__name__)

_REDACTED_KEYS = {"code", "otp", "password", "token"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _redact(context: Optional[dict]) -> dict:
    return {
        key: ("***" if key.lower() in _REDACTED_KEYS else value)
        for key, value in (context or {}).items()
    }


# ---------------------------------------------------------------------------
# Outbound messages
# ---------------------------------------------------------------------------


def send_message(
    db: Session,
    *,
    channel: str,
    template_key: str,
    recipient: str,
    subject: str,
    context: dict,
    correlation_id: Optional[str] = None,
    critical: bool = False,
) -> models.DeliveryLog:
    """
    Deliver an SMS or e-mail through the configured provider and record the
    attempt. Provider failures raise only when `critical` is set.
    """
    log = models.DeliveryLog(
        channel=models.DeliveryChannel(channel),
        recipient=recipient,
        subject=subject,
        template_key=template_key,
        status=models.DeliveryStatus.QUEUED,
        context_json=_redact(context),
        correlation_id=correlation_id,
    )
    db.add(log)
    db.flush()

    provider, configured = providers.get_message_provider(channel)
    if not configured:
        log.status = models.DeliveryStatus.SKIPPED_NO_PROVIDER
        log.error = "No provider configured"
        db.add(log)
        return log

    try:
        provider.send(
            channel=channel,
            template_key=template_key,
            recipient=recipient,
            subject=subject,
            context=context or {},
            correlation_id=correlation_id,
        )
        log.status = models.DeliveryStatus.SENT
        log.sent_at = _utcnow()
    except Exception as exc:
        log.status = models.DeliveryStatus.FAILED
        log.error = str(exc)
        logger.warning(
            "Message delivery failed",
            extra={"channel": channel, "template_key": template_key, "critical": critical},
        )
        if critical:
            db.add(log)
            raise
    db.add(log)
    return log


# ---------------------------------------------------------------------------
# In-app notifications
# ---------------------------------------------------------------------------


def notify_users(
    db: Session,
    *,
    user_ids: Iterable[Optional[str]],
    type: str,
    message: str,
    file_id: Optional[str] = None,
    priority: str = "normal",
    action_required: bool = False,
    exclude_user_id: Optional[str] = None,
) -> List[models.Notification]:
    """Queue one notification per distinct recipient, skipping the actor."""
    created: List[models.Notification] = []
    seen = set()
    for user_id in user_ids:
        if not user_id or user_id == exclude_user_id or user_id in seen:
            continue
        seen.add(user_id)
        notification = models.Notification(
            user_id=user_id,
            file_id=file_id,
            type=type,
            message=message,
            priority=priority,
            action_required=action_required,
        )
        db.add(notification)
        created.append(notification)
    return created


def list_notifications(
    db: Session,
    *,
    user_id: str,
    unread_only: bool = False,
    limit: int = 50,
) -> List[models.Notification]:
    query = db.query(models.Notification).filter(models.Notification.user_id == user_id)
    if unread_only:
        query = query.filter(models.Notification.is_read.is_(False))
    return query.order_by(models.Notification.created_at.desc()).limit(limit).all()


def mark_read(db: Session, *, notification_id: str, user_id: str) -> models.Notification:
    notification = db.get(models.Notification, notification_id)
    if not notification or notification.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = _utcnow()
        db.add(notification)
    return notification
