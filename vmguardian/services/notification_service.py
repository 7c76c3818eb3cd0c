#!/usr/bin/env python3
"""
Per-user notifications.

notify() only adds to the session; the caller commits together with the
change that caused the notification.
"""

import logging
from typing import List

from vmguardian.exceptions import NotFoundError, ValidationError
from vmguardian.models import db, Notification, NOTIFICATION_TYPES, User

logger = logging.getLogger(__name__)


def notify(user_id: int, message: str, type: str = 'info') -> Notification:
    if type not in NOTIFICATION_TYPES:
        raise ValidationError(f"Invalid notification type. Must be one of: {', '.join(NOTIFICATION_TYPES)}")
    notification = Notification(user_id=user_id, message=message, type=type)
    db.session.add(notification)
    return notification


def send(user_id: int, message: str, type: str = 'info') -> Notification:
    """Admin send: validate the recipient and commit immediately."""
    if not (message or '').strip():
        raise ValidationError("Message is required")
    if not db.session.get(User, user_id):
        raise NotFoundError("User not found")

    notification = notify(user_id, message.strip(), type)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to send notification to user %s", user_id)
        raise
    logger.info("Sent %s notification to user %s", type, user_id)
    return notification


def list_for_user(user: User, unread_only: bool = False) -> List[Notification]:
    query = Notification.query.filter_by(user_id=user.id)
    if unread_only:
        query = query.filter_by(read=False)
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()


def unread_count(user: User) -> int:
    return Notification.query.filter_by(user_id=user.id, read=False).count()


def mark_read(user: User, notification_id: int) -> Notification:
    notification = db.session.get(Notification, notification_id)
    # Other users' notifications are reported as missing
    if not notification or notification.user_id != user.id:
        raise NotFoundError("Notification not found")
    notification.read = True
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to mark notification %s read", notification_id)
        raise
    return notification


def mark_all_read(user: User) -> int:
    try:
        count = Notification.query.filter_by(user_id=user.id, read=False).update({'read': True})
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to mark notifications read for %s", user.email)
        raise
    return count
