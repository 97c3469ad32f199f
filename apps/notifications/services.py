"""In-app notification services."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from django.db import IntegrityError, transaction  # type: ignore

from .models import Notification

if TYPE_CHECKING:  # pragma: no cover
    from apps.users.models import CustomUser

logger = logging.getLogger(__name__)


def create_in_app_notification(
    user: "CustomUser",
    title: str,
    message: str,
    *,
    kind: str = Notification.Kind.GENERAL,
    data: dict | None = None,
    dedupe_key: str | None = None,
) -> Notification | None:
    """
    Create an in-app notification for ``user``.

    With a ``dedupe_key`` the call is idempotent: a second call with the
    same key for the same user returns the existing notification.
    Returns None if the notification could not be stored.
    """
    try:
        if dedupe_key:
            try:
                with transaction.atomic():
                    notification, created = Notification.objects.get_or_create(
                        user=user,
                        dedupe_key=dedupe_key,
                        defaults={"kind": kind, "title": title, "message": message, "data": data or {}},
                    )
            except IntegrityError:
                notification, created = Notification.objects.get(user=user, dedupe_key=dedupe_key), False
            if not created:
                logger.debug(f"Notification {dedupe_key} already sent to {user.email}")
                return notification
        else:
            notification = Notification.objects.create(
                user=user, kind=kind, title=title, message=message, data=data or {}
            )

        logger.info(f"In-app notification created for {user.email}: {title}")
        return notification

    except Exception as e:
        logger.error(f"Failed to create in-app notification for {user.email}: {e}", exc_info=True)
        return None


def notify_role(
    roles: Iterable[str],
    title: str,
    message: str,
    *,
    kind: str = Notification.Kind.GENERAL,
    data: dict | None = None,
    dedupe_key: str | None = None,
) -> list[Notification]:
    """Notify every active user holding one of ``roles``."""
    from apps.users.models import CustomUser

    recipients = CustomUser.objects.with_role(*roles).order_by("id")
    notifications = []
    for user in recipients:
        notification = create_in_app_notification(
            user, title, message, kind=kind, data=data, dedupe_key=dedupe_key
        )
        if notification is not None:
            notifications.append(notification)

    if not notifications:
        logger.warning(f"No recipients with roles {list(roles)} for notification: {title}")
    return notifications
