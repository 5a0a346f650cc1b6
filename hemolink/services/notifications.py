# SPDX-License-Identifier: Apache-2.0

"""
Notification gateway and best-effort dispatch.

Components that notify users receive a ``NotificationDispatcher`` at
construction time. The dispatcher forwards to a ``NotificationGateway`` and
never lets a delivery failure reach the caller: failures are logged and
swallowed, and nothing is retried here.
"""

import logging
from abc import ABC, abstractmethod
from concurrent.futures import Executor, Future
from typing import List, Optional

from opentelemetry import trace

from ..models.entities import Notification
from ..models.enums import NotificationStatus, NotificationType
from ..domain.errors import NotFoundException, ValidationException
from .lookups import USERS, NOTIFICATIONS

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class NotificationGateway(ABC):
    """Accepts notification requests for users."""

    @abstractmethod
    def notify(self, target_user_id: str, message: str, type_tag: str) -> Optional[Notification]:
        """
        Create a notification for a user.

        Returns:
            The created notification, or None when the target user does not
            exist (the notification is skipped)
        """


class MongoNotificationGateway(NotificationGateway):
    """Gateway persisting notifications as documents in the store."""

    def __init__(self, mongodb_service):
        self.mongodb_service = mongodb_service

    def notify(self, target_user_id: str, message: str, type_tag: str) -> Optional[Notification]:
        if not target_user_id:
            logger.error("User ID is required for sending notifications")
            return None

        if self.mongodb_service.find_by_id(USERS, target_user_id) is None:
            logger.warning(
                "Attempted to send notification to non-existent user",
                extra={"user_id": target_user_id, "type": type_tag}
            )
            return None

        notification = Notification(
            user_id=target_user_id,
            message=message,
            type=NotificationType(type_tag),
            status=NotificationStatus.UNREAD
        )
        notification.id = self.mongodb_service.insert(NOTIFICATIONS, notification.to_document())
        return notification

    def list_for_user(self, user_id: str, status: str = NotificationStatus.UNREAD) -> List[Notification]:
        """List a user's notifications with the given status, newest first."""
        if not user_id:
            raise ValidationException("User ID is required to retrieve notifications")

        documents = self.mongodb_service.find(
            NOTIFICATIONS,
            {"userId": user_id, "status": NotificationStatus(status).value},
            sort=[("createdAt", -1)]
        )
        return [Notification.from_document(doc) for doc in documents]

    def mark_as_read(self, notification_id: str, user_id: str) -> Notification:
        """Mark one of the user's notifications read. Read is terminal."""
        document = self.mongodb_service.update_by_id(
            NOTIFICATIONS,
            notification_id,
            {"$set": {"status": NotificationStatus.READ.value}},
            precondition={"userId": user_id}
        )
        if document is None:
            raise NotFoundException("Notification not found or not authorized to update")
        return Notification.from_document(document)

    def mark_many_as_read(self, notification_ids: List[str], user_id: str) -> int:
        """Mark several of the user's unread notifications read; returns the count changed."""
        if not notification_ids:
            raise ValidationException("A valid list of notification IDs is required")

        modified = self.mongodb_service.update_many(
            NOTIFICATIONS,
            {
                "id": {"$in": list(notification_ids)},
                "userId": user_id,
                "status": NotificationStatus.UNREAD.value
            },
            {"$set": {"status": NotificationStatus.READ.value}}
        )
        if modified == 0:
            logger.warning(
                "No notifications were marked as read",
                extra={"user_id": user_id, "requested": len(notification_ids)}
            )
        return modified


class NotificationDispatcher:
    """
    Fire-and-forget front for a NotificationGateway.

    With an executor, deliveries run in the background and ``dispatch``
    returns immediately with None. Without one, delivery happens inline and
    the created notification (or None) is returned.
    """

    def __init__(self, gateway: NotificationGateway, executor: Optional[Executor] = None):
        self.gateway = gateway
        self.executor = executor

    def dispatch(self, target_user_id: str, message: str, type_tag: str) -> Optional[Notification]:
        if self.executor is not None:
            future = self.executor.submit(self._deliver, target_user_id, message, type_tag)
            future.add_done_callback(self._log_background_failure)
            return None
        return self._deliver(target_user_id, message, type_tag)

    def _deliver(self, target_user_id: str, message: str, type_tag: str) -> Optional[Notification]:
        with tracer.start_as_current_span(
            "notification.dispatch",
            attributes={"notification.type": str(type_tag), "user.id": str(target_user_id)}
        ) as span:
            try:
                notification = self.gateway.notify(target_user_id, message, type_tag)
            except Exception as e:
                span.record_exception(e)
                logger.error(
                    "Notification delivery failed",
                    extra={"user_id": target_user_id, "type": str(type_tag), "error": str(e)},
                    exc_info=True
                )
                return None

            if notification is None:
                span.set_attribute("notification.skipped", True)
                logger.info(
                    "Notification skipped",
                    extra={"user_id": target_user_id, "type": str(type_tag)}
                )
            return notification

    def _log_background_failure(self, future: Future) -> None:
        # _deliver already swallows gateway errors; this catches executor-level ones
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"Background notification task failed: {error}")
