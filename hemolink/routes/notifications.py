# SPDX-License-Identifier: Apache-2.0

"""
User notification endpoints: listing and marking read.
"""

from flask import jsonify, current_app, g
from flask_openapi3 import APIBlueprint, Tag
import logging

from ..models.requests import NotificationPath, NotificationQuery, MarkNotificationsReadRequest
from ..middleware.auth import require_jwt

logger = logging.getLogger(__name__)

notifications_tag = Tag(name="Notifications", description="User notifications")
notifications_bp = APIBlueprint(
    'notifications',
    __name__,
    url_prefix='/api/notifications',
    abp_tags=[notifications_tag]
)


@notifications_bp.get('')
@require_jwt
def list_notifications(query: NotificationQuery):
    """List the authenticated user's notifications, newest first."""
    notifications = current_app.notification_gateway.list_for_user(
        g.user_context.user_id, query.status.value
    )
    return jsonify({
        "success": True,
        "count": len(notifications),
        "data": [n.to_response() for n in notifications]
    })


@notifications_bp.post('/<notification_id>/read')
@require_jwt
def mark_notification_read(path: NotificationPath):
    """Mark one notification read."""
    notification = current_app.notification_gateway.mark_as_read(
        path.notification_id, g.user_context.user_id
    )
    return jsonify({"success": True, "data": notification.to_response()})


@notifications_bp.post('/read')
@require_jwt
def mark_notifications_read(body: MarkNotificationsReadRequest):
    """Mark several notifications read."""
    updated = current_app.notification_gateway.mark_many_as_read(
        body.notification_ids, g.user_context.user_id
    )
    return jsonify({
        "success": True,
        "message": f"Successfully marked {updated} notifications as read.",
        "updated": updated
    })
