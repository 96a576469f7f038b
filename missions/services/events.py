# missions/services/events.py
"""
Outbound side effects of the engine: user notifications and realtime domain events.

Notifications are stored rows written inside the caller's transaction. Delivery
(web push, channel layer broadcast) runs after commit and never fails the
operation that triggered it.
"""

import json
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction
from pywebpush import webpush, WebPushException

from ..conf import get_setting
from ..exceptions import NotFound
from ..models import Notification, User

logger = logging.getLogger(__name__)

# Domain event types pushed to observers
CHECK_IN = 'check_in'
CHECK_OUT = 'check_out'
PROMOTION = 'promotion'
ATTENDANCE_REVIEWED = 'attendance_reviewed'

# Notification types
NOTIFY_PROMOTED = 'waitlist_promoted'
NOTIFY_POINTS_AWARDED = 'points_awarded'


def mission_group(mission_id):
    return f"mission_{mission_id}"


def notify(user_id, title, message, type, related_id=None):
    """
    Record a notification for the user and push it to their device after commit.
    """
    notification = Notification.objects.create(
        user_id=user_id,
        title=title,
        message=message,
        type=type,
        related_id=related_id,
    )
    transaction.on_commit(lambda: send_push_notification(user_id, title, message, related_id))
    return notification


def send_push_notification(user_id, title, message, related_id=None):
    """Best-effort web push to the user's stored subscription."""
    vapid_private_key = settings.WEBPUSH_SETTINGS.get('VAPID_PRIVATE_KEY')
    if not vapid_private_key:
        return False

    try:
        subscription = User.objects.filter(pk=user_id).values_list('webpush_subscription', flat=True).first()
        if not subscription:
            return False

        subscription_info = json.loads(subscription)
        message_data = {
            'title': title,
            'body': message,
            'related_id': related_id,
        }
        webpush(
            subscription_info=subscription_info,
            data=json.dumps(message_data),
            vapid_private_key=vapid_private_key,
            vapid_claims={
                "sub": f"mailto:{settings.WEBPUSH_SETTINGS['VAPID_ADMIN_EMAIL']}"
            }
        )
        return True
    except (WebPushException, ValueError) as e:
        logger.warning("Failed to push notification to user %s: %s", user_id, e)
    except Exception:
        logger.exception("Unexpected error pushing notification to user %s", user_id)
    return False


def broadcast(event_type, payload, mission_id):
    """
    Publish a domain event to the mission room and the coordinator feed after commit.
    """
    message = {
        'type': 'mission.event',
        'event': event_type,
        # channel layers only carry plain JSON types
        'payload': json.loads(json.dumps(payload, cls=DjangoJSONEncoder)),
    }
    groups = [mission_group(mission_id), get_setting('COORDINATOR_FEED_GROUP')]
    transaction.on_commit(lambda: publish(groups, message))


def publish(groups, message):
    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.debug("No channel layer configured, dropping %s event", message.get('event'))
        return False

    try:
        for group in groups:
            async_to_sync(channel_layer.group_send)(group, message)
        return True
    except Exception:
        logger.warning("Realtime broadcast of %s event failed", message.get('event'), exc_info=True)
        return False


def attendance_payload(attendance):
    return {
        'attendance_id': attendance.pk,
        'user_id': attendance.user_id,
        'mission_id': attendance.mission_id,
        'status': attendance.status,
        'check_in_time': attendance.check_in_time,
        'check_out_time': attendance.check_out_time,
        'total_hours': attendance.total_hours,
    }


# --- Notification inbox ---

def mark_notification_read(user, notification_id):
    updated = Notification.objects.filter(pk=notification_id, user=user).update(is_read=True)
    if not updated:
        raise NotFound('Notification not found.')
    return updated


def mark_all_read(user):
    return Notification.objects.filter(user=user, is_read=False).update(is_read=True)
