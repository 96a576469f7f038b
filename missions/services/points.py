# missions/services/points.py
"""
Points ledger: settlement of verified mission participation.
"""

import logging

from django.db import transaction
from django.db.models import F, Sum

from ..exceptions import NotRegistered
from ..models import PointTransaction, Registration, User
from . import events

logger = logging.getLogger(__name__)


def settle(user_id, mission_id, points, reason_code, description=''):
    """
    Award points for a completed mission as one atomic unit:
    total_points increment, Registration -> Completed, ledger entry, notification.

    Returns the new PointTransaction, or None when the registration was already
    Completed (settlement is idempotent per user and mission).
    """
    with transaction.atomic():
        registration = Registration.objects.select_for_update().select_related('mission').filter(
            user_id=user_id, mission_id=mission_id
        ).first()

        if registration is None or not registration.is_occupying:
            raise NotRegistered('No active registration to settle for this mission.')

        if registration.status == Registration.Status.COMPLETED:
            logger.info("Settlement skipped: user %s already completed mission %s", user_id, mission_id)
            return None

        mission = registration.mission

        User.objects.filter(pk=user_id).update(total_points=F('total_points') + points)

        registration.status = Registration.Status.COMPLETED
        registration.save(update_fields=['status', 'updated_at'])

        entry = PointTransaction.objects.create(
            user_id=user_id,
            mission_id=mission_id,
            amount=points,
            reason=reason_code,
            description=description or f'Points awarded for completing mission: {mission.title}',
        )

        events.notify(
            user_id,
            'Points Awarded!',
            f'You earned {points} points for your participation in "{mission.title}".',
            events.NOTIFY_POINTS_AWARDED,
            related_id=mission_id,
        )

    logger.info("Settled %s points to user %s for mission %s (%s)", points, user_id, mission_id, reason_code)
    return entry


def ledger_balance(user_id):
    """Sum of the user's ledger entries; equals User.total_points when consistent."""
    return PointTransaction.objects.filter(user_id=user_id).aggregate(total=Sum('amount'))['total'] or 0


def point_history(user):
    return PointTransaction.objects.filter(user=user).select_related('mission').order_by('-created_at', '-pk')


def leaderboard(limit=10):
    """Top volunteers by points."""
    return User.objects.filter(
        role=User.Role.VOLUNTEER, is_active=True
    ).order_by('-total_points', 'username')[:limit]
