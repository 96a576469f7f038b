# missions/services/registration.py
"""
Registration lifecycle: register, cancel, waitlist promotion and priority.

Lock order is always mission row first, then registration rows.
"""

import logging

from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from ..exceptions import (
    AlreadyRegistered, InvalidState, MissionFull, MissionNotOpen, NotRegistered,
    NotWaitlisted, RegistrationNotFound,
)
from ..models import Attendance, Mission, Registration
from ..permissions import require_mission_team
from ..utils.waitlist import WaitlistCandidate, rank_candidates, select_for_promotion
from . import attendance, capacity, events

logger = logging.getLogger(__name__)


def register(user, mission_id):
    """
    Register the user for a mission, or put them on the waitlist when it is full.
    A cancelled registration is reactivated rather than recreated.
    """
    with transaction.atomic():
        mission = capacity.lock_mission(mission_id)

        if mission.status not in Mission.REGISTRABLE_STATUSES:
            raise MissionNotOpen(f'Mission is not open for registration (Status: {mission.status})')

        registration = Registration.objects.select_for_update().filter(user=user, mission=mission).first()
        if registration is not None and registration.is_active:
            raise AlreadyRegistered()

        status = capacity.admission_status(mission)
        if status == Registration.Status.REGISTERED:
            capacity.occupy(mission)

        if registration is not None:
            registration.status = status
            registration.is_priority = False
            registration.save(update_fields=['status', 'is_priority', 'updated_at'])
        else:
            registration = Registration.objects.create(user=user, mission=mission, status=status)

    logger.info("User %s %s for mission %s (%s/%s)", user.pk, status.lower(), mission.pk,
                mission.current_volunteers, mission.max_volunteers or 'unlimited')
    return registration


def cancel(user, mission_id):
    """
    Cancel the user's registration. A checked-in user is checked out first. A
    freed seat is offered to the waitlist when the mission has auto_promote on.

    Returns (registration, promoted_registrations).
    """
    with transaction.atomic():
        mission = capacity.lock_mission(mission_id)

        registration = Registration.objects.select_for_update().filter(user=user, mission=mission).first()
        if registration is None or not registration.is_active:
            raise NotRegistered()
        if registration.status == Registration.Status.COMPLETED:
            raise InvalidState('A completed registration cannot be cancelled.')

        held_seat = registration.status in (Registration.Status.REGISTERED, Registration.Status.CHECKED_IN)
        was_checked_in = registration.status == Registration.Status.CHECKED_IN

        registration.status = Registration.Status.CANCELLED
        registration.save(update_fields=['status', 'updated_at'])

        if was_checked_in:
            attendance.close_open_attendance(user.pk, mission.pk)

        promoted = []
        if held_seat:
            capacity.release(mission)
            if mission.auto_promote:
                promoted = promote_waitlist(mission)

    logger.info("User %s cancelled registration for mission %s, promoted %d from waitlist",
                user.pk, mission.pk, len(promoted))
    return registration, promoted


def promote(registration_id, actor=None):
    """
    Coordinator promotion of one waitlisted registration into a free seat.
    When actor is given, they must be on the mission team.
    """
    mission_id = Registration.objects.filter(pk=registration_id).values_list('mission_id', flat=True).first()
    if mission_id is None:
        raise RegistrationNotFound()

    with transaction.atomic():
        mission = capacity.lock_mission(mission_id)
        if actor is not None:
            require_mission_team(actor, mission, 'manage the waitlist')

        registration = Registration.objects.select_for_update().get(pk=registration_id)
        if registration.status != Registration.Status.WAITLISTED:
            raise NotWaitlisted(f'Registration is {registration.status}, not Waitlisted.')
        if not mission.has_free_slot:
            raise MissionFull()

        _promote_registration(mission, registration)

    return registration


def set_priority(registration_id, is_priority, actor=None):
    """Flag a waitlisted registration to be promoted ahead of the queue."""
    with transaction.atomic():
        registration = Registration.objects.select_for_update().select_related('mission').filter(
            pk=registration_id
        ).first()
        if registration is None:
            raise RegistrationNotFound()
        if actor is not None:
            require_mission_team(actor, registration.mission, 'manage the waitlist')
        if registration.status != Registration.Status.WAITLISTED:
            raise InvalidState('Priority can only be set on a waitlisted registration.')

        registration.is_priority = bool(is_priority)
        registration.save(update_fields=['is_priority', 'updated_at'])

    logger.info("Registration %s priority set to %s", registration.pk, registration.is_priority)
    return registration


def promote_waitlist(mission):
    """
    Fill the mission's free seats from its waitlist, best-ranked first.
    Caller holds the mission lock.
    """
    if mission.free_slots == 0:
        return []

    waitlisted = {
        r.pk: r for r in Registration.objects.select_for_update().filter(
            mission=mission, status=Registration.Status.WAITLISTED
        )
    }
    if not waitlisted:
        return []

    chosen = select_for_promotion(_build_candidates(waitlisted.values()), mission.free_slots)

    promoted = []
    for candidate in chosen:
        registration = waitlisted[candidate.registration_id]
        _promote_registration(mission, registration)
        promoted.append(registration)
    return promoted


def waitlist(mission_id):
    """Ranked preview of the mission's waitlist, in promotion order."""
    registrations = Registration.objects.filter(mission_id=mission_id, status=Registration.Status.WAITLISTED)
    return rank_candidates(_build_candidates(registrations))


def mission_registrations(mission_id):
    """Seat-holding registrations for a mission."""
    return Registration.objects.filter(
        mission_id=mission_id,
        status__in=Registration.OCCUPYING_STATUSES,
    ).select_related('user').order_by('created_at', 'pk')


def _build_candidates(registrations):
    registrations = list(registrations)
    user_ids = [r.user_id for r in registrations]

    history = {
        row['user_id']: row for row in Attendance.objects.filter(user_id__in=user_ids).values('user_id').annotate(
            total=Count('id'),
            verified=Count('id', filter=Q(status=Attendance.Status.VERIFIED)),
        )
    }

    candidates = []
    for registration in registrations:
        stats = history.get(registration.user_id, {'total': 0, 'verified': 0})
        candidates.append(WaitlistCandidate(
            registration_id=registration.pk,
            user_id=registration.user_id,
            created_at=registration.created_at,
            is_priority=registration.is_priority,
            verified_attendances=stats['verified'],
            total_attendances=stats['total'],
        ))
    return candidates


def _promote_registration(mission, registration):
    capacity.occupy(mission)
    registration.status = Registration.Status.REGISTERED
    registration.save(update_fields=['status', 'updated_at'])

    events.notify(
        registration.user_id,
        "You're in!",
        f'A spot opened up and you have been moved from the waitlist into "{mission.title}".',
        events.NOTIFY_PROMOTED,
        related_id=mission.pk,
    )
    events.broadcast(events.PROMOTION, {
        'registration_id': registration.pk,
        'user_id': registration.user_id,
        'mission_id': mission.pk,
        'current_volunteers': mission.current_volunteers,
        'promoted_at': timezone.now(),
    }, mission.pk)

    logger.info("Promoted registration %s (user %s) on mission %s", registration.pk, registration.user_id, mission.pk)
