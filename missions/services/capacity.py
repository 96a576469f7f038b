# missions/services/capacity.py
"""
Capacity ledger: per-mission seat accounting.

Every function that reads or moves Mission.current_volunteers expects the caller
to hold the mission row lock taken by lock_mission() inside transaction.atomic().
"""

from django.db.models import F

from ..exceptions import MissionFull, MissionNotFound
from ..models import Mission, Registration


def lock_mission(mission_id):
    """Fetch the mission with a row lock held until the surrounding transaction ends."""
    try:
        return Mission.objects.select_for_update().get(pk=mission_id)
    except Mission.DoesNotExist:
        raise MissionNotFound()


def admission_status(mission):
    """Registered while a seat is free (or capacity is unlimited), otherwise Waitlisted."""
    if mission.has_free_slot:
        return Registration.Status.REGISTERED
    return Registration.Status.WAITLISTED


def occupy(mission):
    """Take one seat. Raises MissionFull when none is left."""
    if not mission.has_free_slot:
        raise MissionFull(f'Mission is full ({mission.current_volunteers}/{mission.max_volunteers}).')
    Mission.objects.filter(pk=mission.pk).update(current_volunteers=F('current_volunteers') + 1)
    mission.current_volunteers += 1


def release(mission):
    """Give back one seat. The non-negative check constraint rejects underflow."""
    Mission.objects.filter(pk=mission.pk).update(current_volunteers=F('current_volunteers') - 1)
    mission.current_volunteers -= 1


def occupancy_count(mission_id):
    """Live count of seat-holding registrations."""
    return Registration.objects.filter(
        mission_id=mission_id,
        status__in=Registration.OCCUPYING_STATUSES,
    ).count()
