# missions/services/attendance.py
"""
Attendance state machine: QR + geofence check-in, check-out, coordinator review
and manual overrides.

States: (none) -> Pending -> Verified | Rejected
Lock order is mission row, then registration, then attendance.
"""

import logging
from datetime import timedelta

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from ..conf import get_setting
from ..exceptions import (
    AlreadyCheckedInElsewhere, AlreadyCheckedOut, AttendanceAlreadyReviewed, AttendanceNotFound,
    InvalidDecision, MissionEnded, MissionNotFound, NoActiveCheckIn, NotRegistered, OutOfRange,
    ReasonRequired, TooEarly, UserNotFound, WrongMission,
)
from ..models import Attendance, ManualOverrideLog, Mission, PointTransaction, Registration, User
from ..permissions import require_mission_team
from ..utils.geofence import parse_coordinates, validate_geofence
from ..utils.qr_tokens import get_token_service
from . import capacity, events, points

logger = logging.getLogger(__name__)

MANUAL_GPS_PROOF = 'manual_override'
CHECKED_IN_STATUSES = (Registration.Status.REGISTERED, Registration.Status.CHECKED_IN)


def _get_mission(mission_id):
    try:
        return Mission.objects.get(pk=mission_id)
    except Mission.DoesNotExist:
        raise MissionNotFound()


def issue_check_in_token(mission_id, issuer):
    """QR token for the mission's check-in screen. Mission team only."""
    mission = _get_mission(mission_id)
    require_mission_team(issuer, mission, 'generate QR codes')

    token = get_token_service().issue(mission.pk, issuer.pk)
    logger.info("User %s issued a check-in token for mission %s", issuer.pk, mission.pk)
    return token


def validate_location(mission_id, user_gps):
    """Geofence pre-check against the mission location, without checking in."""
    mission = _get_mission(mission_id)
    return validate_geofence(user_gps, mission.location_gps, get_setting('GEOFENCE_RADIUS_METERS'))


def check_in(user, mission_id, token, user_gps):
    """
    Check the user in at a mission.

    Validation order: QR token, token/mission match, mission exists, geofence,
    time window, double booking. Token and geofence checks run before any
    transaction is opened.
    """
    payload = get_token_service().verify(token)
    if str(payload['missionId']) != str(mission_id):
        raise WrongMission()

    mission = _get_mission(mission_id)

    radius = get_setting('GEOFENCE_RADIUS_METERS')
    geofence = validate_geofence(user_gps, mission.location_gps, radius)
    if not geofence.in_range:
        logger.info("User %s check-in refused for mission %s: %sm away", user.pk, mission.pk, geofence.distance_meters)
        raise OutOfRange(geofence.distance_meters, radius)

    now = timezone.now()
    earliest = mission.start_time - timedelta(minutes=get_setting('CHECK_IN_EARLY_MINUTES'))
    if now < earliest:
        raise TooEarly(earliest)
    if now > mission.end_time:
        raise MissionEnded()

    lat, lng = parse_coordinates(user_gps)

    with transaction.atomic():
        registration = Registration.objects.select_for_update().filter(user=user, mission=mission).first()

        _ensure_not_checked_in_elsewhere(user.pk, mission.pk)

        if registration is None or registration.status not in CHECKED_IN_STATUSES:
            raise NotRegistered('You need a confirmed registration to check in to this mission.')

        attendance = _open_attendance(user.pk, mission.pk, now, gps_proof=f'{lat},{lng}')

        registration.status = Registration.Status.CHECKED_IN
        registration.save(update_fields=['status', 'updated_at'])

        events.broadcast(events.CHECK_IN, events.attendance_payload(attendance), mission.pk)

    logger.info("User %s checked in to mission %s (%sm from site)", user.pk, mission.pk, geofence.distance_meters)
    return attendance


def check_out(user, mission_id):
    """Close the user's attendance window and record the hours."""
    with transaction.atomic():
        attendance = Attendance.objects.select_for_update().filter(user=user, mission_id=mission_id).first()

        if attendance is None or attendance.check_in_time is None:
            raise NoActiveCheckIn()
        if attendance.check_out_time is not None:
            raise AlreadyCheckedOut()

        _stamp_check_out(attendance, timezone.now())
        events.broadcast(events.CHECK_OUT, events.attendance_payload(attendance), attendance.mission_id)

    logger.info("User %s checked out of mission %s after %s hours", user.pk, mission_id, attendance.total_hours)
    return attendance


def close_open_attendance(user_id, mission_id):
    """
    Check the user out of a mission they are leaving. No-op when they are not
    checked in there. Caller holds the registration lock.
    """
    attendance = Attendance.objects.select_for_update().filter(
        user_id=user_id, mission_id=mission_id, check_in_time__isnull=False, check_out_time__isnull=True
    ).first()
    if attendance is None:
        return None

    _stamp_check_out(attendance, timezone.now())
    events.broadcast(events.CHECK_OUT, events.attendance_payload(attendance), mission_id)

    logger.info("Closed open attendance %s of user %s on mission %s", attendance.pk, user_id, mission_id)
    return attendance


def review(attendance_id, decision, reviewer):
    """
    Mission team marks an attendance Verified or Rejected. Verification settles
    the mission's points in the same transaction.
    """
    if decision not in (Attendance.Status.VERIFIED, Attendance.Status.REJECTED):
        raise InvalidDecision()

    attendance = Attendance.objects.select_related('mission').filter(pk=attendance_id).first()
    if attendance is None:
        raise AttendanceNotFound()

    mission = attendance.mission
    require_mission_team(reviewer, mission, 'verify attendance')

    with transaction.atomic():
        Registration.objects.select_for_update().filter(
            user_id=attendance.user_id, mission_id=mission.pk
        ).first()
        attendance = Attendance.objects.select_for_update().get(pk=attendance.pk)

        if attendance.status != Attendance.Status.PENDING and attendance.status != decision:
            raise AttendanceAlreadyReviewed(f'Attendance was already {attendance.status.lower()}.')

        attendance.status = decision
        attendance.verified_by = reviewer
        attendance.verified_at = timezone.now()
        attendance.save(update_fields=['status', 'verified_by', 'verified_at', 'updated_at'])

        if decision == Attendance.Status.VERIFIED:
            points.settle(
                attendance.user_id,
                mission.pk,
                mission.points_value,
                PointTransaction.REASON_MISSION_COMPLETED,
                description=f'Points awarded for completing mission: {mission.title}',
            )

        events.broadcast(events.ATTENDANCE_REVIEWED, events.attendance_payload(attendance), mission.pk)

    logger.info("Attendance %s %s by user %s", attendance.pk, decision.lower(), reviewer.pk)
    return attendance


def manual_check_in(coordinator, mission_id, user_id, reason):
    """
    Coordinator override: check a volunteer in without QR, geofence or time window.
    Every call is written to the override log.
    """
    reason = _require_reason(reason)

    with transaction.atomic():
        mission = capacity.lock_mission(mission_id)
        require_mission_team(coordinator, mission, 'check volunteers in')
        user = _get_user(user_id)

        registration = _ensure_seat(mission, user)
        _ensure_not_checked_in_elsewhere(user.pk, mission.pk)

        attendance = _open_attendance(user.pk, mission.pk, timezone.now(),
                                      gps_proof=MANUAL_GPS_PROOF, override_reason=reason)

        registration.status = Registration.Status.CHECKED_IN
        registration.save(update_fields=['status', 'updated_at'])

        ManualOverrideLog.objects.create(
            coordinator=coordinator,
            mission=mission,
            user=user,
            action_type=ManualOverrideLog.ActionType.CHECK_IN,
            reason=reason,
        )

        events.broadcast(events.CHECK_IN, dict(events.attendance_payload(attendance), manual=True), mission.pk)

    logger.info("Coordinator %s manually checked in user %s on mission %s", coordinator.pk, user.pk, mission.pk)
    return attendance


def manual_complete(coordinator, mission_id, user_id, reason):
    """
    Coordinator override: mark a volunteer's participation verified and settle points.
    Settlement is skipped when already done; the override is logged regardless.

    Returns (attendance, point_transaction_or_None).
    """
    reason = _require_reason(reason)

    with transaction.atomic():
        mission = capacity.lock_mission(mission_id)
        require_mission_team(coordinator, mission, 'complete volunteers')
        user = _get_user(user_id)

        _ensure_seat(mission, user)

        now = timezone.now()
        attendance = Attendance.objects.select_for_update().filter(user=user, mission=mission).first()
        if attendance is None:
            attendance = Attendance(user=user, mission=mission, check_in_time=now, gps_proof=MANUAL_GPS_PROOF)
        if attendance.check_out_time is None:
            attendance.check_out_time = now
            attendance.total_hours = _hours_between(attendance.check_in_time or now, now)

        attendance.status = Attendance.Status.VERIFIED
        attendance.verified_by = coordinator
        attendance.verified_at = now
        attendance.override_reason = reason
        attendance.save()

        entry = points.settle(
            user.pk,
            mission.pk,
            mission.points_value,
            PointTransaction.REASON_MISSION_COMPLETED_MANUAL,
            description=f'Points awarded manually for mission: {mission.title}',
        )

        ManualOverrideLog.objects.create(
            coordinator=coordinator,
            mission=mission,
            user=user,
            action_type=ManualOverrideLog.ActionType.COMPLETE,
            reason=reason,
        )

    logger.info("Coordinator %s manually completed user %s on mission %s (settled=%s)",
                coordinator.pk, user.pk, mission.pk, entry is not None)
    return attendance, entry


# --- Read side ---

def current_attendance(user):
    """The user's open check-in, if any."""
    return Attendance.objects.filter(user=user, check_out_time__isnull=True).select_related('mission').first()


def pending_verifications(actor):
    """
    Checked-out attendances awaiting review on missions the actor can review.
    Admins see every mission.
    """
    pending = Attendance.objects.filter(
        status=Attendance.Status.PENDING,
        check_out_time__isnull=False,
    ).select_related('user', 'mission')

    if not actor.is_admin:
        pending = pending.filter(Q(mission__created_by=actor) | Q(mission__collaborators=actor)).distinct()
    return pending.order_by('check_out_time')


def recent_activity(limit=10):
    return Attendance.objects.select_related('user', 'mission').order_by('-created_at')[:limit]


# --- Helpers ---

def _require_reason(reason):
    reason = (reason or '').strip()
    if not reason:
        raise ReasonRequired()
    return reason


def _get_user(user_id):
    try:
        return User.objects.get(pk=user_id)
    except User.DoesNotExist:
        raise UserNotFound()


def _hours_between(start, end):
    return round((end - start).total_seconds() / 3600, 2)


def _stamp_check_out(attendance, now):
    attendance.check_out_time = now
    attendance.total_hours = _hours_between(attendance.check_in_time, now)
    attendance.save(update_fields=['check_out_time', 'total_hours', 'updated_at'])


def _ensure_not_checked_in_elsewhere(user_id, mission_id):
    open_elsewhere = Attendance.objects.filter(
        user_id=user_id, check_out_time__isnull=True
    ).exclude(mission_id=mission_id).exists()
    if open_elsewhere:
        raise AlreadyCheckedInElsewhere()


def _ensure_seat(mission, user):
    """
    Registration holding a seat for a manual action. Missing, cancelled and
    waitlisted registrations take a free seat (MissionFull when there is none).
    Caller holds the mission lock.
    """
    registration = Registration.objects.select_for_update().filter(user=user, mission=mission).first()
    if registration is not None and registration.is_occupying:
        return registration

    capacity.occupy(mission)
    if registration is None:
        return Registration.objects.create(user=user, mission=mission, status=Registration.Status.REGISTERED)

    registration.status = Registration.Status.REGISTERED
    registration.save(update_fields=['status', 'updated_at'])
    return registration


def _open_attendance(user_id, mission_id, now, gps_proof, override_reason=None):
    """Create or reactivate the user's attendance for the mission as Pending."""
    attendance = Attendance.objects.select_for_update().filter(user_id=user_id, mission_id=mission_id).first()
    if attendance is not None and attendance.status != Attendance.Status.PENDING:
        raise AttendanceAlreadyReviewed(f'Attendance was already {attendance.status.lower()}.')
    if attendance is None:
        attendance = Attendance(user_id=user_id, mission_id=mission_id)

    attendance.check_in_time = now
    attendance.check_out_time = None
    attendance.total_hours = None
    attendance.gps_proof = gps_proof
    attendance.status = Attendance.Status.PENDING
    attendance.verified_by = None
    attendance.verified_at = None
    attendance.override_reason = override_reason

    try:
        # Savepoint: the partial unique index catches a concurrent check-in elsewhere
        with transaction.atomic():
            attendance.save()
    except IntegrityError:
        raise AlreadyCheckedInElsewhere()
    return attendance
