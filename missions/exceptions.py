# missions/exceptions.py
"""
Errors raised by the attendance & capacity engine.

Every error carries a stable ``code`` and the HTTP status an API layer should
answer with. ``to_dict()`` renders the JSON error payload used by the views.
"""


class MissionEngineError(Exception):
    code = 'error'
    status_code = 400
    default_message = 'The request could not be completed.'

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        return {'success': False, 'code': self.code, 'message': self.message, **self.details}


# --- NotFound ---
class NotFound(MissionEngineError):
    code = 'not_found'
    status_code = 404
    default_message = 'Not found.'


class MissionNotFound(NotFound):
    code = 'mission_not_found'
    default_message = 'Mission not found.'


class RegistrationNotFound(NotFound):
    code = 'registration_not_found'
    default_message = 'Registration not found.'


class AttendanceNotFound(NotFound):
    code = 'attendance_not_found'
    default_message = 'Attendance record not found.'


class UserNotFound(NotFound):
    code = 'user_not_found'
    default_message = 'User not found.'


# --- InvalidState ---
class InvalidState(MissionEngineError):
    code = 'invalid_state'
    default_message = 'This action is not allowed in the current state.'


class MissionNotOpen(InvalidState):
    code = 'mission_not_open'
    default_message = 'Mission is not open for registration.'


class AlreadyRegistered(InvalidState):
    code = 'already_registered'
    default_message = 'Already registered for this mission.'


class NotRegistered(InvalidState):
    code = 'not_registered'
    default_message = 'Not registered for this mission.'


class NotWaitlisted(InvalidState):
    code = 'not_waitlisted'
    default_message = 'Registration is not on the waitlist.'


class AttendanceAlreadyReviewed(InvalidState):
    code = 'attendance_already_reviewed'
    default_message = 'Attendance has already been reviewed.'


class InvalidDecision(InvalidState):
    code = 'invalid_decision'
    default_message = 'Decision must be Verified or Rejected.'


# --- CapacityExceeded ---
class CapacityExceeded(MissionEngineError):
    code = 'capacity_exceeded'
    status_code = 409
    default_message = 'Mission is full.'


class MissionFull(CapacityExceeded):
    code = 'mission_full'


# --- Unauthorized ---
class Unauthorized(MissionEngineError):
    code = 'unauthorized'
    status_code = 403
    default_message = 'Unauthorized: only the mission team can perform this action.'


# --- ValidationFailure ---
class ValidationFailure(MissionEngineError):
    code = 'validation_failed'
    default_message = 'Validation failed.'


class InvalidCoordinates(ValidationFailure):
    code = 'invalid_coordinates'
    default_message = 'Invalid GPS coordinates.'


class TokenExpired(ValidationFailure):
    code = 'token_expired'
    default_message = 'QR code has expired.'


class TokenMalformed(ValidationFailure):
    code = 'token_malformed'
    default_message = 'Invalid QR code.'


class WrongPurpose(ValidationFailure):
    code = 'wrong_purpose'
    default_message = 'Invalid QR code type.'


class WrongMission(ValidationFailure):
    code = 'wrong_mission'
    default_message = 'QR code is for a different mission.'


class OutOfRange(ValidationFailure):
    code = 'out_of_range'

    def __init__(self, distance_meters, radius_meters):
        super().__init__(
            f'You are too far from the mission location ({distance_meters}m away, '
            f'allowed {radius_meters}m).',
            distance_meters=distance_meters,
            radius_meters=radius_meters,
        )
        self.distance_meters = distance_meters
        self.radius_meters = radius_meters


class TooEarly(ValidationFailure):
    code = 'too_early'

    def __init__(self, earliest_allowed):
        super().__init__(
            f'Check-in opens at {earliest_allowed.isoformat()}.',
            earliest_allowed=earliest_allowed.isoformat(),
        )
        self.earliest_allowed = earliest_allowed


class MissionEnded(ValidationFailure):
    code = 'mission_ended'
    default_message = 'This mission has already ended.'


class AlreadyCheckedInElsewhere(ValidationFailure):
    code = 'already_checked_in_elsewhere'
    default_message = 'You are already checked in to another mission.'


class NoActiveCheckIn(ValidationFailure):
    code = 'no_active_check_in'
    default_message = 'No active check-in found for this mission.'


class AlreadyCheckedOut(ValidationFailure):
    code = 'already_checked_out'
    default_message = 'Already checked out.'


class ReasonRequired(ValidationFailure):
    code = 'reason_required'
    default_message = 'Manual override requires a reason.'
