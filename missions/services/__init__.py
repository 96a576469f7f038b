# missions/services/__init__.py
# Public operations of the attendance & capacity engine.
from .registration import (
    register,
    cancel,
    promote,
    set_priority,
    waitlist,
    mission_registrations,
)
from .attendance import (
    issue_check_in_token,
    validate_location,
    check_in,
    check_out,
    review,
    manual_check_in,
    manual_complete,
    current_attendance,
    pending_verifications,
    recent_activity,
)
from .points import (
    settle,
    point_history,
    leaderboard,
)
from .events import (
    mark_notification_read,
    mark_all_read,
)
