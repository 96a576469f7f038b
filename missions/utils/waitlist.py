# missions/utils/waitlist.py
"""
Waitlist ranking. Pure functions over a snapshot of candidates; no database access.
"""

from datetime import datetime
from functools import cmp_to_key
from typing import List, Optional

DEFAULT_RELIABILITY = 0.5
RELIABILITY_TOLERANCE = 0.01


class WaitlistCandidate:
    """A waitlisted registration plus the attendance history used to rank it"""
    def __init__(self, registration_id: int, user_id: int, created_at: datetime,
                 is_priority: bool = False, verified_attendances: int = 0,
                 total_attendances: int = 0):
        self.registration_id = registration_id
        self.user_id = user_id
        self.created_at = created_at
        self.is_priority = is_priority
        self.verified_attendances = verified_attendances
        self.total_attendances = total_attendances

    @property
    def reliability(self) -> float:
        """Share of the user's attendances that were verified; 0.5 with no history"""
        if self.total_attendances == 0:
            return DEFAULT_RELIABILITY
        return self.verified_attendances / self.total_attendances

    def wait_seconds(self, now: datetime) -> float:
        return (now - self.created_at).total_seconds()

    def to_dict(self, now: Optional[datetime] = None) -> dict:
        data = {
            'registration_id': self.registration_id,
            'user_id': self.user_id,
            'is_priority': self.is_priority,
            'reliability': round(self.reliability, 3),
        }
        if now is not None:
            data['wait_seconds'] = int(self.wait_seconds(now))
        return data

    def __repr__(self):
        return f"WaitlistCandidate(registration_id={self.registration_id}, user_id={self.user_id})"


def compare_candidates(a: WaitlistCandidate, b: WaitlistCandidate) -> int:
    """Negative when a should be promoted before b."""
    if a.is_priority != b.is_priority:
        return -1 if a.is_priority else 1

    diff = a.reliability - b.reliability
    if abs(diff) > RELIABILITY_TOLERANCE:
        return -1 if diff > 0 else 1

    # Registered earlier = waited longer
    if a.created_at != b.created_at:
        return -1 if a.created_at < b.created_at else 1
    return (a.registration_id > b.registration_id) - (a.registration_id < b.registration_id)


def rank_candidates(candidates: List[WaitlistCandidate]) -> List[WaitlistCandidate]:
    """Full promotion order for a waitlist."""
    return sorted(candidates, key=cmp_to_key(compare_candidates))


def select_for_promotion(candidates: List[WaitlistCandidate], free_slots: Optional[int]) -> List[WaitlistCandidate]:
    """
    Pick the candidates to promote into free_slots seats.

    Args:
        candidates: Waitlisted registrations for one mission
        free_slots: Open seats, or None when the mission is unlimited

    Returns:
        The top min(free_slots, len(candidates)) candidates, in promotion order
    """
    ranked = rank_candidates(candidates)
    if free_slots is None:
        return ranked
    return ranked[:max(0, free_slots)]
