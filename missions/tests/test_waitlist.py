from datetime import datetime, timedelta, timezone

from django.test import SimpleTestCase

from missions.utils.waitlist import WaitlistCandidate, rank_candidates, select_for_promotion

T0 = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)


def candidate(registration_id, minutes=0, priority=False, verified=0, total=0):
    return WaitlistCandidate(
        registration_id=registration_id,
        user_id=registration_id * 10,
        created_at=T0 + timedelta(minutes=minutes),
        is_priority=priority,
        verified_attendances=verified,
        total_attendances=total,
    )


def ids(candidates):
    return [c.registration_id for c in candidates]


class ReliabilityTests(SimpleTestCase):
    def test_no_history_is_neutral(self):
        self.assertEqual(candidate(1).reliability, 0.5)

    def test_ratio(self):
        self.assertEqual(candidate(1, verified=3, total=4).reliability, 0.75)
        self.assertEqual(candidate(1, verified=0, total=2).reliability, 0.0)


class RankingTests(SimpleTestCase):
    def test_fifo_when_all_else_equal(self):
        ranked = rank_candidates([candidate(3, minutes=20), candidate(1, minutes=0), candidate(2, minutes=10)])
        self.assertEqual(ids(ranked), [1, 2, 3])

    def test_priority_beats_everything(self):
        ranked = rank_candidates([
            candidate(1, minutes=0, verified=5, total=5),
            candidate(2, minutes=30, priority=True, verified=0, total=5),
        ])
        self.assertEqual(ids(ranked), [2, 1])

    def test_reliability_beats_wait_time(self):
        ranked = rank_candidates([
            candidate(1, minutes=0, verified=1, total=4),
            candidate(2, minutes=30, verified=4, total=4),
        ])
        self.assertEqual(ids(ranked), [2, 1])

    def test_close_reliability_falls_back_to_wait_time(self):
        # 0.9 vs 0.905 is inside the tolerance
        ranked = rank_candidates([
            candidate(1, minutes=30, verified=181, total=200),
            candidate(2, minutes=0, verified=9, total=10),
        ])
        self.assertEqual(ids(ranked), [2, 1])

    def test_same_timestamp_uses_registration_id(self):
        ranked = rank_candidates([candidate(5), candidate(4)])
        self.assertEqual(ids(ranked), [4, 5])

    def test_wait_seconds_and_dict(self):
        c = candidate(1, minutes=0, priority=True)
        self.assertEqual(c.wait_seconds(T0 + timedelta(minutes=2)), 120)
        self.assertEqual(c.to_dict(T0 + timedelta(minutes=2)), {
            'registration_id': 1, 'user_id': 10, 'is_priority': True, 'reliability': 0.5, 'wait_seconds': 120,
        })


class SelectForPromotionTests(SimpleTestCase):
    def setUp(self):
        self.candidates = [candidate(1, minutes=0), candidate(2, minutes=5), candidate(3, minutes=10)]

    def test_takes_min_of_slots_and_waitlist(self):
        self.assertEqual(ids(select_for_promotion(self.candidates, 2)), [1, 2])
        self.assertEqual(ids(select_for_promotion(self.candidates, 10)), [1, 2, 3])

    def test_no_slots(self):
        self.assertEqual(select_for_promotion(self.candidates, 0), [])

    def test_unlimited(self):
        self.assertEqual(ids(select_for_promotion(self.candidates, None)), [1, 2, 3])

    def test_empty_waitlist(self):
        self.assertEqual(select_for_promotion([], 3), [])
