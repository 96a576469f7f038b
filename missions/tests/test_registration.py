from django.test import TestCase

from missions import services
from missions.exceptions import (
    AlreadyRegistered, InvalidState, MissionFull, MissionNotFound, MissionNotOpen,
    NotRegistered, NotWaitlisted, RegistrationNotFound, Unauthorized,
)
from missions.models import Mission, Notification, Registration
from missions.services import capacity
from missions.tests.factories import make_attendance_history, make_coordinator, make_mission, make_user


class RegistrationTestCase(TestCase):
    def setUp(self):
        self.coordinator = make_coordinator()
        self.mission = make_mission(created_by=self.coordinator, max_volunteers=2)

    def assertCounterConsistent(self, mission):
        mission.refresh_from_db()
        self.assertEqual(mission.current_volunteers, capacity.occupancy_count(mission.pk))
        if mission.max_volunteers is not None:
            self.assertLessEqual(mission.current_volunteers, mission.max_volunteers)


class RegisterTests(RegistrationTestCase):
    def test_register_takes_a_seat(self):
        registration = services.register(make_user(), self.mission.pk)
        self.assertEqual(registration.status, Registration.Status.REGISTERED)
        self.mission.refresh_from_db()
        self.assertEqual(self.mission.current_volunteers, 1)

    def test_n_plus_k_registrations(self):
        mission = make_mission(created_by=self.coordinator, max_volunteers=3)
        statuses = [services.register(make_user(), mission.pk).status for _ in range(5)]

        self.assertEqual(statuses.count(Registration.Status.REGISTERED), 3)
        self.assertEqual(statuses.count(Registration.Status.WAITLISTED), 2)
        self.assertEqual(statuses[3:], [Registration.Status.WAITLISTED] * 2)
        self.assertCounterConsistent(mission)
        self.assertEqual(mission.current_volunteers, 3)

    def test_unlimited_mission_never_waitlists(self):
        mission = make_mission(created_by=self.coordinator, max_volunteers=None)
        for _ in range(5):
            self.assertEqual(services.register(make_user(), mission.pk).status, Registration.Status.REGISTERED)
        self.assertCounterConsistent(mission)

    def test_in_progress_mission_accepts_registrations(self):
        mission = make_mission(created_by=self.coordinator, status=Mission.Status.IN_PROGRESS)
        self.assertEqual(services.register(make_user(), mission.pk).status, Registration.Status.REGISTERED)

    def test_closed_missions_refuse(self):
        for status in (Mission.Status.PENDING, Mission.Status.COMPLETED, Mission.Status.CANCELLED):
            mission = make_mission(created_by=self.coordinator, status=status)
            with self.subTest(status=status):
                with self.assertRaises(MissionNotOpen):
                    services.register(make_user(), mission.pk)

    def test_unknown_mission(self):
        with self.assertRaises(MissionNotFound):
            services.register(make_user(), 999999)

    def test_already_registered(self):
        user = make_user()
        services.register(user, self.mission.pk)
        with self.assertRaises(AlreadyRegistered):
            services.register(user, self.mission.pk)

    def test_already_waitlisted(self):
        services.register(make_user(), self.mission.pk)
        services.register(make_user(), self.mission.pk)
        user = make_user()
        services.register(user, self.mission.pk)
        with self.assertRaises(AlreadyRegistered):
            services.register(user, self.mission.pk)


class CancelTests(RegistrationTestCase):
    def test_cancel_frees_the_seat(self):
        mission = make_mission(created_by=self.coordinator, max_volunteers=2, auto_promote=False)
        user = make_user()
        services.register(user, mission.pk)

        registration, promoted = services.cancel(user, mission.pk)

        self.assertEqual(registration.status, Registration.Status.CANCELLED)
        self.assertEqual(promoted, [])
        self.assertCounterConsistent(mission)
        self.assertEqual(mission.current_volunteers, 0)

    def test_cancel_promotes_from_waitlist(self):
        first, second, waiting = make_user(), make_user(), make_user()
        for user in (first, second, waiting):
            services.register(user, self.mission.pk)

        _, promoted = services.cancel(first, self.mission.pk)

        self.assertEqual([r.user_id for r in promoted], [waiting.pk])
        self.assertEqual(Registration.objects.get(user=waiting, mission=self.mission).status,
                         Registration.Status.REGISTERED)
        self.assertCounterConsistent(self.mission)
        self.assertEqual(self.mission.current_volunteers, 2)

        notification = Notification.objects.get(user=waiting)
        self.assertEqual(notification.type, 'waitlist_promoted')
        self.assertEqual(notification.related_id, self.mission.pk)

    def test_auto_promote_off_leaves_waitlist(self):
        mission = make_mission(created_by=self.coordinator, max_volunteers=1, auto_promote=False)
        first, waiting = make_user(), make_user()
        services.register(first, mission.pk)
        services.register(waiting, mission.pk)

        services.cancel(first, mission.pk)

        self.assertEqual(Registration.objects.get(user=waiting, mission=mission).status,
                         Registration.Status.WAITLISTED)
        self.assertCounterConsistent(mission)
        self.assertEqual(mission.current_volunteers, 0)

    def test_cancel_waitlisted_keeps_counter(self):
        services.register(make_user(), self.mission.pk)
        services.register(make_user(), self.mission.pk)
        waiting = make_user()
        services.register(waiting, self.mission.pk)

        _, promoted = services.cancel(waiting, self.mission.pk)

        self.assertEqual(promoted, [])
        self.assertCounterConsistent(self.mission)
        self.assertEqual(self.mission.current_volunteers, 2)

    def test_promotion_follows_ranking(self):
        mission = make_mission(created_by=self.coordinator, max_volunteers=1)
        holder, flaky, reliable = make_user(), make_user(), make_user()
        make_attendance_history(flaky, rejected=2)
        make_attendance_history(reliable, verified=2)

        services.register(holder, mission.pk)
        services.register(flaky, mission.pk)
        services.register(reliable, mission.pk)

        self.assertEqual([c.user_id for c in services.waitlist(mission.pk)], [reliable.pk, flaky.pk])

        _, promoted = services.cancel(holder, mission.pk)
        self.assertEqual([r.user_id for r in promoted], [reliable.pk])

    def test_reregister_reuses_the_row(self):
        user = make_user()
        original = services.register(user, self.mission.pk)
        services.cancel(user, self.mission.pk)

        again = services.register(user, self.mission.pk)

        self.assertEqual(again.pk, original.pk)
        self.assertEqual(again.status, Registration.Status.REGISTERED)
        self.assertEqual(again.created_at, original.created_at)
        self.assertEqual(Registration.objects.filter(user=user, mission=self.mission).count(), 1)
        self.assertCounterConsistent(self.mission)

    def test_cancel_without_registration(self):
        with self.assertRaises(NotRegistered):
            services.cancel(make_user(), self.mission.pk)

    def test_cancel_twice(self):
        user = make_user()
        services.register(user, self.mission.pk)
        services.cancel(user, self.mission.pk)
        with self.assertRaises(NotRegistered):
            services.cancel(user, self.mission.pk)

    def test_completed_registration_cannot_be_cancelled(self):
        user = make_user()
        services.register(user, self.mission.pk)
        services.settle(user.pk, self.mission.pk, 10, 'mission_completed')
        with self.assertRaises(InvalidState):
            services.cancel(user, self.mission.pk)
        self.assertCounterConsistent(self.mission)


class PromoteTests(RegistrationTestCase):
    def setUp(self):
        super().setUp()
        self.mission = make_mission(created_by=self.coordinator, max_volunteers=1, auto_promote=False)
        self.holder = make_user()
        self.waiting = make_user()
        services.register(self.holder, self.mission.pk)
        self.waitlisted = services.register(self.waiting, self.mission.pk)

    def test_promote_when_full(self):
        with self.assertRaises(MissionFull):
            services.promote(self.waitlisted.pk, actor=self.coordinator)

    def test_promote_into_free_seat(self):
        services.cancel(self.holder, self.mission.pk)
        collaborator = make_coordinator()
        self.mission.collaborators.add(collaborator)

        registration = services.promote(self.waitlisted.pk, actor=collaborator)

        self.assertEqual(registration.status, Registration.Status.REGISTERED)
        self.assertCounterConsistent(self.mission)
        self.assertEqual(self.mission.current_volunteers, 1)

    def test_promote_non_waitlisted(self):
        holder_registration = Registration.objects.get(user=self.holder, mission=self.mission)
        with self.assertRaises(NotWaitlisted):
            services.promote(holder_registration.pk, actor=self.coordinator)

    def test_promote_unknown(self):
        with self.assertRaises(RegistrationNotFound):
            services.promote(999999)

    def test_promote_by_outsider(self):
        services.cancel(self.holder, self.mission.pk)
        with self.assertRaises(Unauthorized):
            services.promote(self.waitlisted.pk, actor=make_coordinator())
        self.waitlisted.refresh_from_db()
        self.assertEqual(self.waitlisted.status, Registration.Status.WAITLISTED)


class PriorityTests(RegistrationTestCase):
    def test_priority_jumps_the_queue(self):
        mission = make_mission(created_by=self.coordinator, max_volunteers=1)
        holder, early, late = make_user(), make_user(), make_user()
        services.register(holder, mission.pk)
        services.register(early, mission.pk)
        late_registration = services.register(late, mission.pk)

        services.set_priority(late_registration.pk, True, actor=self.coordinator)
        _, promoted = services.cancel(holder, mission.pk)

        self.assertEqual([r.user_id for r in promoted], [late.pk])

    def test_priority_only_on_waitlist(self):
        registration = services.register(make_user(), self.mission.pk)
        with self.assertRaises(InvalidState):
            services.set_priority(registration.pk, True)

    def test_priority_by_outsider(self):
        mission = make_mission(created_by=self.coordinator, max_volunteers=0)
        registration = services.register(make_user(), mission.pk)
        with self.assertRaises(Unauthorized):
            services.set_priority(registration.pk, True, actor=make_user())

    def test_reregistering_drops_priority(self):
        mission = make_mission(created_by=self.coordinator, max_volunteers=0)
        user = make_user()
        registration = services.register(user, mission.pk)
        services.set_priority(registration.pk, True)
        services.cancel(user, mission.pk)

        self.assertFalse(services.register(user, mission.pk).is_priority)

    def test_mission_registrations_lists_seat_holders(self):
        holder = make_user()
        services.register(holder, self.mission.pk)
        services.register(make_user(), self.mission.pk)
        services.register(make_user(), self.mission.pk)

        self.assertEqual(services.mission_registrations(self.mission.pk).count(), 2)
        self.assertEqual(services.mission_registrations(self.mission.pk).first().user, holder)
