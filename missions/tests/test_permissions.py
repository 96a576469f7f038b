from django.test import TestCase

from missions.exceptions import OutOfRange, Unauthorized
from missions.permissions import mission_capabilities, require_mission_team
from missions.tests.factories import make_admin, make_coordinator, make_mission, make_user


class MissionCapabilitiesTests(TestCase):
    def setUp(self):
        self.creator = make_coordinator()
        self.collaborator = make_coordinator()
        self.mission = make_mission(created_by=self.creator)
        self.mission.collaborators.add(self.collaborator)

    def test_roles(self):
        self.assertEqual(tuple(mission_capabilities(self.creator, self.mission)), (True, False, False))
        self.assertEqual(tuple(mission_capabilities(self.collaborator, self.mission)), (False, True, False))
        self.assertEqual(tuple(mission_capabilities(make_admin(), self.mission)), (False, False, True))
        self.assertFalse(mission_capabilities(make_user(), self.mission).is_team)
        self.assertFalse(mission_capabilities(None, self.mission).is_team)

    def test_superuser_is_admin(self):
        superuser = make_user(is_superuser=True)
        self.assertTrue(mission_capabilities(superuser, self.mission).is_team)

    def test_require_mission_team(self):
        self.assertTrue(require_mission_team(self.collaborator, self.mission).is_team)
        with self.assertRaises(Unauthorized) as ctx:
            require_mission_team(make_coordinator(), self.mission, 'verify attendance')
        self.assertEqual(ctx.exception.status_code, 403)
        self.assertEqual(ctx.exception.to_dict(), {
            'success': False,
            'code': 'unauthorized',
            'message': 'Unauthorized: only the mission team can verify attendance.',
        })

    def test_error_payload_carries_details(self):
        payload = OutOfRange(250, 100).to_dict()
        self.assertEqual(payload['code'], 'out_of_range')
        self.assertEqual((payload['distance_meters'], payload['radius_meters']), (250, 100))
