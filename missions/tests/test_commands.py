import base64
from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from missions import services
from missions.models import Mission
from missions.tests.factories import make_coordinator, make_mission, make_user


def decode(value):
    return base64.urlsafe_b64decode(value + '=' * (-len(value) % 4))


class RecountVolunteersTests(TestCase):
    def setUp(self):
        self.mission = make_mission(created_by=make_coordinator(), max_volunteers=5)
        for _ in range(2):
            services.register(make_user(), self.mission.pk)
        self.healthy = make_mission(created_by=self.mission.created_by)
        services.register(make_user(), self.healthy.pk)
        Mission.objects.filter(pk=self.mission.pk).update(current_volunteers=0)

    def run_command(self, *args):
        out = StringIO()
        call_command('recount_volunteers', *args, stdout=out, stderr=StringIO())
        return out.getvalue()

    def test_repairs_drift(self):
        output = self.run_command()

        self.mission.refresh_from_db()
        self.assertEqual(self.mission.current_volunteers, 2)
        self.assertIn(f'Mission {self.mission.pk}', output)
        self.assertNotIn(f'Mission {self.healthy.pk} ', output)
        self.assertIn('fixed 1 mission(s)', output)

    def test_dry_run_changes_nothing(self):
        output = self.run_command('--dry-run')

        self.mission.refresh_from_db()
        self.assertEqual(self.mission.current_volunteers, 0)
        self.assertIn('would fix 1 mission(s)', output)

    def test_single_mission(self):
        output = self.run_command('--mission', str(self.healthy.pk))
        self.mission.refresh_from_db()
        self.assertEqual(self.mission.current_volunteers, 0)
        self.assertIn('fixed 0 mission(s)', output)


class GenerateVapidKeysTests(TestCase):
    def test_prints_a_key_pair(self):
        out = StringIO()
        call_command('generate_vapid_keys', stdout=out)
        lines = dict(line.split('=', 1) for line in out.getvalue().splitlines() if line.startswith('VAPID_'))

        public = decode(lines['VAPID_PUBLIC_KEY'])
        private = decode(lines['VAPID_PRIVATE_KEY'])
        self.assertEqual(len(public), 65)
        self.assertEqual(public[0], 0x04)
        self.assertEqual(len(private), 32)
