# missions/management/commands/recount_volunteers.py
"""
Recompute Mission.current_volunteers from live registrations and repair drift.
"""

from django.core.management.base import BaseCommand
from django.db import transaction

from missions.models import Mission
from missions.services import capacity


class Command(BaseCommand):
    help = "Recount seat-holding registrations per mission and fix current_volunteers where it drifted."

    def add_arguments(self, parser):
        parser.add_argument('--dry-run', action='store_true', help="Report drift without writing.")
        parser.add_argument('--mission', type=int, help="Only check this mission id.")

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        missions = Mission.objects.order_by('pk')
        if options['mission']:
            missions = missions.filter(pk=options['mission'])

        fixed = 0
        for mission_id in missions.values_list('pk', flat=True):
            with transaction.atomic():
                mission = capacity.lock_mission(mission_id)
                actual = capacity.occupancy_count(mission.pk)
                if mission.current_volunteers == actual:
                    continue

                self.stdout.write(
                    f'Mission {mission.pk} ("{mission.title}"): stored {mission.current_volunteers}, actual {actual}'
                )
                if mission.max_volunteers is not None and actual > mission.max_volunteers:
                    self.stderr.write(self.style.WARNING(
                        f'Mission {mission.pk} is over capacity ({actual}/{mission.max_volunteers}); '
                        f'cancel registrations by hand before recounting.'
                    ))
                    continue
                if not dry_run:
                    Mission.objects.filter(pk=mission.pk).update(current_volunteers=actual)
                fixed += 1

        verb = 'would fix' if dry_run else 'fixed'
        self.stdout.write(self.style.SUCCESS(f'Recount complete, {verb} {fixed} mission(s).'))
