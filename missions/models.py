from django.db import models
from django.db.models import Q
from django.contrib.auth.models import AbstractUser
from django.conf import settings
from django.core.validators import RegexValidator

# --- VALIDATORS ---
gps_validator = RegexValidator(
    regex=r'^\s*-?\d+(\.\d+)?\s*,\s*-?\d+(\.\d+)?\s*$',
    message='GPS location must be formatted as "lat,lng".',
    code='invalid_gps'
)


# --- CORE USER MODEL ---
class User(AbstractUser):
    class Role(models.TextChoices):
        ADMIN = 'ADMIN', 'Admin'
        COORDINATOR = 'COORDINATOR', 'Coordinator'
        VOLUNTEER = 'VOLUNTEER', 'Volunteer'
    role = models.CharField(max_length=12, choices=Role.choices, default=Role.VOLUNTEER)
    total_points = models.IntegerField(default=0, help_text="Sum of this user's point transactions")
    webpush_subscription = models.TextField(blank=True, null=True, help_text="Web push subscription data (JSON)")

    @property
    def is_admin(self):
        return self.is_superuser or self.role == self.Role.ADMIN

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"  # type: ignore


# --- MISSIONS ---
class Mission(models.Model):
    class Status(models.TextChoices):
        PENDING = 'Pending', 'Pending'
        OPEN = 'Open', 'Open'
        IN_PROGRESS = 'InProgress', 'In Progress'
        COMPLETED = 'Completed', 'Completed'
        CANCELLED = 'Cancelled', 'Cancelled'

    REGISTRABLE_STATUSES = (Status.OPEN, Status.IN_PROGRESS)

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='')
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='created_missions')
    collaborators = models.ManyToManyField(settings.AUTH_USER_MODEL, blank=True, related_name='collaborating_missions')
    status = models.CharField(max_length=12, choices=Status.choices, default=Status.PENDING, db_index=True)
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    location_gps = models.CharField(max_length=64, default='0,0', validators=[gps_validator], help_text='"lat,lng"')
    location_name = models.CharField(max_length=255, blank=True, default='')
    max_volunteers = models.PositiveIntegerField(null=True, blank=True, help_text="Leave empty for unlimited")
    current_volunteers = models.PositiveIntegerField(default=0, help_text="Registered + checked in + completed")
    points_value = models.PositiveIntegerField(default=0)
    auto_promote = models.BooleanField(default=True, help_text="Promote from the waitlist when a slot frees up")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=Q(current_volunteers__gte=0),
                name='mission_current_volunteers_non_negative',
            ),
            models.CheckConstraint(
                condition=Q(max_volunteers__isnull=True) | Q(current_volunteers__lte=models.F('max_volunteers')),
                name='mission_current_volunteers_within_capacity',
            ),
        ]

    @property
    def free_slots(self):
        """Number of open seats, or None when the mission is unlimited."""
        if self.max_volunteers is None:
            return None
        return max(0, self.max_volunteers - self.current_volunteers)

    @property
    def has_free_slot(self):
        return self.max_volunteers is None or self.current_volunteers < self.max_volunteers

    def __str__(self):
        return f"{self.title} ({self.status})"


class Registration(models.Model):
    class Status(models.TextChoices):
        REGISTERED = 'Registered', 'Registered'
        WAITLISTED = 'Waitlisted', 'Waitlisted'
        CHECKED_IN = 'CheckedIn', 'Checked In'
        COMPLETED = 'Completed', 'Completed'
        CANCELLED = 'Cancelled', 'Cancelled'

    # Statuses that hold a seat on the mission and are counted in current_volunteers
    OCCUPYING_STATUSES = (Status.REGISTERED, Status.CHECKED_IN, Status.COMPLETED)

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='registrations')
    mission = models.ForeignKey(Mission, on_delete=models.CASCADE, related_name='registrations')
    status = models.CharField(max_length=12, choices=Status.choices, default=Status.REGISTERED, db_index=True)
    is_priority = models.BooleanField(default=False, help_text="Jump the waitlist queue (waitlisted only)")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('user', 'mission')

    @property
    def is_active(self):
        return self.status != self.Status.CANCELLED

    @property
    def is_occupying(self):
        return self.status in self.OCCUPYING_STATUSES

    def __str__(self):
        return f"{self.user.username} -> {self.mission.title} ({self.status})"


class Attendance(models.Model):
    class Status(models.TextChoices):
        PENDING = 'Pending', 'Pending Review'
        VERIFIED = 'Verified', 'Verified'
        REJECTED = 'Rejected', 'Rejected'

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='attendances')
    mission = models.ForeignKey(Mission, on_delete=models.CASCADE, related_name='attendances')
    check_in_time = models.DateTimeField(null=True, blank=True)
    check_out_time = models.DateTimeField(null=True, blank=True)
    gps_proof = models.CharField(max_length=64, blank=True, default='', help_text='"lat,lng" or manual_override')
    total_hours = models.FloatField(null=True, blank=True)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING, db_index=True)
    verified_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='verified_attendances')
    verified_at = models.DateTimeField(null=True, blank=True)
    override_reason = models.TextField(blank=True, null=True, help_text="Set only by coordinator manual actions")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('user', 'mission')
        constraints = [
            # A volunteer can only be physically present at one mission at a time
            models.UniqueConstraint(
                fields=['user'],
                condition=Q(check_out_time__isnull=True),
                name='attendance_one_open_check_in_per_user',
            ),
        ]

    def __str__(self):
        return f"{self.user.username} @ {self.mission.title} ({self.status})"


class PointTransaction(models.Model):
    """
    Append-only points ledger. User.total_points is the running sum of these rows.
    """
    REASON_MISSION_COMPLETED = 'mission_completed'
    REASON_MISSION_COMPLETED_MANUAL = 'mission_completed_manual'
    SETTLEMENT_REASONS = (REASON_MISSION_COMPLETED, REASON_MISSION_COMPLETED_MANUAL)

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='point_transactions')
    mission = models.ForeignKey(Mission, on_delete=models.SET_NULL, null=True, blank=True, related_name='point_transactions')
    amount = models.IntegerField()
    reason = models.CharField(max_length=50)
    description = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'mission'],
                condition=Q(reason__in=['mission_completed', 'mission_completed_manual']),
                name='point_transaction_one_settlement_per_mission',
            ),
        ]

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValueError("Point transactions are immutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Point transactions cannot be deleted")

    def __str__(self):
        return f"{self.user.username}: {self.amount:+d} ({self.reason})"


class ManualOverrideLog(models.Model):
    class ActionType(models.TextChoices):
        CHECK_IN = 'check_in', 'Manual Check-in'
        COMPLETE = 'complete', 'Manual Completion'

    coordinator = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='manual_overrides_performed')
    mission = models.ForeignKey(Mission, on_delete=models.CASCADE, related_name='manual_overrides')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='manual_overrides_received')
    action_type = models.CharField(max_length=10, choices=ActionType.choices)
    reason = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValueError("Override log entries are append-only")
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.coordinator.username} {self.action_type} {self.user.username} on {self.mission.title}"


class Notification(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications')
    title = models.CharField(max_length=255)
    message = models.TextField()
    type = models.CharField(max_length=50, db_index=True)
    related_id = models.BigIntegerField(null=True, blank=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.title} -> {self.user.username}"
