from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import Attendance, ManualOverrideLog, Mission, Notification, PointTransaction, Registration, User


@admin.register(User)
class MissionUserAdmin(UserAdmin):
    list_display = ('username', 'email', 'role', 'total_points', 'is_active')
    list_filter = ('role', 'is_active')
    readonly_fields = ('total_points',)
    fieldsets = UserAdmin.fieldsets + (
        ('Missions', {'fields': ('role', 'total_points', 'webpush_subscription')}),
    )


@admin.register(Mission)
class MissionAdmin(admin.ModelAdmin):
    list_display = ('title', 'status', 'start_time', 'end_time', 'current_volunteers', 'max_volunteers', 'points_value')
    list_filter = ('status', 'auto_promote')
    search_fields = ('title', 'location_name')
    filter_horizontal = ('collaborators',)
    # The counter belongs to the registration engine
    readonly_fields = ('current_volunteers',)


@admin.register(Registration)
class RegistrationAdmin(admin.ModelAdmin):
    list_display = ('user', 'mission', 'status', 'is_priority', 'created_at')
    list_filter = ('status', 'is_priority')
    readonly_fields = ('status', 'created_at', 'updated_at')


@admin.register(Attendance)
class AttendanceAdmin(admin.ModelAdmin):
    list_display = ('user', 'mission', 'status', 'check_in_time', 'check_out_time', 'total_hours')
    list_filter = ('status',)
    readonly_fields = ('check_in_time', 'check_out_time', 'total_hours', 'gps_proof', 'status', 'verified_by', 'verified_at')


class ReadOnlyAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(PointTransaction)
class PointTransactionAdmin(ReadOnlyAdmin):
    list_display = ('user', 'mission', 'amount', 'reason', 'created_at')
    list_filter = ('reason',)


@admin.register(ManualOverrideLog)
class ManualOverrideLogAdmin(ReadOnlyAdmin):
    list_display = ('coordinator', 'user', 'mission', 'action_type', 'created_at')
    list_filter = ('action_type',)


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('user', 'title', 'type', 'is_read', 'created_at')
    list_filter = ('type', 'is_read')
