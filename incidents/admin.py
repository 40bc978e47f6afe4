"""
Django admin registrations for the dispatch models.

Reports are read-mostly here: descriptive fields are immutable after
creation, so only ``status`` stays editable for manual corrections.
"""

from django.contrib import admin

from .models import AuditEvent, IncidentReport, User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'email', 'role', 'is_staff', 'is_superuser')
    list_filter = ('role',)
    search_fields = ('username', 'email')


@admin.register(IncidentReport)
class IncidentReportAdmin(admin.ModelAdmin):
    list_display = ('id', 'created_at', 'submitter', 'location', 'incident_type', 'hospital_name', 'status')
    list_filter = ('status', 'incident_type', 'location')
    search_fields = ('id', 'submitter__username', 'hospital_name')
    readonly_fields = (
        'id', 'created_at', 'submitter', 'location', 'incident_type', 'persons_injured',
        'consciousness_state', 'hospital_id', 'hospital_name',
    )


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'action', 'user', 'object_type', 'object_id')
    list_filter = ('action',)
    search_fields = ('object_id', 'user__username')
