from django.contrib import admin
from .models import InjectionCompletion, Protocol, ProtocolAssignment


@admin.register(Protocol)
class ProtocolAdmin(admin.ModelAdmin):
    list_display = ['name', 'version', 'clinic', 'created_by', 'created_at']
    list_filter = ['clinic']
    search_fields = ['name']
    readonly_fields = ['id', 'version', 'previous_version', 'created_at', 'updated_at']


@admin.register(ProtocolAssignment)
class ProtocolAssignmentAdmin(admin.ModelAdmin):
    list_display = ['patient', 'protocol', 'start_date', 'assigned_by', 'created_at']
    list_filter = ['start_date']
    search_fields = ['patient__email', 'protocol__name']
    readonly_fields = ['id', 'created_at']
    autocomplete_fields = ['patient', 'assigned_by']


@admin.register(InjectionCompletion)
class InjectionCompletionAdmin(admin.ModelAdmin):
    list_display = ['patient', 'protocol', 'injection_date', 'injection_time', 'mood_analysis_status']
    list_filter = ['mood_analysis_status', 'injection_date']
    search_fields = ['patient__email']
    # Mood and commentary are patient-reported health data
    exclude = ['mood', 'mood_analysis']
    readonly_fields = ['id', 'created_at', 'updated_at']

    def has_add_permission(self, request):
        return False
