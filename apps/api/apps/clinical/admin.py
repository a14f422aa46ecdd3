from django.contrib import admin
from .models import Appointment, Document, Medication


@admin.register(Medication)
class MedicationAdmin(admin.ModelAdmin):
    list_display = ['name', 'clinic', 'created_at']
    list_filter = ['clinic']
    search_fields = ['name']
    readonly_fields = ['id', 'created_at', 'updated_at']


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ['type', 'patient', 'clinic', 'scheduled_at']
    list_filter = ['clinic', 'type']
    search_fields = ['patient__email', 'type']
    readonly_fields = ['id', 'created_at', 'updated_at']
    date_hierarchy = 'scheduled_at'


@admin.register(Document)
class DocumentAdmin(admin.ModelAdmin):
    list_display = ['filename', 'patient', 'clinic', 'uploaded_by', 'created_at']
    list_filter = ['clinic']
    search_fields = ['filename', 'patient__email']
    readonly_fields = ['id', 'created_at']
    exclude = ['content']
