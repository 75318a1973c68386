from django.contrib import admin
from .models import Patient, ProfessionalEducator, TherapyProject
@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('last_name', 'first_name', 'created_at')
    search_fields = ('first_name', 'last_name')
@admin.register(TherapyProject)
class TherapyProjectAdmin(admin.ModelAdmin):
    list_display = ('title', 'patient', 'status', 'start_date', 'end_date')
    list_filter = ('status',)
    search_fields = ('title', 'description')
    filter_horizontal = ('educators',)
@admin.register(ProfessionalEducator)
class ProfessionalEducatorAdmin(admin.ModelAdmin):
    list_display = ('last_name', 'first_name', 'email', 'specialization', 'status', 'role', 'is_current_user')
    list_filter = ('status', 'role')
    search_fields = ('first_name', 'last_name', 'email', 'specialization')
