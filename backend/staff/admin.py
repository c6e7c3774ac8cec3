from django.contrib import admin
from .models import Staff


@admin.register(Staff)
class StaffAdmin(admin.ModelAdmin):
    list_display = ['staff_number', 'first_name', 'surname', 'department', 'position', 'employment_status', 'is_active']
    list_filter = ['department', 'employment_status', 'is_active']
    search_fields = ['staff_number', 'first_name', 'surname']
