from django.contrib import admin
from .models import Student


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ['registration_number', 'first_name', 'surname', 'department', 'student_status', 'is_active']
    list_filter = ['department', 'student_status', 'is_active']
    search_fields = ['registration_number', 'first_name', 'surname']
