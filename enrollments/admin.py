from django.contrib import admin
from .models import Enrollment


@admin.register(Enrollment)
class EnrollmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'schedule', 'status', 'enrolled_at')
    list_filter = ('status', 'schedule__day_of_week')
    search_fields = ('user__email', 'user__first_name', 'user__last_name')
    readonly_fields = ('enrolled_at',)
