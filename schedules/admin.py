from django.contrib import admin
from .models import TrainingSchedule


@admin.register(TrainingSchedule)
class TrainingScheduleAdmin(admin.ModelAdmin):
    list_display = ('id', 'day_of_week', 'time_slot', 'max_capacity', 'is_active', 'created_at')
    list_filter = ('is_active', 'day_of_week')
    search_fields = ('day_of_week', 'time_slot')
