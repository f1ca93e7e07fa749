from django.db import models
from django.db.models import Case, Count, IntegerField, Q, Value, When

DAYS_OF_WEEK = ['Lunes', 'Martes', 'Miércoles', 'Jueves', 'Viernes', 'Sábado']
DAY_CHOICES = [(day, day) for day in DAYS_OF_WEEK]


class TrainingScheduleQuerySet(models.QuerySet):

    def active(self):
        return self.filter(is_active=True)

    def with_enrollment_count(self):
        """Annotate ``enrolled`` with the number of active enrollments of each slot."""
        from enrollments.models import Enrollment

        return self.annotate(
            enrolled=Count(
                'enrollments',
                filter=Q(enrollments__status=Enrollment.STATUS_ACTIVE),
            )
        )

    def in_week_order(self):
        # day_of_week is stored as text, so alphabetical order would put Jueves before Lunes
        return self.annotate(
            day_index=Case(
                *[When(day_of_week=day, then=Value(index)) for index, day in enumerate(DAYS_OF_WEEK)],
                default=Value(len(DAYS_OF_WEEK)),
                output_field=IntegerField(),
            )
        ).order_by('day_index', 'time_slot')


class TrainingSchedule(models.Model):
    day_of_week = models.CharField(max_length=20, choices=DAY_CHOICES)
    time_slot = models.CharField(max_length=10, help_text='Start time, usually HH:MM')
    max_capacity = models.PositiveIntegerField(default=15)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TrainingScheduleQuerySet.as_manager()

    class Meta:
        ordering = ['day_of_week', 'time_slot']

    def __str__(self):
        return f"{self.day_of_week} - {self.time_slot}"
