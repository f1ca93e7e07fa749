from django.conf import settings
from django.db import models


class EnrollmentQuerySet(models.QuerySet):

    def active(self):
        return self.filter(status=Enrollment.STATUS_ACTIVE)

    def for_pair(self, user, schedule):
        return self.active().filter(user=user, schedule=schedule)

    def enrolled_between(self, start, end):
        """Half-open window: ``start <= enrolled_at < end``."""
        return self.filter(enrolled_at__gte=start, enrolled_at__lt=end)


class Enrollment(models.Model):
    STATUS_ACTIVE = 'active'
    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'ACTIVE'),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='enrollments'
    )
    schedule = models.ForeignKey(
        'schedules.TrainingSchedule',
        on_delete=models.CASCADE,
        related_name='enrollments'
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    enrolled_at = models.DateTimeField(auto_now_add=True)

    objects = EnrollmentQuerySet.as_manager()

    class Meta:
        ordering = ['-enrolled_at']
        indexes = [
            models.Index(fields=['user', 'status', 'enrolled_at'], name='enrollment_user_week_idx'),
        ]

    def __str__(self):
        return f"{self.user} -> {self.schedule}"
