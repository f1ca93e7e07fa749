from django.db.models.signals import post_delete, post_save, pre_save
from django.dispatch import receiver

from schedules.models import TrainingSchedule
from . import cache
from .models import Enrollment


@receiver(pre_save, sender=Enrollment)
def remember_previous_owner(sender, instance, **kwargs):
    instance._previous_user_id = None
    if instance.pk:
        instance._previous_user_id = (
            Enrollment.objects.filter(pk=instance.pk).values_list('user_id', flat=True).first()
        )


@receiver(post_save, sender=Enrollment)
def enrollment_saved(sender, instance, **kwargs):
    # an edit may move the row to another user; both lists change
    cache.invalidate_many([instance.user_id, getattr(instance, '_previous_user_id', None) or instance.user_id])


@receiver(post_delete, sender=Enrollment)
def enrollment_deleted(sender, instance, **kwargs):
    cache.invalidate(instance.user_id)


@receiver(post_save, sender=TrainingSchedule)
def schedule_saved(sender, instance, created, **kwargs):
    # cached enrollments carry their slot, so edits to it must reach the students' lists
    if created:
        return
    user_ids = (
        Enrollment.objects.active()
        .filter(schedule=instance)
        .values_list('user_id', flat=True)
        .distinct()
    )
    cache.invalidate_many(list(user_ids))
