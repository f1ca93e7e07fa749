from django.contrib.auth import get_user_model
from rest_framework import serializers

from schedules.models import TrainingSchedule
from .models import Enrollment

User = get_user_model()


class ScheduleDataSerializer(serializers.ModelSerializer):
    class Meta:
        model = TrainingSchedule
        fields = ['id', 'day_of_week', 'time_slot', 'max_capacity', 'is_active']


class UserDataSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'full_name', 'first_name', 'last_name', 'email']


class EnrollmentSerializer(serializers.ModelSerializer):
    schedule_details = ScheduleDataSerializer(source='schedule', read_only=True)
    user_details = serializers.SerializerMethodField()

    class Meta:
        model = Enrollment
        fields = ['id', 'user', 'schedule', 'schedule_details', 'user_details', 'status', 'enrolled_at']
        read_only_fields = fields

    def get_user_details(self, obj):
        # Only the admin listing joins the profile
        if not self.context.get('include_user'):
            return None
        return UserDataSerializer(obj.user).data


class ToggleEnrollmentSerializer(serializers.Serializer):
    schedule = serializers.PrimaryKeyRelatedField(queryset=TrainingSchedule.objects.all())
