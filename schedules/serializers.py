import re

from rest_framework import serializers

from enrollments.models import Enrollment
from .models import TrainingSchedule


TIME_DIGITS = re.compile(r'^\d{3,4}$')


class TrainingScheduleSerializer(serializers.ModelSerializer):
    enrolled = serializers.SerializerMethodField()
    is_full = serializers.SerializerMethodField()
    is_enrolled = serializers.SerializerMethodField()
    actions = serializers.SerializerMethodField()

    class Meta:
        model = TrainingSchedule
        fields = [
            'id', 'day_of_week', 'time_slot', 'max_capacity', 'is_active',
            'enrolled', 'is_full', 'is_enrolled', 'created_at', 'updated_at', 'actions',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def get_enrolled(self, obj):
        enrolled = getattr(obj, 'enrolled', None)
        if enrolled is None:
            enrolled = obj.enrollments.filter(status=Enrollment.STATUS_ACTIVE).count()
        return enrolled

    def get_is_full(self, obj):
        # Display only; enrolling past capacity is still allowed.
        return self.get_enrolled(obj) >= obj.max_capacity

    def get_is_enrolled(self, obj):
        enrolled_ids = self.context.get('enrolled_schedule_ids')
        if enrolled_ids is None:
            return None
        return obj.pk in enrolled_ids

    def get_actions(self, obj):
        return {
            'edit': True,
            'toggle_status': True,
            'status_label': 'Active' if obj.is_active else 'Inactive'
        }

    def validate_max_capacity(self, value):
        if value <= 0:
            raise serializers.ValidationError('Capacity must be a positive integer.')
        return value

    def validate_time_slot(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Time slot is required.')
        # "900" / "1730" typed without separator become "9:00" / "17:30"
        if TIME_DIGITS.match(value):
            value = f"{value[:-2]}:{value[-2:]}"
        return value


class EnrolledStudentSerializer(serializers.Serializer):
    enrollment_id = serializers.IntegerField(source='id')
    user_id = serializers.IntegerField(source='user.id')
    full_name = serializers.CharField(source='user.full_name')
    email = serializers.EmailField(source='user.email')
    phone = serializers.CharField(source='user.phone')
    enrolled_at = serializers.DateTimeField()
