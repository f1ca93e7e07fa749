import re

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.utils import timezone
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from enrollments.eligibility import paid_in_month

User = get_user_model()

PHONE_MIN_DIGITS = 7


def validate_phone_number(value):
    digits = re.sub(r'\D', '', value or '')
    if len(digits) < PHONE_MIN_DIGITS:
        raise serializers.ValidationError(
            f"Enter a valid phone number (at least {PHONE_MIN_DIGITS} digits)."
        )
    return value


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)

        # Add custom claims
        token['email'] = user.email
        token['full_name'] = user.full_name
        token['role'] = user.role

        return token

    def validate(self, attrs):
        data = super().validate(attrs)
        data['user_id'] = self.user.pk
        data['email'] = self.user.email
        data['full_name'] = self.user.full_name
        data['role'] = self.user.role
        return data


class RegisterSerializer(serializers.ModelSerializer):
    """Self sign-up. Always creates a student profile."""
    password = serializers.CharField(write_only=True, min_length=8)
    confirm_password = serializers.CharField(write_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'email', 'password', 'confirm_password',
            'first_name', 'last_name', 'phone', 'date_of_birth',
        ]
        read_only_fields = ['id']
        extra_kwargs = {
            'first_name': {'required': True, 'allow_blank': False},
            'last_name': {'required': True, 'allow_blank': False},
            'phone': {'required': True, 'allow_blank': False},
            'date_of_birth': {'required': True, 'allow_null': False},
        }

    def validate_email(self, value):
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("A user with this email already exists.")
        return value

    def validate_phone(self, value):
        return validate_phone_number(value)

    def validate(self, data):
        if data.get('password') != data.get('confirm_password'):
            raise serializers.ValidationError({'confirm_password': "Passwords do not match."})
        validate_password(data['password'])
        return data

    def create(self, validated_data):
        validated_data.pop('confirm_password')
        password = validated_data.pop('password')
        return User.objects.create_user(
            password=password,
            role=User.ROLE_USER,
            **validated_data
        )


class ProfileSerializer(serializers.ModelSerializer):
    """The signed-in user's own profile. Payment data is managed by admins only."""
    password = serializers.CharField(write_only=True, min_length=8, required=False)
    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'email', 'password', 'full_name',
            'first_name', 'last_name', 'phone', 'date_of_birth', 'address',
            'role', 'last_payment_date', 'cant_por_semana', 'date_joined',
        ]
        read_only_fields = ['id', 'email', 'role', 'last_payment_date', 'cant_por_semana', 'date_joined']
        extra_kwargs = {
            'first_name': {'required': True, 'allow_blank': False},
            'last_name': {'required': True, 'allow_blank': False},
            'phone': {'required': True, 'allow_blank': False},
            'date_of_birth': {'required': True, 'allow_null': False},
        }

    def validate_phone(self, value):
        return validate_phone_number(value)

    def update(self, instance, validated_data):
        password = validated_data.pop('password', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        if password:
            instance.set_password(password)
        instance.save()
        return instance


class UserAdminSerializer(serializers.ModelSerializer):
    """What the admin panel sees and edits for each profile."""
    full_name = serializers.CharField(read_only=True)
    paid_this_month = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id', 'email', 'full_name', 'first_name', 'last_name', 'phone',
            'date_of_birth', 'address', 'role', 'is_active',
            'last_payment_date', 'cant_por_semana', 'paid_this_month', 'date_joined',
        ]
        read_only_fields = [
            'id', 'email', 'full_name', 'first_name', 'last_name', 'phone',
            'date_of_birth', 'address', 'role', 'date_joined',
        ]

    def get_paid_this_month(self, obj):
        return paid_in_month(obj.last_payment_date, timezone.localdate())

    def validate_cant_por_semana(self, value):
        if value is not None and value <= 0:
            raise serializers.ValidationError('Classes per week must be a positive integer.')
        return value


class MarkPaidSerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
