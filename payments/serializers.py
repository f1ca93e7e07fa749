from rest_framework import serializers
from .models import Plan, Payment


class PlanSerializer(serializers.ModelSerializer):
    class Meta:
        model = Plan
        fields = ["id", "title", "description", "sessions_per_week", "price", "active", "created_at", "updated_at"]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_price(self, value):
        if value < 0:
            raise serializers.ValidationError("Price cannot be negative.")
        return value


class PaymentSerializer(serializers.ModelSerializer):
    plan = serializers.PrimaryKeyRelatedField(
        queryset=Plan.objects.filter(active=True),
        required=False,
        allow_null=True,
    )
    plan_details = PlanSerializer(source='plan', read_only=True)
    user_email = serializers.EmailField(source='user.email', read_only=True)
    user_name = serializers.CharField(source='user.full_name', read_only=True)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, required=False)

    class Meta:
        model = Payment
        fields = [
            'id', 'user', 'user_email', 'user_name', 'plan', 'plan_details',
            'amount', 'reference', 'status', 'created_at', 'verified_at', 'verified_by',
        ]
        read_only_fields = ['id', 'user', 'status', 'created_at', 'verified_at', 'verified_by']

    def validate(self, data):
        # Without an explicit amount the plan's price is what was paid
        if data.get('amount') is None:
            plan = data.get('plan')
            if plan is None:
                raise serializers.ValidationError({'amount': "Provide an amount or a plan."})
            data['amount'] = plan.price
        if data['amount'] <= 0:
            raise serializers.ValidationError({'amount': "Amount must be positive."})
        return data
