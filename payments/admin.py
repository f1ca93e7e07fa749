from django.contrib import admin
from .models import Plan, Payment


@admin.register(Plan)
class PlanAdmin(admin.ModelAdmin):
    list_display = ['title', 'sessions_per_week', 'price', 'active', 'created_at']
    list_filter = ['active']
    search_fields = ['title', 'description']


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'plan', 'amount', 'status', 'created_at', 'verified_at']
    list_filter = ['status', 'created_at']
    search_fields = ['user__email', 'user__first_name', 'user__last_name', 'reference']
    readonly_fields = ['created_at', 'verified_at', 'verified_by']
    fieldsets = (
        ('Payment Info', {
            'fields': ('user', 'plan', 'amount', 'reference', 'status')
        }),
        ('Verification', {
            'fields': ('verified_at', 'verified_by')
        }),
        ('Timestamps', {
            'fields': ('created_at',)
        }),
    )
