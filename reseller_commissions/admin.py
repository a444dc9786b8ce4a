from django.contrib import admin
from .forms import AutoApprovalRuleForm
from .models import (
    AuditLog,
    AutoApprovalRule,
    Commission,
    Customer,
    Document,
    Notification,
    OutboundEmail,
    PortalProfile,
)


@admin.register(PortalProfile)
class PortalProfileAdmin(admin.ModelAdmin):
    list_display = ['user', 'role', 'company', 'is_trusted', 'commission_rate', 'commission_years']
    list_filter = ['role', 'is_trusted', 'is_one_off_payment']
    search_fields = ['user__username', 'user__email', 'company']


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['company_name', 'reseller', 'status', 'contract_value', 'closed_at']
    list_filter = ['status']
    search_fields = ['company_name']
    readonly_fields = ['closed_at', 'closed_by', 'created_at', 'updated_at']


@admin.register(AutoApprovalRule)
class AutoApprovalRuleAdmin(admin.ModelAdmin):
    form = AutoApprovalRuleForm
    list_display = ['name', 'enabled', 'priority', 'max_amount', 'trusted_resellers_only', 'created_at']
    list_filter = ['enabled', 'trusted_resellers_only']
    search_fields = ['name', 'description']
    ordering = ['-priority', 'pk']


@admin.register(Commission)
class CommissionAdmin(admin.ModelAdmin):
    list_display = [
        'id', 'reseller', 'customer', 'amount', 'period',
        'status', 'auto_approved', 'requested_at'
    ]
    list_filter = ['status', 'auto_approved', 'period']
    search_fields = ['reseller__username', 'customer__company_name', 'payment_reference']
    date_hierarchy = 'requested_at'
    # Status changes go through CommissionService so guards and side effects apply
    readonly_fields = [
        'status', 'auto_approved', 'auto_approval_rule', 'auto_approval_rule_name',
        'approved_by', 'approved_at', 'rejected_at', 'paid_at',
        'created_at', 'updated_at',
    ]


@admin.register(Document)
class DocumentAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'commission', 'is_public', 'created_at']
    list_filter = ['category', 'is_public']
    search_fields = ['name', 'description']
    filter_horizontal = ['shared_with']


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['user', 'type', 'title', 'read', 'email_sent', 'created_at']
    list_filter = ['type', 'read', 'email_sent']


@admin.register(OutboundEmail)
class OutboundEmailAdmin(admin.ModelAdmin):
    list_display = ['recipient', 'subject', 'status', 'attempts', 'sent_at', 'created_at']
    list_filter = ['status']
    search_fields = ['recipient', 'subject']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['action', 'entity_type', 'entity_id', 'performed_by', 'created_at']
    list_filter = ['action', 'entity_type']
    search_fields = ['entity_id']
    date_hierarchy = 'created_at'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
