"""Reseller commissions forms."""

from django import forms
from django.utils.translation import gettext_lazy as _

from .models import AutoApprovalRule, Notification

ACTION_CHOICES = [
    ('APPROVE', _("Approve")),
    ('REJECT', _("Reject")),
    ('MARK_PAID', _("Mark as paid")),
]


class AutoApprovalRuleForm(forms.ModelForm):
    class Meta:
        model = AutoApprovalRule
        fields = [
            'name', 'description', 'enabled', 'priority',
            'max_amount', 'trusted_resellers_only',
        ]
        widgets = {
            'name': forms.TextInput(attrs={'class': 'input'}),
            'description': forms.Textarea(attrs={'class': 'textarea', 'rows': 2}),
            'enabled': forms.CheckboxInput(attrs={'class': 'toggle'}),
            'priority': forms.NumberInput(attrs={'class': 'input'}),
            'max_amount': forms.NumberInput(attrs={'class': 'input', 'step': '0.01', 'min': '0'}),
            'trusted_resellers_only': forms.CheckboxInput(attrs={'class': 'toggle'}),
        }
        error_messages = {
            'name': {'required': "Rule name is required"},
        }


class CommissionRequestForm(forms.Form):
    amount = forms.DecimalField(
        max_digits=12,
        error_messages={
            'required': "Valid amount is required",
            'invalid': "Valid amount is required",
            'max_digits': "Valid amount is required",
        },
        widget=forms.NumberInput(attrs={'class': 'input', 'step': '0.01', 'min': '0'})
    )
    period = forms.CharField(
        max_length=50,
        error_messages={'required': "Period is required"},
        widget=forms.TextInput(attrs={'class': 'input', 'placeholder': '2024-Q1'})
    )
    customer_id = forms.IntegerField(required=False, widget=forms.HiddenInput())
    description = forms.CharField(
        required=False,
        widget=forms.Textarea(attrs={'class': 'textarea', 'rows': 2})
    )
    notes = forms.CharField(
        required=False,
        widget=forms.Textarea(attrs={'class': 'textarea', 'rows': 2})
    )


class CommissionTransitionForm(forms.Form):
    action = forms.ChoiceField(
        choices=ACTION_CHOICES,
        error_messages={'required': "Invalid action", 'invalid_choice': "Invalid action"},
        widget=forms.Select(attrs={'class': 'select'})
    )
    notes = forms.CharField(
        required=False,
        widget=forms.Textarea(attrs={'class': 'textarea', 'rows': 2})
    )
    rejection_reason = forms.CharField(
        required=False,
        widget=forms.Textarea(attrs={'class': 'textarea', 'rows': 3})
    )
    payment_reference = forms.CharField(
        required=False, max_length=100,
        widget=forms.TextInput(attrs={'class': 'input'})
    )


class BulkTransitionForm(forms.Form):
    commission_ids = forms.JSONField(error_messages={'required': "Commission IDs are required"})
    action = forms.ChoiceField(
        choices=ACTION_CHOICES,
        error_messages={'required': "Invalid action", 'invalid_choice': "Invalid action"},
    )
    rejection_reason = forms.CharField(required=False)
    payment_reference = forms.CharField(required=False, max_length=100)

    def clean_commission_ids(self):
        ids = self.cleaned_data['commission_ids']
        if not isinstance(ids, list) or not ids:
            raise forms.ValidationError("Commission IDs are required")
        try:
            return [int(pk) for pk in ids]
        except (TypeError, ValueError):
            raise forms.ValidationError("Commission IDs must be integers")


class CloseDealForm(forms.Form):
    contract_value = forms.DecimalField(
        max_digits=12,
        error_messages={
            'required': "Valid contract value is required",
            'invalid': "Valid contract value is required",
            'max_digits': "Valid contract value is required",
        },
        widget=forms.NumberInput(attrs={'class': 'input', 'step': '0.01', 'min': '0'})
    )
    contract_duration = forms.IntegerField(
        min_value=1,
        error_messages={
            'required': "Valid contract duration is required",
            'invalid': "Valid contract duration is required",
            'min_value': "Valid contract duration is required",
        },
        widget=forms.NumberInput(attrs={'class': 'input', 'min': '1'})
    )


class NotificationPreferenceForm(forms.Form):
    type = forms.ChoiceField(
        choices=Notification.TYPE_CHOICES,
        error_messages={'invalid_choice': "Unknown notification type"},
    )
    email_enabled = forms.NullBooleanField(required=False)
    in_app_enabled = forms.NullBooleanField(required=False)
