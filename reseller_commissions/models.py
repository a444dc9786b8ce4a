"""Reseller commissions models."""

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from . import module


class PortalBaseModel(models.Model):
    created_at = models.DateTimeField(_("Created At"), auto_now_add=True)
    updated_at = models.DateTimeField(_("Updated At"), auto_now=True)

    class Meta:
        abstract = True


# =============================================================================
# Users
# =============================================================================

class PortalProfile(PortalBaseModel):
    """Portal role and reseller terms attached to a user account."""

    ROLE_CHOICES = [
        (module.ROLE_ADMIN, _("Admin")),
        (module.ROLE_RESELLER, _("Reseller")),
    ]

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE,
        related_name='portal_profile', verbose_name=_("User")
    )
    role = models.CharField(
        _("Role"), max_length=20, choices=ROLE_CHOICES, default=module.ROLE_RESELLER
    )
    company = models.CharField(_("Company"), max_length=200, blank=True)
    is_trusted = models.BooleanField(
        _("Trusted Reseller"), default=False,
        help_text=_("Trusted resellers can match trusted-only auto-approval rules")
    )

    # Commission terms used when a deal is closed
    commission_rate = models.DecimalField(
        _("Commission Rate (%)"), max_digits=5, decimal_places=2,
        default=Decimal('10.00'), validators=[MinValueValidator(Decimal('0'))]
    )
    commission_years = models.PositiveSmallIntegerField(_("Commission Years"), default=1)
    is_one_off_payment = models.BooleanField(_("One-off Payment"), default=False)

    class Meta:
        db_table = 'reseller_commissions_profile'
        verbose_name = _("Portal Profile")
        verbose_name_plural = _("Portal Profiles")

    def __str__(self):
        return f"{self.user} ({self.get_role_display()})"

    @classmethod
    def for_user(cls, user):
        profile, _created = cls.objects.get_or_create(user=user)
        return profile

    @property
    def is_admin(self):
        return self.role == module.ROLE_ADMIN

    @property
    def is_reseller(self):
        return self.role == module.ROLE_RESELLER


# =============================================================================
# Customers
# =============================================================================

class Customer(PortalBaseModel):
    """Customer registered by a reseller."""

    STATUS_CHOICES = [
        ('lead', _("Lead")),
        ('active', _("Active")),
        ('ended', _("Contract Ended")),
    ]

    reseller = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE,
        related_name='customers', verbose_name=_("Reseller")
    )
    company_name = models.CharField(_("Company Name"), max_length=200)
    status = models.CharField(
        _("Status"), max_length=20, choices=STATUS_CHOICES, default='lead'
    )
    contract_value = models.DecimalField(
        _("Annual Contract Value"), max_digits=12, decimal_places=2, null=True, blank=True
    )
    contract_duration = models.PositiveSmallIntegerField(
        _("Contract Duration (years)"), null=True, blank=True
    )
    closed_at = models.DateTimeField(_("Closed At"), null=True, blank=True)
    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL,
        null=True, blank=True, related_name='closed_customers',
        verbose_name=_("Closed By")
    )

    class Meta:
        db_table = 'reseller_commissions_customer'
        verbose_name = _("Customer")
        verbose_name_plural = _("Customers")
        ordering = ['company_name']

    def __str__(self):
        return self.company_name


# =============================================================================
# Auto-approval rules
# =============================================================================

class AutoApprovalRule(PortalBaseModel):
    """Condition set that lets a commission skip admin review."""

    name = models.CharField(_("Rule Name"), max_length=100)
    description = models.TextField(_("Description"), blank=True)
    enabled = models.BooleanField(_("Enabled"), default=True)
    priority = models.IntegerField(
        _("Priority"), default=0,
        help_text=_("Higher priority rules are evaluated first")
    )
    max_amount = models.DecimalField(
        _("Maximum Amount"), max_digits=12, decimal_places=2,
        null=True, blank=True, validators=[MinValueValidator(Decimal('0'))],
        help_text=_("Inclusive upper bound; empty means unlimited")
    )
    trusted_resellers_only = models.BooleanField(_("Trusted Resellers Only"), default=False)

    class Meta:
        db_table = 'reseller_commissions_auto_approval_rule'
        verbose_name = _("Auto-approval Rule")
        verbose_name_plural = _("Auto-approval Rules")
        ordering = ['-priority', '-created_at']

    def __str__(self):
        return self.name

    def matches(self, amount, reseller_is_trusted):
        if not self.enabled:
            return False
        if self.max_amount is not None and amount > self.max_amount:
            return False
        if self.trusted_resellers_only and not reseller_is_trusted:
            return False
        return True


# =============================================================================
# Commissions
# =============================================================================

class Commission(PortalBaseModel):
    """Payable amount owed to a reseller for a sales period."""

    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'
    STATUS_PAID = 'paid'

    STATUS_CHOICES = [
        (STATUS_PENDING, _("Pending")),
        (STATUS_APPROVED, _("Approved")),
        (STATUS_REJECTED, _("Rejected")),
        (STATUS_PAID, _("Paid")),
    ]

    TERMINAL_STATUSES = (STATUS_REJECTED, STATUS_PAID)

    # Ownership
    reseller = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE,
        related_name='commissions', verbose_name=_("Reseller")
    )
    customer = models.ForeignKey(
        Customer, on_delete=models.SET_NULL,
        null=True, blank=True, related_name='commissions',
        verbose_name=_("Customer")
    )

    amount = models.DecimalField(_("Amount"), max_digits=12, decimal_places=2)
    period = models.CharField(_("Period"), max_length=50)
    description = models.TextField(_("Description"), blank=True)
    notes = models.TextField(_("Notes"), blank=True)

    status = models.CharField(
        _("Status"), max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING
    )

    # Auto-approval: real FK + snapshot
    auto_approved = models.BooleanField(_("Auto-approved"), default=False)
    auto_approval_rule = models.ForeignKey(
        AutoApprovalRule, on_delete=models.SET_NULL,
        null=True, blank=True, related_name='commissions',
        verbose_name=_("Auto-approval Rule")
    )
    auto_approval_rule_name = models.CharField(
        _("Auto-approval Rule Name"), max_length=100, blank=True
    )

    # Workflow
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL,
        null=True, blank=True, related_name='approved_commissions',
        verbose_name=_("Approved By")
    )
    requested_at = models.DateTimeField(_("Requested At"), null=True, blank=True)
    approved_at = models.DateTimeField(_("Approved At"), null=True, blank=True)
    rejected_at = models.DateTimeField(_("Rejected At"), null=True, blank=True)
    paid_at = models.DateTimeField(_("Paid At"), null=True, blank=True)
    rejection_reason = models.TextField(_("Rejection Reason"), blank=True)
    payment_reference = models.CharField(
        _("Payment Reference"), max_length=100, blank=True,
        help_text=_("Transfer ID, check number, etc.")
    )

    # Deal terms (commissions generated from a closed deal)
    year_number = models.PositiveSmallIntegerField(_("Contract Year"), null=True, blank=True)
    contract_value = models.DecimalField(
        _("Contract Value"), max_digits=12, decimal_places=2, null=True, blank=True
    )
    commission_rate = models.DecimalField(
        _("Commission Rate (%)"), max_digits=5, decimal_places=2, null=True, blank=True
    )
    due_date = models.DateField(_("Due Date"), null=True, blank=True)

    class Meta:
        db_table = 'reseller_commissions_commission'
        verbose_name = _("Commission")
        verbose_name_plural = _("Commissions")
        ordering = ['-requested_at', '-created_at']
        indexes = [
            models.Index(fields=['reseller', 'status'], name='commission_reseller_status_idx'),
            models.Index(fields=['status', 'period'], name='commission_status_period_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name='commission_amount_positive',
            ),
            models.CheckConstraint(
                condition=~Q(status='rejected') | ~Q(rejection_reason=''),
                name='commission_rejection_has_reason',
            ),
        ]

    def __str__(self):
        return f"{self.reseller}: {self.amount} ({self.period}, {self.status})"

    def clean(self):
        if self.amount is not None and self.amount <= 0:
            raise ValidationError({'amount': _("Amount must be positive.")})
        if self.status == self.STATUS_REJECTED and not self.rejection_reason.strip():
            raise ValidationError({'rejection_reason': _("A rejected commission needs a reason.")})
        if self.status == self.STATUS_PAID and self.approved_at is None:
            raise ValidationError({'status': _("Only approved commissions can be paid.")})

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES


# =============================================================================
# Documents
# =============================================================================

class Document(PortalBaseModel):
    """Stored file shared with portal users."""

    CATEGORY_CHOICES = [
        ('invoice', _("Invoice")),
        ('contract', _("Contract")),
        ('other', _("Other")),
    ]

    name = models.CharField(_("Name"), max_length=200)
    description = models.TextField(_("Description"), blank=True)
    category = models.CharField(
        _("Category"), max_length=20, choices=CATEGORY_CHOICES, default='other'
    )
    file = models.FileField(_("File"), upload_to='documents/')
    mime_type = models.CharField(_("MIME Type"), max_length=100, blank=True)
    file_size = models.PositiveIntegerField(_("File Size"), default=0)
    is_public = models.BooleanField(_("Public"), default=False)

    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL,
        null=True, blank=True, related_name='uploaded_documents',
        verbose_name=_("Uploaded By")
    )
    commission = models.ForeignKey(
        Commission, on_delete=models.SET_NULL,
        null=True, blank=True, related_name='documents',
        verbose_name=_("Commission")
    )
    shared_with = models.ManyToManyField(
        settings.AUTH_USER_MODEL, blank=True,
        related_name='shared_documents', verbose_name=_("Shared With")
    )

    class Meta:
        db_table = 'reseller_commissions_document'
        verbose_name = _("Document")
        verbose_name_plural = _("Documents")
        ordering = ['-created_at']

    def __str__(self):
        return self.name


# =============================================================================
# Notifications
# =============================================================================

class Notification(PortalBaseModel):
    """In-app notification."""

    TYPE_COMMISSION_REQUESTED = 'commission_requested'
    TYPE_COMMISSION_APPROVED = 'commission_approved'
    TYPE_COMMISSION_REJECTED = 'commission_rejected'
    TYPE_COMMISSION_PAID = 'commission_paid'

    TYPE_CHOICES = [
        (TYPE_COMMISSION_REQUESTED, _("Commission Requested")),
        (TYPE_COMMISSION_APPROVED, _("Commission Approved")),
        (TYPE_COMMISSION_REJECTED, _("Commission Rejected")),
        (TYPE_COMMISSION_PAID, _("Commission Paid")),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE,
        related_name='portal_notifications', verbose_name=_("User")
    )
    type = models.CharField(_("Type"), max_length=40, choices=TYPE_CHOICES)
    title = models.CharField(_("Title"), max_length=200)
    message = models.TextField(_("Message"))
    metadata = models.JSONField(_("Metadata"), default=dict, blank=True, encoder=DjangoJSONEncoder)
    read = models.BooleanField(_("Read"), default=False)
    email_sent = models.BooleanField(_("Email Sent"), default=False)

    class Meta:
        db_table = 'reseller_commissions_notification'
        verbose_name = _("Notification")
        verbose_name_plural = _("Notifications")
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'read'], name='notification_user_read_idx'),
        ]

    def __str__(self):
        return f"{self.user}: {self.title}"


class NotificationPreference(PortalBaseModel):
    """Per-user, per-type delivery channels."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE,
        related_name='notification_preferences', verbose_name=_("User")
    )
    type = models.CharField(_("Type"), max_length=40, choices=Notification.TYPE_CHOICES)
    email_enabled = models.BooleanField(_("Email"), default=True)
    in_app_enabled = models.BooleanField(_("In-app"), default=True)

    class Meta:
        db_table = 'reseller_commissions_notification_preference'
        verbose_name = _("Notification Preference")
        verbose_name_plural = _("Notification Preferences")
        unique_together = [('user', 'type')]

    def __str__(self):
        return f"{self.user}: {self.type}"


class OutboundEmail(PortalBaseModel):
    """Queued email, delivered by the send_queued_emails command."""

    STATUS_CHOICES = [
        ('queued', _("Queued")),
        ('sending', _("Sending")),
        ('sent', _("Sent")),
        ('failed', _("Failed")),
    ]

    recipient = models.EmailField(_("Recipient"))
    subject = models.CharField(_("Subject"), max_length=255)
    html_body = models.TextField(_("HTML Body"))
    text_body = models.TextField(_("Text Body"), blank=True)
    notification = models.ForeignKey(
        Notification, on_delete=models.SET_NULL,
        null=True, blank=True, related_name='emails',
        verbose_name=_("Notification")
    )
    status = models.CharField(
        _("Status"), max_length=20, choices=STATUS_CHOICES, default='queued'
    )
    attempts = models.PositiveSmallIntegerField(_("Attempts"), default=0)
    last_error = models.TextField(_("Last Error"), blank=True)
    sent_at = models.DateTimeField(_("Sent At"), null=True, blank=True)

    class Meta:
        db_table = 'reseller_commissions_outbound_email'
        verbose_name = _("Outbound Email")
        verbose_name_plural = _("Outbound Emails")
        ordering = ['created_at']

    def __str__(self):
        return f"{self.recipient}: {self.subject} ({self.status})"


# =============================================================================
# Audit log
# =============================================================================

class AuditLog(models.Model):
    """Append-only record of administrative and lifecycle actions."""

    ACTION_CHOICES = [
        ('created', _("Commission Created")),
        ('auto_approved', _("Commission Auto-approved")),
        ('approved', _("Commission Approved")),
        ('rejected', _("Commission Rejected")),
        ('mark_paid', _("Commission Paid")),
        ('rule_created', _("Auto-approval Rule Created")),
        ('rule_updated', _("Auto-approval Rule Updated")),
        ('rule_deleted', _("Auto-approval Rule Deleted")),
        ('user_marked_trusted', _("Reseller Marked Trusted")),
        ('user_unmarked_trusted', _("Reseller Unmarked Trusted")),
        ('deal_closed', _("Deal Closed")),
    ]

    action = models.CharField(_("Action"), max_length=40, choices=ACTION_CHOICES)
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL,
        null=True, blank=True, related_name='audit_logs',
        verbose_name=_("Performed By")
    )
    entity_type = models.CharField(_("Entity Type"), max_length=50)
    entity_id = models.CharField(_("Entity ID"), max_length=50, blank=True)
    changes = models.JSONField(_("Changes"), null=True, blank=True, encoder=DjangoJSONEncoder)
    metadata = models.JSONField(_("Metadata"), null=True, blank=True, encoder=DjangoJSONEncoder)
    ip_address = models.GenericIPAddressField(_("IP Address"), null=True, blank=True)
    user_agent = models.CharField(_("User Agent"), max_length=255, blank=True)
    created_at = models.DateTimeField(_("Created At"), auto_now_add=True)

    class Meta:
        db_table = 'reseller_commissions_audit_log'
        verbose_name = _("Audit Log Entry")
        verbose_name_plural = _("Audit Log")
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['entity_type', 'entity_id'], name='audit_log_entity_idx'),
            models.Index(fields=['action'], name='audit_log_action_idx'),
        ]

    def __str__(self):
        return f"{self.action} {self.entity_type}:{self.entity_id}"
