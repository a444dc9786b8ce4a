from decimal import Decimal

import django.core.serializers.json
import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='AutoApprovalRule',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('name', models.CharField(max_length=100, verbose_name='Rule Name')),
                ('description', models.TextField(blank=True, verbose_name='Description')),
                ('enabled', models.BooleanField(default=True, verbose_name='Enabled')),
                ('priority', models.IntegerField(default=0, help_text='Higher priority rules are evaluated first', verbose_name='Priority')),
                ('max_amount', models.DecimalField(blank=True, decimal_places=2, help_text='Inclusive upper bound; empty means unlimited', max_digits=12, null=True, validators=[django.core.validators.MinValueValidator(Decimal('0'))], verbose_name='Maximum Amount')),
                ('trusted_resellers_only', models.BooleanField(default=False, verbose_name='Trusted Resellers Only')),
            ],
            options={
                'verbose_name': 'Auto-approval Rule',
                'verbose_name_plural': 'Auto-approval Rules',
                'db_table': 'reseller_commissions_auto_approval_rule',
                'ordering': ['-priority', '-created_at'],
            },
        ),
        migrations.CreateModel(
            name='PortalProfile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('role', models.CharField(choices=[('admin', 'Admin'), ('reseller', 'Reseller')], default='reseller', max_length=20, verbose_name='Role')),
                ('company', models.CharField(blank=True, max_length=200, verbose_name='Company')),
                ('is_trusted', models.BooleanField(default=False, help_text='Trusted resellers can match trusted-only auto-approval rules', verbose_name='Trusted Reseller')),
                ('commission_rate', models.DecimalField(decimal_places=2, default=Decimal('10.00'), max_digits=5, validators=[django.core.validators.MinValueValidator(Decimal('0'))], verbose_name='Commission Rate (%)')),
                ('commission_years', models.PositiveSmallIntegerField(default=1, verbose_name='Commission Years')),
                ('is_one_off_payment', models.BooleanField(default=False, verbose_name='One-off Payment')),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='portal_profile', to=settings.AUTH_USER_MODEL, verbose_name='User')),
            ],
            options={
                'verbose_name': 'Portal Profile',
                'verbose_name_plural': 'Portal Profiles',
                'db_table': 'reseller_commissions_profile',
            },
        ),
        migrations.CreateModel(
            name='Customer',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('company_name', models.CharField(max_length=200, verbose_name='Company Name')),
                ('status', models.CharField(choices=[('lead', 'Lead'), ('active', 'Active'), ('ended', 'Contract Ended')], default='lead', max_length=20, verbose_name='Status')),
                ('contract_value', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True, verbose_name='Annual Contract Value')),
                ('contract_duration', models.PositiveSmallIntegerField(blank=True, null=True, verbose_name='Contract Duration (years)')),
                ('closed_at', models.DateTimeField(blank=True, null=True, verbose_name='Closed At')),
                ('closed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='closed_customers', to=settings.AUTH_USER_MODEL, verbose_name='Closed By')),
                ('reseller', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='customers', to=settings.AUTH_USER_MODEL, verbose_name='Reseller')),
            ],
            options={
                'verbose_name': 'Customer',
                'verbose_name_plural': 'Customers',
                'db_table': 'reseller_commissions_customer',
                'ordering': ['company_name'],
            },
        ),
        migrations.CreateModel(
            name='Commission',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, verbose_name='Amount')),
                ('period', models.CharField(max_length=50, verbose_name='Period')),
                ('description', models.TextField(blank=True, verbose_name='Description')),
                ('notes', models.TextField(blank=True, verbose_name='Notes')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected'), ('paid', 'Paid')], default='pending', max_length=20, verbose_name='Status')),
                ('auto_approved', models.BooleanField(default=False, verbose_name='Auto-approved')),
                ('auto_approval_rule_name', models.CharField(blank=True, max_length=100, verbose_name='Auto-approval Rule Name')),
                ('requested_at', models.DateTimeField(blank=True, null=True, verbose_name='Requested At')),
                ('approved_at', models.DateTimeField(blank=True, null=True, verbose_name='Approved At')),
                ('rejected_at', models.DateTimeField(blank=True, null=True, verbose_name='Rejected At')),
                ('paid_at', models.DateTimeField(blank=True, null=True, verbose_name='Paid At')),
                ('rejection_reason', models.TextField(blank=True, verbose_name='Rejection Reason')),
                ('payment_reference', models.CharField(blank=True, help_text='Transfer ID, check number, etc.', max_length=100, verbose_name='Payment Reference')),
                ('year_number', models.PositiveSmallIntegerField(blank=True, null=True, verbose_name='Contract Year')),
                ('contract_value', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True, verbose_name='Contract Value')),
                ('commission_rate', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, verbose_name='Commission Rate (%)')),
                ('due_date', models.DateField(blank=True, null=True, verbose_name='Due Date')),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='approved_commissions', to=settings.AUTH_USER_MODEL, verbose_name='Approved By')),
                ('auto_approval_rule', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='commissions', to='reseller_commissions.autoapprovalrule', verbose_name='Auto-approval Rule')),
                ('customer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='commissions', to='reseller_commissions.customer', verbose_name='Customer')),
                ('reseller', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='commissions', to=settings.AUTH_USER_MODEL, verbose_name='Reseller')),
            ],
            options={
                'verbose_name': 'Commission',
                'verbose_name_plural': 'Commissions',
                'db_table': 'reseller_commissions_commission',
                'ordering': ['-requested_at', '-created_at'],
                'indexes': [
                    models.Index(fields=['reseller', 'status'], name='commission_reseller_status_idx'),
                    models.Index(fields=['status', 'period'], name='commission_status_period_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('amount__gt', 0)), name='commission_amount_positive'),
                    models.CheckConstraint(condition=models.Q(models.Q(('status', 'rejected'), _negated=True), models.Q(('rejection_reason', ''), _negated=True), _connector='OR'), name='commission_rejection_has_reason'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Document',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('name', models.CharField(max_length=200, verbose_name='Name')),
                ('description', models.TextField(blank=True, verbose_name='Description')),
                ('category', models.CharField(choices=[('invoice', 'Invoice'), ('contract', 'Contract'), ('other', 'Other')], default='other', max_length=20, verbose_name='Category')),
                ('file', models.FileField(upload_to='documents/', verbose_name='File')),
                ('mime_type', models.CharField(blank=True, max_length=100, verbose_name='MIME Type')),
                ('file_size', models.PositiveIntegerField(default=0, verbose_name='File Size')),
                ('is_public', models.BooleanField(default=False, verbose_name='Public')),
                ('commission', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='documents', to='reseller_commissions.commission', verbose_name='Commission')),
                ('shared_with', models.ManyToManyField(blank=True, related_name='shared_documents', to=settings.AUTH_USER_MODEL, verbose_name='Shared With')),
                ('uploaded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='uploaded_documents', to=settings.AUTH_USER_MODEL, verbose_name='Uploaded By')),
            ],
            options={
                'verbose_name': 'Document',
                'verbose_name_plural': 'Documents',
                'db_table': 'reseller_commissions_document',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('type', models.CharField(choices=[('commission_requested', 'Commission Requested'), ('commission_approved', 'Commission Approved'), ('commission_rejected', 'Commission Rejected'), ('commission_paid', 'Commission Paid')], max_length=40, verbose_name='Type')),
                ('title', models.CharField(max_length=200, verbose_name='Title')),
                ('message', models.TextField(verbose_name='Message')),
                ('metadata', models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder, verbose_name='Metadata')),
                ('read', models.BooleanField(default=False, verbose_name='Read')),
                ('email_sent', models.BooleanField(default=False, verbose_name='Email Sent')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='portal_notifications', to=settings.AUTH_USER_MODEL, verbose_name='User')),
            ],
            options={
                'verbose_name': 'Notification',
                'verbose_name_plural': 'Notifications',
                'db_table': 'reseller_commissions_notification',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['user', 'read'], name='notification_user_read_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='NotificationPreference',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('type', models.CharField(choices=[('commission_requested', 'Commission Requested'), ('commission_approved', 'Commission Approved'), ('commission_rejected', 'Commission Rejected'), ('commission_paid', 'Commission Paid')], max_length=40, verbose_name='Type')),
                ('email_enabled', models.BooleanField(default=True, verbose_name='Email')),
                ('in_app_enabled', models.BooleanField(default=True, verbose_name='In-app')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notification_preferences', to=settings.AUTH_USER_MODEL, verbose_name='User')),
            ],
            options={
                'verbose_name': 'Notification Preference',
                'verbose_name_plural': 'Notification Preferences',
                'db_table': 'reseller_commissions_notification_preference',
                'unique_together': {('user', 'type')},
            },
        ),
        migrations.CreateModel(
            name='OutboundEmail',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('recipient', models.EmailField(max_length=254, verbose_name='Recipient')),
                ('subject', models.CharField(max_length=255, verbose_name='Subject')),
                ('html_body', models.TextField(verbose_name='HTML Body')),
                ('text_body', models.TextField(blank=True, verbose_name='Text Body')),
                ('status', models.CharField(choices=[('queued', 'Queued'), ('sending', 'Sending'), ('sent', 'Sent'), ('failed', 'Failed')], default='queued', max_length=20, verbose_name='Status')),
                ('attempts', models.PositiveSmallIntegerField(default=0, verbose_name='Attempts')),
                ('last_error', models.TextField(blank=True, verbose_name='Last Error')),
                ('sent_at', models.DateTimeField(blank=True, null=True, verbose_name='Sent At')),
                ('notification', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='emails', to='reseller_commissions.notification', verbose_name='Notification')),
            ],
            options={
                'verbose_name': 'Outbound Email',
                'verbose_name_plural': 'Outbound Emails',
                'db_table': 'reseller_commissions_outbound_email',
                'ordering': ['created_at'],
            },
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('created', 'Commission Created'), ('auto_approved', 'Commission Auto-approved'), ('approved', 'Commission Approved'), ('rejected', 'Commission Rejected'), ('mark_paid', 'Commission Paid'), ('rule_created', 'Auto-approval Rule Created'), ('rule_updated', 'Auto-approval Rule Updated'), ('rule_deleted', 'Auto-approval Rule Deleted'), ('user_marked_trusted', 'Reseller Marked Trusted'), ('user_unmarked_trusted', 'Reseller Unmarked Trusted'), ('deal_closed', 'Deal Closed')], max_length=40, verbose_name='Action')),
                ('entity_type', models.CharField(max_length=50, verbose_name='Entity Type')),
                ('entity_id', models.CharField(blank=True, max_length=50, verbose_name='Entity ID')),
                ('changes', models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, null=True, verbose_name='Changes')),
                ('metadata', models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, null=True, verbose_name='Metadata')),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True, verbose_name='IP Address')),
                ('user_agent', models.CharField(blank=True, max_length=255, verbose_name='User Agent')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('performed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to=settings.AUTH_USER_MODEL, verbose_name='Performed By')),
            ],
            options={
                'verbose_name': 'Audit Log Entry',
                'verbose_name_plural': 'Audit Log',
                'db_table': 'reseller_commissions_audit_log',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['entity_type', 'entity_id'], name='audit_log_entity_idx'),
                    models.Index(fields=['action'], name='audit_log_action_idx'),
                ],
            },
        ),
    ]
