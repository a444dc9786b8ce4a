"""
Tests for the commission lifecycle service.
"""
import pytest
from decimal import Decimal

from django.template import TemplateDoesNotExist
from django.utils import timezone

from reseller_commissions.exceptions import (
    CommissionNotFound,
    CommissionValidationError,
    InvalidStateTransition,
    NotAuthorized,
)
from reseller_commissions.models import (
    AuditLog,
    AutoApprovalRule,
    Commission,
    Customer,
    Document,
    Notification,
    NotificationPreference,
    OutboundEmail,
    PortalProfile,
)
from reseller_commissions.services import CommissionService, RuleEvaluator


@pytest.mark.django_db
class TestCreateCommission:
    """Tests for commission requests."""

    def test_auto_approved_by_matching_rule(self, reseller_actor, small_amount_rule):
        """Test a matching rule approves the commission on creation."""
        commission, auto_approved = CommissionService.create_commission(
            reseller_actor, amount='500', period='2024-Q1'
        )
        assert auto_approved is True
        commission.refresh_from_db()
        assert commission.status == Commission.STATUS_APPROVED
        assert commission.auto_approved is True
        assert commission.approved_by_id is None
        assert commission.approved_at is not None
        assert commission.auto_approval_rule_id == small_amount_rule.id
        assert commission.auto_approval_rule_name == 'Small amounts'

    def test_auto_approval_records_both_events(self, reseller_actor, small_amount_rule):
        """Test creation and auto-approval are audited separately."""
        commission, _ = CommissionService.create_commission(
            reseller_actor, amount='500', period='2024-Q1'
        )
        actions = list(
            AuditLog.objects.filter(entity_id=str(commission.id))
            .order_by('id').values_list('action', flat=True)
        )
        assert actions == ['created', 'auto_approved']

        entry = AuditLog.objects.get(action='auto_approved')
        assert entry.performed_by_id == reseller_actor.id
        assert entry.changes['old_status'] == 'pending'
        assert entry.changes['new_status'] == 'approved'
        assert entry.changes['rule_id'] == small_amount_rule.id

    def test_auto_approval_notifies_reseller_once(self, reseller_actor, portal_admin, small_amount_rule):
        """Test only the reseller hears about an auto-approval."""
        commission, _ = CommissionService.create_commission(
            reseller_actor, amount='500', period='2024-Q1'
        )
        notifications = Notification.objects.all()
        assert notifications.count() == 1
        notification = notifications.get()
        assert notification.user_id == reseller_actor.id
        assert notification.type == Notification.TYPE_COMMISSION_APPROVED
        assert 'Small amounts' in notification.message
        assert notification.metadata['commission_id'] == commission.id

    def test_auto_approval_has_no_payout_document(self, reseller_actor, small_amount_rule):
        """Test auto-approval does not generate a payout document."""
        CommissionService.create_commission(reseller_actor, amount='500', period='2024-Q1')
        assert not Document.objects.exists()

    def test_no_match_stays_pending(self, reseller_actor, trusted_rule):
        """Test an unmatched commission waits for review."""
        commission, auto_approved = CommissionService.create_commission(
            reseller_actor, amount='500', period='2024-Q1'
        )
        assert auto_approved is False
        assert commission.status == Commission.STATUS_PENDING
        assert commission.auto_approved is False
        assert AuditLog.objects.filter(action='created').count() == 1
        assert not AuditLog.objects.filter(action='auto_approved').exists()

    def test_no_match_notifies_admins(self, reseller_actor, portal_admin):
        """Test admins are told about a new request."""
        CommissionService.create_commission(reseller_actor, amount='500', period='2024-Q1')
        notification = Notification.objects.get(user=portal_admin)
        assert notification.type == Notification.TYPE_COMMISSION_REQUESTED
        assert 'Reseller' in notification.message
        assert not Notification.objects.filter(user_id=reseller_actor.id).exists()

    def test_admin_notification_can_be_disabled(self, settings, reseller_actor, portal_admin):
        """Test the notify_admins_on_request setting."""
        settings.RESELLER_COMMISSIONS = {'notify_admins_on_request': False}
        CommissionService.create_commission(reseller_actor, amount='500', period='2024-Q1')
        assert not Notification.objects.exists()

    def test_trusted_reseller_matches_trusted_rule(self, trusted_actor, trusted_rule):
        """Test trusted resellers can use trusted-only rules."""
        commission, auto_approved = CommissionService.create_commission(
            trusted_actor, amount='25000', period='2024'
        )
        assert auto_approved is True
        assert commission.auto_approval_rule_id == trusted_rule.id

    @pytest.mark.parametrize('amount', ['0', '-5', 'abc', '', None])
    def test_invalid_amount(self, reseller_actor, amount):
        """Test invalid amounts are refused before any write."""
        with pytest.raises(CommissionValidationError) as exc:
            CommissionService.create_commission(reseller_actor, amount=amount, period='2024-Q1')
        assert exc.value.message == "Valid amount is required"
        assert not Commission.objects.exists()

    def test_missing_period(self, reseller_actor):
        """Test a blank period is refused."""
        with pytest.raises(CommissionValidationError) as exc:
            CommissionService.create_commission(reseller_actor, amount='10', period='   ')
        assert exc.value.message == "Period is required"
        assert not Commission.objects.exists()

    def test_amount_rounded_to_cents(self, reseller_actor):
        """Test amounts are rounded half up to cents."""
        commission, _ = CommissionService.create_commission(
            reseller_actor, amount='10.005', period='2024-Q1'
        )
        assert commission.amount == Decimal('10.01')

    def test_admin_cannot_request(self, admin_actor):
        """Test only resellers create commission requests."""
        with pytest.raises(NotAuthorized):
            CommissionService.create_commission(admin_actor, amount='10', period='2024-Q1')

    def test_with_own_customer(self, reseller_actor, customer):
        """Test linking a customer of the reseller."""
        commission, _ = CommissionService.create_commission(
            reseller_actor, amount='10', period='2024-Q1', customer_id=customer.id,
            description='Setup fee', notes='Paid in advance',
        )
        assert commission.customer == customer
        assert commission.description == 'Setup fee'

    def test_with_foreign_customer(self, other_reseller, customer):
        """Test another reseller's customer is not found."""
        from reseller_commissions.permissions import ActingUser

        actor = ActingUser.from_user(other_reseller)
        with pytest.raises(CommissionNotFound) as exc:
            CommissionService.create_commission(
                actor, amount='10', period='2024-Q1', customer_id=customer.id
            )
        assert exc.value.message == "Customer not found"

    def test_rule_snapshot_survives_disable(self, reseller_actor, small_amount_rule):
        """Test the approving rule is kept after the rule is disabled."""
        commission, _ = CommissionService.create_commission(
            reseller_actor, amount='500', period='2024-Q1'
        )
        small_amount_rule.enabled = False
        small_amount_rule.save()

        commission.refresh_from_db()
        assert commission.auto_approval_rule_id == small_amount_rule.id
        assert commission.status == Commission.STATUS_APPROVED

    @pytest.mark.django_db(transaction=True)
    def test_rule_deleted_before_save(self, reseller_actor, small_amount_rule, monkeypatch):
        """Test a rule deleted after matching leaves the request pending."""
        evaluate = RuleEvaluator.evaluate_for_reseller

        def evaluate_then_delete(amount, reseller_id):
            match = evaluate(amount, reseller_id)
            AutoApprovalRule.objects.filter(pk=match.rule_id).delete()
            return match

        monkeypatch.setattr(RuleEvaluator, 'evaluate_for_reseller', staticmethod(evaluate_then_delete))
        commission, auto_approved = CommissionService.create_commission(
            reseller_actor, amount='500', period='2024-Q1'
        )
        assert auto_approved is False
        commission.refresh_from_db()
        assert commission.status == Commission.STATUS_PENDING
        assert commission.auto_approval_rule_id is None
        assert Commission.objects.count() == 1
        assert not AuditLog.objects.filter(action='auto_approved').exists()

    def test_amount_above_column_limit(self, reseller_actor):
        """Test amounts the amount column cannot hold are refused."""
        with pytest.raises(CommissionValidationError) as exc:
            CommissionService.create_commission(reseller_actor, amount='10000000000', period='2024-Q1')
        assert exc.value.message == "Valid amount is required"
        assert not Commission.objects.exists()


@pytest.mark.django_db
class TestApprove:
    """Tests for manual approval."""

    def test_approve(self, admin_actor, pending_commission, portal_admin):
        """Test approving a pending commission."""
        commission = CommissionService.approve(admin_actor, pending_commission, notes='Checked')
        assert commission.status == Commission.STATUS_APPROVED
        assert commission.approved_by == portal_admin
        assert commission.approved_at is not None
        assert commission.auto_approved is False
        assert commission.notes == 'Checked'

        entry = AuditLog.objects.get(action='approved')
        assert entry.performed_by_id == admin_actor.id
        assert entry.changes['old_status'] == 'pending'
        assert entry.changes['new_status'] == 'approved'

    def test_approve_generates_payout_document(self, admin_actor, pending_commission, reseller):
        """Test the payout document is stored and shared with the reseller."""
        CommissionService.approve(admin_actor, pending_commission)

        document = Document.objects.get(commission=pending_commission)
        year = timezone.now().year
        assert document.name == f"Payout document PAY-{year}-{pending_commission.id:06d}"
        assert document.category == 'invoice'
        assert document.is_public is False
        assert list(document.shared_with.all()) == [reseller]
        with document.file.open('rb') as fh:
            content = fh.read().decode('utf-8')
        assert 'EUR 500.00' in content
        assert AuditLog.objects.get(action='approved').changes['document_id'] == document.id

    def test_document_failure_does_not_block_approval(self, admin_actor, pending_commission, monkeypatch):
        """Test a payout document failure is logged, not raised."""
        def broken(commission, approved_by):
            raise OSError('disk full')

        monkeypatch.setattr(
            'reseller_commissions.services.commission_service.generate_payout_document', broken
        )
        commission = CommissionService.approve(admin_actor, pending_commission)
        assert commission.status == Commission.STATUS_APPROVED
        assert not Document.objects.exists()
        assert AuditLog.objects.get(action='approved').changes['document_id'] is None
        assert Notification.objects.filter(type=Notification.TYPE_COMMISSION_APPROVED).count() == 1

    def test_notification_failure_does_not_block_approval(self, admin_actor, pending_commission, monkeypatch):
        """Test a broken email template is logged and the approval stands."""
        def broken(template_name, context=None, *args, **kwargs):
            raise TemplateDoesNotExist(template_name)

        monkeypatch.setattr('reseller_commissions.services.notification_service.render_to_string', broken)
        commission = CommissionService.approve(admin_actor, pending_commission)
        assert commission.status == Commission.STATUS_APPROVED

        pending_commission.refresh_from_db()
        assert pending_commission.status == Commission.STATUS_APPROVED
        assert AuditLog.objects.filter(action='approved').count() == 1
        assert not Notification.objects.exists()
        assert not OutboundEmail.objects.exists()

    def test_approve_twice(self, admin_actor, pending_commission):
        """Test the second approval is an invalid transition."""
        CommissionService.approve(admin_actor, pending_commission)
        with pytest.raises(InvalidStateTransition) as exc:
            CommissionService.approve(admin_actor, pending_commission)
        assert exc.value.current_status == 'approved'

        pending_commission.refresh_from_db()
        assert pending_commission.status == Commission.STATUS_APPROVED
        assert AuditLog.objects.filter(action='approved').count() == 1

    def test_stale_instance_approval(self, admin_actor, pending_commission):
        """Test approving through a stale copy is refused once the row has moved on."""
        first = Commission.objects.get(pk=pending_commission.pk)
        second = Commission.objects.get(pk=pending_commission.pk)
        assert first.status == second.status == Commission.STATUS_PENDING

        CommissionService.approve(admin_actor, first)
        with pytest.raises(InvalidStateTransition):
            CommissionService.approve(admin_actor, second)

        assert AuditLog.objects.filter(action='approved').count() == 1
        assert Notification.objects.filter(type=Notification.TYPE_COMMISSION_APPROVED).count() == 1
        assert Document.objects.filter(commission=pending_commission).count() == 1

    def test_reseller_cannot_approve(self, reseller_actor, pending_commission):
        """Test authorization is checked before the commission is touched."""
        with pytest.raises(NotAuthorized):
            CommissionService.approve(reseller_actor, pending_commission)
        pending_commission.refresh_from_db()
        assert pending_commission.status == Commission.STATUS_PENDING

    def test_approve_deleted_commission(self, admin_actor, pending_commission):
        """Test a vanished row is reported as not found."""
        Commission.objects.filter(pk=pending_commission.pk).delete()
        with pytest.raises(CommissionNotFound):
            CommissionService.approve(admin_actor, pending_commission)


@pytest.mark.django_db
class TestReject:
    """Tests for rejection."""

    def test_reject(self, admin_actor, pending_commission):
        """Test rejecting with a reason."""
        commission = CommissionService.reject(admin_actor, pending_commission, '  Duplicate request ')
        assert commission.status == Commission.STATUS_REJECTED
        assert commission.rejection_reason == 'Duplicate request'
        assert commission.rejected_at is not None

        notification = Notification.objects.get(type=Notification.TYPE_COMMISSION_REJECTED)
        assert notification.user_id == pending_commission.reseller_id
        assert 'Duplicate request' in notification.message
        assert AuditLog.objects.get(action='rejected').changes['rejection_reason'] == 'Duplicate request'

    @pytest.mark.parametrize('reason', ['', '   ', None])
    def test_reject_without_reason(self, admin_actor, pending_commission, reason):
        """Test a missing reason is a validation error and nothing changes."""
        with pytest.raises(CommissionValidationError) as exc:
            CommissionService.reject(admin_actor, pending_commission, reason)
        assert exc.value.message == "Rejection reason is required"

        pending_commission.refresh_from_db()
        assert pending_commission.status == Commission.STATUS_PENDING
        assert not AuditLog.objects.filter(action='rejected').exists()
        assert not Notification.objects.exists()

    def test_reject_approved(self, admin_actor, approved_commission):
        """Test an approved commission cannot be rejected."""
        with pytest.raises(InvalidStateTransition):
            CommissionService.reject(admin_actor, approved_commission, 'Too late')
        approved_commission.refresh_from_db()
        assert approved_commission.status == Commission.STATUS_APPROVED

    def test_reject_twice(self, admin_actor, pending_commission):
        """Test a rejected commission stays rejected."""
        CommissionService.reject(admin_actor, pending_commission, 'No')
        with pytest.raises(InvalidStateTransition):
            CommissionService.reject(admin_actor, pending_commission, 'Still no')


@pytest.mark.django_db
class TestMarkPaid:
    """Tests for payment."""

    def test_mark_paid(self, admin_actor, approved_commission):
        """Test marking an approved commission as paid."""
        commission = CommissionService.mark_paid(admin_actor, approved_commission, 'TRX-123')
        assert commission.status == Commission.STATUS_PAID
        assert commission.payment_reference == 'TRX-123'
        assert commission.paid_at is not None

        notification = Notification.objects.get(type=Notification.TYPE_COMMISSION_PAID)
        assert 'TRX-123' in notification.message
        assert OutboundEmail.objects.filter(recipient='reseller@example.com').count() == 1
        assert AuditLog.objects.get(action='mark_paid').changes['new_status'] == 'paid'

    def test_mark_paid_without_reference(self, admin_actor, approved_commission):
        """Test the payment reference is optional."""
        commission = CommissionService.mark_paid(admin_actor, approved_commission)
        assert commission.status == Commission.STATUS_PAID
        assert commission.payment_reference == ''

    def test_mark_pending_paid(self, admin_actor, pending_commission):
        """Test a pending commission cannot be paid."""
        with pytest.raises(InvalidStateTransition) as exc:
            CommissionService.mark_paid(admin_actor, pending_commission)
        assert exc.value.current_status == 'pending'

    def test_paid_is_terminal(self, admin_actor, approved_commission):
        """Test no action leaves the paid state."""
        CommissionService.mark_paid(admin_actor, approved_commission)
        for action in ('APPROVE', 'MARK_PAID'):
            with pytest.raises(InvalidStateTransition):
                CommissionService.transition(admin_actor, approved_commission, action)
        with pytest.raises(InvalidStateTransition):
            CommissionService.transition(
                admin_actor, approved_commission, 'REJECT', rejection_reason='Oops'
            )


@pytest.mark.django_db
class TestTransitionDispatch:
    """Tests for action dispatch and bulk actions."""

    def test_transition_lowercase_action(self, admin_actor, pending_commission):
        """Test actions are case-insensitive."""
        commission = CommissionService.transition(admin_actor, pending_commission, 'approve')
        assert commission.status == Commission.STATUS_APPROVED

    def test_transition_unknown_action(self, admin_actor, pending_commission):
        """Test unknown actions are validation errors."""
        with pytest.raises(CommissionValidationError):
            CommissionService.transition(admin_actor, pending_commission, 'ARCHIVE')

    def test_bulk_approve(self, admin_actor, pending_commission, approved_commission):
        """Test each commission transitions on its own."""
        result = CommissionService.bulk_transition(
            admin_actor, [pending_commission.id, approved_commission.id, 99999], 'APPROVE'
        )
        assert result['succeeded'] == [pending_commission.id]
        assert 'cannot approve' in result['failed'][approved_commission.id]
        assert result['failed'][99999] == "Commission not found"

        pending_commission.refresh_from_db()
        assert pending_commission.status == Commission.STATUS_APPROVED

    def test_bulk_reject_requires_reason(self, admin_actor, pending_commission):
        """Test bulk rejection validates the reason up front."""
        with pytest.raises(CommissionValidationError):
            CommissionService.bulk_transition(admin_actor, [pending_commission.id], 'REJECT')

    def test_bulk_requires_ids(self, admin_actor):
        """Test an empty selection is refused."""
        with pytest.raises(CommissionValidationError):
            CommissionService.bulk_transition(admin_actor, [], 'APPROVE')

    def test_bulk_by_reseller(self, reseller_actor, pending_commission):
        """Test authorization failures are reported per commission."""
        result = CommissionService.bulk_transition(reseller_actor, [pending_commission.id], 'APPROVE')
        assert result['succeeded'] == []
        assert pending_commission.id in result['failed']


@pytest.mark.django_db
class TestQueries:
    """Tests for commission queries."""

    def test_reseller_sees_own(self, reseller_actor, pending_commission, other_reseller):
        """Test resellers only list their own commissions."""
        Commission.objects.create(reseller=other_reseller, amount=Decimal('5'), period='2024-Q1')
        commissions = CommissionService.get_commissions(reseller_actor)
        assert commissions == [pending_commission]

    def test_admin_filters(self, admin_actor, pending_commission, approved_commission):
        """Test admins filter by status and period."""
        assert CommissionService.get_commissions(admin_actor, status='APPROVED') == [approved_commission]
        assert CommissionService.get_commissions(admin_actor, period='2024-Q1') == [pending_commission]
        assert len(CommissionService.get_commissions(admin_actor, status='ALL')) == 2

    def test_get_other_resellers_commission(self, other_reseller, pending_commission):
        """Test a reseller cannot read someone else's commission."""
        from reseller_commissions.permissions import ActingUser

        with pytest.raises(NotAuthorized):
            CommissionService.get_commission(ActingUser.from_user(other_reseller), pending_commission.id)

    def test_get_missing_commission(self, admin_actor):
        """Test a missing commission is not found."""
        with pytest.raises(CommissionNotFound):
            CommissionService.get_commission(admin_actor, 99999)

    def test_role_without_view_permission(self, reseller, pending_commission):
        """Test a role lacking both view permissions sees nothing."""
        from reseller_commissions.permissions import ActingUser

        actor = ActingUser(id=reseller.id, role='auditor')
        with pytest.raises(NotAuthorized):
            CommissionService.get_commissions(actor)
        with pytest.raises(NotAuthorized):
            CommissionService.get_commission(actor, pending_commission.id)


@pytest.mark.django_db
class TestCloseDeal:
    """Tests for closing customer deals."""

    def test_close_deal_per_year(self, admin_actor, customer, reseller):
        """Test one commission per contract year up to the reseller's term."""
        PortalProfile.objects.filter(user=reseller).update(
            commission_rate=Decimal('10.00'), commission_years=3
        )
        result = CommissionService.close_deal(admin_actor, customer, '12000', 2)

        commissions = result['commissions']
        year = timezone.now().year
        assert [c.amount for c in commissions] == [Decimal('1200.00'), Decimal('1200.00')]
        assert [c.period for c in commissions] == [str(year), str(year + 1)]
        assert [c.year_number for c in commissions] == [1, 2]
        assert all(c.status == Commission.STATUS_PENDING for c in commissions)
        assert result['total_amount'] == Decimal('2400.00')

        customer.refresh_from_db()
        assert customer.status == 'active'
        assert customer.contract_value == Decimal('12000')
        assert customer.closed_by_id == admin_actor.id

    def test_close_deal_one_off(self, admin_actor, customer, reseller):
        """Test a one-off reseller gets a single commission for the total."""
        PortalProfile.objects.filter(user=reseller).update(
            commission_rate=Decimal('5.00'), commission_years=3, is_one_off_payment=True
        )
        result = CommissionService.close_deal(admin_actor, customer, '10000', 5)
        assert len(result['commissions']) == 1
        assert result['commissions'][0].amount == Decimal('1500.00')

    def test_close_deal_total_above_column_limit(self, admin_actor, customer, reseller):
        """Test a one-off total the amount column cannot hold is refused."""
        PortalProfile.objects.filter(user=reseller).update(
            commission_rate=Decimal('100.00'), commission_years=3, is_one_off_payment=True
        )
        with pytest.raises(CommissionValidationError) as exc:
            CommissionService.close_deal(admin_actor, customer, '9999999999.99', 3)
        assert exc.value.message == "Commission amount is too large"
        assert not Commission.objects.exists()
        customer.refresh_from_db()
        assert customer.status != 'active'

    def test_close_deal_notifies_and_audits(self, admin_actor, customer, reseller):
        """Test the reseller is notified once and each commission is audited."""
        PortalProfile.objects.filter(user=reseller).update(commission_years=2)
        result = CommissionService.close_deal(admin_actor, customer, '1000', 2)

        notification = Notification.objects.get(user=reseller)
        assert notification.title == "Commissions Created"
        assert 'Globex' in notification.message
        assert AuditLog.objects.filter(action='deal_closed', entity_id=str(customer.id)).count() == 1
        assert AuditLog.objects.filter(action='created').count() == len(result['commissions'])

    def test_close_deal_twice(self, admin_actor, customer):
        """Test an active customer cannot be closed again."""
        CommissionService.close_deal(admin_actor, customer, '1000', 1)
        with pytest.raises(InvalidStateTransition):
            CommissionService.close_deal(admin_actor, customer, '1000', 1)
        assert Commission.objects.count() == 1

    def test_close_deal_zero_rate(self, admin_actor, customer, reseller):
        """Test no commissions are created at a zero rate."""
        PortalProfile.objects.filter(user=reseller).update(commission_rate=Decimal('0'))
        result = CommissionService.close_deal(admin_actor, customer, '1000', 1)
        assert result['commissions'] == []
        assert Customer.objects.get(pk=customer.pk).status == 'active'

    def test_close_deal_invalid_input(self, admin_actor, customer):
        """Test contract value and duration are validated."""
        with pytest.raises(CommissionValidationError):
            CommissionService.close_deal(admin_actor, customer, '0', 1)
        with pytest.raises(CommissionValidationError):
            CommissionService.close_deal(admin_actor, customer, '1000', 0)

    def test_reseller_cannot_close_deal(self, reseller_actor, customer):
        """Test closing deals is admin only."""
        with pytest.raises(NotAuthorized):
            CommissionService.close_deal(reseller_actor, customer, '1000', 1)


@pytest.mark.django_db
class TestResellerTrust:
    """Tests for the reseller trust flag."""

    def test_toggle_trust(self, admin_actor, reseller):
        """Test toggling and audit entries."""
        profile = CommissionService.set_reseller_trust(admin_actor, reseller)
        assert profile.is_trusted is True
        profile = CommissionService.set_reseller_trust(admin_actor, reseller)
        assert profile.is_trusted is False

        actions = list(AuditLog.objects.order_by('id').values_list('action', flat=True))
        assert actions == ['user_marked_trusted', 'user_unmarked_trusted']

    def test_set_trust_explicitly(self, admin_actor, reseller):
        """Test setting an explicit value."""
        CommissionService.set_reseller_trust(admin_actor, reseller, True)
        CommissionService.set_reseller_trust(admin_actor, reseller, True)
        assert PortalProfile.objects.get(user=reseller).is_trusted is True

    def test_only_resellers(self, admin_actor, portal_admin):
        """Test admins cannot be marked trusted."""
        with pytest.raises(CommissionValidationError):
            CommissionService.set_reseller_trust(admin_actor, portal_admin)

    def test_trust_enables_trusted_rules(self, admin_actor, reseller, reseller_actor, trusted_rule):
        """Test a newly trusted reseller matches trusted-only rules."""
        CommissionService.set_reseller_trust(admin_actor, reseller, True)
        _commission, auto_approved = CommissionService.create_commission(
            reseller_actor, amount='5000', period='2024'
        )
        assert auto_approved is True


@pytest.mark.django_db
class TestNotificationPreferencesInLifecycle:
    """Tests for delivery preferences on lifecycle events."""

    def test_in_app_disabled(self, admin_actor, pending_commission, reseller):
        """Test disabling in-app keeps the email."""
        NotificationPreference.objects.create(
            user=reseller, type=Notification.TYPE_COMMISSION_APPROVED, in_app_enabled=False
        )
        CommissionService.approve(admin_actor, pending_commission)
        assert not Notification.objects.filter(user=reseller).exists()
        assert OutboundEmail.objects.filter(recipient=reseller.email).count() == 1
