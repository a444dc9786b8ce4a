"""
Commission Service - Commission lifecycle, deals and reseller trust.

Status only moves forward: pending -> approved -> paid, or pending -> rejected.
Every transition is a conditional UPDATE on the expected prior status, so of
two concurrent attempts exactly one changes the row and only that one runs
the side effects.
"""
import logging
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Tuple

from django.db import transaction
from django.utils import timezone

from ..conf import get_setting
from ..exceptions import (
    CommissionError,
    CommissionNotFound,
    CommissionValidationError,
    InvalidStateTransition,
    NotAuthorized,
)
from ..models import AutoApprovalRule, Commission, Customer, Notification, PortalProfile
from ..permissions import ActingUser
from .audit_service import AuditService
from .auto_approval import NO_MATCH, MatchResult, RuleEvaluator
from .notification_service import NotificationService
from .payout_document import generate_payout_document

logger = logging.getLogger(__name__)

ACTION_APPROVE = 'APPROVE'
ACTION_REJECT = 'REJECT'
ACTION_MARK_PAID = 'MARK_PAID'
ACTIONS = (ACTION_APPROVE, ACTION_REJECT, ACTION_MARK_PAID)

CENT = Decimal('0.01')
# Largest value the 12-digit, 2-decimal money columns can hold
MAX_AMOUNT = Decimal('9999999999.99')


def parse_amount(value, message: str = "Valid amount is required") -> Decimal:
    """Parse a positive money amount, rounded to cents."""
    try:
        amount = Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        raise CommissionValidationError(message)
    if not amount.is_finite() or amount <= 0 or amount > MAX_AMOUNT:
        raise CommissionValidationError(message)
    return amount


class CommissionService:
    """Service class for commission operations."""

    # ==================== Queries ====================

    @staticmethod
    def get_commission(actor: ActingUser, commission_id: int) -> Commission:
        """Get a commission the actor may see."""
        try:
            commission = Commission.objects.select_related(
                'customer', 'reseller', 'approved_by', 'auto_approval_rule'
            ).get(pk=commission_id)
        except Commission.DoesNotExist:
            raise CommissionNotFound("Commission not found")

        if actor.has_permission('view_commission'):
            return commission
        if actor.has_permission('view_own_commission') and commission.reseller_id == actor.id:
            return commission
        raise NotAuthorized("You cannot view this commission")

    @staticmethod
    def get_commissions(
        actor: ActingUser,
        status: Optional[str] = None,
        period: Optional[str] = None,
        reseller_id: Optional[int] = None,
    ) -> List[Commission]:
        """Get commissions with filters. Resellers only see their own."""
        qs = Commission.objects.select_related('customer', 'reseller', 'approved_by')

        if not actor.has_permission('view_commission'):
            actor.require('view_own_commission')
            qs = qs.filter(reseller_id=actor.id)
        elif reseller_id:
            qs = qs.filter(reseller_id=reseller_id)

        if status and status.upper() != 'ALL':
            qs = qs.filter(status=status.lower())
        if period and period.upper() != 'ALL':
            qs = qs.filter(period=period)

        return list(qs.order_by('-requested_at', '-created_at'))

    # ==================== Creation ====================

    @staticmethod
    def create_commission(
        actor: ActingUser,
        amount,
        period: str,
        customer_id: Optional[int] = None,
        description: str = '',
        notes: str = '',
    ) -> Tuple[Commission, bool]:
        """Create a commission request; auto-approve it when a rule matches.

        Returns the commission and whether it was auto-approved.
        """
        actor.require('request_commission', "Only resellers can create commission requests")

        amount = parse_amount(amount)
        period = (period or '').strip()
        if not period:
            raise CommissionValidationError("Period is required")

        customer = None
        if customer_id:
            customer = Customer.objects.filter(pk=customer_id, reseller_id=actor.id).first()
            if customer is None:
                raise CommissionNotFound("Customer not found")

        match = RuleEvaluator.evaluate_for_reseller(amount, actor.id)

        with transaction.atomic():
            commission = Commission.objects.create(
                reseller_id=actor.id,
                customer=customer,
                amount=amount,
                period=period,
                description=description or '',
                notes=notes or '',
                status=Commission.STATUS_PENDING,
                requested_at=timezone.now(),
            )
            AuditService.log(
                'created', actor.id, 'Commission', commission.pk,
                changes={
                    'old_status': None,
                    'new_status': Commission.STATUS_PENDING,
                    'amount': amount,
                    'period': period,
                    'customer_id': customer.pk if customer else None,
                },
            )
            if match.matched and not CommissionService._lock_rule(match.rule_id):
                logger.warning(
                    f"Auto-approval rule {match.rule_id} was deleted before commission "
                    f"{commission.pk} was saved, leaving it for manual review"
                )
                match = NO_MATCH
            if match.matched:
                CommissionService._apply_auto_approval(commission, match)

        if match.matched:
            logger.info(f"Commission {commission.pk} auto-approved by rule {match.rule_id}")
        elif get_setting('notify_admins_on_request'):
            NotificationService.notify_admins(Notification.TYPE_COMMISSION_REQUESTED, {
                'commission_id': commission.pk,
                'reseller_name': commission.reseller.get_full_name() or commission.reseller.get_username(),
                'amount': commission.amount,
                'period': commission.period,
            })

        return commission, match.matched

    @staticmethod
    def _lock_rule(rule_id: int) -> bool:
        # Held until commit so the rule cannot be deleted under the FK write
        return AutoApprovalRule.objects.select_for_update().filter(
            pk=rule_id
        ).values_list('pk', flat=True).first() is not None

    @staticmethod
    def _apply_auto_approval(commission: Commission, match: MatchResult) -> None:
        CommissionService._compare_and_set(
            commission, Commission.STATUS_PENDING, 'auto-approve',
            status=Commission.STATUS_APPROVED,
            auto_approved=True,
            auto_approval_rule_id=match.rule_id,
            auto_approval_rule_name=match.rule_name,
            approved_at=timezone.now(),
        )
        CommissionService._notify_reseller(
            commission, Notification.TYPE_COMMISSION_APPROVED,
            auto_approved=True, rule_name=match.rule_name,
        )
        # System action, attributed to the reseller who requested it
        AuditService.log(
            'auto_approved', commission.reseller_id, 'Commission', commission.pk,
            changes={
                'old_status': Commission.STATUS_PENDING,
                'new_status': Commission.STATUS_APPROVED,
                'amount': commission.amount,
                'period': commission.period,
                'rule_id': match.rule_id,
                'rule_name': match.rule_name,
            },
        )

    # ==================== Transitions ====================

    @staticmethod
    def approve(actor: ActingUser, commission: Commission, notes: str = '') -> Commission:
        """Approve a pending commission and generate its payout document."""
        actor.require('approve_commission', "Only admins can approve commissions")

        fields = {
            'status': Commission.STATUS_APPROVED,
            'approved_at': timezone.now(),
            'approved_by_id': actor.id,
        }
        if notes:
            fields['notes'] = notes

        with transaction.atomic():
            CommissionService._compare_and_set(
                commission, Commission.STATUS_PENDING, 'approve', **fields
            )
            document_id = CommissionService._generate_payout_document(commission)
            CommissionService._notify_reseller(commission, Notification.TYPE_COMMISSION_APPROVED)
            AuditService.log(
                'approved', actor.id, 'Commission', commission.pk,
                changes={
                    'old_status': Commission.STATUS_PENDING,
                    'new_status': Commission.STATUS_APPROVED,
                    'amount': commission.amount,
                    'period': commission.period,
                    'document_id': document_id,
                },
            )
        return commission

    @staticmethod
    def reject(
        actor: ActingUser,
        commission: Commission,
        rejection_reason: str,
        notes: str = '',
    ) -> Commission:
        """Reject a pending commission. A reason is required."""
        actor.require('reject_commission', "Only admins can reject commissions")

        reason = (rejection_reason or '').strip()
        if not reason:
            raise CommissionValidationError("Rejection reason is required")

        fields = {
            'status': Commission.STATUS_REJECTED,
            'rejected_at': timezone.now(),
            'rejection_reason': reason,
        }
        if notes:
            fields['notes'] = notes

        with transaction.atomic():
            CommissionService._compare_and_set(
                commission, Commission.STATUS_PENDING, 'reject', **fields
            )
            CommissionService._notify_reseller(
                commission, Notification.TYPE_COMMISSION_REJECTED, rejection_reason=reason,
            )
            AuditService.log(
                'rejected', actor.id, 'Commission', commission.pk,
                changes={
                    'old_status': Commission.STATUS_PENDING,
                    'new_status': Commission.STATUS_REJECTED,
                    'rejection_reason': reason,
                },
            )
        return commission

    @staticmethod
    def mark_paid(
        actor: ActingUser,
        commission: Commission,
        payment_reference: str = '',
        notes: str = '',
    ) -> Commission:
        """Mark an approved commission as paid."""
        actor.require('pay_commission', "Only admins can mark commissions as paid")

        reference = (payment_reference or '').strip()
        fields = {
            'status': Commission.STATUS_PAID,
            'paid_at': timezone.now(),
            'payment_reference': reference,
        }
        if notes:
            fields['notes'] = notes

        with transaction.atomic():
            CommissionService._compare_and_set(
                commission, Commission.STATUS_APPROVED, 'mark as paid', **fields
            )
            CommissionService._notify_reseller(
                commission, Notification.TYPE_COMMISSION_PAID,
                payment_reference=reference or None,
            )
            AuditService.log(
                'mark_paid', actor.id, 'Commission', commission.pk,
                changes={
                    'old_status': Commission.STATUS_APPROVED,
                    'new_status': Commission.STATUS_PAID,
                    'payment_reference': reference,
                },
            )
        return commission

    @staticmethod
    def transition(
        actor: ActingUser,
        commission: Commission,
        action: str,
        notes: str = '',
        rejection_reason: str = '',
        payment_reference: str = '',
    ) -> Commission:
        """Apply an admin action (APPROVE, REJECT or MARK_PAID)."""
        action = (action or '').upper()
        if action == ACTION_APPROVE:
            return CommissionService.approve(actor, commission, notes=notes)
        if action == ACTION_REJECT:
            return CommissionService.reject(actor, commission, rejection_reason, notes=notes)
        if action == ACTION_MARK_PAID:
            return CommissionService.mark_paid(actor, commission, payment_reference, notes=notes)
        raise CommissionValidationError("Invalid action")

    @staticmethod
    def bulk_transition(
        actor: ActingUser,
        commission_ids: Iterable[int],
        action: str,
        rejection_reason: str = '',
        payment_reference: str = '',
    ) -> Dict[str, Any]:
        """Apply the same guarded action to several commissions.

        Each commission transitions on its own; one failure does not stop
        the others.
        """
        commission_ids = list(commission_ids or [])
        if not commission_ids:
            raise CommissionValidationError("Commission IDs are required")
        if (action or '').upper() not in ACTIONS:
            raise CommissionValidationError("Invalid action")
        if (action or '').upper() == ACTION_REJECT and not (rejection_reason or '').strip():
            raise CommissionValidationError("Rejection reason is required")

        commissions = Commission.objects.select_related('reseller', 'customer').in_bulk(commission_ids)
        succeeded = []
        failed = {}
        for commission_id in commission_ids:
            commission = commissions.get(commission_id)
            if commission is None:
                failed[commission_id] = "Commission not found"
                continue
            try:
                CommissionService.transition(
                    actor, commission, action,
                    rejection_reason=rejection_reason,
                    payment_reference=payment_reference,
                )
            except CommissionError as e:
                failed[commission_id] = e.message
                continue
            succeeded.append(commission_id)

        logger.info(
            f"Bulk {action} by user {actor.id}: {len(succeeded)} succeeded, {len(failed)} failed"
        )
        return {'succeeded': succeeded, 'failed': failed}

    @staticmethod
    def _compare_and_set(commission: Commission, expected_status: str, verb: str, **fields) -> None:
        """Update the row only if it is still in ``expected_status``."""
        fields['updated_at'] = timezone.now()
        updated = Commission.objects.filter(
            pk=commission.pk, status=expected_status
        ).update(**fields)

        if not updated:
            current = Commission.objects.filter(pk=commission.pk).values_list(
                'status', flat=True
            ).first()
            if current is None:
                raise CommissionNotFound("Commission not found")
            raise InvalidStateTransition(
                f"Commission is {current}, cannot {verb}", current_status=current
            )
        commission.refresh_from_db()

    @staticmethod
    def _generate_payout_document(commission: Commission) -> Optional[int]:
        """Best effort: a failure is logged and the approval stands."""
        try:
            with transaction.atomic():
                return generate_payout_document(commission, commission.approved_by)
        except Exception:
            logger.exception(f"Error generating payout document for commission {commission.pk}")
            return None

    @staticmethod
    def _notify_reseller(commission: Commission, event_type: str, **extra) -> None:
        payload = {
            'commission_id': commission.pk,
            'amount': commission.amount,
            'period': commission.period,
        }
        payload.update(extra)
        NotificationService.notify(commission.reseller_id, event_type, payload)

    # ==================== Deals ====================

    @staticmethod
    def close_deal(
        actor: ActingUser,
        customer: Customer,
        contract_value,
        contract_duration,
    ) -> Dict[str, Any]:
        """Close a customer's deal and create the reseller's commissions.

        One commission of ``contract_value * rate / 100`` per contract year,
        capped at the reseller's commission years, or a single entry for the
        total when the reseller is paid one-off.
        """
        actor.require('close_deal', "Only admins can close deals")

        contract_value = parse_amount(contract_value, "Valid contract value is required")
        try:
            contract_duration = int(contract_duration)
        except (TypeError, ValueError):
            raise CommissionValidationError("Valid contract duration is required")
        if contract_duration < 1:
            raise CommissionValidationError("Valid contract duration is required")

        profile = PortalProfile.for_user(customer.reseller)
        years = min(contract_duration, profile.commission_years)
        base = (contract_value * profile.commission_rate / Decimal('100')).quantize(
            CENT, rounding=ROUND_HALF_UP
        )

        now = timezone.now()
        entries = []
        if base > 0 and years > 0:
            if profile.is_one_off_payment:
                entries.append({
                    'amount': base * years,
                    'period': str(now.year),
                    'description': f"One-off commission (total) for {customer.company_name}",
                    'year_number': 1,
                    'due_date': date(now.year, 12, 31),
                })
            else:
                for year in range(1, years + 1):
                    entries.append({
                        'amount': base,
                        'period': str(now.year + year - 1),
                        'description': f"Commission year {year}/{years} for {customer.company_name}",
                        'year_number': year,
                        'due_date': date(now.year + year - 1, 12, 31),
                    })
        if any(entry['amount'] > MAX_AMOUNT for entry in entries):
            raise CommissionValidationError("Commission amount is too large")

        with transaction.atomic():
            closed = Customer.objects.filter(pk=customer.pk).exclude(status='active').update(
                status='active',
                contract_value=contract_value,
                contract_duration=contract_duration,
                closed_at=now,
                closed_by_id=actor.id,
                updated_at=now,
            )
            if not closed:
                raise InvalidStateTransition("Customer deal is already closed", current_status='active')

            commissions = [
                Commission.objects.create(
                    reseller_id=customer.reseller_id,
                    customer=customer,
                    status=Commission.STATUS_PENDING,
                    requested_at=now,
                    contract_value=contract_value,
                    commission_rate=profile.commission_rate,
                    **entry
                )
                for entry in entries
            ]
            total = sum((c.amount for c in commissions), Decimal('0'))

            AuditService.log(
                'deal_closed', actor.id, 'Customer', customer.pk,
                changes={
                    'contract_value': contract_value,
                    'contract_duration': contract_duration,
                    'commission_ids': [c.pk for c in commissions],
                    'total_commission': total,
                },
            )
            for commission in commissions:
                AuditService.log(
                    'created', actor.id, 'Commission', commission.pk,
                    changes={
                        'old_status': None,
                        'new_status': Commission.STATUS_PENDING,
                        'amount': commission.amount,
                        'period': commission.period,
                        'customer_id': customer.pk,
                    },
                )

        customer.refresh_from_db()
        if commissions:
            NotificationService.notify(customer.reseller_id, Notification.TYPE_COMMISSION_REQUESTED, {
                'customer_name': customer.company_name,
                'commissions_count': len(commissions),
                'amount': total,
                'is_one_off': profile.is_one_off_payment,
            })

        return {
            'customer': customer,
            'commissions': commissions,
            'total_amount': total,
            'is_one_off_payment': profile.is_one_off_payment,
        }

    # ==================== Resellers ====================

    @staticmethod
    def set_reseller_trust(actor: ActingUser, reseller, is_trusted: Optional[bool] = None) -> PortalProfile:
        """Set (or toggle, when ``is_trusted`` is None) a reseller's trust flag."""
        actor.require('manage_resellers', "Only admins can change reseller trust")

        profile = PortalProfile.for_user(reseller)
        if not profile.is_reseller:
            raise CommissionValidationError("Only resellers can be marked as trusted")

        profile.is_trusted = (not profile.is_trusted) if is_trusted is None else bool(is_trusted)
        profile.save(update_fields=['is_trusted', 'updated_at'])

        AuditService.log(
            'user_marked_trusted' if profile.is_trusted else 'user_unmarked_trusted',
            actor.id, 'User', reseller.pk,
            changes={
                'user_id': reseller.pk,
                'username': reseller.get_username(),
                'is_trusted': profile.is_trusted,
            },
        )
        return profile
