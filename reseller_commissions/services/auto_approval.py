"""
Auto-approval rules: the rule store operations and the rule evaluator.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Tuple

from django.db import DatabaseError, transaction

from ..models import AutoApprovalRule, PortalProfile
from ..permissions import ActingUser
from .audit_service import AuditService

logger = logging.getLogger(__name__)

RULE_FIELDS = ('name', 'description', 'enabled', 'priority', 'max_amount', 'trusted_resellers_only')
MAX_RULE_AMOUNT = Decimal('9999999999.99')


@dataclass(frozen=True)
class MatchResult:
    """Outcome of evaluating the enabled rules for one commission."""
    matched: bool
    rule_id: Optional[int] = None
    rule_name: Optional[str] = None


NO_MATCH = MatchResult(matched=False)


class RuleEvaluator:
    """Selects the highest-priority enabled rule matching a commission."""

    @staticmethod
    def candidate_rules() -> List[AutoApprovalRule]:
        # pk breaks priority ties so the same rule set always yields the same match
        return list(AutoApprovalRule.objects.filter(enabled=True).order_by('-priority', 'pk'))

    @staticmethod
    def evaluate(
        amount: Decimal,
        reseller_is_trusted: bool,
        rules: Optional[Iterable[AutoApprovalRule]] = None,
    ) -> MatchResult:
        """Return the first matching rule in priority order.

        The amount is assumed valid (positive). When the rule store cannot be
        read the result is "no match", so the commission goes to manual review.
        """
        if rules is None:
            try:
                with transaction.atomic():
                    rules = RuleEvaluator.candidate_rules()
            except DatabaseError:
                logger.exception("Error reading auto-approval rules, falling back to manual review")
                return NO_MATCH
        else:
            rules = sorted(rules, key=lambda r: (-r.priority, r.pk or 0))

        amount = Decimal(str(amount))
        for rule in rules:
            if rule.matches(amount, reseller_is_trusted):
                return MatchResult(matched=True, rule_id=rule.pk, rule_name=rule.name)
        return NO_MATCH

    @staticmethod
    def evaluate_for_reseller(amount: Decimal, reseller_id: int) -> MatchResult:
        """Evaluate using the reseller's current trust flag."""
        try:
            with transaction.atomic():
                is_trusted = PortalProfile.objects.filter(
                    user_id=reseller_id
                ).values_list('is_trusted', flat=True).first()
        except DatabaseError:
            logger.exception(f"Error reading trust flag of reseller {reseller_id}")
            return NO_MATCH

        if is_trusted is None:
            return NO_MATCH
        return RuleEvaluator.evaluate(amount, is_trusted)


def _rule_snapshot(rule: AutoApprovalRule) -> Dict[str, Any]:
    return {field: getattr(rule, field) for field in RULE_FIELDS}


def _as_bool(value) -> bool:
    # Form-encoded bodies send booleans as strings
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'on', 'yes')
    return bool(value)


def _clean_rule_data(data: Dict[str, Any], partial: bool = False) -> Tuple[Dict[str, Any], Optional[str]]:
    cleaned = {}
    for key, value in data.items():
        if key not in RULE_FIELDS:
            continue
        if key == 'name':
            value = str(value or '').strip()
            if not value:
                return {}, "Rule name is required"
        elif key == 'description':
            value = str(value or '').strip()
        elif key == 'max_amount' and value is not None and value != '':
            try:
                value = Decimal(str(value)).quantize(Decimal('0.01'))
            except InvalidOperation:
                return {}, "Max amount must be a number"
            if not value.is_finite():
                return {}, "Max amount must be a number"
            if value < 0:
                return {}, "Max amount must be positive"
            if value > MAX_RULE_AMOUNT:
                return {}, "Max amount is too large"
        elif key == 'max_amount':
            value = None
        elif key == 'priority':
            try:
                value = int(value or 0)
            except (TypeError, ValueError):
                return {}, "Priority must be a whole number"
        elif key in ('enabled', 'trusted_resellers_only'):
            value = _as_bool(value)
        cleaned[key] = value

    if not partial and 'name' not in cleaned:
        return {}, "Rule name is required"
    return cleaned, None


class AutoApprovalService:
    """Admin-facing rule store operations."""

    @staticmethod
    def get_rules(enabled_only: bool = False) -> List[AutoApprovalRule]:
        """Get all rules, highest priority first."""
        qs = AutoApprovalRule.objects.all().order_by('-priority', '-created_at')
        if enabled_only:
            qs = qs.filter(enabled=True)
        return list(qs)

    @staticmethod
    def get_rule(rule_id: int) -> Optional[AutoApprovalRule]:
        try:
            return AutoApprovalRule.objects.get(pk=rule_id)
        except AutoApprovalRule.DoesNotExist:
            return None

    @staticmethod
    def create_rule(actor: ActingUser, **data) -> Tuple[Optional[AutoApprovalRule], Optional[str]]:
        """Create a new rule. Enabled unless stated otherwise."""
        actor.require('manage_rules')
        cleaned, error = _clean_rule_data(data)
        if error:
            return None, error

        rule = AutoApprovalRule.objects.create(**cleaned)
        AuditService.log(
            'rule_created', actor.id, 'AutoApprovalRule', rule.pk,
            changes=_rule_snapshot(rule),
        )
        logger.info(f"Auto-approval rule {rule.pk} '{rule.name}' created by user {actor.id}")
        return rule, None

    @staticmethod
    def update_rule(actor: ActingUser, rule: AutoApprovalRule, **data) -> Tuple[bool, Optional[str]]:
        """Partially update a rule."""
        actor.require('manage_rules')
        cleaned, error = _clean_rule_data(data, partial=True)
        if error:
            return False, error

        before = _rule_snapshot(rule)
        for key, value in cleaned.items():
            setattr(rule, key, value)
        rule.save()
        AuditService.log(
            'rule_updated', actor.id, 'AutoApprovalRule', rule.pk,
            changes={'before': before, 'after': cleaned},
        )
        return True, None

    @staticmethod
    def delete_rule(actor: ActingUser, rule: AutoApprovalRule) -> Tuple[bool, Optional[str]]:
        """Delete a rule. Commissions it approved keep the rule name snapshot."""
        actor.require('manage_rules')
        rule_id = rule.pk
        snapshot = _rule_snapshot(rule)
        rule.delete()
        AuditService.log(
            'rule_deleted', actor.id, 'AutoApprovalRule', rule_id,
            changes={'deleted_rule': snapshot},
        )
        return True, None

    @staticmethod
    def toggle_rule(actor: ActingUser, rule: AutoApprovalRule) -> bool:
        """Toggle rule enabled status."""
        actor.require('manage_rules')
        rule.enabled = not rule.enabled
        rule.save(update_fields=['enabled', 'updated_at'])
        AuditService.log(
            'rule_updated', actor.id, 'AutoApprovalRule', rule.pk,
            changes={'before': {'enabled': not rule.enabled}, 'after': {'enabled': rule.enabled}},
        )
        return rule.enabled
