from .audit_service import AuditService
from .auto_approval import AutoApprovalService, MatchResult, RuleEvaluator
from .commission_service import CommissionService
from .notification_service import NotificationService
from .payout_document import generate_payout_document

__all__ = [
    'AuditService',
    'AutoApprovalService',
    'CommissionService',
    'MatchResult',
    'NotificationService',
    'RuleEvaluator',
    'generate_payout_document',
]
