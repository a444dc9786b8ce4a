"""
Audit Service - append-only history of lifecycle and admin actions.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from django.db import DatabaseError, transaction

from ..models import AuditLog

logger = logging.getLogger(__name__)


class AuditService:
    """Service class for audit log operations."""

    @staticmethod
    def log(
        action: str,
        performed_by_id: Optional[int],
        entity_type: str,
        entity_id: Any = None,
        changes: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: str = '',
    ) -> Optional[AuditLog]:
        """Write an audit entry. Failures are logged, never raised."""
        try:
            with transaction.atomic():
                return AuditLog.objects.create(
                    action=action,
                    performed_by_id=performed_by_id,
                    entity_type=entity_type,
                    entity_id='' if entity_id is None else str(entity_id),
                    changes=changes,
                    metadata=metadata,
                    ip_address=ip_address or None,
                    user_agent=(user_agent or '')[:255],
                )
        except (DatabaseError, TypeError, ValueError):
            logger.exception(f"Failed to write audit log {action} for {entity_type}:{entity_id}")
            return None

    @staticmethod
    def get_audit_logs(
        action: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Any = None,
        performed_by_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[AuditLog], int]:
        """Get audit logs with filters, newest first."""
        qs = AuditLog.objects.select_related('performed_by')

        if action:
            qs = qs.filter(action=action)
        if entity_type:
            qs = qs.filter(entity_type=entity_type)
        if entity_id is not None:
            qs = qs.filter(entity_id=str(entity_id))
        if performed_by_id:
            qs = qs.filter(performed_by_id=performed_by_id)

        total = qs.count()
        return list(qs[offset:offset + limit]), total
