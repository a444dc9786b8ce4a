"""
Notification Service - in-app notifications and the outbound email queue.

Lifecycle code only calls ``notify``/``notify_admins``; both store rows and
never perform network I/O. Queued emails are delivered later by
``dispatch_pending_emails`` (the ``send_queued_emails`` command), which owns
retries.
"""
import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from django.contrib.auth import get_user_model
from django.core.mail import send_mail
from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction
from django.template.loader import render_to_string
from django.utils import timezone

from .. import module
from ..conf import get_setting
from ..exceptions import CommissionNotFound, CommissionValidationError
from ..models import Notification, NotificationPreference, OutboundEmail

logger = logging.getLogger(__name__)


def format_amount(value) -> str:
    try:
        amount = Decimal(str(value)).quantize(Decimal('0.01'))
    except (InvalidOperation, ValueError):
        return str(value)
    return f"{get_setting('currency')} {amount}"


def get_notification_template(event_type: str, data: Dict[str, Any]) -> Dict[str, str]:
    """Title, message and action text for a notification type."""
    amount = format_amount(data.get('amount'))
    period = data.get('period', '-')

    if event_type == Notification.TYPE_COMMISSION_REQUESTED and data.get('customer_name'):
        return {
            'title': "Commissions Created",
            'message': (
                f"The deal with {data['customer_name']} has been closed: "
                f"{data.get('commissions_count', 1)} commission(s) totalling {amount} were created."
            ),
            'action_text': "View Commissions",
        }
    if event_type == Notification.TYPE_COMMISSION_REQUESTED:
        return {
            'title': "New Commission Request",
            'message': (
                f"{data.get('reseller_name') or 'A reseller'} has submitted a commission "
                f"request of {amount} for period {period}."
            ),
            'action_text': "Review Request",
        }
    if event_type == Notification.TYPE_COMMISSION_APPROVED:
        message = f"Your commission of {amount} for period {period} has been approved."
        if data.get('auto_approved'):
            message = (
                f"Your commission of {amount} for period {period} has been approved "
                f"automatically (rule: {data.get('rule_name', '-')})."
            )
        return {
            'title': "Commission Approved",
            'message': message,
            'action_text': "View Commissions",
        }
    if event_type == Notification.TYPE_COMMISSION_REJECTED:
        return {
            'title': "Commission Rejected",
            'message': (
                f"Your commission request of {amount} for period {period} has been rejected. "
                f"Reason: {data.get('rejection_reason') or 'No reason provided'}."
            ),
            'action_text': "View Commissions",
        }
    if event_type == Notification.TYPE_COMMISSION_PAID:
        reference = data.get('payment_reference')
        return {
            'title': "Commission Paid",
            'message': (
                f"Your commission of {amount} for period {period} has been paid"
                f"{f' (Ref: {reference})' if reference else ''}."
            ),
            'action_text': "View Commissions",
        }
    return {'title': "Notification", 'message': "You have a new notification", 'action_text': ''}


class NotificationService:
    """Service class for notification operations."""

    # ==================== Dispatch ====================

    @staticmethod
    def notify(user_id: int, event_type: str, payload: Dict[str, Any]) -> Optional[Notification]:
        """Create the in-app notification and queue its email.

        Fire-and-forget: failures are logged and ``None`` is returned.
        """
        try:
            with transaction.atomic():
                return NotificationService._deliver(user_id, event_type, payload)
        except Exception:
            logger.exception(f"Error creating {event_type} notification for user {user_id}")
            return None

    @staticmethod
    def _deliver(user_id, event_type, payload):
        user = get_user_model().objects.filter(pk=user_id).first()
        if user is None:
            logger.error(f"Notification target user {user_id} not found")
            return None

        # Stored as JSON, so keep the returned instance in the same shape
        payload = json.loads(json.dumps(payload, cls=DjangoJSONEncoder))

        template = get_notification_template(event_type, payload)
        preference = NotificationPreference.objects.filter(user=user, type=event_type).first()
        in_app_enabled = preference.in_app_enabled if preference else True
        email_enabled = preference.email_enabled if preference else True

        notification = None
        if in_app_enabled:
            notification = Notification.objects.create(
                user=user,
                type=event_type,
                title=template['title'],
                message=template['message'],
                metadata=payload,
            )

        if email_enabled and user.email:
            html_body = render_to_string('reseller_commissions/email/notification.html', {
                'title': template['title'],
                'message': template['message'],
                'action_text': template['action_text'],
                'action_url': get_setting('app_url'),
                'app_name': get_setting('app_name'),
            })
            OutboundEmail.objects.create(
                recipient=user.email,
                subject=template['title'],
                html_body=html_body,
                text_body=template['message'],
                notification=notification,
            )

        return notification

    @staticmethod
    def notify_admins(event_type: str, payload: Dict[str, Any]) -> int:
        """Notify every active admin. Returns the number notified."""
        admin_ids = get_user_model().objects.filter(
            is_active=True, portal_profile__role=module.ROLE_ADMIN,
        ).values_list('pk', flat=True)

        count = 0
        for admin_id in admin_ids:
            if NotificationService.notify(admin_id, event_type, payload) is not None:
                count += 1
        return count

    @staticmethod
    def dispatch_pending_emails(limit: int = 100) -> Dict[str, int]:
        """Deliver queued emails; failed sends are retried up to email_max_attempts.

        Each email is claimed (moved to ``sending``) and committed before the
        send, and its outcome is committed right after, so a failure later in
        the batch never puts an already sent email back in the queue.
        """
        max_attempts = get_setting('email_max_attempts')
        sender = get_setting('email_sender')
        result = {'sent': 0, 'retrying': 0, 'failed': 0}

        claimed = []
        while len(claimed) < limit:
            email = NotificationService._claim_next_email(exclude=claimed)
            if email is None:
                break
            claimed.append(email.pk)

            try:
                send_mail(
                    email.subject,
                    email.text_body or email.subject,
                    sender,
                    [email.recipient],
                    html_message=email.html_body,
                )
            except Exception as e:
                with transaction.atomic():
                    email.last_error = str(e)
                    if email.attempts >= max_attempts:
                        email.status = 'failed'
                        result['failed'] += 1
                        logger.error(f"Giving up on email {email.pk} to {email.recipient}: {e}")
                    else:
                        email.status = 'queued'
                        result['retrying'] += 1
                        logger.warning(f"Email {email.pk} to {email.recipient} failed, will retry: {e}")
                    email.save(update_fields=['last_error', 'status', 'updated_at'])
                continue

            with transaction.atomic():
                email.status = 'sent'
                email.sent_at = timezone.now()
                email.last_error = ''
                email.save(update_fields=['last_error', 'status', 'sent_at', 'updated_at'])
                if email.notification_id:
                    Notification.objects.filter(pk=email.notification_id).update(email_sent=True)
            result['sent'] += 1
            logger.info(f"Email sent successfully to {email.recipient}")

        return result

    @staticmethod
    def _claim_next_email(exclude=()) -> Optional[OutboundEmail]:
        with transaction.atomic():
            email = OutboundEmail.objects.select_for_update(skip_locked=True).filter(
                status='queued'
            ).exclude(pk__in=exclude).order_by('created_at', 'pk').first()
            if email is None:
                return None
            email.status = 'sending'
            email.attempts += 1
            email.save(update_fields=['status', 'attempts', 'updated_at'])
        return email

    # ==================== Inbox ====================

    @staticmethod
    def get_notifications(
        user,
        unread_only: bool = False,
        limit: int = 50,
    ) -> Tuple[List[Notification], int]:
        """Get a user's notifications, newest first, plus the unread count."""
        qs = Notification.objects.filter(user=user)
        unread_count = qs.filter(read=False).count()
        if unread_only:
            qs = qs.filter(read=False)
        return list(qs.order_by('-created_at')[:limit]), unread_count

    @staticmethod
    def set_read(user, notification_id: int, read: bool = True) -> Notification:
        notification = Notification.objects.filter(pk=notification_id, user=user).first()
        if notification is None:
            raise CommissionNotFound("Notification not found")
        notification.read = read
        notification.save(update_fields=['read', 'updated_at'])
        return notification

    @staticmethod
    def delete_notification(user, notification_id: int) -> None:
        deleted, _rows = Notification.objects.filter(pk=notification_id, user=user).delete()
        if not deleted:
            raise CommissionNotFound("Notification not found")

    # ==================== Preferences ====================

    @staticmethod
    def get_preferences(user) -> List[NotificationPreference]:
        """Get a user's preferences, creating the defaults on first access."""
        for event_type, _label in Notification.TYPE_CHOICES:
            NotificationPreference.objects.get_or_create(user=user, type=event_type)
        return list(NotificationPreference.objects.filter(user=user).order_by('type'))

    @staticmethod
    def update_preference(
        user,
        event_type: str,
        email_enabled: Optional[bool] = None,
        in_app_enabled: Optional[bool] = None,
    ) -> NotificationPreference:
        if event_type not in dict(Notification.TYPE_CHOICES):
            raise CommissionValidationError("Unknown notification type")

        preference, _created = NotificationPreference.objects.get_or_create(
            user=user, type=event_type
        )
        if email_enabled is not None:
            preference.email_enabled = email_enabled
        if in_app_enabled is not None:
            preference.in_app_enabled = in_app_enabled
        preference.save()
        return preference
