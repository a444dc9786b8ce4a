"""Reseller commissions JSON API views."""

import json

from django.contrib.auth import get_user_model
from django.db.models import Q
from django.http import JsonResponse, QueryDict
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from .decorators import commission_errors, login_required
from .exceptions import CommissionNotFound, CommissionValidationError
from .forms import (
    BulkTransitionForm,
    CloseDealForm,
    CommissionRequestForm,
    CommissionTransitionForm,
    NotificationPreferenceForm,
)
from .models import Customer, Document
from .permissions import ActingUser
from .services import (
    AuditService,
    AutoApprovalService,
    CommissionService,
    NotificationService,
)
from .services.auto_approval import RULE_FIELDS


def _actor(request):
    return ActingUser.from_user(request.user)


def _data(request):
    """Request body as a dict: JSON, or form-encoded for any method."""
    if request.content_type == 'application/json':
        try:
            data = json.loads(request.body or b'{}')
        except ValueError:
            raise CommissionValidationError("Invalid JSON body")
        if not isinstance(data, dict):
            raise CommissionValidationError("Invalid JSON body")
        return data
    if request.method == 'POST':
        return request.POST
    return QueryDict(request.body)


def _int_param(request, name, default=None, maximum=None):
    value = request.GET.get(name)
    if value in (None, ''):
        return default
    try:
        value = int(value)
    except ValueError:
        raise CommissionValidationError(f"{name} must be a whole number")
    if value < 0:
        raise CommissionValidationError(f"{name} must be positive")
    if maximum is not None:
        value = min(value, maximum)
    return value


def _form_error(form):
    errors = form.errors.get_json_data()
    first = next(iter(errors.values()))[0]['message']
    return JsonResponse({'success': False, 'error': first, 'errors': errors}, status=400)


def _iso(value):
    return value.isoformat() if value else None


def _decimal(value):
    return None if value is None else str(value)


# =============================================================================
# Serializers
# =============================================================================

def _serialize_commission(commission):
    return {
        'id': commission.pk,
        'reseller_id': commission.reseller_id,
        'customer_id': commission.customer_id,
        'customer_name': commission.customer.company_name if commission.customer_id else None,
        'amount': str(commission.amount),
        'period': commission.period,
        'description': commission.description,
        'notes': commission.notes,
        'status': commission.status,
        'auto_approved': commission.auto_approved,
        'auto_approval_rule_id': commission.auto_approval_rule_id,
        'auto_approval_rule_name': commission.auto_approval_rule_name or None,
        'approved_by_id': commission.approved_by_id,
        'requested_at': _iso(commission.requested_at),
        'approved_at': _iso(commission.approved_at),
        'rejected_at': _iso(commission.rejected_at),
        'paid_at': _iso(commission.paid_at),
        'rejection_reason': commission.rejection_reason or None,
        'payment_reference': commission.payment_reference or None,
        'year_number': commission.year_number,
        'due_date': _iso(commission.due_date),
    }


def _serialize_rule(rule):
    return {
        'id': rule.pk,
        'name': rule.name,
        'description': rule.description,
        'enabled': rule.enabled,
        'priority': rule.priority,
        'max_amount': _decimal(rule.max_amount),
        'trusted_resellers_only': rule.trusted_resellers_only,
        'created_at': _iso(rule.created_at),
        'updated_at': _iso(rule.updated_at),
    }


def _serialize_notification(notification):
    return {
        'id': notification.pk,
        'type': notification.type,
        'title': notification.title,
        'message': notification.message,
        'metadata': notification.metadata,
        'read': notification.read,
        'email_sent': notification.email_sent,
        'created_at': _iso(notification.created_at),
    }


def _serialize_audit_log(entry):
    return {
        'id': entry.pk,
        'action': entry.action,
        'performed_by_id': entry.performed_by_id,
        'performed_by': entry.performed_by.get_username() if entry.performed_by_id else None,
        'entity_type': entry.entity_type,
        'entity_id': entry.entity_id,
        'changes': entry.changes,
        'metadata': entry.metadata,
        'created_at': _iso(entry.created_at),
    }


def _serialize_document(document):
    return {
        'id': document.pk,
        'name': document.name,
        'description': document.description,
        'category': document.category,
        'url': document.file.url if document.file else None,
        'mime_type': document.mime_type,
        'file_size': document.file_size,
        'commission_id': document.commission_id,
        'created_at': _iso(document.created_at),
    }


# =============================================================================
# Commissions
# =============================================================================

@login_required
@require_http_methods(['GET', 'POST'])
@commission_errors
def commission_list(request):
    actor = _actor(request)

    if request.method == 'GET':
        commissions = CommissionService.get_commissions(
            actor,
            status=request.GET.get('status'),
            period=request.GET.get('period'),
            reseller_id=_int_param(request, 'reseller_id'),
        )
        return JsonResponse({
            'success': True,
            'commissions': [_serialize_commission(c) for c in commissions],
        })

    form = CommissionRequestForm(_data(request))
    if not form.is_valid():
        return _form_error(form)

    commission, auto_approved = CommissionService.create_commission(
        actor,
        amount=form.cleaned_data['amount'],
        period=form.cleaned_data['period'],
        customer_id=form.cleaned_data['customer_id'],
        description=form.cleaned_data['description'],
        notes=form.cleaned_data['notes'],
    )
    return JsonResponse({
        'success': True,
        'commission': _serialize_commission(commission),
        'autoApproved': auto_approved,
    }, status=201)


@login_required
@require_http_methods(['GET', 'PATCH'])
@commission_errors
def commission_detail(request, pk):
    actor = _actor(request)
    commission = CommissionService.get_commission(actor, pk)

    if request.method == 'GET':
        return JsonResponse({'success': True, 'commission': _serialize_commission(commission)})

    form = CommissionTransitionForm(_data(request))
    if not form.is_valid():
        return _form_error(form)

    commission = CommissionService.transition(actor, commission, **form.cleaned_data)
    return JsonResponse({'success': True, 'commission': _serialize_commission(commission)})


@login_required
@require_POST
@commission_errors
def commission_bulk(request):
    actor = _actor(request)
    actor.require('approve_commission', "Only admins can run bulk actions")

    form = BulkTransitionForm(_data(request))
    if not form.is_valid():
        return _form_error(form)

    result = CommissionService.bulk_transition(
        actor,
        form.cleaned_data['commission_ids'],
        form.cleaned_data['action'],
        rejection_reason=form.cleaned_data['rejection_reason'],
        payment_reference=form.cleaned_data['payment_reference'],
    )
    return JsonResponse({
        'success': True,
        'succeeded': result['succeeded'],
        'failed': {str(pk): error for pk, error in result['failed'].items()},
    })


# =============================================================================
# Auto-approval rules
# =============================================================================

def _rule_data(data):
    return {key: data.get(key) for key in RULE_FIELDS if key in data}


def _get_rule_or_404(pk):
    rule = AutoApprovalService.get_rule(pk)
    if rule is None:
        raise CommissionNotFound("Rule not found")
    return rule


@login_required
@require_http_methods(['GET', 'POST'])
@commission_errors
def rule_list(request):
    actor = _actor(request)
    actor.require('manage_rules', "Only admins can manage auto-approval rules")

    if request.method == 'GET':
        rules = AutoApprovalService.get_rules(enabled_only=request.GET.get('enabled') == 'true')
        return JsonResponse({'success': True, 'rules': [_serialize_rule(r) for r in rules]})

    rule, error = AutoApprovalService.create_rule(actor, **_rule_data(_data(request)))
    if error:
        return JsonResponse({'success': False, 'error': error}, status=400)
    return JsonResponse({'success': True, 'rule': _serialize_rule(rule)}, status=201)


@login_required
@require_http_methods(['GET', 'PATCH', 'DELETE'])
@commission_errors
def rule_detail(request, pk):
    actor = _actor(request)
    actor.require('manage_rules', "Only admins can manage auto-approval rules")
    rule = _get_rule_or_404(pk)

    if request.method == 'GET':
        return JsonResponse({'success': True, 'rule': _serialize_rule(rule)})

    if request.method == 'DELETE':
        AutoApprovalService.delete_rule(actor, rule)
        return JsonResponse({'success': True})

    success, error = AutoApprovalService.update_rule(actor, rule, **_rule_data(_data(request)))
    if not success:
        return JsonResponse({'success': False, 'error': error}, status=400)
    return JsonResponse({'success': True, 'rule': _serialize_rule(rule)})


@login_required
@require_POST
@commission_errors
def rule_toggle(request, pk):
    actor = _actor(request)
    actor.require('manage_rules', "Only admins can manage auto-approval rules")
    rule = _get_rule_or_404(pk)
    enabled = AutoApprovalService.toggle_rule(actor, rule)
    return JsonResponse({'success': True, 'enabled': enabled})


# =============================================================================
# Resellers and deals
# =============================================================================

@login_required
@require_POST
@commission_errors
def reseller_toggle_trusted(request, pk):
    actor = _actor(request)
    reseller = get_user_model().objects.filter(pk=pk).first()
    if reseller is None:
        raise CommissionNotFound("User not found")

    is_trusted = _data(request).get('is_trusted')
    if isinstance(is_trusted, str):
        is_trusted = is_trusted.lower() in ('1', 'true', 'on')

    profile = CommissionService.set_reseller_trust(actor, reseller, is_trusted)
    return JsonResponse({
        'success': True,
        'user': {'id': reseller.pk, 'username': reseller.get_username(), 'is_trusted': profile.is_trusted},
    })


@login_required
@require_POST
@commission_errors
def customer_close_deal(request, pk):
    actor = _actor(request)
    actor.require('close_deal', "Only admins can close deals")

    customer = Customer.objects.select_related('reseller').filter(pk=pk).first()
    if customer is None:
        raise CommissionNotFound("Customer not found")

    form = CloseDealForm(_data(request))
    if not form.is_valid():
        return _form_error(form)

    result = CommissionService.close_deal(
        actor, customer,
        form.cleaned_data['contract_value'],
        form.cleaned_data['contract_duration'],
    )
    return JsonResponse({
        'success': True,
        'customer': {
            'id': customer.pk,
            'company_name': customer.company_name,
            'status': customer.status,
        },
        'commissions': [_serialize_commission(c) for c in result['commissions']],
        'total_amount': str(result['total_amount']),
        'is_one_off_payment': result['is_one_off_payment'],
    })


# =============================================================================
# Notifications
# =============================================================================

@login_required
@require_GET
@commission_errors
def notification_list(request):
    notifications, unread_count = NotificationService.get_notifications(
        request.user,
        unread_only=request.GET.get('unread') == 'true',
        limit=_int_param(request, 'limit', default=50, maximum=100),
    )
    return JsonResponse({
        'success': True,
        'notifications': [_serialize_notification(n) for n in notifications],
        'unread_count': unread_count,
    })


@login_required
@require_http_methods(['PATCH', 'DELETE'])
@commission_errors
def notification_detail(request, pk):
    if request.method == 'DELETE':
        NotificationService.delete_notification(request.user, pk)
        return JsonResponse({'success': True})

    read = _data(request).get('read', True)
    if isinstance(read, str):
        read = read.lower() in ('1', 'true', 'on')
    notification = NotificationService.set_read(request.user, pk, bool(read))
    return JsonResponse({'success': True, 'notification': _serialize_notification(notification)})


@login_required
@require_http_methods(['GET', 'PUT'])
@commission_errors
def notification_preferences(request):
    if request.method == 'PUT':
        form = NotificationPreferenceForm(_data(request))
        if not form.is_valid():
            return _form_error(form)
        NotificationService.update_preference(
            request.user,
            form.cleaned_data['type'],
            email_enabled=form.cleaned_data['email_enabled'],
            in_app_enabled=form.cleaned_data['in_app_enabled'],
        )

    preferences = NotificationService.get_preferences(request.user)
    return JsonResponse({
        'success': True,
        'preferences': [
            {'type': p.type, 'email_enabled': p.email_enabled, 'in_app_enabled': p.in_app_enabled}
            for p in preferences
        ],
    })


# =============================================================================
# Audit log and documents
# =============================================================================

@login_required
@require_GET
@commission_errors
def audit_log_list(request):
    actor = _actor(request)
    actor.require('view_audit_log', "Only admins can view the audit log")

    limit = _int_param(request, 'limit', default=50, maximum=100)
    offset = _int_param(request, 'offset', default=0)
    logs, total = AuditService.get_audit_logs(
        action=request.GET.get('action') or None,
        entity_type=request.GET.get('entity_type') or None,
        entity_id=request.GET.get('entity_id') or None,
        performed_by_id=_int_param(request, 'performed_by'),
        limit=limit,
        offset=offset,
    )
    return JsonResponse({
        'success': True,
        'logs': [_serialize_audit_log(entry) for entry in logs],
        'total': total,
        'limit': limit,
        'offset': offset,
    })


@login_required
@require_GET
@commission_errors
def document_list(request):
    actor = _actor(request)
    documents = Document.objects.all()
    if not actor.is_admin:
        documents = documents.filter(Q(is_public=True) | Q(shared_with=request.user)).distinct()

    category = request.GET.get('category')
    if category:
        documents = documents.filter(category=category)
    commission_id = _int_param(request, 'commission_id')
    if commission_id:
        documents = documents.filter(commission_id=commission_id)

    return JsonResponse({
        'success': True,
        'documents': [_serialize_document(d) for d in documents.order_by('-created_at')],
    })
