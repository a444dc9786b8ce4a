"""
Payout document generation for manually approved commissions.
"""
from django.core.files.base import ContentFile
from django.template.loader import render_to_string
from django.utils import timezone

from ..conf import get_setting
from ..models import Document
from .notification_service import format_amount


def invoice_number_for(commission, when=None):
    when = when or timezone.now()
    return f"PAY-{when.year}-{commission.pk:06d}"


def generate_payout_document(commission, approved_by) -> int:
    """Render the payout document, store it and share it with the reseller.

    Returns the id of the created Document. Raises on any failure; the
    caller decides whether that matters.
    """
    now = timezone.now()
    invoice_number = invoice_number_for(commission, now)
    formatted_amount = format_amount(commission.amount)
    reseller = commission.reseller
    profile = getattr(reseller, 'portal_profile', None)

    html = render_to_string('reseller_commissions/payout_document.html', {
        'app_name': get_setting('app_name'),
        'invoice_number': invoice_number,
        'date': now,
        'commission': commission,
        'reseller': reseller,
        'company': profile.company if profile else '',
        'customer': commission.customer,
        'approved_by': approved_by,
        'formatted_amount': formatted_amount,
    })
    content = html.encode('utf-8')

    document = Document(
        name=f"Payout document {invoice_number}",
        description=f"Commission payout for period {commission.period or '-'} - {formatted_amount}",
        category='invoice',
        mime_type='text/html',
        file_size=len(content),
        is_public=False,
        uploaded_by=approved_by,
        commission=commission,
    )
    file_name = f"{get_setting('payout_document_dir')}/payout-{invoice_number}.html"
    document.file.save(file_name, ContentFile(content), save=True)
    document.shared_with.add(reseller)
    return document.pk
