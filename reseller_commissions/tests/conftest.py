"""
Fixtures for reseller commissions tests.
"""
import pytest
from decimal import Decimal

from django.utils import timezone


@pytest.fixture(autouse=True)
def media_root(settings, tmp_path):
    """Store generated documents in a per-test directory."""
    settings.MEDIA_ROOT = str(tmp_path)
    return tmp_path


def make_user(username, role, **profile):
    from django.contrib.auth import get_user_model
    from reseller_commissions.models import PortalProfile

    user = get_user_model().objects.create_user(
        username=username,
        email=f'{username}@example.com',
        password='secret',
        first_name=username.title(),
    )
    PortalProfile.objects.create(user=user, role=role, **profile)
    return user


@pytest.fixture
def portal_admin(db):
    """Create an admin user."""
    return make_user('admin', 'admin')


@pytest.fixture
def reseller(db):
    """Create an untrusted reseller."""
    return make_user('reseller', 'reseller', company='Acme Resellers')


@pytest.fixture
def trusted_reseller(db):
    """Create a trusted reseller."""
    return make_user('trusted', 'reseller', company='Trusted Partners', is_trusted=True)


@pytest.fixture
def other_reseller(db):
    """Create a second reseller."""
    return make_user('other', 'reseller', company='Other Co')


@pytest.fixture
def admin_actor(portal_admin):
    from reseller_commissions.permissions import ActingUser
    return ActingUser.from_user(portal_admin)


@pytest.fixture
def reseller_actor(reseller):
    from reseller_commissions.permissions import ActingUser
    return ActingUser.from_user(reseller)


@pytest.fixture
def trusted_actor(trusted_reseller):
    from reseller_commissions.permissions import ActingUser
    return ActingUser.from_user(trusted_reseller)


@pytest.fixture
def small_amount_rule(db):
    """Create a rule approving amounts up to 1000 for any reseller."""
    from reseller_commissions.models import AutoApprovalRule

    return AutoApprovalRule.objects.create(
        name='Small amounts',
        enabled=True,
        priority=5,
        max_amount=Decimal('1000.00'),
        trusted_resellers_only=False,
    )


@pytest.fixture
def trusted_rule(db):
    """Create a rule approving any amount for trusted resellers."""
    from reseller_commissions.models import AutoApprovalRule

    return AutoApprovalRule.objects.create(
        name='Trusted partners',
        enabled=True,
        priority=10,
        max_amount=None,
        trusted_resellers_only=True,
    )


@pytest.fixture
def customer(reseller):
    """Create a lead customer of the reseller."""
    from reseller_commissions.models import Customer

    return Customer.objects.create(reseller=reseller, company_name='Globex')


@pytest.fixture
def pending_commission(reseller):
    """Create a pending commission."""
    from reseller_commissions.models import Commission

    return Commission.objects.create(
        reseller=reseller,
        amount=Decimal('500.00'),
        period='2024-Q1',
        status='pending',
        requested_at=timezone.now(),
    )


@pytest.fixture
def approved_commission(reseller, portal_admin):
    """Create an approved commission."""
    from reseller_commissions.models import Commission

    return Commission.objects.create(
        reseller=reseller,
        amount=Decimal('750.00'),
        period='2024-Q2',
        status='approved',
        requested_at=timezone.now(),
        approved_at=timezone.now(),
        approved_by=portal_admin,
    )


@pytest.fixture
def admin_client(client, portal_admin):
    """Client logged in as the portal admin."""
    client.force_login(portal_admin)
    return client


@pytest.fixture
def reseller_client(client, reseller):
    """Client logged in as the reseller."""
    client.force_login(reseller)
    return client
