"""Module settings lookup."""
from django.conf import settings

from . import module


def get_setting(name):
    """Return a module setting, preferring the host project's override."""
    overrides = getattr(settings, 'RESELLER_COMMISSIONS', {}) or {}
    if name in overrides:
        return overrides[name]
    return module.SETTINGS[name]
