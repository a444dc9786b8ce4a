"""Explicit acting-user identity passed into every service operation."""
from dataclasses import dataclass

from django.utils.translation import gettext as _

from . import module
from .exceptions import NotAuthorized


@dataclass(frozen=True)
class ActingUser:
    """The user on whose behalf an operation runs.

    Services never read the session; callers build this from the request
    (or from a user object in background jobs and tests).
    """
    id: int
    role: str

    @classmethod
    def from_user(cls, user):
        from .models import PortalProfile
        profile = PortalProfile.for_user(user)
        return cls(id=user.pk, role=profile.role)

    @property
    def is_admin(self):
        return self.role == module.ROLE_ADMIN

    @property
    def is_reseller(self):
        return self.role == module.ROLE_RESELLER

    def has_permission(self, permission):
        granted = module.ROLE_PERMISSIONS.get(self.role, [])
        return permission in granted

    def require(self, permission, message=None):
        if not self.has_permission(permission):
            raise NotAuthorized(message or _("You are not allowed to perform this action."))
