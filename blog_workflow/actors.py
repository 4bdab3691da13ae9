"""
Acting user passed explicitly into every workflow operation.
"""
from dataclasses import dataclass

from .conf import blog_settings

ADMIN = "admin"
AUTHOR = "author"


@dataclass(frozen=True)
class Actor:
    id: int
    role: str = AUTHOR

    @property
    def is_admin(self):
        return self.role == ADMIN

    @classmethod
    def from_user(cls, user):
        """Build an actor from a Django user, or None when anonymous."""
        if user is None or not user.is_authenticated:
            return None
        is_admin = user.is_staff or user.groups.filter(
            name__iexact=blog_settings.ADMIN_GROUP
        ).exists()
        return cls(id=user.pk, role=ADMIN if is_admin else AUTHOR)
