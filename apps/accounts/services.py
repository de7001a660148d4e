from dataclasses import dataclass

from django.core.exceptions import PermissionDenied

from apps.accounts.models import ADMIN_ROLES, User, UserRole
from apps.common.exceptions import NotFoundError


@dataclass(frozen=True)
class UserContact:
    email: str
    display_name: str


def role_flags(user) -> dict:
    """Capabilities of ``user``, computed from the user passed in by the caller."""
    if user is None or not getattr(user, "is_authenticated", False):
        return {"is_super_admin": False, "is_editor": False, "is_student": False, "can_manage": False}
    role = (getattr(user, "role", "") or "").lower()
    in_group = lambda name: user.groups.filter(name=name).exists()

    is_super_admin = user.is_superuser or role == UserRole.SUPER_ADMIN or in_group("Super admin")
    is_editor = role == UserRole.EDITOR or in_group("Editor")
    is_student = role == UserRole.STUDENT
    return {
        "is_super_admin": is_super_admin,
        "is_editor": is_editor,
        "is_student": is_student,
        "can_manage": is_super_admin or is_editor,
    }


def require_admin(actor) -> None:
    if not role_flags(actor)["can_manage"]:
        raise PermissionDenied("Only studio administrators can change this record.")


def require_super_admin(actor) -> None:
    if not role_flags(actor)["is_super_admin"]:
        raise PermissionDenied("Only super admins can remove records.")


def get_user_contact(user_id) -> UserContact:
    user = User.objects.filter(pk=user_id).first()
    if user is None:
        raise NotFoundError(f"User {user_id} does not exist.")
    return UserContact(email=user.preferred_email(), display_name=user.preferred_first_name())


def has_role(user_id, role: str) -> bool:
    user = User.objects.filter(pk=user_id).first()
    if user is None:
        return False
    if str(role) in ADMIN_ROLES and user.is_superuser:
        return True
    return user.role == role
