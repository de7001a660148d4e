from django.contrib.auth.models import AnonymousUser, Group
from django.core.exceptions import PermissionDenied
from django.test import TestCase

from apps.accounts.models import UserRole
from apps.accounts.services import (
    get_user_contact,
    has_role,
    require_admin,
    require_super_admin,
    role_flags,
)
from apps.common.exceptions import NotFoundError
from apps.common.factories import EditorFactory, SuperAdminFactory, UserFactory


class RoleFlagsTests(TestCase):
    def test_student_cannot_manage(self):
        flags = role_flags(UserFactory())
        self.assertTrue(flags["is_student"])
        self.assertFalse(flags["can_manage"])

    def test_editor_can_manage_but_is_not_super_admin(self):
        flags = role_flags(EditorFactory())
        self.assertTrue(flags["is_editor"])
        self.assertTrue(flags["can_manage"])
        self.assertFalse(flags["is_super_admin"])

    def test_superuser_flag_and_group_grant_super_admin(self):
        superuser = UserFactory(is_superuser=True)
        grouped = UserFactory(groups=[Group.objects.create(name="Super admin")])
        self.assertTrue(role_flags(superuser)["is_super_admin"])
        self.assertTrue(role_flags(grouped)["is_super_admin"])

    def test_anonymous_user_has_no_capabilities(self):
        self.assertEqual(
            role_flags(AnonymousUser()),
            {"is_super_admin": False, "is_editor": False, "is_student": False, "can_manage": False},
        )
        self.assertFalse(role_flags(None)["can_manage"])

    def test_require_helpers(self):
        editor = EditorFactory()
        require_admin(editor)
        require_super_admin(SuperAdminFactory())
        with self.assertRaises(PermissionDenied):
            require_admin(UserFactory())
        with self.assertRaises(PermissionDenied):
            require_super_admin(editor)


class UserContactTests(TestCase):
    def test_contact_uses_first_name_and_email(self):
        user = UserFactory(first_name="Aline", email="aline@example.com")
        contact = get_user_contact(user.pk)
        self.assertEqual(contact.email, "aline@example.com")
        self.assertEqual(contact.display_name, "Aline")

    def test_contact_falls_back_to_username(self):
        user = UserFactory(first_name="", username="kizomba_kid", email="")
        contact = get_user_contact(user.pk)
        self.assertEqual(contact.display_name, "kizomba_kid")
        self.assertEqual(contact.email, "")

    def test_missing_user_raises_not_found(self):
        with self.assertRaises(NotFoundError):
            get_user_contact(999999)

    def test_has_role(self):
        editor = EditorFactory()
        superuser = UserFactory(is_superuser=True)
        self.assertTrue(has_role(editor.pk, UserRole.EDITOR))
        self.assertFalse(has_role(editor.pk, UserRole.SUPER_ADMIN))
        self.assertTrue(has_role(superuser.pk, UserRole.SUPER_ADMIN))
        self.assertFalse(has_role(999999, UserRole.STUDENT))
