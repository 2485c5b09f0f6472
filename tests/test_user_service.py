import unittest

from factories import ALICE, admin, make_session, movements_for

from stockflow.core.errors import Conflict, Forbidden, NotAuthenticated, NotFound, ValidationFailed
from stockflow.core.security import decode_token
from stockflow.models.user import User
from stockflow.schemas.settings import SettingsUpdate
from stockflow.schemas.user import AdminUserUpdate, ChangePasswordRequest, LoginRequest, SignupRequest
from stockflow.services import settings_service, user_service


class AuthenticationTest(unittest.TestCase):
    def setUp(self):
        self.db = make_session()
        self.user, self.token = user_service.signup(
            self.db,
            SignupRequest(email=" Carol@Example.com ", password="secret1", name="Carol"),
        )

    def tearDown(self):
        self.db.close()

    def test_signup_normalizes_email_and_issues_token(self):
        self.assertEqual(self.user.email, "carol@example.com")
        self.assertEqual(self.user.role, "user")
        self.assertNotEqual(self.user.password_hash, "secret1")
        claims = decode_token(self.token)
        self.assertEqual(claims["userId"], str(self.user.id))

    def test_signup_validation(self):
        with self.assertRaises(ValidationFailed):
            user_service.signup(self.db, SignupRequest(password="secret1", name="X"))
        with self.assertRaises(ValidationFailed):
            user_service.signup(self.db, SignupRequest(email="x@example.com", password="123", name="X"))
        with self.assertRaises(ValidationFailed):
            user_service.signup(self.db, SignupRequest(email="x@example.com", password="secret1"))
        with self.assertRaises(Conflict):
            user_service.signup(
                self.db, SignupRequest(email="CAROL@example.com", password="secret1", name="Again")
            )

    def test_login_records_last_login_and_movement(self):
        user, token = user_service.login(
            self.db,
            LoginRequest(email="carol@example.com", password="secret1"),
            ip_address="127.0.0.1",
        )
        self.assertIsNotNone(user.last_login)
        self.assertTrue(token)
        logged = movements_for(self.db, event_type="auth.login")
        self.assertEqual(logged[0].ip_address, "127.0.0.1")
        self.assertEqual(logged[0].related_user_id, str(user.id))

    def test_login_failures(self):
        with self.assertRaises(NotAuthenticated):
            user_service.login(self.db, LoginRequest(email="carol@example.com", password="wrong!"))
        with self.assertRaises(NotAuthenticated):
            user_service.login(self.db, LoginRequest(email="nobody@example.com", password="secret1"))
        with self.assertRaises(ValidationFailed):
            user_service.login(self.db, LoginRequest(email="carol@example.com"))

    def test_inactive_account_cannot_login(self):
        self.user.status = "suspended"
        self.db.commit()
        with self.assertRaises(Forbidden) as ctx:
            user_service.login(self.db, LoginRequest(email="carol@example.com", password="secret1"))
        self.assertEqual(ctx.exception.error, "Account is suspended. Please contact support.")

    def test_admin_login(self):
        identity, token = user_service.admin_login(
            self.db, LoginRequest(email=admin().email, password="admin-pass")
        )
        self.assertTrue(identity.is_admin)
        self.assertEqual(decode_token(token)["role"], "admin")
        with self.assertRaises(NotAuthenticated):
            user_service.admin_login(self.db, LoginRequest(email=admin().email, password="nope"))

    def test_change_password(self):
        identity = user_service.identity_for(self.user)
        with self.assertRaises(NotAuthenticated):
            user_service.change_password(
                self.db, identity, ChangePasswordRequest(currentPassword="wrong!", newPassword="secret2")
            )
        with self.assertRaises(ValidationFailed):
            user_service.change_password(
                self.db, identity, ChangePasswordRequest(currentPassword="secret1", newPassword="secret1")
            )
        with self.assertRaises(Forbidden):
            user_service.change_password(
                self.db, admin(), ChangePasswordRequest(currentPassword="a", newPassword="secret2")
            )

        user_service.change_password(
            self.db, identity, ChangePasswordRequest(currentPassword="secret1", newPassword="secret2")
        )
        user_service.login(self.db, LoginRequest(email="carol@example.com", password="secret2"))

    def test_current_user(self):
        self.assertEqual(user_service.current_user(self.db, admin())["role"], "admin")
        identity = user_service.identity_for(self.user)
        self.assertEqual(user_service.current_user(self.db, identity).id, self.user.id)

    def test_promoted_user_keeps_account_features(self):
        promoted = user_service.update_user(
            self.db, admin(), AdminUserUpdate(userId=self.user.id, role="admin")
        )
        identity = user_service.identity_for(promoted)
        self.assertTrue(identity.is_admin)
        self.assertFalse(identity.is_static_admin)
        self.assertTrue(admin().is_static_admin)

        self.assertEqual(user_service.current_user(self.db, identity).id, self.user.id)
        user_service.change_password(
            self.db, identity, ChangePasswordRequest(currentPassword="secret1", newPassword="secret2")
        )
        user_service.login(self.db, LoginRequest(email="carol@example.com", password="secret2"))


class UserAdministrationTest(unittest.TestCase):
    def setUp(self):
        self.db = make_session()
        self.user, _ = user_service.signup(
            self.db, SignupRequest(email="dave@example.com", password="secret1", name="Dave", company="Acme")
        )
        user_service.signup(
            self.db, SignupRequest(email="erin@example.com", password="secret1", name="Erin")
        )

    def tearDown(self):
        self.db.close()

    def test_list_filters(self):
        self.assertEqual(len(user_service.list_users(self.db)), 2)
        self.assertEqual([u.name for u in user_service.list_users(self.db, search="acme")], ["Dave"])
        self.assertEqual(user_service.list_users(self.db, role="admin"), [])

    def test_update_logs_changed_fields(self):
        user = user_service.update_user(
            self.db, admin(), AdminUserUpdate(userId=self.user.id, role="admin", company="Acme")
        )
        self.assertEqual(user.role, "admin")
        logged = movements_for(self.db, event_type="user.updated")
        self.assertEqual(len(logged), 1)
        self.assertEqual(logged[0].metadata_["updatedFields"], ["role"])

    def test_update_validation(self):
        with self.assertRaises(ValidationFailed):
            user_service.update_user(self.db, admin(), AdminUserUpdate(role="admin"))
        with self.assertRaises(ValidationFailed):
            user_service.update_user(self.db, admin(), AdminUserUpdate(userId=self.user.id, role="owner"))
        with self.assertRaises(Conflict):
            user_service.update_user(
                self.db, admin(), AdminUserUpdate(userId=self.user.id, email="ERIN@example.com")
            )
        with self.assertRaises(NotFound):
            user_service.update_user(self.db, admin(), AdminUserUpdate(userId=999, role="admin"))

    def test_delete(self):
        identity = user_service.identity_for(self.user)
        with self.assertRaises(ValidationFailed):
            user_service.delete_user(self.db, identity, self.user.id)

        user_service.delete_user(self.db, admin(), self.user.id)
        self.assertIsNone(self.db.get(User, self.user.id))
        logged = movements_for(self.db, event_type="user.deleted")
        self.assertEqual(logged[0].metadata_["deletedUser"]["email"], "dave@example.com")


class SettingsServiceTest(unittest.TestCase):
    def setUp(self):
        self.db = make_session()

    def tearDown(self):
        self.db.close()

    def test_created_with_defaults_once(self):
        first = settings_service.get_or_create_settings(self.db, ALICE)
        second = settings_service.get_or_create_settings(self.db, ALICE)
        self.assertEqual(first.id, second.id)
        self.assertEqual(first.profile["email"], "alice@example.com")
        self.assertEqual(first.preferences["currency"], "USD")
        self.assertEqual(first.preferences["lowStockThreshold"], 10)

    def test_update_merges_sections(self):
        settings = settings_service.update_settings(
            self.db,
            ALICE,
            SettingsUpdate(preferences={"currency": "EUR"}, profile={"company": "Acme"}),
        )
        self.assertEqual(settings.preferences["currency"], "EUR")
        self.assertEqual(settings.preferences["timezone"], "UTC")
        self.assertEqual(settings.profile["name"], "Alice")

        logged = movements_for(self.db, event_type="settings.changed")
        self.assertEqual(
            logged[0].metadata_["changedKeys"],
            {"profile": ["company"], "preferences": ["currency"]},
        )

    def test_unchanged_values_are_not_logged(self):
        settings_service.update_settings(self.db, ALICE, SettingsUpdate(preferences={"currency": "USD"}))
        self.assertEqual(movements_for(self.db, event_type="settings.changed"), [])


if __name__ == "__main__":
    unittest.main()
