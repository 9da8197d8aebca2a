import base64
import unittest
from unittest.mock import Mock

from htpasswd_gate.errors import (
    EmptyPassword,
    HeaderTooShort,
    InvalidCredentials,
    MalformedCredentials,
    UnsupportedScheme,
)
from htpasswd_gate.gate import Allowed, Forbidden, Unauthorized, authenticate, authorize
from htpasswd_gate.policy import ANONYMOUS, AnyLoggedUser, Anyone, Anonymous, LoggedUser, OnlyUsers
from htpasswd_gate.store import HtpasswdStore, htpasswd_line


def _basic(user: str, password: str) -> str:
    token = base64.b64encode(f"{user}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


class AccessGateTestCase(unittest.TestCase):
    def setUp(self):
        self.store = HtpasswdStore.from_lines(
            [htpasswd_line("bob", "hunter2"), htpasswd_line("alice", "secret")]
        )


class AuthenticateTests(AccessGateTestCase):
    def test_no_header_is_anonymous(self):
        self.assertEqual(authenticate(None, self.store), ANONYMOUS)

    def test_valid_credentials_give_logged_user(self):
        self.assertEqual(authenticate(_basic("bob", "hunter2"), self.store), LoggedUser(user="bob"))

    def test_wrong_password_and_unknown_user_look_the_same(self):
        with self.assertRaises(InvalidCredentials) as wrong_password:
            authenticate(_basic("bob", "wrongpass"), self.store)
        with self.assertRaises(InvalidCredentials) as unknown_user:
            authenticate(_basic("mallory", "hunter2"), self.store)
        self.assertEqual(str(wrong_password.exception), str(unknown_user.exception))

    def test_parse_errors_never_reach_the_store(self):
        store = Mock(spec=HtpasswdStore)
        with self.assertRaises(EmptyPassword):
            authenticate(_basic("bob", ""), store)
        with self.assertRaises(UnsupportedScheme):
            authenticate("Digest username=bob", store)
        store.is_valid.assert_not_called()


class AuthorizeTests(AccessGateTestCase):
    def test_anonymous_under_anyone_is_allowed(self):
        self.assertEqual(authorize(None, self.store, Anyone()), Allowed(Anonymous()))

    def test_anonymous_under_any_logged_user_is_forbidden(self):
        outcome = authorize(None, self.store, AnyLoggedUser())
        self.assertEqual(outcome, Forbidden(ANONYMOUS))

    def test_valid_bob_under_any_logged_user(self):
        outcome = authorize(_basic("bob", "hunter2"), self.store, AnyLoggedUser())
        self.assertEqual(outcome, Allowed(LoggedUser(user="bob")))

    def test_valid_bob_under_anyone(self):
        outcome = authorize(_basic("bob", "hunter2"), self.store, Anyone())
        self.assertEqual(outcome, Allowed(LoggedUser(user="bob")))

    def test_wrong_password_is_unauthorized_not_forbidden(self):
        outcome = authorize(_basic("bob", "wrongpass"), self.store, AnyLoggedUser())
        self.assertIsInstance(outcome, Unauthorized)
        self.assertIsInstance(outcome.error, InvalidCredentials)
        self.assertEqual(outcome.reason, "InvalidCredentials")
        self.assertFalse(outcome.malformed_header)

    def test_wrong_password_is_unauthorized_even_under_anyone(self):
        outcome = authorize(_basic("bob", "wrongpass"), self.store, Anyone())
        self.assertIsInstance(outcome, Unauthorized)

    def test_digest_scheme_is_unsupported_scheme(self):
        outcome = authorize('Digest username="bob", realm="x"', self.store, Anyone())
        self.assertIsInstance(outcome, Unauthorized)
        self.assertIsInstance(outcome.error, UnsupportedScheme)
        self.assertEqual(outcome.error.scheme, "Digest")
        self.assertTrue(outcome.malformed_header)

    def test_empty_password_is_unauthorized(self):
        store = Mock(spec=HtpasswdStore)
        outcome = authorize(_basic("bob", ""), store, Anyone())
        self.assertIsInstance(outcome, Unauthorized)
        self.assertEqual(outcome.reason, "EmptyPassword")
        store.is_valid.assert_not_called()

    def test_other_header_errors_are_classified(self):
        cases = {
            "Basic": HeaderTooShort,
            "Basic %%%%%%": MalformedCredentials,
        }
        for header, error_type in cases.items():
            with self.subTest(header=header):
                outcome = authorize(header, self.store, Anyone())
                self.assertIsInstance(outcome, Unauthorized)
                self.assertIsInstance(outcome.error, error_type)

    def test_unauthorized_outcomes_compare_by_reason(self):
        first = authorize(_basic("bob", "wrongpass"), self.store, Anyone())
        second = authorize(_basic("mallory", "hunter2"), self.store, AnyLoggedUser())
        self.assertEqual(first, second)
        self.assertEqual(first, Unauthorized(InvalidCredentials()))
        self.assertEqual(first.message, "Unknown user or invalid password")

        digest = authorize('Digest username="bob"', self.store, Anyone())
        self.assertEqual(digest, Unauthorized(UnsupportedScheme("Digest")))
        self.assertNotEqual(digest, Unauthorized(UnsupportedScheme("Bearer")))
        self.assertNotEqual(digest, first)

    def test_specific_user_policy(self):
        policy = OnlyUsers("alice")
        self.assertEqual(
            authorize(_basic("alice", "secret"), self.store, policy),
            Allowed(LoggedUser(user="alice")),
        )
        self.assertEqual(
            authorize(_basic("bob", "hunter2"), self.store, policy),
            Forbidden(LoggedUser(user="bob")),
        )

    def test_plain_callable_policy(self):
        def weekday_staff(result):
            return isinstance(result, LoggedUser) and result.user.startswith("b")

        self.assertIsInstance(authorize(_basic("bob", "hunter2"), self.store, weekday_staff), Allowed)
        self.assertIsInstance(authorize(_basic("alice", "secret"), self.store, weekday_staff), Forbidden)

    def test_policy_sees_the_authentication_result(self):
        policy = Mock(return_value=True)
        authorize(_basic("alice", "secret"), self.store, policy)
        policy.assert_called_once_with(LoggedUser(user="alice"))

    def test_policy_not_consulted_when_unauthorized(self):
        policy = Mock(return_value=True)
        authorize(_basic("alice", "nope"), self.store, policy)
        policy.assert_not_called()


class PackageApiTests(unittest.TestCase):
    def test_core_api_from_package_root(self):
        import htpasswd_gate

        store = htpasswd_gate.HtpasswdStore.from_lines([htpasswd_line("bob", "hunter2")])
        outcome = htpasswd_gate.authorize(_basic("bob", "hunter2"), store, htpasswd_gate.AnyLoggedUser())
        self.assertEqual(outcome, htpasswd_gate.Allowed(htpasswd_gate.LoggedUser(user="bob")))
        self.assertEqual(len(htpasswd_gate.__all__), 10)


if __name__ == "__main__":
    unittest.main()
