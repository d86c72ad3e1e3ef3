import unittest
from datetime import timedelta

import jwt

from tests.base import FakeClock

from storefront_auth.services.tokens import SessionIssuer, TokenError
from storefront_auth.services.users import UserIdentity

USER = UserIdentity(
    id=42,
    phone="+971501111111",
    name="",
    email="",
    location="",
    is_admin=True,
    profile_complete=False,
)


class SessionIssuerTests(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.issuer = SessionIssuer("secret", timedelta(days=7), clock=self.clock)

    def test_round_trip_claims(self):
        issued = self.issuer.issue(USER)
        claims = self.issuer.verify(issued.token)
        self.assertEqual(claims.user_id, 42)
        self.assertTrue(claims.is_admin)
        self.assertEqual(claims.issued_at, self.clock())
        self.assertEqual(claims.expires_at, self.clock() + timedelta(days=7))
        self.assertEqual(issued.expires_at, claims.expires_at)

    def test_expired_token_is_rejected(self):
        issued = self.issuer.issue(USER)
        self.clock.advance(days=7, seconds=1)
        with self.assertRaises(TokenError):
            self.issuer.verify(issued.token)

    def test_rotated_secret_invalidates_tokens(self):
        issued = self.issuer.issue(USER)
        rotated = SessionIssuer("other", timedelta(days=7), clock=self.clock)
        with self.assertRaises(TokenError):
            rotated.verify(issued.token)

    def test_tampered_and_foreign_tokens_are_rejected(self):
        issued = self.issuer.issue(USER)
        with self.assertRaises(TokenError):
            self.issuer.verify(issued.token[:-2] + "xx")
        foreign = jwt.encode(
            {"sub": "42", "type": "refresh", "iat": 0, "exp": 4102444800},
            "secret",
            algorithm="HS256",
        )
        with self.assertRaises(TokenError):
            self.issuer.verify(foreign)
        with self.assertRaises(TokenError):
            self.issuer.verify("")

    def test_empty_secret_is_refused(self):
        with self.assertRaises(TokenError):
            SessionIssuer("", timedelta(days=1))
