import unittest
from datetime import timedelta

from dam.core.security import TokenCodec, TokenStatus, hash_password, verify_password
from tests.support import ACCESS_SECRET, REFRESH_SECRET, FakeClock


class TestTokenCodec(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.codec = TokenCodec(ACCESS_SECRET, REFRESH_SECRET, clock=self.clock)

    def test_access_token_valid_until_fifteen_minutes(self):
        token = self.codec.issue_access_token({"sub": "user-1"})

        self.clock.advance(minutes=1)
        claims = self.codec.verify_access(token)
        self.assertIsNotNone(claims)
        self.assertEqual(claims["sub"], "user-1")
        self.assertEqual(claims["type"], "access")

        self.clock.advance(minutes=15)
        self.assertIsNone(self.codec.verify_access(token))
        status, claims = self.codec.inspect_access(token)
        self.assertEqual(status, TokenStatus.EXPIRED)
        self.assertIsNone(claims)

    def test_refresh_token_lives_seven_days(self):
        token = self.codec.issue_refresh_token({"sub": "user-1"})

        self.clock.advance(days=6, hours=23)
        self.assertIsNotNone(self.codec.verify_refresh(token))

        self.clock.advance(hours=2)
        self.assertIsNone(self.codec.verify_refresh(token))

    def test_tokens_are_not_interchangeable(self):
        access = self.codec.issue_access_token({"sub": "user-1"})
        refresh = self.codec.issue_refresh_token({"sub": "user-1"})

        self.assertIsNone(self.codec.verify_refresh(access))
        self.assertIsNone(self.codec.verify_access(refresh))
        self.assertIsNone(self.codec.verify(access, REFRESH_SECRET))

    def test_rejects_shared_signing_key(self):
        with self.assertRaises(ValueError):
            TokenCodec("same-secret", "same-secret")

    def test_rejects_credential_material_in_claims(self):
        for claim in ("password", "password_hash", "hashed_password", "secret"):
            with self.subTest(claim=claim):
                with self.assertRaises(ValueError):
                    self.codec.issue_refresh_token({"sub": "user-1", claim: "x"})

    def test_requires_identity(self):
        with self.assertRaises(ValueError):
            self.codec.issue_access_token({"role": "user"})

    def test_tampered_and_garbage_tokens_fail_closed(self):
        token = self.codec.issue_access_token({"sub": "user-1"})
        head, payload, signature = token.split(".")
        tampered = ".".join([head, payload, signature[::-1]])

        self.assertIsNone(self.codec.verify_access(tampered))
        self.assertEqual(self.codec.inspect_access(tampered)[0], TokenStatus.INVALID)
        self.assertIsNone(self.codec.verify_access("not-a-jwt"))
        self.assertIsNone(self.codec.verify_access(""))
        self.assertIsNone(self.codec.verify_access(None))

    def test_tokens_minted_in_same_second_differ(self):
        first = self.codec.issue_refresh_token({"sub": "user-1"})
        second = self.codec.issue_refresh_token({"sub": "user-1"})
        self.assertNotEqual(first, second)

    def test_introspection_helpers(self):
        token = self.codec.issue_access_token({"sub": "user-1"})

        self.assertEqual(TokenCodec.decode_unsafe(token)["sub"], "user-1")
        self.assertIsNone(TokenCodec.decode_unsafe("garbage"))
        self.assertEqual(self.codec.seconds_until_expiry(token), 15 * 60)
        self.assertFalse(self.codec.is_expired(token))

        self.clock.advance(minutes=15)
        self.assertTrue(self.codec.is_expired(token))

    def test_extract_bearer(self):
        self.assertEqual(TokenCodec.extract_bearer("Bearer abc.def"), "abc.def")
        self.assertIsNone(TokenCodec.extract_bearer("Basic abc"))
        self.assertIsNone(TokenCodec.extract_bearer("Bearer "))
        self.assertIsNone(TokenCodec.extract_bearer(None))

    def test_custom_ttl(self):
        codec = TokenCodec(
            ACCESS_SECRET, REFRESH_SECRET, access_ttl=timedelta(minutes=1), clock=self.clock
        )
        token = codec.issue_access_token({"sub": "user-1"})
        self.clock.advance(seconds=61)
        self.assertIsNone(codec.verify_access(token))


class TestPasswordHashing(unittest.TestCase):
    def test_hash_and_verify(self):
        hashed = hash_password("s3cret", rounds=4)
        self.assertNotEqual(hashed, "s3cret")
        self.assertTrue(verify_password("s3cret", hashed))
        self.assertFalse(verify_password("wrong", hashed))

    def test_verify_never_raises_on_bad_hash(self):
        self.assertFalse(verify_password("s3cret", "not-a-bcrypt-hash"))


if __name__ == "__main__":
    unittest.main()
