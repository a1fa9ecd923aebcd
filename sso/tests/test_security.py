import unittest
from datetime import timedelta

import bcrypt

from sso.security import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    InvalidTokenError,
    decode_token,
    encode_token,
    hash_password,
    random_token,
    verify_password,
)

SECRET = "test-secret-that-is-at-least-32-bytes"


class PasswordTests(unittest.TestCase):
    def test_hash_and_verify(self):
        hashed = hash_password("hunter2", rounds=4)
        self.assertTrue(verify_password("hunter2", hashed))
        self.assertFalse(verify_password("hunter3", hashed))

    def test_verifies_node_bcrypt_hashes(self):
        # Hashes copied from the Node applications use the $2a$ prefix.
        legacy = bcrypt.hashpw(b"secret", bcrypt.gensalt(rounds=4, prefix=b"2a"))
        self.assertTrue(legacy.startswith(b"$2a$"))
        self.assertTrue(verify_password("secret", legacy.decode("utf-8")))

    def test_missing_or_malformed_hash_never_matches(self):
        self.assertFalse(verify_password("secret", None))
        self.assertFalse(verify_password("secret", ""))
        self.assertFalse(verify_password("secret", "not-a-hash"))

    def test_random_token(self):
        token = random_token()
        self.assertEqual(len(token), 40)
        self.assertNotEqual(token, random_token())


class TokenTests(unittest.TestCase):
    def test_roundtrip_returns_subject(self):
        token = encode_token("abc", ACCESS_TOKEN_TYPE, timedelta(minutes=5), SECRET)
        self.assertEqual(decode_token(token, ACCESS_TOKEN_TYPE, SECRET), "abc")

    def test_wrong_type_is_rejected(self):
        token = encode_token("abc", ACCESS_TOKEN_TYPE, timedelta(minutes=5), SECRET)
        with self.assertRaises(InvalidTokenError):
            decode_token(token, REFRESH_TOKEN_TYPE, SECRET)

    def test_expired_token_is_rejected(self):
        token = encode_token("abc", ACCESS_TOKEN_TYPE, timedelta(seconds=-1), SECRET)
        with self.assertRaises(InvalidTokenError):
            decode_token(token, ACCESS_TOKEN_TYPE, SECRET)

    def test_wrong_secret_is_rejected(self):
        token = encode_token("abc", ACCESS_TOKEN_TYPE, timedelta(minutes=5), SECRET)
        with self.assertRaises(InvalidTokenError):
            decode_token(token, ACCESS_TOKEN_TYPE, "other-secret")

    def test_garbage_is_rejected(self):
        with self.assertRaises(InvalidTokenError):
            decode_token("not.a.token", ACCESS_TOKEN_TYPE, SECRET)


if __name__ == "__main__":
    unittest.main()
