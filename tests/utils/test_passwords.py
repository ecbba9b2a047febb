# tests/utils/test_passwords.py
from worktrack.utils.passwords import hash_password, verify_password


class TestPasswords:
    def test_hash_is_deterministic_hex_digest(self):
        assert hash_password("secret123") == hash_password("secret123")
        assert len(hash_password("secret123")) == 64

    def test_verify_password(self):
        stored = hash_password("secret123")

        assert verify_password("secret123", stored)
        assert not verify_password("secret124", stored)
