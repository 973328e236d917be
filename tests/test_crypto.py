"""
Tests for the credential vault.
"""

import base64

import pytest

from inquiry_board.core import CredentialVaultException
from inquiry_board.infrastructure.crypto import SECRET_FIELDS, SEPARATOR, CredentialVault


@pytest.fixture
def vault() -> CredentialVault:
    return CredentialVault("0123456789abcdef")


class TestEncryptDecrypt:

    @pytest.mark.parametrize("secret", ["p@ssw0rd", "한글 비밀번호", "x", "a" * 200, "with::separator"])
    def test_round_trip(self, vault, secret):
        assert vault.decrypt(vault.encrypt(secret)) == secret

    def test_random_iv_gives_distinct_blobs(self, vault):
        first = vault.encrypt("same-secret")
        second = vault.encrypt("same-secret")

        assert first != second
        assert vault.decrypt(first) == vault.decrypt(second) == "same-secret"

    def test_blob_layout_is_iv_separator_ciphertext(self, vault):
        raw = base64.b64decode(vault.encrypt("secret"))

        assert raw[16:18] == SEPARATOR
        # Ciphertext part is itself base64
        base64.b64decode(raw[18:], validate=True)

    def test_empty_secret_is_not_encrypted(self, vault):
        assert vault.encrypt("") == ""
        assert vault.decrypt("") == ""


class TestLegacyPlaintext:

    @pytest.mark.parametrize("value", [
        "plain-password",
        "root123!",
        "abc::def",
        base64.b64encode(b"no separator anywhere in this value").decode(),
        "short",
    ])
    def test_values_without_separator_come_back_unchanged(self, vault, value):
        assert vault.decrypt(value) == value

    def test_wrong_key_never_reveals_the_secret(self, vault):
        blob = vault.encrypt("secret")

        assert CredentialVault("another-key").decrypt(blob) != "secret"


class TestConfiguration:

    def test_missing_key_is_rejected(self):
        with pytest.raises(CredentialVaultException):
            CredentialVault("")

    def test_long_keys_are_truncated_to_32_bytes(self):
        long_key = "k" * 40
        blob = CredentialVault(long_key).encrypt("secret")

        assert CredentialVault("k" * 32).decrypt(blob) == "secret"

    def test_encrypt_fields_only_touches_secrets(self, vault):
        values = {
            "site_name": "shop",
            "server_ip": "10.0.0.5",
            "ssh_password": "ssh-pw",
            "db_password": "",
        }
        encrypted = vault.encrypt_fields(values)

        assert encrypted["site_name"] == "shop"
        assert encrypted["server_ip"] == "10.0.0.5"
        assert encrypted["ssh_password"] != "ssh-pw"
        assert vault.decrypt(encrypted["ssh_password"]) == "ssh-pw"
        assert encrypted["db_password"] == ""
        assert values["ssh_password"] == "ssh-pw"
        assert set(SECRET_FIELDS) >= {"ssh_password", "db_password"}
