"""
Credential Vault
================

Symmetric encryption of server secrets at rest (SSH, database and site
login passwords).

Blob format: ``base64(iv || b"::" || base64(aes-256-cbc(plaintext)))``.
The layout and the zero-padded key match the values written by the legacy
board, so rows migrated from it decrypt unchanged. Columns that were never
encrypted come back as-is.
"""

import base64
import binascii
import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from inquiry_board.core import CredentialVaultException
from inquiry_board.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

SEPARATOR = b"::"
IV_LENGTH = 16
KEY_LENGTH = 32

# Fields on a server record that must never be stored in clear
SECRET_FIELDS = ("ssh_password", "db_password", "site_login_pw", "admin_login_pw")


class CredentialVault:
    """
    AES-256-CBC encryption with a fresh random IV per call.

    The key is process-wide configuration; it is not derived per server.
    """

    def __init__(self, key: str):
        if not key:
            raise CredentialVaultException("Credential key not configured")
        # Short keys are NUL-padded and long keys truncated to 32 bytes
        self._key = key.encode("utf-8").ljust(KEY_LENGTH, b"\0")[:KEY_LENGTH]

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a secret. Empty secrets stay empty."""
        if not plaintext:
            return ""

        iv = os.urandom(IV_LENGTH)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()

        return base64.b64encode(iv + SEPARATOR + base64.b64encode(ciphertext)).decode("ascii")

    def decrypt(self, blob: str) -> str:
        """
        Decrypt a blob produced by ``encrypt``.

        Values without the IV separator are legacy plaintext and are
        returned unchanged. A blob that has the right shape but fails to
        decrypt yields an empty string.
        """
        if not blob:
            return ""

        try:
            data = base64.b64decode(blob, validate=True)
        except (binascii.Error, ValueError):
            return blob

        if len(data) <= IV_LENGTH + len(SEPARATOR) or data[IV_LENGTH:IV_LENGTH + len(SEPARATOR)] != SEPARATOR:
            return blob

        iv = data[:IV_LENGTH]
        try:
            ciphertext = base64.b64decode(data[IV_LENGTH + len(SEPARATOR):], validate=True)
            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except (binascii.Error, ValueError) as e:
            logger.warning("Credential blob could not be decrypted", extra={"error": str(e)})
            return ""

    def encrypt_fields(self, values: dict) -> dict:
        """Return a copy of ``values`` with every secret field encrypted."""
        result = dict(values)
        for field in SECRET_FIELDS:
            if field in result:
                result[field] = self.encrypt(result[field] or "")
        return result
