# core/crypto.py
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from core.config import settings


class FieldDecryptionError(Exception):
    """Stored ciphertext could not be decrypted with the configured key."""


class FieldCipher:
    """
    Symmetric encryption for personal fields (first/last name, phone).

    Only the credential store calls this; models hold ciphertext and never
    encrypt or decrypt on attribute access.
    """

    def __init__(self, key: bytes):
        self._fernet = Fernet(key)

    def encrypt(self, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        return self._fernet.encrypt(value.encode("utf-8")).decode("ascii")

    def decrypt(self, token: Optional[str]) -> Optional[str]:
        if not token:
            return None
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeError) as e:
            raise FieldDecryptionError("Could not decrypt stored field") from e


def get_field_cipher() -> FieldCipher:
    return FieldCipher(settings.field_encryption_key)
