import base64
from typing import Any, Dict, Optional

from Crypto.Cipher import AES
from Crypto.Hash import SHA256
from Crypto.Protocol.KDF import PBKDF2
from Crypto.Random import get_random_bytes
from Crypto.Util.Padding import pad, unpad

from .errors import KeyStoreError

ENVELOPE_VERSION = 1
CIPHER_NAME = "aes-256-cbc"
KDF_NAME = "pbkdf2-sha256"
SALT_SIZE = 16


def is_encrypted_document(document: Any) -> bool:
    """Tell an encrypted envelope apart from a plain key store document."""
    return (
        isinstance(document, dict)
        and document.get("cipher") == CIPHER_NAME
        and "data" in document
    )


class DocumentCipher:
    """Password based encryption of whole documents.

    The PBKDF2 key is derived once per salt and reused, so repeated saves of
    the same store do not pay for key derivation again.
    """

    def __init__(self, password: str, iterations: int):
        if not password:
            raise ValueError("A password is required to encrypt documents")
        self.password = password
        self.iterations = iterations
        self._salt: Optional[bytes] = None
        self._key: Optional[bytes] = None

    def _derive(self, salt: bytes, iterations: int) -> bytes:
        if self._key is None or salt != self._salt or iterations != self.iterations:
            self._key = PBKDF2(
                self.password.encode("utf-8"), salt, dkLen=32,
                count=iterations, hmac_hash_module=SHA256
            )
            self._salt = salt
            self.iterations = iterations
        return self._key

    def encrypt(self, plaintext: bytes) -> Dict[str, Any]:
        salt = self._salt or get_random_bytes(SALT_SIZE)
        key = self._derive(salt, self.iterations)
        iv = get_random_bytes(AES.block_size)
        cipher = AES.new(key, AES.MODE_CBC, iv)
        data = cipher.encrypt(pad(plaintext, AES.block_size))
        return {
            "version": ENVELOPE_VERSION,
            "cipher": CIPHER_NAME,
            "kdf": KDF_NAME,
            "iterations": self.iterations,
            "salt": base64.b64encode(salt).decode("utf-8"),
            "iv": base64.b64encode(iv).decode("utf-8"),
            "data": base64.b64encode(data).decode("utf-8"),
        }

    def decrypt(self, envelope: Dict[str, Any]) -> bytes:
        if envelope.get("kdf") != KDF_NAME:
            raise KeyStoreError(f"Unsupported key derivation '{envelope.get('kdf')}'")
        try:
            salt = base64.b64decode(envelope["salt"])
            iv = base64.b64decode(envelope["iv"])
            data = base64.b64decode(envelope["data"])
            iterations = int(envelope["iterations"])
        except (KeyError, TypeError, ValueError) as e:
            raise KeyStoreError(f"Encrypted key store is malformed: {e}") from e

        key = self._derive(salt, iterations)
        cipher = AES.new(key, AES.MODE_CBC, iv)
        try:
            return unpad(cipher.decrypt(data), AES.block_size)
        except ValueError as e:
            raise KeyStoreError("Key store cannot be decrypted. Is the password correct?") from e
