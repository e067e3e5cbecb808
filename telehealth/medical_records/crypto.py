"""
Cipher engine for medical record files.

Files are encrypted with AES-256-CBC under a fresh random IV and then
authenticated with HMAC-SHA256 over ``iv || ciphertext`` (encrypt-then-MAC),
so a flipped byte, a wrong IV or a changed key is detected before any
plaintext is returned.

Both keys are derived once, at construction, from the configured secret with
a single scrypt pass over a fixed salt. That is a placeholder scheme carried
over from the first deployment; rotating to per-installation salts would
require re-encrypting every stored file.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Tuple

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from ..exceptions import DecryptionError

IV_SIZE = 16
KEY_SIZE = 32
TAG_SIZE = 32
BLOCK_SIZE_BITS = 128


@dataclass(frozen=True)
class CipherConfig:
    """Secret material the cipher engine is built from."""
    secret: str
    salt: bytes = b"salt"


class CipherEngine:
    """Symmetric encrypt/decrypt of whole files."""

    def __init__(self, config: CipherConfig):
        kdf = Scrypt(salt=config.salt, length=2 * KEY_SIZE, n=2**14, r=8, p=1)
        derived = kdf.derive(config.secret.encode("utf-8"))
        self._enc_key = derived[:KEY_SIZE]
        self._mac_key = derived[KEY_SIZE:]

    def _tag(self, iv: bytes, body: bytes) -> hmac.HMAC:
        mac = hmac.HMAC(self._mac_key, hashes.SHA256())
        mac.update(iv)
        mac.update(body)
        return mac

    def encrypt(self, plaintext: bytes) -> Tuple[bytes, bytes]:
        """
        Encrypt *plaintext* under a fresh IV.

        Returns:
            ``(ciphertext, iv)`` where ciphertext carries a trailing HMAC tag.
        """
        iv = os.urandom(IV_SIZE)
        padder = padding.PKCS7(BLOCK_SIZE_BITS).padder()
        padded = padder.update(plaintext) + padder.finalize()
        encryptor = Cipher(algorithms.AES(self._enc_key), modes.CBC(iv)).encryptor()
        body = encryptor.update(padded) + encryptor.finalize()
        return body + self._tag(iv, body).finalize(), iv

    def decrypt(self, ciphertext: bytes, iv: bytes) -> bytes:
        """
        Authenticate and decrypt *ciphertext* produced by :meth:`encrypt`.

        Raises:
            DecryptionError: If the data is truncated, tampered with, was
                encrypted under another key, or *iv* is not the one used.
        """
        if len(iv) != IV_SIZE:
            raise DecryptionError("Invalid IV length")
        body, tag = ciphertext[:-TAG_SIZE], ciphertext[-TAG_SIZE:]
        if len(ciphertext) < TAG_SIZE + IV_SIZE or len(body) % IV_SIZE:
            raise DecryptionError("Ciphertext is truncated")
        try:
            self._tag(iv, body).verify(tag)
        except InvalidSignature:
            raise DecryptionError("Ciphertext failed authentication")

        decryptor = Cipher(algorithms.AES(self._enc_key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(body) + decryptor.finalize()
        unpadder = padding.PKCS7(BLOCK_SIZE_BITS).unpadder()
        try:
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError:
            raise DecryptionError("Invalid padding")
