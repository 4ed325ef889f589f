"""Passphrase-based encryption of cluster bootstrap data."""

from __future__ import annotations

import base64
import binascii
import hashlib
import os
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

_ITERATIONS = 4096
_KEY_LENGTH = 32
_NONCE_SIZE = 12
_SALT_BYTES = 8


def storage_key(passphrase: str) -> str:
    """Return the datastore key under which bootstrap data for ``passphrase`` is kept."""
    return "/bootstrap/" + key_hash(passphrase)


def key_hash(passphrase: str) -> str:
    """Return the first 12 hex characters of the SHA-256 sum of ``passphrase``."""
    return hashlib.sha256(passphrase.encode()).hexdigest()[:12]


def _derive_key(passphrase: str, salt: bytes) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA1(),
        length=_KEY_LENGTH,
        salt=salt,
        iterations=_ITERATIONS,
    )
    return kdf.derive(passphrase.encode())


def encrypt(passphrase: str, plaintext: bytes) -> bytes:
    """Encrypt with AES-GCM under a PBKDF2 key from ``passphrase`` and a random salt.

    The result is ``<salt>:<base64 of nonce, ciphertext and tag>``.
    """
    salt = secrets.token_hex(_SALT_BYTES)
    cipher = AESGCM(_derive_key(passphrase, salt.encode()))
    nonce = os.urandom(_NONCE_SIZE)
    sealed = nonce + cipher.encrypt(nonce, bytes(plaintext), None)
    return (salt + ":" + base64.b64encode(sealed).decode("ascii")).encode()


def decrypt(passphrase: str, ciphertext: bytes | str) -> bytes:
    """Decrypt the output of :func:`encrypt`; raises ValueError on any failure."""
    text = ciphertext.decode() if isinstance(ciphertext, (bytes, bytearray)) else ciphertext
    salt, sep, encoded = text.partition(":")
    if not sep:
        raise ValueError("invalid cipher text, not : delimited")

    cipher = AESGCM(_derive_key(passphrase, salt.encode()))
    try:
        data = base64.b64decode(encoded, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"invalid cipher text encoding: {exc}") from exc
    if len(data) < _NONCE_SIZE:
        raise ValueError("invalid cipher text, too short")

    try:
        return cipher.decrypt(data[:_NONCE_SIZE], data[_NONCE_SIZE:], None)
    except InvalidTag as exc:
        raise ValueError("message authentication failed") from exc