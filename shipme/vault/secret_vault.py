"""
In-memory encrypted credential storage for one provisioning run.

Secrets are encrypted with AES-256-GCM under a random key that only ever
lives in this process. destroy() zero-fills the key and is irreversible.

The zero-fill covers the vault's own bytearray. The transient bytes from key
generation and the copy held inside the cipher object cannot be overwritten
from Python; destroy() drops the only reference to the cipher.
"""

from __future__ import annotations

import os
import re
import secrets
import string
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

import structlog
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..mcp.errors import SecretNotFoundError, VaultDestroyedError


logger = structlog.get_logger(__name__)

SECRET_REFERENCE = re.compile(r"\{\{secrets\.(\w+)\}\}")

NONCE_SIZE = 12
PASSWORD_CHARSET = string.ascii_lowercase + string.ascii_uppercase + string.digits + "!@#$%^&*"


class VaultState(str, Enum):
    ACTIVE = "active"
    DESTROYED = "destroyed"


@dataclass(frozen=True)
class Secret:
    key: str
    ciphertext: bytes
    iv: bytes


@dataclass(frozen=True)
class VaultStatus:
    secret_count: int
    destroyed: bool


class SecretVault:
    """Encrypted key/value store with ``{{secrets.<name>}}`` resolution."""

    def __init__(self) -> None:
        self._key = bytearray(AESGCM.generate_key(bit_length=256))
        self._aead: Optional[AESGCM] = AESGCM(self._key)
        self._secrets: Dict[str, Secret] = {}
        self._state = VaultState.ACTIVE
        self._lock = threading.RLock()

    @property
    def state(self) -> VaultState:
        return self._state

    def _ensure_active(self) -> None:
        if self._state is VaultState.DESTROYED:
            raise VaultDestroyedError()

    def _cipher(self) -> AESGCM:
        if self._aead is None:
            raise VaultDestroyedError()
        return self._aead

    def store(self, key: str, value: str) -> None:
        """Encrypt and store ``value`` under ``key``, replacing any previous secret."""
        with self._lock:
            self._ensure_active()
            iv = os.urandom(NONCE_SIZE)
            ciphertext = self._cipher().encrypt(iv, value.encode("utf-8"), key.encode("utf-8"))
            self._secrets[key] = Secret(key=key, ciphertext=ciphertext, iv=iv)
        logger.debug("vault_secret_stored", secret_name=key)

    def retrieve(self, key: str) -> Optional[str]:
        """Decrypt the secret stored under ``key``; None when it was never stored."""
        with self._lock:
            self._ensure_active()
            secret = self._secrets.get(key)
            if secret is None:
                return None
            plaintext = self._cipher().decrypt(secret.iv, secret.ciphertext, key.encode("utf-8"))
        return plaintext.decode("utf-8")

    def resolve(self, reference: str) -> str:
        """Replace a ``{{secrets.<name>}}`` placeholder with the secret value.

        Input without a placeholder comes back unchanged. Only the first
        placeholder is substituted.
        """
        with self._lock:
            self._ensure_active()
            match = SECRET_REFERENCE.search(reference)
            if not match:
                return reference
            name = match.group(1)
            value = self.retrieve(name)
            if value is None:
                raise SecretNotFoundError(f"Secret '{name}' not found in vault")
        return reference[: match.start()] + value + reference[match.end():]

    def secret(self, key: str) -> Optional[Secret]:
        """Stored record for ``key`` (ciphertext and IV only)."""
        with self._lock:
            self._ensure_active()
            return self._secrets.get(key)

    def has(self, key: str) -> bool:
        with self._lock:
            self._ensure_active()
            return key in self._secrets

    def delete(self, key: str) -> bool:
        with self._lock:
            self._ensure_active()
            return self._secrets.pop(key, None) is not None

    def list_keys(self) -> List[str]:
        """Names of stored secrets, never their values."""
        with self._lock:
            self._ensure_active()
            return list(self._secrets.keys())

    def status(self) -> VaultStatus:
        with self._lock:
            return VaultStatus(
                secret_count=len(self._secrets),
                destroyed=self._state is VaultState.DESTROYED,
            )

    def destroy(self) -> None:
        """Drop all secrets and zero the key. Irreversible."""
        with self._lock:
            if self._state is VaultState.DESTROYED:
                return
            count = len(self._secrets)
            self._secrets.clear()
            self._aead = None
            for i in range(len(self._key)):
                self._key[i] = 0
            self._state = VaultState.DESTROYED
        logger.info("vault_destroyed", secret_count=count)

    def __repr__(self) -> str:
        status = self.status()
        return f"<SecretVault secrets={status.secret_count} destroyed={status.destroyed}>"


def generate_password(length: int = 32) -> str:
    """Random password drawn from letters, digits and ``!@#$%^&*``."""
    if length <= 0:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(PASSWORD_CHARSET) for _ in range(length))


def mask_secret(value: str, visible_chars: int = 4) -> str:
    """Keep the first ``visible_chars`` characters and star out the rest."""
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)
