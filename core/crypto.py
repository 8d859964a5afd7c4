"""
core/crypto.py — Cryptography Engine
======================================
Central place for ALL encryption and hashing in the registry.
Every module imports from here — never roll your own crypto elsewhere.

Provides:
- AES encryption / decryption  (via Fernet) for owner national IDs at rest
- SHA-3 hashing                (for the transfer-history provenance seal)
"""

import hashlib
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from config import settings

logger = logging.getLogger("landregistry.crypto")


class CryptoEngine:
    """
    Singleton crypto engine — initialized once in main.py,
    then used across all modules via:  from core.crypto import crypto_engine
    """

    def __init__(self):
        self._fernet: Optional[Fernet] = None
        self._ready = False

    def initialize(self, key: Optional[str] = None):
        """Called once on app startup (main.py lifespan)."""
        key = key or settings.ENCRYPTION_KEY
        if not key:
            raise ValueError(
                "ENCRYPTION_KEY is not set in .env! "
                "Generate one with: python -c \"from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())\""
            )
        self._fernet = Fernet(key.encode())
        self._ready = True
        logger.info("Crypto engine initialized.")

    def is_ready(self) -> str:
        return "ok" if self._ready else "not initialized"

    # ── Encryption ─────────────────────────────────────────────────────────
    def encrypt(self, plaintext: str) -> str:
        """
        Encrypts a string using Fernet.
        Returns base64-encoded ciphertext safe to store in DB.
        """
        if not self._ready:
            raise RuntimeError("CryptoEngine not initialized. Call initialize() first.")
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: str) -> str:
        """Decrypts a previously encrypted string."""
        if not self._ready:
            raise RuntimeError("CryptoEngine not initialized.")
        try:
            return self._fernet.decrypt(ciphertext.encode()).decode()
        except InvalidToken:
            # Wrong ENCRYPTION_KEY for this database
            logger.error("Could not decrypt a stored value — check ENCRYPTION_KEY.")
            raise

    def encrypt_optional(self, plaintext: Optional[str]) -> Optional[str]:
        return self.encrypt(plaintext) if plaintext else None

    def decrypt_optional(self, ciphertext: Optional[str]) -> Optional[str]:
        return self.decrypt(ciphertext) if ciphertext else None

    # ── Hashing ────────────────────────────────────────────────────────────
    def hash_sha3(self, data: str) -> str:
        """
        SHA-3 (256) hash — used to seal transfer records.
        One-way: you can verify but never reverse.
        """
        return hashlib.sha3_256(data.encode()).hexdigest()


# Singleton instance — import this everywhere
crypto_engine = CryptoEngine()
