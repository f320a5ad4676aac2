"""
Key pair generation for participant manifests.

Only EdDSA over Ed25519 is supported.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519


class UnsupportedKeyError(ValueError):
    pass


@dataclass(frozen=True)
class KeyPair:
    algorithm: str
    curve: str
    public_key: str
    private_key_pem: str = field(repr=False)


class Ed25519KeyGenerator:
    """Generates Ed25519 key pairs from manifest key generator params."""

    def supports(self, params: dict[str, Any]) -> bool:
        algorithm = str(params.get("algorithm", "")).upper()
        curve = str(params.get("curve", "")).lower()
        return algorithm == "EDDSA" and curve == "ed25519"

    def generate(self, params: dict[str, Any]) -> KeyPair:
        if not self.supports(params):
            raise UnsupportedKeyError(
                f"Unsupported key generator params: algorithm={params.get('algorithm')}, "
                f"curve={params.get('curve')}"
            )

        private_key = ed25519.Ed25519PrivateKey.generate()
        private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode()
        public_raw = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return KeyPair(
            algorithm="EdDSA",
            curve="Ed25519",
            public_key=base64.urlsafe_b64encode(public_raw).rstrip(b"=").decode(),
            private_key_pem=private_pem,
        )
