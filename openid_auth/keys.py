"""
Signing key pairs for the supported signature schemes.

Used to sign bulletins (authority keys) and transactions (ephemeral keys).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature

from openid_auth.errors import MalformedEncoding
from openid_auth.intent import IntentMessage
from openid_auth.signature import (
    ECDSA_CURVES,
    ECDSA_ORDERS,
    PublicKey,
    Signature,
    SignatureScheme,
)


@dataclass(frozen=True)
class KeyPair:
    """
    A private key and its scheme.

    Example:
        >>> kp = KeyPair.generate(SignatureScheme.SECP256K1)
        >>> sig = kp.sign_secure(IntentMessage(Intent.transaction(), tx_bytes))
        >>> sig.verify_secure(IntentMessage(Intent.transaction(), tx_bytes))
    """

    scheme: SignatureScheme
    private_key: Any

    @classmethod
    def generate(cls, scheme: SignatureScheme = SignatureScheme.ED25519) -> KeyPair:
        if scheme == SignatureScheme.ED25519:
            return cls(scheme, Ed25519PrivateKey.generate())
        return cls(scheme, ec.generate_private_key(ECDSA_CURVES[scheme]()))

    @classmethod
    def from_private_bytes(cls, scheme: SignatureScheme, secret: bytes) -> KeyPair:
        if len(secret) != 32:
            raise MalformedEncoding(f"Private key must be 32 bytes, got {len(secret)}")
        try:
            if scheme == SignatureScheme.ED25519:
                return cls(scheme, Ed25519PrivateKey.from_private_bytes(secret))
            value = int.from_bytes(secret, "big")
            return cls(scheme, ec.derive_private_key(value, ECDSA_CURVES[scheme]()))
        except ValueError as e:
            raise MalformedEncoding(f"Invalid {scheme.name} private key: {e}") from e

    def private_bytes(self) -> bytes:
        if self.scheme == SignatureScheme.ED25519:
            return self.private_key.private_bytes(
                serialization.Encoding.Raw,
                serialization.PrivateFormat.Raw,
                serialization.NoEncryption(),
            )
        return self.private_key.private_numbers().private_value.to_bytes(32, "big")

    def public(self) -> PublicKey:
        public_key = self.private_key.public_key()
        if self.scheme == SignatureScheme.ED25519:
            raw = public_key.public_bytes(
                serialization.Encoding.Raw, serialization.PublicFormat.Raw
            )
        else:
            raw = public_key.public_bytes(
                serialization.Encoding.X962, serialization.PublicFormat.CompressedPoint
            )
        return PublicKey(self.scheme, raw)

    def sign_digest(self, digest: bytes) -> bytes:
        if self.scheme == SignatureScheme.ED25519:
            return self.private_key.sign(digest)

        der = self.private_key.sign(digest, ec.ECDSA(hashes.SHA256()))
        r, s = decode_dss_signature(der)
        order = ECDSA_ORDERS[self.scheme]
        # Normalize to low-S; verification rejects the malleable twin.
        if s > order // 2:
            s = order - s
        return r.to_bytes(32, "big") + s.to_bytes(32, "big")

    def sign_secure(self, intent_msg: IntentMessage) -> Signature:
        return Signature(self.scheme, self.sign_digest(intent_msg.digest()), self.public().key_bytes)
