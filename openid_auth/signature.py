"""
Scheme-polymorphic signature verification.

Signatures travel as ``flag || signature || public key``. The flag byte
selects one of a closed set of schemes; dispatch is on that flag, never on
the runtime type of a key object. Keys sign the Blake2b-256 digest of an
intent message (see openid_auth.intent).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from cryptography.exceptions import InvalidSignature as CryptoInvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from cryptography.hazmat.primitives.asymmetric.utils import encode_dss_signature

from openid_auth.address import SuiAddress
from openid_auth.bcs import Deserializer, Serializer
from openid_auth.errors import InvalidSignature, MalformedEncoding
from openid_auth.intent import IntentMessage

logger = logging.getLogger(__name__)


class SignatureScheme(IntEnum):
    ED25519 = 0x00
    SECP256K1 = 0x01
    SECP256R1 = 0x02


SIGNATURE_LENGTH = 64

PUBLIC_KEY_LENGTHS = {
    SignatureScheme.ED25519: 32,
    SignatureScheme.SECP256K1: 33,
    SignatureScheme.SECP256R1: 33,
}

ECDSA_CURVES = {
    SignatureScheme.SECP256K1: ec.SECP256K1,
    SignatureScheme.SECP256R1: ec.SECP256R1,
}

# Group orders, used for the r/s range and low-S checks.
ECDSA_ORDERS = {
    SignatureScheme.SECP256K1: 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141,
    SignatureScheme.SECP256R1: 0xFFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551,
}


def parse_scheme(flag: int) -> SignatureScheme:
    try:
        return SignatureScheme(flag)
    except ValueError as e:
        raise MalformedEncoding(f"Unsupported signature scheme flag: {flag:#04x}") from e


@dataclass(frozen=True)
class PublicKey:
    """A public key tagged with its scheme."""

    scheme: SignatureScheme
    key_bytes: bytes

    def __post_init__(self):
        expected = PUBLIC_KEY_LENGTHS[self.scheme]
        if len(self.key_bytes) != expected:
            raise MalformedEncoding(
                f"{self.scheme.name} public key must be {expected} bytes, "
                f"got {len(self.key_bytes)}"
            )
        # Decode eagerly so bad key material surfaces as an encoding error.
        self._load()

    def to_bytes(self) -> bytes:
        return bytes([self.scheme]) + self.key_bytes

    @classmethod
    def from_bytes(cls, data: bytes) -> PublicKey:
        if not data:
            raise MalformedEncoding("Empty public key")
        return cls(parse_scheme(data[0]), bytes(data[1:]))

    @classmethod
    def from_hex(cls, value: str) -> PublicKey:
        try:
            return cls.from_bytes(bytes.fromhex(value.removeprefix("0x")))
        except ValueError as e:
            raise MalformedEncoding(f"Invalid public key hex: {e}") from e

    def to_address(self) -> SuiAddress:
        return SuiAddress.from_public_key(self)

    def _load(self):
        try:
            if self.scheme == SignatureScheme.ED25519:
                return Ed25519PublicKey.from_public_bytes(self.key_bytes)
            curve = ECDSA_CURVES[self.scheme]()
            return ec.EllipticCurvePublicKey.from_encoded_point(curve, self.key_bytes)
        except ValueError as e:
            raise MalformedEncoding(f"Undecodable {self.scheme.name} public key: {e}") from e

    def verify_digest(self, digest: bytes, signature: bytes) -> None:
        """
        Verify a raw 64-byte signature over a message digest.

        Raises:
            InvalidSignature: on any cryptographic mismatch.
        """
        key = self._load()
        try:
            if self.scheme == SignatureScheme.ED25519:
                key.verify(signature, digest)
                return

            order = ECDSA_ORDERS[self.scheme]
            r = int.from_bytes(signature[:32], "big")
            s = int.from_bytes(signature[32:], "big")
            if not (0 < r < order and 0 < s <= order // 2):
                raise InvalidSignature(f"{self.scheme.name} signature is out of range or high-S")
            key.verify(encode_dss_signature(r, s), digest, ec.ECDSA(hashes.SHA256()))
        except CryptoInvalidSignature as e:
            raise InvalidSignature(f"{self.scheme.name} signature mismatch") from e


@dataclass(frozen=True)
class Signature:
    """A flagged signature carrying the signer's public key."""

    scheme: SignatureScheme
    signature: bytes
    public_key_bytes: bytes

    def __post_init__(self):
        if len(self.signature) != SIGNATURE_LENGTH:
            raise MalformedEncoding(
                f"Signature must be {SIGNATURE_LENGTH} bytes, got {len(self.signature)}"
            )
        PublicKey(self.scheme, self.public_key_bytes)

    @property
    def public_key(self) -> PublicKey:
        return PublicKey(self.scheme, self.public_key_bytes)

    def to_bytes(self) -> bytes:
        return bytes([self.scheme]) + self.signature + self.public_key_bytes

    @classmethod
    def from_bytes(cls, data: bytes) -> Signature:
        if not data:
            raise MalformedEncoding("Empty signature")
        scheme = parse_scheme(data[0])
        expected = 1 + SIGNATURE_LENGTH + PUBLIC_KEY_LENGTHS[scheme]
        if len(data) != expected:
            raise MalformedEncoding(
                f"{scheme.name} signature must be {expected} bytes, got {len(data)}"
            )
        return cls(
            scheme,
            bytes(data[1 : 1 + SIGNATURE_LENGTH]),
            bytes(data[1 + SIGNATURE_LENGTH :]),
        )

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.to_bytes())

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Signature:
        return Signature.from_bytes(deserializer.to_bytes())

    def verify_secure(
        self, intent_msg: IntentMessage, expected_key: Optional[PublicKey] = None
    ) -> None:
        """
        Verify this signature over an intent message.

        The signed bytes include the intent scope, so a signature made for one
        scope fails for any other. When ``expected_key`` is given the embedded
        key must equal it.

        Raises:
            InvalidSignature: if the key does not match or the signature fails.
        """
        public_key = self.public_key
        if expected_key is not None and public_key != expected_key:
            logger.debug(
                f"Signer {public_key.to_address()} is not the expected "
                f"{expected_key.to_address()}"
            )
            raise InvalidSignature("Signature was made by an unexpected key")
        public_key.verify_digest(intent_msg.digest(), self.signature)
