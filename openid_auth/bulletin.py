"""
Identity-provider key bulletins.

A bulletin is the set of provider signing keys a trusted authority currently
vouches for. The authority signs it as a personal message, so the signature
lives in a different intent scope than any transaction signature.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

from cryptography.exceptions import InvalidSignature as CryptoInvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed
from jwcrypto import jwk
from jwcrypto.common import JWException

from openid_auth.bcs import Deserializer, Serializer
from openid_auth.errors import (
    BulletinSignatureInvalid,
    InvalidSignature,
    JwtSignatureInvalid,
    MalformedEncoding,
    UnknownIssuer,
)
from openid_auth.intent import Intent, IntentMessage
from openid_auth.signature import PublicKey, Signature

logger = logging.getLogger(__name__)

SUPPORTED_JWT_ALGORITHMS = ("RS256",)


@dataclass(frozen=True)
class ProviderKeyRecord:
    """
    One identity-provider signing key, in JWK terms.

    Attributes:
        iss: Issuer identifier (e.g. "https://accounts.google.com").
        kty: JWK key type ("RSA").
        kid: Key id, matched against the token header.
        e: Base64url public exponent.
        n: Base64url modulus.
        alg: Signing algorithm ("RS256").
    """

    iss: str
    kty: str
    kid: str
    e: str
    n: str
    alg: str

    def serialize(self, serializer: Serializer):
        serializer.str(self.iss)
        serializer.str(self.kty)
        serializer.str(self.kid)
        serializer.str(self.e)
        serializer.str(self.n)
        serializer.str(self.alg)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> ProviderKeyRecord:
        return ProviderKeyRecord(
            iss=deserializer.str(),
            kty=deserializer.str(),
            kid=deserializer.str(),
            e=deserializer.str(),
            n=deserializer.str(),
            alg=deserializer.str(),
        )

    @classmethod
    def from_jwk(cls, iss: str, key: dict) -> ProviderKeyRecord:
        """Build a record from a provider JWKS entry."""
        return cls(
            iss=iss,
            kty=key["kty"],
            kid=key["kid"],
            e=key["e"],
            n=key["n"],
            alg=key.get("alg", "RS256"),
        )

    def public_key(self) -> rsa.RSAPublicKey:
        if self.kty != "RSA":
            raise MalformedEncoding(f"Unsupported provider key type: {self.kty}")
        try:
            key = jwk.JWK(kty=self.kty, n=self.n, e=self.e)
            return key.get_op_key("verify")
        except (JWException, ValueError) as e:
            raise MalformedEncoding(f"Invalid provider key {self.kid}: {e}") from e

    def verify_jwt_signature(self, signing_input_digest: bytes, signature: bytes) -> None:
        """
        Check a provider signature over the SHA-256 digest of a JWS signing input.

        Raises:
            JwtSignatureInvalid: if the algorithm is unsupported or the check fails.
            MalformedEncoding: if the record's key material cannot be decoded.
        """
        if self.alg not in SUPPORTED_JWT_ALGORITHMS:
            raise JwtSignatureInvalid(f"Unsupported JWT algorithm: {self.alg}")
        public_key = self.public_key()
        try:
            public_key.verify(
                signature,
                signing_input_digest,
                padding.PKCS1v15(),
                Prehashed(hashes.SHA256()),
            )
        except (CryptoInvalidSignature, ValueError) as e:
            raise JwtSignatureInvalid(f"JWT signature invalid for key {self.kid}") from e


Bulletin = Tuple[ProviderKeyRecord, ...]


def serialize_bulletin(serializer: Serializer, bulletin: Sequence[ProviderKeyRecord]):
    serializer.sequence(bulletin, lambda ser, record: record.serialize(ser))


def deserialize_bulletin(deserializer: Deserializer) -> Bulletin:
    return tuple(deserializer.sequence(ProviderKeyRecord.deserialize))


def bulletin_bytes(bulletin: Sequence[ProviderKeyRecord]) -> bytes:
    ser = Serializer()
    serialize_bulletin(ser, bulletin)
    return ser.output()


def bulletin_intent_message(bulletin: Sequence[ProviderKeyRecord]) -> IntentMessage:
    """The exact message a trusted authority signs to publish a bulletin."""
    return IntentMessage(Intent.personal_message(), bulletin_bytes(bulletin))


def find_record(
    bulletin: Iterable[ProviderKeyRecord], iss: str, kid: str
) -> ProviderKeyRecord:
    for record in bulletin:
        if record.iss == iss and record.kid == kid:
            return record
    raise UnknownIssuer(f"No bulletin key for issuer {iss!r} with kid {kid!r}")


def validate_bulletin(
    bulletin: Sequence[ProviderKeyRecord],
    bulletin_signature: Signature,
    trusted_authority: PublicKey,
    iss: str,
    kid: str,
) -> ProviderKeyRecord:
    """
    Verify the authority's signature over the bulletin, then resolve a record.

    Raises:
        BulletinSignatureInvalid: bad signature or signer is not the authority.
            No lookup is attempted in that case.
        UnknownIssuer: no record matches (iss, kid).
    """
    try:
        bulletin_signature.verify_secure(
            bulletin_intent_message(bulletin), expected_key=trusted_authority
        )
    except InvalidSignature as e:
        logger.debug(f"Bulletin signature rejected: {e}")
        raise BulletinSignatureInvalid(str(e)) from e

    return find_record(bulletin, iss, kid)
