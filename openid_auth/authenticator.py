"""
OpenID Authenticator - authenticate a federated (OAuth/OIDC) signer.

An OpenIdAuthenticator binds three proofs into one verification act:

1. a Groth16 proof that a provider-issued identity token produced the
   claimed address (the address is the hash of the verifying key),
2. an ephemeral-key signature over the transaction intent,
3. a bulletin of provider keys signed by a trusted authority.

verify_secure_generic() runs the checks cheapest-first and raises the first
failure; nothing after a failing check runs. The object is immutable and
verification is a pure function of its inputs.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from openid_auth import config
from openid_auth.address import SuiAddress, derive_address
from openid_auth.bcs import Deserializer, Serializer
from openid_auth.bulletin import (
    Bulletin,
    deserialize_bulletin,
    serialize_bulletin,
    validate_bulletin,
)
from openid_auth.epoch import check_epoch
from openid_auth.errors import (
    AddressMismatch,
    AuthenticatorError,
    ConfigurationError,
    InvalidSignature,
    MalformedEncoding,
    UserSignatureInvalid,
)
from openid_auth.groth16 import (
    G1_LENGTH,
    SCALAR_FIELD_ORDER,
    PreparedVerifyingKey,
    Proof,
    check_proof_encoding,
    check_verifying_key_encoding,
    verify_groth16,
)
from openid_auth.intent import IntentMessage, IntentScope
from openid_auth.signature import PublicKey, Signature

logger = logging.getLogger(__name__)

# Leading flag of the serialized authenticator, next to the plain signature
# scheme flags (0x00-0x02).
OPENID_FLAG = 0x05

DIGEST_LENGTH = 32

PUBLIC_INPUT_DOMAIN = b"openid-authenticator/public-input/v1"

PUBLIC_INPUT_COUNT = 1


@dataclass(frozen=True)
class MaskedContent:
    """
    The redacted identity token.

    The raw token never appears. What remains is the issuer and key id (to
    pick the provider key) and the SHA-256 digest of the token's JWS signing
    input, which the provider's signature is checked against.
    """

    iss: str
    kid: str
    digest: bytes

    def __post_init__(self):
        if len(self.digest) != DIGEST_LENGTH:
            raise MalformedEncoding(
                f"Masked content digest must be {DIGEST_LENGTH} bytes, got {len(self.digest)}"
            )

    @classmethod
    def from_jwt(cls, iss: str, kid: str, signing_input: bytes) -> MaskedContent:
        """Mask a token given its ``header.payload`` signing input."""
        return cls(iss, kid, hashlib.sha256(signing_input).digest())

    def serialize(self, serializer: Serializer):
        serializer.str(self.iss)
        serializer.str(self.kid)
        serializer.to_bytes(self.digest)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MaskedContent:
        return MaskedContent(deserializer.str(), deserializer.str(), deserializer.to_bytes())

    def to_bytes(self) -> bytes:
        ser = Serializer()
        self.serialize(ser)
        return ser.output()


@dataclass(frozen=True)
class OpenIdAuthenticator:
    vk_gamma_abc_g1: bytes
    alpha_g1_beta_g2: bytes
    gamma_g2_neg_pc: bytes
    delta_g2_neg_pc: bytes
    proof_points: bytes
    hash: bytes
    masked_content: MaskedContent
    max_epoch: int
    jwt_signature: bytes
    user_signature: Signature
    bulletin_signature: Signature
    bulletin: Bulletin

    def __post_init__(self):
        if len(self.hash) != DIGEST_LENGTH:
            raise MalformedEncoding(
                f"Public-input hash must be {DIGEST_LENGTH} bytes, got {len(self.hash)}"
            )
        if not 0 <= self.max_epoch < 2**64:
            raise MalformedEncoding(f"max_epoch {self.max_epoch} does not fit in u64")
        check_verifying_key_encoding(
            self.vk_gamma_abc_g1,
            self.alpha_g1_beta_g2,
            self.gamma_g2_neg_pc,
            self.delta_g2_neg_pc,
        )
        # IC[0] plus one point per public input.
        expected = (PUBLIC_INPUT_COUNT + 1) * G1_LENGTH
        if len(self.vk_gamma_abc_g1) != expected:
            raise MalformedEncoding(
                f"vk_gamma_abc_g1 must be {expected} bytes, got {len(self.vk_gamma_abc_g1)}"
            )
        check_proof_encoding(self.proof_points)
        # Accept any sequence but store a tuple so the object stays hashable.
        object.__setattr__(self, "bulletin", tuple(self.bulletin))

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def address(self) -> SuiAddress:
        return derive_address(
            self.vk_gamma_abc_g1,
            self.alpha_g1_beta_g2,
            self.gamma_g2_neg_pc,
            self.delta_g2_neg_pc,
        )

    def public_inputs(self, address: Optional[SuiAddress] = None) -> Tuple[int]:
        """
        The proof's public-input vector.

        A single scalar committing to the public-input hash, the masked
        content, the epoch bound, the address and the ephemeral public key.
        Binding the ephemeral key here is what ties ``user_signature`` to the
        proof.
        """
        address = address or self.address()
        ser = Serializer()
        ser.fixed_bytes(PUBLIC_INPUT_DOMAIN)
        ser.fixed_bytes(self.hash)
        self.masked_content.serialize(ser)
        ser.u64(self.max_epoch)
        ser.fixed_bytes(address.address)
        ser.fixed_bytes(self.user_signature.public_key.to_bytes())
        digest = hashlib.blake2b(ser.output(), digest_size=32).digest()
        return (int.from_bytes(digest, "big") % SCALAR_FIELD_ORDER,)

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify_secure_generic(
        self,
        intent_msg: IntentMessage,
        author: SuiAddress,
        epoch: Optional[int] = None,
        *,
        trusted_authority: Optional[PublicKey] = None,
    ) -> None:
        """
        Verify this authenticator for a transaction intent.

        Args:
            intent_msg: The exact intent message the ephemeral key signed.
            author: The address claimed as the transaction signer.
            epoch: Current epoch. None skips the epoch check entirely.
            trusted_authority: Bulletin signer key. Falls back to the
                OPENID_AUTH_TRUSTED_AUTHORITY setting when omitted.

        Raises:
            ConfigurationError: no trusted authority is available.
            AddressMismatch, AuthenticatorExpired, BulletinSignatureInvalid,
            UnknownIssuer, JwtSignatureInvalid, ProofInvalid,
            UserSignatureInvalid, MalformedEncoding: the first failed check.
        """
        if trusted_authority is None:
            trusted_authority = config.get_trusted_authority()
        if trusted_authority is None:
            raise ConfigurationError(
                "No trusted authority configured; pass trusted_authority or set "
                "OPENID_AUTH_TRUSTED_AUTHORITY"
            )

        # 1. The author must be the hash of the verifying key.
        address = self.address()
        if author != address:
            logger.debug(f"Author {author} does not match derived address {address}")
            raise AddressMismatch(f"Author {author} is not authenticator address {address}")

        # 2. Freshness.
        check_epoch(self.max_epoch, epoch)

        # 3. The provider keys must come from the trusted authority.
        record = validate_bulletin(
            self.bulletin,
            self.bulletin_signature,
            trusted_authority,
            self.masked_content.iss,
            self.masked_content.kid,
        )

        # 4. The identity token must be signed by that provider key.
        record.verify_jwt_signature(self.masked_content.digest, self.jwt_signature)

        # 5. The proof, the most expensive check. Lengths and field ranges
        # were checked at construction; decoding adds curve membership.
        vk = PreparedVerifyingKey.from_bytes(
            self.vk_gamma_abc_g1,
            self.alpha_g1_beta_g2,
            self.gamma_g2_neg_pc,
            self.delta_g2_neg_pc,
        )
        proof = Proof.from_bytes(self.proof_points)
        verify_groth16(vk, self.public_inputs(address), proof)

        # 6. The ephemeral key must have authorized this transaction.
        if intent_msg.intent.scope != IntentScope.TRANSACTION_DATA:
            raise UserSignatureInvalid(
                f"User signature must cover transaction data, not {intent_msg.intent.scope.name}"
            )
        try:
            self.user_signature.verify_secure(intent_msg)
        except InvalidSignature as e:
            logger.debug(f"User signature rejected: {e}")
            raise UserSignatureInvalid(str(e)) from e

    def is_valid(
        self,
        intent_msg: IntentMessage,
        author: SuiAddress,
        epoch: Optional[int] = None,
        *,
        trusted_authority: Optional[PublicKey] = None,
    ) -> bool:
        """Boolean form of verify_secure_generic for callers that only gate."""
        try:
            self.verify_secure_generic(
                intent_msg, author, epoch, trusted_authority=trusted_authority
            )
        except AuthenticatorError as e:
            logger.debug(f"Authenticator rejected ({e.kind}): {e}")
            return False
        return True

    # ------------------------------------------------------------------
    # Wire form
    # ------------------------------------------------------------------

    def serialize(self, serializer: Serializer):
        serializer.u8(OPENID_FLAG)
        serializer.to_bytes(self.vk_gamma_abc_g1)
        serializer.to_bytes(self.alpha_g1_beta_g2)
        serializer.to_bytes(self.gamma_g2_neg_pc)
        serializer.to_bytes(self.delta_g2_neg_pc)
        serializer.to_bytes(self.proof_points)
        serializer.to_bytes(self.hash)
        self.masked_content.serialize(serializer)
        serializer.u64(self.max_epoch)
        serializer.to_bytes(self.jwt_signature)
        self.user_signature.serialize(serializer)
        self.bulletin_signature.serialize(serializer)
        serialize_bulletin(serializer, self.bulletin)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> OpenIdAuthenticator:
        flag = deserializer.u8()
        if flag != OPENID_FLAG:
            raise MalformedEncoding(f"Not an OpenID authenticator (flag {flag:#04x})")
        return OpenIdAuthenticator(
            vk_gamma_abc_g1=deserializer.to_bytes(),
            alpha_g1_beta_g2=deserializer.to_bytes(),
            gamma_g2_neg_pc=deserializer.to_bytes(),
            delta_g2_neg_pc=deserializer.to_bytes(),
            proof_points=deserializer.to_bytes(),
            hash=deserializer.to_bytes(),
            masked_content=MaskedContent.deserialize(deserializer),
            max_epoch=deserializer.u64(),
            jwt_signature=deserializer.to_bytes(),
            user_signature=Signature.deserialize(deserializer),
            bulletin_signature=Signature.deserialize(deserializer),
            bulletin=deserialize_bulletin(deserializer),
        )

    def to_bytes(self) -> bytes:
        ser = Serializer()
        self.serialize(ser)
        return ser.output()

    @classmethod
    def from_bytes(cls, data: bytes) -> OpenIdAuthenticator:
        des = Deserializer(data)
        authenticator = cls.deserialize(des)
        des.assert_finished()
        return authenticator
