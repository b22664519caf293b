"""
Shared pytest fixtures for OpenID authenticator tests.

The fixtures assemble a complete, valid authenticator bundle: a Groth16
verifying key from known trapdoor scalars (so tests can produce proofs
without a circuit), an RSA identity-provider key, a bulletin signed by an
authority key and a transaction signed by an ephemeral key.
"""

import base64
import dataclasses
import json
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from jwcrypto import jwk
from py_ecc import optimized_bn128 as bn128

from openid_auth import (
    Intent,
    IntentMessage,
    KeyPair,
    MaskedContent,
    OpenIdAuthenticator,
    ProviderKeyRecord,
    PublicKey,
    SignatureScheme,
    SuiAddress,
    bulletin_intent_message,
)
from openid_auth.groth16 import encode_g1, encode_g2, encode_gt

ISSUER = "https://accounts.google.com"
KID = "986ee9a3b7520b494df54fe32e3e5c4ca685c89d"
MAX_EPOCH = 5
PUBLIC_INPUT_HASH = bytes.fromhex(
    "c88a34847b4ffb12a9326e540f144b3dcc4d5515f18701e7d6e0ee7866c9c705"
)
TX_BYTES = b"\x00\x01transfer:100:0x2a" + bytes(range(32))


def b64url(data: bytes) -> bytes:
    return base64.urlsafe_b64encode(data).rstrip(b"=")


def flip(data: bytes, index: int) -> bytes:
    """Return ``data`` with one bit of byte ``index`` flipped."""
    mutated = bytearray(data)
    mutated[index] ^= 0x01
    return bytes(mutated)


@dataclass(frozen=True)
class TrustedSetup:
    """
    A single-input Groth16 verifying key whose trapdoors are known.

    Knowing alpha, beta, gamma, delta and the IC scalars lets the tests
    solve the verification equation for C directly.
    """

    alpha: int = 0x1D4F_2B3A_9C11
    beta: int = 0x2E6A_91F0_7713
    gamma: int = 0x3B07_C4D2_1E55
    delta: int = 0x4C19_8AE6_0F27
    ic: Sequence[int] = (0x5A3E_7710_C2B9, 0x6B51_0E8D_3F4A)

    def verifying_key(self):
        vk_gamma_abc_g1 = b"".join(encode_g1(bn128.multiply(bn128.G1, s)) for s in self.ic)
        alpha_g1_beta_g2 = encode_gt(
            bn128.pairing(bn128.multiply(bn128.G2, self.beta), bn128.multiply(bn128.G1, self.alpha))
        )
        gamma_g2_neg_pc = encode_g2(bn128.neg(bn128.multiply(bn128.G2, self.gamma)))
        delta_g2_neg_pc = encode_g2(bn128.neg(bn128.multiply(bn128.G2, self.delta)))
        return vk_gamma_abc_g1, alpha_g1_beta_g2, gamma_g2_neg_pc, delta_g2_neg_pc

    def prove(self, public_input: int, r: int = 0x1357_9BDF, s: int = 0x2468_ACE0) -> bytes:
        n = bn128.curve_order
        lin = (self.ic[0] + self.ic[1] * public_input) % n
        c = (r * s - self.alpha * self.beta - lin * self.gamma) * pow(self.delta, -1, n) % n
        return (
            encode_g1(bn128.multiply(bn128.G1, r))
            + encode_g2(bn128.multiply(bn128.G2, s))
            + encode_g1(bn128.multiply(bn128.G1, c))
        )


@dataclass(frozen=True)
class Bundle:
    """A valid authenticator plus everything needed to verify it."""

    authenticator: OpenIdAuthenticator
    intent_msg: IntentMessage
    address: SuiAddress
    authority: PublicKey

    def verify(self, epoch: Optional[int] = MAX_EPOCH, **overrides) -> None:
        authenticator = dataclasses.replace(self.authenticator, **overrides)
        authenticator.verify_secure_generic(
            self.intent_msg, self.address, epoch, trusted_authority=self.authority
        )


@pytest.fixture(scope="session")
def trusted_setup() -> TrustedSetup:
    return TrustedSetup()


@pytest.fixture(scope="session")
def verifying_key(trusted_setup):
    return trusted_setup.verifying_key()


@pytest.fixture(scope="session")
def authority_key() -> KeyPair:
    """Bulletin signer."""
    return KeyPair.generate(SignatureScheme.ED25519)


@pytest.fixture(scope="session")
def ephemeral_key() -> KeyPair:
    """Transaction signer bound into the proof."""
    return KeyPair.generate(SignatureScheme.SECP256K1)


@pytest.fixture(scope="session")
def provider_key() -> jwk.JWK:
    return jwk.JWK.generate(kty="RSA", size=2048)


@pytest.fixture(scope="session")
def other_provider_record() -> ProviderKeyRecord:
    other = jwk.JWK.generate(kty="RSA", size=2048)
    public = dict(json.loads(other.export_public()), kid="other-kid")
    return ProviderKeyRecord.from_jwk("https://www.facebook.com", public)


@pytest.fixture(scope="session")
def bulletin(provider_key, other_provider_record):
    public = dict(json.loads(provider_key.export_public()), kid=KID)
    record = ProviderKeyRecord.from_jwk(ISSUER, public)
    return (other_provider_record, record)


@pytest.fixture(scope="session")
def jwt_parts(provider_key):
    """Masked content and provider signature for a sample identity token."""
    header = b64url(json.dumps({"alg": "RS256", "kid": KID, "typ": "JWT"}).encode())
    payload = b64url(
        json.dumps(
            {"iss": ISSUER, "sub": "110463452167303598383", "aud": "sui", "nonce": "abc"}
        ).encode()
    )
    signing_input = header + b"." + payload
    signature = provider_key.get_op_key("sign").sign(
        signing_input, padding.PKCS1v15(), hashes.SHA256()
    )
    return MaskedContent.from_jwt(ISSUER, KID, signing_input), signature


@pytest.fixture(scope="session")
def make_bundle(
    trusted_setup, verifying_key, authority_key, ephemeral_key, bulletin, jwt_parts
) -> Callable[..., Bundle]:
    """Factory building a valid bundle for a given max epoch."""
    masked_content, jwt_signature = jwt_parts
    intent_msg = IntentMessage(Intent.transaction(), TX_BYTES)

    def build(max_epoch: int = MAX_EPOCH) -> Bundle:
        vk_gamma_abc_g1, alpha_g1_beta_g2, gamma_g2_neg_pc, delta_g2_neg_pc = verifying_key
        unproven = OpenIdAuthenticator(
            vk_gamma_abc_g1=vk_gamma_abc_g1,
            alpha_g1_beta_g2=alpha_g1_beta_g2,
            gamma_g2_neg_pc=gamma_g2_neg_pc,
            delta_g2_neg_pc=delta_g2_neg_pc,
            # Well-formed placeholder; replaced once the public input is known.
            proof_points=trusted_setup.prove(0),
            hash=PUBLIC_INPUT_HASH,
            masked_content=masked_content,
            max_epoch=max_epoch,
            jwt_signature=jwt_signature,
            user_signature=ephemeral_key.sign_secure(intent_msg),
            bulletin_signature=authority_key.sign_secure(bulletin_intent_message(bulletin)),
            bulletin=bulletin,
        )
        (public_input,) = unproven.public_inputs()
        authenticator = dataclasses.replace(
            unproven, proof_points=trusted_setup.prove(public_input)
        )
        return Bundle(
            authenticator=authenticator,
            intent_msg=intent_msg,
            address=authenticator.address(),
            authority=authority_key.public(),
        )

    return build


@pytest.fixture(scope="session")
def bundle(make_bundle) -> Bundle:
    return make_bundle()
