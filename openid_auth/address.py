"""
Address derivation.

An OpenID authenticator's address is the Blake2b-256 digest of its four
verifying-key components. Plain signer addresses hash the scheme flag and
public key instead.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import TYPE_CHECKING

from openid_auth.errors import MalformedEncoding

if TYPE_CHECKING:
    from openid_auth.signature import PublicKey

ADDRESS_LENGTH = 32


@dataclass(frozen=True)
class SuiAddress:
    """A 32-byte account address."""

    address: bytes

    def __post_init__(self):
        if len(self.address) != ADDRESS_LENGTH:
            raise MalformedEncoding(
                f"Address must be {ADDRESS_LENGTH} bytes, got {len(self.address)}"
            )

    def __str__(self) -> str:
        return "0x" + self.address.hex()

    @classmethod
    def from_hex(cls, value: str) -> SuiAddress:
        if value.startswith("0x"):
            value = value[2:]
        try:
            raw = bytes.fromhex(value)
        except ValueError as e:
            raise MalformedEncoding(f"Invalid address hex: {e}") from e
        return cls(raw)

    @classmethod
    def from_public_key(cls, public_key: PublicKey) -> SuiAddress:
        hasher = hashlib.blake2b(digest_size=ADDRESS_LENGTH)
        hasher.update(bytes([public_key.scheme]))
        hasher.update(public_key.key_bytes)
        return cls(hasher.digest())


def derive_address(
    vk_gamma_abc_g1: bytes,
    alpha_g1_beta_g2: bytes,
    gamma_g2_neg_pc: bytes,
    delta_g2_neg_pc: bytes,
) -> SuiAddress:
    """Hash the verifying-key components, in this fixed order, into an address."""
    hasher = hashlib.blake2b(digest_size=ADDRESS_LENGTH)
    hasher.update(vk_gamma_abc_g1)
    hasher.update(alpha_g1_beta_g2)
    hasher.update(gamma_g2_neg_pc)
    hasher.update(delta_g2_neg_pc)
    return SuiAddress(hasher.digest())
