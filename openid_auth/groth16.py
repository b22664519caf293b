"""
Groth16 proof verification on BN254.

Curve arithmetic and pairings come from ``py_ecc.optimized_bn128``; this
module only decodes points and evaluates the verification equation

    e(A, B) * e(L, -gamma) * e(C, -delta) == e(alpha, beta)

where ``L = IC[0] + sum(x_i * IC[i + 1])`` over the public inputs ``x``.

Encodings (field elements are 32-byte big-endian integers):

- G1 point: ``x || y``
- G2 point: ``x.c0 || x.c1 || y.c0 || y.c1``
- GT element: the 12 coefficients of the Fq12 value
- proof: ``A (G1) || B (G2) || C (G1)``

The verifying key ships ``e(alpha, beta)``, ``-gamma`` and ``-delta``
precomputed. They save a pairing and two negations per check and carry no
trust beyond the raw key components they derive from.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from py_ecc import optimized_bn128 as bn128

from openid_auth.errors import MalformedEncoding, ProofInvalid

logger = logging.getLogger(__name__)

FIELD_ELEMENT_LENGTH = 32
G1_LENGTH = 2 * FIELD_ELEMENT_LENGTH
G2_LENGTH = 4 * FIELD_ELEMENT_LENGTH
GT_LENGTH = 12 * FIELD_ELEMENT_LENGTH
PROOF_LENGTH = 2 * G1_LENGTH + G2_LENGTH

SCALAR_FIELD_ORDER = bn128.curve_order

# Projective (x, y, z) points as used by py_ecc.
G1Point = Tuple[bn128.FQ, bn128.FQ, bn128.FQ]
G2Point = Tuple[bn128.FQ2, bn128.FQ2, bn128.FQ2]


def _coefficient(value) -> int:
    return value if isinstance(value, int) else value.n


def _read_field_elements(data: bytes, count: int) -> List[int]:
    values = []
    for i in range(count):
        chunk = data[i * FIELD_ELEMENT_LENGTH : (i + 1) * FIELD_ELEMENT_LENGTH]
        value = int.from_bytes(chunk, "big")
        if value >= bn128.field_modulus:
            raise MalformedEncoding("Field element is not reduced modulo the base field")
        values.append(value)
    return values


def _write_field_elements(values: Sequence[int]) -> bytes:
    return b"".join(v.to_bytes(FIELD_ELEMENT_LENGTH, "big") for v in values)


def _check_length(data: bytes, expected: int, name: str) -> None:
    if len(data) != expected:
        raise MalformedEncoding(f"{name} must be {expected} bytes, got {len(data)}")


def check_verifying_key_encoding(
    vk_gamma_abc_g1: bytes,
    alpha_g1_beta_g2: bytes,
    gamma_g2_neg_pc: bytes,
    delta_g2_neg_pc: bytes,
) -> None:
    """
    Length and field-range checks on raw verifying-key bytes.

    No curve arithmetic happens here; decode_g1/decode_g2 still check
    curve and subgroup membership when the key is prepared.
    """
    if not vk_gamma_abc_g1 or len(vk_gamma_abc_g1) % G1_LENGTH:
        raise MalformedEncoding(
            f"vk_gamma_abc_g1 must be a non-empty multiple of {G1_LENGTH} bytes"
        )
    _check_length(alpha_g1_beta_g2, GT_LENGTH, "alpha_g1_beta_g2")
    _check_length(gamma_g2_neg_pc, G2_LENGTH, "gamma_g2_neg_pc")
    _check_length(delta_g2_neg_pc, G2_LENGTH, "delta_g2_neg_pc")
    for data in (vk_gamma_abc_g1, alpha_g1_beta_g2, gamma_g2_neg_pc, delta_g2_neg_pc):
        _read_field_elements(data, len(data) // FIELD_ELEMENT_LENGTH)


def check_proof_encoding(proof_points: bytes) -> None:
    """Length and field-range checks on raw proof bytes."""
    _check_length(proof_points, PROOF_LENGTH, "Proof")
    _read_field_elements(proof_points, PROOF_LENGTH // FIELD_ELEMENT_LENGTH)


def decode_g1(data: bytes) -> G1Point:
    if len(data) != G1_LENGTH:
        raise MalformedEncoding(f"G1 point must be {G1_LENGTH} bytes, got {len(data)}")
    x, y = _read_field_elements(data, 2)
    if x == 0 and y == 0:
        raise MalformedEncoding("G1 point at infinity")
    point = (bn128.FQ(x), bn128.FQ(y), bn128.FQ.one())
    # G1 has cofactor 1, so being on the curve implies subgroup membership.
    if not bn128.is_on_curve(point, bn128.b):
        raise MalformedEncoding("G1 point is not on the curve")
    return point


def decode_g2(data: bytes) -> G2Point:
    if len(data) != G2_LENGTH:
        raise MalformedEncoding(f"G2 point must be {G2_LENGTH} bytes, got {len(data)}")
    x0, x1, y0, y1 = _read_field_elements(data, 4)
    if not any((x0, x1, y0, y1)):
        raise MalformedEncoding("G2 point at infinity")
    point = (bn128.FQ2([x0, x1]), bn128.FQ2([y0, y1]), bn128.FQ2.one())
    if not bn128.is_on_curve(point, bn128.b2):
        raise MalformedEncoding("G2 point is not on the curve")
    if not bn128.is_inf(bn128.multiply(point, bn128.curve_order)):
        raise MalformedEncoding("G2 point is not in the prime-order subgroup")
    return point


def decode_gt(data: bytes) -> bn128.FQ12:
    if len(data) != GT_LENGTH:
        raise MalformedEncoding(f"GT element must be {GT_LENGTH} bytes, got {len(data)}")
    return bn128.FQ12(_read_field_elements(data, 12))


def encode_g1(point) -> bytes:
    x, y = bn128.normalize(point)
    return _write_field_elements([_coefficient(x), _coefficient(y)])


def encode_g2(point) -> bytes:
    x, y = bn128.normalize(point)
    return _write_field_elements(
        [_coefficient(c) for c in x.coeffs] + [_coefficient(c) for c in y.coeffs]
    )


def encode_gt(value: bn128.FQ12) -> bytes:
    return _write_field_elements([_coefficient(c) for c in value.coeffs])


@dataclass(frozen=True)
class PreparedVerifyingKey:
    """Decoded verifying key."""

    gamma_abc_g1: Tuple[G1Point, ...]
    alpha_g1_beta_g2: bn128.FQ12
    gamma_g2_neg: G2Point
    delta_g2_neg: G2Point

    @classmethod
    def from_bytes(
        cls,
        vk_gamma_abc_g1: bytes,
        alpha_g1_beta_g2: bytes,
        gamma_g2_neg_pc: bytes,
        delta_g2_neg_pc: bytes,
    ) -> PreparedVerifyingKey:
        if not vk_gamma_abc_g1 or len(vk_gamma_abc_g1) % G1_LENGTH:
            raise MalformedEncoding(
                f"vk_gamma_abc_g1 must be a non-empty multiple of {G1_LENGTH} bytes"
            )
        gamma_abc = tuple(
            decode_g1(vk_gamma_abc_g1[i : i + G1_LENGTH])
            for i in range(0, len(vk_gamma_abc_g1), G1_LENGTH)
        )
        return cls(
            gamma_abc_g1=gamma_abc,
            alpha_g1_beta_g2=decode_gt(alpha_g1_beta_g2),
            gamma_g2_neg=decode_g2(gamma_g2_neg_pc),
            delta_g2_neg=decode_g2(delta_g2_neg_pc),
        )

    @property
    def num_public_inputs(self) -> int:
        return len(self.gamma_abc_g1) - 1


@dataclass(frozen=True)
class Proof:
    a: G1Point
    b: G2Point
    c: G1Point

    @classmethod
    def from_bytes(cls, data: bytes) -> Proof:
        if len(data) != PROOF_LENGTH:
            raise MalformedEncoding(f"Proof must be {PROOF_LENGTH} bytes, got {len(data)}")
        return cls(
            a=decode_g1(data[:G1_LENGTH]),
            b=decode_g2(data[G1_LENGTH : G1_LENGTH + G2_LENGTH]),
            c=decode_g1(data[G1_LENGTH + G2_LENGTH :]),
        )

    def to_bytes(self) -> bytes:
        return encode_g1(self.a) + encode_g2(self.b) + encode_g1(self.c)


def verify_groth16(
    vk: PreparedVerifyingKey, public_inputs: Sequence[int], proof: Proof
) -> None:
    """
    Check a Groth16 proof against public inputs.

    Raises:
        MalformedEncoding: wrong number of inputs or an input outside the
            scalar field.
        ProofInvalid: the pairing equation does not hold.
    """
    if len(public_inputs) != vk.num_public_inputs:
        raise MalformedEncoding(
            f"Expected {vk.num_public_inputs} public input(s), got {len(public_inputs)}"
        )

    acc = vk.gamma_abc_g1[0]
    for x, ic in zip(public_inputs, vk.gamma_abc_g1[1:]):
        if not 0 <= x < SCALAR_FIELD_ORDER:
            raise MalformedEncoding("Public input is outside the scalar field")
        acc = bn128.add(acc, bn128.multiply(ic, x))

    # One final exponentiation over the product of the three Miller loops.
    miller = (
        bn128.pairing(proof.b, proof.a, final_exponentiate=False)
        * bn128.pairing(vk.gamma_g2_neg, acc, final_exponentiate=False)
        * bn128.pairing(vk.delta_g2_neg, proof.c, final_exponentiate=False)
    )
    if bn128.final_exponentiate(miller) != vk.alpha_g1_beta_g2:
        logger.debug("Groth16 pairing equation does not hold")
        raise ProofInvalid("Groth16 proof does not verify against the public inputs")
