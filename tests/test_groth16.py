"""
Tests for BN254 point decoding and the Groth16 equation.
"""

import pytest
from py_ecc import optimized_bn128 as bn128

from openid_auth import MalformedEncoding, PreparedVerifyingKey, Proof, ProofInvalid, verify_groth16
from openid_auth.groth16 import (
    G1_LENGTH,
    G2_LENGTH,
    PROOF_LENGTH,
    SCALAR_FIELD_ORDER,
    decode_g1,
    decode_g2,
    encode_g1,
    encode_g2,
)


def _fq2_sqrt(a):
    """Square root in Fq2 for p = 3 mod 4; the caller checks the result."""
    p = bn128.field_modulus
    a1 = a ** ((p - 3) // 4)
    alpha = a1 * a1 * a
    x0 = a1 * a
    if alpha == bn128.FQ2([p - 1, 0]):
        return bn128.FQ2([0, 1]) * x0
    return (bn128.FQ2.one() + alpha) ** ((p - 1) // 2) * x0


def _twist_point_outside_subgroup():
    # The twist's cofactor is huge, so the first on-curve x almost surely works.
    for i in range(1, 100):
        x = bn128.FQ2([i, 1])
        rhs = x ** 3 + bn128.b2
        y = _fq2_sqrt(rhs)
        if y * y != rhs:
            continue
        point = (x, y, bn128.FQ2.one())
        assert bn128.is_on_curve(point, bn128.b2)
        if not bn128.is_inf(bn128.multiply(point, bn128.curve_order)):
            return point
    raise AssertionError("no twist point outside the subgroup found")


@pytest.fixture(scope="module")
def prepared_vk(verifying_key):
    return PreparedVerifyingKey.from_bytes(*verifying_key)


class TestPointDecoding:
    def test_generators_decode(self):
        assert bn128.eq(decode_g1(encode_g1(bn128.G1)), bn128.G1)
        assert bn128.eq(decode_g2(encode_g2(bn128.G2)), bn128.G2)

    def test_g1_off_curve(self):
        x, y = 1, 3  # y^2 = 9 but x^3 + 3 = 4
        data = x.to_bytes(32, "big") + y.to_bytes(32, "big")
        with pytest.raises(MalformedEncoding, match="not on the curve"):
            decode_g1(data)

    def test_g1_infinity(self):
        with pytest.raises(MalformedEncoding, match="infinity"):
            decode_g1(bytes(G1_LENGTH))

    def test_g1_unreduced_coordinate(self):
        data = bn128.field_modulus.to_bytes(32, "big") + (2).to_bytes(32, "big")
        with pytest.raises(MalformedEncoding, match="not reduced"):
            decode_g1(data)

    def test_g2_off_curve(self):
        data = bytearray(encode_g2(bn128.G2))
        data[-1] ^= 0x01
        with pytest.raises(MalformedEncoding):
            decode_g2(bytes(data))

    def test_g2_infinity(self):
        with pytest.raises(MalformedEncoding, match="infinity"):
            decode_g2(bytes(G2_LENGTH))

    def test_g2_outside_subgroup(self):
        """A point on the twist but outside the order-r subgroup is rejected."""
        point = _twist_point_outside_subgroup()
        with pytest.raises(MalformedEncoding, match="subgroup"):
            decode_g2(encode_g2(point))

    @pytest.mark.parametrize("length", [0, 63, 65])
    def test_g1_wrong_length(self, length):
        with pytest.raises(MalformedEncoding):
            decode_g1(b"\x01" * length)

    def test_proof_wrong_length(self):
        with pytest.raises(MalformedEncoding):
            Proof.from_bytes(b"\x00" * (PROOF_LENGTH - 1))


class TestVerifyingKey:
    def test_one_public_input(self, prepared_vk):
        assert prepared_vk.num_public_inputs == 1

    def test_ragged_gamma_abc(self, verifying_key):
        vk_gamma_abc_g1, *rest = verifying_key
        with pytest.raises(MalformedEncoding, match="multiple"):
            PreparedVerifyingKey.from_bytes(vk_gamma_abc_g1[:-1], *rest)

    def test_truncated_gt(self, verifying_key):
        vk_gamma_abc_g1, alpha_g1_beta_g2, gamma, delta = verifying_key
        with pytest.raises(MalformedEncoding):
            PreparedVerifyingKey.from_bytes(vk_gamma_abc_g1, alpha_g1_beta_g2[:-32], gamma, delta)


class TestVerifyGroth16:
    """Tests for verify_groth16()."""

    PUBLIC_INPUT = 0x0BAD_CAFE

    def test_valid_proof(self, trusted_setup, prepared_vk):
        proof = Proof.from_bytes(trusted_setup.prove(self.PUBLIC_INPUT))
        verify_groth16(prepared_vk, [self.PUBLIC_INPUT], proof)

    def test_proof_encoding_is_stable(self, trusted_setup):
        data = trusted_setup.prove(self.PUBLIC_INPUT)
        assert Proof.from_bytes(data).to_bytes() == data

    def test_wrong_public_input(self, trusted_setup, prepared_vk):
        proof = Proof.from_bytes(trusted_setup.prove(self.PUBLIC_INPUT))
        with pytest.raises(ProofInvalid):
            verify_groth16(prepared_vk, [self.PUBLIC_INPUT + 1], proof)

    def test_rerandomized_proof_still_valid(self, trusted_setup, prepared_vk):
        """Any (r, s) pair gives a valid proof for the same input."""
        proof = Proof.from_bytes(trusted_setup.prove(self.PUBLIC_INPUT, r=7, s=11))
        verify_groth16(prepared_vk, [self.PUBLIC_INPUT], proof)

    def test_swapped_g1_points(self, trusted_setup, prepared_vk):
        proof = Proof.from_bytes(trusted_setup.prove(self.PUBLIC_INPUT))
        swapped = Proof(a=proof.c, b=proof.b, c=proof.a)
        with pytest.raises(ProofInvalid):
            verify_groth16(prepared_vk, [self.PUBLIC_INPUT], swapped)

    @pytest.mark.parametrize("inputs", [[], [1, 2]])
    def test_wrong_input_count(self, trusted_setup, prepared_vk, inputs):
        proof = Proof.from_bytes(trusted_setup.prove(self.PUBLIC_INPUT))
        with pytest.raises(MalformedEncoding, match="public input"):
            verify_groth16(prepared_vk, inputs, proof)

    def test_input_outside_scalar_field(self, trusted_setup, prepared_vk):
        proof = Proof.from_bytes(trusted_setup.prove(self.PUBLIC_INPUT))
        with pytest.raises(MalformedEncoding, match="scalar field"):
            verify_groth16(prepared_vk, [SCALAR_FIELD_ORDER], proof)
