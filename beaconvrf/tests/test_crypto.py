"""
BN254 / BLS primitives. Pairings in pure Python take around a second each,
so the checks that need one are kept to a handful.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from Crypto.Hash import keccak

from beaconvrf.beacon.registry import BeaconRegistry, public_key_hash
from beaconvrf.beacon.drand import decode_g2
from beaconvrf.beacon.verifier import SignatureVerifier
from beaconvrf.constants import BLS_DST_G1
from beaconvrf.crypto import hash_to_curve as h2c
from beaconvrf.crypto import pairing_bn254 as bn
from beaconvrf.crypto.bls import KeyPair, message_point, negate, round_digest, verify_round
from beaconvrf.crypto.hash_to_curve import (
    expand_message_xmd,
    hash_to_curve_g1,
    hash_to_field,
    map_to_curve_svdw,
)
from beaconvrf.errors import InvalidSignature, UnknownBeacon
from beaconvrf.types.core import G1Point, G2Point
from beaconvrf.utils.hash import keccak256

P = bn.field_modulus()


def on_g1(x: int, y: int) -> bool:
    return (y * y - x * x * x - 3) % P == 0


# --- hashing -------------------------------------------------------------------


def test_expand_message_xmd_shape():
    out = expand_message_xmd(b"abc", BLS_DST_G1, 96)
    assert len(out) == 96
    assert out == expand_message_xmd(b"abc", BLS_DST_G1, 96)
    assert out != expand_message_xmd(b"abd", BLS_DST_G1, 96)
    assert out != expand_message_xmd(b"abc", b"OTHER-DST", 96)
    # prefix-free in the length: asking for fewer bytes is a different expansion
    assert expand_message_xmd(b"abc", BLS_DST_G1, 32) != out[:32]


def test_expand_message_xmd_limits():
    with pytest.raises(ValueError):
        expand_message_xmd(b"", BLS_DST_G1, 255 * 32 + 1)
    with pytest.raises(ValueError):
        expand_message_xmd(b"", b"x" * 256, 32)


def test_round_digest_is_keccak_of_uint64_be():
    assert round_digest(1) == keccak256((1).to_bytes(8, "big"))
    with pytest.raises((ValueError, OverflowError)):
        round_digest(2**64)


def test_hash_to_field_in_range():
    u0, u1 = hash_to_field(round_digest(7))
    assert 0 <= u0 < P and 0 <= u1 < P
    assert u0 != u1


@settings(max_examples=25, deadline=None)
@given(u=st.integers(min_value=0, max_value=P - 1))
def test_svdw_lands_on_curve(u: int):
    x, y = map_to_curve_svdw(u)
    assert on_g1(x, y)


def test_svdw_sign_of_y_follows_u():
    for u in (1, 2, 3, 10**30):
        _, y = map_to_curve_svdw(u)
        assert y % 2 == u % 2


def test_hash_to_curve_deterministic_and_on_curve():
    a = hash_to_curve_g1(round_digest(1))
    assert a == hash_to_curve_g1(round_digest(1))
    assert on_g1(a.x, a.y)
    assert a != hash_to_curve_g1(round_digest(2))
    assert message_point(1) == a


# --- keys and signatures ---------------------------------------------------------


def test_keypair_from_seed_is_deterministic(keypair):
    again = KeyPair.from_seed(b"beaconvrf-test-beacon")
    assert again == keypair
    assert 0 < keypair.secret < bn.curve_order()
    assert KeyPair.from_seed(b"other").public != keypair.public


def test_public_key_in_subgroup(keypair):
    raw = bn.to_g2(keypair.public)
    assert bn.is_on_curve_g2(raw)
    assert bn.in_subgroup_g2(raw)


def test_sign_and_verify(keypair, sign):
    sig = sign(1_020)
    assert on_g1(sig.x, sig.y)
    assert verify_round(sig, 1_020, keypair.public)


def test_signature_for_another_round_rejected(keypair, sign):
    assert not verify_round(sign(1_021), 1_020, keypair.public)


def test_negated_signature_rejected(keypair, sign):
    assert not verify_round(negate(sign(1_020)), 1_020, keypair.public)


def test_malformed_points_raise_before_pairing(keypair, sign):
    sig = sign(1_020)
    with pytest.raises(ValueError):
        verify_round(G1Point(sig.x, (sig.y + 1) % P), 1_020, keypair.public)
    with pytest.raises(ValueError):
        verify_round(G1Point(sig.x + P, sig.y), 1_020, keypair.public)
    with pytest.raises(ValueError):
        verify_round(sig, 1_020, G2Point(x=(1, 2), y=(3, 4)))


def test_verifier_wraps_failures(keypair, sign):
    v = SignatureVerifier()
    with pytest.raises(InvalidSignature) as ei:
        v.verify(1_020, keypair.public, G1Point(1, 1))
    assert ei.value.reason.startswith("malformed")
    assert not v.is_valid(1_020, keypair.public, G1Point(0, 0))


# --- known answers ---------------------------------------------------------------
#
# Pins against published constants rather than against our own signer:
# Keccak-256 (not SHA3-256), the RFC 9380 SVDW constants for BN254 (Z = 1,
# sgn0(c3) == 0), the XMD block layout, and the EVM/drand G2 limb order
# (EIP-197 generator, imaginary limb first).

EIP197_G2_X_IM = 11559732032986387107991004021392285783925812861821192530917403151452391805634
EIP197_G2_X_RE = 10857046999023057135944570762232829481370756359578518086990519993285655852781
EIP197_G2_Y_IM = 4082367875863433681332203403145435568316851327593401208105741076214120093531
EIP197_G2_Y_RE = 8495653923123431417604973247489272438418190587263600148770280649306958101930


def test_keccak256_known_answer():
    assert keccak256(b"").hex() == "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
    assert round_digest(0) == keccak256(b"\x00" * 8)


def test_evmnet_dst():
    assert BLS_DST_G1 == b"BLS_SIG_BN254G1_XMD:KECCAK-256_SVDW_RO_NUL_"


def test_svdw_constants_for_bn254():
    assert h2c._Z == 1
    assert h2c._C1 == 4
    assert h2c._C2 == (P - 1) // 2
    assert h2c._C3 * h2c._C3 % P == (-4 * 3) % P
    assert h2c._C3 % 2 == 0
    assert h2c._C4 * 3 % P == (-16) % P


def test_expand_message_xmd_block_layout():
    msg, dst = round_digest(1_020), BLS_DST_G1
    dst_prime = dst + bytes([len(dst)])

    def h(data: bytes) -> bytes:
        return keccak.new(digest_bits=256, data=data).digest()

    b0 = h(b"\x00" * 136 + msg + (96).to_bytes(2, "big") + b"\x00" + dst_prime)
    b1 = h(b0 + b"\x01" + dst_prime)
    b2 = h(bytes(x ^ y for x, y in zip(b0, b1)) + b"\x02" + dst_prime)
    b3 = h(bytes(x ^ y for x, y in zip(b0, b2)) + b"\x03" + dst_prime)
    assert expand_message_xmd(msg, dst, 96) == b1 + b2 + b3


def test_drand_g2_layout_matches_eip197_generator():
    raw = b"".join(
        n.to_bytes(32, "big") for n in (EIP197_G2_X_IM, EIP197_G2_X_RE, EIP197_G2_Y_IM, EIP197_G2_Y_RE)
    )
    assert decode_g2(raw.hex()) == bn.from_g2(bn.g2_generator())


# --- registry ---------------------------------------------------------------------


def test_registry_lookup(keypair):
    reg = BeaconRegistry()
    with pytest.raises(UnknownBeacon):
        reg.current()
    b = reg.register(keypair.public, genesis_timestamp=100, period=3, check_subgroup=False)
    assert b.public_key_hash == public_key_hash(keypair.public)
    assert reg.current() == b
    assert reg.current_key_hash() == b.public_key_hash
    assert b.public_key_hash in reg and len(reg) == 1
    # identical re-registration is a no-op, conflicting parameters are not
    reg.register(keypair.public, genesis_timestamp=100, period=3, check_subgroup=False)
    with pytest.raises(ValueError):
        reg.register(keypair.public, genesis_timestamp=100, period=4, check_subgroup=False)
    with pytest.raises(UnknownBeacon):
        reg.get(b"\x01" * 32)


def test_registry_rotation_keeps_old_beacon(keypair):
    reg = BeaconRegistry()
    old = reg.register(keypair.public, genesis_timestamp=100, period=3, check_subgroup=False)
    other = KeyPair.from_seed(b"rotated-beacon")
    new = reg.register(other.public, genesis_timestamp=200, period=3, make_current=False, check_subgroup=False)
    assert reg.current() == old
    assert reg.set_current(new.public_key_hash) == new
    assert reg.current_key_hash() == new.public_key_hash
    # requests bound to the old key can still be verified against it
    assert reg.get(old.public_key_hash) == old
    assert [b.public_key_hash for b in reg] == [old.public_key_hash, new.public_key_hash]
    with pytest.raises(UnknownBeacon):
        reg.set_current(b"\x02" * 32)


def test_registry_rejects_off_curve_key():
    with pytest.raises(ValueError):
        BeaconRegistry().register(G2Point(x=(1, 2), y=(3, 4)), genesis_timestamp=1, period=3)
