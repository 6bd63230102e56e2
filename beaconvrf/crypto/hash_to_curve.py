"""
Hash-to-curve for BN254 G1 (RFC 9380 shape, Keccak-256 XMD, SVDW map).

Suite: ``BN254G1_XMD:KECCAK-256_SVDW_RO_`` - the one drand's "evmnet" chain
signs with.

    expand_message_xmd(msg, DST, 96)   -> 96 uniform bytes
    hash_to_field                      -> (u0, u1), 48 bytes each, mod p
    map_to_curve_svdw(u0) + map_to_curve_svdw(u1)
    clear_cofactor                     -> identity (h = 1 on BN254 G1)

Field arithmetic is plain Python integers mod p; the final point addition goes
through the py_ecc backend.
"""

from __future__ import annotations

from typing import Tuple

from ..constants import BLS_DST_G1, HASH_TO_FIELD_L, KECCAK256_BLOCK_BYTES, KECCAK256_DIGEST_BYTES
from ..types.core import G1Point
from ..utils.hash import keccak256
from . import pairing_bn254 as bn

P = bn.field_modulus()

# Curve y^2 = x^3 + A*x + B
_A = 0
_B = 3
_Z = 1


def _inv(x: int) -> int:
    """inv0: 0 maps to 0."""
    return pow(x, P - 2, P)


def _is_square(x: int) -> bool:
    return x % P == 0 or pow(x, (P - 1) // 2, P) == 1


def _sqrt(x: int) -> int:
    # p ≡ 3 (mod 4)
    return pow(x, (P + 1) // 4, P)


def _sgn0(x: int) -> int:
    return (x % P) & 1


def _g(x: int) -> int:
    return (x * x % P * x + _A * x + _B) % P


# SVDW constants for Z = 1
_C1 = _g(_Z)
_C2 = (-_Z * _inv(2)) % P
_C3 = _sqrt((-_g(_Z) * (3 * _Z * _Z + 4 * _A)) % P)
if _sgn0(_C3):
    _C3 = P - _C3
_C4 = (-4 * _g(_Z) * _inv(3 * _Z * _Z + 4 * _A)) % P


def expand_message_xmd(msg: bytes, dst: bytes, len_in_bytes: int) -> bytes:
    """expand_message_xmd (RFC 9380 §5.3.1) instantiated with Keccak-256."""
    b_in_bytes = KECCAK256_DIGEST_BYTES
    r_in_bytes = KECCAK256_BLOCK_BYTES
    ell = -(-len_in_bytes // b_in_bytes)
    if ell > 255 or len_in_bytes > 65535:
        raise ValueError("requested output too long")
    if len(dst) > 255:
        raise ValueError("DST too long")

    dst_prime = dst + bytes([len(dst)])
    z_pad = b"\x00" * r_in_bytes
    l_i_b_str = len_in_bytes.to_bytes(2, "big")
    b0 = keccak256(z_pad + msg + l_i_b_str + b"\x00" + dst_prime)
    b_prev = keccak256(b0 + b"\x01" + dst_prime)
    out = [b_prev]
    for i in range(2, ell + 1):
        mixed = bytes(x ^ y for x, y in zip(b0, b_prev))
        b_prev = keccak256(mixed + bytes([i]) + dst_prime)
        out.append(b_prev)
    return b"".join(out)[:len_in_bytes]


def hash_to_field(msg: bytes, count: int = 2, *, dst: bytes = BLS_DST_G1) -> Tuple[int, ...]:
    L = HASH_TO_FIELD_L
    uniform = expand_message_xmd(msg, dst, count * L)
    return tuple(int.from_bytes(uniform[i * L : (i + 1) * L], "big") % P for i in range(count))


def map_to_curve_svdw(u: int) -> Tuple[int, int]:
    """Shallue–van de Woestijne map (RFC 9380 §6.6.1, straight-line form)."""
    u %= P
    tv1 = u * u % P
    tv1 = tv1 * _C1 % P
    tv2 = (1 + tv1) % P
    tv1 = (1 - tv1) % P
    tv3 = _inv(tv1 * tv2 % P)
    tv4 = u * tv1 % P
    tv4 = tv4 * tv3 % P
    tv4 = tv4 * _C3 % P

    x1 = (_C2 - tv4) % P
    e1 = _is_square(_g(x1))
    x2 = (_C2 + tv4) % P
    e2 = _is_square(_g(x2)) and not e1
    x3 = tv2 * tv2 % P
    x3 = x3 * tv3 % P
    x3 = x3 * x3 % P
    x3 = (x3 * _C4 + _Z) % P

    x = x1 if e1 else x3
    if e2:
        x = x2
    y = _sqrt(_g(x))
    if _sgn0(u) != _sgn0(y):
        y = (P - y) % P
    return x, y


def hash_to_curve_g1(msg: bytes, dst: bytes = BLS_DST_G1) -> G1Point:
    u0, u1 = hash_to_field(msg, 2, dst=dst)
    q0 = bn.to_g1(G1Point(*map_to_curve_svdw(u0)))
    q1 = bn.to_g1(G1Point(*map_to_curve_svdw(u1)))
    # cofactor is 1
    return bn.from_g1(bn.g1_add(q0, q1))


__all__ = [
    "expand_message_xmd",
    "hash_to_field",
    "map_to_curve_svdw",
    "hash_to_curve_g1",
]
