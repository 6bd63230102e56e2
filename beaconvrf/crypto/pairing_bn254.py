"""
beaconvrf.crypto.pairing_bn254
==============================

Thin BN254 (altbn128) pairing wrapper over `py_ecc.optimized_bn128`.

The rest of the package speaks affine integer points
(:class:`beaconvrf.types.core.G1Point` / :class:`G2Point`); this module is the
only place that converts them to and from the backend's projective
representation.

Public API
----------
- to_g1(P) / to_g2(Q)            (affine ints -> backend point, with validation)
- from_g1(P) / from_g2(Q)        (backend point -> affine ints)
- is_on_curve_g1(P), is_on_curve_g2(Q), in_subgroup_g2(Q)
- g1_add, g1_mul, g1_neg, g2_mul
- pair(P, Q), check_pairing_product(pairs)
- g1_generator(), g2_generator(), curve_order(), field_modulus()

Notes
-----
- Point ordering follows the common convention e(P, Q) with P in G1, Q in G2.
  The underlying `py_ecc` pairing call expects (Q, P); this wrapper handles it.
- G1 on BN254 has cofactor 1, so on-curve implies subgroup membership.
  G2 does not; keys should pass :func:`in_subgroup_g2` once, at registration.
"""

from __future__ import annotations

from typing import Any, Iterable, Tuple

from py_ecc.optimized_bn128 import (
    FQ,
    FQ2,
    FQ12,
    G1 as _G1,
    G2 as _G2,
    add as _add,
    b as _B,
    b2 as _B2,
    curve_order as _Q,
    field_modulus as _P,
    final_exponentiate as _final_exponentiate,
    is_on_curve as _is_on_curve,
    multiply as _multiply,
    neg as _neg,
    normalize as _normalize,
    pairing as _pairing,
)

from ..types.core import G1Point, G2Point

# Backend points are opaque (x, y, z) tuples of FQ / FQ2.
RawG1 = Any
RawG2 = Any

__all__ = [
    "RawG1",
    "RawG2",
    "to_g1",
    "to_g2",
    "from_g1",
    "from_g2",
    "is_on_curve_g1",
    "is_on_curve_g2",
    "in_subgroup_g2",
    "is_infinity",
    "g1_add",
    "g1_mul",
    "g1_neg",
    "g2_mul",
    "pair",
    "check_pairing_product",
    "g1_generator",
    "g2_generator",
    "curve_order",
    "field_modulus",
]


def curve_order() -> int:
    """Return the BN254 subgroup order r."""
    return int(_Q)


def field_modulus() -> int:
    """Return the base field modulus p."""
    return int(_P)


def g1_generator() -> RawG1:
    return _G1


def g2_generator() -> RawG2:
    return _G2


def _fq_int(v: Any) -> int:
    # optimized FQ exposes .n; optimized FQ2 coefficients are already ints
    return int(v.n) if hasattr(v, "n") else int(v)


def is_infinity(P: Any) -> bool:
    """Projective point-at-infinity check (z == 0)."""
    if P is None:
        return True
    z = P[2]
    return z == type(z).zero()


def is_on_curve_g1(P: RawG1) -> bool:
    """Return True if P is on G1 or is the point at infinity."""
    return is_infinity(P) or bool(_is_on_curve(P, _B))


def is_on_curve_g2(Q: RawG2) -> bool:
    """Return True if Q is on the twisted curve or is the point at infinity."""
    return is_infinity(Q) or bool(_is_on_curve(Q, _B2))


def in_subgroup_g2(Q: RawG2) -> bool:
    """r·Q == O. Expensive (one full scalar multiplication)."""
    return is_infinity(_multiply(Q, curve_order()))


# -------------------------
# Conversions
# -------------------------


def _check_fe(name: str, v: int) -> None:
    if not 0 <= v < _P:
        raise ValueError(f"{name} is not a canonical base-field element")


def to_g1(P: G1Point, *, validate: bool = True) -> RawG1:
    """
    Lift an affine G1 point into the backend. Coordinates must be canonical
    (< p); with ``validate`` the point must lie on the curve.
    """
    _check_fe("x", P.x)
    _check_fe("y", P.y)
    raw = (FQ(P.x), FQ(P.y), FQ.one())
    if validate and not is_on_curve_g1(raw):
        raise ValueError("G1 point is not on curve")
    return raw


def to_g2(Q: G2Point, *, validate: bool = True) -> RawG2:
    for name, v in zip(("x.c0", "x.c1", "y.c0", "y.c1"), Q.limbs()):
        _check_fe(name, v)
    raw = (FQ2([Q.x[0], Q.x[1]]), FQ2([Q.y[0], Q.y[1]]), FQ2.one())
    if validate and not is_on_curve_g2(raw):
        raise ValueError("G2 point is not on curve")
    return raw


def from_g1(P: RawG1) -> G1Point:
    """Normalize to affine integers. Raises ValueError for the point at infinity."""
    if is_infinity(P):
        raise ValueError("point at infinity has no affine form")
    ax, ay = _normalize(P)
    return G1Point(_fq_int(ax), _fq_int(ay))


def from_g2(Q: RawG2) -> G2Point:
    if is_infinity(Q):
        raise ValueError("point at infinity has no affine form")
    ax, ay = _normalize(Q)
    # FQ2 value = c0 + c1 * i
    return G2Point(
        x=(_fq_int(ax.coeffs[0]), _fq_int(ax.coeffs[1])),
        y=(_fq_int(ay.coeffs[0]), _fq_int(ay.coeffs[1])),
    )


# -------------------------
# Group operations
# -------------------------


def g1_add(P: RawG1, Q: RawG1) -> RawG1:
    return _add(P, Q)


def g1_mul(P: RawG1, k: int) -> RawG1:
    return _multiply(P, k % curve_order())


def g1_neg(P: RawG1) -> RawG1:
    return _neg(P)


def g2_mul(Q: RawG2, k: int) -> RawG2:
    return _multiply(Q, k % curve_order())


# -------------------------
# Pairing
# -------------------------


def pair(P: RawG1, Q: RawG2, *, validate: bool = True) -> FQ12:
    """
    Compute the Ate pairing e(P, Q) on BN254.

    Raises
    ------
    ValueError
        If inputs are not on the curve and validate=True.
    """
    if validate:
        if not is_on_curve_g1(P):
            raise ValueError("G1 point is not on curve")
        if not is_on_curve_g2(Q):
            raise ValueError("G2 point is not on curve")

    # Pairings involving infinity return the identity in GT.
    if is_infinity(P) or is_infinity(Q):
        return FQ12.one()

    # py_ecc pairing expects (Q, P)
    return _pairing(Q, P)


def check_pairing_product(
    pairs: Iterable[Tuple[RawG1, RawG2]], *, validate: bool = True
) -> bool:
    """Return True iff ∏ e(P_i, Q_i) == 1 in GT (one shared final exponentiation)."""
    acc = FQ12.one()
    for P, Q in pairs:
        if validate:
            if not is_on_curve_g1(P):
                raise ValueError("G1 point is not on curve")
            if not is_on_curve_g2(Q):
                raise ValueError("G2 point is not on curve")
        if is_infinity(P) or is_infinity(Q):
            continue
        acc = acc * _pairing(Q, P, final_exponentiate=False)
    return _final_exponentiate(acc) == FQ12.one()
