"""
Curve Provider

Data-level registry of the elliptic curves a session may use for key
exchange. Signing always uses P-384.

Raw public keys travel as uncompressed SEC1 points:

    0x04 | X (coordinate_size bytes) | Y (coordinate_size bytes)
"""

from dataclasses import dataclass
from typing import Dict, Type

from cryptography.hazmat.primitives.asymmetric import ec


P256 = "P-256"
P384 = "P-384"
P521 = "P-521"

DEFAULT_CURVE = P384
SIGNATURE_CURVE = P384

UNCOMPRESSED_POINT_PREFIX = 0x04


@dataclass(frozen=True)
class CurveProvider:
    """One supported named curve."""
    name: str
    curve_class: Type[ec.EllipticCurve]
    coordinate_size: int  # bytes per field element

    def curve(self) -> ec.EllipticCurve:
        """Fresh `cryptography` curve instance."""
        return self.curve_class()

    @property
    def public_key_size(self) -> int:
        """Length of a raw uncompressed public point."""
        return 1 + 2 * self.coordinate_size

    @property
    def signature_size(self) -> int:
        """Length of a fixed-width r || s ECDSA signature on this curve."""
        return 2 * self.coordinate_size


CURVES: Dict[str, CurveProvider] = {
    P256: CurveProvider(P256, ec.SECP256R1, 32),
    P384: CurveProvider(P384, ec.SECP384R1, 48),
    P521: CurveProvider(P521, ec.SECP521R1, 66),
}

# cryptography reports curves by their SEC names
_SEC_NAMES = {
    "secp256r1": P256,
    "secp384r1": P384,
    "secp521r1": P521,
}


def get_curve(name: str) -> CurveProvider:
    """
    Look up a curve provider by name.

    Raises:
        KeyError: If the curve is not supported
    """
    try:
        return CURVES[name]
    except KeyError:
        raise KeyError(
            f"Unsupported curve {name!r}; expected one of {sorted(CURVES)}"
        ) from None


def curve_of(key) -> CurveProvider:
    """Curve provider for an existing `cryptography` EC key."""
    return CURVES[_SEC_NAMES[key.curve.name]]
