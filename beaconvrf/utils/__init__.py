"""
beaconvrf.utils
---------------

Light helpers shared by the coordinator components: hex/bytes handling,
address normalization, Keccak-256 and 32-byte word encoding.

This package file deliberately avoids eager imports.
"""

__all__: list[str] = []
