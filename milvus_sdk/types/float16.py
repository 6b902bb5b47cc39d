# milvus_sdk/types/float16.py
# SPDX-License-Identifier: Apache-2.0
"""
Half-precision codecs for FLOAT16 (1-5-10) and BFLOAT16 (1-8-7) vectors.

Both layouts are packed 2 bytes per element, little-endian, regardless of
host byte order. Encoding rounds to nearest (ties to even); decoding widens
to float32 exactly.

numpy has native IEEE half support (`'<f2'`). bfloat16 is produced from the
float32 bit pattern: the upper 16 bits, rounded to nearest even, with NaN
kept quiet.
"""

from __future__ import annotations

import enum
from typing import Iterable, List

import numpy as np

from milvus_sdk.core.status import InvalidArgument

__all__ = [
    "Float16Variant",
    "encode",
    "decode",
    "float_to_float16_bits",
    "float16_bits_to_float",
    "float_to_bfloat16_bits",
    "bfloat16_bits_to_float",
]


class Float16Variant(enum.Enum):
    FLOAT16 = "float16"
    BFLOAT16 = "bfloat16"


def _float32_to_bfloat16_bits(values: np.ndarray) -> np.ndarray:
    f32 = np.ascontiguousarray(values, dtype=np.float32)
    bits = f32.view(np.uint32)
    nan = np.isnan(f32)
    rounding = np.uint32(0x7FFF) + ((bits >> np.uint32(16)) & np.uint32(1))
    # NaN patterns are excluded from the add so it cannot wrap
    safe = np.where(nan, np.uint32(0), bits)
    rounded = ((safe + rounding) >> np.uint32(16)).astype(np.uint16)
    quiet_nan = ((bits >> np.uint32(16)) | np.uint32(0x0040)).astype(np.uint16)
    return np.where(nan, quiet_nan, rounded)


def _bfloat16_bits_to_float32(bits: np.ndarray) -> np.ndarray:
    widened = bits.astype(np.uint32) << np.uint32(16)
    return widened.view(np.float32)


def encode(values: Iterable[float], variant: Float16Variant = Float16Variant.FLOAT16) -> bytes:
    """Pack a float sequence into little-endian 16-bit floats."""
    if not isinstance(values, np.ndarray):
        values = list(values)
    arr = np.asarray(values, dtype=np.float64)
    if arr.ndim != 1:
        raise InvalidArgument(f"expected a flat float sequence, got shape {arr.shape}")
    if variant is Float16Variant.FLOAT16:
        return arr.astype("<f2").tobytes()
    return _float32_to_bfloat16_bits(arr.astype(np.float32)).astype("<u2").tobytes()


def decode(data: bytes, variant: Float16Variant = Float16Variant.FLOAT16) -> List[float]:
    """Unpack little-endian 16-bit floats into Python floats."""
    if len(data) % 2 != 0:
        raise InvalidArgument(f"half-precision payload length {len(data)} is not a multiple of 2")
    if variant is Float16Variant.FLOAT16:
        return np.frombuffer(data, dtype="<f2").astype(np.float32).tolist()
    return _bfloat16_bits_to_float32(np.frombuffer(data, dtype="<u2")).tolist()


def float_to_float16_bits(value: float) -> int:
    return int(np.array([value], dtype=np.float64).astype("<f2").view("<u2")[0])


def float16_bits_to_float(bits: int) -> float:
    return float(np.array([bits], dtype="<u2").view("<f2").astype(np.float32)[0])


def float_to_bfloat16_bits(value: float) -> int:
    return int(_float32_to_bfloat16_bits(np.array([value], dtype=np.float32))[0])


def bfloat16_bits_to_float(bits: int) -> float:
    return float(_bfloat16_bits_to_float32(np.array([bits], dtype=np.uint16))[0])
