"""
Half-precision decoder for embedding blobs.

Embeddings are stored as little-endian IEEE-754 binary16 words
(1 sign bit, 5 exponent bits, 10 mantissa bits). Decoding is done with
explicit bit arithmetic so the result does not depend on the platform's
native half-float support.
"""
from typing import Union

import numpy as np

SIGN_MASK = 0x8000
EXPONENT_MASK = 0x7C00
MANTISSA_MASK = 0x03FF
EXPONENT_MAX = 0x1F


def half_to_float(word: int) -> float:
    """
    Decode a single 16-bit pattern.

    Args:
        word: Integer in [0, 65535]

    Returns:
        Decoded value (may be inf or nan)
    """
    sign = -1.0 if word & SIGN_MASK else 1.0
    exponent = (word & EXPONENT_MASK) >> 10
    mantissa = word & MANTISSA_MASK

    if exponent == 0:
        return sign * 2.0 ** -24 * mantissa
    if exponent == EXPONENT_MAX:
        return float('nan') if mantissa else sign * float('inf')
    return sign * 2.0 ** (exponent - 15) * (1 + mantissa / 1024)


def decode_float16(buffer: Union[bytes, bytearray, memoryview]) -> np.ndarray:
    """
    Decode a buffer of half-precision values into float32.

    Args:
        buffer: Raw bytes, two per value, little-endian

    Returns:
        1D float32 array with len(buffer) // 2 values
    """
    if len(buffer) % 2:
        raise ValueError(f"Half-precision buffer has odd length {len(buffer)}")

    words = np.frombuffer(buffer, dtype='<u2').astype(np.int64)

    sign = np.where(words & SIGN_MASK, -1.0, 1.0)
    exponent = (words & EXPONENT_MASK) >> 10
    mantissa = (words & MANTISSA_MASK).astype(np.float64)

    subnormal = sign * np.ldexp(mantissa, -24)
    normal = sign * np.ldexp(1.0 + mantissa / 1024.0, exponent - 15)
    special = np.where(mantissa != 0, np.nan, sign * np.inf)

    values = np.where(
        exponent == 0,
        subnormal,
        np.where(exponent == EXPONENT_MAX, special, normal)
    )
    return values.astype(np.float32)
