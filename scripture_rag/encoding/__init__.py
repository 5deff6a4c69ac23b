"""
Encoding Module - Decoders for compact on-disk embedding formats.
"""
from .float16 import decode_float16, half_to_float

__all__ = ["decode_float16", "half_to_float"]
