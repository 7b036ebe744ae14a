"""
Seeded randomness.

Pure helpers that turn a string seed into reproducible tie-breaks and
shuffles. The hash and generator use 32-bit wraparound arithmetic, so a
given seed always yields the same values.
"""

from collections.abc import Iterator, Sequence
from typing import TypeVar

T = TypeVar("T")

_MASK32 = 0xFFFFFFFF


def _imul(a: int, b: int) -> int:
    """32-bit multiply, keeping the low 32 bits."""
    return (a * b) & _MASK32


def _to_int32(value: int) -> int:
    value &= _MASK32
    return value - 0x100000000 if value & 0x80000000 else value


def string_to_seed(text: str) -> int:
    """
    Deterministic non-negative hash of a string (31-multiplier rolling hash).

    Works on UTF-16 code units so non-BMP characters hash the same way as
    in browser-side tooling that shares persisted state.
    """
    h = 0
    units = text.encode("utf-16-le")
    for i in range(0, len(units), 2):
        code = units[i] | (units[i + 1] << 8)
        h = _to_int32((h << 5) - h + code)
    return abs(h)


def mulberry32(seed: int) -> Iterator[float]:
    """Endless stream of floats in [0, 1) from a 32-bit seed."""
    state = seed & _MASK32
    while True:
        state = (state + 0x6D2B79F5) & _MASK32
        t = state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        yield ((t ^ (t >> 14)) & _MASK32) / 4294967296


def seeded_random(seed: str) -> Iterator[float]:
    """Float stream seeded from a string."""
    return mulberry32(string_to_seed(seed))


def seeded_shuffle(items: Sequence[T], seed: int | str) -> list[T]:
    """Fisher-Yates shuffle driven by a seeded stream; input is not modified."""
    result = list(items)
    stream = seeded_random(seed) if isinstance(seed, str) else mulberry32(seed)
    for i in range(len(result) - 1, 0, -1):
        j = int(next(stream) * (i + 1))
        result[i], result[j] = result[j], result[i]
    return result
