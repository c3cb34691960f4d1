"""Fixed-width masked integers used for every decoded SMF field.

A masked word is a plain ``int`` that drops any bits above its width when it
is constructed, so a 4-bit channel or a 7-bit data byte can never carry stray
high bits from the raw stream.
"""

from __future__ import annotations

from typing import Dict, Type


def mask(raw: int, bits: int) -> int:
    """Return ``raw`` truncated to its lowest ``bits`` bits."""

    if bits < 0:
        raise ValueError(f"bit width must be non-negative, got {bits}")
    return int(raw) & ((1 << bits) - 1)


class MaskedWord(int):
    """An N-bit field stored in a (conceptually) 32-bit word."""

    BITS = 32

    def __new__(cls, raw: int = 0) -> "MaskedWord":
        return super().__new__(cls, mask(raw, cls.BITS))

    @property
    def bits(self) -> int:
        return self.BITS

    @property
    def mask(self) -> int:
        return (1 << self.BITS) - 1

    @classmethod
    def of(cls, raw: int, bits: int) -> "MaskedWord":
        """Build a word of arbitrary width, reusing the fixed classes when possible."""

        word_cls = _FIXED.get(bits)
        if word_cls is None:
            word_cls = type(f"U{bits}", (MaskedWord,), {"BITS": bits})
            _FIXED[bits] = word_cls
        return word_cls(raw)

    @classmethod
    def from_bytes_be(cls, data: bytes) -> "MaskedWord":
        return cls(int.from_bytes(data, "big", signed=False))

    def to_bytes_be(self, length: int) -> bytes:
        return int(self).to_bytes(length, "big", signed=False)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({int(self)})"


class U1(MaskedWord):
    BITS = 1


class U4(MaskedWord):
    BITS = 4


class U7(MaskedWord):
    BITS = 7


class U8(MaskedWord):
    BITS = 8


class U16(MaskedWord):
    BITS = 16


class U24(MaskedWord):
    BITS = 24


class U32(MaskedWord):
    BITS = 32


_FIXED: Dict[int, Type[MaskedWord]] = {
    1: U1,
    4: U4,
    7: U7,
    8: U8,
    16: U16,
    24: U24,
    32: U32,
}


def signed_byte(value: int) -> int:
    """Interpret the low 8 bits of ``value`` as a two's-complement integer."""

    value = mask(value, 8)
    return value - 0x100 if value & 0x80 else value
