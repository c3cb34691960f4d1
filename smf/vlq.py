"""Variable-length quantity (VLQ) codec.

Delta-times and meta/sysex lengths are stored as big-endian groups of 7 bits.
Every byte except the last has bit 7 set:

  | value      | encoding     |
  |------------|--------------|
  | 0x00000040 | 40           |
  | 0x0000007F | 7F           |
  | 0x00000080 | 81 00        |
  | 0x00002000 | C0 00        |
  | 0x00003FFF | FF 7F        |
  | 0x00004000 | 81 80 00     |
  | 0x001FFFFF | FF FF 7F     |
  | 0x00200000 | 81 80 80 00  |
  | 0x0FFFFFFF | FF FF FF 7F  |

SMF caps a quantity at four bytes, so decoding refuses to read a fifth.
"""

from __future__ import annotations

from typing import Callable, Tuple

from .errors import MidiParseError, ParseErrorKind

MAX_VLQ_BYTES = 4
MAX_VLQ_VALUE = 0x0FFFFFFF


def read_vlq(
    read_byte: Callable[[], int],
    *,
    offset: int = 0,
    location: str = "vlq",
) -> Tuple[int, int]:
    """Accumulate a VLQ from successive ``read_byte()`` calls.

    Returns ``(value, length)`` where ``length`` is the number of bytes
    consumed (1-4).
    """
    value = 0
    for length in range(1, MAX_VLQ_BYTES + 1):
        byte = read_byte()
        value = (value << 7) | (byte & 0x7F)
        if not byte & 0x80:
            return value, length
    raise MidiParseError(
        ParseErrorKind.END_OF_BUFFER,
        f"variable-length quantity longer than {MAX_VLQ_BYTES} bytes",
        offset=offset,
        location=location,
    )


def decode_vlq(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Decode the VLQ starting at ``data[offset]``; returns ``(value, length)``."""

    pos = offset

    def _next() -> int:
        nonlocal pos
        if pos >= len(data):
            raise MidiParseError(
                ParseErrorKind.END_OF_BUFFER,
                "variable-length quantity has no terminating byte",
                offset=pos,
                location="vlq",
            )
        byte = data[pos]
        pos += 1
        return byte

    return read_vlq(_next, offset=offset)


def vlq_length(value: int) -> int:
    """Return the canonical encoded size of ``value`` in bytes."""

    return len(encode_vlq(value))


def encode_vlq(value: int, min_length: int = 1) -> bytes:
    """Encode ``value`` as a VLQ.

    ``min_length`` pads the encoding with leading ``0x80`` groups, which lets a
    non-canonical delta-time read from a file be written back byte for byte.
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError("VLQ value must be an integer")
    if not (0 <= value <= MAX_VLQ_VALUE):
        raise ValueError(f"VLQ value must be in [0, 0x{MAX_VLQ_VALUE:X}], got {value}")
    if not (1 <= min_length <= MAX_VLQ_BYTES):
        raise ValueError(f"VLQ length must be in [1, {MAX_VLQ_BYTES}], got {min_length}")

    groups = [value & 0x7F]
    value >>= 7
    while value:
        groups.append(value & 0x7F)
        value >>= 7
    while len(groups) < min_length:
        groups.append(0)
    groups.reverse()

    out = bytearray(group | 0x80 for group in groups[:-1])
    out.append(groups[-1])
    return bytes(out)
