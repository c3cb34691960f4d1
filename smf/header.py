from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Union

from .cursor import Cursor
from .errors import MidiParseError, ParseErrorKind
from .words import U8, U16, mask, signed_byte


HEADER_TAG = b"MThd"
HEADER_LENGTH = 6
HEADER_SIZE = 14  # tag + u32 length + 3 * u16
SMPTE_FRAME_RATES = (-24, -25, -29, -30)


class MidiFormat(IntEnum):
    SINGLE_TRACK = 0
    MULTI_TRACK = 1
    MULTI_SEQUENCE = 2


@dataclass(frozen=True)
class MetricTicks:
    """Division given as ticks per quarter note (15 bits)."""

    ticks_per_quarter: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "ticks_per_quarter", U16(mask(self.ticks_per_quarter, 15)))

    def to_bytes(self) -> bytes:
        return int(self.ticks_per_quarter).to_bytes(2, "big")


@dataclass(frozen=True)
class SMPTE:
    """Division given as SMPTE frames per second and ticks per frame."""

    frame_rate: int  # -24, -25, -29 (29.97 drop-frame) or -30
    ticks_per_frame: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "ticks_per_frame", U8(self.ticks_per_frame))

    @property
    def frames_per_second(self) -> float:
        if self.frame_rate == -29:
            return 29.97
        return float(-self.frame_rate)

    @property
    def ticks_per_second(self) -> float:
        return self.frames_per_second * self.ticks_per_frame

    def to_bytes(self) -> bytes:
        return bytes([self.frame_rate & 0xFF, int(self.ticks_per_frame)])


Division = Union[MetricTicks, SMPTE]


def decode_division(raw: bytes, *, offset: int = 12, location: str = "header") -> Division:
    """Decode the 2-byte division field; bit 15 selects metric vs SMPTE."""

    if not raw[0] & 0x80:
        return MetricTicks(int.from_bytes(raw, "big"))
    # two's-complement frame rate, e.g. 0xE8 == -24
    frame_rate = signed_byte(raw[0])
    if frame_rate not in SMPTE_FRAME_RATES:
        raise MidiParseError(
            ParseErrorKind.INVALID_SMPTE_FRAME_RATE,
            f"SMPTE frame rate {frame_rate} (byte 0x{raw[0]:02X}) not in {list(SMPTE_FRAME_RATES)}",
            offset=offset,
            location=location,
        )
    return SMPTE(frame_rate=frame_rate, ticks_per_frame=raw[1])


@dataclass(frozen=True)
class MidiHeader:
    format: MidiFormat
    track_count: int
    division: Division

    def __post_init__(self) -> None:
        object.__setattr__(self, "track_count", U16(self.track_count))

    @property
    def ticks_per_quarter(self) -> int | None:
        if isinstance(self.division, MetricTicks):
            return int(self.division.ticks_per_quarter)
        return None

    @classmethod
    def read(cls, cursor: Cursor) -> "MidiHeader":
        """Decode the header at the cursor, consuming exactly 14 bytes."""

        start = cursor.tell()
        tag = cursor.read(4)
        if tag != HEADER_TAG:
            raise cursor.error(
                ParseErrorKind.INVALID_HEADER_TAG,
                f"expected {HEADER_TAG!r}, found {tag!r}",
                offset=start,
            )

        length_offset = cursor.tell()
        length = cursor.read_u32()
        if length != HEADER_LENGTH:
            raise cursor.error(
                ParseErrorKind.INVALID_HEADER_LENGTH,
                f"header length must be {HEADER_LENGTH}, found {length}",
                offset=length_offset,
            )

        format_offset = cursor.tell()
        format_value = cursor.read_u16()
        if format_value not in MidiFormat._value2member_map_:
            raise cursor.error(
                ParseErrorKind.INVALID_FORMAT_FIELD,
                f"format must be 0, 1 or 2, found {format_value}",
                offset=format_offset,
            )

        track_count = cursor.read_u16()
        division_offset = cursor.tell()
        division = decode_division(cursor.read(2), offset=division_offset, location=cursor.name)
        return cls(format=MidiFormat(format_value), track_count=track_count, division=division)

    @classmethod
    def from_bytes(cls, data: bytes) -> "MidiHeader":
        return cls.read(Cursor(data, name="header"))

    def to_bytes(self) -> bytes:
        return b"".join(
            [
                HEADER_TAG,
                HEADER_LENGTH.to_bytes(4, "big"),
                int(self.format).to_bytes(2, "big"),
                int(self.track_count).to_bytes(2, "big"),
                self.division.to_bytes(),
            ]
        )
