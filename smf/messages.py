"""Channel, meta and system message variants.

Each variant decodes from the bytes that follow its status byte and
re-encodes to exactly those bytes via ``to_bytes()``.

Channel messages (status high nibble, low nibble = channel):

  0x8 NoteOff            note, velocity
  0x9 NoteOn             note, velocity   (velocity 0 acts as a release)
  0xA PolyAfterTouch     note, amount
  0xB Controller         controller_type, value
  0xC ProgramChange      program
  0xD ChannelAfterTouch  amount
  0xE PitchBend          lsb, msb

Meta messages are ``FF <subtype> <vlq length> <payload>``; subtypes without a
dedicated class decode to :class:`Unrecognized` so one odd meta event never
spoils the rest of a file.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import ClassVar, Dict, Optional, Tuple, Type, Union

from .errors import MidiParseError, ParseErrorKind
from .schema import DEFAULT_SCHEMA, EventSchema
from .vlq import encode_vlq
from .words import U4, U7, U8, U24, signed_byte

META_STATUS = 0xFF
SYSEX_STATUS = 0xF0
ESCAPE_STATUS = 0xF7
DEFAULT_TEMPO = 500_000  # microseconds per quarter note (120 BPM)

NOTE_NAMES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")


def pitch_name(pitch: int) -> str:
    """Return scientific pitch notation for a MIDI note number (60 -> ``C4``)."""

    return f"{NOTE_NAMES[pitch % 12]}{pitch // 12 - 1}"


# ── channel messages ──────────────────────────────────────────────────


@dataclass(frozen=True)
class ChannelMessage:
    channel: int

    NIBBLE: ClassVar[int] = 0
    DATA_FIELDS: ClassVar[Tuple[str, ...]] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "channel", U4(self.channel))
        for name in self.DATA_FIELDS:
            object.__setattr__(self, name, U7(getattr(self, name)))

    @property
    def status(self) -> int:
        return (self.NIBBLE << 4) | self.channel

    @property
    def data(self) -> bytes:
        return bytes(getattr(self, name) for name in self.DATA_FIELDS)

    @property
    def is_note_on(self) -> bool:
        return False

    @property
    def is_note_off(self) -> bool:
        return False

    def to_bytes(self, *, include_status: bool = True) -> bytes:
        if include_status:
            return bytes([self.status]) + self.data
        return self.data

    @classmethod
    def from_data(cls, channel: int, data: bytes) -> "ChannelMessage":
        values = dict(zip(cls.DATA_FIELDS, data))
        return cls(channel=channel, **values)


@dataclass(frozen=True)
class NoteOff(ChannelMessage):
    note: int
    velocity: int

    NIBBLE: ClassVar[int] = 0x8
    DATA_FIELDS: ClassVar[Tuple[str, ...]] = ("note", "velocity")

    @property
    def is_note_off(self) -> bool:
        return True


@dataclass(frozen=True)
class NoteOn(ChannelMessage):
    note: int
    velocity: int

    NIBBLE: ClassVar[int] = 0x9
    DATA_FIELDS: ClassVar[Tuple[str, ...]] = ("note", "velocity")

    @property
    def is_note_on(self) -> bool:
        return self.velocity > 0

    @property
    def is_note_off(self) -> bool:
        return self.velocity == 0


@dataclass(frozen=True)
class PolyAfterTouch(ChannelMessage):
    note: int
    amount: int

    NIBBLE: ClassVar[int] = 0xA
    DATA_FIELDS: ClassVar[Tuple[str, ...]] = ("note", "amount")


@dataclass(frozen=True)
class Controller(ChannelMessage):
    controller_type: int
    value: int

    NIBBLE: ClassVar[int] = 0xB
    DATA_FIELDS: ClassVar[Tuple[str, ...]] = ("controller_type", "value")


@dataclass(frozen=True)
class ProgramChange(ChannelMessage):
    program: int

    NIBBLE: ClassVar[int] = 0xC
    DATA_FIELDS: ClassVar[Tuple[str, ...]] = ("program",)


@dataclass(frozen=True)
class ChannelAfterTouch(ChannelMessage):
    amount: int

    NIBBLE: ClassVar[int] = 0xD
    DATA_FIELDS: ClassVar[Tuple[str, ...]] = ("amount",)


@dataclass(frozen=True)
class PitchBend(ChannelMessage):
    lsb: int
    msb: int

    NIBBLE: ClassVar[int] = 0xE
    DATA_FIELDS: ClassVar[Tuple[str, ...]] = ("lsb", "msb")

    @property
    def value(self) -> int:
        """Signed bend amount; 0 is centre, range -8192..8191."""

        return ((self.msb << 7) | self.lsb) - 0x2000


CHANNEL_MESSAGE_TYPES: Dict[int, Type[ChannelMessage]] = {
    cls.NIBBLE: cls
    for cls in (NoteOff, NoteOn, PolyAfterTouch, Controller, ProgramChange, ChannelAfterTouch, PitchBend)
}


def is_channel_status(byte: int) -> bool:
    return 0x80 <= byte < 0xF0


def decode_channel_message(
    status: int,
    data: bytes,
    *,
    offset: int = 0,
    location: str = "message",
) -> ChannelMessage:
    """Build the variant for ``status`` from its data bytes (each masked to 7 bits)."""

    cls = CHANNEL_MESSAGE_TYPES.get(status >> 4)
    if cls is None or not is_channel_status(status):
        raise MidiParseError(
            ParseErrorKind.INVALID_EVENT_BYTE,
            f"0x{status:02X} is not a channel status byte",
            offset=offset,
            location=location,
        )
    if len(data) != len(cls.DATA_FIELDS):
        raise MidiParseError(
            ParseErrorKind.PAYLOAD_LENGTH_MISMATCH,
            f"{cls.__name__} takes {len(cls.DATA_FIELDS)} data byte(s), got {len(data)}",
            offset=offset,
            location=location,
        )
    return cls.from_data(status & 0x0F, data)


# ── meta messages ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class MetaMessage:
    LENGTH: ClassVar[Optional[int]] = None

    @property
    def payload(self) -> bytes:
        raise NotImplementedError

    def to_bytes(self, *, length_size: int = 1) -> bytes:
        """Encode as ``FF <subtype> <vlq length> <payload>``.

        ``length_size`` pads the length field to the size it had in the source.
        """
        payload = self.payload
        return bytes([META_STATUS, self.subtype]) + encode_vlq(len(payload), length_size) + payload

    @classmethod
    def from_payload(cls, payload: bytes) -> "MetaMessage":
        raise NotImplementedError


@dataclass(frozen=True)
class TextMeta(MetaMessage):
    raw: bytes = b""

    @property
    def text(self) -> str:
        return self.raw.decode("latin-1")

    @property
    def payload(self) -> bytes:
        return self.raw

    @classmethod
    def from_payload(cls, payload: bytes) -> "TextMeta":
        return cls(raw=bytes(payload))

    @classmethod
    def from_text(cls, text: str) -> "TextMeta":
        return cls(raw=text.encode("latin-1"))


@dataclass(frozen=True)
class Text(TextMeta):
    subtype: ClassVar[int] = 0x01


@dataclass(frozen=True)
class CopyrightNotice(TextMeta):
    subtype: ClassVar[int] = 0x02


@dataclass(frozen=True)
class TrackName(TextMeta):
    subtype: ClassVar[int] = 0x03


@dataclass(frozen=True)
class InstrumentName(TextMeta):
    subtype: ClassVar[int] = 0x04


@dataclass(frozen=True)
class Lyrics(TextMeta):
    subtype: ClassVar[int] = 0x05


@dataclass(frozen=True)
class Marker(TextMeta):
    subtype: ClassVar[int] = 0x06


@dataclass(frozen=True)
class CuePoint(TextMeta):
    subtype: ClassVar[int] = 0x07


@dataclass(frozen=True)
class ChannelPrefix(MetaMessage):
    channel: int

    subtype: ClassVar[int] = 0x20
    LENGTH: ClassVar[Optional[int]] = 1

    def __post_init__(self) -> None:
        object.__setattr__(self, "channel", U8(self.channel))

    @property
    def payload(self) -> bytes:
        return bytes([self.channel])

    @classmethod
    def from_payload(cls, payload: bytes) -> "ChannelPrefix":
        return cls(channel=payload[0])


@dataclass(frozen=True)
class MIDIPort(MetaMessage):
    port: int

    subtype: ClassVar[int] = 0x21
    LENGTH: ClassVar[Optional[int]] = 1

    def __post_init__(self) -> None:
        object.__setattr__(self, "port", U8(self.port))

    @property
    def payload(self) -> bytes:
        return bytes([self.port])

    @classmethod
    def from_payload(cls, payload: bytes) -> "MIDIPort":
        return cls(port=payload[0])


@dataclass(frozen=True)
class EndOfTrack(MetaMessage):
    subtype: ClassVar[int] = 0x2F
    LENGTH: ClassVar[Optional[int]] = 0

    @property
    def payload(self) -> bytes:
        return b""

    @classmethod
    def from_payload(cls, payload: bytes) -> "EndOfTrack":
        return cls()


@dataclass(frozen=True)
class Tempo(MetaMessage):
    """Tempo as microseconds per quarter note (3 bytes, big-endian)."""

    microseconds: int = DEFAULT_TEMPO

    subtype: ClassVar[int] = 0x51
    LENGTH: ClassVar[Optional[int]] = 3

    def __post_init__(self) -> None:
        object.__setattr__(self, "microseconds", U24(self.microseconds))

    @property
    def seconds_per_quarter(self) -> float:
        return self.microseconds / 1_000_000

    @property
    def bpm(self) -> float:
        if not self.microseconds:
            return 0.0
        return 60_000_000 / self.microseconds

    @classmethod
    def from_bpm(cls, bpm: float) -> "Tempo":
        if bpm <= 0:
            raise ValueError(f"bpm must be positive, got {bpm}")
        return cls(microseconds=int(round(60_000_000 / bpm)))

    @property
    def payload(self) -> bytes:
        return self.microseconds.to_bytes_be(3)

    @classmethod
    def from_payload(cls, payload: bytes) -> "Tempo":
        return cls(microseconds=int.from_bytes(payload, "big"))


@dataclass(frozen=True)
class SMPTEOffset(MetaMessage):
    raw: bytes

    subtype: ClassVar[int] = 0x54
    LENGTH: ClassVar[Optional[int]] = 5

    @property
    def payload(self) -> bytes:
        return self.raw

    @classmethod
    def from_payload(cls, payload: bytes) -> "SMPTEOffset":
        return cls(raw=bytes(payload))


@dataclass(frozen=True)
class TimeSignature(MetaMessage):
    numerator: int
    denominator_power: int  # denominator == 2 ** denominator_power
    clocks_per_click: int = 24
    thirty_seconds_per_quarter: int = 8

    subtype: ClassVar[int] = 0x58
    LENGTH: ClassVar[Optional[int]] = 4

    def __post_init__(self) -> None:
        for f in fields(self):
            object.__setattr__(self, f.name, U8(getattr(self, f.name)))

    @property
    def denominator(self) -> int:
        return 1 << self.denominator_power

    @property
    def payload(self) -> bytes:
        return bytes(
            [self.numerator, self.denominator_power, self.clocks_per_click, self.thirty_seconds_per_quarter]
        )

    @classmethod
    def from_payload(cls, payload: bytes) -> "TimeSignature":
        return cls(*payload)


_MAJOR_KEYS = ("Cb", "Gb", "Db", "Ab", "Eb", "Bb", "F", "C", "G", "D", "A", "E", "B", "F#", "C#")
_MINOR_KEYS = ("Ab", "Eb", "Bb", "F", "C", "G", "D", "A", "E", "B", "F#", "C#", "G#", "D#", "A#")


@dataclass(frozen=True)
class KeySignature(MetaMessage):
    sharps_flats: int  # > 0 sharps, < 0 flats
    major_minor: int = 0  # 0 major, 1 minor; kept as the raw byte

    subtype: ClassVar[int] = 0x59
    LENGTH: ClassVar[Optional[int]] = 2

    def __post_init__(self) -> None:
        object.__setattr__(self, "sharps_flats", signed_byte(self.sharps_flats))
        object.__setattr__(self, "major_minor", U8(self.major_minor))

    @property
    def is_minor(self) -> bool:
        return bool(self.major_minor & 1)

    @property
    def name(self) -> str:
        keys = _MINOR_KEYS if self.is_minor else _MAJOR_KEYS
        index = self.sharps_flats + 7
        tonic = keys[index] if 0 <= index < len(keys) else f"{self.sharps_flats:+d}"
        return f"{tonic} {'minor' if self.is_minor else 'major'}"

    @property
    def payload(self) -> bytes:
        return bytes([self.sharps_flats & 0xFF, self.major_minor])

    @classmethod
    def from_payload(cls, payload: bytes) -> "KeySignature":
        return cls(sharps_flats=payload[0], major_minor=payload[1])


@dataclass(frozen=True)
class Unrecognized(MetaMessage):
    """A well-formed meta event whose subtype has no dedicated decoder."""

    subtype: int
    raw: bytes

    @property
    def payload(self) -> bytes:
        return self.raw


META_MESSAGE_TYPES: Dict[int, Type[MetaMessage]] = {
    cls.subtype: cls
    for cls in (
        Text,
        CopyrightNotice,
        TrackName,
        InstrumentName,
        Lyrics,
        Marker,
        CuePoint,
        ChannelPrefix,
        MIDIPort,
        EndOfTrack,
        Tempo,
        SMPTEOffset,
        TimeSignature,
        KeySignature,
    )
}


def decode_meta_message(
    subtype: int,
    payload: bytes,
    *,
    schema: EventSchema = DEFAULT_SCHEMA,
    offset: int = 0,
    location: str = "message",
) -> MetaMessage:
    """Decode a meta payload, validating fixed-length subtypes first.

    A subtype is decoded into its dedicated class only when the schema lists
    it; anything else becomes :class:`Unrecognized`.
    """
    meta_type = schema.meta_type(subtype)
    cls = META_MESSAGE_TYPES.get(subtype)

    expected = meta_type.length if meta_type is not None else None
    if cls is not None and cls.LENGTH is not None and meta_type is not None:
        expected = cls.LENGTH
    if expected is not None and len(payload) != expected:
        name = meta_type.name if meta_type is not None else f"meta 0x{subtype:02X}"
        raise MidiParseError(
            ParseErrorKind.PAYLOAD_LENGTH_MISMATCH,
            f"{name} payload must be {expected} byte(s), got {len(payload)}",
            offset=offset,
            location=location,
        )

    if cls is None or meta_type is None:
        return Unrecognized(subtype=subtype, raw=bytes(payload))
    return cls.from_payload(payload)


# ── system messages ───────────────────────────────────────────────────


@dataclass(frozen=True)
class SysMessage:
    """Opaque sysex (0xF0) or escape (0xF7) payload."""

    status: int
    raw: bytes

    def to_bytes(self, *, length_size: int = 1) -> bytes:
        return bytes([self.status]) + encode_vlq(len(self.raw), length_size) + self.raw


def is_sys_status(byte: int) -> bool:
    return byte in (SYSEX_STATUS, ESCAPE_STATUS)


Message = Union[ChannelMessage, MetaMessage, SysMessage]
