"""Per-track event decoding with MIDI running status.

A track payload is a sequence of ``<vlq delta-time> <message>`` pairs. A
channel message may omit its status byte when it repeats the previous channel
status ("running status"); the decoder then sees a data byte (bit 7 clear)
where a status byte would be, and reuses the last channel status without
consuming anything. Meta (0xFF) and sysex/escape (0xF0/0xF7) events neither
set nor clear the running status.

The running status is carried as an explicit :class:`RunningStatus` value:
:func:`decode_event` takes the current one and returns the next one along
with the decoded event.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from .chunks import TRACK_TAG, Chunk
from .cursor import Cursor
from .errors import ParseErrorKind
from .messages import (
    META_STATUS,
    ChannelMessage,
    EndOfTrack,
    Message,
    MetaMessage,
    SysMessage,
    decode_channel_message,
    decode_meta_message,
    is_channel_status,
    is_sys_status,
)
from .schema import DEFAULT_SCHEMA, EventSchema
from .vlq import encode_vlq, vlq_length
from .words import U32

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeltaTime:
    """Ticks since the previous event, plus the size it was encoded with."""

    ticks: int
    length: int = 0  # 0 = canonical encoding

    def __post_init__(self) -> None:
        if self.ticks < 0:
            raise ValueError(f"delta-time must be non-negative, got {self.ticks}")
        object.__setattr__(self, "ticks", U32(self.ticks))
        if not self.length:
            object.__setattr__(self, "length", vlq_length(self.ticks))

    def to_bytes(self) -> bytes:
        return encode_vlq(int(self.ticks), self.length)


@dataclass(frozen=True)
class Event:
    delta: DeltaTime
    message: Message
    running_status: bool = False  # status byte was omitted in the source
    length_size: int = 1  # encoded size of a meta/sysex length field

    @property
    def ticks(self) -> int:
        return int(self.delta.ticks)

    @property
    def is_channel(self) -> bool:
        return isinstance(self.message, ChannelMessage)

    @property
    def is_meta(self) -> bool:
        return isinstance(self.message, MetaMessage)

    @property
    def is_sys(self) -> bool:
        return isinstance(self.message, SysMessage)

    def to_bytes(self, *, previous_status: Optional[int] = None) -> bytes:
        message = self.message
        if isinstance(message, ChannelMessage):
            omit = self.running_status and previous_status == message.status
            return self.delta.to_bytes() + message.to_bytes(include_status=not omit)
        return self.delta.to_bytes() + message.to_bytes(length_size=self.length_size)


@dataclass(frozen=True)
class RunningStatus:
    last_channel_status: Optional[int] = None


def decode_event(
    cursor: Cursor,
    state: RunningStatus,
    *,
    schema: EventSchema = DEFAULT_SCHEMA,
) -> Tuple[Event, RunningStatus]:
    """Decode one ``(delta-time, message)`` pair at the cursor."""

    ticks, length = cursor.read_vlq()
    delta = DeltaTime(ticks, length)

    status_offset = cursor.tell()
    byte = cursor.peek_byte()
    running = False
    if byte & 0x80:
        cursor.skip(1)
        status = byte
    else:
        if state.last_channel_status is None:
            raise cursor.error(
                ParseErrorKind.INVALID_EVENT_BYTE,
                f"data byte 0x{byte:02X} with no running status",
                offset=status_offset,
            )
        status = state.last_channel_status
        running = True

    if is_channel_status(status):
        data_length = schema.channel_length(status >> 4)
        if data_length is None:
            raise cursor.error(
                ParseErrorKind.INVALID_EVENT_BYTE,
                f"no payload length known for channel status 0x{status:02X}",
                offset=status_offset,
            )
        data = bytes(b & 0x7F for b in cursor.read(data_length))
        message: Message = decode_channel_message(
            status, data, offset=status_offset, location=cursor.name
        )
        return Event(delta, message, running), RunningStatus(status)

    if status == META_STATUS:
        subtype = cursor.read_byte()
        payload_length, length_size = cursor.read_vlq()
        payload = cursor.read(payload_length)
        message = decode_meta_message(
            subtype, payload, schema=schema, offset=status_offset, location=cursor.name
        )
        return Event(delta, message, length_size=length_size), state

    if is_sys_status(status):
        payload_length, length_size = cursor.read_vlq()
        message = SysMessage(status=status, raw=cursor.read(payload_length))
        return Event(delta, message, length_size=length_size), state

    raise cursor.error(
        ParseErrorKind.INVALID_EVENT_BYTE,
        f"0x{status:02X} is not a channel, meta or sysex status byte",
        offset=status_offset,
    )


@dataclass(frozen=True)
class Track:
    index: int
    events: Tuple[Event, ...]
    chunk: Optional[Chunk] = None

    def __iter__(self) -> Iterator[Event]:
        return iter(self.events)

    def __len__(self) -> int:
        return len(self.events)

    @property
    def has_end_of_track(self) -> bool:
        return bool(self.events) and isinstance(self.events[-1].message, EndOfTrack)

    @property
    def duration_ticks(self) -> int:
        return sum(event.ticks for event in self.events)

    def channel_events(self) -> List[Event]:
        return [event for event in self.events if event.is_channel]

    def payload_bytes(self) -> bytes:
        parts = []
        previous: Optional[int] = None
        for event in self.events:
            parts.append(event.to_bytes(previous_status=previous))
            if isinstance(event.message, ChannelMessage):
                previous = event.message.status
        return b"".join(parts)

    def to_bytes(self) -> bytes:
        payload = self.payload_bytes()
        return TRACK_TAG + len(payload).to_bytes(4, "big") + payload


def decode_track(
    cursor: Cursor,
    *,
    index: int = 0,
    schema: EventSchema = DEFAULT_SCHEMA,
    chunk: Optional[Chunk] = None,
) -> Track:
    """Decode events until the cursor's end, which must be the chunk boundary."""

    events: List[Event] = []
    state = RunningStatus()
    while not cursor.at_end():
        event, state = decode_event(cursor, state, schema=schema)
        events.append(event)

    track = Track(index=index, events=tuple(events), chunk=chunk)
    eot_positions = [i for i, event in enumerate(events) if isinstance(event.message, EndOfTrack)]
    if not eot_positions:
        _LOGGER.warning("%s: no EndOfTrack meta event", cursor.name)
    elif eot_positions[0] != len(events) - 1:
        _LOGGER.warning(
            "%s: %d event(s) follow EndOfTrack",
            cursor.name,
            len(events) - 1 - eot_positions[0],
        )
    _LOGGER.debug("%s: decoded %d event(s), %d tick(s)", cursor.name, len(events), track.duration_ticks)
    return track


def track_cursor(data: bytes, chunk: Chunk, index: int) -> Cursor:
    """Cursor bounded to one chunk's payload; overruns report a length mismatch."""

    return Cursor(
        data,
        name=f"track-{index}",
        start=chunk.start,
        end=chunk.end,
        overrun_kind=ParseErrorKind.TRACK_LENGTH_MISMATCH,
    )


def decode_track_bytes(
    payload: bytes,
    *,
    index: int = 0,
    schema: EventSchema = DEFAULT_SCHEMA,
) -> Track:
    """Decode a bare track payload (the bytes after ``MTrk`` + length)."""

    cursor = Cursor(
        payload,
        name=f"track-{index}",
        overrun_kind=ParseErrorKind.TRACK_LENGTH_MISMATCH,
    )
    return decode_track(cursor, index=index, schema=schema)
