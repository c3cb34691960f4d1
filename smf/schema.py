"""Lookup tables that drive event decoding.

The decoder never opens files itself: callers pass an :class:`EventSchema`
(or use :data:`DEFAULT_SCHEMA`). A schema can also be read from JSON of the
form::

    {
      "channel": {"0x9": {"name": "NoteOn", "length": 2}, ...},
      "meta": {"0x51": {"name": "Tempo", "length": 3},
               "0x01": {"name": "Text", "length": null}, ...}
    }

A ``null`` meta length marks a variable-length subtype.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Union


@dataclass(frozen=True)
class MetaType:
    name: str
    length: Optional[int] = None  # None = variable length

    @property
    def is_fixed_length(self) -> bool:
        return self.length is not None


@dataclass(frozen=True)
class EventSchema:
    channel_lengths: Mapping[int, int]
    channel_names: Mapping[int, str] = field(default_factory=dict)
    meta_types: Mapping[int, MetaType] = field(default_factory=dict)

    def channel_length(self, nibble: int) -> Optional[int]:
        """Data byte count for a channel status high nibble, or None if unknown."""

        return self.channel_lengths.get(nibble)

    def meta_type(self, subtype: int) -> Optional[MetaType]:
        return self.meta_types.get(subtype)

    def with_meta(self, subtype: int, name: str, length: Optional[int] = None) -> "EventSchema":
        meta_types = dict(self.meta_types)
        meta_types[subtype] = MetaType(name=name, length=length)
        return EventSchema(
            channel_lengths=dict(self.channel_lengths),
            channel_names=dict(self.channel_names),
            meta_types=meta_types,
        )

    def to_dict(self) -> dict:
        return {
            "channel": {
                f"0x{nibble:X}": {
                    "name": self.channel_names.get(nibble, f"Channel0x{nibble:X}"),
                    "length": length,
                }
                for nibble, length in sorted(self.channel_lengths.items())
            },
            "meta": {
                f"0x{subtype:02X}": {"name": meta.name, "length": meta.length}
                for subtype, meta in sorted(self.meta_types.items())
            },
        }


_CHANNEL_TABLE = {
    0x8: ("NoteOff", 2),
    0x9: ("NoteOn", 2),
    0xA: ("PolyAfterTouch", 2),
    0xB: ("Controller", 2),
    0xC: ("ProgramChange", 1),
    0xD: ("ChannelAfterTouch", 1),
    0xE: ("PitchBend", 2),
}

_META_TABLE = {
    0x01: MetaType("Text"),
    0x02: MetaType("CopyrightNotice"),
    0x03: MetaType("TrackName"),
    0x04: MetaType("InstrumentName"),
    0x05: MetaType("Lyrics"),
    0x06: MetaType("Marker"),
    0x07: MetaType("CuePoint"),
    0x20: MetaType("ChannelPrefix", 1),
    0x21: MetaType("MIDIPort", 1),
    0x2F: MetaType("EndOfTrack", 0),
    0x51: MetaType("Tempo", 3),
    0x54: MetaType("SMPTEOffset", 5),
    0x58: MetaType("TimeSignature", 4),
    0x59: MetaType("KeySignature", 2),
}

DEFAULT_SCHEMA = EventSchema(
    channel_lengths={nibble: length for nibble, (_, length) in _CHANNEL_TABLE.items()},
    channel_names={nibble: name for nibble, (name, _) in _CHANNEL_TABLE.items()},
    meta_types=dict(_META_TABLE),
)


def _require_dict(value: object, *, where: str) -> dict:
    if not isinstance(value, dict):
        raise ValueError(f"{where} must be an object")
    return value


def _int_in_range(value: object, *, where: str, low: int, high: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{where} must be an integer")
    if not (low <= value <= high):
        raise ValueError(f"{where} must be in [{low}, {high}]")
    return value


def _hex_key(key: str, *, where: str, low: int, high: int) -> int:
    try:
        value = int(key, 16)
    except ValueError:
        raise ValueError(f"{where} key {key!r} must be a hex string like '0x9'") from None
    return _int_in_range(value, where=f"{where}[{key}]", low=low, high=high)


def _name(entry: dict, *, where: str) -> str:
    name = entry.get("name")
    if not isinstance(name, str) or not name:
        raise ValueError(f"{where}.name must be a non-empty string")
    return name


def parse_event_schema(data: object) -> EventSchema:
    """Validate a JSON-like mapping and build an :class:`EventSchema`."""

    obj = _require_dict(data, where="schema")

    channel_lengths: Dict[int, int] = {}
    channel_names: Dict[int, str] = {}
    for key, raw in _require_dict(obj.get("channel", {}), where="channel").items():
        nibble = _hex_key(key, where="channel", low=0x8, high=0xE)
        entry = _require_dict(raw, where=f"channel[{key}]")
        channel_names[nibble] = _name(entry, where=f"channel[{key}]")
        channel_lengths[nibble] = _int_in_range(
            entry.get("length"), where=f"channel[{key}].length", low=0, high=2
        )

    meta_types: Dict[int, MetaType] = {}
    for key, raw in _require_dict(obj.get("meta", {}), where="meta").items():
        subtype = _hex_key(key, where="meta", low=0x00, high=0x7F)
        entry = _require_dict(raw, where=f"meta[{key}]")
        length = entry.get("length")
        if length is not None:
            length = _int_in_range(length, where=f"meta[{key}].length", low=0, high=0x0FFFFFFF)
        meta_types[subtype] = MetaType(name=_name(entry, where=f"meta[{key}]"), length=length)

    return EventSchema(
        channel_lengths=channel_lengths,
        channel_names=channel_names,
        meta_types=meta_types,
    )


def load_event_schema(path: Union[str, Path]) -> EventSchema:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    return parse_event_schema(raw)
