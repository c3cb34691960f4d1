"""Pair note-on/note-off messages into notes with start and end times."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from .messages import KeySignature, Tempo, TimeSignature, pitch_name
from .timing import AbsoluteEvent

_LOGGER = logging.getLogger(__name__)

DEFAULT_BPM = 120.0
DEFAULT_TIME_SIGNATURE = (4, 4)
DEFAULT_KEY_SIGNATURE = "C major"


@dataclass(frozen=True)
class Note:
    """A sounding note: one note-on matched with its release."""

    pitch: int  # MIDI note number 0-127
    velocity: int  # note-on velocity 1-127
    start_time: float  # seconds
    end_time: float  # seconds
    channel: int = 0

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @property
    def pitch_name(self) -> str:
        return pitch_name(self.pitch)


def pair_notes(events: Iterable[AbsoluteEvent]) -> List[Note]:
    """Match note-ons with releases on the same ``(channel, pitch)``.

    Returns notes in the order their releases occur. A repeated note-on for a
    key that is still sounding replaces the pending one; releases with nothing
    pending are ignored, and notes still sounding at the end are dropped.
    """
    pending: Dict[Tuple[int, int], Tuple[float, int]] = {}
    notes: List[Note] = []

    for event in events:
        if not event.is_channel:
            continue
        message = event.message
        if message.is_note_on:
            key = (int(message.channel), int(message.note))
            if key in pending:
                _LOGGER.debug(
                    "dropping unterminated note %s on channel %d at %.6fs",
                    pitch_name(key[1]),
                    key[0],
                    pending[key][0],
                )
            pending[key] = (event.time, int(message.velocity))
        elif message.is_note_off:
            key = (int(message.channel), int(message.note))
            started = pending.pop(key, None)
            if started is None:
                continue
            start_time, velocity = started
            notes.append(
                Note(
                    pitch=key[1],
                    velocity=velocity,
                    start_time=start_time,
                    end_time=event.time,
                    channel=key[0],
                )
            )

    if pending:
        _LOGGER.debug("dropping %d note(s) still sounding at end of track", len(pending))
    return notes


@dataclass
class NoteSequence:
    """Notes plus the tempo, meter and key context they were played in.

    Each context list holds ``(time, value)`` nodes in time order and always
    starts with a node at 0.0 (the MIDI defaults unless the track sets its
    own value there).
    """

    notes: List[Note] = field(default_factory=list)
    tempos: List[Tuple[float, float]] = field(default_factory=lambda: [(0.0, DEFAULT_BPM)])
    time_signatures: List[Tuple[float, Tuple[int, int]]] = field(
        default_factory=lambda: [(0.0, DEFAULT_TIME_SIGNATURE)]
    )
    key_signatures: List[Tuple[float, str]] = field(
        default_factory=lambda: [(0.0, DEFAULT_KEY_SIGNATURE)]
    )
    total_time: float = 0.0


def _add_node(nodes: list, time: float, value: object) -> None:
    if nodes and nodes[-1][0] == time:
        nodes[-1] = (time, value)
    else:
        nodes.append((time, value))


def build_note_sequence(events: Iterable[AbsoluteEvent]) -> NoteSequence:
    events = list(events)
    sequence = NoteSequence(notes=pair_notes(events))
    for event in events:
        message = event.message
        if isinstance(message, Tempo):
            _add_node(sequence.tempos, event.time, message.bpm)
        elif isinstance(message, TimeSignature):
            _add_node(
                sequence.time_signatures,
                event.time,
                (int(message.numerator), message.denominator),
            )
        elif isinstance(message, KeySignature):
            _add_node(sequence.key_signatures, event.time, message.name)
    if events:
        sequence.total_time = events[-1].time
    return sequence
