"""Delta-time to absolute-time conversion.

Seconds for a delta are ``ticks * tempo / ticks_per_quarter / 1_000_000``
with ``tempo`` in microseconds per quarter note (default 500000, 120 BPM).

A Tempo meta event is timed with the tempo in effect *before* it; the new
tempo only applies to the deltas that follow, as a sequencer advances its
clock before reading the event.

Tempo is tracked per track. Format 1 files usually keep every tempo change
on track 0; callers that want those to govern all tracks can build a
:class:`TempoMap` from that track (or from all tracks) and pass it in.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple, Union

from .errors import MidiParseError, ParseErrorKind
from .header import SMPTE, Division, MetricTicks
from .messages import DEFAULT_TEMPO, ChannelMessage, Message, Tempo
from .track import Event, Track


@dataclass(frozen=True)
class AbsoluteEvent:
    time: float  # seconds from the start of the track
    tick: int  # absolute tick
    message: Message

    @property
    def is_channel(self) -> bool:
        return isinstance(self.message, ChannelMessage)


def ticks_per_quarter(division: Union[Division, int], *, location: str = "timing") -> int:
    if isinstance(division, SMPTE):
        raise MidiParseError(
            ParseErrorKind.MISSING_TEMPO_MAP,
            "SMPTE division has no ticks-per-quarter; tempo-based timing is unavailable",
            location=location,
        )
    tpq = int(division.ticks_per_quarter) if isinstance(division, MetricTicks) else int(division)
    if tpq <= 0:
        raise MidiParseError(
            ParseErrorKind.MISSING_TEMPO_MAP,
            f"division of {tpq} ticks per quarter cannot be converted to seconds",
            location=location,
        )
    return tpq


def ticks_to_seconds(ticks: int, tempo: int, tpq: int) -> float:
    return ticks * tempo / tpq / 1_000_000


class TempoMap:
    """Piecewise-constant tempo over absolute ticks."""

    def __init__(
        self,
        division: Union[Division, int],
        changes: Iterable[Tuple[int, int]] = (),
        *,
        initial_tempo: int = DEFAULT_TEMPO,
    ) -> None:
        self.ticks_per_quarter = ticks_per_quarter(division, location="tempo-map")
        # (start tick, tempo, seconds at start tick)
        segments: List[Tuple[int, int, float]] = [(0, initial_tempo, 0.0)]
        for tick, tempo in sorted(changes, key=lambda change: change[0]):
            start, current, seconds = segments[-1]
            if tick == start:
                segments[-1] = (start, tempo, seconds)
                continue
            seconds += ticks_to_seconds(tick - start, current, self.ticks_per_quarter)
            segments.append((tick, tempo, seconds))
        self._segments = segments
        self._starts = [segment[0] for segment in segments]

    @classmethod
    def from_tracks(cls, tracks: Sequence[Track], division: Union[Division, int]) -> "TempoMap":
        """Collect Tempo events from ``tracks`` (format 1 convention: track 0)."""

        changes: List[Tuple[int, int]] = []
        for track in tracks:
            tick = 0
            for event in track:
                tick += event.ticks
                if isinstance(event.message, Tempo):
                    changes.append((tick, int(event.message.microseconds)))
        return cls(division, changes)

    @property
    def changes(self) -> List[Tuple[int, int]]:
        return [(tick, tempo) for tick, tempo, _ in self._segments]

    def tempo_at(self, tick: int) -> int:
        return self._segments[bisect_right(self._starts, tick) - 1][1]

    def seconds_at(self, tick: int) -> float:
        start, tempo, seconds = self._segments[bisect_right(self._starts, tick) - 1]
        return seconds + ticks_to_seconds(tick - start, tempo, self.ticks_per_quarter)


class TimeTrack:
    """Stateful clock that stamps each event of one track with seconds."""

    def __init__(
        self,
        division: Union[Division, int],
        tempo: int = DEFAULT_TEMPO,
        *,
        tempo_map: TempoMap | None = None,
        location: str = "time-track",
    ) -> None:
        self.ticks_per_quarter = ticks_per_quarter(division, location=location)
        self.tempo = tempo
        self.tempo_map = tempo_map
        self.elapsed_seconds = 0.0
        self.tick = 0

    def advance(self, event: Event) -> AbsoluteEvent:
        self.tick += event.ticks
        if self.tempo_map is not None:
            self.elapsed_seconds = self.tempo_map.seconds_at(self.tick)
        else:
            self.elapsed_seconds += ticks_to_seconds(event.ticks, self.tempo, self.ticks_per_quarter)
        stamped = AbsoluteEvent(time=self.elapsed_seconds, tick=self.tick, message=event.message)
        if isinstance(event.message, Tempo):
            self.tempo = int(event.message.microseconds)
        return stamped


def to_absolute_events(
    events: Iterable[Event],
    division: Union[Division, int],
    *,
    tempo: int = DEFAULT_TEMPO,
    tempo_map: TempoMap | None = None,
) -> List[AbsoluteEvent]:
    """Stamp a track's events with absolute time using a fresh :class:`TimeTrack`."""

    location = f"track-{events.index}" if isinstance(events, Track) else "time-track"
    clock = TimeTrack(division, tempo, tempo_map=tempo_map, location=location)
    return [clock.advance(event) for event in events]
