from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .chunks import scan_chunks
from .cursor import Cursor
from .header import HEADER_SIZE, MidiHeader
from .notes import Note, NoteSequence, build_note_sequence, pair_notes
from .schema import DEFAULT_SCHEMA, EventSchema
from .timing import AbsoluteEvent, TempoMap, to_absolute_events
from .track import Track, decode_track, track_cursor

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Midi:
    """A decoded Standard MIDI File: the header plus its tracks in file order.

    Round-trip guarantee: ``Midi.from_bytes(data).to_bytes() == data``,
    including omitted status bytes and padded VLQ delta-times and lengths.
    """

    header: MidiHeader
    tracks: Tuple[Track, ...]

    @classmethod
    def from_bytes(cls, data: bytes, *, schema: EventSchema = DEFAULT_SCHEMA) -> "Midi":
        return parse_midi(data, schema=schema)

    def to_bytes(self) -> bytes:
        return self.header.to_bytes() + b"".join(track.to_bytes() for track in self.tracks)

    @property
    def track_count_mismatch(self) -> bool:
        return len(self.tracks) != self.header.track_count

    def tempo_map(self, *, track: Optional[int] = 0) -> TempoMap:
        """Tempo map from one track (default: track 0), or all tracks if ``track`` is None."""

        tracks = self.tracks if track is None else (self.tracks[track],)
        return TempoMap.from_tracks(tracks, self.header.division)

    def absolute_tracks(self, *, tempo_map: Optional[TempoMap] = None) -> List[List[AbsoluteEvent]]:
        return [
            to_absolute_events(track, self.header.division, tempo_map=tempo_map)
            for track in self.tracks
        ]

    def notes(self, *, tempo_map: Optional[TempoMap] = None) -> List[List[Note]]:
        """Paired notes for every track, in track order."""

        return [pair_notes(events) for events in self.absolute_tracks(tempo_map=tempo_map)]

    def note_sequences(self, *, tempo_map: Optional[TempoMap] = None) -> List[NoteSequence]:
        return [build_note_sequence(events) for events in self.absolute_tracks(tempo_map=tempo_map)]


def parse_midi(data: bytes, *, schema: EventSchema = DEFAULT_SCHEMA) -> Midi:
    """Decode a complete SMF buffer.

    Structural problems raise :class:`~smf.errors.MidiParseError` carrying the
    byte offset and the part of the file (``header``, ``chunks``,
    ``track-N``) being read. A header track count that disagrees with the
    chunks actually present is only logged.
    """
    data = bytes(data)
    header = MidiHeader.read(Cursor(data, name="header", end=HEADER_SIZE))
    chunks = scan_chunks(Cursor(data, name="chunks", start=HEADER_SIZE))

    tracks = tuple(
        decode_track(track_cursor(data, chunk, index), index=index, schema=schema, chunk=chunk)
        for index, chunk in enumerate(chunks)
    )

    if len(tracks) != header.track_count:
        _LOGGER.warning(
            "header declares %d track(s) but %d MTrk chunk(s) were found",
            header.track_count,
            len(tracks),
        )
    _LOGGER.debug(
        "parsed format %d file: %d track(s), division %r",
        int(header.format),
        len(tracks),
        header.division,
    )
    return Midi(header=header, tracks=tracks)
