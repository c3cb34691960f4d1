"""Decoder for Standard MIDI Files (SMF) with tempo-aware note extraction."""

from .chunks import Chunk, scan_chunks  # noqa: F401
from .errors import MidiParseError, ParseErrorKind  # noqa: F401
from .header import (  # noqa: F401
    HEADER_SIZE,
    SMPTE,
    MetricTicks,
    MidiFormat,
    MidiHeader,
)
from .messages import (  # noqa: F401
    DEFAULT_TEMPO,
    ChannelAfterTouch,
    ChannelMessage,
    ChannelPrefix,
    Controller,
    CopyrightNotice,
    CuePoint,
    EndOfTrack,
    InstrumentName,
    KeySignature,
    Lyrics,
    Marker,
    MetaMessage,
    MIDIPort,
    NoteOff,
    NoteOn,
    PitchBend,
    PolyAfterTouch,
    ProgramChange,
    SMPTEOffset,
    SysMessage,
    Tempo,
    Text,
    TimeSignature,
    TrackName,
    Unrecognized,
)
from .midi import Midi, parse_midi  # noqa: F401
from .notes import Note, NoteSequence, build_note_sequence, pair_notes  # noqa: F401
from .schema import (  # noqa: F401
    DEFAULT_SCHEMA,
    EventSchema,
    MetaType,
    load_event_schema,
    parse_event_schema,
)
from .timing import AbsoluteEvent, TempoMap, TimeTrack, to_absolute_events  # noqa: F401
from .track import DeltaTime, Event, RunningStatus, Track, decode_event, decode_track  # noqa: F401
from .vlq import decode_vlq, encode_vlq  # noqa: F401
from .words import U1, U4, U7, U8, U16, U24, U32, MaskedWord, mask  # noqa: F401
