from __future__ import annotations

import logging

import pytest

from smf.messages import Controller, KeySignature, NoteOff, NoteOn, Tempo, TimeSignature
from smf.notes import Note, NoteSequence, build_note_sequence, pair_notes
from smf.timing import AbsoluteEvent


def _at(time: float, message: object, tick: int = 0) -> AbsoluteEvent:
    return AbsoluteEvent(time=time, tick=tick, message=message)


def test_note_on_and_note_off_form_a_note() -> None:
    notes = pair_notes([_at(0.0, NoteOn(0, 60, 100)), _at(1.5, NoteOff(0, 60, 0))])
    assert notes == [Note(pitch=60, velocity=100, start_time=0.0, end_time=1.5, channel=0)]
    assert notes[0].duration == 1.5
    assert notes[0].pitch_name == "C4"


def test_zero_velocity_note_on_releases() -> None:
    notes = pair_notes([_at(0.0, NoteOn(2, 64, 90)), _at(0.5, NoteOn(2, 64, 0))])
    assert notes == [Note(64, 90, 0.0, 0.5, 2)]


def test_unterminated_note_is_dropped(caplog: pytest.LogCaptureFixture) -> None:
    events = [
        _at(0.0, NoteOn(0, 60, 100)),
        _at(1.0, NoteOff(0, 60, 0)),
        _at(1.0, NoteOn(0, 62, 100)),
    ]
    with caplog.at_level(logging.DEBUG, logger="smf.notes"):
        notes = pair_notes(events)
    assert notes == [Note(60, 100, 0.0, 1.0, 0)]
    assert "still sounding" in caplog.text


def test_release_without_note_on_is_ignored() -> None:
    events = [_at(0.0, NoteOff(0, 60, 0)), _at(0.5, NoteOn(0, 60, 80)), _at(1.0, NoteOff(0, 60, 0))]
    assert pair_notes(events) == [Note(60, 80, 0.5, 1.0, 0)]


def test_repeated_note_on_replaces_pending_note() -> None:
    events = [
        _at(0.0, NoteOn(0, 60, 100)),
        _at(1.0, NoteOn(0, 60, 50)),
        _at(2.0, NoteOff(0, 60, 0)),
    ]
    assert pair_notes(events) == [Note(60, 50, 1.0, 2.0, 0)]


def test_same_pitch_on_different_channels_is_independent() -> None:
    events = [
        _at(0.0, NoteOn(0, 60, 100)),
        _at(0.5, NoteOn(1, 60, 70)),
        _at(1.0, NoteOff(0, 60, 0)),
        _at(2.0, NoteOff(1, 60, 0)),
    ]
    assert pair_notes(events) == [Note(60, 100, 0.0, 1.0, 0), Note(60, 70, 0.5, 2.0, 1)]


def test_notes_come_out_in_release_order() -> None:
    events = [
        _at(0.0, NoteOn(0, 60, 100)),
        _at(0.5, NoteOn(0, 64, 100)),
        _at(1.0, NoteOff(0, 64, 0)),
        _at(2.0, NoteOff(0, 60, 0)),
    ]
    assert [note.pitch for note in pair_notes(events)] == [64, 60]


def test_non_note_messages_are_skipped() -> None:
    events = [_at(0.0, Controller(0, 64, 127)), _at(0.0, Tempo()), _at(0.1, NoteOn(0, 60, 1))]
    assert pair_notes(events) == []


# ── note sequences ────────────────────────────────────────────────────


def test_empty_sequence_has_midi_defaults() -> None:
    sequence = NoteSequence()
    assert sequence.notes == []
    assert sequence.tempos == [(0.0, 120.0)]
    assert sequence.time_signatures == [(0.0, (4, 4))]
    assert sequence.key_signatures == [(0.0, "C major")]
    assert sequence.total_time == 0.0


def test_build_note_sequence_collects_context() -> None:
    events = [
        _at(0.0, Tempo(600_000)),
        _at(0.0, TimeSignature(3, 2)),
        _at(0.0, NoteOn(0, 69, 90)),
        _at(1.2, NoteOff(0, 69, 0)),
        _at(1.2, KeySignature(-1, 1)),
        _at(2.4, Tempo(500_000)),
    ]
    sequence = build_note_sequence(events)

    assert sequence.notes == [Note(69, 90, 0.0, 1.2, 0)]
    assert sequence.tempos == [(0.0, 100.0), (2.4, 120.0)]
    assert sequence.time_signatures == [(0.0, (3, 4))]
    assert sequence.key_signatures == [(0.0, "C major"), (1.2, "D minor")]
    assert sequence.total_time == 2.4


def test_build_note_sequence_from_empty_track() -> None:
    assert build_note_sequence([]) == NoteSequence()
