from __future__ import annotations

import logging

import pytest

from smf.cursor import Cursor
from smf.errors import MidiParseError, ParseErrorKind
from smf.messages import (
    Controller,
    EndOfTrack,
    NoteOff,
    NoteOn,
    PitchBend,
    ProgramChange,
    SysMessage,
    Text,
    Unrecognized,
)
from smf.schema import DEFAULT_SCHEMA, EventSchema
from smf.track import DeltaTime, Event, RunningStatus, Track, decode_event, decode_track_bytes

EOT = b"\x00\xFF\x2F\x00"


def _messages(track: Track) -> list:
    return [event.message for event in track]


# ── running status ────────────────────────────────────────────────────


def test_running_status_reuses_previous_channel_status() -> None:
    track = decode_track_bytes(b"\x00\x90\x40\x7F" + b"\x00\x40\x00" + EOT)

    first, second, _ = track.events
    assert first.message == NoteOn(channel=0, note=0x40, velocity=0x7F)
    assert not first.running_status
    assert second.message == NoteOn(channel=0, note=0x40, velocity=0)
    assert second.running_status
    assert second.message.is_note_off
    assert not second.message.is_note_on


def test_running_status_survives_meta_and_sysex_events() -> None:
    payload = (
        b"\x00\x91\x3C\x64"
        + b"\x00\xFF\x01\x02hi"
        + b"\x00\xF0\x03\x7E\x7F\xF7"
        + b"\x60\x3C\x00"
        + EOT
    )
    track = decode_track_bytes(payload)

    assert _messages(track) == [
        NoteOn(1, 0x3C, 0x64),
        Text(raw=b"hi"),
        SysMessage(status=0xF0, raw=b"\x7E\x7F\xF7"),
        NoteOn(1, 0x3C, 0),
        EndOfTrack(),
    ]
    assert track.events[1].is_meta
    assert track.events[2].is_sys
    assert track.events[3].running_status
    assert track.events[3].ticks == 0x60


def test_new_status_byte_replaces_running_status() -> None:
    payload = b"\x00\x90\x3C\x64" + b"\x00\xC2\x05" + b"\x00\x07" + EOT
    track = decode_track_bytes(payload)
    assert _messages(track)[:3] == [
        NoteOn(0, 0x3C, 0x64),
        ProgramChange(2, 5),
        ProgramChange(2, 7),
    ]


def test_decode_event_threads_state_explicitly() -> None:
    cursor = Cursor(b"\x00\xB3\x07\x64" + b"\x00\xFF\x03\x00" + b"\x00\x0A\x40")
    state = RunningStatus()

    event, state = decode_event(cursor, state)
    assert event.message == Controller(3, 7, 100)
    assert state == RunningStatus(0xB3)

    event, after_meta = decode_event(cursor, state)
    assert event.is_meta
    assert after_meta is state

    event, state = decode_event(cursor, after_meta)
    assert event.message == Controller(3, 0x0A, 0x40)
    assert event.running_status
    assert cursor.at_end()


def test_data_byte_without_running_status() -> None:
    with pytest.raises(MidiParseError) as exc:
        decode_track_bytes(b"\x00\x40\x00")
    assert exc.value.kind is ParseErrorKind.INVALID_EVENT_BYTE
    assert exc.value.offset == 1
    assert exc.value.location == "track-0"


def test_meta_event_does_not_start_running_status() -> None:
    with pytest.raises(MidiParseError) as exc:
        decode_track_bytes(EOT + b"\x00\x40\x00")
    assert exc.value.kind is ParseErrorKind.INVALID_EVENT_BYTE


@pytest.mark.parametrize("status", [0xF1, 0xF2, 0xF8, 0xFE])
def test_system_common_and_realtime_bytes_are_invalid(status: int) -> None:
    with pytest.raises(MidiParseError) as exc:
        decode_track_bytes(bytes([0x00, status, 0x00]))
    assert exc.value.kind is ParseErrorKind.INVALID_EVENT_BYTE


# ── message payloads ──────────────────────────────────────────────────


def test_one_and_two_byte_channel_payloads() -> None:
    payload = b"\x00\xC5\x07" + b"\x00\xE1\x00\x40" + b"\x00\x82\x3C\x40" + EOT
    track = decode_track_bytes(payload)
    assert _messages(track)[:3] == [
        ProgramChange(5, 7),
        PitchBend(1, 0x00, 0x40),
        NoteOff(2, 0x3C, 0x40),
    ]
    assert track.events[1].message.value == 0


def test_unknown_meta_subtype_is_kept_as_unrecognized() -> None:
    payload = b"\x00\xFF\x7A\x02\x01\x02" + b"\x10\x90\x3C\x64" + EOT
    track = decode_track_bytes(payload)
    assert track.events[0].message == Unrecognized(subtype=0x7A, raw=b"\x01\x02")
    assert track.events[1].message == NoteOn(0, 0x3C, 0x64)


def test_fixed_length_meta_with_wrong_length() -> None:
    with pytest.raises(MidiParseError) as exc:
        decode_track_bytes(b"\x00\xFF\x51\x02\x07\xA1" + EOT)
    assert exc.value.kind is ParseErrorKind.PAYLOAD_LENGTH_MISMATCH
    assert exc.value.offset == 1


def test_channel_status_missing_from_schema() -> None:
    schema = EventSchema(
        channel_lengths={k: v for k, v in DEFAULT_SCHEMA.channel_lengths.items() if k != 0xE},
        meta_types=DEFAULT_SCHEMA.meta_types,
    )
    with pytest.raises(MidiParseError) as exc:
        decode_track_bytes(b"\x00\xE0\x00\x40" + EOT, schema=schema)
    assert exc.value.kind is ParseErrorKind.INVALID_EVENT_BYTE


# ── track boundaries ──────────────────────────────────────────────────


def test_event_running_past_chunk_end() -> None:
    with pytest.raises(MidiParseError) as exc:
        decode_track_bytes(b"\x00\x90\x40")
    assert exc.value.kind is ParseErrorKind.TRACK_LENGTH_MISMATCH


def test_meta_payload_running_past_chunk_end() -> None:
    with pytest.raises(MidiParseError) as exc:
        decode_track_bytes(b"\x00\xFF\x01\x05ab")
    assert exc.value.kind is ParseErrorKind.TRACK_LENGTH_MISMATCH


def test_empty_track() -> None:
    track = decode_track_bytes(b"", index=3)
    assert len(track) == 0
    assert not track.has_end_of_track


def test_missing_end_of_track_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="smf.track"):
        track = decode_track_bytes(b"\x00\x90\x3C\x64", index=2)
    assert not track.has_end_of_track
    assert "track-2: no EndOfTrack" in caplog.text


def test_events_after_end_of_track_are_kept_and_logged(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="smf.track"):
        track = decode_track_bytes(EOT + b"\x00\x90\x3C\x64")
    assert len(track) == 2
    assert "1 event(s) follow EndOfTrack" in caplog.text


def test_track_summary_helpers() -> None:
    track = decode_track_bytes(b"\x00\x90\x3C\x64" + b"\x83\x60\x3C\x00" + b"\x10\xFF\x2F\x00")
    assert track.has_end_of_track
    assert track.duration_ticks == 480 + 0x10
    assert [event.message for event in track.channel_events()] == [
        NoteOn(0, 0x3C, 0x64),
        NoteOn(0, 0x3C, 0),
    ]


# ── re-encoding ───────────────────────────────────────────────────────


def test_payload_bytes_reproduce_running_status() -> None:
    payload = (
        b"\x00\x90\x3C\x64"
        + b"\x60\x3C\x00"
        + b"\x00\xFF\x03\x04lead"
        + b"\x00\x40\x64"
        + b"\x60\x90\x40\x00"
        + EOT
    )
    track = decode_track_bytes(payload)
    assert track.payload_bytes() == payload
    assert track.to_bytes() == b"MTrk" + len(payload).to_bytes(4, "big") + payload


def test_non_canonical_delta_time_round_trips() -> None:
    payload = b"\x80\x00\x90\x3C\x64" + EOT
    track = decode_track_bytes(payload)
    assert track.events[0].delta == DeltaTime(0, 2)
    assert track.payload_bytes() == payload


def test_padded_meta_length_round_trips() -> None:
    payload = b"\x00\xFF\x01\x80\x02hi" + EOT
    track = decode_track_bytes(payload)
    assert track.events[0].message == Text(raw=b"hi")
    assert track.events[0].length_size == 2
    assert track.events[1].length_size == 1
    assert track.payload_bytes() == payload


def test_padded_sysex_length_round_trips() -> None:
    payload = b"\x00\xF0\x80\x01\xF7" + EOT
    track = decode_track_bytes(payload)
    assert track.events[0].message == SysMessage(status=0xF0, raw=b"\xF7")
    assert track.events[0].length_size == 2
    assert track.payload_bytes() == payload


def test_running_status_flag_is_ignored_when_status_differs() -> None:
    event = Event(DeltaTime(0), NoteOn(0, 60, 100), running_status=True)
    assert event.to_bytes(previous_status=0x91) == b"\x00\x90\x3C\x64"
    assert event.to_bytes(previous_status=0x90) == b"\x00\x3C\x64"


def test_delta_time_defaults_to_canonical_length() -> None:
    assert DeltaTime(480).length == 2
    assert DeltaTime(480).to_bytes() == b"\x83\x60"
    with pytest.raises(ValueError):
        DeltaTime(-1)
