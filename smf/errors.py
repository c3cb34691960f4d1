from __future__ import annotations

from enum import Enum


class ParseErrorKind(str, Enum):
    """Categories of structural failure raised while decoding a file."""

    END_OF_BUFFER = "EndOfBuffer"
    INVALID_HEADER_TAG = "InvalidHeaderTag"
    INVALID_HEADER_LENGTH = "InvalidHeaderLength"
    INVALID_FORMAT_FIELD = "InvalidFormatField"
    INVALID_SMPTE_FRAME_RATE = "InvalidSMPTEFrameRate"
    INVALID_CHUNK_TAG = "InvalidChunkTag"
    INVALID_EVENT_BYTE = "InvalidEventByte"
    PAYLOAD_LENGTH_MISMATCH = "PayloadLengthMismatch"
    TRACK_LENGTH_MISMATCH = "TrackLengthMismatch"
    MISSING_TEMPO_MAP = "MissingTempoMap"


class MidiParseError(ValueError):
    """Raised when the byte stream violates the SMF container format.

    ``offset`` is the absolute byte offset in the input buffer where the
    problem was detected and ``location`` names the part of the file being
    decoded (``header``, ``chunks``, ``track-0`` ...).
    """

    def __init__(
        self,
        kind: ParseErrorKind,
        detail: str,
        *,
        offset: int = 0,
        location: str = "midi",
    ) -> None:
        self.kind = kind
        self.detail = detail
        self.offset = offset
        self.location = location
        super().__init__(f"{kind.value} at {location}+0x{offset:X}: {detail}")
