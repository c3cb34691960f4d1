from __future__ import annotations

from dataclasses import dataclass
from typing import List

from .cursor import Cursor
from .errors import ParseErrorKind


TRACK_TAG = b"MTrk"
CHUNK_HEADER_SIZE = 8  # 4-byte tag + u32 BE length


@dataclass(frozen=True)
class Chunk:
    """A tagged, length-prefixed region of the file."""

    tag: bytes
    offset: int  # position of the tag within the file
    length: int  # declared payload length

    @property
    def start(self) -> int:
        """Offset of the first payload byte."""

        return self.offset + CHUNK_HEADER_SIZE

    @property
    def end(self) -> int:
        """Offset one past the last payload byte."""

        return self.start + self.length

    @property
    def is_track(self) -> bool:
        return self.tag == TRACK_TAG


def read_chunk(cursor: Cursor) -> Chunk:
    """Read one chunk header and skip over its payload."""

    offset = cursor.tell()
    tag = cursor.read(4)
    length = cursor.read_u32()
    if tag != TRACK_TAG:
        raise cursor.error(
            ParseErrorKind.INVALID_CHUNK_TAG,
            f"expected {TRACK_TAG!r}, found {tag!r}",
            offset=offset,
        )
    chunk = Chunk(tag=tag, offset=offset, length=length)
    if chunk.end > cursor.end:
        raise cursor.error(
            ParseErrorKind.END_OF_BUFFER,
            f"chunk declares {length} byte(s) but only {cursor.end - chunk.start} remain",
            offset=offset,
        )
    cursor.skip(length)
    return chunk


def scan_chunks(cursor: Cursor) -> List[Chunk]:
    """Walk ``MTrk`` chunks from the cursor position to the end of the buffer.

    Unknown top-level chunk tags are rejected rather than skipped.
    """
    chunks: List[Chunk] = []
    while not cursor.at_end():
        chunks.append(read_chunk(cursor))
    return chunks
