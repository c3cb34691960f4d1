"""Bounded read cursor shared by the header, chunk and track decoders."""

from __future__ import annotations

from typing import Tuple

from .errors import MidiParseError, ParseErrorKind
from .vlq import read_vlq


class Cursor:
    """Reads an immutable buffer between ``start`` and ``end``.

    Every read is checked against ``end`` before the position moves; an
    overrun raises :class:`MidiParseError` with ``overrun_kind`` so a track
    cursor can report a chunk length mismatch while the top-level cursor
    reports a truncated buffer.
    """

    __slots__ = ("_data", "name", "start", "end", "_pos", "overrun_kind")

    def __init__(
        self,
        data: bytes,
        *,
        name: str = "midi",
        start: int = 0,
        end: int | None = None,
        overrun_kind: ParseErrorKind = ParseErrorKind.END_OF_BUFFER,
    ) -> None:
        self._data = data
        self.name = name
        self.start = start
        self.end = len(data) if end is None else min(end, len(data))
        self._pos = start
        self.overrun_kind = overrun_kind

    @property
    def data(self) -> bytes:
        return self._data

    @property
    def remaining(self) -> int:
        return self.end - self._pos

    def tell(self) -> int:
        return self._pos

    def at_end(self) -> bool:
        return self._pos >= self.end

    def error(self, kind: ParseErrorKind, detail: str, *, offset: int | None = None) -> MidiParseError:
        return MidiParseError(
            kind,
            detail,
            offset=self._pos if offset is None else offset,
            location=self.name,
        )

    def require(self, size: int) -> None:
        if size < 0:
            raise ValueError("size must be non-negative")
        if self.remaining < size:
            raise self.error(
                self.overrun_kind,
                f"need {size} byte(s), {max(self.remaining, 0)} left before 0x{self.end:X}",
            )

    def read(self, size: int) -> bytes:
        self.require(size)
        start = self._pos
        self._pos += size
        return bytes(self._data[start : self._pos])

    def read_byte(self) -> int:
        self.require(1)
        byte = self._data[self._pos]
        self._pos += 1
        return byte

    def peek_byte(self) -> int:
        self.require(1)
        return self._data[self._pos]

    def skip(self, size: int) -> None:
        self.require(size)
        self._pos += size

    def read_u16(self) -> int:
        return int.from_bytes(self.read(2), "big", signed=False)

    def read_u32(self) -> int:
        return int.from_bytes(self.read(4), "big", signed=False)

    def read_vlq(self) -> Tuple[int, int]:
        """Read a variable-length quantity; returns ``(value, length)``."""

        return read_vlq(self.read_byte, offset=self._pos, location=self.name)
