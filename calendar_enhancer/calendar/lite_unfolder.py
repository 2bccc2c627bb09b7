"""RFC 5545 line unfolding and folding over an arbitrary byte stream.

Bytes arrive in chunks that need not align with characters or lines. The
unfolder decodes them incrementally, rebuilds logical (unfolded) lines, hands
each one to a rewriter and re-folds whatever the rewriter returns at 75 octets.
It has no knowledge of calendar semantics beyond the folding rule.
"""

import codecs
import re
from collections.abc import Callable
from typing import Protocol

MAX_LINE_OCTETS = 75
FOLD_SEPARATOR = "\r\n "
LINE_TERMINATOR = "\r\n"

DEFAULT_STREAM_DECODE_ERRORS = "replace"

_FOLD_PATTERN = re.compile(r"\r?\n[ \t]")


class LineRewriter(Protocol):
    """Anything that maps one logical line to zero or more output lines."""

    def process_line(self, line: str) -> list[str]: ...


Emit = Callable[[bytes], None]


def fold_line(line: str) -> str:
    """Fold a logical line so no physical line exceeds 75 octets.

    Cuts are placed on character boundaries only; each continuation line
    starts with a single space which counts towards its 75 octets.
    """
    if len(line.encode("utf-8")) <= MAX_LINE_OCTETS:
        return line

    physical: list[str] = []
    current: list[str] = []
    current_bytes = 0

    for char in line:
        char_bytes = len(char.encode("utf-8"))
        if current_bytes + char_bytes > MAX_LINE_OCTETS:
            physical.append("".join(current))
            current = [char]
            current_bytes = char_bytes + 1  # leading space of the continuation
        else:
            current.append(char)
            current_bytes += char_bytes

    physical.append("".join(current))
    return FOLD_SEPARATOR.join(physical)


def unfold_text(text: str) -> str:
    """Remove every fold (line break followed by one space or tab)."""
    return _FOLD_PATTERN.sub("", text)


class ICSLineUnfolder:
    """Streaming unfolder/folder for one calendar stream.

    Exposes exactly two operations: ``process_chunk`` for each upstream chunk
    in order, and ``flush`` once at end of stream. One instance per stream.
    """

    def __init__(self, decode_errors: str = DEFAULT_STREAM_DECODE_ERRORS) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors=decode_errors)
        self._buffer = ""
        self._flushed = False

    @property
    def pending_text(self) -> str:
        """Decoded text not yet consumed as a complete logical line."""
        return self._buffer

    def process_chunk(self, chunk: bytes, emit: Emit, rewriter: LineRewriter) -> None:
        """Decode ``chunk``, then emit every logical line that is now complete."""
        if not chunk:
            return
        if self._flushed:
            raise RuntimeError("process_chunk() called after flush()")

        self._buffer += self._decoder.decode(chunk, final=False)
        self._drain(emit, rewriter, final=False)

    def flush(self, emit: Emit, rewriter: LineRewriter) -> None:
        """Finish the stream: decode the tail and process the residual line."""
        if self._flushed:
            return
        self._flushed = True

        self._buffer += self._decoder.decode(b"", final=True)
        self._drain(emit, rewriter, final=True)

        if self._buffer:
            residual, self._buffer = self._buffer, ""
            self._emit_lines(rewriter.process_line(residual), emit)

    def _drain(self, emit: Emit, rewriter: LineRewriter, final: bool) -> None:
        cursor = 0
        while True:
            eol = self._buffer.find("\n", cursor)
            if eol == -1:
                break

            line_end = eol - 1 if eol > 0 and self._buffer[eol - 1] == "\r" else eol
            has_next = eol + 1 < len(self._buffer)

            if not has_next and not final:
                # A fold may still follow in the next chunk.
                break

            if has_next and self._buffer[eol + 1] in " \t":
                self._buffer = self._buffer[:line_end] + self._buffer[eol + 2 :]
                cursor = line_end
                continue

            line = self._buffer[:line_end]
            self._buffer = self._buffer[eol + 1 :]
            cursor = 0
            self._emit_lines(rewriter.process_line(line), emit)

    @staticmethod
    def _emit_lines(lines: list[str], emit: Emit) -> None:
        for line in lines:
            emit((fold_line(line) + LINE_TERMINATOR).encode("utf-8"))
