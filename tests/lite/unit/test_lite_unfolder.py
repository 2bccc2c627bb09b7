"""
Unit tests for calendar_enhancer.calendar.lite_unfolder

Covers:
- folding at 75 octets on character boundaries
- unfolding of CRLF/LF followed by space or tab
- chunk-boundary independence (splits inside UTF-8 sequences and folds)
- flush of the unterminated last line
"""

import pytest

from calendar_enhancer.calendar.lite_unfolder import (
    MAX_LINE_OCTETS,
    ICSLineUnfolder,
    fold_line,
    unfold_text,
)

pytestmark = [pytest.mark.unit, pytest.mark.fast]


class RecordingRewriter:
    """Pass-through rewriter that remembers every logical line it saw."""

    def __init__(self) -> None:
        self.lines: list[str] = []

    def process_line(self, line: str) -> list[str]:
        self.lines.append(line)
        return [line]


def _feed(data: bytes, chunk_size: int) -> tuple[list[str], bytes]:
    unfolder = ICSLineUnfolder()
    rewriter = RecordingRewriter()
    output: list[bytes] = []
    for start in range(0, len(data), chunk_size):
        unfolder.process_chunk(data[start : start + chunk_size], output.append, rewriter)
    unfolder.flush(output.append, rewriter)
    return rewriter.lines, b"".join(output)


FOLDED_INPUT = (
    "BEGIN:VCALENDAR\r\n"
    "SUMMARY:Grundlagen der Datenbanken und Informationssysteme für Wirtschaftsinf\r\n"
    " ormatiker – Übung\r\n"
    "DESCRIPTION:tab\r\n\tfolded\n and lf folded\r\n"
    "LOCATION:Café Ümlaut 1.03\r\n"
    "END:VCALENDAR\r\n"
).encode("utf-8")

EXPECTED_LINES = [
    "BEGIN:VCALENDAR",
    "SUMMARY:Grundlagen der Datenbanken und Informationssysteme für Wirtschaftsinformatiker – Übung",
    "DESCRIPTION:tabfoldedand lf folded",
    "LOCATION:Café Ümlaut 1.03",
    "END:VCALENDAR",
]


def test_fold_line_when_line_fits_then_unchanged() -> None:
    line = "X" * MAX_LINE_OCTETS
    assert fold_line(line) == line


def test_fold_line_when_76_ascii_bytes_then_splits_after_75() -> None:
    line = "DESCRIPTION:" + "a" * 64
    assert len(line.encode("utf-8")) == 76

    folded = fold_line(line)

    first, second = folded.split("\r\n")
    assert len(first.encode("utf-8")) == 75
    assert second == " a"


def test_fold_line_when_multibyte_then_never_splits_a_character() -> None:
    line = "SUMMARY:" + "ü" * 60 + "€" * 20 + "😀" * 10

    folded = fold_line(line)

    for physical in folded.split("\r\n"):
        encoded = physical.encode("utf-8")
        assert len(encoded) <= MAX_LINE_OCTETS
        encoded.decode("utf-8")  # would raise on a split sequence
    assert unfold_text(folded) == line


def test_fold_line_when_continuation_then_starts_with_single_space() -> None:
    folded = fold_line("X" * 200)

    continuations = folded.split("\r\n")[1:]
    assert continuations
    for physical in continuations:
        assert physical.startswith(" ")
        assert not physical.startswith("  ")


@pytest.mark.parametrize(
    "line",
    [
        "SUMMARY:short",
        "DESCRIPTION:" + "word " * 40,
        "LOCATION:" + "Thiemannstraße " * 8,
        "X-NOTE:  leading spaces survive folding " + " " * 80,
    ],
)
def test_fold_unfold_fold_is_idempotent(line: str) -> None:
    once = fold_line(line)
    assert fold_line(unfold_text(once)) == once
    assert unfold_text(once) == line


def test_unfold_text_when_crlf_lf_space_and_tab_then_all_removed() -> None:
    assert unfold_text("A\r\n B\n\tC\r\n\tD") == "ABCD"


def test_unfolder_when_whole_input_then_logical_lines_restored() -> None:
    lines, _ = _feed(FOLDED_INPUT, len(FOLDED_INPUT))
    assert lines == EXPECTED_LINES


@pytest.mark.parametrize("chunk_size", [1, 2, 3, 5, 7, 13, 64, 4096])
def test_unfolder_when_chunk_size_varies_then_output_identical(chunk_size: int) -> None:
    expected_lines, expected_output = _feed(FOLDED_INPUT, len(FOLDED_INPUT))

    lines, output = _feed(FOLDED_INPUT, chunk_size)

    assert lines == expected_lines
    assert output == expected_output


def test_unfolder_when_split_at_every_offset_then_output_identical() -> None:
    """Two-chunk splits cover cuts inside UTF-8 sequences, CRLF and fold whitespace."""
    expected_lines, expected_output = _feed(FOLDED_INPUT, len(FOLDED_INPUT))

    for offset in range(1, len(FOLDED_INPUT)):
        unfolder = ICSLineUnfolder()
        rewriter = RecordingRewriter()
        output: list[bytes] = []
        unfolder.process_chunk(FOLDED_INPUT[:offset], output.append, rewriter)
        unfolder.process_chunk(FOLDED_INPUT[offset:], output.append, rewriter)
        unfolder.flush(output.append, rewriter)

        assert rewriter.lines == expected_lines, f"split at byte {offset}"
        assert b"".join(output) == expected_output, f"split at byte {offset}"


def test_unfolder_when_fold_arrives_in_next_chunk_then_line_not_emitted_early() -> None:
    unfolder = ICSLineUnfolder()
    rewriter = RecordingRewriter()
    output: list[bytes] = []

    unfolder.process_chunk(b"SUMMARY:Hello\r\n", output.append, rewriter)
    assert rewriter.lines == []
    assert unfolder.pending_text == "SUMMARY:Hello\r\n"

    unfolder.process_chunk(b" World\r\nEND", output.append, rewriter)
    assert rewriter.lines == ["SUMMARY:HelloWorld"]


def test_unfolder_when_no_trailing_newline_then_flush_emits_residual() -> None:
    lines, output = _feed(b"BEGIN:VCALENDAR\r\nEND:VCALENDAR", 4)

    assert lines == ["BEGIN:VCALENDAR", "END:VCALENDAR"]
    assert output == b"BEGIN:VCALENDAR\r\nEND:VCALENDAR\r\n"


def test_unfolder_when_input_ends_with_crlf_then_no_blank_trailing_line() -> None:
    _, output = _feed(b"BEGIN:VCALENDAR\r\nEND:VCALENDAR\r\n", 3)
    assert output == b"BEGIN:VCALENDAR\r\nEND:VCALENDAR\r\n"


def test_unfolder_when_lf_only_input_then_output_uses_crlf() -> None:
    _, output = _feed(b"BEGIN:VCALENDAR\nVERSION:2.0\nEND:VCALENDAR\n", 5)
    assert output == b"BEGIN:VCALENDAR\r\nVERSION:2.0\r\nEND:VCALENDAR\r\n"


def test_unfolder_when_invalid_utf8_then_replacement_character() -> None:
    lines, _ = _feed(b"SUMMARY:bad \xff byte\r\n", 1)
    assert lines == ["SUMMARY:bad \ufffd byte"]


def test_unfolder_when_multibyte_char_truncated_at_end_then_replaced_on_flush() -> None:
    lines, _ = _feed("SUMMARY:ü".encode("utf-8")[:-1], 2)
    assert lines == ["SUMMARY:\ufffd"]


def test_unfolder_when_strict_decoding_then_invalid_bytes_raise() -> None:
    unfolder = ICSLineUnfolder(decode_errors="strict")
    with pytest.raises(UnicodeDecodeError):
        unfolder.process_chunk(b"SUMMARY:\xff\r\n", lambda _b: None, RecordingRewriter())


def test_unfolder_when_empty_chunk_then_no_op() -> None:
    unfolder = ICSLineUnfolder()
    rewriter = RecordingRewriter()
    output: list[bytes] = []

    unfolder.process_chunk(b"", output.append, rewriter)

    assert output == []
    assert rewriter.lines == []
    assert unfolder.pending_text == ""


def test_unfolder_when_chunk_after_flush_then_runtime_error() -> None:
    unfolder = ICSLineUnfolder()
    rewriter = RecordingRewriter()
    unfolder.flush(lambda _b: None, rewriter)

    with pytest.raises(RuntimeError):
        unfolder.process_chunk(b"X\r\n", lambda _b: None, rewriter)


def test_unfolder_when_rewriter_returns_long_line_then_output_folded() -> None:
    class Expanding:
        def process_line(self, line: str) -> list[str]:
            return [line + "-" + "ä" * 50]

    unfolder = ICSLineUnfolder()
    output: list[bytes] = []
    unfolder.process_chunk(b"SUMMARY:x\r\n", output.append, Expanding())
    unfolder.flush(output.append, Expanding())

    physical = b"".join(output).split(b"\r\n")
    assert physical[-1] == b""
    assert all(len(p) <= MAX_LINE_OCTETS for p in physical)
    assert physical[1].startswith(b" ")


def test_unfolder_when_rewriter_drops_line_then_nothing_emitted() -> None:
    class Dropping:
        def process_line(self, line: str) -> list[str]:
            return []

    unfolder = ICSLineUnfolder()
    output: list[bytes] = []
    unfolder.process_chunk(b"A\r\nB\r\n", output.append, Dropping())
    unfolder.flush(output.append, Dropping())

    assert output == []
