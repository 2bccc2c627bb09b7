"""Per-event rewriting state machine - calendar_enhancer.

Lines outside events pass through untouched. Lines of a VEVENT are buffered
until END:VEVENT and then replaced by a rewritten event: normalized SUMMARY,
geocoded LOCATION plus Apple structured location, regenerated DESCRIPTION and
only the allowlisted properties of the original. Everything else in the event
is dropped; the allowlist is the privacy boundary.
"""

import logging
import re
from enum import Enum
from typing import Optional

from .location_resolver import resolve_location
from .lite_models import ResolvedLocation

logger = logging.getLogger(__name__)

ALLOWED_PROPERTIES = frozenset(
    {
        "DTSTART",
        "DTEND",
        "DTSTAMP",
        "UID",
        "RRULE",
        "EXDATE",
        "STATUS",
        "TRANSP",
        "SEQUENCE",
        "RECURRENCE-ID",
        "CLASS",
        "CREATED",
        "LAST-MODIFIED",
    }
)

BEGIN_EVENT = "BEGIN:VEVENT"
END_EVENT = "END:VEVENT"

COURSE_ID_DEFAULT = "N/A"
APPLE_RADIUS_METERS = 50
DESCRIPTION_RULE = "--------------------------"

# Common emoji blocks, plus the variation selector and zero-width joiner they leave behind.
EMOJI_PATTERN = re.compile(
    "["
    "\U0001F600-\U0001F64F"
    "\U0001F300-\U0001F5FF"
    "\U0001F680-\U0001F6FF"
    "\U0001F1E0-\U0001F1FF"
    "\u2700-\u27BF"
    "\U0001F900-\U0001F9FF"
    "\uFE0F\u200D"
    "]"
)
COURSE_ID_PATTERN = re.compile(r"k_[A-Z0-9_]+", re.IGNORECASE)
COURSE_PREFIX_PATTERN = re.compile(r"^k_[A-Z0-9_]+\s*-?\s*", re.IGNORECASE)

_TEXT_UNESCAPES = {"\\": "\\", ",": ",", ";": ";", "n": "\n", "N": "\n"}


class EnhancerState(Enum):
    """States of the per-event rewriting machine."""

    OUTSIDE = "outside"
    INSIDE_EVENT = "inside_event"


def split_content_line(line: str) -> tuple[str, str]:
    """Split a content line into (upper-cased property name, value).

    The value starts after the first colon that is not inside a quoted
    parameter value. Lines without a colon have an empty value.
    """
    in_quotes = False
    name_end: Optional[int] = None
    for index, char in enumerate(line):
        if char == '"':
            in_quotes = not in_quotes
        elif not in_quotes:
            if char == ";" and name_end is None:
                name_end = index
            elif char == ":":
                name = line[: name_end if name_end is not None else index]
                return name.strip().upper(), line[index + 1 :]
    return "", ""


def remove_emojis(text: str) -> str:
    return EMOJI_PATTERN.sub("", text)


def normalize_title(summary: str) -> str:
    """Strip emoji and the course-code prefix, then drop repeated words."""
    clean = remove_emojis(summary).strip()
    clean = COURSE_PREFIX_PATTERN.sub("", clean).strip()
    # dict preserves first-occurrence order
    return " ".join(dict.fromkeys(clean.split()))


def extract_course_id(summary: str) -> str:
    match = COURSE_ID_PATTERN.search(summary)
    return match.group(0) if match else COURSE_ID_DEFAULT


def unescape_text(value: str) -> str:
    """Undo RFC 5545 TEXT escaping (backslash, comma, semicolon, newline)."""
    out: list[str] = []
    chars = iter(value)
    for char in chars:
        if char == "\\":
            following = next(chars, "")
            out.append(_TEXT_UNESCAPES.get(following, "\\" + following))
        else:
            out.append(char)
    return "".join(out)


def escape_text(value: str) -> str:
    """Apply RFC 5545 TEXT escaping."""
    return (
        value.replace("\\", "\\\\")
        .replace(",", "\\,")
        .replace(";", "\\;")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def _param_value(value: str) -> str:
    # Quoted parameter values may not contain DQUOTE or control characters.
    return " ".join(value.replace('"', "").split())


def build_location_label(location: ResolvedLocation, raw_location: str) -> str:
    """Human-facing title for a resolved location, e.g. '1.03 - CUBE'."""
    if location.is_online:
        return "Online"

    room_or_raw = location.room or raw_location
    if location.key == "CUBE":
        room_number = re.sub("CUBE", "", room_or_raw, flags=re.IGNORECASE).strip()
        return f"{room_number} - CUBE" if room_number else "CUBE"

    return f"{room_or_raw} - {location.name}"


class ICSEventEnhancer:
    """Line-by-line VEVENT rewriter for one calendar stream."""

    def __init__(self) -> None:
        self.state = EnhancerState.OUTSIDE
        self._event_lines: list[str] = []
        self.events_rewritten = 0
        self.events_discarded = 0

    @property
    def has_open_event(self) -> bool:
        return self.state is EnhancerState.INSIDE_EVENT

    def discard_open_event(self) -> None:
        """Drop an event whose END:VEVENT never arrived."""
        if self.has_open_event:
            self.events_discarded += 1
            logger.warning(
                "Discarding unterminated VEVENT (%d buffered lines)", len(self._event_lines)
            )
        self._event_lines = []
        self.state = EnhancerState.OUTSIDE

    def process_line(self, line: str) -> list[str]:
        """Feed one logical line; return the lines to emit now."""
        marker = line.strip().upper()

        if self.state is EnhancerState.OUTSIDE:
            if marker == BEGIN_EVENT:
                self.state = EnhancerState.INSIDE_EVENT
                self._event_lines = [line]
                return []
            return [line]

        if marker == END_EVENT:
            lines, self._event_lines = self._event_lines, []
            self.state = EnhancerState.OUTSIDE
            event = self.enhance_event(lines)
            event.append(line)
            self.events_rewritten += 1
            return event

        if marker == BEGIN_EVENT:
            self.discard_open_event()
            self.state = EnhancerState.INSIDE_EVENT
            self._event_lines = [line]
            return []

        self._event_lines.append(line)
        return []

    def enhance_event(self, lines: list[str]) -> list[str]:
        """Rewrite the buffered lines of one event (without END:VEVENT)."""
        summary = ""
        course_id = COURSE_ID_DEFAULT
        location_raw = ""
        safe_lines: list[str] = []

        for line in lines:
            name, value = split_content_line(line)
            if name == "SUMMARY":
                course_id = extract_course_id(value)
                summary = normalize_title(value)
            elif name == "LOCATION":
                location_raw = value
            elif name in ("BEGIN", "DESCRIPTION"):
                continue
            elif name in ALLOWED_PROPERTIES:
                safe_lines.append(line)

        location_text = unescape_text(location_raw).strip()
        location = resolve_location(location_text)
        label = build_location_label(location, location_text)

        event = [BEGIN_EVENT, f"SUMMARY:{summary}"]

        if location.is_online:
            event.append("LOCATION:Online")
        else:
            event.append(f"LOCATION:{escape_text(label)}\\, {escape_text(location.address)}")

        event.append(
            "X-APPLE-STRUCTURED-LOCATION;VALUE=URI;"
            f'X-ADDRESS="{_param_value(location.address)}";'
            f"X-APPLE-RADIUS={APPLE_RADIUS_METERS};"
            f'X-TITLE="{_param_value(label)}";'
            f"X-APPLE-REFERENCEFRAME=1:geo:{location.coordinates}"
        )

        description = [f"🆔 Course ID: {course_id}"]
        if location.note:
            description.append(escape_text(location.note))
        description.append(DESCRIPTION_RULE)
        description.append(f"🗺️ Original: {location_raw}")
        event.append("DESCRIPTION:" + "\\n".join(description))

        event.extend(safe_lines)
        return event
