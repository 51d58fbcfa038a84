"""Parse caption-track transcripts into time-ranged cues.

Track format (header, then blocks separated by blank lines):

    WEBVTT
    Kind: captions

    1
    00:00:01.000 --> 00:00:04.500
    Good morning, and welcome to the
    city library tour.

    00:04.500 --> 00:09.000 align:start
    Today we will visit the reading rooms.

Each block starts with a ``start --> end`` timecode line; the non-blank
lines that follow, up to the next blank line, are the cue text. Timestamps
are ``HH:MM:SS.mmm`` or ``MM:SS.mmm``; a bare number of seconds is accepted
as a fallback.

Architecture note:
    Transcripts are third-party uploads, so parsing is best-effort and never
    raises. A malformed timestamp becomes ``0`` and a block without text is
    dropped. Anything before the first timecode line (headers, NOTE blocks,
    cue identifiers) is skipped.
"""

from __future__ import annotations

import logging

from practice_app.core.models import Cue

logger = logging.getLogger(__name__)

_TIMECODE_ARROW = "-->"
_BYTE_ORDER_MARK = "\ufeff"


def parse_cues(text: str | None) -> list[Cue]:
    """Return the cues of a caption track in source order."""
    if not text:
        return []

    cues: list[Cue] = []
    timecode: tuple[float, float] | None = None
    text_lines: list[str] = []

    for raw_line in text.lstrip(_BYTE_ORDER_MARK).splitlines():
        line = raw_line.strip()
        if _is_timecode_line(line):
            if timecode is not None:
                _append_cue(cues, timecode, text_lines)
            timecode = _parse_timecode_line(line)
            text_lines = []
            continue
        if timecode is None:
            continue
        if not line:
            _append_cue(cues, timecode, text_lines)
            timecode = None
            text_lines = []
            continue
        text_lines.append(line)

    if timecode is not None:
        _append_cue(cues, timecode, text_lines)

    logger.debug("Parsed %d transcript cue(s)", len(cues))
    return cues


def parse_timestamp(value: str) -> float:
    """Convert ``HH:MM:SS.mmm``, ``MM:SS.mmm`` or bare seconds to seconds.

    Malformed values yield ``0.0``.
    """
    cleaned = value.strip().replace(",", ".")
    if not cleaned:
        return 0.0
    parts = cleaned.split(":")
    if len(parts) > 3:
        return 0.0
    try:
        numbers = [float(part) for part in parts]
    except ValueError:
        return 0.0
    if any(number < 0 for number in numbers):
        return 0.0

    seconds = 0.0
    for number in numbers:
        seconds = seconds * 60 + number
    return seconds


def _is_timecode_line(line: str) -> bool:
    return _TIMECODE_ARROW in line


def _parse_timecode_line(line: str) -> tuple[float, float]:
    start_text, _, end_text = line.partition(_TIMECODE_ARROW)
    # Cue settings such as "align:start" may follow the end timestamp.
    end_tokens = end_text.split()
    start = parse_timestamp(start_text)
    end = parse_timestamp(end_tokens[0]) if end_tokens else 0.0
    return start, end


def _append_cue(cues: list[Cue], timecode: tuple[float, float], text_lines: list[str]) -> None:
    if not text_lines:
        return
    start, end = timecode
    if end <= start:
        logger.debug("Dropping cue with empty time range %.3f --> %.3f", start, end)
        return
    cues.append(Cue(start=start, end=end, text=" ".join(text_lines)))
