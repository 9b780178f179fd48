from __future__ import annotations

import re
from pathlib import Path

from shiplane.core.result import Err, Ok, Result
from shiplane.lanes.errors import LaneError

_HEADING_LINE_RE = re.compile(r"^(#{1,6})[ \t]+(.*?)[ \t]*$")
_LINK_REF_RE = re.compile(r"^\[[^\]\n]+\]:[ \t]*\S")

# `[Feature: ` or `[Fix] ` in front of an entry.
_TAG_PREFIX_RE = re.compile(r"\[[^\]\n]*?[:\]][ \t]*")
# ` - does Y.` after an entry title; the period must end the phrase.
_DASH_SUFFIX_RE = re.compile(r"(?<=\S)[ \t]+-[ \t]+[^\n]*?\.(?=[ \t]|$)", re.MULTILINE)
# `###` standing alone as a token (never `#123`).
_HEADING_MARK_RE = re.compile(r"(?:(?<=[ \t])|^)#{1,6}(?=[ \t]|$)[ \t]*", re.MULTILINE)


def _heading_identifier(title: str) -> str:
    """`[1.2.0] - 2024-05-01` and `v1.2.0` both identify `1.2.0`."""
    ident = title.split(" - ", 1)[0].strip()
    ident = ident.strip("[]").strip()
    if ident[:1] in {"v", "V"} and ident[1:2].isdigit():
        ident = ident[1:]
    return ident


def _normalize_version(version: str) -> str:
    return _heading_identifier(version.strip())


def extract_section(text: str, version: str) -> str | None:
    """Return the body under the heading for ``version``.

    The section runs until the next heading of the same or a higher level, or
    until the link reference block that closes a Keep a Changelog file.
    Returns None when no heading matches.
    """
    wanted = _normalize_version(version)
    lines = text.splitlines()

    start: int | None = None
    level = 0
    for i, line in enumerate(lines):
        m = _HEADING_LINE_RE.match(line)
        if m is None:
            continue
        if _heading_identifier(m.group(2)) == wanted:
            start = i + 1
            level = len(m.group(1))
            break

    if start is None:
        return None

    body: list[str] = []
    for line in lines[start:]:
        m = _HEADING_LINE_RE.match(line)
        if m is not None and len(m.group(1)) <= level:
            break
        if _LINK_REF_RE.match(line):
            break
        body.append(line)

    return "\n".join(body).strip()


def read_changelog_section(path: Path, version: str) -> Result[str, LaneError]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        return Err(
            LaneError(
                kind="io_failed",
                message=f"failed to read changelog: {e}",
                hint=str(path),
            )
        )

    section = extract_section(text, version)
    if section is None:
        return Err(
            LaneError(
                kind="invalid_input",
                message=f"no changelog section for {version}",
                hint=f"add a '## [{_normalize_version(version)}]' heading to {path.name}",
            )
        )
    if not section:
        return Err(
            LaneError(
                kind="invalid_input",
                message=f"changelog section for {version} is empty",
                hint=str(path),
            )
        )
    return Ok(section)


def strip_markdown(text: str) -> str:
    """Reduce a changelog section to plain text for chat and testers.

    Applies, in order: tag prefix removal, dash-description removal and
    heading marker removal, then trims every line and the whole blob.
    Running it on its own output changes nothing.
    """
    out = _TAG_PREFIX_RE.sub("", text)
    out = _DASH_SUFFIX_RE.sub("", out)
    out = _HEADING_MARK_RE.sub("", out)
    return "\n".join(line.rstrip() for line in out.splitlines()).strip()


def read_whats_new(path: Path) -> Result[str, LaneError]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        return Err(
            LaneError(
                kind="io_failed",
                message=f"failed to read what's new notes: {e}",
                hint=str(path),
            )
        )

    if not text.strip():
        return Err(
            LaneError(
                kind="invalid_input",
                message="what's new notes are empty",
                hint=str(path),
            )
        )
    return Ok(text.strip())
