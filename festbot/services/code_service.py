"""
Public codes for participants and teams.

A code is ``<tag><cohort>-<digits>``: the tag says what the code refers to,
the cohort marks the fest edition and the digits are the internal id
zero-padded to five places, e.g. team 1 → ``T23-00001``.  Ids past 99999 are
written without padding and never with a leading zero, so every id has
exactly one code.

Codes are typed in by people (join-a-team), so ``decode`` checks the whole
shape before touching ``int()``.
"""
from __future__ import annotations

import re
from typing import Optional, Tuple

from festbot.config import settings
from festbot.errors import InvalidFormat


class CodeKind:
    TEAM        = "T"
    PARTICIPANT = "P"

    ALL = (TEAM, PARTICIPANT)


PAD_WIDTH = 5
# Ids are stored in 32-bit integer columns
MAX_ID = 2**31 - 1

_CODE_RE = re.compile(
    r"^([A-Z])(\d+)-(\d{%d,%d})$" % (PAD_WIDTH, len(str(MAX_ID))), re.ASCII
)


def encode(kind: str, numeric_id: int, cohort: Optional[str] = None) -> str:
    if kind not in CodeKind.ALL:
        raise ValueError(f"Unknown code kind: {kind!r}")
    if isinstance(numeric_id, bool) or not isinstance(numeric_id, int) or numeric_id < 0:
        raise ValueError(f"Code ids must be non-negative integers, got {numeric_id!r}")
    if numeric_id > MAX_ID:
        raise ValueError(f"Code id out of range: {numeric_id!r}")
    cohort = cohort or settings.CODE_COHORT
    return f"{kind}{cohort}-{numeric_id:0{PAD_WIDTH}d}"


def parse(code: str, cohort: Optional[str] = None) -> Tuple[str, int]:
    """Split a code into (kind, id). Raises InvalidFormat on any shape mismatch."""
    if not isinstance(code, str):
        raise InvalidFormat("Code must be text.")
    normalized = code.strip().upper()
    match = _CODE_RE.match(normalized)
    if not match:
        raise InvalidFormat(f"Malformed code: {code!r}")

    kind, code_cohort, digits = match.groups()
    if kind not in CodeKind.ALL:
        raise InvalidFormat(f"Unknown code prefix: {kind!r}")
    if code_cohort != (cohort or settings.CODE_COHORT):
        raise InvalidFormat(f"Code {code!r} belongs to another cohort.")
    # Wider-than-padding ids carry no leading zeros
    if len(digits) > PAD_WIDTH and digits[0] == "0":
        raise InvalidFormat(f"Non-canonical code: {code!r}")
    numeric_id = int(digits)
    if numeric_id > MAX_ID:
        raise InvalidFormat(f"Code {code!r} is out of range.")
    return kind, numeric_id


def decode(code: str, kind: Optional[str] = None, cohort: Optional[str] = None) -> int:
    code_kind, numeric_id = parse(code, cohort)
    if kind is not None and code_kind != kind:
        raise InvalidFormat(f"Expected a {kind}-code, got {code!r}")
    return numeric_id


def team_code(team_id: int) -> str:
    return encode(CodeKind.TEAM, team_id)


def participant_code(user_id: int) -> str:
    return encode(CodeKind.PARTICIPANT, user_id)
