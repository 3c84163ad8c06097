"""Parsing of UCI engine output into typed events."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Union

import structlog

from .errors import UciParseError

logger = structlog.get_logger(__name__)

UCI_MOVE_PATTERN = re.compile(r"^([a-h][1-8])([a-h][1-8])([qrbn])?$")

_multipv_pattern = re.compile(r" multipv (\d+)")
_score_pattern = re.compile(r" score (cp|mate) (-?\d+)")
_pv_pattern = re.compile(r" pv (\S+)")

# Tokens an engine may send in place of a move when it has none.
_NO_MOVE_TOKENS = frozenset({"(none)", "0000"})


class ScoreKind(str, Enum):
    """Unit of an engine score."""

    CENTIPAWNS = "cp"
    MATE = "mate"


class Score(NamedTuple):
    """Raw score as printed by the engine, relative to the side to move."""

    kind: ScoreKind
    value: int


class UciMove(NamedTuple):
    from_square: str
    to_square: str
    promotion: str | None = None


@dataclass(frozen=True)
class UciAck:
    """`uciok`: the engine finished listing its id and options."""


@dataclass(frozen=True)
class ReadyAck:
    """`readyok`: the engine processed every command sent so far."""


@dataclass(frozen=True)
class Candidate:
    """
    One principal variation reported during a search.

    `move` is None for score-only lines, such as `info depth 0 score mate 0`
    sent for a position with no legal move.
    """

    rank: int
    move: str | None
    score: Score | None = None


@dataclass(frozen=True)
class Terminal:
    """`bestmove`: the search is over. `move` is None when there is none."""

    move: str | None


@dataclass(frozen=True)
class EngineErrorEvent:
    message: str


UciEvent = Union[UciAck, ReadyAck, Candidate, Terminal, EngineErrorEvent]


def is_uci_move(token: str) -> bool:
    """True if `token` looks like a long-algebraic move (e2e4, e7e8q)."""
    return UCI_MOVE_PATTERN.match(token) is not None


def parse_uci_move(token: str) -> UciMove:
    """
    Split a UCI move token into its squares and promotion piece.

    Raises:
        UciParseError: if the token is not two squares optionally followed
            by one of q, r, b, n.
    """
    match = UCI_MOVE_PATTERN.match(token or "")
    if match is None:
        raise UciParseError(f"Invalid UCI move: {token!r}")
    return UciMove(match.group(1), match.group(2), match.group(3))


def _parse_info(line: str) -> Candidate | None:
    score = None
    score_match = _score_pattern.search(line)
    if score_match:
        score = Score(ScoreKind(score_match.group(1)), int(score_match.group(2)))

    move = None
    pv_match = _pv_pattern.search(line)
    if pv_match:
        move = pv_match.group(1)
        if not is_uci_move(move):
            logger.warning("Malformed pv move in info line", line=line[:100])
            return None
    elif score is None:
        return None

    mpv_match = _multipv_pattern.search(line)
    rank = int(mpv_match.group(1)) if mpv_match else 1

    return Candidate(rank=rank, move=move, score=score)


def parse_line(line: str) -> UciEvent | None:
    """
    Convert one line of engine output into an event.

    Returns None for lines that carry nothing the session acts on
    (id, option, info string, info lines with neither pv nor score).
    """
    text = line.strip()
    if not text:
        return None

    if text == "uciok":
        return UciAck()
    if text == "readyok":
        return ReadyAck()

    if text.startswith("info ") and not text.startswith("info string"):
        return _parse_info(text)

    if text.startswith("bestmove"):
        parts = text.split()
        move = parts[1] if len(parts) > 1 else None
        if move in _NO_MOVE_TOKENS:
            move = None
        return Terminal(move=move)

    if text.lower().startswith("error"):
        return EngineErrorEvent(message=text)

    return None
