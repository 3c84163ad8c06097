"""Evaluation and move-quality data structures."""

from dataclasses import dataclass
from enum import Enum

import chess

from .uci_parser import Score, ScoreKind

# Centipawn value of a mate score, reduced by the distance to mate.
MATE_SCORE = 10000

BLUNDER_THRESHOLD = 200
MISTAKE_THRESHOLD = 100
INACCURACY_THRESHOLD = 50


class MoveQuality(str, Enum):
    """Quality label of a played move."""

    BLUNDER = "blunder"
    MISTAKE = "mistake"
    INACCURACY = "inaccuracy"
    GOOD = "good"


def color_name(color: chess.Color) -> str:
    return "white" if color == chess.WHITE else "black"


@dataclass(frozen=True)
class EngineEvaluation:
    """
    A position score.

    `value` is expressed from `perspective`'s point of view. Engines report
    scores relative to the side to move, so a fresh evaluation has
    `perspective == side_to_move`. For mate scores `value` is the signed
    number of moves to mate; 0 means the side to move is checkmated.
    """

    kind: ScoreKind
    value: int
    side_to_move: chess.Color
    perspective: chess.Color

    @classmethod
    def from_score(cls, score: Score, side_to_move: chess.Color) -> "EngineEvaluation":
        return cls(score.kind, score.value, side_to_move, side_to_move)

    @classmethod
    def centipawns(cls, value: int, side_to_move: chess.Color) -> "EngineEvaluation":
        return cls(ScoreKind.CENTIPAWNS, value, side_to_move, side_to_move)

    @classmethod
    def mate_in(cls, value: int, side_to_move: chess.Color) -> "EngineEvaluation":
        return cls(ScoreKind.MATE, value, side_to_move, side_to_move)

    def relative_to(self, color: chess.Color) -> "EngineEvaluation":
        """Re-express this evaluation from `color`'s point of view."""
        if color == self.perspective:
            return self
        return EngineEvaluation(self.kind, -self.value, self.side_to_move, color)

    @property
    def is_mate(self) -> bool:
        return self.kind is ScoreKind.MATE

    @property
    def is_winning_mate(self) -> bool:
        """True if the perspective side delivers a forced mate."""
        if not self.is_mate:
            return False
        if self.value == 0:
            return self.perspective != self.side_to_move
        return self.value > 0

    @property
    def is_losing_mate(self) -> bool:
        """True if the perspective side is getting mated."""
        return self.is_mate and not self.is_winning_mate

    @property
    def score_cp(self) -> int:
        """Centipawns from the perspective side, mates mapped near ±MATE_SCORE."""
        if not self.is_mate:
            return self.value
        distance = abs(self.value)
        if self.is_winning_mate:
            return MATE_SCORE - distance
        return -MATE_SCORE + distance

    def format(self) -> str:
        """Human readable form: '+0.3', '-1.2', 'Mate in 3', 'Mated in 2'."""
        if self.is_mate:
            if self.value == 0:
                return "Checkmate"
            if self.is_winning_mate:
                return f"Mate in {abs(self.value)}"
            return f"Mated in {abs(self.value)}"
        return f"{self.value / 100:+.1f}"

    def to_dict(self) -> dict:
        """Convert to a dict for JSON serialization."""
        return {
            "type": self.kind.value,
            "value": self.value,
            "side_to_move": color_name(self.side_to_move),
            "perspective": color_name(self.perspective),
            "score_cp": self.score_cp,
            "text": self.format(),
        }


@dataclass
class PositionEvaluation:
    """Engine verdict on one position."""

    fen: str
    evaluation: EngineEvaluation
    best_move: str | None = None
    best_move_san: str | None = None
    depth: int = 0

    def to_dict(self) -> dict:
        return {
            "fen": self.fen,
            "evaluation": self.evaluation.to_dict(),
            "best_move": self.best_move,
            "best_move_san": self.best_move_san,
            "depth": self.depth,
        }


@dataclass
class MoveQualityResult:
    """Before/after comparison of one move, from the mover's point of view."""

    mover: chess.Color
    eval_before: EngineEvaluation
    eval_after: EngineEvaluation
    best_move: str | None
    best_move_san: str | None
    eval_delta: int
    quality: MoveQuality

    @property
    def centipawn_loss(self) -> int:
        return max(0, -self.eval_delta)

    def to_dict(self) -> dict:
        return {
            "mover": color_name(self.mover),
            "eval_before": self.eval_before.to_dict(),
            "eval_after": self.eval_after.to_dict(),
            "best_move": self.best_move,
            "best_move_san": self.best_move_san,
            "eval_delta": self.eval_delta,
            "quality": self.quality.value,
        }


def classify_delta(eval_delta: int) -> MoveQuality:
    """Label a centipawn change (negative = the move made things worse)."""
    loss = -eval_delta
    if loss >= BLUNDER_THRESHOLD:
        return MoveQuality.BLUNDER
    if loss >= MISTAKE_THRESHOLD:
        return MoveQuality.MISTAKE
    if loss >= INACCURACY_THRESHOLD:
        return MoveQuality.INACCURACY
    return MoveQuality.GOOD


def classify_move(before: EngineEvaluation, after: EngineEvaluation) -> tuple[int, MoveQuality]:
    """
    Compute the delta and quality label of a move.

    Both evaluations must already be expressed for the player who moved.
    Losing a forced mate, or walking into one, is always a blunder.
    """
    if before.perspective != after.perspective:
        raise ValueError("Evaluations must share the same perspective")

    eval_delta = after.score_cp - before.score_cp

    if before.is_winning_mate and not after.is_winning_mate:
        return eval_delta, MoveQuality.BLUNDER
    if after.is_losing_mate and not before.is_losing_mate:
        return eval_delta, MoveQuality.BLUNDER

    return eval_delta, classify_delta(eval_delta)
