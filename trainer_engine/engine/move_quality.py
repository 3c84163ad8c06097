"""Move-quality evaluation on top of an engine session."""

import structlog

from . import rules
from .errors import NoLegalMoveError
from .evaluation import (
    EngineEvaluation,
    MoveQualityResult,
    PositionEvaluation,
    classify_move,
    color_name,
)
from .session import EngineSession
from .uci_parser import is_uci_move

logger = structlog.get_logger(__name__)


class MoveQualityEvaluator:
    """Scores positions and grades moves with the session's engine."""

    def __init__(self, session: EngineSession):
        self.session = session

    async def evaluate_position(self, fen: str, depth: int) -> PositionEvaluation:
        """
        Evaluate `fen`, from the side to move's point of view.

        A finished game is still evaluated when the engine reported a score
        for it (e.g. `score mate 0` for a checkmated side).

        Raises:
            NoLegalMoveError: the engine gave neither a move nor a score.
        """
        turn = rules.side_to_move(fen)
        outcome = await self.session.search_position(fen, depth)

        best_move = outcome.best_move
        if best_move is not None and not is_uci_move(best_move):
            logger.warning("Discarding malformed best move", move=best_move)
            best_move = None

        if outcome.score is None:
            if best_move is None:
                raise NoLegalMoveError(f"Engine reported neither move nor score for {fen}")
            logger.warning("No score reported, assuming equality", fen=fen)
            evaluation = EngineEvaluation.centipawns(0, turn)
        else:
            evaluation = EngineEvaluation.from_score(outcome.score, turn)

        return PositionEvaluation(
            fen=fen,
            evaluation=evaluation,
            best_move=best_move,
            best_move_san=rules.uci_to_san(fen, best_move) if best_move else None,
            depth=depth,
        )

    async def compare_move_quality(
        self, fen_before: str, fen_after: str, depth: int
    ) -> MoveQualityResult:
        """
        Grade the move leading from `fen_before` to `fen_after`.

        The two positions are searched one after the other on the same
        session; both scores are then re-expressed for the player who moved.
        """
        before = await self.evaluate_position(fen_before, depth)
        after = await self.evaluate_position(fen_after, depth)

        mover = before.evaluation.side_to_move
        if after.evaluation.side_to_move == mover:
            logger.warning(
                "Side to move unchanged between positions",
                fen_before=fen_before, fen_after=fen_after,
            )

        eval_before = before.evaluation.relative_to(mover)
        eval_after = after.evaluation.relative_to(mover)
        eval_delta, quality = classify_move(eval_before, eval_after)

        logger.info(
            "Move graded",
            mover=color_name(mover),
            before=eval_before.format(),
            after=eval_after.format(),
            delta=eval_delta,
            quality=quality.value,
        )

        return MoveQualityResult(
            mover=mover,
            eval_before=eval_before,
            eval_after=eval_after,
            best_move=before.best_move,
            best_move_san=before.best_move_san,
            eval_delta=eval_delta,
            quality=quality,
        )
