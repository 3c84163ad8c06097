"""AI opponent move selection policy."""

import random
from dataclasses import dataclass, field
from enum import Enum

import structlog

from . import rules
from .errors import EngineSessionError, RequestCancelledError, SupersededError
from .session import EngineSession

logger = structlog.get_logger(__name__)

# Search depth (plies) per difficulty level.
DIFFICULTY_PRESETS = {
    "easy": 3,
    "medium": 8,
    "hard": 15,
    "expert": 20,
}

MAX_VARIETY = 5


class MoveSource(str, Enum):
    TOP_MOVES = "top_moves"
    BEST_MOVE = "best_move"
    RANDOM = "random"


@dataclass
class SelectedMove:
    uci: str
    san: str
    source: MoveSource
    candidates: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "move": self.uci,
            "move_san": self.san,
            "source": self.source.value,
            "candidates": self.candidates,
        }


class MoveSelector:
    """
    Chooses the AI opponent's move.

    With variety > 1 a random pick among the engine's top lines is played,
    searched slightly shallower to keep response times close to a single
    best-move search. Any engine failure degrades to the best move, then to
    a random legal move, so the opponent always answers.
    """

    def __init__(
        self,
        session: EngineSession,
        multipv_depth_reduction: int = 2,
        rng: random.Random | None = None,
    ):
        self.session = session
        self.multipv_depth_reduction = multipv_depth_reduction
        self.rng = rng or random.Random()

    async def choose_move(
        self, fen: str, difficulty: str = "medium", variety: int = 1
    ) -> SelectedMove | None:
        """
        Pick a move for the side to move in `fen`.

        Returns None when the game is over. Raises SupersededError or
        RequestCancelledError when the search was abandoned for a newer one,
        since the position it was asked for is then stale.
        """
        board = rules.board_from_fen(fen)
        if board.is_game_over():
            return None

        depth = DIFFICULTY_PRESETS[difficulty]
        variety = max(1, min(MAX_VARIETY, variety))

        if not self.session.is_ready():
            logger.warning("Engine not ready, initializing")
            try:
                await self.session.initialize()
            except EngineSessionError as e:
                logger.error("Failed to initialize engine", error=str(e))
                return self._random_move(fen)

        try:
            selected = await self._engine_move(fen, depth, variety)
        except (SupersededError, RequestCancelledError):
            raise
        except EngineSessionError as e:
            logger.error("AI move failed", error=str(e))
            return self._random_move(fen)

        san = rules.uci_to_san(fen, selected.uci)
        if san is None:
            logger.error("Engine suggested an illegal move", move=selected.uci, fen=fen)
            return self._random_move(fen)
        selected.san = san
        return selected

    async def _engine_move(self, fen: str, depth: int, variety: int) -> SelectedMove:
        if variety > 1:
            multipv_depth = max(1, depth - self.multipv_depth_reduction)
            logger.debug("Using reduced depth for multipv", depth=multipv_depth, original=depth)
            try:
                moves = await self.session.get_top_moves(fen, multipv_depth, variety)
            except (SupersededError, RequestCancelledError):
                raise
            except EngineSessionError as e:
                logger.warning("Multipv failed, falling back to best move", error=str(e))
            else:
                index = self.rng.randrange(len(moves))
                logger.info(
                    "AI selected move from top moves",
                    index=index + 1, total=len(moves), move=moves[index],
                )
                return SelectedMove(moves[index], "", MoveSource.TOP_MOVES, moves)

        move = await self.session.get_best_move(fen, depth)
        return SelectedMove(move, "", MoveSource.BEST_MOVE, [move])

    def _random_move(self, fen: str) -> SelectedMove | None:
        move = rules.random_legal_move(fen, self.rng)
        if move is None:
            return None
        board = rules.board_from_fen(fen)
        logger.warning("Using fallback random AI move", move=move.uci())
        return SelectedMove(move.uci(), board.san(move), MoveSource.RANDOM)
