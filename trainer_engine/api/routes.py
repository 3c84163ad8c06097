"""API routes for the trainer engine service."""

import structlog
from fastapi import APIRouter, HTTPException

from ..config import settings
from ..engine import (
    CalculationTimeoutError,
    EngineFailureError,
    EngineSession,
    EngineSessionError,
    InitializationTimeoutError,
    MoveQualityEvaluator,
    MoveSelector,
    NoCandidatesError,
    NoLegalMoveError,
    NotInitializedError,
    RequestCancelledError,
    SpawnError,
    SupersededError,
    UciParseError,
)
from ..engine import rules
from .schemas import (
    AiMoveRequest,
    AiMoveResponse,
    BestMoveResponse,
    HealthResponse,
    MoveQualityRequest,
    MoveQualityResponse,
    PositionEvaluationResponse,
    PositionRequest,
    TopMovesRequest,
    TopMovesResponse,
)

logger = structlog.get_logger(__name__)

router = APIRouter()

# Engine session (set by main.py on startup)
_session: EngineSession | None = None
_evaluator: MoveQualityEvaluator | None = None
_selector: MoveSelector | None = None

_STATUS_CODES: list[tuple[tuple[type[EngineSessionError], ...], int]] = [
    ((NotInitializedError, SpawnError, InitializationTimeoutError), 503),
    ((SupersededError, RequestCancelledError), 409),
    ((CalculationTimeoutError,), 504),
    ((NoLegalMoveError, NoCandidatesError), 422),
    ((EngineFailureError, UciParseError), 502),
]


def set_engine(session: EngineSession, multipv_depth_reduction: int = 2) -> None:
    """Set the global engine session and the services built on it."""
    global _session, _evaluator, _selector
    _session = session
    _evaluator = MoveQualityEvaluator(session)
    _selector = MoveSelector(session, multipv_depth_reduction=multipv_depth_reduction)


def _to_http(error: EngineSessionError) -> HTTPException:
    if error.expected:
        logger.info("Request abandoned", reason=str(error))
    else:
        logger.error("Engine request failed", error=type(error).__name__, detail=str(error))
    for error_types, status_code in _STATUS_CODES:
        if isinstance(error, error_types):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


def _check_fen(*fens: str) -> None:
    for fen in fens:
        try:
            rules.board_from_fen(fen)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"Invalid FEN: {e}")


async def get_engine() -> EngineSession:
    """Get the engine session, starting it if needed, or raise 503."""
    if _session is None:
        raise HTTPException(status_code=503, detail="Engine not initialized")
    try:
        await _session.initialize()
    except EngineSessionError as e:
        raise HTTPException(status_code=503, detail=f"Engine unavailable: {e}")
    return _session


@router.post("/best-move", response_model=BestMoveResponse)
async def best_move(request: PositionRequest) -> BestMoveResponse:
    """Return the engine's best move for a position."""
    _check_fen(request.fen)
    engine = await get_engine()
    try:
        move = await engine.get_best_move(request.fen, request.depth)
    except EngineSessionError as e:
        raise _to_http(e)
    return BestMoveResponse(move=move, move_san=rules.uci_to_san(request.fen, move))


@router.post("/top-moves", response_model=TopMovesResponse)
async def top_moves(request: TopMovesRequest) -> TopMovesResponse:
    """Return the engine's top N moves (MultiPV), best first."""
    _check_fen(request.fen)
    engine = await get_engine()
    try:
        moves = await engine.get_top_moves(request.fen, request.depth, request.count)
    except EngineSessionError as e:
        raise _to_http(e)
    return TopMovesResponse(moves=moves)


@router.post("/evaluate", response_model=PositionEvaluationResponse)
async def evaluate(request: PositionRequest) -> PositionEvaluationResponse:
    """Evaluate a position from the side to move's point of view."""
    _check_fen(request.fen)
    await get_engine()
    try:
        result = await _evaluator.evaluate_position(request.fen, request.depth)
    except EngineSessionError as e:
        raise _to_http(e)
    return PositionEvaluationResponse(**result.to_dict())


@router.post("/move-quality", response_model=MoveQualityResponse)
async def move_quality(request: MoveQualityRequest) -> MoveQualityResponse:
    """Grade a move by comparing the positions before and after it."""
    _check_fen(request.fen_before, request.fen_after)
    await get_engine()
    depth = request.depth or settings.move_quality_depth
    try:
        result = await _evaluator.compare_move_quality(
            request.fen_before, request.fen_after, depth
        )
    except EngineSessionError as e:
        raise _to_http(e)
    return MoveQualityResponse(**result.to_dict())


@router.post("/ai-move", response_model=AiMoveResponse)
async def ai_move(request: AiMoveRequest) -> AiMoveResponse:
    """
    Choose the AI opponent's move.

    Never fails because of the engine: a random legal move is returned
    when the engine cannot answer.
    """
    _check_fen(request.fen)
    if _selector is None:
        raise HTTPException(status_code=503, detail="Engine not initialized")
    try:
        selected = await _selector.choose_move(
            request.fen, difficulty=request.difficulty, variety=request.variety
        )
    except EngineSessionError as e:
        raise _to_http(e)
    if selected is None:
        return AiMoveResponse()
    return AiMoveResponse(**selected.to_dict())


@router.post("/stop", status_code=204)
async def stop() -> None:
    """Stop the running calculation, if any."""
    if _session is not None:
        _session.stop_calculation()


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check service health and engine status."""
    engine_ready = _session is not None and _session.is_ready()
    return HealthResponse(
        status="healthy" if engine_ready else "degraded",
        engine_ready=engine_ready,
        engine_state=_session.state.value if _session is not None else "uninitialized",
    )
