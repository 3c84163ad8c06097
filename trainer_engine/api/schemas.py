"""Pydantic schemas for API requests and responses."""

from typing import Literal

from pydantic import BaseModel, Field

START_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"


class PositionRequest(BaseModel):
    """Request body for /best-move and /evaluate."""

    fen: str = Field(
        ...,
        description="Chess position in FEN notation",
        examples=[START_FEN],
    )
    depth: int = Field(default=15, ge=1, le=30, description="Search depth in plies")


class TopMovesRequest(PositionRequest):
    """Request body for /top-moves."""

    count: int = Field(default=3, ge=1, le=5, description="Number of candidate moves")


class MoveQualityRequest(BaseModel):
    """Request body for /move-quality."""

    fen_before: str = Field(..., description="Position before the move")
    fen_after: str = Field(..., description="Position after the move")
    depth: int | None = Field(
        default=None, ge=1, le=30, description="Search depth (defaults to settings)"
    )


class AiMoveRequest(BaseModel):
    """Request body for /ai-move."""

    fen: str = Field(..., description="Position where the AI is to move")
    difficulty: Literal["easy", "medium", "hard", "expert"] = "medium"
    variety: int = Field(
        default=1, ge=1, le=5, description="Pick randomly among this many top moves"
    )


class BestMoveResponse(BaseModel):
    move: str = Field(..., description="Move in UCI notation (e.g., 'e2e4')")
    move_san: str | None = Field(None, description="Move in SAN notation (e.g., 'e4')")


class TopMovesResponse(BaseModel):
    moves: list[str] = Field(..., description="Candidate moves, best first")


class EvaluationResponse(BaseModel):
    """A score, as seen from `perspective`."""

    type: Literal["cp", "mate"]
    value: int
    side_to_move: Literal["white", "black"]
    perspective: Literal["white", "black"]
    score_cp: int
    text: str

    class Config:
        json_schema_extra = {
            "example": {
                "type": "cp",
                "value": 25,
                "side_to_move": "white",
                "perspective": "white",
                "score_cp": 25,
                "text": "+0.2",
            }
        }


class PositionEvaluationResponse(BaseModel):
    fen: str
    evaluation: EvaluationResponse
    best_move: str | None
    best_move_san: str | None
    depth: int


class MoveQualityResponse(BaseModel):
    """Response body for /move-quality."""

    mover: Literal["white", "black"]
    eval_before: EvaluationResponse
    eval_after: EvaluationResponse
    best_move: str | None
    best_move_san: str | None
    eval_delta: int = Field(..., description="Centipawn change for the mover")
    quality: Literal["blunder", "mistake", "inaccuracy", "good"]


class AiMoveResponse(BaseModel):
    move: str | None = Field(None, description="Chosen move, null when the game is over")
    move_san: str | None = None
    source: Literal["top_moves", "best_move", "random"] | None = None
    candidates: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    status: str = Field(..., description="Service status")
    engine_ready: bool = Field(..., description="Whether the engine is ready")
    engine_state: str = Field(..., description="Engine session lifecycle state")

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "engine_ready": True,
                "engine_state": "ready",
            }
        }
