"""Tests for evaluation perspective handling and move classification."""

import chess
import pytest

from trainer_engine.engine.evaluation import (
    MATE_SCORE,
    EngineEvaluation,
    MoveQuality,
    classify_delta,
    classify_move,
)
from trainer_engine.engine.uci_parser import Score, ScoreKind


@pytest.mark.parametrize("side", [chess.WHITE, chess.BLACK])
@pytest.mark.parametrize("value", [0, 35, -120, 900])
def test_perspective_round_trip(side, value):
    evaluation = EngineEvaluation.centipawns(value, side)

    assert evaluation.relative_to(side).value == value
    assert evaluation.relative_to(not side).value == -value
    assert evaluation.relative_to(not side).relative_to(side).value == value


def test_mate_perspective_round_trip():
    evaluation = EngineEvaluation.mate_in(3, chess.BLACK)

    flipped = evaluation.relative_to(chess.WHITE)

    assert flipped.value == -3
    assert flipped.is_losing_mate
    assert flipped.relative_to(chess.BLACK) == evaluation


def test_from_score_tags_side_to_move():
    evaluation = EngineEvaluation.from_score(Score(ScoreKind.CENTIPAWNS, 42), chess.BLACK)

    assert evaluation.side_to_move == chess.BLACK
    assert evaluation.perspective == chess.BLACK
    assert evaluation.score_cp == 42


def test_mate_scores_map_to_large_centipawns():
    assert EngineEvaluation.mate_in(3, chess.WHITE).score_cp == MATE_SCORE - 3
    assert EngineEvaluation.mate_in(-2, chess.WHITE).score_cp == -MATE_SCORE + 2


def test_checkmated_side_to_move():
    mated = EngineEvaluation.mate_in(0, chess.WHITE)

    assert mated.is_losing_mate
    assert mated.score_cp == -MATE_SCORE
    assert mated.relative_to(chess.BLACK).is_winning_mate
    assert mated.relative_to(chess.BLACK).score_cp == MATE_SCORE


@pytest.mark.parametrize(
    "evaluation, text",
    [
        (EngineEvaluation.centipawns(34, chess.WHITE), "+0.3"),
        (EngineEvaluation.centipawns(-125, chess.WHITE), "-1.2"),
        (EngineEvaluation.centipawns(0, chess.WHITE), "+0.0"),
        (EngineEvaluation.mate_in(3, chess.WHITE), "Mate in 3"),
        (EngineEvaluation.mate_in(-2, chess.WHITE), "Mated in 2"),
        (EngineEvaluation.mate_in(0, chess.WHITE), "Checkmate"),
    ],
)
def test_format(evaluation, text):
    assert evaluation.format() == text


@pytest.mark.parametrize(
    "delta, quality",
    [
        (-200, MoveQuality.BLUNDER),
        (-650, MoveQuality.BLUNDER),
        (-199, MoveQuality.MISTAKE),
        (-100, MoveQuality.MISTAKE),
        (-99, MoveQuality.INACCURACY),
        (-50, MoveQuality.INACCURACY),
        (-49, MoveQuality.GOOD),
        (0, MoveQuality.GOOD),
        (300, MoveQuality.GOOD),
    ],
)
def test_classify_delta_boundaries(delta, quality):
    assert classify_delta(delta) is quality


def test_missing_forced_mate_is_a_blunder():
    before = EngineEvaluation.mate_in(3, chess.WHITE)
    after = EngineEvaluation.centipawns(-50, chess.BLACK).relative_to(chess.WHITE)

    delta, quality = classify_move(before, after)

    assert after.value == 50
    assert quality is MoveQuality.BLUNDER
    assert delta == 50 - (MATE_SCORE - 3)


def test_walking_into_mate_is_a_blunder():
    before = EngineEvaluation.centipawns(-900, chess.WHITE)
    after = EngineEvaluation.mate_in(4, chess.BLACK).relative_to(chess.WHITE)

    _, quality = classify_move(before, after)

    assert quality is MoveQuality.BLUNDER


def test_already_mated_line_is_not_an_override():
    before = EngineEvaluation.mate_in(-3, chess.WHITE)
    after = EngineEvaluation.mate_in(2, chess.BLACK).relative_to(chess.WHITE)

    delta, quality = classify_move(before, after)

    assert delta == -1
    assert quality is MoveQuality.GOOD


def test_delivering_mate_is_good():
    before = EngineEvaluation.mate_in(1, chess.BLACK)
    after = EngineEvaluation.mate_in(0, chess.WHITE).relative_to(chess.BLACK)

    delta, quality = classify_move(before, after)

    assert delta == 1
    assert quality is MoveQuality.GOOD


def test_mover_perspective_small_loss_is_good():
    before = EngineEvaluation.centipawns(30, chess.WHITE)
    after = EngineEvaluation.centipawns(10, chess.BLACK).relative_to(chess.WHITE)

    delta, quality = classify_move(before, after)

    assert delta == -40
    assert quality is MoveQuality.GOOD


def test_classify_move_requires_common_perspective():
    before = EngineEvaluation.centipawns(30, chess.WHITE)
    after = EngineEvaluation.centipawns(10, chess.BLACK)

    with pytest.raises(ValueError):
        classify_move(before, after)
