"""Tests for the UCI output parser."""

import pytest

from trainer_engine.engine.errors import UciParseError
from trainer_engine.engine.uci_parser import (
    Candidate,
    EngineErrorEvent,
    ReadyAck,
    Score,
    ScoreKind,
    Terminal,
    UciAck,
    UciMove,
    is_uci_move,
    parse_line,
    parse_uci_move,
)


def test_handshake_lines():
    assert parse_line("uciok") == UciAck()
    assert parse_line("readyok\n") == ReadyAck()


def test_multipv_info_line():
    line = "info depth 12 seldepth 18 multipv 2 score cp -34 nodes 52011 nps 812000 pv d7d5 c2c4 e7e6"

    assert parse_line(line) == Candidate(
        rank=2, move="d7d5", score=Score(ScoreKind.CENTIPAWNS, -34)
    )


def test_mate_score():
    line = "info depth 9 multipv 1 score mate -3 nodes 100 pv e1f1 d8d1"

    assert parse_line(line) == Candidate(rank=1, move="e1f1", score=Score(ScoreKind.MATE, -3))


def test_bound_score_is_still_read():
    line = "info depth 20 multipv 1 score cp 41 lowerbound nodes 9 pv g1f3"

    assert parse_line(line).score == Score(ScoreKind.CENTIPAWNS, 41)


def test_info_without_multipv_defaults_to_rank_one():
    assert parse_line("info depth 3 score cp 12 pv e2e4 e7e5").rank == 1


def test_promotion_move_in_pv():
    assert parse_line("info depth 4 multipv 1 score mate 2 pv e7e8q").move == "e7e8q"


def test_score_only_line_for_finished_game():
    assert parse_line("info depth 0 score mate 0") == Candidate(
        rank=1, move=None, score=Score(ScoreKind.MATE, 0)
    )


@pytest.mark.parametrize(
    "line",
    [
        "info depth 10 multipv 1 score cp 5 pv e2e9",
        "info depth 10 multipv 1 score cp 5 pv 0000",
        "info depth 10 multipv 1 score cp 5 pv e2e4x",
    ],
)
def test_malformed_pv_move_yields_no_event(line):
    assert parse_line(line) is None


@pytest.mark.parametrize(
    "line",
    [
        "info string NNUE evaluation using nn-5af11540bbfe.nnue enabled",
        "info depth 5 currmove e2e4 currmovenumber 1",
        "info nodes 12000 nps 600000 hashfull 2 time 20",
        "id name Stockfish 16",
        "option name MultiPV type spin default 1 min 1 max 500",
        "Stockfish 16 by the Stockfish developers",
        "",
    ],
)
def test_lines_without_event(line):
    assert parse_line(line) is None


def test_bestmove():
    assert parse_line("bestmove e2e4") == Terminal(move="e2e4")
    assert parse_line("bestmove e7e8q ponder d1d8") == Terminal(move="e7e8q")


@pytest.mark.parametrize("line", ["bestmove (none)", "bestmove 0000", "bestmove"])
def test_bestmove_without_move(line):
    assert parse_line(line) == Terminal(move=None)


def test_error_lines():
    assert parse_line("error: engine crashed") == EngineErrorEvent("error: engine crashed")
    assert parse_line("ERROR invalid position") == EngineErrorEvent("ERROR invalid position")


def test_parse_uci_move():
    assert parse_uci_move("e2e4") == UciMove("e2", "e4", None)
    assert parse_uci_move("a7a8n") == UciMove("a7", "a8", "n")


@pytest.mark.parametrize("token", ["", "e2", "e2e", "i2e4", "e2e4k", "e2e4qq", "E2E4", "(none)"])
def test_parse_uci_move_rejects_malformed_tokens(token):
    assert not is_uci_move(token)
    with pytest.raises(UciParseError):
        parse_uci_move(token)
