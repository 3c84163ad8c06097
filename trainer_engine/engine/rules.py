"""Chess rules needed by the engine layer, delegated to python-chess."""

import random

import chess


def board_from_fen(fen: str) -> chess.Board:
    """Build a board, raising ValueError for an unusable FEN."""
    board = chess.Board(fen)
    if not board.is_valid():
        raise ValueError(f"Invalid position: {fen}")
    return board


def side_to_move(fen: str) -> chess.Color:
    return chess.Board(fen).turn


def uci_to_san(fen: str, uci: str) -> str | None:
    """SAN of a UCI move in the given position, or None if it is not legal."""
    board = chess.Board(fen)
    try:
        move = chess.Move.from_uci(uci)
    except ValueError:
        return None
    if move not in board.legal_moves:
        return None
    return board.san(move)


def random_legal_move(fen: str, rng: random.Random | None = None) -> chess.Move | None:
    """Pick any legal move, or None when the game is over."""
    board = chess.Board(fen)
    moves = list(board.legal_moves)
    if not moves:
        return None
    return (rng or random).choice(moves)
