"""Pytest configuration and engine fakes."""

import asyncio
from collections import deque

import pytest
import pytest_asyncio

from trainer_engine.engine import EngineSession, UciTransport
from trainer_engine.engine.errors import EngineFailureError

START_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
AFTER_E4_FEN = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"


class FakeTransport(UciTransport):
    """
    Scripted engine.

    Answers the handshake and replays one script (a list of output lines)
    per `go`. A `None` script, or an exhausted script queue, leaves the
    search hanging until `stop`, which is answered with `bestmove (none)`
    when `answer_stop` is set.
    """

    def __init__(self, scripts=(), handshake=True, answer_stop=True):
        self.scripts = deque(scripts)
        self.handshake = handshake
        self.answer_stop = answer_stop
        self.sent: list[str] = []
        self.starts = 0
        self.stopped = False
        self.hung_searches = 0
        self._running = False
        self._on_line = None
        self._on_exit = None

    async def start(self, on_line, on_exit) -> None:
        self._on_line = on_line
        self._on_exit = on_exit
        self._running = True
        self.stopped = False
        self.starts += 1

    def send(self, command: str) -> None:
        if not self._running:
            return
        self.sent.append(command)

        if command == "uci" and self.handshake:
            self.emit("id name FakeFish", "uciok")
        elif command == "isready" and self.handshake:
            self.emit("readyok")
        elif command.startswith("go"):
            script = self.scripts.popleft() if self.scripts else None
            if script is None:
                self.hung_searches += 1
            else:
                self.emit(*script)
        elif command == "stop" and self.hung_searches:
            self.hung_searches -= 1
            if self.answer_stop:
                self.emit("bestmove (none)")

    def emit(self, *lines: str) -> None:
        loop = asyncio.get_running_loop()
        for line in lines:
            loop.call_soon(self._deliver, line)

    def _deliver(self, line: str) -> None:
        if self._running:
            self._on_line(line)

    def crash(self, message: str = "Engine exited with code 1") -> None:
        self._running = False
        self._on_exit(EngineFailureError(message))

    async def stop(self) -> None:
        self._running = False
        self.stopped = True

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def searches(self) -> list[str]:
        return [c for c in self.sent if c.startswith("go")]


def info(rank: int, move: str, cp: int = 0, depth: int = 10) -> str:
    return f"info depth {depth} seldepth {depth + 2} multipv {rank} score cp {cp} nodes 1000 nps 100000 pv {move}"


async def settle(rounds: int = 5) -> None:
    """Let scheduled engine output reach the session."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest_asyncio.fixture
async def session(transport):
    session = EngineSession(lambda: transport, init_timeout=1.0, request_timeout=1.0)
    await session.initialize()
    yield session
    await session.shutdown()
