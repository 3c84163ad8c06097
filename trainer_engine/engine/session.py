"""Engine session: one UCI engine, one outstanding search at a time."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

import structlog

from .errors import (
    CalculationTimeoutError,
    EngineFailureError,
    EngineSessionError,
    InitializationTimeoutError,
    NoCandidatesError,
    NoLegalMoveError,
    NotInitializedError,
    RequestCancelledError,
    SupersededError,
)
from .transport import UciTransport
from .uci_parser import (
    Candidate,
    EngineErrorEvent,
    ReadyAck,
    Score,
    Terminal,
    UciAck,
    parse_line,
    parse_uci_move,
)

logger = structlog.get_logger(__name__)

DEFAULT_INIT_TIMEOUT = 10.0
DEFAULT_REQUEST_TIMEOUT = 30.0
MAX_CANDIDATES = 5


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    BUSY = "busy"
    CRASHED = "crashed"


class RequestKind(str, Enum):
    BEST_MOVE = "best_move"
    TOP_MOVES = "top_moves"


@dataclass
class SearchOutcome:
    """What the engine reported when a search finished."""

    best_move: str | None
    moves_by_rank: dict[int, str] = field(default_factory=dict)
    score: Score | None = None


@dataclass(eq=False)
class PendingRequest:
    """The search currently owning the session's request slot."""

    kind: RequestKind
    fen: str
    depth: int
    future: asyncio.Future
    candidate_count: int = 1
    # multipv accumulator: rank -> first pv move, later lines overwrite
    moves_by_rank: dict[int, str] = field(default_factory=dict)
    score: Score | None = None
    timer: asyncio.TimerHandle | None = None


class EngineSession:
    """
    Owns one UCI engine and serializes the searches sent to it.

    Only one search is outstanding at a time: MultiPV is global engine
    state, so a best-move search and a multipv search cannot share the
    engine. Issuing a request while another is in flight rejects the older
    one with SupersededError before the new commands are written.

    All methods must be called from the event loop that runs the transport.
    """

    def __init__(
        self,
        transport_factory: Callable[[], UciTransport],
        init_timeout: float = DEFAULT_INIT_TIMEOUT,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        self._transport_factory = transport_factory
        self.init_timeout = init_timeout
        self.request_timeout = request_timeout

        self._transport: UciTransport | None = None
        self._state = SessionState.UNINITIALIZED
        self._init_task: asyncio.Future | None = None
        self._handshake: asyncio.Future | None = None
        self._pending: PendingRequest | None = None
        # bestmove lines still owed by searches we stopped
        self._stale_terminals = 0
        self._background: set[asyncio.Task] = set()

    @property
    def state(self) -> SessionState:
        return self._state

    def is_ready(self) -> bool:
        """
        True when searches can be issued.

        Also true while a search is running (BUSY): a new request is
        accepted then and supersedes the running one. Use is_idle() to tell
        the two apart.
        """
        return self._state in (SessionState.READY, SessionState.BUSY)

    def is_idle(self) -> bool:
        """True when ready and no search is running."""
        return self._state is SessionState.READY

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """
        Start the engine and complete the UCI handshake.

        Idempotent: returns immediately when ready, and concurrent callers
        share the start already in progress.

        Raises:
            SpawnError: the engine executable could not be started.
            InitializationTimeoutError: no `readyok` within init_timeout.
            EngineFailureError: the engine died during the handshake.
        """
        if self.is_ready():
            return

        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._start_engine())
        init_task = self._init_task
        try:
            await asyncio.shield(init_task)
        finally:
            if self._init_task is init_task and init_task.done():
                self._init_task = None

    async def _start_engine(self) -> None:
        self._state = SessionState.INITIALIZING
        if self._transport is not None:
            stale, self._transport = self._transport, None
            await stale.stop()

        self._stale_terminals = 0
        self._handshake = asyncio.get_running_loop().create_future()

        transport = self._transport_factory()
        try:
            await transport.start(self._handle_line, self._handle_transport_exit)
        except EngineSessionError:
            self._state = SessionState.UNINITIALIZED
            self._handshake = None
            raise

        self._transport = transport
        transport.send("uci")

        try:
            await asyncio.wait_for(self._handshake, timeout=self.init_timeout)
        except asyncio.TimeoutError:
            logger.error("Engine initialization timed out", timeout=self.init_timeout)
            self._transport = None
            self._state = SessionState.UNINITIALIZED
            await transport.stop()
            raise InitializationTimeoutError(
                f"Engine did not answer the UCI handshake within {self.init_timeout}s"
            ) from None
        finally:
            self._handshake = None

        logger.info("Engine ready")

    async def shutdown(self) -> None:
        """Cancel any running search and terminate the engine."""
        self.stop_calculation()
        transport, self._transport = self._transport, None
        self._state = SessionState.UNINITIALIZED
        if transport is not None:
            await transport.stop()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        logger.info("Engine session shut down")

    # ------------------------------------------------------------------
    # Searches
    # ------------------------------------------------------------------

    async def get_best_move(self, fen: str, depth: int) -> str:
        """
        Search `fen` to `depth` plies and return the best move (UCI).

        Raises:
            NotInitializedError, SupersededError, RequestCancelledError,
            CalculationTimeoutError, NoLegalMoveError, EngineFailureError,
            UciParseError.
        """
        outcome = await self.search_position(fen, depth)
        if outcome.best_move is None:
            raise NoLegalMoveError(f"Engine found no move in {fen}")
        parse_uci_move(outcome.best_move)
        return outcome.best_move

    async def get_top_moves(self, fen: str, depth: int, count: int = 3) -> list[str]:
        """
        Return up to `count` (1-5) best moves, best first, using MultiPV.

        MultiPV is always reset to 1 afterwards, whatever the outcome.

        Raises:
            NoCandidatesError: if no candidate line was reported, plus the
                errors of get_best_move().
        """
        count = max(1, min(MAX_CANDIDATES, count))
        request = self._dispatch(RequestKind.TOP_MOVES, fen, depth, count)
        outcome = await self._wait(request)

        moves = []
        for rank in range(1, count + 1):
            move = outcome.moves_by_rank.get(rank)
            if move is None:
                logger.warning("MultiPV rank missing", rank=rank, expected=count)
                continue
            moves.append(move)

        if not moves:
            raise NoCandidatesError(f"No candidate moves reported for {fen}")

        logger.debug("Top moves collected", moves=moves, expected=count)
        return moves

    async def search_position(self, fen: str, depth: int) -> SearchOutcome:
        """
        Run a single-line search and return its raw outcome.

        The outcome carries the last score reported for the main line, which
        UCI only sends on `info` lines, never on `bestmove`.
        """
        request = self._dispatch(RequestKind.BEST_MOVE, fen, depth)
        return await self._wait(request)

    def stop_calculation(self) -> None:
        """Stop the running search, if any, rejecting it with RequestCancelledError."""
        request = self._pending
        if request is None:
            if self._transport is not None:
                self._transport.send("stop")
            return
        logger.info("Stopping calculation", kind=request.kind.value)
        self._abort(request, RequestCancelledError("Calculation stopped"))

    # ------------------------------------------------------------------
    # Request slot
    # ------------------------------------------------------------------

    def _dispatch(
        self, kind: RequestKind, fen: str, depth: int, candidate_count: int = 1
    ) -> PendingRequest:
        if not self.is_ready() or self._transport is None:
            raise NotInitializedError(
                f"Engine not ready (state: {self._state.value}), call initialize() first"
            )

        if self._pending is not None:
            logger.debug("Superseding pending request", kind=self._pending.kind.value)
            self._abort(self._pending, SupersededError("New move requested"))

        loop = asyncio.get_running_loop()
        request = PendingRequest(
            kind=kind,
            fen=fen,
            depth=depth,
            future=loop.create_future(),
            candidate_count=candidate_count,
        )
        request.timer = loop.call_later(
            self.request_timeout, self._handle_request_timeout, request
        )
        self._pending = request
        self._state = SessionState.BUSY

        logger.debug(
            "Dispatching search", kind=kind.value, fen=fen, depth=depth,
            multipv=candidate_count,
        )
        if kind is RequestKind.TOP_MOVES:
            self._transport.send(f"setoption name MultiPV value {candidate_count}")
        self._transport.send(f"position fen {fen}")
        self._transport.send(f"go depth {depth}")
        return request

    async def _wait(self, request: PendingRequest) -> SearchOutcome:
        try:
            return await request.future
        except asyncio.CancelledError:
            if self._pending is request:
                self._abort(request, RequestCancelledError("Caller cancelled"))
            raise

    def _release(self, request: PendingRequest) -> None:
        """Detach `request` from the slot and invalidate its timer."""
        if request.timer is not None:
            request.timer.cancel()
            request.timer = None
        if self._pending is request:
            self._pending = None
            if self._state is SessionState.BUSY:
                self._state = SessionState.READY

    def _abort(self, request: PendingRequest, error: EngineSessionError) -> None:
        """Shared cleanup for supersede, cancel and timeout."""
        self._release(request)
        request.moves_by_rank.clear()

        if self._transport is not None:
            self._transport.send("stop")
            # The stopped search still answers with one bestmove.
            self._stale_terminals += 1
            if request.kind is RequestKind.TOP_MOVES:
                self._transport.send("setoption name MultiPV value 1")

        if not request.future.done():
            request.future.set_exception(error)

    def _handle_request_timeout(self, request: PendingRequest) -> None:
        if self._pending is not request:
            return
        request.timer = None
        if self._stale_terminals:
            # A search stopped earlier never answered either.
            logger.error(
                "Engine unresponsive, ignoring stop", owed_bestmoves=self._stale_terminals
            )
            self._mark_crashed(
                EngineFailureError(
                    f"Engine did not answer stop within {self.request_timeout}s"
                )
            )
            return
        logger.warning(
            "Move calculation timed out", kind=request.kind.value,
            timeout=self.request_timeout,
        )
        self._abort(
            request,
            CalculationTimeoutError(f"No move within {self.request_timeout}s"),
        )

    # ------------------------------------------------------------------
    # Engine output
    # ------------------------------------------------------------------

    def _handle_line(self, line: str) -> None:
        event = parse_line(line)
        if event is None:
            return

        if isinstance(event, Candidate):
            self._handle_candidate(event)
        elif isinstance(event, Terminal):
            self._handle_terminal(event)
        elif isinstance(event, UciAck):
            if self._transport is not None:
                self._transport.send("isready")
        elif isinstance(event, ReadyAck):
            if self._handshake is not None and not self._handshake.done():
                self._state = SessionState.READY
                self._handshake.set_result(None)
        elif isinstance(event, EngineErrorEvent):
            logger.error("Engine reported an error", message=event.message)
            self._mark_crashed(EngineFailureError(event.message))

    def _handle_candidate(self, event: Candidate) -> None:
        request = self._pending
        if request is None or self._stale_terminals:
            return
        if event.rank == 1 and event.score is not None:
            request.score = event.score
        if (
            request.kind is RequestKind.TOP_MOVES
            and event.move is not None
            and 1 <= event.rank <= request.candidate_count
        ):
            request.moves_by_rank[event.rank] = event.move

    def _handle_terminal(self, event: Terminal) -> None:
        if self._stale_terminals:
            self._stale_terminals -= 1
            logger.debug("Discarding bestmove of a stopped search", move=event.move)
            return

        request = self._pending
        if request is None:
            logger.debug("Ignoring bestmove without pending request", move=event.move)
            return

        self._release(request)
        if request.kind is RequestKind.TOP_MOVES and self._transport is not None:
            self._transport.send("setoption name MultiPV value 1")

        if not request.future.done():
            request.future.set_result(
                SearchOutcome(
                    best_move=event.move,
                    moves_by_rank=dict(request.moves_by_rank),
                    score=request.score,
                )
            )

    def _handle_transport_exit(self, error: Exception) -> None:
        logger.error("Engine transport failed", error=str(error))
        self._mark_crashed(
            error if isinstance(error, EngineFailureError) else EngineFailureError(str(error))
        )

    def _mark_crashed(self, error: EngineFailureError) -> None:
        """Fail everything waiting on the engine, then drop the transport."""
        request = self._pending
        if request is not None:
            self._release(request)
            if not request.future.done():
                request.future.set_exception(error)

        if self._handshake is not None and not self._handshake.done():
            self._handshake.set_exception(error)

        self._state = SessionState.CRASHED
        self._stale_terminals = 0

        transport, self._transport = self._transport, None
        if transport is not None:
            # also reaps a process that is alive but no longer read
            task = asyncio.ensure_future(transport.stop())
            self._background.add(task)
            task.add_done_callback(self._background.discard)
