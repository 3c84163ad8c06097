"""Transports carrying UCI text between the session and an engine process."""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence

import structlog

from .errors import EngineFailureError, SpawnError

logger = structlog.get_logger(__name__)

# Read buffer per output stream. Lines longer than this are dropped.
STREAM_LIMIT = 1024 * 1024

LineHandler = Callable[[str], None]
ExitHandler = Callable[[Exception], None]


class UciTransport(ABC):
    """Moves raw UCI lines in and out of one engine instance."""

    @abstractmethod
    async def start(self, on_line: LineHandler, on_exit: ExitHandler) -> None:
        """
        Start the engine.

        `on_line` receives every non-empty output line in order. `on_exit`
        is called once if the engine goes away without stop() being called.

        Raises:
            SpawnError: if the engine cannot be started.
        """

    @abstractmethod
    def send(self, command: str) -> None:
        """Write one command line. Dropped when the transport is not running."""

    @abstractmethod
    async def stop(self) -> None:
        """Ask the engine to quit, then terminate it. Idempotent."""

    @property
    @abstractmethod
    def is_running(self) -> bool:
        """True while the engine can receive commands."""


class SubprocessTransport(UciTransport):
    """Runs a native UCI engine (e.g. Stockfish) as a child process."""

    def __init__(
        self,
        executable: str | Sequence[str],
        fallbacks: Sequence[str | Sequence[str]] = (),
        quit_timeout: float = 1.0,
        limit: int = STREAM_LIMIT,
    ):
        self._commands = [_as_argv(executable), *(_as_argv(f) for f in fallbacks)]
        self.quit_timeout = quit_timeout
        self.limit = limit
        self._process: asyncio.subprocess.Process | None = None
        self._reader_task: asyncio.Task | None = None
        self._stderr_task: asyncio.Task | None = None
        self._on_line: LineHandler | None = None
        self._on_exit: ExitHandler | None = None
        self._stopping = False

    async def start(self, on_line: LineHandler, on_exit: ExitHandler) -> None:
        if self._process is not None:
            logger.warning("Engine already started, restarting")
            await self.stop()

        errors = []
        for argv in self._commands:
            logger.info("Starting engine", command=argv)
            try:
                self._process = await asyncio.create_subprocess_exec(
                    *argv,
                    stdin=asyncio.subprocess.PIPE,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    limit=self.limit,
                )
            except OSError as e:
                logger.warning("Failed to start engine", command=argv, error=str(e))
                errors.append(f"{argv[0]}: {e}")
                continue
            break
        else:
            raise SpawnError("Could not start engine (" + "; ".join(errors) + ")")

        self._on_line = on_line
        self._on_exit = on_exit
        self._stopping = False
        self._reader_task = asyncio.create_task(self._read_stdout(self._process))
        self._stderr_task = asyncio.create_task(self._read_stderr(self._process))

    def send(self, command: str) -> None:
        if not self.is_running:
            logger.debug("Engine not running, dropping command", command=command)
            return

        logger.debug("UCI >>", command=command)
        try:
            self._process.stdin.write(f"{command}\n".encode())
        except (BrokenPipeError, ConnectionResetError) as e:
            logger.warning("Failed to write to engine", command=command, error=str(e))

    async def stop(self) -> None:
        process = self._process
        if process is None:
            return

        logger.info("Stopping engine")
        self.send("quit")
        self._stopping = True

        if process.returncode is None:
            try:
                await asyncio.wait_for(process.wait(), timeout=self.quit_timeout)
            except asyncio.TimeoutError:
                logger.warning("Engine did not quit in time, killing it")
                process.kill()
                try:
                    await asyncio.wait_for(process.wait(), timeout=self.quit_timeout)
                except asyncio.TimeoutError:
                    logger.error("Engine process did not exit after kill", pid=process.pid)

        for task in (self._reader_task, self._stderr_task):
            if task is not None and task is not asyncio.current_task():
                task.cancel()

        self._process = None
        self._reader_task = None
        self._stderr_task = None

    @property
    def is_running(self) -> bool:
        return (
            self._process is not None
            and self._process.returncode is None
            and not self._stopping
        )

    async def _read_stdout(self, process: asyncio.subprocess.Process) -> None:
        try:
            while True:
                try:
                    line = await process.stdout.readline()
                except ValueError as e:
                    # over the stream limit; readline() already dropped the data
                    logger.warning("Discarding oversized engine output", error=str(e))
                    continue
                if not line:
                    break
                decoded = line.decode(errors="replace").strip()
                if decoded:
                    logger.debug("UCI <<", response=decoded)
                    self._on_line(decoded)

            returncode = await process.wait()
        except Exception as e:
            logger.error("Engine output reader failed", error=repr(e))
            self._report_exit(process, EngineFailureError(f"Engine output reader failed: {e}"))
            return

        self._report_exit(process, EngineFailureError(f"Engine exited with code {returncode}"))

    def _report_exit(self, process: asyncio.subprocess.Process, error: EngineFailureError) -> None:
        if self._stopping or process is not self._process:
            return
        logger.error("Engine lost", error=str(error))
        self._stopping = True
        self._on_exit(error)

    async def _read_stderr(self, process: asyncio.subprocess.Process) -> None:
        while True:
            try:
                line = await process.stderr.readline()
            except ValueError:
                continue
            if not line:
                return
            decoded = line.decode(errors="replace").strip()
            if decoded:
                logger.warning("Engine stderr", output=decoded)


def _as_argv(command: str | Sequence[str]) -> list[str]:
    if isinstance(command, str):
        return [command]
    return list(command)
