"""
Line-oriented transceiver for one UCI engine process.

A reader task splits the engine's stdout into lines and feeds a single-consumer
queue; stderr is read by a second task and only ever logged. Every exchange
(request, fire-and-forget write, search) holds the session lock, so exactly one
command is outstanding per process and responses can never interleave.

Output that arrives after its request has already finished (e.g. a bestmove
that shows up after a timeout) is drained and logged before the next exchange
starts, and after any timeout or cancellation the next exchange first waits for an
isready/readyok barrier, so late output cannot resolve a later request.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Sequence

from chessreview.engine.difficulty import SearchBudget
from chessreview.engine.parser import SearchParser, SearchResult
from chessreview.errors import EngineProcessExited, EngineTimeout, SearchTimeout

logger = logging.getLogger(__name__)


class EngineSession:
    """One engine process plus the state needed to talk to it."""

    def __init__(self, process: asyncio.subprocess.Process, label: str) -> None:
        self.label = label
        self.ready = False
        self._process = process
        self._lines: asyncio.Queue[str | None] = asyncio.Queue()
        self._eof = False
        self._needs_sync = False        # set after a timeout or cancellation left output in flight
        self.sync_timeout = 5.0
        self._lock = asyncio.Lock()
        self._stdout_task = asyncio.create_task(self._read_stdout())
        self._stderr_task = asyncio.create_task(self._read_stderr())

    @classmethod
    async def spawn(cls, command: Sequence[str], label: str) -> EngineSession:
        """Start the engine executable. Raises OSError if it cannot be launched."""
        process = await asyncio.create_subprocess_exec(
            *command,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        logger.info("%s: spawned engine pid=%s", label, process.pid)
        return cls(process, label)

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    @property
    def is_alive(self) -> bool:
        return self._process.returncode is None and not self._eof

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    # ------------------------------------------------------------------ #
    # Public exchanges                                                     #
    # ------------------------------------------------------------------ #

    async def write(self, command: str) -> None:
        """Send a command that has no response of its own."""
        async with self._lock:
            await self._settle()
            await self._send(command)

    async def request(self, command: str, terminator: str, timeout: float) -> str:
        """
        Send `command` and return all output up to and including the first line
        containing `terminator`.

        Raises:
            EngineTimeout: the terminator did not appear within `timeout` seconds.
            EngineProcessExited: the engine closed stdout first.
        """
        async with self._lock:
            await self._settle()
            await self._send(command)
            lines: list[str] = []
            try:
                async with asyncio.timeout(timeout):
                    await self._read_until(lambda line: terminator in line, lines)
            except TimeoutError:
                logger.error(
                    "%s: '%s' timed out waiting for '%s' (got %d lines)",
                    self.label, command, terminator, len(lines),
                )
                self._needs_sync = True
                raise EngineTimeout(command, timeout) from None
            except asyncio.CancelledError:
                self._needs_sync = True
                raise
            return "\n".join(lines) + "\n"

    async def search(
        self,
        fen: str,
        budget: SearchBudget,
        *,
        timeout: float,
        grace: float,
    ) -> SearchResult:
        """
        Submit a position and search it.

        On timeout a `stop` is sent and a bestmove arriving within `grace`
        seconds is still honoured; otherwise SearchTimeout is raised and the
        session is left running.
        """
        go = budget.go_command()
        async with self._lock:
            await self._settle()
            await self._send(f"position fen {fen}")
            await self._send(go)
            logger.info("%s: searching %s with '%s'", self.label, fen, go)
            try:
                return await self._search_with_stop(SearchParser(), go, fen, timeout, grace)
            except asyncio.CancelledError:
                # The engine may still answer; the next exchange must resync first.
                self._needs_sync = True
                raise

    async def kill(self) -> None:
        """Kill the process, reap it and stop the reader tasks. Safe to call twice."""
        self.ready = False
        stdin = self._process.stdin
        if stdin is not None and not stdin.is_closing():
            stdin.close()
        if self._process.returncode is None:
            try:
                self._process.kill()
            except ProcessLookupError:
                pass
        try:
            async with asyncio.timeout(5):
                await self._process.wait()
        except TimeoutError:
            logger.warning("%s: pid=%s did not exit after kill", self.label, self.pid)
        for task in (self._stdout_task, self._stderr_task):
            task.cancel()
        await asyncio.gather(self._stdout_task, self._stderr_task, return_exceptions=True)

    # ------------------------------------------------------------------ #
    # Internal                                                             #
    # ------------------------------------------------------------------ #

    async def _search_with_stop(
        self, parser: SearchParser, go: str, fen: str, timeout: float, grace: float
    ) -> SearchResult:
        try:
            async with asyncio.timeout(timeout):
                return await self._scan(parser)
        except TimeoutError:
            logger.warning(
                "%s: no bestmove after %gs for %s, sending stop", self.label, timeout, fen
            )

        await self._send("stop")
        try:
            async with asyncio.timeout(grace):
                result = await self._scan(parser)
        except TimeoutError:
            logger.error("%s: search still unresolved after stop grace", self.label)
            self._needs_sync = True
            raise SearchTimeout(go, timeout) from None
        logger.info("%s: late bestmove %s accepted after stop", self.label, result.best_move)
        return result

    async def _send(self, command: str) -> None:
        stdin = self._process.stdin
        if stdin is None or stdin.is_closing() or self._process.returncode is not None:
            raise EngineProcessExited(f"{self.label}: engine is not running")
        logger.debug("%s >> %s", self.label, command)
        stdin.write(f"{command}\n".encode("utf-8"))
        try:
            await stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as exc:
            raise EngineProcessExited(f"{self.label}: engine closed its input") from exc

    async def _next_line(self) -> str | None:
        if self._eof:
            return None
        line = await self._lines.get()
        if line is None:
            self._eof = True
        return line

    async def _read_until(self, done: Callable[[str], bool], lines: list[str]) -> None:
        while True:
            line = await self._next_line()
            if line is None:
                raise EngineProcessExited(f"{self.label}: engine exited")
            lines.append(line)
            if done(line):
                return

    async def _scan(self, parser: SearchParser) -> SearchResult:
        while True:
            line = await self._next_line()
            if line is None:
                raise EngineProcessExited(f"{self.label}: engine exited during search")
            result = parser.feed(line)
            if result is not None:
                return result

    async def _settle(self) -> None:
        """
        Throw away leftovers before a new exchange. After a timeout the engine
        may still be writing, so an isready/readyok round trip is used as a
        barrier: UCI engines answer commands in order.
        """
        self._drain_stale()
        if not self._needs_sync:
            return
        await self._send("isready")
        try:
            async with asyncio.timeout(self.sync_timeout):
                while True:
                    line = await self._next_line()
                    if line is None:
                        raise EngineProcessExited(f"{self.label}: engine exited")
                    if "readyok" in line:
                        break
                    logger.debug("%s: discarding late output: %s", self.label, line)
        except TimeoutError:
            raise EngineTimeout("isready", self.sync_timeout) from None
        self._needs_sync = False

    def _drain_stale(self) -> None:
        while not self._lines.empty():
            line = self._lines.get_nowait()
            if line is None:
                self._eof = True
                return
            logger.debug("%s: discarding stale output: %s", self.label, line)

    async def _read_stdout(self) -> None:
        assert self._process.stdout is not None
        try:
            while True:
                raw = await self._process.stdout.readline()
                if not raw:
                    break
                line = raw.decode("utf-8", errors="replace").strip()
                if line:
                    logger.debug("%s << %s", self.label, line)
                    self._lines.put_nowait(line)
        finally:
            self._lines.put_nowait(None)

    async def _read_stderr(self) -> None:
        assert self._process.stderr is not None
        while True:
            raw = await self._process.stderr.readline()
            if not raw:
                return
            text = raw.decode("utf-8", errors="replace").rstrip()
            if text:
                logger.warning("%s stderr: %s", self.label, text)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(label={self.label!r}, pid={self.pid})"
