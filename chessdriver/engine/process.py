"""Engine processes: spawning a child process and connecting its pipes to a session."""

import asyncio
import contextlib
from typing import Optional

from loguru import logger

from chessdriver.engine.events import LineReceived, StreamClosed
from chessdriver.engine.session import EngineSession


class ProcessStream:
    """The stdin/stdout pipes of a child process, as a `LineStream`"""

    def __init__(self, process: asyncio.subprocess.Process) -> None:
        self.process = process
        self._closed = False

    @property
    def is_open(self) -> bool:
        return not self._closed and self.process.returncode is None

    def write(self, data: bytes) -> None:
        # StreamWriter.write never blocks: the transport buffers what the pipe can't take yet
        self.process.stdin.write(data)

    def close(self) -> None:
        """Forcibly close: stdin is closed and a child that is still running gets killed"""
        if self._closed:
            return
        self._closed = True
        if not self.process.stdin.is_closing():
            self.process.stdin.close()
        if self.process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                self.process.kill()


async def spawn_engine(command: list[str], working_dir: Optional[str] = None) -> asyncio.subprocess.Process:
    logger.info(f"Starting engine: {' '.join(command)}")
    return await asyncio.create_subprocess_exec(
        *command,
        stdin=asyncio.subprocess.PIPE,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
        cwd=working_dir,
    )


async def pump_lines(reader: asyncio.StreamReader, session: EngineSession) -> None:
    """Post every line the engine writes to the session; post StreamClosed at EOF"""
    while True:
        raw = await reader.readline()
        if not raw:
            break
        session.post(LineReceived(raw.decode(errors="replace")))
    session.post(StreamClosed())
