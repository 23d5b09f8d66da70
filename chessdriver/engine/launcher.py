"""
Launcher: turns `EngineSettings` into a running engine (process + session + the tasks feeding it).

The launcher owns the session id generator, so every session it creates gets a fresh id.
"""

import asyncio
import contextlib
from dataclasses import dataclass, field
from typing import Callable, Optional

from chessdriver.core.config import DriverSettings
from chessdriver.core.config import settings as default_settings
from chessdriver.core.exceptions import InvalidSettingsError
from chessdriver.core.settings import EngineSettings
from chessdriver.engine.line_protocol import LineProtocolSession
from chessdriver.engine.process import ProcessStream, pump_lines, spawn_engine
from chessdriver.engine.session import EngineSession, SessionIdGenerator

SessionFactory = Callable[..., EngineSession]


@dataclass
class RunningEngine:
    session: EngineSession
    process: asyncio.subprocess.Process
    tasks: list[asyncio.Task] = field(default_factory=list)
    quit_grace_period: float = 5.0

    async def shutdown(self) -> Optional[int]:
        """Ask the engine to quit, kill it if it doesn't. Returns the exit code"""
        self.session.quit()
        try:
            await asyncio.wait_for(self.process.wait(), timeout=self.quit_grace_period)
        except asyncio.TimeoutError:
            self.session.log.warning(f"{self.session.name}({self.session.id}) did not quit in time, killing it")
            with contextlib.suppress(ProcessLookupError):
                self.process.kill()
            await self.process.wait()

        self.session.stream.close()
        for task in self.tasks:
            task.cancel()
        await asyncio.gather(*self.tasks, return_exceptions=True)
        return self.process.returncode


class EngineLauncher:
    def __init__(
        self,
        config: Optional[DriverSettings] = None,
        id_generator: Optional[SessionIdGenerator] = None,
        session_factory: SessionFactory = LineProtocolSession,
    ) -> None:
        self.config = config or default_settings
        self.id_generator = id_generator or SessionIdGenerator()
        self.session_factory = session_factory

    async def launch(self, engine_settings: EngineSettings) -> RunningEngine:
        if not engine_settings.command:
            raise InvalidSettingsError(f"No command given for engine {engine_settings.name}.")

        process = await spawn_engine(engine_settings.command, engine_settings.working_dir)
        session = self.session_factory(
            ProcessStream(process),
            self.id_generator,
            name=engine_settings.name,
            heartbeat_timeout=self.config.heartbeat_timeout,
            trace_io=self.config.trace_io,
        )
        # not started yet: init strings get buffered, options wait for the protocol start
        session.apply_settings(engine_settings)

        tasks = [
            asyncio.create_task(pump_lines(process.stdout, session)),
            asyncio.create_task(session.run()),
        ]
        session.start()
        return RunningEngine(session, process, tasks, self.config.quit_grace_period)
