"""
Generic line dialect: one command per line, first word is the command.

    driver -> engine                    engine -> driver
    protocol                            protocolok
    ping <n>                            pong <n>
    setoption name <x> [value <y>]      option name <x> type <t> ...
    new <variant>                       id name <name>
    move <move>                         variants <a>,<b>
    go                                  move <move>
    quit

The command words are configurable (`ProtocolVocabulary`), so the same session speaks to engines
that use a slightly different wording of the same conversation.
"""

from typing import Optional

from pydantic import BaseModel, field_validator

from chessdriver.core.exceptions import AmbiguousOrUnknownNotationError, InvalidSettingsError
from chessdriver.core.settings import OptionValue
from chessdriver.core.shared_types import PlayerState
from chessdriver.engine.options import ButtonOption, EngineOption, parse_option_line
from chessdriver.engine.session import EngineSession, LineStream, SessionIdGenerator


class ProtocolVocabulary(BaseModel):
    protocol_start: str = "protocol"
    protocol_ack: str = "protocolok"
    ping: str = "ping"
    pong: str = "pong"
    option: str = "option"
    set_option: str = "setoption"
    move: str = "move"
    new_game: str = "new"
    go: str = "go"
    quit: str = "quit"
    id: str = "id"
    variants: str = "variants"

    @field_validator("*")
    @classmethod
    def validate_word(cls, value: str) -> str:
        """A command word is a single token"""
        if not value or len(value.split()) != 1 or value != value.strip():
            raise InvalidSettingsError(f"Invalid command word: {value!r}")
        return value


class LineProtocolSession(EngineSession):
    def __init__(
        self,
        stream: LineStream,
        id_generator: SessionIdGenerator,
        name: str = "engine",
        vocabulary: Optional[ProtocolVocabulary] = None,
        **kwargs,
    ) -> None:
        super().__init__(stream, id_generator, name, **kwargs)
        self.vocabulary = vocabulary or ProtocolVocabulary()
        self._ping_id = 0

    # --- DRIVER -> ENGINE ---
    def start_protocol(self) -> None:
        self.write(self.vocabulary.protocol_start)

    def send_ping(self) -> bool:
        if not self.stream.is_open:
            return False
        self._ping_id += 1
        self.write(f"{self.vocabulary.ping} {self._ping_id}")
        return True

    def send_option(self, option: EngineOption, value: OptionValue) -> None:
        line = f"{self.vocabulary.set_option} name {option.name}"
        if not isinstance(option, ButtonOption):
            line += f" value {option.to_protocol(value)}"
        self.write(line)

    def send_quit(self) -> None:
        self.write(self.vocabulary.quit)

    def send_move(self, text: str) -> None:
        self.write(f"{self.vocabulary.move} {text}")

    def start_game(self) -> None:
        self.write(f"{self.vocabulary.new_game} {self.board.variant}")

    def go(self) -> None:
        super().go()
        self.write(self.vocabulary.go)

    # --- ENGINE -> DRIVER ---
    def parse_line(self, line: str) -> None:
        command, _, rest = line.partition(" ")
        vocabulary = self.vocabulary

        if command == vocabulary.protocol_ack:
            self._on_protocol_ack()
        elif command == vocabulary.pong:
            self._on_pong(rest)
        elif command == vocabulary.option:
            self._on_option(rest)
        elif command == vocabulary.move:
            self._on_engine_move(rest)
        elif command == vocabulary.id:
            self._on_id(rest)
        elif command == vocabulary.variants:
            self.variants = {variant.strip() for variant in rest.split(",") if variant.strip()}
        elif line:
            self.log.warning(f"Unknown command from {self.name}: {line}")

    def _on_protocol_ack(self) -> None:
        if self.state != PlayerState.STARTING:
            self.log.warning(f"{self.name} confirmed the protocol start twice")
            return
        self.on_protocol_start()

    def _on_pong(self, text: str) -> None:
        try:
            pong_id = int(text)
        except ValueError:
            self.log.warning(f"Malformed pong from {self.name}: {text!r}")
            return
        if pong_id != self._ping_id:
            self.log.debug(f"Ignoring stale pong {pong_id} (expecting {self._ping_id})")
            return
        self.on_heartbeat_ack()

    def _on_option(self, text: str) -> None:
        option = parse_option_line(text)
        if option is None:
            self.log.warning(f"Invalid option declaration from {self.name}: {text}")
            return
        self.declare_option(option)

    def _on_id(self, text: str) -> None:
        key, _, value = text.partition(" ")
        if key == "name" and value:
            self.rename(value)

    def _on_engine_move(self, text: str) -> None:
        if self.board is None or self.state != PlayerState.THINKING:
            self.log.warning(f"{self.name} moved out of turn: {text}")
            return
        try:
            move = self.board.decode(text)
        except AmbiguousOrUnknownNotationError as error:
            self.log.warning(f"Illegal move from {self.name}: {text} ({error})")
            self.illegal_move.emit(text, error)
            return

        self.board.make_move(move)
        self.set_state(PlayerState.OBSERVING)
        self.move_made.emit(move)
