"""Per-engine settings models (what the driver hands to a session before/while starting it)"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from chessdriver.core.exceptions import InvalidSettingsError

OptionValue = str | int | bool


class CustomSetting(BaseModel):
    """A single engine option edit: name + the value to set."""

    name: str
    value: OptionValue

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        if not value.strip():
            raise InvalidSettingsError("Option name cannot be empty.")
        return value.strip()


class TimeControl(BaseModel):
    """
    Time control of a game.
    ---
    * moves_per_tc: number of moves in a time control period (0 means the whole game)
    * time_per_tc_ms: base time for the period
    * increment_ms: time added after every move
    * time_per_move_ms: fixed time per move (overrides the rest if set)
    """

    moves_per_tc: int = Field(default=0, ge=0)
    time_per_tc_ms: int = Field(default=0, ge=0)
    increment_ms: int = Field(default=0, ge=0)
    time_per_move_ms: int = Field(default=0, ge=0)

    def is_valid(self) -> bool:
        return self.time_per_move_ms > 0 or self.time_per_tc_ms > 0


class EngineSettings(BaseModel):
    name: str = "engine"
    command: list[str] = Field(default_factory=list)
    working_dir: Optional[str] = None
    init_strings: list[str] = Field(default_factory=list)
    custom_settings: list[CustomSetting] = Field(default_factory=list)
    time_control: TimeControl = Field(default_factory=TimeControl)
    white_eval_pov: bool = False

    @field_validator("init_strings")
    @classmethod
    def validate_init_strings(cls, value: list[str]) -> list[str]:
        """Every init string is written as exactly one protocol line"""
        for line in value:
            if "\n" in line or "\r" in line:
                raise InvalidSettingsError(
                    f"Init string {line!r} must not contain line terminators."
                )
        return value

    @field_validator("custom_settings")
    @classmethod
    def validate_unique_names(cls, value: list[CustomSetting]) -> list[CustomSetting]:
        names = [setting.name for setting in value]
        duplicates = {name for name in names if names.count(name) > 1}
        if duplicates:
            raise InvalidSettingsError(
                f"Option(s) configured more than once: {', '.join(sorted(duplicates))}"
            )
        return value
