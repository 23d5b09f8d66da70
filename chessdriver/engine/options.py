"""
Engine options: tunable settings an engine declares about itself, and the per-session registry holding them.

Strategy pattern again: every option kind knows how to validate a candidate value.
A value reaches the engine only if the option accepts it.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional

from chessdriver.core.settings import OptionValue

TRUE_VALUES = {"true", "on", "1"}
FALSE_VALUES = {"false", "off", "0"}


@dataclass
class EngineOption:
    """Free-text option ("string" type). Accepts anything except line breaks"""

    name: str
    default: Optional[OptionValue] = None
    value: Optional[OptionValue] = None

    def __post_init__(self):
        if self.value is None:
            self.value = self.default

    def validate(self, value: OptionValue) -> bool:
        return "\n" not in str(value)

    def set_value(self, value: OptionValue) -> None:
        self.value = value

    def to_protocol(self, value: OptionValue) -> str:
        """How the value is written on the wire"""
        return str(value)


@dataclass
class SpinOption(EngineOption):
    """Integer within [minimum, maximum]"""

    minimum: int = 0
    maximum: int = 0

    def validate(self, value: OptionValue) -> bool:
        if isinstance(value, bool):
            return False
        try:
            number = int(value)
        except (TypeError, ValueError):
            return False
        return self.minimum <= number <= self.maximum


@dataclass
class CheckOption(EngineOption):
    """Boolean switch"""

    def validate(self, value: OptionValue) -> bool:
        if isinstance(value, bool):
            return True
        return str(value).lower() in TRUE_VALUES | FALSE_VALUES

    def to_protocol(self, value: OptionValue) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        return "true" if str(value).lower() in TRUE_VALUES else "false"


@dataclass
class ComboOption(EngineOption):
    """One out of a fixed set of choices"""

    choices: list[str] = field(default_factory=list)

    def validate(self, value: OptionValue) -> bool:
        return str(value) in self.choices


@dataclass
class ButtonOption(EngineOption):
    """Has no value: setting it triggers an action in the engine"""

    def validate(self, value: OptionValue) -> bool:
        return value in (None, "", True)

    def to_protocol(self, value: OptionValue) -> str:
        return ""


# --- REGISTRY ---
class OptionRegistry:
    """Options declared by one engine, by unique name. A redeclaration replaces the previous definition."""

    def __init__(self) -> None:
        self._options: dict[str, EngineOption] = {}

    def declare(self, option: EngineOption) -> None:
        self._options[option.name] = option

    def get(self, name: str) -> Optional[EngineOption]:
        return self._options.get(name)

    def names(self) -> list[str]:
        return list(self._options)

    def clear(self) -> None:
        self._options.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._options

    def __len__(self) -> int:
        return len(self._options)


# --- PARSING ---
OPTION_KEYWORDS = ("name", "type", "default", "min", "max", "var")
EMPTY_STRING_MARKER = "<empty>"


def _split_option_fields(text: str) -> dict[str, list[str]]:
    """
    'name Clear Hash type button' -> {'name': ['Clear Hash'], 'type': ['button']}

    Values run until the next keyword, so names and choices may contain spaces. 'var' may occur multiple times.
    """
    fields: dict[str, list[str]] = {}
    keyword: Optional[str] = None
    words: list[str] = []

    def _commit() -> None:
        if keyword is not None:
            fields.setdefault(keyword, []).append(" ".join(words))

    for token in text.split():
        if token in OPTION_KEYWORDS:
            _commit()
            keyword, words = token, []
        else:
            words.append(token)
    _commit()
    return fields


def _build_spin(name: str, default: Optional[str], fields: dict[str, list[str]]) -> Optional[EngineOption]:
    try:
        minimum = int(fields.get("min", ["0"])[0])
        maximum = int(fields.get("max", ["0"])[0])
        default_value = int(default) if default is not None else minimum
    except ValueError:
        return None
    return SpinOption(name, default_value, minimum=minimum, maximum=maximum)


def _build_check(name: str, default: Optional[str], fields: dict[str, list[str]]) -> Optional[EngineOption]:
    return CheckOption(name, (default or "false").lower() in TRUE_VALUES)


def _build_combo(name: str, default: Optional[str], fields: dict[str, list[str]]) -> Optional[EngineOption]:
    choices = fields.get("var", [])
    if default is not None and default not in choices:
        return None
    return ComboOption(name, default, choices=choices)


def _build_string(name: str, default: Optional[str], fields: dict[str, list[str]]) -> Optional[EngineOption]:
    if default == EMPTY_STRING_MARKER:
        default = ""
    return EngineOption(name, default or "")


def _build_button(name: str, default: Optional[str], fields: dict[str, list[str]]) -> Optional[EngineOption]:
    return ButtonOption(name)


OptionBuilderFn = Callable[[str, Optional[str], dict[str, list[str]]], Optional[EngineOption]]
OPTION_BUILDERS: dict[str, OptionBuilderFn] = {
    "spin": _build_spin,
    "check": _build_check,
    "combo": _build_combo,
    "string": _build_string,
    "button": _build_button,
}


def parse_option_line(text: str) -> Optional[EngineOption]:
    """
    Parse an option declaration (everything after the 'option' command word).

    ex) 'name Hash type spin default 16 min 1 max 1024'

    Returns None if the declaration cannot be understood.
    """
    fields = _split_option_fields(text)
    name = fields.get("name", [""])[0]
    option_type = fields.get("type", [""])[0]
    if not name or option_type not in OPTION_BUILDERS:
        return None

    default = fields["default"][0] if "default" in fields else None
    return OPTION_BUILDERS[option_type](name, default, fields)
