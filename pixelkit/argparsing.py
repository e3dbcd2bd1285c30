"""A small registry of typed command-line options."""

from __future__ import annotations

import enum
import sys
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

_INT_MIN = -(1 << 31)
_INT_MAX = (1 << 31) - 1


class ArgumentError(ValueError):
    """Raised when a command line does not match the registered options."""


class ArgType(enum.Enum):
    """The kind of value an option takes."""

    NONE = enum.auto()
    INT = enum.auto()
    FLOAT = enum.auto()
    CHAR = enum.auto()
    STRING = enum.auto()


@dataclass(frozen=True)
class _Option:
    name: str
    description: str
    arg_type: ArgType
    short_name: str | None

    @property
    def takes_value(self) -> bool:
        return self.arg_type is not ArgType.NONE

    def convert(self, text: str) -> Any:
        try:
            if self.arg_type is ArgType.INT:
                value = int(text)
                if not _INT_MIN <= value <= _INT_MAX:
                    raise ValueError(text)
                return value
            if self.arg_type is ArgType.FLOAT:
                return float(text)
            if self.arg_type is ArgType.CHAR:
                if len(text) != 1:
                    raise ValueError(text)
                return text
        except ValueError:
            raise ArgumentError(
                f"the argument ('{text}') for option '--{self.name}' is invalid"
            ) from None
        return text


class ArgumentParsing:
    """Register options, parse a command line, then query what was given."""

    def __init__(self) -> None:
        self._options: dict[str, _Option] = {}
        self._values: dict[str, Any] = {}

    def reg(
        self,
        name: str,
        description: str,
        arg_type: ArgType = ArgType.NONE,
        short_name: str | None = None,
    ) -> None:
        """Register the option ``--name`` and, optionally, ``-short_name``."""
        if not name:
            raise ValueError("an option needs a name")
        if name in self._options:
            raise ValueError(f"option '--{name}' is already registered")
        if short_name is not None:
            if len(short_name) != 1:
                raise ValueError(f"short option name must be one character, not {short_name!r}")
            if any(o.short_name == short_name for o in self._options.values()):
                raise ValueError(f"short option '-{short_name}' is already registered")
        self._options[name] = _Option(name, description, ArgType(arg_type), short_name)

    def _find_long(self, name: str) -> _Option:
        if name in self._options:
            return self._options[name]
        candidates = [o for key, o in self._options.items() if name and key.startswith(name)]
        if len(candidates) == 1:
            return candidates[0]
        if candidates:
            names = ", ".join(f"'--{o.name}'" for o in candidates)
            raise ArgumentError(f"option '--{name}' is ambiguous and matches {names}")
        raise ArgumentError(f"unrecognised option '--{name}'")

    def _find_short(self, char: str) -> _Option:
        for option in self._options.values():
            if option.short_name == char:
                return option
        raise ArgumentError(f"unrecognised option '-{char}'")

    @staticmethod
    def _take_value(option: _Option, inline: str | None, pending: deque[str]) -> Any:
        if not option.takes_value:
            if inline is not None:
                raise ArgumentError(f"option '--{option.name}' does not take any arguments")
            return True
        if inline is None:
            if not pending or (pending[0].startswith("-") and len(pending[0]) > 1):
                raise ArgumentError(
                    f"the required argument for option '--{option.name}' is missing"
                )
            inline = pending.popleft()
        return option.convert(inline)

    @staticmethod
    def _record(found: dict[str, Any], option: _Option, value: Any) -> None:
        if option.name in found:
            raise ArgumentError(f"option '--{option.name}' cannot be specified more than once")
        found[option.name] = value

    def process(self, argv: Sequence[str] | None = None) -> None:
        """Parse ``argv`` (without the program name; defaults to ``sys.argv[1:]``).

        Values already stored by an earlier call are kept.
        """
        pending = deque(sys.argv[1:] if argv is None else argv)
        found: dict[str, Any] = {}
        while pending:
            token = pending.popleft()
            if token == "--":
                if pending:
                    raise ArgumentError(
                        "too many positional options have been specified on the command line"
                    )
                break
            if token.startswith("--"):
                name, eq, inline = token[2:].partition("=")
                option = self._find_long(name)
                value = self._take_value(option, inline if eq else None, pending)
                self._record(found, option, value)
            elif token.startswith("-") and len(token) > 1:
                rest = token[1:]
                while rest:
                    option = self._find_short(rest[0])
                    rest = rest[1:]
                    if option.takes_value:
                        value = self._take_value(option, rest or None, pending)
                        rest = ""
                    else:
                        value = True
                    self._record(found, option, value)
            else:
                raise ArgumentError(
                    "too many positional options have been specified on the command line"
                )
        for name, value in found.items():
            self._values.setdefault(name, value)

    def is_set(self, name: str) -> bool:
        """Whether the option ``name`` was given on the command line."""
        return name in self._values

    def value(self, name: str) -> Any:
        """The option's converted value, True for a given flag, None if not given."""
        return self._values.get(name)

    def usage(self) -> str:
        """A description of every registered option."""
        entries = []
        for option in self._options.values():
            if option.short_name:
                left = f"  -{option.short_name} [ --{option.name} ]"
            else:
                left = f"  --{option.name}"
            if option.takes_value:
                left += " arg"
            entries.append((left, option.description))
        lines = ["Allowed options:"]
        if entries:
            column = max(len(left) for left, _ in entries) + 2
            lines.extend(f"{left.ljust(column)}{text}".rstrip() for left, text in entries)
        return "\n".join(lines)