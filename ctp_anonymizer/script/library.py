"""Dispatch of ``$name(...)`` script calls onto the transforms in ``functions``.

Each script function has a fixed minimum arity. Arguments arrive already
evaluated, as strings; this module trims and converts them the way each
function expects before calling into ``functions``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import ClassVar

from ctp_anonymizer.logging.logger import Log
from ctp_anonymizer.script import functions
from ctp_anonymizer.script.exceptions import (
    InsufficientArgumentsError,
    ScriptError,
    ScriptFunctionError,
    UnparsableNumericArgumentError,
)
from ctp_anonymizer.script.functions import IntegerSource, LookupSource

REQUIRE = "$require"
REMOVE = "$remove"


def _arg(args: list[str], index: int, default: str = "") -> str:
    return args[index] if index < len(args) else default


def _optional_int(text: str) -> int | None:
    """Integer value of *text*, or None when it is empty or does not parse."""
    try:
        return int(text.strip())
    except ValueError:
        return None


def _required_int(text: str, name: str, what: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        message = f'Non-parsing {what} ("{text}") in {name} script'
        Log.warning(message)
        raise UnparsableNumericArgumentError(message) from None


def _replacement_int(text: str) -> int:
    value = _optional_int(text)
    return -1 if value is None else value


class FunctionLibrary:
    """The set of functions callable from an anonymizer script.

    Args:
        lookup_table: source for ``$lookup``; calls fail without one.
        integer_table: source for ``$integer``; calls fail without one.
    """

    _ARITY: ClassVar[dict[str, int]] = {
        REQUIRE: 1,
        REMOVE: 0,
        "$uid": 1,
        "$hashuid": 2,
        "$hash": 1,
        "$hashname": 1,
        "$hashptid": 2,
        "$round": 2,
        "$encrypt": 2,
        "$incrementdate": 2,
        "$modifydate": 4,
        "$initials": 1,
        "$time": 0,
        "$date": 0,
        "$lookup": 2,
        "$integer": 2,
    }

    def __init__(
        self,
        lookup_table: LookupSource | None = None,
        integer_table: IntegerSource | None = None,
    ) -> None:
        self._lookup_table = lookup_table
        self._integer_table = integer_table
        self._handlers: dict[str, Callable[[list[str]], str]] = {
            REQUIRE: self._require,
            REMOVE: self._remove,
            "$uid": self._uid,
            "$hashuid": self._hashuid,
            "$hash": self._hash,
            "$hashname": self._hashname,
            "$hashptid": self._hashptid,
            "$round": self._round,
            "$encrypt": self._encrypt,
            "$incrementdate": self._incrementdate,
            "$modifydate": self._modifydate,
            "$initials": self._initials,
            "$time": self._time,
            "$date": self._date,
            "$lookup": self._lookup,
            "$integer": self._integer,
        }

    def __contains__(self, name: str) -> bool:
        return name in self._handlers

    def arity(self, name: str) -> int:
        return self._ARITY[name]

    def call(self, name: str, args: list[str]) -> str:
        """Run the script function *name* on evaluated *args*.

        An unknown name is logged and contributes the empty string.

        Raises:
            InsufficientArgumentsError: if fewer args than the arity are given.
            UnparsableNumericArgumentError: if a required number does not parse.
            ScriptFunctionError: if the function cannot compute a value.
        """
        handler = self._handlers.get(name)
        if handler is None:
            Log.warning(f"Unknown script function {name}")
            return ""
        if len(args) < self._ARITY[name]:
            message = f"Insufficient arguments for {name}"
            Log.warning(message)
            raise InsufficientArgumentsError(message)
        try:
            return handler(args)
        except ScriptError:
            raise
        except (ValueError, ArithmeticError) as exc:
            raise ScriptFunctionError(f"{name} failed: {exc}") from exc

    def _require(self, args: list[str]) -> str:
        return args[0]

    def _remove(self, args: list[str]) -> str:
        return ""

    def _uid(self, args: list[str]) -> str:
        return functions.new_uid(args[0].strip())

    def _hashuid(self, args: list[str]) -> str:
        return functions.hash_uid(args[0].strip(), args[1].strip())

    def _hash(self, args: list[str]) -> str:
        return functions.md5_hash(args[0], _optional_int(_arg(args, 1)))

    def _hashname(self, args: list[str]) -> str:
        return functions.hash_name(
            args[0],
            _optional_int(_arg(args, 1)),
            _optional_int(_arg(args, 2)),
        )

    def _hashptid(self, args: list[str]) -> str:
        return functions.hash_ptid(args[0], args[1], _optional_int(_arg(args, 2)))

    def _round(self, args: list[str]) -> str:
        group = _required_int(args[1], "$round", "group size")
        return functions.round_age(args[0], group)

    def _encrypt(self, args: list[str]) -> str:
        return functions.encrypt(args[0], args[1])

    def _incrementdate(self, args: list[str]) -> str:
        days = _required_int(args[1], "$incrementdate", "increment")
        return functions.increment_date(args[0].strip(), days)

    def _modifydate(self, args: list[str]) -> str:
        year, month, day = (_replacement_int(arg) for arg in args[1:4])
        return functions.modify_date(args[0].strip(), year, month, day)

    def _initials(self, args: list[str]) -> str:
        return functions.initials(args[0].strip())

    def _time(self, args: list[str]) -> str:
        return functions.current_time(_arg(args, 0))

    def _date(self, args: list[str]) -> str:
        return functions.current_date(_arg(args, 0))

    def _lookup(self, args: list[str]) -> str:
        return functions.lookup(self._lookup_table, args[0], args[1])

    def _integer(self, args: list[str]) -> str:
        width = _optional_int(_arg(args, 2)) or 0
        return functions.integer(self._integer_table, args[0], args[1], width)
