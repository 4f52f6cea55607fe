"""Evaluates the right-hand side of anonymizer script commands.

An expression is scanned once, left to right:

- ``"..."`` is a literal; inside it ``\\"`` is a quote and ``\\\\`` a backslash,
  any other backslash is kept as is
- ``$name(args)`` calls a script function; each comma-separated argument
  is itself an expression
- ``$name`` is a variable reference ("null" when unset)
- ``this`` is the current value of the node being replaced
- ``/path`` and ``//path`` are replaced by the value at the end of the path,
  taking the first match at every step ("null" when unresolved)
- a top-level ``,`` ends one value and starts the next

Anything else is skipped, so numbers must be written as literals.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping

from ctp_anonymizer.script import paths
from ctp_anonymizer.script.library import REMOVE, REQUIRE, FunctionLibrary
from ctp_anonymizer.script.paths import NULL
from ctp_anonymizer.script.tree import BaseTree

THIS = "this"

_NAME_DELIMITERS = "(,)"
_ESCAPED = '"\\'


def _find_delimiter(text: str, k: int) -> int:
    """Index of the whitespace, '(', ',' or ')' that ends the name at *k*."""
    while k < len(text) and not text[k].isspace() and text[k] not in _NAME_DELIMITERS:
        k += 1
    return k


def _is_escape(text: str, k: int) -> bool:
    return text[k] == "\\" and k + 1 < len(text) and text[k + 1] in _ESCAPED


def _skip_quote(text: str, k: int) -> int:
    """Index just past the quote closing the literal whose body starts at *k*."""
    while k < len(text):
        if _is_escape(text, k):
            k += 2
        elif text[k] == '"':
            return k + 1
        else:
            k += 1
    return k


def _find_params_end(text: str, k: int) -> int:
    """Index of the ')' matching the '(' at *k*, or the end of *text*."""
    depth = 0
    while k < len(text):
        c = text[k]
        k += 1
        if c == "(":
            depth += 1
        elif c == '"':
            k = _skip_quote(text, k)
        elif c == ")":
            depth -= 1
        if depth == 0:
            return k - 1
    return k


def _read_literal(text: str, k: int) -> tuple[str, int]:
    """Body of the literal starting at *k* and the index after its closing quote."""
    parts: list[str] = []
    while k < len(text):
        c = text[k]
        if _is_escape(text, k):
            parts.append(text[k + 1])
            k += 2
        elif c == '"':
            return "".join(parts), k + 1
        else:
            parts.append(c)
            k += 1
    return "".join(parts), k


class Expression:
    """One command right-hand side, bound to the tree and variables of a pass."""

    def __init__(
        self,
        tree: BaseTree,
        variables: Mapping[str, str],
        text: str,
        functions: FunctionLibrary | None = None,
    ) -> None:
        self._tree = tree
        self._variables = variables
        self._functions = functions if functions is not None else FunctionLibrary()
        self.text = text.strip()

    @property
    def is_required(self) -> bool:
        return self.text.startswith(f"{REQUIRE}(")

    @property
    def is_removed(self) -> bool:
        return self.text.startswith(f"{REMOVE}(")

    def value(self, this: str) -> str:
        """The first value of the expression, with *this* as the current node value."""
        value, _ = next(self.values(this))
        return value

    def values(self, this: str) -> Iterator[tuple[str, bool]]:
        """Yield each comma-separated value with a flag telling if more follow.

        Always yields at least once. Each call starts a fresh scan.

        Raises:
            ScriptError: from the function calls made along the way.
        """
        text = self.text
        k = 0
        value: list[str] = []
        while k < len(text):
            c = text[k]
            if c == '"':
                literal, k = _read_literal(text, k + 1)
                value.append(literal)
            elif c == "$":
                kk = _find_delimiter(text, k)
                name = text[k:kk]
                if kk < len(text) and text[kk] == "(":
                    end = _find_params_end(text, kk)
                    args = self._arguments(text[kk + 1 : end], this)
                    k = end + 1
                    if name == REMOVE:
                        has_more = k < len(text)
                        yield "", has_more
                        if not has_more:
                            return
                        value = []
                        continue
                    value.append(self._functions.call(name, args))
                else:
                    value.append(self._variables.get(name, NULL))
                    k = kk
            elif c == "t":
                kk = _find_delimiter(text, k)
                if text[k:kk] == THIS:
                    value.append(this)
                k = kk
            elif c == "/":
                kk = _find_delimiter(text, k)
                value.append(paths.first_value(self._tree, self._tree.document, text[k:kk]))
                k = kk
            elif c == ",":
                yield "".join(value), True
                value = []
                k += 1
            else:
                k += 1
        yield "".join(value), False

    def _arguments(self, text: str, this: str) -> list[str]:
        if not text.strip():
            return []
        nested = Expression(self._tree, self._variables, text, self._functions)
        return [value for value, _ in nested.values(this)]
