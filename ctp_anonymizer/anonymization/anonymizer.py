"""Script-driven anonymizer.

Processing flow:
1. Parse the whole script into commands, so a malformed command rejects
   the script before anything is touched.
2. Copy the document and run the commands in order against the copy:
   assignments fill the variable table, path commands set, create or
   remove values at the addressed nodes.
3. On success, move the copy's content into the caller's document.
   On any error, leave the caller's document as it was and report
   QUARANTINE.
"""

from __future__ import annotations

from typing import ClassVar

from ctp_anonymizer.anonymization.base import BaseAnonymizer
from ctp_anonymizer.anonymization.models import AnonymizerStatus
from ctp_anonymizer.logging.logger import Log
from ctp_anonymizer.script import paths
from ctp_anonymizer.script.commands import Command, CommandKind, parse_commands
from ctp_anonymizer.script.evaluator import Expression
from ctp_anonymizer.script.library import FunctionLibrary
from ctp_anonymizer.script.tree import BaseTree


class ScriptAnonymizer(BaseAnonymizer):
    """Runs anonymizer scripts against XML or DICOM trees.

    The function library, and through it any lookup or integer table, is
    shared by every pass; variables are not.
    """

    PRINT: ClassVar[str] = "$print"

    def __init__(self, functions: FunctionLibrary | None = None) -> None:
        self._functions = functions if functions is not None else FunctionLibrary()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def anonymize(self, tree: BaseTree, script: str) -> AnonymizerStatus:
        try:
            commands = list(parse_commands(script))
            working = tree.copy()
            self._run(working, commands)
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            Log.warning(f"Anonymization failed: {message}")
            return AnonymizerStatus.quarantine(tree, message)

        tree.replace_with(working)
        return AnonymizerStatus.ok(tree)

    # ------------------------------------------------------------------
    # Command execution
    # ------------------------------------------------------------------

    def _run(self, tree: BaseTree, commands: list[Command]) -> None:
        variables: dict[str, str] = {}
        for command in commands:
            if command.kind is CommandKind.ASSIGN:
                self._assign(tree, variables, command)
            elif command.kind is CommandKind.PATH:
                self._apply(tree, variables, command)

    def _assign(self, tree: BaseTree, variables: dict[str, str], command: Command) -> None:
        value = Expression(tree, variables, command.right, self._functions).value("")
        if command.left == self.PRINT:
            Log.warning(value)
        else:
            variables[command.left] = value

    def _apply(self, tree: BaseTree, variables: dict[str, str], command: Command) -> None:
        expression = Expression(tree, variables, command.right, self._functions)
        matches = paths.resolve(tree, tree.document, command.left, expression.is_required)
        for match in matches:
            value = expression.value(paths.value_of(tree, match))
            if expression.is_removed:
                paths.remove_match(tree, match)
            elif expression.is_required or paths.exists(tree, match):
                paths.set_value(tree, match, value)
