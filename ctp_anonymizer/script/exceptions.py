class ScriptError(Exception):
    """Base exception for all anonymizer script errors."""


class MalformedCommandError(ScriptError):
    """Raised when an assignment or path command has no equal sign."""


class InsufficientArgumentsError(ScriptError):
    """Raised when a function call supplies fewer arguments than its arity."""


class UnparsableNumericArgumentError(ScriptError):
    """Raised when a numeric function argument does not parse."""


class ScriptFunctionError(ScriptError):
    """Raised when a script function cannot compute its value."""
