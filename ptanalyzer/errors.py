from __future__ import annotations


class AnalysisError(RuntimeError):
    """Internal error of an analysis run; never recovered from."""


class ArgumentMismatchError(AnalysisError):
    """A resolved call edge whose actual and formal argument counts differ."""

    def __init__(self, call_site: str, callee: str, n_args: int, n_params: int) -> None:
        super().__init__(
            f"{call_site} passes {n_args} argument(s) to {callee}, "
            f"which declares {n_params} parameter(s)"
        )
        self.call_site = call_site
        self.callee = callee


class DispatchError(AnalysisError):
    """No dispatch target for an instance call on a known receiver type."""

    def __init__(self, receiver_type: str, subsignature: str, call_site: str) -> None:
        super().__init__(
            f"cannot dispatch {subsignature} on receiver type {receiver_type} "
            f"at {call_site}"
        )
        self.receiver_type = receiver_type
        self.subsignature = subsignature


class EntryMethodError(AnalysisError):
    """The requested entry method is missing or has no body."""


class JimpleSyntaxError(ValueError):
    """Malformed Jimple input."""

    def __init__(self, message: str, line_number: int | None = None) -> None:
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number
