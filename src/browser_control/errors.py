"""
Control Plane Errors

Every error a request can surface maps to one HTTP status code:

- ValidationError (400): missing or malformed input
- AmbiguityError / EmptyRegistryError (400): no session could be chosen
- NotFoundError (404): unknown session, flow or profile
- anything else (500)

Script failures inside a chunk or flow are *not* errors at this level;
they are reported as failure payloads on a successful response.
"""

from typing import Any, Iterable


class ControlPlaneError(Exception):
    """Base class for errors that carry an HTTP status code."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message}


class ValidationError(ControlPlaneError):
    """Missing or invalid caller input."""

    status_code = 400


class InvalidStateError(ValidationError):
    """Operation issued against a session that is not active."""


class ScriptError(ValidationError):
    """A chunk or flow script could not be parsed."""

    def __init__(self, message: str, line: int | None = None):
        super().__init__(message)
        self.line = line


class ExecutionError(ControlPlaneError):
    """An action in a caller-supplied script failed against the page."""

    def __init__(self, message: str, line: int | None = None, action: str | None = None):
        super().__init__(message)
        self.line = line
        self.action = action


class NotFoundError(ControlPlaneError):
    status_code = 404


class EmptyRegistryError(ControlPlaneError):
    """No sessions are active, so none can be resolved implicitly."""

    status_code = 400

    def __init__(self, message: str = "No active sessions. Create one first with POST /sessions {\"url\": ...}."):
        super().__init__(message)


class AmbiguityError(ControlPlaneError):
    """Several sessions are active and none was named."""

    status_code = 400

    def __init__(self, names: Iterable[str]):
        self.names = sorted(names)
        listed = ", ".join(f'"{n}"' for n in self.names)
        super().__init__(
            f"Multiple sessions active ({listed}). "
            "Specify one with ?session=<name> or name a session \"default\"."
        )

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "sessions": self.names}
