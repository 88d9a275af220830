from __future__ import annotations


class ConsoleError(Exception):
    """Base class for failures surfaced by the console."""


class TransportError(ConsoleError):
    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class UnauthorizedError(TransportError):
    def __init__(self, message: str = "unauthorized") -> None:
        super().__init__(message, status=401)


class MalformedTemplateError(ConsoleError):
    """The Symedia body template is not a JSON object."""


class WireFormatError(ConsoleError):
    """The service returned a configuration document that is not an object."""
