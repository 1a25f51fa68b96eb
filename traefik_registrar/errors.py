# traefik_registrar/errors.py
from __future__ import annotations

from typing import Optional


class RegistrarError(RuntimeError):
    """Base class for everything raised while discovering or registering capabilities."""


class DefinitionLoadError(RegistrarError, OSError):
    """The template tree or a definition/schema file could not be read."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"cannot read {path}: {reason}")
        self.path = path
        self.reason = reason


class DefinitionParseError(RegistrarError, ValueError):
    """A definition document is not valid JSON (or not a JSON object)."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"malformed definition {source}: {reason}")
        self.source = source
        self.reason = reason


class ReleaseNotFoundError(RegistrarError):
    pass


class ChartError(RegistrarError):
    pass


class TransientRegistrationError(RegistrarError):
    """One POST attempt failed in a way worth retrying."""

    def __init__(self, *, url: str, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.url = url
        self.message = message
        self.status = status


class RegistrationNetworkError(TransientRegistrationError):
    pass


class RegistrationHTTPStatusError(TransientRegistrationError):
    pass


class RegistrationError(RegistrarError):
    """Retries exhausted; carries the last status/message seen."""

    def __init__(self, *, url: str, message: str, status: Optional[int] = None) -> None:
        detail = f"HTTP {status}" if status is not None else "network error"
        super().__init__(f"registration to {url} failed ({detail}): {message}")
        self.url = url
        self.message = message
        self.status = status


class PermanentRegistrationError(RegistrarError):
    """The item can never be sent (e.g. it does not serialise to JSON); not retried."""
