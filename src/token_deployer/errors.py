"""Error taxonomy shared by every deployment action."""

from __future__ import annotations

from typing import Any, Iterable, Optional


class DeployerError(Exception):
    """Base class for failures the CLI reports as a single line."""


class ConfigError(DeployerError):
    """Configuration file missing, unparsable, or inconsistent."""


class CredentialError(DeployerError):
    """A required keypair file is missing or malformed."""

    def __init__(self, message: str, names: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.names = tuple(names)


class PrerequisiteError(DeployerError):
    """A named precondition failed before any step ran."""

    def __init__(
        self,
        check: str,
        message: str,
        current: Optional[Any] = None,
        required: Optional[Any] = None,
    ) -> None:
        self.check = check
        self.current = current
        self.required = required
        if current is not None or required is not None:
            message = f"{message} (required: {required}, available: {current})"
        super().__init__(message)


class StepError(DeployerError):
    """An external call made on behalf of a plan step failed."""

    def __init__(self, message: str, step_name: Optional[str] = None) -> None:
        super().__init__(message)
        self.step_name = step_name


class PersistenceError(DeployerError):
    """The deployment record could not be written."""
