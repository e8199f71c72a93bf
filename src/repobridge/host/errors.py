"""Errors raised by the repository host gateway."""

from __future__ import annotations


class GatewayError(Exception):
    """A host API call failed.

    Attributes:
        http_status: Status code of the failing response, or None
            when no response was received
        message: Human readable message, folded from the host body
    """

    def __init__(self, http_status: int | None, message: str):
        super().__init__(message)
        self.http_status = http_status
        self.message = message

    def __str__(self) -> str:
        if self.http_status is None:
            return self.message
        return f"HTTP {self.http_status}: {self.message}"


class CredentialError(GatewayError):
    """Every auth scheme was rejected; the token is invalid or expired."""


class NotFoundError(GatewayError):
    """The repository, ref or path does not exist."""


class EmptyRepositoryError(GatewayError):
    """The branch has no commits yet."""


class ValidationError(GatewayError):
    """The host rejected the request payload (422)."""


class RepositoryNameTakenError(ValidationError):
    """A repository with the requested name already exists."""

    def __init__(self, name: str):
        super().__init__(
            422,
            f"Repository name '{name}' already exists, choose another",
        )
        self.name = name


class TransientHostError(GatewayError):
    """Server side failure or network error. Not retried here."""


class PartialWriteError(GatewayError):
    """A per-file write sequence stopped part way.

    Files in `committed` stay committed on the branch; `failed_path`
    and everything after it were not written.
    """

    def __init__(
        self,
        committed: list[str],
        failed_path: str,
        cause: GatewayError,
    ):
        super().__init__(
            cause.http_status,
            f"Committed {len(committed)} file(s) before '{failed_path}' "
            f"failed: {cause.message}",
        )
        self.committed = committed
        self.failed_path = failed_path
        self.cause = cause


__all__ = [
    "GatewayError",
    "CredentialError",
    "NotFoundError",
    "EmptyRepositoryError",
    "ValidationError",
    "RepositoryNameTakenError",
    "TransientHostError",
    "PartialWriteError",
]
