"""Authorization header schemes tried in order on 401."""

from __future__ import annotations

from collections.abc import Iterator

from repobridge.host.models import Credential


class AuthScheme:
    """Formats an Authorization header value for a token."""

    def __init__(self, prefix: str):
        self.prefix = prefix

    def header(self, credential: Credential) -> str:
        return f"{self.prefix} {credential.token.get_secret_value()}"

    def __repr__(self) -> str:
        return f"AuthScheme({self.prefix!r})"


class AuthSchemes:
    """Ordered schemes for one host.

    Some token formats are accepted under only one prefix, so a
    request moves on to the next scheme when the host answers 401.
    """

    def __init__(self, prefixes: list[str]):
        if not prefixes:
            raise ValueError("At least one auth scheme is required")
        self._schemes = [AuthScheme(p) for p in prefixes]

    def __iter__(self) -> Iterator[AuthScheme]:
        return iter(self._schemes)

    def __len__(self) -> int:
        return len(self._schemes)


DEFAULT_SCHEMES = ["Bearer", "token"]
