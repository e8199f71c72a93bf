"""Base classes for configuration and runtime state models.

Kept apart from config.py so that log.py can build on them without
importing the full State definition.
"""

from __future__ import annotations

import sys
from typing import Protocol, runtime_checkable

from pydantic import BaseModel


@runtime_checkable
class Closeable(Protocol):
    """Anything with a synchronous close()."""

    def close(self) -> None:
        ...


class BaseCloseable(BaseModel):
    """Model that closes its Closeable fields when it is closed.

    Closing cascades down the model tree:
    Config.close() -> Logger.close() -> FileSink.close()

    A child that fails to close is reported on stderr and the
    remaining children are still closed.
    """

    def close(self):
        for field_name in self.__class__.model_fields:
            child = getattr(self, field_name, None)
            if child is None or not isinstance(child, Closeable):
                continue
            try:
                child.close()
            except Exception as e:
                print(
                    f"Warning: error closing {field_name}: {e}",
                    file=sys.stderr,
                )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):  # noqa: U100
        self.close()
        return False


class BaseConfig(BaseCloseable):
    """Marker base for configuration sections (YAML/env/CLI)."""


class BaseState(BaseCloseable):
    """Marker base for runtime sections mutated by workflows."""


__all__ = ["Closeable", "BaseCloseable", "BaseConfig", "BaseState"]
