"""Application state and configuration."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import platformdirs
from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from repobridge.core.base import BaseConfig, BaseState
from repobridge.core.log import Logger, logger, setup_logger
from repobridge.core.yaml_settings import YamlWithIncludesSettingsSource

# Modules usable in {module.attr} templates inside YAML values,
# e.g. {platformdirs.user_state_dir}
TEMPLATE_NAMESPACE = {
    'os': os,
    'platformdirs': platformdirs,
    'Path': Path,
}


# ============================================================
# CONFIG MODELS (loaded from YAML/env/CLI)
# ============================================================

class GitHubConfig(BaseConfig):
    """Repository host connection settings."""

    api_url: str = Field(
        default="https://api.github.com",
        description="Base URL of the host REST API",
    )
    token: SecretStr | None = Field(
        default=None,
        description=(
            "Personal access token (or set "
            "REPOBRIDGE_CONFIG__GITHUB__TOKEN)"
        ),
    )
    user_agent: str = Field(
        default="repobridge",
        description="User-Agent header sent with every request",
    )
    timeout: float = Field(
        default=30.0,
        description="Per-request timeout in seconds",
    )
    auth_schemes: list[str] = Field(
        default_factory=lambda: ["Bearer", "token"],
        description=(
            "Authorization prefixes tried in order; the next one is "
            "used only when the host answers 401"
        ),
    )


class MergeConfig(BaseConfig):
    """Reconciliation and commit settings."""

    concurrency: int = Field(
        default=8,
        ge=1,
        description="Maximum concurrent file reads and blob writes",
    )
    commit_message: str = Field(
        default="Merge repos via repobridge",
        description="Commit message for standard merges",
    )
    folder_prefix: str = Field(
        default="ai-studio",
        description="Folder used by pull/push when --prefix is not given",
    )
    new_repo_settle_seconds: float = Field(
        default=2.0,
        ge=0,
        description=(
            "Pause after creating a repository before writing to it"
        ),
    )


class Config(BaseConfig):
    """Application configuration loaded from YAML/env/CLI."""

    logger: Logger | None = Field(
        default=None,
        description="Logger sinks and levels",
    )
    github: GitHubConfig = Field(
        default_factory=GitHubConfig,
        description="Repository host settings",
    )
    merge: MergeConfig = Field(
        default_factory=MergeConfig,
        description="Reconciliation settings",
    )
    log_level: str = Field(
        default="info",
        alias="log-level",
        description="Console log level: trace, debug, info, warn, error",
    )
    log_root: Path = Field(
        default_factory=(
            lambda: Path(platformdirs.user_state_dir()) / "repobridge"
        ),
        description=(
            "Root directory for log files "
            "(supports {platformdirs.*} templates)"
        ),
    )
    history_file: Path | None = Field(
        default=None,
        description=(
            "JSON-lines sync history; defaults to "
            "<log_root>/history.jsonl"
        ),
    )

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode='after')
    def _setup_logger(self) -> Config:
        """Install the global logger once configuration is known."""
        if self.logger is None:
            self.logger = Logger(level=self.log_level)
        setup_logger(
            log_root=self.log_root,
            run_name="repobridge",
            level=self.logger.level,
            console=self.logger.console,
            file=self.logger.file,
            logfire=self.logger.logfire,
        )
        return self

    @property
    def history_path(self) -> Path:
        return self.history_file or self.log_root / "history.jsonl"

    def close(self):
        """Close the global logger as well as child sections."""
        logger.close()
        super().close()


# ============================================================
# RUNTIME STATE MODELS (mutable during workflow execution)
# ============================================================

class MergeState(BaseState):
    """State shared by the merge, pull and push workflows."""

    operation: str = Field(
        default="merge",
        description="merge, pull or push",
    )
    gateway: Any = Field(default=None, description="Host gateway")
    credential: Any = Field(default=None, description="Host credential")

    source: Any = Field(default=None, description="Source RepoRef")
    target: Any = Field(default=None, description="Target RepoRef")
    destination: Any = Field(
        default=None, description="RepoRef the commit is written to"
    )
    branch: str | None = Field(
        default=None, description="Destination branch override"
    )
    message: str | None = Field(
        default=None, description="Commit message override"
    )

    # Standard merge options
    new_repo_name: str | None = Field(
        default=None,
        description="Create this repository as the destination",
    )
    new_repo_private: bool = False
    resolve_policy: str = Field(
        default="none",
        description="Bulk resolution: source, target or none",
    )
    resolutions: dict[str, str] = Field(
        default_factory=dict,
        description="Custom content per conflicting path",
    )
    allow_unresolved: bool = False
    dry_run: bool = False

    # Folder mode options
    prefix: str | None = None

    # Results
    changes: list = Field(default_factory=list)
    plan: Any = Field(default=None, description="CommitPlan")
    result: Any = Field(default=None, description="PushResult")
    status: str = Field(
        default="pending",
        description=(
            "pending, running, gated, dry-run, nothing-to-push, "
            "complete, failed"
        ),
    )

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def target_ref(self) -> str | None:
        """Branch of the target to read when merging.

        The branch the commit lands on, unless a new repository is
        the destination; then the target is read at its default.
        """
        if self.new_repo_name is not None:
            return None
        return self.branch


class Runtime(BaseModel):
    """All runtime state, grouped by workflow."""

    merge: MergeState = Field(
        default_factory=MergeState,
        description="Reconciliation workflow state",
    )


# ============================================================
# STATE (config + runtime combined)
# ============================================================

class State(BaseSettings):
    """Configuration plus runtime state; flows through every workflow.

    Configuration sources, highest priority first:
    1. Command-line arguments (--config.github.api_url value)
    2. --include YAML files, ./repobridge.yaml, user repobridge.yaml
    3. .env file
    4. Environment variables (REPOBRIDGE_CONFIG__GITHUB__TOKEN=...)
    """

    config: Config = Field(
        default_factory=Config,
        description="Application configuration (from YAML/env/CLI)",
    )
    runtime: Runtime = Field(
        default_factory=Runtime,
        description="Runtime state (mutates during workflow execution)",
    )
    include: list[str] | None = Field(
        default=None,
        description="Additional YAML files to include and merge",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="REPOBRIDGE_",
        env_nested_delimiter="__",
        cli_implicit_flags=True,
        cli_use_class_docs_for_groups=True,
        arbitrary_types_allowed=True,
        extra='ignore',
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            YamlWithIncludesSettingsSource(settings_cls),
            dotenv_settings,
            env_settings,
            file_secret_settings,
        )

    @model_validator(mode="after")
    def substitute_templates(self) -> State:
        """Expand {config.*} and {platformdirs.*} templates in
        configuration strings and paths."""
        self._substitute_recursive(self.config)
        return self

    def _substitute_recursive(self, obj: Any) -> None:
        if isinstance(obj, BaseModel):
            for field_name in obj.__class__.model_fields:
                value = getattr(obj, field_name)
                new_value = self._substitute_value(value)
                if new_value is not value:
                    setattr(obj, field_name, new_value)
        elif isinstance(obj, dict):
            for key in obj:
                obj[key] = self._substitute_value(obj[key])
        elif isinstance(obj, list):
            for i, item in enumerate(obj):
                obj[i] = self._substitute_value(item)

    def _substitute_value(self, value: Any) -> Any:
        if isinstance(value, str):
            substituted = self._substitute_string(value)
            return value if substituted == value else substituted
        if isinstance(value, Path):
            substituted = self._substitute_string(str(value))
            return value if substituted == str(value) else Path(substituted)
        if isinstance(value, (BaseModel, dict, list)):
            self._substitute_recursive(value)
        return value

    def _substitute_string(self, value: str) -> str:
        """Replace {dotted.path} with the value it names.

        Examples:
            "{config.log_root}/merge.log"
            -> "/home/user/.local/state/repobridge/merge.log"
            "{platformdirs.user_cache_dir}"
            -> "/home/user/.cache/repobridge"

        Unknown references are left as written.
        """
        def replace(match):
            parts = match.group(1).split(".")
            if parts[0] in TEMPLATE_NAMESPACE:
                obj = TEMPLATE_NAMESPACE[parts[0]]
                parts = parts[1:]
            else:
                obj = self
            try:
                for part in parts:
                    obj = getattr(obj, part)
                if callable(obj):
                    obj = obj('repobridge', appauthor=False)
                return str(obj)
            except (AttributeError, TypeError):
                return match.group(0)

        return re.sub(r'\{([a-z._]+)\}', replace, value)


__all__ = ["State", "Config", "GitHubConfig", "MergeConfig", "MergeState"]
