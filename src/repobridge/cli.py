#!/usr/bin/env python3
"""repobridge CLI - reconcile GitHub repositories."""

import asyncio
import sys

from pydantic_settings import CliApp, CliSubCommand, get_subcommand

from repobridge.command import (
    MergeCommand,
    PullCommand,
    PushCommand,
    ReposCommand,
)
from repobridge.core.config import State
from repobridge.core.log import logger


class CliState(State):
    """Reconcile the files of GitHub repositories into one.

    merge compares two repositories at the root and commits their
    union, with conflicts resolved to a side or to custom content.
    pull imports one repository into a subfolder of another, and
    push copies that subfolder back.

    Configuration sources (in priority order):
    1. Command-line arguments (--config.merge.concurrency 4)
    2. --include files, ./repobridge.yaml, user repobridge.yaml
    3. .env file
    4. Environment variables (REPOBRIDGE_CONFIG__GITHUB__TOKEN=...)
    """

    merge: CliSubCommand[MergeCommand]
    pull: CliSubCommand[PullCommand]
    push: CliSubCommand[PushCommand]
    repos: CliSubCommand[ReposCommand]

    def cli_cmd(self):
        """Dispatch to the active subcommand, or show help."""
        subcommand = get_subcommand(self, is_required=False)
        if subcommand is None:
            CliApp.run(CliState, cli_args=['--help'])
            sys.exit(1)

        with logger:
            exit_code = asyncio.run(subcommand.run_workflow(self))
            raise SystemExit(exit_code)


def main():
    """Main entry point for CLI."""
    CliApp.run(CliState)


if __name__ == "__main__":
    main()
