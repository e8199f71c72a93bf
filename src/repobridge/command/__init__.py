"""CLI command modules for repobridge."""

from repobridge.command.folder import PullCommand, PushCommand
from repobridge.command.merge import MergeCommand
from repobridge.command.repos import ReposCommand

__all__ = ["MergeCommand", "PullCommand", "PushCommand", "ReposCommand"]
