"""Adapters from the gateway to the planner's content fetchers."""

from __future__ import annotations

from repobridge.core.log import logger
from repobridge.host.errors import EmptyRepositoryError
from repobridge.host.gateway import GitHubGateway
from repobridge.host.models import Credential, RepoRef, TreeEntry
from repobridge.reconcile.models import ContentFetcher


def content_fetcher(
    gateway: GitHubGateway,
    credential: Credential,
    repo: RepoRef,
    ref: str | None = None,
) -> ContentFetcher:
    """Return fetch(path) reading repo at ref; None when absent."""

    async def fetch(path: str) -> str | None:
        result = await gateway.get_file_content(credential, repo, path, ref)
        return result.content if result.exists else None

    return fetch


async def tree_or_empty(
    gateway: GitHubGateway,
    credential: Credential,
    repo: RepoRef,
    ref: str | None = None,
) -> list[TreeEntry]:
    """Tree of repo, or [] when the branch has no commits yet."""
    try:
        return await gateway.get_tree(credential, repo, ref)
    except EmptyRepositoryError:
        logger.info("Repository has no commits yet", repo=repo.full_name)
        return []
