"""Repos command - check the token and list repositories."""

from __future__ import annotations

from pydantic import BaseModel

from repobridge.command.session import credential_from
from repobridge.core.log import logger
from repobridge.host.errors import GatewayError
from repobridge.host.gateway import GitHubGateway


class ReposCommand(BaseModel):
    """Validate the configured token and list the repositories it
    can see, most recently updated first."""

    async def run_workflow(self, state: State) -> int:  # noqa: F821
        credential = credential_from(state)
        if credential is None:
            return 2

        async with GitHubGateway(state.config.github) as gateway:
            try:
                user = await gateway.validate_credential(credential)
                logger.info(f"Authenticated as {user.login}")
                repos = await gateway.list_repositories(credential)
            except GatewayError as e:
                logger.error(f"Listing repositories failed: {e}")
                return 1

        for repo in repos:
            visibility = "private" if repo.private else "public"
            print(f"{repo.full_name}\t{repo.default_branch}\t{visibility}")
        return 0
