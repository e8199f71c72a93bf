"""Shared driver for commands that run the reconciliation graph."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from pydantic_graph import BaseNode, End

from repobridge.core.history import SyncRecord, append_record
from repobridge.core.log import logger
from repobridge.host.errors import GatewayError, PartialWriteError
from repobridge.host.gateway import GitHubGateway
from repobridge.host.models import Credential, RepoRef

if TYPE_CHECKING:
    from repobridge.core.config import State


def credential_from(state: State) -> Credential | None:
    token = state.config.github.token
    if token is None or not token.get_secret_value():
        logger.error(
            "No host token configured. Set config.github.token in "
            "repobridge.yaml or REPOBRIDGE_CONFIG__GITHUB__TOKEN"
        )
        return None
    return Credential(token=token)


def _record(state: State, error: Exception | None = None) -> None:
    merge = state.runtime.merge
    destination = merge.destination or merge.target
    record = SyncRecord(
        operation=merge.operation,
        source=merge.source.full_name if merge.source else "",
        destination=destination.full_name if destination else "",
        branch=merge.branch,
    )
    if error is None:
        record.files_count = len(merge.result.files_written)
        record.commit_id = merge.result.commit_id
        record.strategy = merge.result.strategy.value
    else:
        record.status = "failed"
        record.error_message = str(error)
        if isinstance(error, PartialWriteError):
            record.files_count = len(error.committed)
    append_record(state.config.history_path, record)


async def run_reconciliation(
    state: State,
    start: BaseNode,
    source: str,
    target: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    """Resolve both repositories, then run the graph from start.

    Args:
        state: State with the operation options already set on
            state.runtime.merge
        start: First node (Analyze, PlanFolderImport or
            PlanFolderExport)
        source: Source repository, "owner/name" or URL
        target: Target repository, "owner/name" or URL
        transport: Optional httpx transport for the gateway

    Returns:
        Exit code: 0 pushed, 1 failed or stopped, 2 bad input
            (including input rejected mid-run, such as an unusable
            repository name)
    """
    from repobridge.workflow.graph import create_workflow

    merge = state.runtime.merge
    credential = credential_from(state)
    if credential is None:
        return 2
    try:
        source_ref = RepoRef.parse(source)
        target_ref = RepoRef.parse(target)
    except ValueError as e:
        logger.error(str(e))
        return 2

    async with GitHubGateway(state.config.github, transport) as gateway:
        merge.gateway = gateway
        merge.credential = credential
        merge.status = "running"
        try:
            merge.source = await gateway.get_repository(
                credential, source_ref.owner, source_ref.name
            )
            merge.target = await gateway.get_repository(
                credential, target_ref.owner, target_ref.name
            )
            workflow = create_workflow()
            async with workflow.iter(start, state=state) as run:
                async for node in run:
                    if isinstance(node, End) and node.data is not None:
                        logger.info(
                            "Push complete",
                            repo=merge.destination.full_name,
                            commit=node.data.commit_id,
                            strategy=node.data.strategy.value,
                        )
        except GatewayError as e:
            merge.status = "failed"
            logger.error(f"{merge.operation} failed: {e}")
            if merge.source is not None:
                _record(state, e)
            return 1
        except ValueError as e:
            # Rejected input found mid-run, such as an unusable repository name
            merge.status = "failed"
            logger.error(f"{merge.operation} failed: {e}")
            _record(state, e)
            return 2
        finally:
            merge.gateway = None

    if merge.status != "complete":
        return 0 if merge.status == "dry-run" else 1
    _record(state)
    return 0
