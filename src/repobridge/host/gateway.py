"""Async client for the GitHub REST API.

Every call takes the credential explicitly. Errors surface as
GatewayError subclasses carrying the host's own message.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
from typing import Any
from urllib.parse import quote

import httpx

from repobridge.core.config import GitHubConfig
from repobridge.core.log import logger
from repobridge.host.auth import AuthSchemes
from repobridge.host.errors import (
    CredentialError,
    EmptyRepositoryError,
    GatewayError,
    NotFoundError,
    RepositoryNameTakenError,
    TransientHostError,
    ValidationError,
)
from repobridge.host.models import (
    BranchHead,
    Credential,
    EntryKind,
    FileContent,
    HostUser,
    RepoRef,
    TreeEntry,
    TreeWrite,
)


def fold_error_body(status: int, text: str) -> str:
    """Fold a host error body into one readable line.

    JSON bodies of the form {message, errors: [{field, message, code}]}
    become "message (field: message; ...)". Anything that is not a
    JSON object is returned verbatim.
    """
    if not text or not text.strip():
        return f"HTTP {status}"
    try:
        body = json.loads(text)
    except ValueError:
        return text
    if not isinstance(body, dict):
        return text

    message = body.get("message") or f"HTTP {status}"
    details = []
    for err in body.get("errors") or []:
        if not isinstance(err, dict):
            details.append(str(err))
            continue
        detail = err.get("message") or err.get("code") or ""
        field = err.get("field")
        details.append(f"{field}: {detail}" if field else detail)
    details = [d for d in details if d]
    if details:
        message = f"{message} ({'; '.join(details)})"
    return message


def error_for_response(response: httpx.Response) -> GatewayError:
    """Map a non-2xx response onto the gateway error taxonomy."""
    status = response.status_code
    message = fold_error_body(status, response.text)
    if status == 401:
        return CredentialError(
            status, f"Credential invalid or expired: {message}"
        )
    if status == 404:
        return NotFoundError(status, message)
    if status == 422:
        return ValidationError(status, message)
    if status >= 500:
        return TransientHostError(status, message)
    return GatewayError(status, message)


def sanitize_repo_name(name: str) -> str:
    """Reduce a repository name to the host's allowed characters.

    Disallowed runs become "-", repeated separators collapse to the
    first one, and separators are stripped from both ends.

    Raises:
        ValueError: If nothing usable remains
    """
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "-", name.strip())
    cleaned = re.sub(r"([._-])[._-]+", r"\1", cleaned)
    cleaned = cleaned.strip("._-")
    if not cleaned:
        raise ValueError(f"Repository name {name!r} has no usable characters")
    return cleaned


def _repo_from_payload(data: dict[str, Any]) -> RepoRef:
    return RepoRef(
        owner=data["owner"]["login"],
        name=data["name"],
        default_branch=data.get("default_branch") or "main",
        html_url=data.get("html_url"),
        description=data.get("description"),
        private=bool(data.get("private", False)),
    )


def _repo_path(repo: RepoRef) -> str:
    return f"/repos/{quote(repo.owner)}/{quote(repo.name)}"


class GitHubGateway:
    """Typed wrapper over the host endpoints the reconciler needs.

    Use as an async context manager so the connection pool is
    released:

        async with GitHubGateway(config.github) as gateway:
            tree = await gateway.get_tree(credential, repo)
    """

    def __init__(
        self,
        config: GitHubConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize gateway.

        Args:
            config: Host connection settings
            transport: Optional httpx transport (tests pass a
                MockTransport)
        """
        self.config = config
        self.schemes = AuthSchemes(config.auth_schemes)
        self._client = httpx.AsyncClient(
            base_url=config.api_url,
            timeout=config.timeout,
            transport=transport,
            headers={
                "Accept": "application/vnd.github+json",
                "User-Agent": config.user_agent,
            },
        )

    async def __aenter__(self) -> GitHubGateway:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):  # noqa: U100
        await self.aclose()
        return False

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        credential: Credential,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        """Send one request, trying each auth scheme until not 401.

        Returns:
            Decoded JSON body, or None for an empty body

        Raises:
            GatewayError: Mapped from the final response status
        """
        response = None
        for scheme in self.schemes:
            try:
                response = await self._client.request(
                    method,
                    path,
                    params=params,
                    json=body,
                    headers={"Authorization": scheme.header(credential)},
                )
            except httpx.TransportError as e:
                raise TransientHostError(
                    None, f"{method} {path} failed: {e}"
                ) from e
            if response.status_code != 401:
                break
            logger.debug(
                "Auth scheme rejected",
                scheme=scheme.prefix,
                method=method,
                path=path,
            )

        logger.trace(
            "Host request",
            method=method,
            path=path,
            status=response.status_code,
        )
        if not response.is_success:
            raise error_for_response(response)
        if not response.content:
            return None
        return response.json()

    # Reads

    async def validate_credential(self, credential: Credential) -> HostUser:
        data = await self._request(credential, "GET", "/user")
        return HostUser(login=data["login"], avatar_url=data.get("avatar_url"))

    async def list_repositories(self, credential: Credential) -> list[RepoRef]:
        """Repositories visible to the credential, most recently
        updated first. Only the first page of 100 is read."""
        data = await self._request(
            credential,
            "GET",
            "/user/repos",
            params={"sort": "updated", "per_page": 100},
        )
        return [_repo_from_payload(item) for item in data]

    async def get_repository(
        self, credential: Credential, owner: str, name: str
    ) -> RepoRef:
        data = await self._request(
            credential, "GET", f"/repos/{quote(owner)}/{quote(name)}"
        )
        return _repo_from_payload(data)

    async def get_tree(
        self,
        credential: Credential,
        repo: RepoRef,
        ref: str | None = None,
    ) -> list[TreeEntry]:
        """Recursive tree of repo at ref (default branch when omitted).

        Raises:
            EmptyRepositoryError: The branch has no commits yet
        """
        ref = ref or repo.default_branch
        try:
            data = await self._request(
                credential,
                "GET",
                f"{_repo_path(repo)}/git/trees/{quote(ref, safe='')}",
                params={"recursive": 1},
            )
        except NotFoundError as e:
            raise EmptyRepositoryError(e.http_status, e.message) from e
        except GatewayError as e:
            if e.http_status == 409:
                raise EmptyRepositoryError(e.http_status, e.message) from e
            raise

        if data.get("truncated"):
            logger.warn(
                "Tree listing truncated by host",
                repo=repo.full_name,
                ref=ref,
            )

        entries = []
        for item in data.get("tree", []):
            try:
                kind = EntryKind(item.get("type"))
            except ValueError:
                # Submodule links and other non-file entries
                continue
            entries.append(TreeEntry(
                path=item["path"],
                kind=kind,
                content_hash=item["sha"],
                size_bytes=item.get("size"),
            ))
        return entries

    async def get_file_content(
        self,
        credential: Credential,
        repo: RepoRef,
        path: str,
        ref: str | None = None,
    ) -> FileContent:
        """Read a text file. A missing path is exists=False, not an error.

        Files the host will not inline, and files that are not UTF-8
        text, come back with exists=True and content=None.
        """
        try:
            data = await self._request(
                credential,
                "GET",
                f"{_repo_path(repo)}/contents/{quote(path)}",
                params={"ref": ref} if ref else None,
            )
        except NotFoundError:
            return FileContent(exists=False)

        if not isinstance(data, dict) or data.get("type") != "file":
            return FileContent(exists=False)

        sha = data.get("sha")
        if data.get("encoding", "base64") != "base64":
            logger.debug("File content not inlined by host", path=path)
            return FileContent(exists=True, sha=sha)
        try:
            raw = base64.b64decode(data.get("content") or "")
            content = raw.decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            logger.warn("Skipping non-text file", repo=repo.full_name, path=path)
            return FileContent(exists=True, sha=sha)
        return FileContent(exists=True, content=content, sha=sha)

    async def get_branch_head(
        self, credential: Credential, repo: RepoRef, branch: str
    ) -> BranchHead:
        """Resolve a branch to its commit and root tree.

        A 404 on the default branch means the repository has no
        commits. On any other branch it means an empty repository
        only when the default branch has no commits either.

        Raises:
            EmptyRepositoryError: The repository has no commits yet
            NotFoundError: The branch does not exist in a repository
                that has commits
        """
        try:
            ref = await self._request(
                credential,
                "GET",
                f"{_repo_path(repo)}/git/ref/heads/{quote(branch)}",
            )
        except NotFoundError as e:
            if branch == repo.default_branch:
                raise EmptyRepositoryError(e.http_status, e.message) from e
            # Raises EmptyRepositoryError when the repository is empty
            await self.get_branch_head(credential, repo, repo.default_branch)
            raise NotFoundError(
                e.http_status,
                f"Branch '{branch}' not found in {repo.full_name}",
            ) from e
        except GatewayError as e:
            if e.http_status == 409:
                raise EmptyRepositoryError(e.http_status, e.message) from e
            raise

        commit_sha = ref["object"]["sha"]
        commit = await self._request(
            credential,
            "GET",
            f"{_repo_path(repo)}/git/commits/{commit_sha}",
        )
        return BranchHead(commit_sha=commit_sha, tree_sha=commit["tree"]["sha"])

    # Low level writes

    async def create_blob(
        self, credential: Credential, repo: RepoRef, content: str
    ) -> str:
        data = await self._request(
            credential,
            "POST",
            f"{_repo_path(repo)}/git/blobs",
            body={"content": content, "encoding": "utf-8"},
        )
        return data["sha"]

    async def create_tree(
        self,
        credential: Credential,
        repo: RepoRef,
        entries: list[TreeWrite],
        base_tree: str | None = None,
    ) -> str:
        body: dict[str, Any] = {
            "tree": [
                {"path": e.path, "mode": e.mode, "type": "blob", "sha": e.sha}
                for e in entries
            ],
        }
        if base_tree:
            body["base_tree"] = base_tree
        data = await self._request(
            credential, "POST", f"{_repo_path(repo)}/git/trees", body=body
        )
        return data["sha"]

    async def create_commit(
        self,
        credential: Credential,
        repo: RepoRef,
        message: str,
        tree: str,
        parents: list[str],
    ) -> str:
        data = await self._request(
            credential,
            "POST",
            f"{_repo_path(repo)}/git/commits",
            body={"message": message, "tree": tree, "parents": parents},
        )
        return data["sha"]

    async def move_ref(
        self,
        credential: Credential,
        repo: RepoRef,
        branch: str,
        commit_sha: str,
    ) -> None:
        await self._request(
            credential,
            "PATCH",
            f"{_repo_path(repo)}/git/refs/heads/{quote(branch)}",
            body={"sha": commit_sha},
        )

    # High level writes

    async def create_file(
        self,
        credential: Credential,
        repo: RepoRef,
        path: str,
        content: str,
        message: str,
        branch: str | None = None,
    ) -> str:
        """Write one file as its own commit; works on empty repos.

        Returns:
            Sha of the commit the host created
        """
        existing = await self.get_file_content(credential, repo, path, branch)
        body: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        if branch:
            body["branch"] = branch
        if existing.exists and existing.sha:
            body["sha"] = existing.sha
        data = await self._request(
            credential,
            "PUT",
            f"{_repo_path(repo)}/contents/{quote(path)}",
            body=body,
        )
        return data["commit"]["sha"]

    async def create_repository(
        self,
        credential: Credential,
        name: str,
        description: str,
        private: bool,
    ) -> RepoRef:
        """Create an empty repository owned by the credential's user.

        Raises:
            RepositoryNameTakenError: The sanitized name is in use
            ValidationError: Any other rejected field
        """
        clean = sanitize_repo_name(name)
        if clean != name:
            logger.info("Sanitized repository name", requested=name, name=clean)
        try:
            data = await self._request(
                credential,
                "POST",
                "/user/repos",
                body={
                    "name": clean,
                    "description": description,
                    "private": private,
                    "auto_init": False,
                },
            )
        except ValidationError as e:
            if "already exists" in e.message.lower():
                raise RepositoryNameTakenError(clean) from e
            raise
        return _repo_from_payload(data)
