"""Default-branch lookup: repository API with a shallow-clone fallback."""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Protocol

import httpx

from chainparse.config import Settings
from chainparse.errors import BranchResolutionError

logger = logging.getLogger(__name__)

HEAD_REF_PREFIX = "refs/heads/"


class DefaultBranchResolver(Protocol):
    async def default_branch(self, org_repo: str, repo_url: str) -> str: ...


class BranchCache:
    """Default branches seen during one pipeline run, keyed by ``/org/repo``.

    The lock only covers the dict access, never the lookup that fills it, so
    two tasks missing the same key both do the lookup and the later put wins.
    Both write the same branch, so the duplicate work is tolerated.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._branches: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._branches.get(key)

    def put(self, key: str, branch: str) -> None:
        with self._lock:
            self._branches[key] = branch


def _github_headers(token: str) -> dict[str, str]:
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
        "User-Agent": "chainparse/1.0",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


class GithubBranchResolver:
    def __init__(
        self,
        client: httpx.AsyncClient,
        cache: BranchCache,
        *,
        base_url: str = "https://api.github.com",
        token: str = "",
    ) -> None:
        self._client = client
        self._cache = cache
        self._base_url = base_url.rstrip("/")
        self._token = token

    async def default_branch(self, org_repo: str, repo_url: str) -> str:
        del repo_url
        cached = self._cache.get(org_repo)
        if cached:
            return cached

        response = await self._client.get(
            f"{self._base_url}/repos{org_repo}", headers=_github_headers(self._token)
        )
        if response.status_code < 200 or response.status_code > 299:
            detail = response.text.strip() or f"{response.status_code} {response.reason_phrase}"
            # A missing repository stays missing; quota and outage errors do not.
            raise BranchResolutionError(
                f"repository lookup for {org_repo} failed: {detail}",
                retryable=response.status_code != 404,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise BranchResolutionError(f"repository lookup for {org_repo}: {exc}") from exc
        branch = payload.get("default_branch") if isinstance(payload, dict) else None
        if not isinstance(branch, str) or not branch.strip():
            raise BranchResolutionError(f"repository lookup for {org_repo}: no default_branch")

        self._cache.put(org_repo, branch)
        return branch


def parse_head_ref(content: str) -> str:
    """Return the branch name from a ``ref: refs/heads/<name>`` HEAD file."""
    key, sep, ref = content.partition(":")
    ref = ref.strip()
    if not sep or key.strip() != "ref" or not ref.startswith(HEAD_REF_PREFIX):
        raise BranchResolutionError(f"could not parse the .git/HEAD file, got: {content!r}")
    branch = ref[len(HEAD_REF_PREFIX) :]
    if not branch:
        raise BranchResolutionError(f"could not parse the .git/HEAD file, got: {content!r}")
    return branch


class GitCloneBranchResolver:
    """Reads HEAD from a blob-filtered, checkout-less clone.

    The clone transfers a few kilobytes and sidesteps API quota limits. Git is
    never allowed to prompt for credentials, so private or missing
    repositories fail instead of hanging, and the clone gets its own timeout
    regardless of the caller's.
    """

    def __init__(self, *, timeout_s: float = 30.0, blob_limit: int = 40) -> None:
        self._timeout_s = timeout_s
        self._blob_limit = blob_limit

    def _command(self, repo_url: str, dest: str) -> list[str]:
        return [
            "git",
            "clone",
            "--quiet",
            "--no-checkout",
            f"--filter=blob:limit={self._blob_limit}",
            repo_url,
            dest,
        ]

    async def default_branch(self, org_repo: str, repo_url: str) -> str:
        prefix = org_repo.strip("/").replace("/", "-") or "repo"
        env = dict(os.environ)
        env["GIT_TERMINAL_PROMPT"] = "0"
        env.setdefault("GIT_ASKPASS", "echo")
        with tempfile.TemporaryDirectory(prefix=f"{prefix}-") as tmp_dir:
            try:
                proc = await asyncio.create_subprocess_exec(
                    *self._command(repo_url, tmp_dir),
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.STDOUT,
                    env=env,
                )
            except FileNotFoundError as exc:
                raise BranchResolutionError("git not found on PATH") from exc

            try:
                output, _ = await asyncio.wait_for(proc.communicate(), timeout=self._timeout_s)
            except TimeoutError:
                proc.kill()
                await proc.wait()
                raise BranchResolutionError(
                    f"git clone of {repo_url} timed out after {self._timeout_s:.0f}s"
                ) from None
            except asyncio.CancelledError:
                proc.kill()
                await proc.wait()
                raise

            if proc.returncode != 0:
                detail = output.decode(errors="replace").strip()[:2000]
                raise BranchResolutionError(
                    f"git clone of {repo_url} exited with code {proc.returncode}: {detail}"
                )
            try:
                head = (Path(tmp_dir) / ".git" / "HEAD").read_text(encoding="utf-8")
            except OSError as exc:
                raise BranchResolutionError(f"could not read .git/HEAD: {exc}") from exc
        return parse_head_ref(head)


class FallbackBranchResolver:
    def __init__(self, primary: DefaultBranchResolver, fallback: DefaultBranchResolver) -> None:
        self._primary = primary
        self._fallback = fallback

    async def default_branch(self, org_repo: str, repo_url: str) -> str:
        try:
            return await self._primary.default_branch(org_repo, repo_url)
        except BranchResolutionError as exc:
            if not exc.retryable:
                raise
            logger.info("Repository API lookup failed for %s, cloning instead: %s", org_repo, exc)
        except httpx.HTTPError as exc:
            logger.info("Repository API unreachable for %s, cloning instead: %s", org_repo, exc)
        return await self._fallback.default_branch(org_repo, repo_url)


def build_branch_resolver(
    settings: Settings, client: httpx.AsyncClient, cache: BranchCache
) -> DefaultBranchResolver:
    api = GithubBranchResolver(
        client,
        cache,
        base_url=settings.github_api_base_url,
        token=settings.github_token.strip(),
    )
    clone = GitCloneBranchResolver(
        timeout_s=settings.git_clone_timeout_seconds,
        blob_limit=settings.git_clone_blob_limit,
    )
    strategy = settings.default_branch_strategy
    if strategy == "api":
        return api
    if strategy == "clone":
        return clone
    return FallbackBranchResolver(api, clone)
