"""Resolve tracked dependency versions for every chain in the registry."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import tempfile
from collections.abc import Awaitable
from pathlib import Path

import httpx

from chainparse.branches import BranchCache, DefaultBranchResolver, build_branch_resolver
from chainparse.config import Settings, get_settings
from chainparse.errors import ChainResolutionError
from chainparse.gomod import extract_versions, parse_go_mod
from chainparse.logging import bind_context
from chainparse.registry import download_and_extract_registry, find_chain_json_files
from chainparse.registry.types import ChainSchema

logger = logging.getLogger(__name__)


def mainnet_flag(network_type: str) -> str:
    if network_type == "mainnet":
        return "yes"
    if network_type:
        return "no"
    return "?"


def org_repo_from_url(repo_url: str) -> str:
    """``https://github.com/Agoric/ag0/`` -> ``/Agoric/ag0``."""
    try:
        url = httpx.URL(repo_url)
    except (httpx.InvalidURL, TypeError) as exc:
        raise ChainResolutionError(f"invalid git repo URL {repo_url!r}: {exc}") from exc
    org_repo = url.path.rstrip("/")
    if not url.host or not org_repo:
        raise ChainResolutionError(f"invalid git repo URL {repo_url!r}: no host or path")
    return org_repo


class Fetcher:
    """Runs one registry resolution batch over a shared HTTP client.

    The branch cache lives as long as the fetcher, so build one fetcher per
    pipeline run.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        settings: Settings | None = None,
        branch_resolver: DefaultBranchResolver | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.client = client
        self.branch_cache = BranchCache()
        self.branch_resolver = branch_resolver or build_branch_resolver(
            self.settings, client, self.branch_cache
        )
        self._raw_base = self.settings.raw_content_base_url.rstrip("/")

    def go_mod_url(self, org_repo: str, ref: str) -> str:
        # https://raw.githubusercontent.com/Agoric/ag0/agoric-3.1/go.mod
        return f"{self._raw_base}{org_repo}/{ref}/go.mod"

    async def fetch_chain_data(self) -> list[ChainSchema]:
        with tempfile.TemporaryDirectory(prefix="registry-") as work_dir:
            registry_dir = Path(work_dir) / "registry"
            await download_and_extract_registry(
                self.client,
                self.settings.registry_zip_url,
                registry_dir,
                descriptor_suffix=self.settings.descriptor_suffix,
            )
            return await self.traverse(registry_dir)

    async def traverse(self, registry_dir: Path) -> list[ChainSchema]:
        inputs = await asyncio.to_thread(
            find_chain_json_files,
            registry_dir,
            descriptor_suffix=self.settings.descriptor_suffix,
        )
        return await self.resolve_all(inputs)

    async def resolve_all(self, inputs: list[ChainSchema]) -> list[ChainSchema]:
        limit = self.settings.max_concurrent_projects
        semaphore = asyncio.Semaphore(limit) if limit > 0 else None

        async def _resolve(seed: ChainSchema) -> ChainSchema | None:
            if semaphore is None:
                return await self._run_quietly(seed)
            async with semaphore:
                return await self._run_quietly(seed)

        tasks = [asyncio.create_task(_resolve(seed)) for seed in inputs]
        output: list[ChainSchema] = []
        try:
            for next_done in asyncio.as_completed(tasks):
                chain = await next_done
                if chain is not None:
                    output.append(chain)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        output.sort(key=lambda item: item.chain_name)
        logger.info("Resolved %d of %d chains", len(output), len(inputs))
        return output

    async def _run_quietly(self, seed: ChainSchema) -> ChainSchema | None:
        try:
            return await self.run(seed)
        except Exception:
            # One chain never fails the batch; the reason is already logged.
            logger.debug("Dropping chain %s", seed.chain_name, exc_info=True)
            return None

    async def run(self, seed: ChainSchema) -> ChainSchema:
        """Resolve one chain at its recommended version and its default branch.

        Raises:
            ChainResolutionError: when the recommended version's go.mod cannot
                be fetched or parsed. Default-branch failures only drop
                ``latest``.
        """
        if seed.codebase is None:
            raise ChainResolutionError(f"no codebase for {seed.chain_name!r}")
        repo_url = seed.codebase.git_repo
        try:
            org_repo = org_repo_from_url(repo_url)
        except ChainResolutionError:
            logger.error(
                "Failed to parse the GitHub repo URL from the registry (git_repo_url=%s)",
                repo_url,
            )
            raise
        bind_context(org_repo=org_repo)

        face_value = asyncio.create_task(
            self.retrieve_mod_file(
                self.go_mod_url(org_repo, seed.codebase.recommended_version), seed
            )
        )
        latest = asyncio.create_task(self._retrieve_latest(org_repo, repo_url, seed))
        try:
            try:
                chain = await face_value
            except Exception as exc:
                logger.error("Failed to get the version from the chain registry for %s", org_repo)
                raise ChainResolutionError(f"{org_repo}: {exc}") from exc
            if chain is None:
                logger.warning("No go.mod for %s at the recommended version", org_repo)
                raise ChainResolutionError(f"could not obtain the chain schema for: {org_repo!r}")

            live = await _settle(latest)
            if isinstance(live, BaseException):
                # Some registry repos no longer exist; losing the live view is fine.
                logger.error("Failed to get the latest/live go.mod for %s: %s", org_repo, live)
                live = None
        finally:
            # Leaving run() aborts whatever is still in flight for this chain.
            face_value.cancel()
            latest.cancel()
            await asyncio.gather(face_value, latest, return_exceptions=True)

        if live is not None and live != chain:
            chain.latest = live
        return chain

    async def _retrieve_latest(
        self, org_repo: str, repo_url: str, seed: ChainSchema
    ) -> ChainSchema | None:
        branch = await self.branch_resolver.default_branch(org_repo, repo_url)
        return await self.retrieve_mod_file(self.go_mod_url(org_repo, branch), seed)

    async def retrieve_mod_file(self, url: str, seed: ChainSchema) -> ChainSchema | None:
        """Fetch and decode the go.mod at url onto a copy of seed.

        A non-2xx response returns None rather than a record with blank
        versions.
        """
        response = await self.client.get(url)
        if response.status_code < 200 or response.status_code > 299:
            logger.info("No go.mod at %s (status %d)", url, response.status_code)
            return None
        go_mod = parse_go_mod(response.text)

        chain = dataclasses.replace(seed, latest=None)
        chain.with_versions(extract_versions(go_mod))
        chain.is_mainnet = mainnet_flag(chain.network_type)
        return chain


async def _settle(awaitable: Awaitable[ChainSchema | None]) -> ChainSchema | BaseException | None:
    try:
        return await awaitable
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        return exc


def build_client(
    settings: Settings | None = None, *, transport: httpx.AsyncBaseTransport | None = None
) -> httpx.AsyncClient:
    settings = settings or get_settings()
    return httpx.AsyncClient(
        timeout=settings.http_timeout_seconds,
        follow_redirects=True,
        transport=transport,
    )


async def retrieve_chain_data(
    *,
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[ChainSchema]:
    """Download the registry and resolve every chain in it."""
    settings = settings or get_settings()
    async with build_client(settings, transport=transport) as client:
        return await Fetcher(client, settings=settings).fetch_chain_data()
