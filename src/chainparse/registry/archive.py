"""Download the chain registry snapshot and extract its chain descriptors."""

from __future__ import annotations

import asyncio
import logging
import shutil
import zipfile
from pathlib import Path

import httpx

from chainparse.errors import ArchiveError

logger = logging.getLogger(__name__)

ARCHIVE_FILE = "registry.zip"


async def download_registry_archive(client: httpx.AsyncClient, url: str, dest: Path) -> Path:
    async with client.stream("GET", url) as response:
        if response.status_code < 200 or response.status_code > 299:
            raise ArchiveError(
                f"HTTP request failed with status: {response.status_code} {response.reason_phrase}"
            )
        with dest.open("wb") as fh:
            async for chunk in response.aiter_bytes():
                fh.write(chunk)
    return dest


def extract_descriptors(archive_path: Path, registry_dir: Path, *, descriptor_suffix: str) -> int:
    """Copy every archive entry named ``*<descriptor_suffix>`` under registry_dir.

    Returns the number of extracted files.
    """
    root = registry_dir.resolve()
    try:
        root.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ArchiveError(f"could not create {root}: {exc}") from exc

    try:
        archive = zipfile.ZipFile(archive_path)
    except (zipfile.BadZipFile, OSError) as exc:
        raise ArchiveError(f"could not open registry archive: {exc}") from exc

    extracted = 0
    with archive:
        for info in archive.infolist():
            if info.is_dir() or not info.filename.endswith(descriptor_suffix):
                continue
            full_path = (root / info.filename).resolve()
            if not full_path.is_relative_to(root):
                raise ArchiveError(f"archive entry escapes destination: {info.filename}")
            try:
                full_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise ArchiveError(f"could not create {full_path.parent}: {exc}") from exc
            try:
                with archive.open(info) as src, full_path.open("wb") as dst:
                    shutil.copyfileobj(src, dst)
            except (zipfile.BadZipFile, OSError) as exc:
                raise ArchiveError(f"could not extract {info.filename}: {exc}") from exc
            extracted += 1
    return extracted


async def download_and_extract_registry(
    client: httpx.AsyncClient,
    url: str,
    registry_dir: Path,
    *,
    descriptor_suffix: str = "chain.json",
) -> int:
    """Fetch the registry zip at url and unpack its descriptors into registry_dir.

    The archive itself is written next to registry_dir, so both live inside
    whatever working directory the caller cleans up.
    """
    archive_path = registry_dir.parent / ARCHIVE_FILE
    try:
        await download_registry_archive(client, url, archive_path)
        extracted = await asyncio.to_thread(
            extract_descriptors,
            archive_path,
            registry_dir,
            descriptor_suffix=descriptor_suffix,
        )
    except Exception:
        logger.exception("Registry download failed (registry_dir=%s)", registry_dir)
        raise
    logger.info("Extracted %d registry descriptors from %s", extracted, url)
    return extracted
