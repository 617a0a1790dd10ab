"""Walk an extracted registry tree and decode its chain descriptors."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from chainparse.errors import RegistryError
from chainparse.registry.types import ChainSchema

logger = logging.getLogger(__name__)


def _raise_walk_error(exc: OSError) -> None:
    raise RegistryError(f"registry walk failed: {exc}") from exc


def read_chain_schema(path: Path) -> ChainSchema:
    try:
        blob = path.read_bytes()
    except OSError as exc:
        raise RegistryError(f"could not read {path}: {exc}") from exc
    try:
        payload = json.loads(blob)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise RegistryError(f"malformed descriptor {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise RegistryError(f"malformed descriptor {path}: expected a JSON object")
    try:
        return ChainSchema.from_dict(payload)
    except RegistryError as exc:
        raise RegistryError(f"malformed descriptor {path}: {exc}") from exc


def find_chain_json_files(
    registry_dir: Path, *, descriptor_suffix: str = "chain.json"
) -> list[ChainSchema]:
    chains: list[ChainSchema] = []
    for dirpath, dirnames, filenames in os.walk(registry_dir, onerror=_raise_walk_error):
        dirnames.sort()
        for name in sorted(filenames):
            if not name.endswith(descriptor_suffix):
                continue
            path = Path(dirpath) / name
            chain = read_chain_schema(path)
            if chain.codebase is None:
                logger.warning("No codebase for %s", path.relative_to(registry_dir))
                continue
            chains.append(chain)
    chains.sort(key=lambda item: item.chain_name)
    return chains
