"""Chain registry acquisition and descriptor scanning."""

from chainparse.registry.archive import download_and_extract_registry
from chainparse.registry.scanner import find_chain_json_files
from chainparse.registry.types import ChainSchema, Codebase, ResolvedVersions

__all__ = [
    "ChainSchema",
    "Codebase",
    "ResolvedVersions",
    "download_and_extract_registry",
    "find_chain_json_files",
]
