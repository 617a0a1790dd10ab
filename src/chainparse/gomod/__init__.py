"""go.mod parsing and dependency version extraction."""

from chainparse.gomod.extract import TARGETS_RE, extract_versions
from chainparse.gomod.parser import GoModFile, ModuleVersion, Replace, parse_go_mod

__all__ = [
    "TARGETS_RE",
    "GoModFile",
    "ModuleVersion",
    "Replace",
    "extract_versions",
    "parse_go_mod",
]
