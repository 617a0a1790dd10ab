"""Pick the tracked dependency versions out of a parsed go.mod."""

from __future__ import annotations

import re
from collections.abc import Iterable

from chainparse.gomod.parser import GoModFile, ModuleVersion
from chainparse.registry.types import ResolvedVersions

TARGETS_RE = re.compile("cosmos-sdk|tendermint/tendermint|/ibc")
_MAJOR_SUFFIX_RE = re.compile(r"/v[0-9]+$")


def _extract_by_version(
    modules: Iterable[ModuleVersion], *, is_replace: bool
) -> ResolvedVersions:
    cosmos_sdk = tendermint = ibc = ""
    for mod in modules:
        if not TARGETS_RE.search(mod.path):
            continue
        # Replacements record where the fork lives.
        suffix = f"@{mod.path}" if is_replace else ""
        # github.com/cosmos/ibc-go/v7 is still ibc-go.
        family = _MAJOR_SUFFIX_RE.sub("", mod.path)
        if family.endswith("cosmos-sdk"):
            cosmos_sdk = mod.version + suffix
        elif family.endswith("tendermint"):
            tendermint = mod.version + suffix
        elif family.endswith("ibc-go"):
            ibc = mod.version + suffix
    return ResolvedVersions(cosmos_sdk=cosmos_sdk, tendermint=tendermint, ibc=ibc)


def extract_versions(go_mod: GoModFile) -> ResolvedVersions:
    """Resolve (cosmos-sdk, tendermint, ibc) versions for a go.mod.

    Require directives are read first; replace directives are authoritative
    on the final version and fork source, so any family they match overrides
    the required version.
    """
    required = _extract_by_version(go_mod.require, is_replace=False)
    replaced = _extract_by_version((item.new for item in go_mod.replace), is_replace=True)
    return ResolvedVersions(
        cosmos_sdk=replaced.cosmos_sdk or required.cosmos_sdk,
        tendermint=replaced.tendermint or required.tendermint,
        ibc=replaced.ibc or required.ibc,
    )
