"""Types for chain registry descriptors and resolved records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from chainparse.errors import RegistryError


@dataclass(frozen=True, slots=True)
class Codebase:
    git_repo: str = ""
    recommended_version: str = ""
    compatible_versions: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Codebase:
        compatible = payload.get("compatible_versions")
        if compatible is None:
            compatible = []
        if not isinstance(compatible, list) or not all(
            isinstance(item, str) for item in compatible
        ):
            raise RegistryError("codebase.compatible_versions must be a list of strings")
        return cls(
            git_repo=_as_str(payload.get("git_repo")),
            recommended_version=_as_str(payload.get("recommended_version")),
            compatible_versions=tuple(compatible),
        )

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {}
        if self.git_repo:
            data["git_repo"] = self.git_repo
        if self.recommended_version:
            data["recommended_version"] = self.recommended_version
        if self.compatible_versions:
            data["compatible_versions"] = list(self.compatible_versions)
        return data


@dataclass(frozen=True, slots=True)
class ResolvedVersions:
    cosmos_sdk: str = ""
    tendermint: str = ""
    ibc: str = ""


@dataclass(slots=True)
class ChainSchema:
    """One chain from the registry, plus the versions resolved for it."""

    chain_name: str = ""
    network_type: str = ""
    status: str = ""
    pretty_name: str = ""
    bech32_prefix: str = ""
    codebase: Codebase | None = None
    account_manager: str = ""
    is_mainnet: str = ""
    tendermint_version: str = ""
    cosmos_sdk_version: str = ""
    ibc_version: str = ""
    contact: str = ""
    latest: ChainSchema | None = field(default=None)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> ChainSchema:
        raw_codebase = payload.get("codebase")
        if raw_codebase is not None and not isinstance(raw_codebase, dict):
            raise RegistryError("codebase must be a JSON object")
        codebase = Codebase.from_dict(raw_codebase) if raw_codebase is not None else None
        return cls(
            chain_name=_as_str(payload.get("chain_name")),
            network_type=_as_str(payload.get("network_type")),
            status=_as_str(payload.get("status")),
            pretty_name=_as_str(payload.get("pretty_name")),
            bech32_prefix=_as_str(payload.get("bech32_prefix")),
            codebase=codebase,
            account_manager=_as_str(payload.get("account_manager")),
            contact=_as_str(payload.get("contact")),
        )

    def with_versions(self, versions: ResolvedVersions) -> None:
        self.cosmos_sdk_version = versions.cosmos_sdk
        self.tendermint_version = versions.tendermint
        self.ibc_version = versions.ibc

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {}
        for key in (
            "chain_name",
            "network_type",
            "status",
            "pretty_name",
            "bech32_prefix",
        ):
            value = getattr(self, key)
            if value:
                data[key] = value
        if self.codebase is not None:
            data["codebase"] = self.codebase.to_dict()
        for key in (
            "account_manager",
            "is_mainnet",
            "tendermint_version",
            "cosmos_sdk_version",
            "ibc_version",
            "contact",
        ):
            value = getattr(self, key)
            if value:
                data[key] = value
        if self.latest is not None:
            data["latest"] = self.latest.to_dict()
        return data


def _as_str(value: object) -> str:
    if value is None:
        return ""
    return str(value)
