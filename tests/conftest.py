import io
import json
import tempfile
import zipfile

import pytest

from chainparse.config import get_settings

AGORIC_GO_MOD = """module github.com/Agoric/ag0

go 1.17

require (
\tgithub.com/cosmos/cosmos-sdk v0.44.1
\tgithub.com/cosmos/ibc-go v1.2.0
\tgithub.com/spf13/cobra v1.2.1 // indirect
\tgithub.com/tendermint/tendermint v0.34.13
)

replace github.com/gogo/protobuf => github.com/regen-network/protobuf v1.3.3-alpha.regen.1
"""

_SETTINGS_ENV = (
    "APP_ENV",
    "LOG_LEVEL",
    "REGISTRY_ZIP_URL",
    "DESCRIPTOR_SUFFIX",
    "RAW_CONTENT_BASE_URL",
    "GITHUB_API_BASE_URL",
    "GITHUB_TOKEN",
    "GIT_CLONE_TIMEOUT_SECONDS",
    "GIT_CLONE_BLOB_LIMIT",
    "HTTP_TIMEOUT_SECONDS",
    "MAX_CONCURRENT_PROJECTS",
)


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    for key in _SETTINGS_ENV:
        monkeypatch.delenv(key, raising=False)
    # Tests never shell out to git unless they ask for it.
    monkeypatch.setenv("DEFAULT_BRANCH_STRATEGY", "api")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def chain_descriptor(
    name: str,
    *,
    network_type: str = "mainnet",
    repo: str | None = None,
    version: str = "v1.0.0",
    with_codebase: bool = True,
) -> dict[str, object]:
    payload: dict[str, object] = {
        "$schema": "../chain.schema.json",
        "chain_name": name,
        "status": "live",
        "network_type": network_type,
        "pretty_name": name.title(),
        "bech32_prefix": name[:4],
        "fees": {"fee_tokens": []},
    }
    if with_codebase:
        payload["codebase"] = {
            "git_repo": repo or f"https://github.com/{name}-org/{name}",
            "recommended_version": version,
            "compatible_versions": [version],
        }
    return payload


def build_registry_zip(descriptors: dict[str, dict[str, object]]) -> bytes:
    """Zip descriptors the way GitHub's branch archives lay them out."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as archive:
        archive.writestr("chain-registry-master/", "")
        archive.writestr("chain-registry-master/README.md", "# registry\n")
        for path, payload in descriptors.items():
            archive.writestr(f"chain-registry-master/{path}", json.dumps(payload))
            archive.writestr(
                f"chain-registry-master/{path.rsplit('/', 1)[0]}/assetlist.json", "{}"
            )
    return buf.getvalue()


@pytest.fixture
def go_mod_text() -> str:
    return AGORIC_GO_MOD


@pytest.fixture
def make_descriptor():
    return chain_descriptor


@pytest.fixture
def make_registry_zip():
    return build_registry_zip


@pytest.fixture
def scratch_dir(tmp_path, monkeypatch):
    """Point tempfile at an empty directory so leftover work dirs are visible."""
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(scratch))
    return scratch
