import json
from pathlib import Path

import httpx
import pytest

from chainparse.errors import ArchiveError, RegistryError
from chainparse.registry import download_and_extract_registry, find_chain_json_files
from chainparse.registry.archive import extract_descriptors
from chainparse.registry.types import ChainSchema, Codebase


def _write(path: Path, payload: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload), encoding="utf-8")


def test_find_chain_json_files_drops_chains_without_codebase(
    tmp_path: Path, make_descriptor, caplog
) -> None:
    _write(tmp_path / "osmosis/chain.json", make_descriptor("osmosis"))
    _write(tmp_path / "akash/chain.json", make_descriptor("akash"))
    _write(tmp_path / "nocode/chain.json", make_descriptor("nocode", with_codebase=False))
    _write(tmp_path / "akash/assetlist.json", {"assets": []})

    chains = find_chain_json_files(tmp_path)

    assert [chain.chain_name for chain in chains] == ["akash", "osmosis"]
    assert chains[0].codebase == Codebase(
        git_repo="https://github.com/akash-org/akash",
        recommended_version="v1.0.0",
        compatible_versions=("v1.0.0",),
    )
    assert "No codebase" in caplog.text


def test_find_chain_json_files_rejects_malformed_json(tmp_path: Path) -> None:
    (tmp_path / "broken").mkdir()
    (tmp_path / "broken/chain.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(RegistryError, match="malformed descriptor"):
        find_chain_json_files(tmp_path)


def test_find_chain_json_files_rejects_non_object(tmp_path: Path) -> None:
    _write(tmp_path / "list/chain.json", ["chain"])
    with pytest.raises(RegistryError, match="expected a JSON object"):
        find_chain_json_files(tmp_path)


@pytest.mark.parametrize(
    ("codebase", "fragment"),
    [
        ("https://github.com/juno/juno", "codebase must be a JSON object"),
        ({"git_repo": "git", "compatible_versions": "v1"}, "list of strings"),
        ({"git_repo": "git", "compatible_versions": [1]}, "list of strings"),
    ],
)
def test_find_chain_json_files_rejects_malformed_codebase(
    tmp_path: Path, codebase: object, fragment: str
) -> None:
    _write(tmp_path / "juno/chain.json", {"chain_name": "juno", "codebase": codebase})
    with pytest.raises(RegistryError, match=fragment) as excinfo:
        find_chain_json_files(tmp_path)
    assert "juno/chain.json" in str(excinfo.value)


def test_codebase_without_compatible_versions() -> None:
    chain = ChainSchema.from_dict(
        {"chain_name": "juno", "codebase": {"git_repo": "https://github.com/juno/juno"}}
    )
    assert chain.codebase == Codebase(git_repo="https://github.com/juno/juno")


def test_find_chain_json_files_fails_on_missing_root(tmp_path: Path) -> None:
    with pytest.raises(RegistryError, match="registry walk failed"):
        find_chain_json_files(tmp_path / "missing")


def test_chain_schema_to_dict_omits_empty_fields() -> None:
    chain = ChainSchema.from_dict(
        {
            "chain_name": "agoric",
            "network_type": "mainnet",
            "pretty_name": "Agoric",
            "codebase": {"git_repo": "https://github.com/Agoric/ag0/"},
            "unknown": {"ignored": True},
        }
    )
    chain.is_mainnet = "yes"
    assert chain.to_dict() == {
        "chain_name": "agoric",
        "network_type": "mainnet",
        "pretty_name": "Agoric",
        "codebase": {"git_repo": "https://github.com/Agoric/ag0/"},
        "is_mainnet": "yes",
    }


def test_extract_descriptors_only_copies_matching_entries(
    tmp_path: Path, make_descriptor, make_registry_zip
) -> None:
    archive = tmp_path / "registry.zip"
    archive.write_bytes(
        make_registry_zip(
            {
                "agoric/chain.json": make_descriptor("agoric"),
                "testnets/agorictestnet/chain.json": make_descriptor("agorictestnet"),
            }
        )
    )
    count = extract_descriptors(archive, tmp_path / "registry", descriptor_suffix="chain.json")

    assert count == 2
    extracted = sorted(
        str(path.relative_to(tmp_path / "registry"))
        for path in (tmp_path / "registry").rglob("*")
        if path.is_file()
    )
    assert extracted == [
        "chain-registry-master/agoric/chain.json",
        "chain-registry-master/testnets/agorictestnet/chain.json",
    ]


def test_extract_descriptors_rejects_corrupt_archive(tmp_path: Path) -> None:
    archive = tmp_path / "registry.zip"
    archive.write_bytes(b"this is not a zip")
    with pytest.raises(ArchiveError, match="could not open registry archive"):
        extract_descriptors(archive, tmp_path / "registry", descriptor_suffix="chain.json")


@pytest.mark.asyncio
async def test_download_rejects_non_2xx(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, text="not found")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(ArchiveError, match="HTTP request failed with status: 404"):
            await download_and_extract_registry(
                client, "https://example.test/registry.zip", tmp_path / "registry"
            )
    assert not (tmp_path / "registry").exists()


@pytest.mark.asyncio
async def test_download_and_extract(tmp_path: Path, make_descriptor, make_registry_zip) -> None:
    blob = make_registry_zip({"cosmoshub/chain.json": make_descriptor("cosmoshub")})

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/cosmos/chain-registry/archive/refs/heads/master.zip"
        return httpx.Response(200, content=blob)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        count = await download_and_extract_registry(
            client,
            "https://github.com/cosmos/chain-registry/archive/refs/heads/master.zip",
            tmp_path / "registry",
        )
    assert count == 1
    chains = find_chain_json_files(tmp_path / "registry")
    assert [chain.chain_name for chain in chains] == ["cosmoshub"]
