"""Click CLI group: csv and json reports of resolved chain versions."""

from __future__ import annotations

import asyncio
import csv
import json
import sys

import click

from chainparse.config import get_settings, validate_settings
from chainparse.errors import ChainparseError
from chainparse.fetcher import retrieve_chain_data
from chainparse.logging import configure_logging
from chainparse.main import by_pretty_name
from chainparse.registry.types import ChainSchema

CSV_HEADER = [
    "Chain",
    "Git_Repo",
    "Contact",
    "Account_Manager",
    "Is_mainnet",
    "Mainnet GH release",
    "CosmosSDK",
    "Tendermint",
    "IBC",
]


def csv_row(chain: ChainSchema) -> list[str]:
    codebase = chain.codebase
    return [
        chain.pretty_name,
        codebase.git_repo if codebase else "",
        chain.contact,
        chain.account_manager,
        chain.is_mainnet,
        codebase.recommended_version if codebase else "",
        chain.cosmos_sdk_version,
        chain.tendermint_version,
        chain.ibc_version,
    ]


def _load_chains() -> list[ChainSchema]:
    settings = get_settings()
    try:
        validate_settings(settings)
    except ChainparseError as exc:
        raise click.ClickException(str(exc)) from exc
    configure_logging(settings.log_level)
    try:
        return asyncio.run(retrieve_chain_data(settings=settings))
    except ChainparseError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
def cli() -> None:
    """Chain registry dependency version reports."""


@cli.command("csv")
def csv_command() -> None:
    """Print one CSV row per chain with its resolved versions."""
    chains = _load_chains()
    writer = csv.writer(sys.stdout, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for chain in chains:
        writer.writerow(csv_row(chain))


@cli.command("json")
@click.option("--by-name", is_flag=True, help="Key the output by pretty name.")
def json_command(by_name: bool) -> None:
    """Print resolved chains as JSON."""
    chains = _load_chains()
    if by_name:
        payload: object = by_pretty_name(chains)
    else:
        payload = [chain.to_dict() for chain in chains]
    click.echo(json.dumps(payload, indent=2, sort_keys=True))


def main() -> None:
    cli()
