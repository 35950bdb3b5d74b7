from pathlib import Path
from typing import Optional

import click
from ape.api import AccountAPI, ProviderAPI
from ape.cli import ConnectedProviderCommand, account_option, network_option

from kanna_deployment.chain import ApeChainClient, ChainClient
from kanna_deployment.config import DeploymentConfig
from kanna_deployment.deployer import Deployer
from kanna_deployment.exceptions import KannaDeploymentError
from kanna_deployment.groups import GROUPS, run_group
from kanna_deployment.options import (
    autosign_option,
    confirmations_option,
    group_option,
    params_filepath_option,
    token_address_option,
    verify_option,
)
from kanna_deployment.registry import ContractState, DeploymentLedger
from kanna_deployment.verification import ApeExplorer, Explorer, Verifier


def make_client(provider: ProviderAPI, account: Optional[AccountAPI] = None) -> ChainClient:
    return ApeChainClient(provider, account=account)


def make_explorer(client: ChainClient) -> Explorer:
    return ApeExplorer.from_client(client)


def _load_config(params_filepath: Path, confirmations, token_address) -> DeploymentConfig:
    config = DeploymentConfig.from_yaml(params_filepath)
    if confirmations is not None:
        config = config.with_verification(confirmations=confirmations)
    if token_address is not None:
        config = config.with_constants(TOKEN_ADDRESS=token_address)
    return config


@click.group()
def cli():
    """Deploy and verify Kanna contracts."""


@cli.command()
def groups():
    """List the deployment groups, in dependency order."""
    for name in GROUPS:
        click.echo(name)


@cli.command(cls=ConnectedProviderCommand)
@network_option()
@account_option()
@group_option
@params_filepath_option
@verify_option
@autosign_option
@confirmations_option
@token_address_option
def deploy(
    provider,
    account,
    group,
    params_filepath,
    verify,
    autosign,
    confirmations,
    token_address,
):
    """Deploy a group of Kanna contracts and optionally verify them."""
    try:
        config = _load_config(params_filepath, confirmations, token_address)
        client = make_client(provider, account)
        click.echo(f"Connected to {client.network_name} network.")
        if client.is_local:
            verify = False  # nothing to publish a local chain to
        deployer = Deployer.from_config(
            config, client, group, autosign=autosign, verify=verify
        )
        verifier = None
        if deployer.verify:
            verifier = Verifier(client, make_explorer(client), config.verification)
        deployments = run_group(deployer, verifier=verifier)
    except KannaDeploymentError as e:
        raise click.ClickException(str(e))

    for name, address in deployments.items():
        click.echo(f"{name}={address}")


@cli.command(cls=ConnectedProviderCommand)
@network_option()
@group_option
@params_filepath_option
@confirmations_option
def verify(provider, group, params_filepath, confirmations):
    """Verify the recorded, not yet verified, contracts of a deployed group."""
    try:
        config = _load_config(params_filepath, confirmations, None)
        client = make_client(provider)
        click.echo(f"Connected to {client.network_name} network.")
        ledger = DeploymentLedger(config.ledger_filepath, client.chain_id, group)
        entries = ledger.entries()
        if not entries:
            raise click.ClickException(
                f"No '{group}' deployments recorded for chain {client.chain_id} "
                f"in {config.ledger_filepath}"
            )
        verifier = Verifier(client, make_explorer(client), config.verification)
        verifier.verify_all([entry.to_deployed() for entry in entries], ledger=ledger)
    except KannaDeploymentError as e:
        raise click.ClickException(str(e))


@cli.command()
@group_option
@params_filepath_option
def status(group, params_filepath):
    """Show which contracts of a group the ledger records, and in which state."""
    try:
        config = DeploymentConfig.from_yaml(params_filepath)
    except DeploymentConfig.Invalid as e:
        raise click.ClickException(str(e))

    ledger = DeploymentLedger(config.ledger_filepath, config.chain_id, group)
    entries = {entry.name: entry for entry in ledger.entries()}
    if not entries:
        click.echo(f"No '{group}' deployments recorded for chain {config.chain_id}.")
        return
    for name, entry in entries.items():
        marker = "x" if entry.state == ContractState.VERIFIED else " "
        click.echo(f"[{marker}] {name} {entry.address} ({entry.state.value})")
