from pathlib import Path

import click

from kanna_deployment.groups import GROUPS
from kanna_deployment.types import ChecksumAddress, MinInt

group_option = click.option(
    "--group",
    "-g",
    help="Deployment group (dependency chain) to deploy",
    type=click.Choice(list(GROUPS)),
    required=True,
)

params_filepath_option = click.option(
    "--params-filepath",
    "-p",
    help="YAML params file for the target network",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=True,
)

verify_option = click.option(
    "--verify/--no-verify",
    help="Verify deployed contracts on the network explorer (defaults to the params file)",
    default=None,
)

autosign_option = click.option(
    "--autosign",
    help="Sign transactions without asking for confirmation",
    is_flag=True,
    default=False,
)

confirmations_option = click.option(
    "--confirmations",
    "-c",
    help="Confirmations to wait for before verifying (defaults to the params file)",
    type=MinInt(1),
    default=None,
)

token_address_option = click.option(
    "--token-address",
    "-t",
    help="Already deployed KNN token to build on instead of deploying a new one",
    type=ChecksumAddress(),
    default=None,
)
