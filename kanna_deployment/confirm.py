from typing import Any, Sequence

import click
from ape.utils import ZERO_ADDRESS


def _continue() -> None:
    """Asks the user to continue."""
    click.confirm("Continue?", abort=True)


def _confirm_arguments(contract_name: str, constructor_arguments: Sequence[Any]) -> None:
    """Asks the user to confirm the constructor arguments of a single contract."""
    if len(constructor_arguments) == 0:
        print(f"\n(i) No constructor arguments for {contract_name}")
    else:
        print(f"\nConstructor arguments for {contract_name}")
        for position, value in enumerate(constructor_arguments):
            print(f"\t[{position}]={value}")

    click.confirm(f"Deploy {contract_name}?", abort=True)
    if ZERO_ADDRESS in constructor_arguments:
        click.confirm("Zero Address detected for deployment parameter; Continue?", abort=True)
