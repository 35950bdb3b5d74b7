import json
import os
from pathlib import Path
from typing import Any, Dict, List

import yaml
from ape import project
from ape.contracts import ContractContainer
from ape_etherscan.utils import API_KEY_ENV_KEY_MAP


def _load_yaml(filepath: Path) -> dict:
    """Loads a YAML file."""
    with open(filepath, "r") as file:
        return yaml.safe_load(file)


def _load_json(filepath: Path) -> Any:
    """Loads a JSON file."""
    with open(filepath, "r") as file:
        return json.load(file)


def load_abi(filepath: Path) -> List[Dict[str, Any]]:
    """Loads a bare JSON ABI (or a compiled artifact carrying an 'abi' field)."""
    data = _load_json(filepath)
    if isinstance(data, dict):
        data = data.get("abi", data)
    return data


def check_explorer_api_key(ecosystem_name: str) -> None:
    """Checks that the explorer API key environment variable for the ecosystem is set."""
    explorer_envvar = API_KEY_ENV_KEY_MAP.get(ecosystem_name)
    if not explorer_envvar:
        raise ValueError(f"No explorer API key known for ecosystem '{ecosystem_name}'.")
    if not os.environ.get(explorer_envvar):
        raise ValueError(f"{explorer_envvar} is not set.")


def get_contract_container(contract: str) -> ContractContainer:
    """Compiled container of a contract of this project (sources under contracts/)."""
    try:
        return getattr(project, contract)
    except AttributeError:
        raise ValueError(f"No contract found with name '{contract}'.")
