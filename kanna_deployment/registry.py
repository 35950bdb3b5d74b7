import json
from collections import defaultdict
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from kanna_deployment.chain import DeployedContract
from kanna_deployment.utils import _load_json

ChainId = int
GroupName = str
ContractName = str


STANDARD_REGISTRY_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}


class ContractState(Enum):
    PENDING = "pending"
    DEPLOYED = "deployed"
    VERIFIED = "verified"


class LedgerEntry(NamedTuple):
    """Represents a single contract of a deployment group on one chain."""

    chain_id: ChainId
    group: GroupName
    name: ContractName
    address: ChecksumAddress
    constructor_arguments: Tuple[Any, ...]
    dependencies: Tuple[ChecksumAddress, ...]
    tx_hash: Optional[str]
    block_number: Optional[int]
    deployer: ChecksumAddress
    state: ContractState

    def to_deployed(self) -> DeployedContract:
        return DeployedContract(
            name=self.name,
            address=self.address,
            constructor_arguments=self.constructor_arguments,
            deployer=self.deployer,
            dependencies=self.dependencies,
            tx_hash=self.tx_hash,
            block_number=self.block_number,
        )


def normalize_arguments(args) -> Tuple[Any, ...]:
    """Canonical form of constructor arguments, identical before and after a JSON round trip."""
    normalized = json.loads(json.dumps(list(args), default=_encode_value))
    return tuple(_freeze(value) for value in normalized)


def _freeze(value: Any) -> Any:
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


def _encode_value(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, tuple):
        return list(value)
    raise TypeError(f"Constructor argument {value!r} cannot be recorded in the ledger")


def _entry_from_json(chain_id: str, group: str, name: str, artifacts: Dict) -> LedgerEntry:
    return LedgerEntry(
        chain_id=int(chain_id),
        group=group,
        name=name,
        address=to_checksum_address(artifacts["address"]),
        constructor_arguments=normalize_arguments(artifacts.get("constructor_arguments", [])),
        dependencies=tuple(artifacts.get("dependencies", [])),
        tx_hash=artifacts.get("tx_hash"),
        block_number=artifacts.get("block_number"),
        deployer=artifacts["deployer"],
        state=ContractState(artifacts.get("state", ContractState.DEPLOYED.value)),
    )


def read_ledger(filepath: Path) -> List[LedgerEntry]:
    if not filepath.exists():
        return list()
    data = _load_json(filepath)
    entries = list()
    for chain_id, groups in data.items():
        for group, contracts in groups.items():
            for contract_name, artifacts in contracts.items():
                entries.append(_entry_from_json(chain_id, group, contract_name, artifacts))
    return entries


def write_ledger(entries: List[LedgerEntry], filepath: Path) -> Path:
    """Writes a deployment ledger to a file, replacing its previous content."""

    # Sort entries to enforce common order
    entries = sorted(entries, key=lambda entry: (str(entry.chain_id), entry.group, entry.name))

    data = defaultdict(lambda: defaultdict(dict))
    for entry in entries:
        data[str(entry.chain_id)][entry.group][entry.name] = {
            "address": entry.address,
            "constructor_arguments": json.loads(
                json.dumps(list(entry.constructor_arguments), default=_encode_value)
            ),
            "dependencies": list(entry.dependencies),
            "tx_hash": entry.tx_hash,
            "block_number": None if entry.block_number is None else int(entry.block_number),
            "deployer": entry.deployer,
            "state": entry.state.value,
        }

    # Create the parent directory if it does not exist
    filepath.parent.mkdir(parents=True, exist_ok=True)

    temp_filepath = filepath.with_suffix(".temp.json")
    with open(temp_filepath, "w") as file:
        json.dump(data, file, **STANDARD_REGISTRY_JSON_FORMAT)
    temp_filepath.replace(filepath)

    return filepath


class DeploymentLedger:
    """
    Persisted record of which contracts of a deployment group already exist on a chain,
    so that a re-run resumes where a failed one stopped.
    """

    class Conflict(ValueError):
        """Raised when a recorded contract does not match the one about to be deployed"""

    def __init__(self, filepath: Path, chain_id: ChainId, group: GroupName):
        self.filepath = filepath
        self.chain_id = chain_id
        self.group = group

    def _all_entries(self) -> List[LedgerEntry]:
        return read_ledger(self.filepath)

    def entries(self) -> List[LedgerEntry]:
        """Entries for this ledger's chain and group."""
        return [
            e
            for e in self._all_entries()
            if e.chain_id == self.chain_id and e.group == self.group
        ]

    def get(self, name: ContractName) -> Optional[LedgerEntry]:
        for entry in self.entries():
            if entry.name == name:
                return entry
        return None

    def state(self, name: ContractName) -> ContractState:
        entry = self.get(name)
        if entry is None:
            return ContractState.PENDING
        return entry.state

    def lookup(self, name: ContractName, constructor_arguments) -> Optional[DeployedContract]:
        """
        Returns the recorded deployment of a contract, if any. A recorded contract built
        with different constructor arguments is a conflict, not a cache miss.
        """
        entry = self.get(name)
        if entry is None:
            return None
        requested = normalize_arguments(constructor_arguments)
        if entry.constructor_arguments != requested:
            raise self.Conflict(
                f"{name} is recorded at {entry.address} in {self.filepath} with constructor "
                f"arguments {list(entry.constructor_arguments)}, not {list(requested)}."
            )
        return entry.to_deployed()

    def _save(self, new_entry: LedgerEntry) -> None:
        entries = [
            e
            for e in self._all_entries()
            if (e.chain_id, e.group, e.name) != (new_entry.chain_id, new_entry.group, new_entry.name)
        ]
        entries.append(new_entry)
        write_ledger(entries=entries, filepath=self.filepath)

    def record(
        self, deployed: DeployedContract, state: ContractState = ContractState.DEPLOYED
    ) -> LedgerEntry:
        entry = LedgerEntry(
            chain_id=self.chain_id,
            group=self.group,
            name=deployed.name,
            address=to_checksum_address(deployed.address),
            constructor_arguments=normalize_arguments(deployed.constructor_arguments),
            dependencies=tuple(deployed.dependencies),
            tx_hash=deployed.tx_hash,
            block_number=deployed.block_number,
            deployer=deployed.deployer,
            state=state,
        )
        self._save(entry)
        return entry

    def mark_verified(self, name: ContractName) -> LedgerEntry:
        entry = self.get(name)
        if entry is None:
            raise ValueError(f"{name} is not recorded for group '{self.group}' in {self.filepath}")
        entry = entry._replace(state=ContractState.VERIFIED)
        self._save(entry)
        return entry
