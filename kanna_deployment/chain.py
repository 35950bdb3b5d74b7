import typing
from abc import ABC, abstractmethod
from typing import Any, List, NamedTuple, Optional, Sequence, Tuple

from ape import accounts
from ape.api import AccountAPI, ProviderAPI
from ape.contracts import ContractContainer, ContractInstance
from ape.exceptions import ApeException
from eth_abi import encode, is_encodable
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address
from hexbytes import HexBytes

from kanna_deployment.constants import LOCAL_NETWORKS, MOCK_CONTRACT
from kanna_deployment.exceptions import DeploymentError, MockSetupError
from kanna_deployment.utils import get_contract_container


class DeployedContract(NamedTuple):
    """A contract instance created by this process, as it was constructed."""

    name: str
    address: ChecksumAddress
    constructor_arguments: Tuple[Any, ...]
    deployer: ChecksumAddress
    dependencies: Tuple[ChecksumAddress, ...] = ()
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None


class ChainClient(ABC):
    """
    The network a deployment runs against. Every factory and orchestrator receives
    one explicitly; nothing reads a "current network" from global state.
    """

    @property
    @abstractmethod
    def chain_id(self) -> int:
        raise NotImplementedError

    @property
    @abstractmethod
    def network_name(self) -> str:
        raise NotImplementedError

    @property
    def is_local(self) -> bool:
        return self.network_name in LOCAL_NETWORKS

    @abstractmethod
    def get_signers(self) -> List[Any]:
        """Returns the ordered signers available on this network."""
        raise NotImplementedError

    @abstractmethod
    def deploy(self, signer: Any, contract_name: str, *args) -> DeployedContract:
        """Submits exactly one contract-creation transaction."""
        raise NotImplementedError

    @abstractmethod
    def transact(self, signer: Any, contract: DeployedContract, method: str, *args) -> Any:
        raise NotImplementedError

    @abstractmethod
    def get_confirmations(self, tx_hash: str) -> int:
        """Number of blocks mined on top of (and including) the one holding the transaction."""
        raise NotImplementedError

    @abstractmethod
    def deploy_mock(self, signer: Any, name: str) -> DeployedContract:
        raise NotImplementedError

    @abstractmethod
    def mock_returns(self, signer: Any, address: str, key: bytes, value: bytes) -> None:
        raise NotImplementedError

    @abstractmethod
    def mock_reverts(self, signer: Any, address: str, key: bytes, reason: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def call(self, address: str, data: bytes) -> bytes:
        """Performs a read-only call and returns the raw return data."""
        raise NotImplementedError

    def get_explorer(self) -> Any:
        return None


def _validate_constructor_abi_inputs(
    contract_name: str, abi_inputs: Sequence[Any], args: Sequence[Any]
) -> None:
    """Validates the constructor arguments against the constructor ABI."""
    if len(args) != len(abi_inputs):
        raise DeploymentError(
            f"Constructor parameters length mismatch - "
            f"{contract_name} ABI requires {len(abi_inputs)}, Got {len(args)}."
        )

    for position, (abi_input, value) in enumerate(zip(abi_inputs, args)):
        if not is_encodable(abi_input.canonical_type, value):
            raise DeploymentError(
                f"{contract_name} constructor param '{abi_input.name}' at position {position} "
                f"has a value '{value}' whose type does not match expected ABI type "
                f"'{abi_input.canonical_type}'"
            )


def encode_constructor_arguments(container: ContractContainer, args: Sequence[Any]) -> bytes:
    """ABI-encodes constructor arguments the way they trail the creation bytecode."""
    abi_inputs = container.constructor.abi.inputs
    return encode([abi_input.canonical_type for abi_input in abi_inputs], list(args))


class ApeChainClient(ChainClient):
    """ChainClient backed by a connected ape provider."""

    def __init__(self, provider: ProviderAPI, account: Optional[AccountAPI] = None):
        self.provider = provider
        self.account = account

    @property
    def chain_id(self) -> int:
        return self.provider.chain_id

    @property
    def network_name(self) -> str:
        return self.provider.network.name

    @property
    def ecosystem_name(self) -> str:
        return self.provider.network.ecosystem.name

    def get_signers(self) -> List[AccountAPI]:
        if self.account is not None:
            return [self.account]
        if self.is_local:
            return list(accounts.test_accounts)
        raise DeploymentError("Must specify an account when deploying to live networks")

    def _get_instance(self, contract: DeployedContract) -> ContractInstance:
        return get_contract_container(contract.name).at(contract.address)

    def deploy(self, signer: AccountAPI, contract_name: str, *args) -> DeployedContract:
        try:
            container = get_contract_container(contract_name)
        except ValueError as e:
            raise DeploymentError(str(e)) from e

        _validate_constructor_abi_inputs(
            contract_name=contract_name,
            abi_inputs=container.constructor.abi.inputs,
            args=args,
        )

        try:
            instance = signer.deploy(container, *args, publish=False)
        except ApeException as e:
            raise DeploymentError(f"Deployment of {contract_name} failed: {e}") from e

        receipt = instance.receipt
        return DeployedContract(
            name=contract_name,
            address=to_checksum_address(instance.address),
            constructor_arguments=tuple(args),
            deployer=to_checksum_address(signer.address),
            tx_hash=receipt.txn_hash,
            block_number=receipt.block_number,
        )

    def transact(self, signer: AccountAPI, contract: DeployedContract, method: str, *args) -> Any:
        instance = self._get_instance(contract)
        try:
            return getattr(instance, method)(*args, sender=signer)
        except ApeException as e:
            raise DeploymentError(
                f"Transaction {contract.name}[{contract.address[:10]}].{method} failed: {e}"
            ) from e

    def get_confirmations(self, tx_hash: str) -> int:
        receipt = self.provider.get_receipt(tx_hash)
        if receipt.block_number is None:
            return 0
        head = self.provider.get_block("latest").number
        return max(0, head - receipt.block_number + 1)

    def get_creation_input(self, tx_hash: str) -> bytes:
        receipt = self.provider.get_receipt(tx_hash)
        return bytes(HexBytes(receipt.transaction.data))

    def encode_constructor_arguments(self, contract_name: str, args: Sequence[Any]) -> bytes:
        return encode_constructor_arguments(get_contract_container(contract_name), args)

    def _ensure_mock_network(self) -> None:
        if not self.is_local:
            raise MockSetupError(
                f"Mock contracts are only deployed on local networks, not '{self.network_name}'."
            )

    def deploy_mock(self, signer: AccountAPI, name: str) -> DeployedContract:
        self._ensure_mock_network()
        try:
            deployed = self.deploy(signer, MOCK_CONTRACT)
        except DeploymentError as e:
            raise MockSetupError(f"Mock network unavailable for {name}: {e}") from e
        return deployed._replace(name=name)

    def _mock_instance(self, address: str) -> ContractInstance:
        return get_contract_container(MOCK_CONTRACT).at(address)

    def mock_returns(self, signer: AccountAPI, address: str, key: bytes, value: bytes) -> None:
        self._ensure_mock_network()
        try:
            self._mock_instance(address).mockReturns(key, value, sender=signer)
        except ApeException as e:
            raise MockSetupError(f"Could not program mock at {address}: {e}") from e

    def mock_reverts(self, signer: AccountAPI, address: str, key: bytes, reason: str) -> None:
        self._ensure_mock_network()
        try:
            self._mock_instance(address).mockReverts(key, reason, sender=signer)
        except ApeException as e:
            raise MockSetupError(f"Could not program mock at {address}: {e}") from e

    def call(self, address: str, data: bytes) -> bytes:
        txn = self.provider.network.ecosystem.create_transaction(receiver=address, data=data)
        try:
            return bytes(self.provider.send_call(txn))
        except ApeException as e:
            raise MockSetupError(f"Call to {address} reverted: {e}") from e

    def get_explorer(self) -> Any:
        return self.provider.network.explorer


def first_signer(client: ChainClient) -> Any:
    """The deployer is always the first signer the network offers."""
    signers = client.get_signers()
    if not signers:
        raise DeploymentError(f"No signers available on network '{client.network_name}'.")
    return signers[0]


def addresses(*contracts: typing.Union[DeployedContract, str]) -> Tuple[ChecksumAddress, ...]:
    """Addresses of deployed handles (or raw addresses) in the given order."""
    result = list()
    for contract in contracts:
        address = contract.address if isinstance(contract, DeployedContract) else contract
        result.append(to_checksum_address(address))
    return tuple(result)

