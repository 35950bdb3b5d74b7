from typing import Dict, List, NamedTuple, Optional, Tuple

import pytest
from eth_utils import keccak, to_checksum_address

from kanna_deployment.chain import ChainClient, DeployedContract
from kanna_deployment.config import DeploymentConfig, VerificationSettings
from kanna_deployment.constants import MOCK_CONTRACT
from kanna_deployment.deployer import Deployer
from kanna_deployment.exceptions import MockSetupError, VerificationError, VerificationPending
from kanna_deployment.registry import DeploymentLedger
from kanna_deployment.verification import Explorer, VerificationRequest, Verifier

LOCAL_CHAIN_ID = 1337
SIGNERS = 3


# Utility functions
def fake_address(seed: str) -> str:
    return to_checksum_address(keccak(text=seed)[-20:])


def fake_tx_hash(seed: str) -> str:
    return "0x" + keccak(text=seed).hex()


class FakeSigner(NamedTuple):
    address: str


class FakeChain(ChainClient):
    """
    In-memory network. Every deployment and transaction mines one block, and
    `failures` maps a contract name (or a (contract name, method) pair) to the
    error the next matching call raises.
    """

    def __init__(self, chain_id: int = LOCAL_CHAIN_ID, network_name: str = "local"):
        self._chain_id = chain_id
        self._network_name = network_name
        self.signers = [FakeSigner(fake_address(f"signer-{i}")) for i in range(SIGNERS)]
        self.block_number = 0
        self.receipts: Dict[str, int] = dict()
        self.deployments: List[DeployedContract] = list()
        self.transactions: List[Tuple[str, str, Tuple]] = list()
        self.history: List[str] = list()
        self.failures: Dict = dict()
        self.mocks: Dict[str, Dict[bytes, Tuple[bool, object]]] = dict()

    @property
    def chain_id(self) -> int:
        return self._chain_id

    @property
    def network_name(self) -> str:
        return self._network_name

    def get_signers(self):
        return list(self.signers)

    def mine(self, blocks: int = 1) -> None:
        self.block_number += blocks

    def _send(self, seed: str) -> Tuple[str, int]:
        self.mine()
        tx_hash = fake_tx_hash(f"{seed}-{self.block_number}")
        self.receipts[tx_hash] = self.block_number
        return tx_hash, self.block_number

    def deploy(self, signer, contract_name: str, *args) -> DeployedContract:
        if contract_name in self.failures:
            raise self.failures.pop(contract_name)
        tx_hash, block_number = self._send(f"deploy-{contract_name}")
        deployed = DeployedContract(
            name=contract_name,
            address=fake_address(f"{contract_name}-{len(self.deployments)}"),
            constructor_arguments=tuple(args),
            deployer=signer.address,
            tx_hash=tx_hash,
            block_number=block_number,
        )
        self.deployments.append(deployed)
        self.history.append(f"deploy {contract_name}")
        return deployed

    def transact(self, signer, contract: DeployedContract, method: str, *args):
        if (contract.name, method) in self.failures:
            raise self.failures.pop((contract.name, method))
        tx_hash, _ = self._send(f"{contract.name}.{method}")
        self.transactions.append((contract.name, method, tuple(args)))
        self.history.append(f"transact {contract.name}.{method}")
        return tx_hash

    def get_confirmations(self, tx_hash: str) -> int:
        block_number = self.receipts.get(tx_hash)
        if block_number is None:
            return 0
        return self.block_number - block_number + 1

    def _ensure_mock_network(self) -> None:
        if not self.is_local:
            raise MockSetupError(f"No mocks on '{self.network_name}'")

    def deploy_mock(self, signer, name: str) -> DeployedContract:
        self._ensure_mock_network()
        deployed = self.deploy(signer, MOCK_CONTRACT)._replace(name=name)
        self.mocks[deployed.address] = dict()
        return deployed

    def mock_returns(self, signer, address: str, key: bytes, value: bytes) -> None:
        self._ensure_mock_network()
        self._send(f"mockReturns-{address}")
        self.mocks[address][bytes(key)] = (True, bytes(value))

    def mock_reverts(self, signer, address: str, key: bytes, reason: str) -> None:
        self._ensure_mock_network()
        self._send(f"mockReverts-{address}")
        self.mocks[address][bytes(key)] = (False, reason)

    def call(self, address: str, data: bytes) -> bytes:
        responses = self.mocks[address]
        # exact calldata first, then any call of the method
        for key in (bytes(data), bytes(data[:4])):
            if key in responses:
                succeeds, value = responses[key]
                if not succeeds:
                    raise MockSetupError(f"Call to {address} reverted: {value}")
                return value
        raise MockSetupError("Mock on the method is not initialized")


class FakeExplorer(Explorer):
    """
    Accepts a request once the contract is indexed. `pending` holds how many more
    requests per address are answered with "not indexed yet".
    """

    def __init__(self, chain: FakeChain):
        self.chain = chain
        self.pending: Dict[str, int] = dict()
        self.rejections: Dict[str, str] = dict()
        self.requests: List[VerificationRequest] = list()
        self.verified: List[str] = list()

    def _deployed(self, address: str) -> Optional[DeployedContract]:
        for deployed in self.chain.deployments:
            if deployed.address == address:
                return deployed
        return None

    def verify(self, request: VerificationRequest) -> None:
        self.requests.append(request)
        deployed = self._deployed(request.address)
        if deployed is None:
            raise VerificationError(f"No contract at {request.address}")
        if tuple(request.constructor_arguments) != deployed.constructor_arguments:
            raise VerificationError("Constructor arguments do not match the creation transaction")
        if request.address in self.rejections:
            raise VerificationError(self.rejections[request.address])
        if self.pending.get(request.address, 0) > 0:
            self.pending[request.address] -= 1
            raise VerificationPending("Unable to locate ContractCode")
        self.verified.append(request.address)


class RecordingPublisher:
    """Stands in for an ape explorer plugin; optionally rejects every submission."""

    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.published: List[str] = list()

    def publish_contract(self, address: str) -> None:
        self.published.append(address)
        if self.error is not None:
            raise self.error


class FakeClock:
    """Injectable time; sleeping advances it and, optionally, mines a block."""

    def __init__(self, chain: Optional[FakeChain] = None):
        self.chain = chain
        self.now = 0.0
        self.sleeps: List[float] = list()

    def time(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        if self.chain is not None:
            self.chain.mine()


# Fixtures
@pytest.fixture
def fake_chain():
    return FakeChain()


@pytest.fixture
def verification_settings():
    return VerificationSettings(
        confirmations=2, timeout=10, poll_interval=1, retries=3, backoff=1, max_backoff=4
    )


@pytest.fixture
def config(tmp_path, verification_settings):
    return DeploymentConfig(
        name="kanna-test",
        chain_id=LOCAL_CHAIN_ID,
        ledger_filepath=tmp_path / "artifacts" / "test.json",
        verification=verification_settings,
    )


@pytest.fixture
def make_deployer(fake_chain, config):
    def _make(group: str = "token", **kwargs) -> Deployer:
        kwargs.setdefault("autosign", True)
        kwargs.setdefault("verify", False)
        return Deployer(fake_chain, config, group, **kwargs)

    return _make


@pytest.fixture
def deployer(make_deployer):
    return make_deployer()


@pytest.fixture
def ledger(config, fake_chain):
    return DeploymentLedger(config.ledger_filepath, fake_chain.chain_id, "yield")


@pytest.fixture
def explorer(fake_chain):
    return FakeExplorer(fake_chain)


@pytest.fixture
def clock(fake_chain):
    return FakeClock(fake_chain)


@pytest.fixture
def verifier(fake_chain, explorer, verification_settings, clock):
    return Verifier(
        fake_chain, explorer, verification_settings, sleep=clock.sleep, clock=clock.time
    )
