import time
from abc import ABC, abstractmethod
from typing import Any, Callable, List, NamedTuple, Optional, Tuple

from ape.api import ExplorerAPI
from ape.exceptions import ApeException
from eth_typing import ChecksumAddress

from kanna_deployment.chain import ApeChainClient, ChainClient, DeployedContract
from kanna_deployment.config import VerificationSettings
from kanna_deployment.constants import EXPLORER_PENDING_MARKERS
from kanna_deployment.exceptions import (
    ConfirmationTimeout,
    VerificationError,
    VerificationPending,
)
from kanna_deployment.registry import ContractState, DeploymentLedger
from kanna_deployment.utils import check_explorer_api_key


class VerificationRequest(NamedTuple):
    contract_name: str
    address: ChecksumAddress
    constructor_arguments: Tuple[Any, ...]
    tx_hash: Optional[str] = None

    @classmethod
    def from_deployed(cls, deployed: DeployedContract) -> "VerificationRequest":
        # constructor arguments always come from the deployment record
        return cls(
            contract_name=deployed.name,
            address=deployed.address,
            constructor_arguments=tuple(deployed.constructor_arguments),
            tx_hash=deployed.tx_hash,
        )


class Explorer(ABC):
    """A source verification service for one network."""

    @abstractmethod
    def verify(self, request: VerificationRequest) -> None:
        """
        Publishes the source of a deployed contract. Raises VerificationPending while the
        explorer has not indexed the contract yet, VerificationError on any other rejection.
        """
        raise NotImplementedError


def _is_pending(message: str) -> bool:
    message = message.lower()
    return any(marker in message for marker in EXPLORER_PENDING_MARKERS)


class ApeExplorer(Explorer):
    """Verifies through the ape explorer plugin (e.g. ape-etherscan) of the connected network."""

    def __init__(self, client: ApeChainClient, explorer: ExplorerAPI):
        self.client = client
        self.explorer = explorer

    @classmethod
    def from_client(cls, client: ApeChainClient) -> "ApeExplorer":
        """Explorer of the connected network, once its API key is known to be set."""
        try:
            check_explorer_api_key(client.ecosystem_name)
        except ValueError as e:
            raise VerificationError(str(e)) from e
        explorer = client.get_explorer()
        if explorer is None:
            raise VerificationError(f"No explorer plugin configured for '{client.network_name}'.")
        return cls(client, explorer)

    def _check_constructor_arguments(self, request: VerificationRequest) -> None:
        if request.tx_hash is None:
            raise VerificationError(
                f"Creation transaction of {request.contract_name} at {request.address} is unknown."
            )
        expected = self.client.encode_constructor_arguments(
            request.contract_name, request.constructor_arguments
        )
        creation_input = self.client.get_creation_input(request.tx_hash)
        if not creation_input.endswith(expected):
            raise VerificationError(
                f"Constructor arguments {list(request.constructor_arguments)} do not match the "
                f"ones {request.contract_name} was deployed with at {request.address}."
            )

    def verify(self, request: VerificationRequest) -> None:
        self._check_constructor_arguments(request)
        try:
            self.explorer.publish_contract(request.address)
        except ApeException as e:
            if _is_pending(str(e)):
                raise VerificationPending(str(e)) from e
            raise VerificationError(
                f"Verification of {request.contract_name} at {request.address} failed: {e}"
            ) from e


class Verifier:
    """
    Drives one contract at a time through
    Deployed -> (N confirmations) -> VerificationRequested -> Verified | VerificationFailed.
    """

    def __init__(
        self,
        client: ChainClient,
        explorer: Explorer,
        settings: VerificationSettings = VerificationSettings(),
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.explorer = explorer
        self.settings = settings
        self._sleep = sleep
        self._clock = clock

    def wait_for_confirmations(self, deployed: DeployedContract) -> int:
        """Polls the network until the deployment has the configured number of confirmations."""
        if deployed.tx_hash is None:
            raise VerificationError(f"{deployed.name} at {deployed.address} has no receipt.")

        required = self.settings.confirmations
        deadline = self._clock() + self.settings.timeout
        while True:
            confirmations = self.client.get_confirmations(deployed.tx_hash)
            if confirmations >= required:
                return confirmations

            remaining = deadline - self._clock()
            if remaining <= 0:
                raise ConfirmationTimeout(
                    f"{deployed.name} deployment {deployed.tx_hash} reached {confirmations} of "
                    f"{required} confirmations within {self.settings.timeout}s."
                )
            print(
                f"(i) {deployed.name}: {confirmations}/{required} confirmations; "
                f"polling again in {self.settings.poll_interval}s"
            )
            self._sleep(min(self.settings.poll_interval, remaining))

    def submit(self, request: VerificationRequest) -> None:
        """Submits the request, backing off exponentially while the explorer is still indexing."""
        delay = self.settings.backoff
        retries = self.settings.retries
        for attempt in range(1, retries + 1):
            try:
                self.explorer.verify(request)
                return
            except VerificationPending as e:
                if attempt == retries:
                    raise VerificationError(
                        f"{request.contract_name} at {request.address} is still not indexed "
                        f"after {retries} attempts: {e}"
                    ) from e
                print(
                    f"(i) {request.contract_name} not indexed yet "
                    f"(attempt {attempt}/{retries}); retrying in {delay}s"
                )
                self._sleep(delay)
                delay = min(delay * 2, self.settings.max_backoff)

    def verify(self, deployed: DeployedContract, ledger: Optional[DeploymentLedger] = None) -> None:
        recorded = ledger is not None and ledger.get(deployed.name) is not None
        if recorded and ledger.state(deployed.name) == ContractState.VERIFIED:
            print(f"(i) {deployed.name} already verified; skipping.")
            return

        print(f"(i) Verifying {deployed.name}...")
        self.wait_for_confirmations(deployed)
        self.submit(VerificationRequest.from_deployed(deployed))
        if recorded:
            ledger.mark_verified(deployed.name)
        print(f"(i) {deployed.name} verified at {deployed.address}")

    def verify_all(
        self, deployments: List[DeployedContract], ledger: Optional[DeploymentLedger] = None
    ) -> None:
        for deployed in deployments:
            self.verify(deployed, ledger=ledger)
