import typing
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence

from kanna_deployment.chain import ChainClient, DeployedContract, addresses, first_signer
from kanna_deployment.config import DeploymentConfig
from kanna_deployment.confirm import _confirm_arguments, _continue
from kanna_deployment.exceptions import DeploymentError
from kanna_deployment.registry import ContractState, DeploymentLedger


class Transactor:
    """
    Represents a signer on an explicit network plus annotated transaction execution.
    """

    def __init__(self, client: ChainClient, account: Optional[Any] = None, autosign: bool = False):
        self.client = client
        self._account = first_signer(client) if account is None else account
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
        self._autosign = autosign

    def get_account(self) -> Any:
        """Returns the transactor account."""
        return self._account

    @property
    def address(self) -> str:
        return self._account.address

    def transact(self, contract: DeployedContract, method: str, *args) -> Any:
        base_message = f"\nTransacting {contract.name}[{contract.address[:10]}].{method}"
        if args:
            pretty_args = "\n\t".join(str(arg) for arg in args)
            message = f"{base_message} with arguments:\n\t{pretty_args}"
        else:
            message = f"{base_message} with no arguments"
        print(message)
        if not self._autosign:
            _continue()

        return self.client.transact(self._account, contract, method, *args)


class Deployer(Transactor):
    """
    Represents a signer plus the parameters of one deployment group on one network,
    plus validated/annotated execution of contract creation.
    """

    def __init__(
        self,
        client: ChainClient,
        config: DeploymentConfig,
        group: str,
        account: Optional[Any] = None,
        autosign: bool = False,
        verify: Optional[bool] = None,
        ledger: Optional[DeploymentLedger] = None,
    ):
        super().__init__(client, account, autosign)

        config.validate_network(chain_id=client.chain_id, is_local=client.is_local)
        self.config = config
        self.group = group
        self.ledger = ledger
        self.verify = config.verification.enabled if verify is None else verify
        self._print_deployment_info()

        if not self._autosign:
            # Confirms the start of the deployment.
            _continue()

    @classmethod
    def from_config(
        cls, config: DeploymentConfig, client: ChainClient, group: str, **kwargs
    ) -> "Deployer":
        """Live networks get a ledger by default; local chains are thrown away between runs."""
        if "ledger" not in kwargs and not client.is_local:
            kwargs["ledger"] = DeploymentLedger(
                filepath=config.ledger_filepath, chain_id=client.chain_id, group=group
            )
        return cls(client=client, config=config, group=group, **kwargs)

    @classmethod
    def from_yaml(cls, filepath: Path, client: ChainClient, group: str, **kwargs) -> "Deployer":
        config = DeploymentConfig.from_yaml(filepath)
        return cls.from_config(config, client, group, **kwargs)

    @property
    def constants(self):
        return self.config.constants

    def constant(self, name: str, default: Any = None) -> Any:
        return self.config.get_constant(name, default)

    def state(self, contract_name: str) -> ContractState:
        if self.ledger is None:
            return ContractState.PENDING
        return self.ledger.state(contract_name)

    def _recorded(self, contract_name: str, args: Sequence[Any]) -> Optional[DeployedContract]:
        if self.ledger is None:
            return None
        try:
            return self.ledger.lookup(contract_name, args)
        except DeploymentLedger.Conflict as e:
            raise DeploymentError(str(e)) from e

    def deploy(
        self,
        contract_name: str,
        *args,
        dependencies: Sequence[typing.Union[DeployedContract, str]] = (),
        setup: Optional[Callable[[DeployedContract], None]] = None,
    ) -> DeployedContract:
        """
        Deploys one contract, unless the ledger already holds it for this group.
        `setup` runs the post-deployment wiring of a fresh instance; the contract is
        recorded only once its wiring succeeded.
        """
        recorded = self._recorded(contract_name, args)
        if recorded is not None:
            print(f"(i) {contract_name} already deployed at {recorded.address}; skipping.")
            return recorded

        if not self._autosign:
            _confirm_arguments(contract_name, args)

        deployed = self.client.deploy(self._account, contract_name, *args)
        deployed = deployed._replace(dependencies=addresses(*dependencies))
        print(f"(i) {contract_name} deployed to {deployed.address}")

        if setup is not None:
            setup(deployed)

        if self.ledger is not None:
            self.ledger.record(deployed)
        return deployed

    def finalize(self, deployments: List[DeployedContract], verifier=None) -> None:
        """Optionally publishes the deployments to the block explorer."""
        if not self.verify:
            return
        if verifier is None:
            raise ValueError("Verification is enabled but no verifier was provided.")
        verifier.verify_all(deployments, ledger=self.ledger)

    def _print_deployment_info(self):
        print(
            f"Account: {self.address}",
            f"Config: {self.config.path}",
            f"Group: {self.group}",
            f"Ledger: {self.ledger.filepath if self.ledger else None}",
            f"Verify: {self.verify}",
            f"Network: {self.client.network_name}",
            f"Chain ID: {self.client.chain_id}",
            sep="\n",
        )
