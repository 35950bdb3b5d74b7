from typing import Any, Dict, List, Optional, Sequence

from eth_abi import decode, encode, is_encodable, is_encodable_type
from eth_abi.exceptions import DecodingError
from eth_utils import function_abi_to_4byte_selector
from eth_utils.abi import collapse_if_tuple
from ethpm_types import ContractType

from kanna_deployment.chain import DeployedContract
from kanna_deployment.constants import (
    AGGREGATOR_MOCK,
    AGGREGATOR_MOCK_ANSWER,
    AGGREGATOR_MOCK_DECIMALS,
    AGGREGATOR_V3_INTERFACE_ABI,
    DYNAMIC_BADGE_CHECKER_ABI,
    DYNAMIC_BADGE_CHECKER_MOCK,
)
from kanna_deployment.deployer import Transactor
from kanna_deployment.exceptions import MockSetupError
from kanna_deployment.utils import load_abi


def _types(params: Sequence[Dict]) -> List[str]:
    return [collapse_if_tuple(param) for param in params]


def _validate_function_abi(entry: Dict) -> None:
    name = entry.get("name")
    if not isinstance(name, str) or not name:
        raise MockSetupError(f"Function ABI entry without a name: {entry}")
    for field in ("inputs", "outputs"):
        params = entry.get(field, [])
        if not isinstance(params, list) or not all(isinstance(p, dict) for p in params):
            raise MockSetupError(f"'{field}' of '{name}' must be a list of parameters.")
        for param in params:
            if "type" not in param:
                raise MockSetupError(f"Parameter of '{name}' without a type: {param}")
            abi_type = collapse_if_tuple(param)
            if not is_encodable_type(abi_type):
                raise MockSetupError(f"Unknown ABI type '{abi_type}' in '{name}'.")


def validate_interface_abi(interface_abi: Any) -> List[Dict]:
    """Returns the function entries of an interface ABI, rejecting malformed ABIs."""
    if not isinstance(interface_abi, list) or not all(isinstance(e, dict) for e in interface_abi):
        raise MockSetupError("Interface ABI must be a list of ABI entries.")

    try:
        ContractType.model_validate({"abi": interface_abi})
    except ValueError as e:
        raise MockSetupError(f"Malformed interface ABI: {e}") from e

    functions = [entry for entry in interface_abi if entry.get("type") == "function"]
    if not functions:
        raise MockSetupError("Interface ABI declares no functions to mock.")
    for entry in functions:
        _validate_function_abi(entry)
    return functions


class MockHandle:
    """
    A deployed stand-in for an interface. Nothing is programmed at deployment;
    responses are configured explicitly with `returns` / `reverts` before any
    dependent contract exercises the mock.
    """

    def __init__(self, transactor: Transactor, contract: DeployedContract, interface_abi: List[Dict]):
        self.transactor = transactor
        self.contract = contract
        self.functions = validate_interface_abi(interface_abi)

    def __repr__(self) -> str:
        return f"<MockHandle {self.contract.name} at {self.address}>"

    @property
    def address(self) -> str:
        return self.contract.address

    def _function(self, method: str, arg_count: Optional[int] = None) -> Dict:
        candidates = [f for f in self.functions if f["name"] == method]
        if arg_count is not None:
            candidates = [f for f in candidates if len(f.get("inputs", [])) == arg_count]
        if not candidates:
            raise MockSetupError(f"'{method}' is not part of the {self.contract.name} interface.")
        if len(candidates) > 1:
            raise MockSetupError(f"'{method}' is overloaded; pass arguments to disambiguate.")
        return candidates[0]

    @staticmethod
    def _encode(params: Sequence[Dict], values: Sequence[Any], what: str) -> bytes:
        types = _types(params)
        if len(types) != len(values):
            raise MockSetupError(f"{what} expects {len(types)} value(s), got {len(values)}.")
        for abi_type, value in zip(types, values):
            if not is_encodable(abi_type, value):
                raise MockSetupError(f"{what}: {value!r} is not encodable as '{abi_type}'.")
        return encode(types, list(values))

    def _calldata(self, function: Dict, args: Optional[Sequence[Any]]) -> bytes:
        selector = function_abi_to_4byte_selector(function)
        if args is None:
            return selector
        return selector + self._encode(function.get("inputs", []), args, f"{function['name']} input")

    def returns(self, method: str, *values, args: Optional[Sequence[Any]] = None) -> "MockHandle":
        """
        Programs `method` to return `values`. Without `args` the response applies to
        every call of the method; with `args` only to calls carrying exactly those arguments.
        """
        function = self._function(method, None if args is None else len(args))
        key = self._calldata(function, args)
        value = self._encode(function.get("outputs", []), values, f"{method} output")
        self.transactor.client.mock_returns(self.transactor.get_account(), self.address, key, value)
        return self

    def reverts(self, method: str, reason: str, args: Optional[Sequence[Any]] = None) -> "MockHandle":
        function = self._function(method, None if args is None else len(args))
        key = self._calldata(function, args)
        self.transactor.client.mock_reverts(self.transactor.get_account(), self.address, key, reason)
        return self

    def call(self, method: str, *args) -> Any:
        """Calls the mocked interface method and decodes its programmed response."""
        function = self._function(method, len(args))
        data = self._calldata(function, args)
        raw = self.transactor.client.call(self.address, data)
        try:
            result = decode(_types(function.get("outputs", [])), raw)
        except DecodingError as e:
            raise MockSetupError(f"Could not decode response of {method}: {e}") from e
        if len(result) == 1:
            return result[0]
        return tuple(result)


def deploy_mock(transactor: Transactor, interface_abi: Any, name: str = "Mock") -> MockHandle:
    """Deploys an unprogrammed stand-in for `interface_abi`."""
    functions = validate_interface_abi(interface_abi)
    contract = transactor.client.deploy_mock(transactor.get_account(), name)
    print(f"(i) {name} mock deployed to {contract.address}")
    return MockHandle(transactor, contract, functions)


def get_aggregator_mock(
    transactor: Transactor,
    answer: int = AGGREGATOR_MOCK_ANSWER,
    decimals: int = AGGREGATOR_MOCK_DECIMALS,
) -> MockHandle:
    """Price feed stand-in answering `answer` (with `decimals` decimals) for every round."""
    aggregator = deploy_mock(transactor, load_abi(AGGREGATOR_V3_INTERFACE_ABI), AGGREGATOR_MOCK)
    aggregator.returns("decimals", decimals)
    aggregator.returns("latestRoundData", 1, answer, 0, 0, 1)
    return aggregator


def get_dynamic_badge_checker_mock(transactor: Transactor) -> MockHandle:
    checker = deploy_mock(transactor, load_abi(DYNAMIC_BADGE_CHECKER_ABI), DYNAMIC_BADGE_CHECKER_MOCK)
    checker.returns("supportsInterface", True)
    return checker
