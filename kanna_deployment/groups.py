"""
Deployment groups: each one deploys a fixed dependency chain of Kanna contracts.

The dependency graph is not computed; it is the call order of each group. A
dependent factory only ever receives handles returned by its predecessors, and
the first failure aborts the rest of the group.
"""
from collections import OrderedDict
from typing import Callable, Dict, List, Optional, Union

from eth_utils import to_checksum_address

from kanna_deployment.chain import DeployedContract
from kanna_deployment.config import DeploymentConfig
from kanna_deployment.constants import AGGREGATOR_MOCK_ANSWER, AGGREGATOR_MOCK_DECIMALS
from kanna_deployment.deployer import Deployer
from kanna_deployment.exceptions import MockSetupError
from kanna_deployment.factories import (
    get_kanna_audit_stake_pool,
    get_kanna_badges,
    get_kanna_badges_l2,
    get_kanna_roles,
    get_kanna_stock_option,
    get_kanna_stock_option_manager,
    get_knn_holder_badge_checker,
    get_knn_pre_sale,
    get_knn_sale,
    get_knn_sale_l2,
    get_knn_token,
    get_knn_treasurer,
    get_knn_yield,
)
from kanna_deployment.mocks import get_aggregator_mock
from kanna_deployment.verification import Verifier

DeploymentGroup = Callable[[Deployer], List[DeployedContract]]


def _existing_or_new_token(deployer: Deployer) -> Union[str, DeployedContract]:
    """An already live token configured as TOKEN_ADDRESS, or a freshly deployed one."""
    token_address = deployer.constant("TOKEN_ADDRESS")
    if token_address:
        print(f"(i) Using configured token at {token_address}")
        return to_checksum_address(token_address)
    return get_knn_token(deployer)


def _deployed(*contracts) -> List[DeployedContract]:
    return [c for c in contracts if isinstance(c, DeployedContract)]


def deploy_token(deployer: Deployer) -> List[DeployedContract]:
    knn_token = get_knn_token(deployer)
    return [knn_token]


def deploy_treasurer(deployer: Deployer) -> List[DeployedContract]:
    knn_token = get_knn_token(deployer)
    knn_treasurer = get_knn_treasurer(deployer, knn_token)
    return [knn_token, knn_treasurer]


def deploy_yield(deployer: Deployer) -> List[DeployedContract]:
    knn_token = get_knn_token(deployer)
    knn_treasurer = get_knn_treasurer(deployer, knn_token)
    knn_yield = get_knn_yield(deployer, knn_token, knn_treasurer)
    return [knn_token, knn_treasurer, knn_yield]


def deploy_pre_sale(deployer: Deployer) -> List[DeployedContract]:
    knn_token = get_knn_token(deployer)
    knn_treasurer = get_knn_treasurer(deployer, knn_token)
    knn_yield = get_knn_yield(deployer, knn_token, knn_treasurer)
    knn_pre_sale = get_knn_pre_sale(deployer, knn_token, knn_treasurer)
    return [knn_token, knn_treasurer, knn_yield, knn_pre_sale]


def _price_aggregator(deployer: Deployer) -> Optional[str]:
    """
    The configured live price feed. Without one, only a local network can
    stand in an aggregator mock; checked before anything is deployed.
    """
    price_aggregator = deployer.constant("PRICE_AGGREGATOR")
    if price_aggregator:
        return to_checksum_address(price_aggregator)
    if not deployer.client.is_local:
        raise MockSetupError(
            f"PRICE_AGGREGATOR must be configured on '{deployer.client.network_name}'; "
            f"aggregator mocks are only deployed on local networks."
        )
    return None


def deploy_sale(deployer: Deployer) -> List[DeployedContract]:
    aggregator = _price_aggregator(deployer)
    knn_token = _existing_or_new_token(deployer)

    deployments = []
    if aggregator is None:
        deployments = deploy_aggregator_mock(deployer)
        aggregator = deployments[0]

    knn_sale = get_knn_sale(deployer, knn_token, aggregator)
    return _deployed(knn_token) + deployments + [knn_sale]


def deploy_sale_l2(deployer: Deployer) -> List[DeployedContract]:
    aggregator = _price_aggregator(deployer)

    fx_token = deployer.constant("FX_TOKEN_ADDRESS")
    if fx_token:
        print(f"(i) Using bridged token at {fx_token}")
        fx_token = to_checksum_address(fx_token)
    elif deployer.client.is_local:
        fx_token = get_knn_token(deployer)
    else:
        raise DeploymentConfig.Invalid(
            f"FX_TOKEN_ADDRESS must be configured to deploy the L2 sale "
            f"on '{deployer.client.network_name}'."
        )

    deployments = []
    if aggregator is None:
        deployments = deploy_aggregator_mock(deployer)
        aggregator = deployments[0]

    knn_sale_l2 = get_knn_sale_l2(deployer, fx_token, aggregator)
    return _deployed(fx_token) + deployments + [knn_sale_l2]


def deploy_stock_option(deployer: Deployer) -> List[DeployedContract]:
    return [get_kanna_stock_option(deployer)]


def deploy_stock_option_manager(deployer: Deployer) -> List[DeployedContract]:
    return [get_kanna_stock_option_manager(deployer)]


def deploy_roles(deployer: Deployer) -> List[DeployedContract]:
    return [get_kanna_roles(deployer)]


def deploy_badges(deployer: Deployer) -> List[DeployedContract]:
    return [get_kanna_badges(deployer)]


def deploy_badges_l2(deployer: Deployer) -> List[DeployedContract]:
    return [get_kanna_badges_l2(deployer)]


def deploy_holder_checker(deployer: Deployer) -> List[DeployedContract]:
    knn_token = _existing_or_new_token(deployer)
    holder_checker = get_knn_holder_badge_checker(deployer, knn_token)
    return _deployed(knn_token, holder_checker)


def deploy_audit_stake_pool(deployer: Deployer) -> List[DeployedContract]:
    return [get_kanna_audit_stake_pool(deployer)]


def deploy_aggregator_mock(deployer: Deployer) -> List[DeployedContract]:
    aggregator_mock = get_aggregator_mock(
        deployer,
        answer=deployer.constant("AGGREGATOR_MOCK_ANSWER", AGGREGATOR_MOCK_ANSWER),
        decimals=deployer.constant("AGGREGATOR_MOCK_DECIMALS", AGGREGATOR_MOCK_DECIMALS),
    )
    return [aggregator_mock.contract]


GROUPS: Dict[str, DeploymentGroup] = OrderedDict(
    [
        ("token", deploy_token),
        ("treasurer", deploy_treasurer),
        ("yield", deploy_yield),
        ("presale", deploy_pre_sale),
        ("sale", deploy_sale),
        ("sale-l2", deploy_sale_l2),
        ("stock-option", deploy_stock_option),
        ("stock-option-manager", deploy_stock_option_manager),
        ("roles", deploy_roles),
        ("badges", deploy_badges),
        ("badges-l2", deploy_badges_l2),
        ("holder-checker", deploy_holder_checker),
        ("audit-stake-pool", deploy_audit_stake_pool),
        ("aggregator-mock", deploy_aggregator_mock),
    ]
)


def run_group(deployer: Deployer, verifier: Optional[Verifier] = None) -> "OrderedDict[str, str]":
    """
    Deploys the deployer's group in dependency order, prints the resulting addresses and
    verifies them when the deployer is configured to. Returns contract name -> address.
    """
    try:
        deploy_group = GROUPS[deployer.group]
    except KeyError:
        raise ValueError(f"Unknown deployment group '{deployer.group}'")

    deployments = deploy_group(deployer)

    print(f"\nDeployed '{deployer.group}' group:")
    for deployed in deployments:
        print(f"\t{deployed.name}: {deployed.address}")

    deployer.finalize(deployments, verifier=verifier)
    return OrderedDict((deployed.name, deployed.address) for deployed in deployments)
