"""
One factory per deployable Kanna contract.

Each factory takes the deployer and the handles of the contracts it depends on and
returns a DeployedContract. The matching `*_parameters` builders return the exact
constructor arguments, so that verification replays what was deployed.
"""
from typing import Any, List, Optional, Union

from kanna_deployment.chain import DeployedContract
from kanna_deployment.constants import (
    BADGES_URI,
    KNN_AUDIT_STAKE_POOL,
    KNN_BADGES,
    KNN_BADGES_L2,
    KNN_HOLDER_BADGE_CHECKER,
    KNN_PRE_SALE,
    KNN_ROLES,
    KNN_SALE,
    KNN_SALE_L2,
    KNN_STOCK_OPTION,
    KNN_STOCK_OPTION_MANAGER,
    KNN_TOKEN,
    KNN_TREASURER,
    KNN_YIELD,
    PRE_SALE_AMOUNT,
    PRE_SALE_QUOTATION,
    SALE_AMOUNT,
    SALE_QUOTATION,
    YIELD_REWARDS,
)
from kanna_deployment.deployer import Deployer

Dependency = Union[DeployedContract, str]


def _address(contract: Dependency) -> str:
    return contract.address if isinstance(contract, DeployedContract) else contract


#
# Token
#


def get_knn_token_parameters(deployer: Deployer) -> List[Any]:
    return [deployer.address]


def get_knn_token(deployer: Deployer) -> DeployedContract:
    parameters = get_knn_token_parameters(deployer)
    return deployer.deploy(KNN_TOKEN, *parameters)


#
# Treasurer
#


def get_knn_treasurer_parameters(knn_token: Dependency) -> List[Any]:
    return [_address(knn_token)]


def get_knn_treasurer(deployer: Deployer, knn_token: DeployedContract) -> DeployedContract:
    parameters = get_knn_treasurer_parameters(knn_token)

    def initialize_treasury(knn_treasurer: DeployedContract) -> None:
        deployer.transact(knn_token, "initializeTreasury", knn_treasurer.address)

    return deployer.deploy(
        KNN_TREASURER, *parameters, dependencies=[knn_token], setup=initialize_treasury
    )


#
# Yield
#


def get_knn_yield_parameters(knn_token: Dependency, fee_recipient: Dependency) -> List[Any]:
    return [_address(knn_token), _address(fee_recipient)]


def get_knn_yield(
    deployer: Deployer,
    knn_token: Dependency,
    knn_treasurer: Optional[DeployedContract] = None,
) -> DeployedContract:
    parameters = get_knn_yield_parameters(knn_token, deployer.address)
    rewards = deployer.constant("YIELD_REWARDS", YIELD_REWARDS)

    def release_rewards(knn_yield: DeployedContract) -> None:
        if knn_treasurer is not None:
            deployer.transact(knn_treasurer, "release", knn_yield.address, rewards)

    dependencies = [knn_token] if knn_treasurer is None else [knn_token, knn_treasurer]
    return deployer.deploy(KNN_YIELD, *parameters, dependencies=dependencies, setup=release_rewards)


#
# Sales
#


def get_knn_pre_sale_parameters(knn_token: Dependency) -> List[Any]:
    return [_address(knn_token)]


def get_knn_pre_sale(
    deployer: Deployer, knn_token: DeployedContract, knn_treasurer: DeployedContract
) -> DeployedContract:
    parameters = get_knn_pre_sale_parameters(knn_token)
    amount = deployer.constant("PRE_SALE_AMOUNT", PRE_SALE_AMOUNT)
    quotation = deployer.constant("PRE_SALE_QUOTATION", PRE_SALE_QUOTATION)

    def fund_pre_sale(knn_pre_sale: DeployedContract) -> None:
        deployer.transact(knn_token, "noTransferFee", knn_pre_sale.address)
        deployer.transact(knn_treasurer, "release", knn_pre_sale.address, amount)
        deployer.transact(knn_pre_sale, "updateQuotation", quotation)

    return deployer.deploy(
        KNN_PRE_SALE,
        *parameters,
        dependencies=[knn_token, knn_treasurer],
        setup=fund_pre_sale,
    )


def get_knn_sale_parameters(
    knn_token: Dependency, aggregator: Dependency, quotation: int = SALE_QUOTATION
) -> List[Any]:
    return [_address(knn_token), _address(aggregator), quotation]


def get_knn_sale(
    deployer: Deployer,
    knn_token: Dependency,
    aggregator: Dependency,
    knn_treasurer: Optional[DeployedContract] = None,
) -> DeployedContract:
    quotation = deployer.constant("SALE_QUOTATION", SALE_QUOTATION)
    parameters = get_knn_sale_parameters(knn_token, aggregator, quotation)
    amount = deployer.constant("SALE_AMOUNT", SALE_AMOUNT)

    def fund_sale(knn_sale: DeployedContract) -> None:
        if knn_treasurer is not None:
            deployer.transact(knn_treasurer, "transfer", knn_sale.address, amount)

    dependencies = [knn_token, aggregator]
    if knn_treasurer is not None:
        dependencies.append(knn_treasurer)
    return deployer.deploy(KNN_SALE, *parameters, dependencies=dependencies, setup=fund_sale)


def get_knn_sale_l2_parameters(
    fx_token: Dependency, aggregator: Dependency, quotation: int = SALE_QUOTATION
) -> List[Any]:
    return [_address(fx_token), _address(aggregator), quotation]


def get_knn_sale_l2(
    deployer: Deployer,
    fx_token: Dependency,
    aggregator: Dependency,
    knn_treasurer: Optional[DeployedContract] = None,
) -> DeployedContract:
    """Sale on an L2 chain, selling the bridged (FX portal) KNN token."""
    quotation = deployer.constant("SALE_QUOTATION", SALE_QUOTATION)
    parameters = get_knn_sale_l2_parameters(fx_token, aggregator, quotation)
    amount = deployer.constant("SALE_AMOUNT", SALE_AMOUNT)

    def fund_sale(knn_sale_l2: DeployedContract) -> None:
        if knn_treasurer is not None:
            deployer.transact(knn_treasurer, "transfer", knn_sale_l2.address, amount)

    dependencies = [fx_token, aggregator]
    if knn_treasurer is not None:
        dependencies.append(knn_treasurer)
    return deployer.deploy(KNN_SALE_L2, *parameters, dependencies=dependencies, setup=fund_sale)


#
# Stock options
#


def get_kanna_stock_option(deployer: Deployer) -> DeployedContract:
    return deployer.deploy(KNN_STOCK_OPTION)


def get_kanna_stock_option_manager(deployer: Deployer) -> DeployedContract:
    return deployer.deploy(KNN_STOCK_OPTION_MANAGER)


#
# Roles, badges and audit
#


def get_kanna_roles(deployer: Deployer) -> DeployedContract:
    return deployer.deploy(KNN_ROLES)


def get_kanna_badges_parameters(uri: str = BADGES_URI) -> List[Any]:
    return [uri]


def get_kanna_badges(deployer: Deployer, uri: Optional[str] = None) -> DeployedContract:
    uri = uri or deployer.constant("BADGES_URI", BADGES_URI)
    parameters = get_kanna_badges_parameters(uri)
    return deployer.deploy(KNN_BADGES, *parameters)


def get_kanna_badges_l2_parameters(uri: str = BADGES_URI) -> List[Any]:
    return [uri]


def get_kanna_badges_l2(deployer: Deployer, uri: Optional[str] = None) -> DeployedContract:
    uri = uri or deployer.constant("BADGES_URI", BADGES_URI)
    parameters = get_kanna_badges_l2_parameters(uri)
    return deployer.deploy(KNN_BADGES_L2, *parameters)



def get_knn_holder_badge_checker_parameters(knn_token: Dependency) -> List[Any]:
    return [_address(knn_token)]


def get_knn_holder_badge_checker(deployer: Deployer, knn_token: Dependency) -> DeployedContract:
    parameters = get_knn_holder_badge_checker_parameters(knn_token)
    return deployer.deploy(KNN_HOLDER_BADGE_CHECKER, *parameters, dependencies=[knn_token])


def get_kanna_audit_stake_pool(deployer: Deployer) -> DeployedContract:
    return deployer.deploy(KNN_AUDIT_STAKE_POOL)
