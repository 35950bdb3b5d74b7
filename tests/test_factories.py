import pytest
from eth_utils import to_checksum_address

from kanna_deployment.constants import (
    BADGES_URI,
    KNN_BADGES,
    KNN_BADGES_L2,
    KNN_HOLDER_BADGE_CHECKER,
    KNN_PRE_SALE,
    KNN_ROLES,
    KNN_SALE,
    KNN_SALE_L2,
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
from kanna_deployment.exceptions import DeploymentError
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
from kanna_deployment.registry import ContractState

AGGREGATOR = to_checksum_address("0x694aa1769357215de4fac081bf1f309adc325306")
FX_TOKEN = to_checksum_address("0x2a1bfa3b4c8d4c2a0e3b4c0d8e1f2a3b4c5d6e7f")


def test_token_is_owned_by_deployer(deployer, fake_chain):
    knn_token = get_knn_token(deployer)

    assert knn_token.name == KNN_TOKEN
    assert knn_token.constructor_arguments == (deployer.address,)
    assert knn_token.deployer == deployer.address
    assert knn_token.dependencies == ()
    assert fake_chain.deployments == [knn_token]


def test_each_call_creates_a_new_instance(deployer, fake_chain):
    first = get_knn_token(deployer)
    second = get_knn_token(deployer)
    assert first.address != second.address
    assert len(fake_chain.deployments) == 2


def test_treasurer_initializes_treasury(deployer, fake_chain):
    knn_token = get_knn_token(deployer)
    knn_treasurer = get_knn_treasurer(deployer, knn_token)

    assert knn_treasurer.constructor_arguments == (knn_token.address,)
    assert knn_treasurer.dependencies == (knn_token.address,)
    assert fake_chain.transactions == [
        (KNN_TOKEN, "initializeTreasury", (knn_treasurer.address,))
    ]


def test_yield_without_treasurer(deployer, fake_chain):
    knn_token = get_knn_token(deployer)
    knn_yield = get_knn_yield(deployer, knn_token)

    assert knn_yield.constructor_arguments == (knn_token.address, deployer.address)
    assert knn_yield.dependencies == (knn_token.address,)
    assert fake_chain.transactions == []


def test_yield_receives_rewards(deployer, fake_chain):
    knn_token = get_knn_token(deployer)
    knn_treasurer = get_knn_treasurer(deployer, knn_token)
    knn_yield = get_knn_yield(deployer, knn_token, knn_treasurer)

    assert knn_yield.dependencies == (knn_token.address, knn_treasurer.address)
    assert fake_chain.transactions[-1] == (
        KNN_TREASURER,
        "release",
        (knn_yield.address, YIELD_REWARDS),
    )


def test_pre_sale_wiring(deployer, fake_chain):
    knn_token = get_knn_token(deployer)
    knn_treasurer = get_knn_treasurer(deployer, knn_token)
    knn_pre_sale = get_knn_pre_sale(deployer, knn_token, knn_treasurer)

    assert knn_pre_sale.name == KNN_PRE_SALE
    assert knn_pre_sale.constructor_arguments == (knn_token.address,)
    assert fake_chain.transactions[1:] == [
        (KNN_TOKEN, "noTransferFee", (knn_pre_sale.address,)),
        (KNN_TREASURER, "release", (knn_pre_sale.address, PRE_SALE_AMOUNT)),
        (KNN_PRE_SALE, "updateQuotation", (PRE_SALE_QUOTATION,)),
    ]


def test_sale_arguments(deployer, fake_chain):
    knn_token = get_knn_token(deployer)
    knn_sale = get_knn_sale(deployer, knn_token, AGGREGATOR)

    assert knn_sale.name == KNN_SALE
    assert knn_sale.constructor_arguments == (knn_token.address, AGGREGATOR, SALE_QUOTATION)
    assert knn_sale.dependencies == (knn_token.address, AGGREGATOR)
    assert fake_chain.transactions == []


def test_sale_is_funded_by_treasurer(deployer, fake_chain):
    knn_token = get_knn_token(deployer)
    knn_treasurer = get_knn_treasurer(deployer, knn_token)
    knn_sale = get_knn_sale(deployer, knn_token, AGGREGATOR, knn_treasurer)

    assert fake_chain.transactions[-1] == (
        KNN_TREASURER,
        "transfer",
        (knn_sale.address, SALE_AMOUNT),
    )


def test_sale_l2_sells_the_bridged_token(deployer, fake_chain):
    knn_sale_l2 = get_knn_sale_l2(deployer, FX_TOKEN, AGGREGATOR)

    assert knn_sale_l2.name == KNN_SALE_L2
    assert knn_sale_l2.constructor_arguments == (FX_TOKEN, AGGREGATOR, SALE_QUOTATION)
    assert knn_sale_l2.dependencies == (FX_TOKEN, AGGREGATOR)
    assert fake_chain.transactions == []


def test_sale_l2_is_funded_by_treasurer(deployer, fake_chain):
    knn_token = get_knn_token(deployer)
    knn_treasurer = get_knn_treasurer(deployer, knn_token)
    knn_sale_l2 = get_knn_sale_l2(deployer, FX_TOKEN, AGGREGATOR, knn_treasurer)

    assert knn_sale_l2.dependencies == (FX_TOKEN, AGGREGATOR, knn_treasurer.address)
    assert fake_chain.transactions[-1] == (
        KNN_TREASURER,
        "transfer",
        (knn_sale_l2.address, SALE_AMOUNT),
    )


@pytest.mark.parametrize(
    "factory",
    [
        get_kanna_stock_option,
        get_kanna_stock_option_manager,
        get_kanna_roles,
        get_kanna_audit_stake_pool,
    ],
)
def test_factories_without_arguments(deployer, fake_chain, factory):
    deployed = factory(deployer)
    assert deployed.constructor_arguments == ()
    assert deployed.dependencies == ()
    assert len(fake_chain.deployments) == 1


def test_badges_uri(deployer, fake_chain, config):
    assert get_kanna_badges(deployer).constructor_arguments == (BADGES_URI,)

    uri = "https://nft-dev.kannacoin.io/{id}.json"
    overridden = Deployer(fake_chain, config.with_constants(BADGES_URI=uri), "badges", autosign=True)
    knn_badges = get_kanna_badges(overridden)
    assert knn_badges.name == KNN_BADGES
    assert knn_badges.constructor_arguments == (uri,)


def test_badges_l2_uri(deployer):
    knn_badges_l2 = get_kanna_badges_l2(deployer)
    assert knn_badges_l2.name == KNN_BADGES_L2
    assert knn_badges_l2.constructor_arguments == (BADGES_URI,)

    uri = "https://nft-dev.kannacoin.io/{id}.json"
    assert get_kanna_badges_l2(deployer, uri=uri).constructor_arguments == (uri,)



def test_holder_badge_checker_accepts_an_address(deployer):
    knn_token = get_knn_token(deployer)
    checker = get_knn_holder_badge_checker(deployer, knn_token.address)
    assert checker.name == KNN_HOLDER_BADGE_CHECKER
    assert checker.constructor_arguments == (knn_token.address,)
    assert checker.dependencies == (knn_token.address,)


def test_constants_override_amounts(fake_chain, config):
    deployer = Deployer(
        fake_chain, config.with_constants(YIELD_REWARDS=42), "yield", autosign=True
    )
    knn_token = get_knn_token(deployer)
    knn_treasurer = get_knn_treasurer(deployer, knn_token)
    knn_yield = get_knn_yield(deployer, knn_token, knn_treasurer)
    assert fake_chain.transactions[-1] == (KNN_TREASURER, "release", (knn_yield.address, 42))


def test_deployment_failure_propagates(deployer, fake_chain):
    error = DeploymentError("insufficient funds for gas")
    fake_chain.failures[KNN_ROLES] = error

    with pytest.raises(DeploymentError) as excinfo:
        get_kanna_roles(deployer)
    assert excinfo.value is error
    assert fake_chain.deployments == []


def test_failed_wiring_is_not_recorded(make_deployer, fake_chain, ledger):
    deployer = make_deployer("yield", ledger=ledger)
    knn_token = get_knn_token(deployer)
    fake_chain.failures[(KNN_TOKEN, "initializeTreasury")] = DeploymentError("reverted")

    with pytest.raises(DeploymentError, match="reverted"):
        get_knn_treasurer(deployer, knn_token)

    assert ledger.state(KNN_TOKEN) == ContractState.DEPLOYED
    assert ledger.state(KNN_TREASURER) == ContractState.PENDING
