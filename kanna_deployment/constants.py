from pathlib import Path

import kanna_deployment

#
# Filesystem
#

DEPLOYMENT_DIR = Path(kanna_deployment.__file__).parent
CONSTRUCTOR_PARAMS_DIR = DEPLOYMENT_DIR / "constructor_params"
ARTIFACTS_DIR = DEPLOYMENT_DIR / "artifacts"
ABI_DIR = DEPLOYMENT_DIR / "abi"

#
# Networks
#

LOCAL_NETWORKS = ["local"]

#
# Contracts
#

KNN_TOKEN = "ERC20KannaToken"
KNN_TREASURER = "KannaTreasurer"
KNN_YIELD = "KannaYield"
KNN_PRE_SALE = "KannaPreSale"
KNN_SALE = "KannaSale"
KNN_SALE_L2 = "KannaSaleL2"
KNN_STOCK_OPTION = "KannaStockOption"
KNN_STOCK_OPTION_MANAGER = "KannaStockOptionManager"
KNN_ROLES = "KannaRoles"
KNN_BADGES = "KannaBadges"
KNN_BADGES_L2 = "KannaBadgesL2"
KNN_HOLDER_BADGE_CHECKER = "KnnHolderBadgeChecker"
KNN_AUDIT_STAKE_POOL = "KannaAuditStakePool"

# generic programmable stand-in, see contracts/mocks/KannaMockContract.sol
MOCK_CONTRACT = "KannaMockContract"
AGGREGATOR_MOCK = "AggregatorV3Mock"
DYNAMIC_BADGE_CHECKER_MOCK = "DynamicBadgeCheckerMock"

AGGREGATOR_V3_INTERFACE_ABI = ABI_DIR / "AggregatorV3Interface.json"
DYNAMIC_BADGE_CHECKER_ABI = ABI_DIR / "IDynamicBadgeChecker.json"

#
# Defaults (overridable through the "constants" section of a params file)
#

KNN_DECIMALS = 10**18

YIELD_REWARDS = 400_000 * KNN_DECIMALS
PRE_SALE_AMOUNT = 50_000 * KNN_DECIMALS
PRE_SALE_QUOTATION = 1
SALE_AMOUNT = 100_000 * KNN_DECIMALS
SALE_QUOTATION = 60_000_000
BADGES_URI = "https://nft.kannacoin.io/{id}.json"

# goerli [matic-usd] -> e.g.: 0.85903794
AGGREGATOR_MOCK_ANSWER = 85_903_794
AGGREGATOR_MOCK_DECIMALS = 8

#
# Verification
#

DEFAULT_CONFIRMATIONS = 5
DEFAULT_CONFIRMATION_TIMEOUT = 300  # seconds
DEFAULT_POLL_INTERVAL = 2  # seconds
DEFAULT_VERIFICATION_RETRIES = 5
DEFAULT_VERIFICATION_BACKOFF = 2  # seconds, doubled on every attempt
MAX_VERIFICATION_BACKOFF = 60  # seconds

# Explorer responses meaning "not indexed yet, try again later"
EXPLORER_PENDING_MARKERS = (
    "does not have bytecode",
    "unable to locate contractcode",
    "pending in queue",
)
