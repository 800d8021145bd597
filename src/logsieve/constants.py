from __future__ import annotations

# rate budget (requests / second)
DEFAULT_QPS = 2
MIN_QPS = 1
# jitter added to a throttle wait, as a fraction of the gap
THROTTLE_JITTER = 0.2

DEFAULT_TIMEOUT_MS = 15_000
DEFAULT_LOOKBACK_DAYS = 14
SECONDS_PER_DAY = 86_400
# Base mainnet
APPROX_BLOCK_TIME_SECONDS = 2.2

# eth_getLogs span sizes (blocks per request)
DEFAULT_LOG_INIT_SPAN = 500
DEFAULT_LOG_MIN_SPAN = 10
DEFAULT_LOG_MAX_SPAN = 2_000
LIMITED_RANGE_SPAN_CAP = 10

# JSON-RPC error codes
REQUEST_LIMIT_EXCEEDED_CODE = -32002
INVALID_REQUEST_CODE = -32600
METHOD_NOT_FOUND_CODE = -32601

DEFAULT_EVENT_NAMES: tuple[str, ...] = (
    "MarketCreated",
    "MarketTraded",
    "LockUpdated",
    "StakeUpdated",
    "Unlocked",
    "SponsoredLocked",
    "EpochRootSet",
    "RewardClaimed",
)
