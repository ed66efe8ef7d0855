"""
Project-wide parameters for the VTX token sale.

These values define the public rules of the sale.
Changing them changes what investors agreed to and MUST be publicly announced.
"""

# Token
TOKEN_NAME = "VTX Token"
TOKEN_SYMBOL = "VTX"
TOKEN_DECIMALS = 18

# Rates (tokens per wei)
PRE_ICO_RATE = 500
ICO_RATE = 250

# Sale caps, in ether (converted to wei at deploy time)
CAP_ETHER = 100
GOAL_ETHER = 50
INVESTOR_MIN_CAP_ETHER = "0.002"
INVESTOR_HARD_CAP_ETHER = 50

# Token distribution (percent of final supply)
FOUNDERS_PERCENTAGE = 20

# Timing offsets, in seconds
OPENING_DELAY = 60  # 1 minute after deploy
SALE_DURATION = 7 * 24 * 60 * 60  # 1 week
RELEASE_DELAY = 24 * 60 * 60  # founders' tokens unlock 1 day after close

# Raw transactions
GAS_LIMIT = 5_500_000

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
