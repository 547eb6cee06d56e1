"""Constants for the Cash Link program module."""

from solders.pubkey import Pubkey

# ============================================================================
# PROGRAM IDS
# ============================================================================

PROGRAM_ID = Pubkey.from_string("cashQKx31fVsquVKXQ9prKqVtSYf8SqcYt9Jyvg966q")

SYSTEM_PROGRAM_ID = Pubkey.from_string("11111111111111111111111111111111")
TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
ASSOCIATED_TOKEN_PROGRAM_ID = Pubkey.from_string(
    "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"
)

# ============================================================================
# SYSVARS
# ============================================================================

RENT_SYSVAR_ID = Pubkey.from_string("SysvarRent111111111111111111111111111111111")
CLOCK_SYSVAR_ID = Pubkey.from_string("SysvarC1ock11111111111111111111111111111111")
SLOT_HASHES_SYSVAR_ID = Pubkey.from_string(
    "SysvarS1otHashes111111111111111111111111111"
)

# ============================================================================
# PDA SEEDS
# ============================================================================

SEED_CASH_LINK = b"cash"
SEED_REDEMPTION = b"redeem"
SEED_FINGERPRINT = b"fingerprint"

MAX_SEEDS = 16
MAX_SEED_LEN = 32

# ============================================================================
# INSTRUCTION DISCRIMINANTS
# ============================================================================

INSTRUCTION_INIT_CASH_LINK = 0
INSTRUCTION_REDEEM = 1
INSTRUCTION_CANCEL = 2
INSTRUCTION_CLOSE = 3

# ============================================================================
# ACCOUNT SIZES
# ============================================================================

CASH_LINK_SIZE = 196
REDEMPTION_SIZE = 81

# ============================================================================
# LIMITS
# ============================================================================

MAX_FEE_BPS = 10_000
DEFAULT_NUM_DAYS_TO_EXPIRE = 1
