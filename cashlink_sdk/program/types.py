"""Type definitions for the Cash Link program module."""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from solana.rpc.commitment import Commitment
from solders.pubkey import Pubkey

from .constants import DEFAULT_NUM_DAYS_TO_EXPIRE


class AccountType(IntEnum):
    """Tag stored in the first byte of every program account."""

    UNINITIALIZED = 0
    CASH_LINK = 1
    REDEMPTION = 2


class CashLinkState(IntEnum):
    """Lifecycle state of a cash link."""

    INITIALIZED = 0
    REDEEMED = 1
    REDEEMING = 2
    EXPIRED = 3


class DistributionType(IntEnum):
    """How the amount is split across redemptions (computed on-chain)."""

    FIXED = 0
    RANDOM = 1


class CashInstruction(IntEnum):
    """Instruction discriminant, the first byte of instruction data."""

    INIT_CASH_LINK = 0
    REDEEM = 1
    CANCEL = 2
    CLOSE = 3


# ============================================================================
# ACCOUNT DATA
# ============================================================================


@dataclass
class CashLink:
    """Cash link account data.

    Pubkey fields hold base-58 strings, as they appear in the decoded record.
    """

    account_type: AccountType
    authority: str
    state: CashLinkState
    amount: int
    fee_bps: int
    fixed_fee: int
    fee_to_redeem: int
    remaining_amount: int
    distribution_type: DistributionType
    owner: str
    last_redeemed_at: Optional[int]
    expires_at: int
    mint: Optional[str]
    total_redemptions: int
    max_num_redemptions: int
    min_amount: int
    fingerprint_enabled: bool
    pass_key: str

    @property
    def is_native(self) -> bool:
        """True when the cash link holds lamports rather than an SPL token."""
        return self.mint is None

    @property
    def redemptions_remaining(self) -> int:
        return max(self.max_num_redemptions - self.total_redemptions, 0)


@dataclass
class Redemption:
    """Redemption receipt account data."""

    account_type: AccountType
    cash_link: str
    wallet: str
    redeemed_at: int
    amount: int


@dataclass
class TokenAccount:
    """The leading fields of an SPL token account."""

    address: Pubkey
    mint: Pubkey
    owner: Pubkey
    amount: int


# ============================================================================
# INSTRUCTION ARGS
# ============================================================================


@dataclass
class InitCashLinkArgs:
    amount: int
    fee_bps: int
    fixed_fee: int
    fee_to_redeem: int
    cash_link_bump: int
    distribution_type: DistributionType
    max_num_redemptions: int
    min_amount: Optional[int] = None
    fingerprint_enabled: Optional[bool] = None
    num_days_to_expire: int = DEFAULT_NUM_DAYS_TO_EXPIRE


@dataclass
class RedeemCashLinkArgs:
    redemption_bump: int
    cash_link_bump: int
    fingerprint: Optional[str] = None
    fingerprint_bump: Optional[int] = None


@dataclass
class CancelCashLinkArgs:
    cash_link_bump: int


@dataclass
class CloseCashLinkArgs:
    pass


# Parameter types for client methods


@dataclass
class InitializeCashLinkParams:
    """Parameters for creating a new cash link."""

    wallet: Pubkey  # Owner funding the link; refunded on cancel
    pass_key: Pubkey
    amount: int
    distribution_type: DistributionType
    max_num_redemptions: int
    mint: Optional[Pubkey] = None
    min_amount: Optional[int] = None
    fee_bps: int = 0
    fixed_fee: int = 0
    fee_to_redeem: int = 0
    fingerprint_enabled: Optional[bool] = None
    num_days_to_expire: int = DEFAULT_NUM_DAYS_TO_EXPIRE
    commitment: Optional[Commitment] = None
    compute_unit_price: Optional[int] = None
    compute_budget: Optional[int] = None


@dataclass
class CashLinkParams:
    """Parameters for operations on an existing cash link."""

    wallet_address: Pubkey
    pass_key: Pubkey
    commitment: Optional[Commitment] = None
    compute_unit_price: Optional[int] = None
    compute_budget: Optional[int] = None


@dataclass
class RedeemCashLinkParams(CashLinkParams):
    """Parameters for redeeming a cash link."""

    fingerprint: Optional[str] = None


@dataclass
class ResultContext:
    """A signed, serialized transaction ready for co-signing or submission."""

    transaction: str  # base64
    slot: int
    last_valid_block_height: int
