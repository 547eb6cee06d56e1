"""On-chain program interaction module for Cash Link.

This module provides the client and utilities for interacting with
the Cash Link escrow program on Solana.
"""

from .accounts import (
    build_cash_link_filters,
    build_redemption_filters,
    deserialize_token_account,
    fetch_cash_link,
    fetch_redemption,
    find_cash_links,
    find_redemptions,
)
from .client import CashLinkClient
from .codec import (
    ACCOUNT_TYPE_OFFSET,
    CASH_LINK_AUTHORITY_OFFSET,
    CASH_LINK_SCHEMA,
    CASH_LINK_STATE_OFFSET,
    REDEMPTION_CASH_LINK_OFFSET,
    REDEMPTION_SCHEMA,
    REDEMPTION_WALLET_OFFSET,
    Schema,
    deserialize_cash_link,
    deserialize_instruction,
    deserialize_redemption,
    serialize_cancel_args,
    serialize_cash_link,
    serialize_close_args,
    serialize_init_cash_link_args,
    serialize_redeem_args,
    serialize_redemption,
)
from .config import ClientConfig
from .constants import PROGRAM_ID
from .errors import (
    AccountAlreadyExistsError,
    AccountNotFoundError,
    AlreadyExpiredError,
    AlreadySettledError,
    CashLinkError,
    CodecError,
    FingerprintRequiredError,
    HasRedemptionsError,
    InvalidDiscriminatorError,
    InvalidOwnerError,
    InvalidParamsError,
    InvalidSeedsError,
    InvalidSignatureError,
    MalformedAccountError,
    MaxRedemptionsReachedError,
    NotExpiredError,
    SerializationError,
    StateViolationError,
)
from .instructions import (
    build_cancel_instruction,
    build_close_instruction,
    build_compute_budget_instructions,
    build_init_cash_link_instruction,
    build_redeem_instruction,
)
from .pda import (
    find_program_address,
    get_associated_token_address,
    get_cash_link_pda,
    get_fingerprint_pda,
    get_redemption_pda,
)
from .token_accounts import (
    get_or_create_associated_token_account,
    get_token_account,
)
from .types import (
    AccountType,
    CancelCashLinkArgs,
    CashInstruction,
    CashLink,
    CashLinkParams,
    CashLinkState,
    CloseCashLinkArgs,
    DistributionType,
    InitCashLinkArgs,
    InitializeCashLinkParams,
    RedeemCashLinkArgs,
    RedeemCashLinkParams,
    Redemption,
    ResultContext,
    TokenAccount,
)
from .validation import (
    assert_not_exists,
    can_close_after_cancel,
    validate_cancel,
    validate_close,
    validate_initialize,
    validate_redeem,
)

__all__ = [
    # Client
    "CashLinkClient",
    "ClientConfig",
    "PROGRAM_ID",
    # Types
    "AccountType",
    "CashLinkState",
    "DistributionType",
    "CashInstruction",
    "CashLink",
    "Redemption",
    "TokenAccount",
    "InitCashLinkArgs",
    "RedeemCashLinkArgs",
    "CancelCashLinkArgs",
    "CloseCashLinkArgs",
    "InitializeCashLinkParams",
    "CashLinkParams",
    "RedeemCashLinkParams",
    "ResultContext",
    # Account Readers
    "fetch_cash_link",
    "fetch_redemption",
    "find_cash_links",
    "find_redemptions",
    "build_cash_link_filters",
    "build_redemption_filters",
    "deserialize_token_account",
    # Codec
    "Schema",
    "CASH_LINK_SCHEMA",
    "REDEMPTION_SCHEMA",
    "ACCOUNT_TYPE_OFFSET",
    "CASH_LINK_AUTHORITY_OFFSET",
    "CASH_LINK_STATE_OFFSET",
    "REDEMPTION_CASH_LINK_OFFSET",
    "REDEMPTION_WALLET_OFFSET",
    "serialize_cash_link",
    "deserialize_cash_link",
    "serialize_redemption",
    "deserialize_redemption",
    "serialize_init_cash_link_args",
    "serialize_redeem_args",
    "serialize_cancel_args",
    "serialize_close_args",
    "deserialize_instruction",
    # PDA Functions
    "find_program_address",
    "get_cash_link_pda",
    "get_redemption_pda",
    "get_fingerprint_pda",
    "get_associated_token_address",
    # Token Accounts
    "get_or_create_associated_token_account",
    "get_token_account",
    # Validation
    "validate_initialize",
    "assert_not_exists",
    "validate_redeem",
    "validate_cancel",
    "validate_close",
    "can_close_after_cancel",
    # Instruction Builders
    "build_init_cash_link_instruction",
    "build_redeem_instruction",
    "build_cancel_instruction",
    "build_close_instruction",
    "build_compute_budget_instructions",
    # Errors
    "CashLinkError",
    "AccountNotFoundError",
    "InvalidOwnerError",
    "StateViolationError",
    "AccountAlreadyExistsError",
    "AlreadyExpiredError",
    "AlreadySettledError",
    "NotExpiredError",
    "HasRedemptionsError",
    "MaxRedemptionsReachedError",
    "FingerprintRequiredError",
    "InvalidSignatureError",
    "CodecError",
    "MalformedAccountError",
    "InvalidDiscriminatorError",
    "SerializationError",
    "InvalidSeedsError",
    "InvalidParamsError",
]
