"""Lifecycle precondition checks for cash link operations.

These mirror the checks the program performs on-chain so that a transaction
that would fail is rejected before it is built or submitted.
"""

from typing import Any, Optional

from .constants import MAX_FEE_BPS
from .errors import (
    AccountAlreadyExistsError,
    AlreadyExpiredError,
    AlreadySettledError,
    FingerprintRequiredError,
    HasRedemptionsError,
    InvalidParamsError,
    MaxRedemptionsReachedError,
    NotExpiredError,
)
from .types import CashLink, CashLinkState, DistributionType, InitializeCashLinkParams


def validate_initialize(params: InitializeCashLinkParams) -> None:
    """Check that initialize parameters would be accepted by the program.

    Raises:
        InvalidParamsError: On the first rule the parameters break
    """
    if params.amount <= 0:
        raise InvalidParamsError("amount must be greater than 0")
    if params.max_num_redemptions <= 0:
        raise InvalidParamsError("max_num_redemptions must be greater than 0")
    if not 0 <= params.fee_bps <= MAX_FEE_BPS:
        raise InvalidParamsError(f"fee_bps must be between 0 and {MAX_FEE_BPS}")
    if not 1 <= params.num_days_to_expire <= 255:
        raise InvalidParamsError("num_days_to_expire must be between 1 and 255")

    if params.distribution_type == DistributionType.FIXED:
        if params.amount % params.max_num_redemptions != 0:
            raise InvalidParamsError(
                f"amount {params.amount} is not divisible by "
                f"max_num_redemptions {params.max_num_redemptions}"
            )
    elif params.distribution_type == DistributionType.RANDOM:
        if params.min_amount is None:
            raise InvalidParamsError("min_amount is required for random distribution")
        if params.min_amount > params.amount:
            raise InvalidParamsError(
                f"min_amount {params.min_amount} exceeds amount {params.amount}"
            )


def assert_not_exists(account_info: Optional[Any], address: str) -> None:
    """Raise if an account already exists at the cash link address."""
    if account_info is not None:
        raise AccountAlreadyExistsError(address)


def _check_open(cash_link: CashLink) -> None:
    if cash_link.state == CashLinkState.EXPIRED:
        raise AlreadyExpiredError()
    if cash_link.state == CashLinkState.REDEEMED:
        raise AlreadySettledError()


def validate_redeem(cash_link: CashLink, fingerprint: Optional[str] = None) -> None:
    """Check that a cash link can accept another redemption.

    Raises:
        AlreadyExpiredError: If the cash link was canceled
        AlreadySettledError: If the cash link is fully redeemed
        MaxRedemptionsReachedError: If no redemptions are left
        FingerprintRequiredError: If a fingerprint is required and missing
    """
    _check_open(cash_link)
    if cash_link.total_redemptions >= cash_link.max_num_redemptions:
        raise MaxRedemptionsReachedError(
            cash_link.total_redemptions, cash_link.max_num_redemptions
        )
    if cash_link.fingerprint_enabled and not fingerprint:
        raise FingerprintRequiredError()


def validate_cancel(cash_link: CashLink) -> None:
    """Check that a cash link can be canceled."""
    _check_open(cash_link)


def validate_close(cash_link: CashLink) -> None:
    """Check that a cash link can be closed.

    Any redemption makes a cash link permanently unclosable, so that is
    checked before the state.
    """
    if cash_link.total_redemptions > 0:
        raise HasRedemptionsError(cash_link.total_redemptions)
    if cash_link.state != CashLinkState.EXPIRED:
        raise NotExpiredError()


def can_close_after_cancel(cash_link: CashLink) -> bool:
    return cash_link.total_redemptions == 0
