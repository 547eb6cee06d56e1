"""Instruction builders for the Cash Link SDK.

The program reads its accounts positionally, so the order of the account
metas below is part of the wire protocol.
"""

from typing import List, Optional

from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from .codec import (
    serialize_cancel_args,
    serialize_close_args,
    serialize_init_cash_link_args,
    serialize_redeem_args,
)
from .constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    CLOCK_SYSVAR_ID,
    DEFAULT_NUM_DAYS_TO_EXPIRE,
    PROGRAM_ID,
    RENT_SYSVAR_ID,
    SLOT_HASHES_SYSVAR_ID,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)
from .errors import FingerprintRequiredError
from .pda import (
    get_associated_token_address,
    get_cash_link_pda,
    get_fingerprint_pda,
    get_redemption_pda,
)
from .types import (
    CancelCashLinkArgs,
    DistributionType,
    InitCashLinkArgs,
    RedeemCashLinkArgs,
)


def _readonly(pubkey: Pubkey) -> AccountMeta:
    return AccountMeta(pubkey=pubkey, is_signer=False, is_writable=False)


def _writable(pubkey: Pubkey) -> AccountMeta:
    return AccountMeta(pubkey=pubkey, is_signer=False, is_writable=True)


def build_init_cash_link_instruction(
    authority: Pubkey,
    owner: Pubkey,
    fee_payer: Pubkey,
    pass_key: Pubkey,
    amount: int,
    distribution_type: DistributionType,
    max_num_redemptions: int,
    fee_bps: int = 0,
    fixed_fee: int = 0,
    fee_to_redeem: int = 0,
    min_amount: Optional[int] = None,
    fingerprint_enabled: Optional[bool] = None,
    num_days_to_expire: int = DEFAULT_NUM_DAYS_TO_EXPIRE,
    mint: Optional[Pubkey] = None,
    program_id: Pubkey = PROGRAM_ID,
) -> Instruction:
    """Build the init cash link instruction.

    Accounts:
    0. authority (signer)
    1. owner (signer, writable if native)
    2. fee_payer (signer, writable)
    3. cash_link (writable)
    4. pass_key
    5. rent_sysvar
    6. system_program
    7. clock_sysvar
    [token only]
    8. mint
    9. vault_token (writable)
    10. owner_token (writable)
    11. associated_token_program
    ---
    n. token_program
    """
    cash_link, cash_link_bump = get_cash_link_pda(pass_key, program_id)

    accounts = [
        AccountMeta(pubkey=authority, is_signer=True, is_writable=False),
        AccountMeta(pubkey=owner, is_signer=True, is_writable=mint is None),
        AccountMeta(pubkey=fee_payer, is_signer=True, is_writable=True),
        _writable(cash_link),
        _readonly(pass_key),
        _readonly(RENT_SYSVAR_ID),
        _readonly(SYSTEM_PROGRAM_ID),
        _readonly(CLOCK_SYSVAR_ID),
    ]
    if mint is not None:
        accounts.extend(
            [
                _readonly(mint),
                _writable(get_associated_token_address(cash_link, mint)),
                _writable(get_associated_token_address(owner, mint)),
                _readonly(ASSOCIATED_TOKEN_PROGRAM_ID),
            ]
        )
    accounts.append(_readonly(TOKEN_PROGRAM_ID))

    data = serialize_init_cash_link_args(
        InitCashLinkArgs(
            amount=amount,
            fee_bps=fee_bps,
            fixed_fee=fixed_fee,
            fee_to_redeem=fee_to_redeem,
            cash_link_bump=cash_link_bump,
            distribution_type=distribution_type,
            max_num_redemptions=max_num_redemptions,
            min_amount=min_amount,
            fingerprint_enabled=fingerprint_enabled,
            num_days_to_expire=num_days_to_expire,
        )
    )

    return Instruction(program_id=program_id, accounts=accounts, data=data)


def build_cancel_instruction(
    authority: Pubkey,
    pass_key: Pubkey,
    owner_token: Pubkey,
    fee_payer: Pubkey,
    mint: Optional[Pubkey] = None,
    program_id: Pubkey = PROGRAM_ID,
) -> Instruction:
    """Build the cancel instruction.

    owner_token is the owner's token account for a token cash link and the
    owner wallet itself for a native one.

    Accounts:
    0. authority (signer)
    1. cash_link (writable)
    2. pass_key
    3. owner_token (writable)
    4. fee_payer (writable)
    5. clock_sysvar
    6. rent_sysvar
    [token only]
    7. vault_token (writable)
    ---
    n-1. token_program
    n. system_program
    """
    cash_link, cash_link_bump = get_cash_link_pda(pass_key, program_id)

    accounts = [
        AccountMeta(pubkey=authority, is_signer=True, is_writable=False),
        _writable(cash_link),
        _readonly(pass_key),
        _writable(owner_token),
        _writable(fee_payer),
        _readonly(CLOCK_SYSVAR_ID),
        _readonly(RENT_SYSVAR_ID),
    ]
    if mint is not None:
        accounts.append(_writable(get_associated_token_address(cash_link, mint)))
    accounts.extend(
        [
            _readonly(TOKEN_PROGRAM_ID),
            _readonly(SYSTEM_PROGRAM_ID),
        ]
    )

    data = serialize_cancel_args(CancelCashLinkArgs(cash_link_bump=cash_link_bump))

    return Instruction(program_id=program_id, accounts=accounts, data=data)


def build_close_instruction(
    authority: Pubkey,
    cash_link: Pubkey,
    fee_payer: Pubkey,
    program_id: Pubkey = PROGRAM_ID,
) -> Instruction:
    """Build the close instruction.

    Accounts:
    0. authority (signer)
    1. cash_link (writable)
    2. fee_payer (writable)
    3. system_program
    """
    accounts = [
        AccountMeta(pubkey=authority, is_signer=True, is_writable=False),
        _writable(cash_link),
        _writable(fee_payer),
        _readonly(SYSTEM_PROGRAM_ID),
    ]

    return Instruction(program_id=program_id, accounts=accounts, data=serialize_close_args())


def build_redeem_instruction(
    authority: Pubkey,
    wallet: Pubkey,
    pass_key: Pubkey,
    fee_token: Pubkey,
    owner_token: Pubkey,
    fee_payer: Pubkey,
    mint: Optional[Pubkey] = None,
    wallet_token: Optional[Pubkey] = None,
    fingerprint: Optional[str] = None,
    fingerprint_required: bool = False,
    program_id: Pubkey = PROGRAM_ID,
) -> Instruction:
    """Build the redeem instruction.

    For a native cash link fee_token and owner_token are the fee wallet and
    owner wallet. For a token cash link they are the associated token
    accounts, and wallet_token is required.

    Accounts:
    0. authority (signer)
    1. wallet (writable)
    2. fee_token (writable)
    3. cash_link (writable)
    4. pass_key (signer)
    5. redemption (writable)
    6. owner_token (writable)
    7. fee_payer (signer)
    8. clock_sysvar
    9. rent_sysvar
    10. slot_hashes_sysvar
    [token only]
    11. wallet_token (writable)
    12. vault_token (writable)
    ---
    system_program
    [fingerprint only] fingerprint (writable)
    token_program

    Raises:
        FingerprintRequiredError: If fingerprint_required is set and no
            fingerprint was given
        ValueError: If mint is set without wallet_token
    """
    if fingerprint_required and not fingerprint:
        raise FingerprintRequiredError()
    if mint is not None and wallet_token is None:
        raise ValueError("wallet_token is required for a token cash link")

    cash_link, cash_link_bump = get_cash_link_pda(pass_key, program_id)
    redemption, redemption_bump = get_redemption_pda(cash_link, wallet, program_id)

    fingerprint_pda: Optional[Pubkey] = None
    fingerprint_bump: Optional[int] = None
    if fingerprint:
        fingerprint_pda, fingerprint_bump = get_fingerprint_pda(
            cash_link, fingerprint, program_id
        )

    accounts = [
        AccountMeta(pubkey=authority, is_signer=True, is_writable=False),
        _writable(wallet),
        _writable(fee_token),
        _writable(cash_link),
        AccountMeta(pubkey=pass_key, is_signer=True, is_writable=False),
        _writable(redemption),
        _writable(owner_token),
        AccountMeta(pubkey=fee_payer, is_signer=True, is_writable=False),
        _readonly(CLOCK_SYSVAR_ID),
        _readonly(RENT_SYSVAR_ID),
        _readonly(SLOT_HASHES_SYSVAR_ID),
    ]
    if mint is not None:
        accounts.append(_writable(wallet_token))
        accounts.append(_writable(get_associated_token_address(cash_link, mint)))
    accounts.append(_readonly(SYSTEM_PROGRAM_ID))
    if fingerprint_pda is not None:
        accounts.append(_writable(fingerprint_pda))
    accounts.append(_readonly(TOKEN_PROGRAM_ID))

    data = serialize_redeem_args(
        RedeemCashLinkArgs(
            redemption_bump=redemption_bump,
            cash_link_bump=cash_link_bump,
            fingerprint=fingerprint,
            fingerprint_bump=fingerprint_bump,
        )
    )

    return Instruction(program_id=program_id, accounts=accounts, data=data)


def build_compute_budget_instructions(
    compute_unit_limit: Optional[int] = None,
    compute_unit_price: Optional[int] = None,
) -> List[Instruction]:
    """Build the optional priority-fee instructions (limit first, then price)."""
    instructions: List[Instruction] = []
    if compute_unit_limit:
        instructions.append(set_compute_unit_limit(compute_unit_limit))
    if compute_unit_price:
        instructions.append(set_compute_unit_price(compute_unit_price))
    return instructions
