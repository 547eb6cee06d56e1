"""Account readers for the Cash Link SDK."""

from typing import List, Optional, Tuple

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solana.rpc.types import MemcmpOpts
from solders.pubkey import Pubkey
from spl.token.core import ACCOUNT_LAYOUT

from .codec import (
    ACCOUNT_TYPE_OFFSET,
    CASH_LINK_AUTHORITY_OFFSET,
    CASH_LINK_STATE_OFFSET,
    REDEMPTION_CASH_LINK_OFFSET,
    REDEMPTION_WALLET_OFFSET,
    deserialize_cash_link,
    deserialize_redemption,
)
from .constants import PROGRAM_ID
from .errors import AccountNotFoundError, InvalidOwnerError, MalformedAccountError
from .types import AccountType, CashLink, CashLinkState, Redemption, TokenAccount
from .utils import b58encode_bytes, pubkey_to_bytes


def deserialize_token_account(address: Pubkey, data: bytes) -> TokenAccount:
    """Deserialize an SPL token account with spl.token's account layout.

    Only the mint, owner and amount are kept.
    """
    if len(data) < ACCOUNT_LAYOUT.sizeof():
        raise MalformedAccountError(
            f"TokenAccount data too short: {len(data)} bytes "
            f"(expected {ACCOUNT_LAYOUT.sizeof()})"
        )
    layout = ACCOUNT_LAYOUT.parse(data)
    return TokenAccount(
        address=address,
        mint=Pubkey(layout.mint),
        owner=Pubkey(layout.owner),
        amount=layout.amount,
    )


async def _fetch_program_account_data(
    connection: AsyncClient,
    address: Pubkey,
    program_id: Pubkey,
    commitment: Optional[Commitment],
) -> bytes:
    response = await connection.get_account_info(address, commitment)
    account = response.value
    if account is None:
        raise AccountNotFoundError(str(address))
    if account.owner != program_id:
        raise InvalidOwnerError(str(address), str(program_id), str(account.owner))
    return bytes(account.data)


async def fetch_cash_link(
    connection: AsyncClient,
    address: Pubkey,
    program_id: Pubkey = PROGRAM_ID,
    commitment: Optional[Commitment] = None,
) -> CashLink:
    """Fetch and decode a cash link account.

    Raises:
        AccountNotFoundError: If no account exists at the address
        InvalidOwnerError: If the account is not owned by the program
        MalformedAccountError: If the data is not a cash link record
    """
    data = await _fetch_program_account_data(connection, address, program_id, commitment)
    return deserialize_cash_link(data)


async def fetch_redemption(
    connection: AsyncClient,
    address: Pubkey,
    program_id: Pubkey = PROGRAM_ID,
    commitment: Optional[Commitment] = None,
) -> Redemption:
    """Fetch and decode a redemption account.

    Raises:
        AccountNotFoundError: If no account exists at the address
        InvalidOwnerError: If the account is not owned by the program
        MalformedAccountError: If the data is not a redemption record
    """
    data = await _fetch_program_account_data(connection, address, program_id, commitment)
    return deserialize_redemption(data)


# ============================================================================
# PROGRAM ACCOUNT SCANS
# ============================================================================


def _account_type_filter(account_type: AccountType) -> MemcmpOpts:
    return MemcmpOpts(
        offset=ACCOUNT_TYPE_OFFSET,
        bytes=b58encode_bytes(bytes([account_type])),
    )


def build_cash_link_filters(
    authority: Optional[Pubkey] = None,
    state: Optional[CashLinkState] = None,
) -> List[MemcmpOpts]:
    """Build memcmp filters selecting cash link accounts."""
    filters = [_account_type_filter(AccountType.CASH_LINK)]
    if authority is not None:
        filters.append(
            MemcmpOpts(
                offset=CASH_LINK_AUTHORITY_OFFSET,
                bytes=b58encode_bytes(pubkey_to_bytes(authority)),
            )
        )
    if state is not None:
        filters.append(
            MemcmpOpts(
                offset=CASH_LINK_STATE_OFFSET,
                bytes=b58encode_bytes(bytes([state])),
            )
        )
    return filters


def build_redemption_filters(
    cash_link: Optional[Pubkey] = None,
    wallet: Optional[Pubkey] = None,
) -> List[MemcmpOpts]:
    """Build memcmp filters selecting redemption accounts."""
    filters = [_account_type_filter(AccountType.REDEMPTION)]
    if cash_link is not None:
        filters.append(
            MemcmpOpts(
                offset=REDEMPTION_CASH_LINK_OFFSET,
                bytes=b58encode_bytes(pubkey_to_bytes(cash_link)),
            )
        )
    if wallet is not None:
        filters.append(
            MemcmpOpts(
                offset=REDEMPTION_WALLET_OFFSET,
                bytes=b58encode_bytes(pubkey_to_bytes(wallet)),
            )
        )
    return filters


async def _scan(
    connection: AsyncClient,
    program_id: Pubkey,
    filters: List[MemcmpOpts],
    commitment: Optional[Commitment],
):
    response = await connection.get_program_accounts(
        program_id,
        commitment=commitment,
        encoding="base64",
        filters=filters,
    )
    return response.value


async def find_cash_links(
    connection: AsyncClient,
    program_id: Pubkey = PROGRAM_ID,
    authority: Optional[Pubkey] = None,
    state: Optional[CashLinkState] = None,
    commitment: Optional[Commitment] = None,
) -> List[Tuple[Pubkey, CashLink]]:
    """Scan the program for cash links, optionally by authority and state."""
    filters = build_cash_link_filters(authority, state)
    keyed = await _scan(connection, program_id, filters, commitment)
    return [(item.pubkey, deserialize_cash_link(item.account.data)) for item in keyed]


async def find_redemptions(
    connection: AsyncClient,
    program_id: Pubkey = PROGRAM_ID,
    cash_link: Optional[Pubkey] = None,
    wallet: Optional[Pubkey] = None,
    commitment: Optional[Commitment] = None,
) -> List[Tuple[Pubkey, Redemption]]:
    """Scan the program for redemptions, optionally by cash link and wallet."""
    filters = build_redemption_filters(cash_link, wallet)
    keyed = await _scan(connection, program_id, filters, commitment)
    return [(item.pubkey, deserialize_redemption(item.account.data)) for item in keyed]
