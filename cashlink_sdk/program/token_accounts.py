"""Associated token account lookup and creation."""

import logging
from typing import Optional

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solana.rpc.types import TxOpts
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction
from spl.token.instructions import create_idempotent_associated_token_account

from .accounts import deserialize_token_account
from .constants import TOKEN_PROGRAM_ID
from .errors import InvalidOwnerError
from .pda import get_associated_token_address
from .types import TokenAccount

logger = logging.getLogger(__name__)


async def get_token_account(
    connection: AsyncClient,
    address: Pubkey,
    commitment: Optional[Commitment] = None,
) -> Optional[TokenAccount]:
    """Fetch a token account, or None if it is missing or not a token account."""
    response = await connection.get_account_info(address, commitment)
    account = response.value
    if account is None or account.owner != TOKEN_PROGRAM_ID:
        return None
    return deserialize_token_account(address, bytes(account.data))


async def get_or_create_associated_token_account(
    connection: AsyncClient,
    payer: Keypair,
    mint: Pubkey,
    owner: Pubkey,
    commitment: Optional[Commitment] = None,
    skip_preflight: bool = False,
) -> Pubkey:
    """Return the owner's associated token account, creating it if needed.

    Creation is submitted and confirmed before returning. The instruction is
    idempotent, so a concurrent creation of the same account does not fail.

    Raises:
        InvalidOwnerError: If the address exists but is not a token account
    """
    ata = get_associated_token_address(owner, mint)

    response = await connection.get_account_info(ata, commitment)
    account = response.value
    if account is not None:
        if account.owner != TOKEN_PROGRAM_ID:
            raise InvalidOwnerError(str(ata), str(TOKEN_PROGRAM_ID), str(account.owner))
        return ata

    logger.info(f"Creating associated token account {ata} for {owner} (mint {mint})")

    ix = create_idempotent_associated_token_account(payer.pubkey(), owner, mint)
    blockhash_resp = await connection.get_latest_blockhash(commitment)
    blockhash = blockhash_resp.value.blockhash

    message = Message.new_with_blockhash([ix], payer.pubkey(), blockhash)
    tx = Transaction.new_unsigned(message)
    tx.sign([payer], blockhash)

    result = await connection.send_raw_transaction(
        bytes(tx), opts=TxOpts(skip_preflight=skip_preflight)
    )
    await connection.confirm_transaction(
        result.value,
        commitment,
        last_valid_block_height=blockhash_resp.value.last_valid_block_height,
    )

    logger.info(f"Associated token account created: {ata} (signature {result.value})")
    return ata
