"""Main client for the Cash Link SDK."""

import asyncio
import base64
import logging
from typing import List, Optional, Tuple, Union

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment, Confirmed
from solana.rpc.types import TxOpts
from solders.errors import BincodeError
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction

from .accounts import fetch_cash_link, fetch_redemption
from .accounts import find_cash_links as _find_cash_links
from .accounts import find_redemptions as _find_redemptions
from .config import ClientConfig
from .constants import PROGRAM_ID
from .errors import AccountNotFoundError, InvalidParamsError, InvalidSignatureError
from .instructions import (
    build_cancel_instruction,
    build_close_instruction,
    build_compute_budget_instructions,
    build_init_cash_link_instruction,
    build_redeem_instruction,
)
from .pda import (
    get_associated_token_address,
    get_cash_link_pda,
    get_fingerprint_pda,
    get_redemption_pda,
)
from .token_accounts import get_or_create_associated_token_account, get_token_account
from .types import (
    CashLink,
    CashLinkParams,
    CashLinkState,
    InitializeCashLinkParams,
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

logger = logging.getLogger(__name__)


class CashLinkClient:
    """Async client for building and submitting Cash Link transactions.

    The client holds the fee payer and the program authority. Transactions
    that need a third signature (the owner on initialize, the pass key on
    redeem) are returned partially signed for the caller to complete.
    """

    def __init__(
        self,
        connection: AsyncClient,
        fee_payer: Keypair,
        authority: Keypair,
        fee_wallet: Pubkey,
        program_id: Pubkey = PROGRAM_ID,
        config: Optional[ClientConfig] = None,
    ):
        """Initialize the client.

        Args:
            connection: Solana RPC async client
            fee_payer: Keypair paying transaction fees and rent
            authority: Cash link program authority
            fee_wallet: Wallet receiving redemption fees
            program_id: Cash Link program ID (defaults to mainnet)
            config: Client configuration (defaults to ClientConfig.default())
        """
        self.connection = connection
        self.fee_payer = fee_payer
        self.authority = authority
        self.fee_wallet = fee_wallet
        self.program_id = program_id
        self.config = config or ClientConfig.default()

    # =========================================================================
    # Transaction Builders
    # =========================================================================

    async def initialize(self, params: InitializeCashLinkParams) -> ResultContext:
        """Build a partially signed initialize transaction.

        The owner (params.wallet) must add its signature before sending.
        """
        validate_initialize(params)
        commitment = self._commitment(params.commitment)

        cash_link, _ = get_cash_link_pda(params.pass_key, self.program_id)
        response = await self.connection.get_account_info(cash_link, commitment)
        assert_not_exists(response.value, str(cash_link))

        ix = build_init_cash_link_instruction(
            authority=self.authority.pubkey(),
            owner=params.wallet,
            fee_payer=self.fee_payer.pubkey(),
            pass_key=params.pass_key,
            amount=params.amount,
            distribution_type=params.distribution_type,
            max_num_redemptions=params.max_num_redemptions,
            fee_bps=params.fee_bps,
            fixed_fee=params.fixed_fee,
            fee_to_redeem=params.fee_to_redeem,
            min_amount=params.min_amount,
            fingerprint_enabled=params.fingerprint_enabled,
            num_days_to_expire=params.num_days_to_expire,
            mint=params.mint,
            program_id=self.program_id,
        )
        instructions = [ix] + build_compute_budget_instructions(
            params.compute_budget, params.compute_unit_price
        )
        return await self._build_result(instructions, commitment, partial=True)

    async def redeem(self, params: RedeemCashLinkParams) -> ResultContext:
        """Build a partially signed redeem transaction.

        The pass key must add its signature before sending. For token cash
        links, missing token accounts for the wallet, fee wallet and owner are
        created first.
        """
        commitment = self._commitment(params.commitment)
        cash_link_address, _ = get_cash_link_pda(params.pass_key, self.program_id)
        cash_link = await fetch_cash_link(
            self.connection, cash_link_address, self.program_id, commitment
        )
        validate_redeem(cash_link, params.fingerprint)

        wallet = params.wallet_address
        owner = Pubkey.from_string(cash_link.owner)
        mint: Optional[Pubkey] = None
        if cash_link.is_native:
            wallet_token, fee_token, owner_token = wallet, self.fee_wallet, owner
        else:
            mint = Pubkey.from_string(cash_link.mint)
            wallet_token, fee_token, owner_token = await self._resolve_token_accounts(
                mint, [wallet, self.fee_wallet, owner], commitment
            )

        ix = build_redeem_instruction(
            authority=self.authority.pubkey(),
            wallet=wallet,
            pass_key=params.pass_key,
            fee_token=fee_token,
            owner_token=owner_token,
            fee_payer=self.fee_payer.pubkey(),
            mint=mint,
            wallet_token=wallet_token,
            fingerprint=params.fingerprint if cash_link.fingerprint_enabled else None,
            fingerprint_required=cash_link.fingerprint_enabled,
            program_id=self.program_id,
        )
        instructions = [ix] + build_compute_budget_instructions(
            params.compute_budget, params.compute_unit_price
        )
        return await self._build_result(instructions, commitment, partial=True)

    async def cancel(self, params: CashLinkParams) -> ResultContext:
        """Build a fully signed cancel transaction returning funds to the owner."""
        commitment = self._commitment(params.commitment)
        _, cancel_ix = await self._cancel_instruction(params, commitment)

        instructions = [cancel_ix] + build_compute_budget_instructions(
            params.compute_budget, params.compute_unit_price
        )
        return await self._build_result(instructions, commitment)

    async def cancel_and_close(self, params: CashLinkParams) -> ResultContext:
        """Build a cancel transaction that also closes the cash link when possible.

        A cash link with redemptions can never be closed; in that case the
        result is a plain cancel.
        """
        commitment = self._commitment(params.commitment)
        cash_link, cancel_ix = await self._cancel_instruction(params, commitment)

        instructions = [cancel_ix]
        if can_close_after_cancel(cash_link):
            cash_link_address, _ = get_cash_link_pda(params.pass_key, self.program_id)
            instructions.append(
                build_close_instruction(
                    authority=self.authority.pubkey(),
                    cash_link=cash_link_address,
                    fee_payer=self.fee_payer.pubkey(),
                    program_id=self.program_id,
                )
            )
        else:
            logger.warning(
                f"Cash link for pass key {params.pass_key} has "
                f"{cash_link.total_redemptions} redemptions, skipping close"
            )

        instructions += build_compute_budget_instructions(
            params.compute_budget, params.compute_unit_price
        )
        return await self._build_result(instructions, commitment)

    async def close(self, params: CashLinkParams) -> ResultContext:
        """Build a fully signed close transaction reclaiming the cash link's rent."""
        commitment = self._commitment(params.commitment)
        cash_link_address, _ = get_cash_link_pda(params.pass_key, self.program_id)
        cash_link = await fetch_cash_link(
            self.connection, cash_link_address, self.program_id, commitment
        )
        validate_close(cash_link)

        ix = build_close_instruction(
            authority=self.authority.pubkey(),
            cash_link=cash_link_address,
            fee_payer=self.fee_payer.pubkey(),
            program_id=self.program_id,
        )
        instructions = [ix] + build_compute_budget_instructions(
            params.compute_budget, params.compute_unit_price
        )
        return await self._build_result(instructions, commitment)

    # =========================================================================
    # Submission
    # =========================================================================

    async def send(self, payload: str) -> str:
        """Submit a fully signed base64 transaction and return its signature.

        Raises:
            InvalidSignatureError: If the payload does not decode to a transaction,
                or any required signature is missing or invalid
        """
        try:
            raw = base64.b64decode(payload)
            tx = Transaction.from_bytes(raw)
        except (ValueError, BincodeError) as e:
            raise InvalidSignatureError(f"Malformed transaction payload: {e}") from e
        if not all(tx.verify_with_results()):
            raise InvalidSignatureError()

        result = await self.connection.send_raw_transaction(
            raw, opts=TxOpts(skip_preflight=self.config.skip_preflight)
        )
        signature = str(result.value)
        logger.info(f"Transaction sent: {signature}")
        return signature

    async def confirm_transaction(
        self,
        signature: Union[str, Signature],
        commitment: Commitment = Confirmed,
    ):
        """Wait for a signature to reach the given commitment.

        Polling stops once the latest blockhash's last valid block height is
        passed.
        """
        if isinstance(signature, str):
            signature = Signature.from_string(signature)

        latest = await self.connection.get_latest_blockhash(commitment)
        response = await self.connection.confirm_transaction(
            signature,
            commitment,
            sleep_seconds=self.config.confirm_sleep_seconds,
            last_valid_block_height=latest.value.last_valid_block_height,
        )
        logger.info(f"Transaction confirmed: {signature}")
        return response

    def sign_transaction(self, transaction: Transaction) -> bytes:
        """Add the fee payer's signature to a transaction and serialize it."""
        payer = transaction.message.account_keys[0]
        if payer != self.fee_payer.pubkey():
            raise InvalidParamsError(
                f"transaction fee payer {payer} is not {self.fee_payer.pubkey()}"
            )
        transaction.partial_sign([self.fee_payer], transaction.message.recent_blockhash)
        return bytes(transaction)

    # =========================================================================
    # Account Fetchers
    # =========================================================================

    async def get_cash_link(
        self, address: Pubkey, commitment: Optional[Commitment] = None
    ) -> Optional[CashLink]:
        """Fetch a cash link, or None if it doesn't exist."""
        try:
            return await fetch_cash_link(
                self.connection, address, self.program_id, self._commitment(commitment)
            )
        except AccountNotFoundError:
            return None

    async def get_cash_link_by_pass_key(
        self, pass_key: Pubkey, commitment: Optional[Commitment] = None
    ) -> Optional[CashLink]:
        """Fetch the cash link derived from a pass key, or None if it doesn't exist."""
        return await self.get_cash_link(self.get_cash_link_address(pass_key), commitment)

    async def get_redemption(
        self, address: Pubkey, commitment: Optional[Commitment] = None
    ) -> Optional[Redemption]:
        """Fetch a redemption, or None if it doesn't exist."""
        try:
            return await fetch_redemption(
                self.connection, address, self.program_id, self._commitment(commitment)
            )
        except AccountNotFoundError:
            return None

    async def get_cash_link_redemption(
        self,
        cash_link: Pubkey,
        wallet: Pubkey,
        commitment: Optional[Commitment] = None,
    ) -> Optional[Redemption]:
        """Fetch the redemption of a cash link by a wallet, or None if it hasn't redeemed."""
        return await self.get_redemption(
            self.get_redemption_address(cash_link, wallet), commitment
        )

    async def find_cash_links(
        self,
        authority: Optional[Pubkey] = None,
        state: Optional[CashLinkState] = None,
        commitment: Optional[Commitment] = None,
    ) -> List[Tuple[Pubkey, CashLink]]:
        """List cash links, optionally filtered by authority and state."""
        return await _find_cash_links(
            self.connection,
            self.program_id,
            authority=authority,
            state=state,
            commitment=self._commitment(commitment),
        )

    async def find_redemptions(
        self,
        cash_link: Optional[Pubkey] = None,
        wallet: Optional[Pubkey] = None,
        commitment: Optional[Commitment] = None,
    ) -> List[Tuple[Pubkey, Redemption]]:
        """List redemptions, optionally filtered by cash link and wallet."""
        return await _find_redemptions(
            self.connection,
            self.program_id,
            cash_link=cash_link,
            wallet=wallet,
            commitment=self._commitment(commitment),
        )

    async def get_vault(
        self,
        cash_link: Pubkey,
        mint: Pubkey,
        commitment: Optional[Commitment] = None,
    ) -> Optional[TokenAccount]:
        """Fetch the token vault of a cash link, or None if it doesn't exist."""
        vault = get_associated_token_address(cash_link, mint)
        return await get_token_account(
            self.connection, vault, self._commitment(commitment)
        )

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def get_cash_link_address(self, pass_key: Pubkey) -> Pubkey:
        """Get a cash link PDA address."""
        pda, _ = get_cash_link_pda(pass_key, self.program_id)
        return pda

    def get_redemption_address(self, cash_link: Pubkey, wallet: Pubkey) -> Pubkey:
        """Get a redemption PDA address."""
        pda, _ = get_redemption_pda(cash_link, wallet, self.program_id)
        return pda

    def get_fingerprint_address(self, cash_link: Pubkey, fingerprint: str) -> Pubkey:
        """Get a fingerprint PDA address."""
        pda, _ = get_fingerprint_pda(cash_link, fingerprint, self.program_id)
        return pda

    # =========================================================================
    # Internal Helpers
    # =========================================================================

    def _commitment(self, commitment: Optional[Commitment]) -> Optional[Commitment]:
        return commitment or self.config.commitment

    async def _cancel_instruction(
        self, params: CashLinkParams, commitment: Optional[Commitment]
    ) -> Tuple[CashLink, Instruction]:
        cash_link_address, _ = get_cash_link_pda(params.pass_key, self.program_id)
        cash_link = await fetch_cash_link(
            self.connection, cash_link_address, self.program_id, commitment
        )
        validate_cancel(cash_link)

        owner = Pubkey.from_string(cash_link.owner)
        mint: Optional[Pubkey] = None
        owner_token = owner
        if not cash_link.is_native:
            mint = Pubkey.from_string(cash_link.mint)
            owner_token = await get_or_create_associated_token_account(
                self.connection,
                self.fee_payer,
                mint,
                owner,
                commitment,
                skip_preflight=self.config.skip_preflight,
            )

        ix = build_cancel_instruction(
            authority=self.authority.pubkey(),
            pass_key=params.pass_key,
            owner_token=owner_token,
            fee_payer=self.fee_payer.pubkey(),
            mint=mint,
            program_id=self.program_id,
        )
        return cash_link, ix

    async def _resolve_token_accounts(
        self,
        mint: Pubkey,
        owners: List[Pubkey],
        commitment: Optional[Commitment],
    ) -> List[Pubkey]:
        """Resolve token accounts for owners concurrently, one lookup per distinct owner."""
        unique = list(dict.fromkeys(owners))
        addresses = await asyncio.gather(
            *(
                get_or_create_associated_token_account(
                    self.connection,
                    self.fee_payer,
                    mint,
                    owner,
                    commitment,
                    skip_preflight=self.config.skip_preflight,
                )
                for owner in unique
            )
        )
        by_owner = dict(zip(unique, addresses))
        return [by_owner[owner] for owner in owners]

    async def _build_result(
        self,
        instructions: List[Instruction],
        commitment: Optional[Commitment],
        partial: bool = False,
    ) -> ResultContext:
        """Attach a blockhash and the fee payer, sign with held keys and serialize."""
        response = await self.connection.get_latest_blockhash(commitment)
        blockhash = response.value.blockhash

        message = Message.new_with_blockhash(
            instructions, self.fee_payer.pubkey(), blockhash
        )
        tx = Transaction.new_unsigned(message)
        signers = [self.fee_payer, self.authority]
        if partial:
            tx.partial_sign(signers, blockhash)
        else:
            tx.sign(signers, blockhash)

        logger.debug(
            f"Built transaction with {len(instructions)} instructions "
            f"(blockhash {blockhash}, partial={partial})"
        )
        return ResultContext(
            transaction=base64.b64encode(bytes(tx)).decode("utf-8"),
            slot=response.context.slot,
            last_valid_block_height=response.value.last_valid_block_height,
        )
