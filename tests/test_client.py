"""Tests for the client module."""

import base64
import logging

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction

from cashlink_sdk.program import (
    PROGRAM_ID,
    AccountAlreadyExistsError,
    AccountNotFoundError,
    AlreadyExpiredError,
    CashLinkClient,
    CashLinkParams,
    CashLinkState,
    ClientConfig,
    DistributionType,
    FingerprintRequiredError,
    HasRedemptionsError,
    InitializeCashLinkParams,
    InvalidOwnerError,
    InvalidParamsError,
    InvalidSignatureError,
    RedeemCashLinkParams,
    StateViolationError,
    build_close_instruction,
    get_associated_token_address,
    get_cash_link_pda,
    get_redemption_pda,
    serialize_cash_link,
)
from cashlink_sdk.program import client as client_module
from cashlink_sdk.program.constants import TOKEN_PROGRAM_ID

COMPUTE_BUDGET_PROGRAM_ID = Pubkey.from_string("ComputeBudget111111111111111111111111111111")


@pytest.fixture
def client(connection, fee_payer, authority, fee_wallet):
    return CashLinkClient(connection, fee_payer, authority, fee_wallet)


@pytest.fixture
def fake_token_accounts(monkeypatch):
    """Replace token account creation with a pure derivation, recording owners."""
    owners = []

    async def fake(connection, payer, mint, owner, commitment=None, skip_preflight=False):
        owners.append(owner)
        return get_associated_token_address(owner, mint)

    monkeypatch.setattr(client_module, "get_or_create_associated_token_account", fake)
    return owners


def seed_cash_link(connection, pass_key, cash_link) -> Pubkey:
    address, _ = get_cash_link_pda(pass_key)
    connection.add_account(address, PROGRAM_ID, serialize_cash_link(cash_link))
    return address


def decode(result) -> Transaction:
    return Transaction.from_bytes(base64.b64decode(result.transaction))


def instruction_keys(tx: Transaction, index: int = 0):
    compiled = tx.message.instructions[index]
    return [tx.message.account_keys[i] for i in compiled.accounts]


def program_ids(tx: Transaction):
    return [tx.message.account_keys[ix.program_id_index] for ix in tx.message.instructions]


class TestClientInit:
    def test_defaults(self, connection, fee_payer, authority, fee_wallet):
        client = CashLinkClient(connection, fee_payer, authority, fee_wallet)

        assert client.program_id == PROGRAM_ID
        assert client.config == ClientConfig.default()

    def test_custom_config(self, connection, fee_payer, authority, fee_wallet):
        config = ClientConfig.default().with_skip_preflight(True).with_commitment("finalized")
        client = CashLinkClient(connection, fee_payer, authority, fee_wallet, config=config)

        assert client.config.skip_preflight is True
        assert client.config.commitment == "finalized"


class TestInitialize:
    @pytest.mark.asyncio
    async def test_native_partially_signed(self, client, connection, fee_payer):
        params = InitializeCashLinkParams(
            wallet=Pubkey.new_unique(),
            pass_key=Pubkey.new_unique(),
            amount=1000,
            distribution_type=DistributionType.FIXED,
            max_num_redemptions=1,
        )

        result = await client.initialize(params)

        assert result.slot == connection.SLOT
        assert result.last_valid_block_height == connection.LAST_VALID_BLOCK_HEIGHT
        tx = decode(result)
        assert tx.message.account_keys[0] == fee_payer.pubkey()
        assert tx.message.recent_blockhash == connection.blockhash
        signed = tx.verify_with_results()
        assert len(signed) == 3
        assert signed.count(True) == 2  # owner signs later
        assert bytes(tx.message.instructions[0].data)[0] == 0

    @pytest.mark.asyncio
    async def test_compute_budget_appended(self, client):
        params = InitializeCashLinkParams(
            wallet=Pubkey.new_unique(),
            pass_key=Pubkey.new_unique(),
            amount=1000,
            distribution_type=DistributionType.FIXED,
            max_num_redemptions=1,
            compute_budget=200_000,
            compute_unit_price=10,
        )

        tx = decode(await client.initialize(params))

        assert program_ids(tx) == [PROGRAM_ID, COMPUTE_BUDGET_PROGRAM_ID, COMPUTE_BUDGET_PROGRAM_ID]

    @pytest.mark.asyncio
    async def test_existing_cash_link(self, client, connection, make_cash_link):
        pass_key = Pubkey.new_unique()
        seed_cash_link(connection, pass_key, make_cash_link())
        params = InitializeCashLinkParams(
            wallet=Pubkey.new_unique(),
            pass_key=pass_key,
            amount=1000,
            distribution_type=DistributionType.FIXED,
            max_num_redemptions=1,
        )

        with pytest.raises(AccountAlreadyExistsError):
            await client.initialize(params)

        assert "get_latest_blockhash" not in connection.call_names()

    @pytest.mark.asyncio
    async def test_invalid_params_checked_before_network(self, client, connection):
        params = InitializeCashLinkParams(
            wallet=Pubkey.new_unique(),
            pass_key=Pubkey.new_unique(),
            amount=1000,
            distribution_type=DistributionType.FIXED,
            max_num_redemptions=3,
        )

        with pytest.raises(InvalidParamsError):
            await client.initialize(params)

        assert connection.calls == []


class TestRedeem:
    @pytest.mark.asyncio
    async def test_native_redeem(self, client, connection, make_cash_link, authority, fee_wallet):
        pass_key = Pubkey.new_unique()
        wallet = Pubkey.new_unique()
        cash_link = make_cash_link()
        address = seed_cash_link(connection, pass_key, cash_link)
        redemption, _ = get_redemption_pda(address, wallet)

        result = await client.redeem(RedeemCashLinkParams(wallet_address=wallet, pass_key=pass_key))

        tx = decode(result)
        keys = instruction_keys(tx)
        assert len(keys) == 13
        assert keys[:7] == [
            authority.pubkey(),
            wallet,
            fee_wallet,
            address,
            pass_key,
            redemption,
            Pubkey.from_string(cash_link.owner),
        ]
        signed = tx.verify_with_results()
        assert signed.count(True) == 2  # pass key signs later

    @pytest.mark.asyncio
    async def test_missing_fingerprint_before_token_lookups(
        self, client, connection, make_cash_link, fake_token_accounts
    ):
        pass_key = Pubkey.new_unique()
        seed_cash_link(
            connection,
            pass_key,
            make_cash_link(fingerprint_enabled=True, mint=str(Pubkey.new_unique())),
        )

        with pytest.raises(FingerprintRequiredError):
            await client.redeem(
                RedeemCashLinkParams(wallet_address=Pubkey.new_unique(), pass_key=pass_key)
            )

        assert connection.call_names() == ["get_account_info"]
        assert fake_token_accounts == []

    @pytest.mark.asyncio
    async def test_fingerprint_redeem(self, client, connection, make_cash_link):
        pass_key = Pubkey.new_unique()
        address = seed_cash_link(connection, pass_key, make_cash_link(fingerprint_enabled=True))
        fingerprint = str(Pubkey.new_unique())

        result = await client.redeem(
            RedeemCashLinkParams(
                wallet_address=Pubkey.new_unique(), pass_key=pass_key, fingerprint=fingerprint
            )
        )

        keys = instruction_keys(decode(result))
        assert len(keys) == 14
        assert keys[12] == client.get_fingerprint_address(address, fingerprint)

    @pytest.mark.asyncio
    async def test_not_found(self, client):
        with pytest.raises(AccountNotFoundError):
            await client.redeem(
                RedeemCashLinkParams(wallet_address=Pubkey.new_unique(), pass_key=Pubkey.new_unique())
            )

    @pytest.mark.asyncio
    async def test_expired(self, client, connection, make_cash_link):
        pass_key = Pubkey.new_unique()
        seed_cash_link(connection, pass_key, make_cash_link(state=CashLinkState.EXPIRED))

        with pytest.raises(AlreadyExpiredError):
            await client.redeem(
                RedeemCashLinkParams(wallet_address=Pubkey.new_unique(), pass_key=pass_key)
            )

    @pytest.mark.asyncio
    async def test_token_redeem_resolves_accounts_once_per_owner(
        self, client, connection, make_cash_link, fake_token_accounts, fee_wallet
    ):
        pass_key = Pubkey.new_unique()
        mint = Pubkey.new_unique()
        owner = Pubkey.new_unique()
        seed_cash_link(connection, pass_key, make_cash_link(mint=str(mint), owner=str(owner)))

        # Owner redeeming their own link
        result = await client.redeem(RedeemCashLinkParams(wallet_address=owner, pass_key=pass_key))

        assert sorted(map(str, fake_token_accounts)) == sorted([str(owner), str(fee_wallet)])
        keys = instruction_keys(decode(result))
        assert len(keys) == 15
        assert keys[2] == get_associated_token_address(fee_wallet, mint)
        assert keys[6] == get_associated_token_address(owner, mint)
        assert keys[11] == get_associated_token_address(owner, mint)


class TestCancel:
    @pytest.mark.asyncio
    async def test_native_cancel_fully_signed(self, client, connection, make_cash_link):
        pass_key = Pubkey.new_unique()
        cash_link = make_cash_link()
        seed_cash_link(connection, pass_key, cash_link)

        tx = decode(await client.cancel(CashLinkParams(wallet_address=Pubkey.new_unique(), pass_key=pass_key)))

        assert all(tx.verify_with_results())
        assert instruction_keys(tx)[3] == Pubkey.from_string(cash_link.owner)

    @pytest.mark.asyncio
    async def test_token_cancel_uses_owner_token_account(
        self, client, connection, make_cash_link, fake_token_accounts
    ):
        pass_key = Pubkey.new_unique()
        mint = Pubkey.new_unique()
        owner = Pubkey.new_unique()
        seed_cash_link(connection, pass_key, make_cash_link(mint=str(mint), owner=str(owner)))

        tx = decode(await client.cancel(CashLinkParams(wallet_address=owner, pass_key=pass_key)))

        assert fake_token_accounts == [owner]
        assert instruction_keys(tx)[3] == get_associated_token_address(owner, mint)

    @pytest.mark.asyncio
    async def test_token_account_creation_honors_skip_preflight(
        self, connection, fee_payer, authority, fee_wallet, make_cash_link
    ):
        config = ClientConfig.default().with_skip_preflight(True)
        client = CashLinkClient(connection, fee_payer, authority, fee_wallet, config=config)
        pass_key = Pubkey.new_unique()
        seed_cash_link(connection, pass_key, make_cash_link(mint=str(Pubkey.new_unique())))

        await client.cancel(CashLinkParams(wallet_address=Pubkey.new_unique(), pass_key=pass_key))

        sends = [call for call in connection.calls if call[0] == "send_raw_transaction"]
        assert len(sends) == 1
        assert sends[0][1].skip_preflight is True

    @pytest.mark.asyncio
    async def test_redeemed_is_state_violation(self, client, connection, make_cash_link):
        pass_key = Pubkey.new_unique()
        seed_cash_link(connection, pass_key, make_cash_link(state=CashLinkState.REDEEMED))

        with pytest.raises(StateViolationError):
            await client.cancel(CashLinkParams(wallet_address=Pubkey.new_unique(), pass_key=pass_key))

        assert "get_latest_blockhash" not in connection.call_names()


class TestCancelAndClose:
    @pytest.mark.asyncio
    async def test_adds_close_without_redemptions(self, client, connection, make_cash_link):
        pass_key = Pubkey.new_unique()
        seed_cash_link(connection, pass_key, make_cash_link())

        tx = decode(
            await client.cancel_and_close(
                CashLinkParams(wallet_address=Pubkey.new_unique(), pass_key=pass_key, compute_unit_price=5)
            )
        )

        assert program_ids(tx) == [PROGRAM_ID, PROGRAM_ID, COMPUTE_BUDGET_PROGRAM_ID]
        assert bytes(tx.message.instructions[1].data) == bytes([3])

    @pytest.mark.asyncio
    async def test_skips_close_with_redemptions(self, client, connection, make_cash_link, caplog):
        pass_key = Pubkey.new_unique()
        seed_cash_link(
            connection,
            pass_key,
            make_cash_link(state=CashLinkState.REDEEMING, total_redemptions=1, max_num_redemptions=2),
        )

        with caplog.at_level(logging.WARNING):
            tx = decode(
                await client.cancel_and_close(
                    CashLinkParams(wallet_address=Pubkey.new_unique(), pass_key=pass_key)
                )
            )

        assert program_ids(tx) == [PROGRAM_ID]
        assert "skipping close" in caplog.text


class TestClose:
    @pytest.mark.asyncio
    async def test_close_expired(self, client, connection, make_cash_link):
        pass_key = Pubkey.new_unique()
        address = seed_cash_link(connection, pass_key, make_cash_link(state=CashLinkState.EXPIRED))

        tx = decode(await client.close(CashLinkParams(wallet_address=Pubkey.new_unique(), pass_key=pass_key)))

        assert all(tx.verify_with_results())
        assert instruction_keys(tx)[1] == address

    @pytest.mark.asyncio
    async def test_close_with_redemptions(self, client, connection, make_cash_link):
        pass_key = Pubkey.new_unique()
        seed_cash_link(
            connection,
            pass_key,
            make_cash_link(state=CashLinkState.EXPIRED, total_redemptions=1),
        )

        with pytest.raises(HasRedemptionsError):
            await client.close(CashLinkParams(wallet_address=Pubkey.new_unique(), pass_key=pass_key))


class TestSendAndConfirm:
    @pytest.mark.asyncio
    async def test_send_signed(self, client, connection, make_cash_link):
        pass_key = Pubkey.new_unique()
        seed_cash_link(connection, pass_key, make_cash_link())
        result = await client.cancel(CashLinkParams(wallet_address=Pubkey.new_unique(), pass_key=pass_key))

        signature = await client.send(result.transaction)

        assert signature == str(connection.signature)
        assert connection.sent == [base64.b64decode(result.transaction)]
        opts = connection.calls[-1][1]
        assert opts.skip_preflight is False

    @pytest.mark.asyncio
    async def test_send_missing_signature(self, client, connection):
        params = InitializeCashLinkParams(
            wallet=Pubkey.new_unique(),
            pass_key=Pubkey.new_unique(),
            amount=1000,
            distribution_type=DistributionType.FIXED,
            max_num_redemptions=1,
        )
        result = await client.initialize(params)

        with pytest.raises(InvalidSignatureError):
            await client.send(result.transaction)

        assert connection.sent == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [base64.b64encode(b"not a transaction").decode(), "abc"],
    )
    async def test_send_malformed_payload(self, client, connection, payload):
        with pytest.raises(InvalidSignatureError):
            await client.send(payload)

        assert connection.sent == []

    @pytest.mark.asyncio
    async def test_confirm_uses_last_valid_block_height(self, client, connection):
        signature = Signature.new_unique()

        await client.confirm_transaction(str(signature))

        name, sig, commitment, sleep_seconds, last_valid = connection.calls[-1]
        assert name == "confirm_transaction"
        assert sig == signature
        assert commitment == "confirmed"
        assert sleep_seconds == client.config.confirm_sleep_seconds
        assert last_valid == connection.LAST_VALID_BLOCK_HEIGHT


class TestSignTransaction:
    def test_adds_fee_payer_signature(self, client, fee_payer, authority):
        ix = build_close_instruction(authority.pubkey(), Pubkey.new_unique(), fee_payer.pubkey())
        message = Message.new_with_blockhash([ix], fee_payer.pubkey(), Hash.new_unique())

        raw = client.sign_transaction(Transaction.new_unsigned(message))

        assert Transaction.from_bytes(raw).verify_with_results() == [True, False]

    def test_rejects_other_fee_payer(self, client, authority):
        other = Keypair()
        ix = build_close_instruction(authority.pubkey(), Pubkey.new_unique(), other.pubkey())
        message = Message.new_with_blockhash([ix], other.pubkey(), Hash.new_unique())

        with pytest.raises(InvalidParamsError):
            client.sign_transaction(Transaction.new_unsigned(message))


class TestReaders:
    @pytest.mark.asyncio
    async def test_get_cash_link_missing(self, client):
        assert await client.get_cash_link(Pubkey.new_unique()) is None

    @pytest.mark.asyncio
    async def test_get_cash_link_wrong_owner(self, client, connection, make_cash_link):
        address = Pubkey.new_unique()
        connection.add_account(address, Pubkey.new_unique(), serialize_cash_link(make_cash_link()))

        with pytest.raises(InvalidOwnerError):
            await client.get_cash_link(address)

    @pytest.mark.asyncio
    async def test_get_cash_link_by_pass_key(self, client, connection, make_cash_link):
        pass_key = Pubkey.new_unique()
        cash_link = make_cash_link(pass_key=str(pass_key))
        seed_cash_link(connection, pass_key, cash_link)

        assert await client.get_cash_link_by_pass_key(pass_key) == cash_link

    @pytest.mark.asyncio
    async def test_uses_configured_commitment(self, client, connection):
        await client.get_cash_link(Pubkey.new_unique())

        assert connection.calls[0][2] == "confirmed"

    @pytest.mark.asyncio
    async def test_get_cash_link_redemption_missing(self, client):
        assert await client.get_cash_link_redemption(Pubkey.new_unique(), Pubkey.new_unique()) is None

    @pytest.mark.asyncio
    async def test_get_vault(self, client, connection):
        cash_link = Pubkey.new_unique()
        mint = Pubkey.new_unique()
        vault = get_associated_token_address(cash_link, mint)

        assert await client.get_vault(cash_link, mint) is None

        data = bytes(mint) + bytes(cash_link) + (77).to_bytes(8, "little") + bytes(93)
        connection.add_account(vault, TOKEN_PROGRAM_ID, data)

        account = await client.get_vault(cash_link, mint)
        assert account.address == vault
        assert account.amount == 77

    @pytest.mark.asyncio
    async def test_get_vault_wrong_owner(self, client, connection):
        cash_link = Pubkey.new_unique()
        mint = Pubkey.new_unique()
        connection.add_account(
            get_associated_token_address(cash_link, mint), Pubkey.new_unique(), bytes(165)
        )

        assert await client.get_vault(cash_link, mint) is None


class TestAddressHelpers:
    def test_cash_link_address(self, client):
        pass_key = Pubkey.new_unique()

        assert client.get_cash_link_address(pass_key) == get_cash_link_pda(pass_key)[0]

    def test_redemption_address(self, client):
        cash_link = Pubkey.new_unique()
        wallet = Pubkey.new_unique()

        assert client.get_redemption_address(cash_link, wallet) == get_redemption_pda(cash_link, wallet)[0]
