"""Pytest configuration and shared fixtures."""

import os
from typing import Dict, List

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature

from cashlink_sdk.program import (
    AccountType,
    CashLink,
    CashLinkState,
    DistributionType,
)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (run offline)")
    config.addinivalue_line("markers", "devnet: Integration tests against devnet")


def pytest_collection_modifyitems(config, items):
    """Skip devnet tests unless explicitly requested."""
    run_devnet = config.getoption("-k", default="") and "devnet" in config.getoption("-k", default="")

    for item in items:
        if "test_devnet" in str(item.fspath):
            if not run_devnet and "DEVNET_TESTS" not in os.environ:
                item.add_marker(pytest.mark.skip(reason="Devnet tests skipped by default. Set DEVNET_TESTS=1 or use -k devnet"))


# ============================================================================
# MOCK RPC
# ============================================================================


class MockResponse:
    def __init__(self, value, slot: int = 0):
        self.value = value
        self.context = MockContext(slot)


class MockContext:
    def __init__(self, slot: int):
        self.slot = slot


class MockAccount:
    def __init__(self, owner: Pubkey, data: bytes):
        self.owner = owner
        self.data = data


class MockKeyedAccount:
    def __init__(self, pubkey: Pubkey, account: MockAccount):
        self.pubkey = pubkey
        self.account = account


class MockBlockhash:
    def __init__(self, blockhash: Hash, last_valid_block_height: int):
        self.blockhash = blockhash
        self.last_valid_block_height = last_valid_block_height


class MockConnection:
    """Mock Solana connection recording every call it receives."""

    SLOT = 4242
    LAST_VALID_BLOCK_HEIGHT = 1000

    def __init__(self):
        self.accounts: Dict[Pubkey, MockAccount] = {}
        self.program_accounts: List[MockKeyedAccount] = []
        self.blockhash = Hash.new_unique()
        self.calls: List[tuple] = []
        self.sent: List[bytes] = []
        self.signature = Signature.new_unique()

    def add_account(self, address: Pubkey, owner: Pubkey, data: bytes) -> None:
        self.accounts[address] = MockAccount(owner, data)

    async def get_account_info(self, pubkey, commitment=None):
        self.calls.append(("get_account_info", pubkey, commitment))
        return MockResponse(self.accounts.get(pubkey))

    async def get_program_accounts(self, pubkey, commitment=None, encoding="base64", filters=None):
        self.calls.append(("get_program_accounts", pubkey, commitment, encoding, filters))
        return MockResponse(self.program_accounts)

    async def get_latest_blockhash(self, commitment=None):
        self.calls.append(("get_latest_blockhash", commitment))
        return MockResponse(
            MockBlockhash(self.blockhash, self.LAST_VALID_BLOCK_HEIGHT),
            slot=self.SLOT,
        )

    async def send_raw_transaction(self, txn, opts=None):
        self.calls.append(("send_raw_transaction", opts))
        self.sent.append(txn)
        return MockResponse(self.signature)

    async def confirm_transaction(
        self, tx_sig, commitment=None, sleep_seconds=0.5, last_valid_block_height=None
    ):
        self.calls.append(
            ("confirm_transaction", tx_sig, commitment, sleep_seconds, last_valid_block_height)
        )
        return MockResponse([None])

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def connection():
    return MockConnection()


# ============================================================================
# RECORDS
# ============================================================================


@pytest.fixture
def make_cash_link():
    """Factory for CashLink records with overridable fields."""

    def _make(**overrides) -> CashLink:
        fields = dict(
            account_type=AccountType.CASH_LINK,
            authority=str(Pubkey.new_unique()),
            state=CashLinkState.INITIALIZED,
            amount=1000,
            fee_bps=0,
            fixed_fee=0,
            fee_to_redeem=0,
            remaining_amount=1000,
            distribution_type=DistributionType.FIXED,
            owner=str(Pubkey.new_unique()),
            last_redeemed_at=None,
            expires_at=1_700_086_400,
            mint=None,
            total_redemptions=0,
            max_num_redemptions=1,
            min_amount=0,
            fingerprint_enabled=False,
            pass_key=str(Pubkey.new_unique()),
        )
        fields.update(overrides)
        return CashLink(**fields)

    return _make


@pytest.fixture
def fee_payer():
    return Keypair()


@pytest.fixture
def authority():
    return Keypair()


@pytest.fixture
def fee_wallet():
    return Pubkey.new_unique()
