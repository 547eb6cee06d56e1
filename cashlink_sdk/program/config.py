"""Client configuration."""

from dataclasses import dataclass
from typing import Optional

from solana.rpc.commitment import Commitment, Confirmed


@dataclass
class ClientConfig:
    """Configuration for CashLinkClient.

    commitment applies to every read and blockhash fetch unless a call
    overrides it.
    """

    commitment: Optional[Commitment] = Confirmed
    skip_preflight: bool = False
    confirm_sleep_seconds: float = 0.5

    @classmethod
    def default(cls) -> "ClientConfig":
        """Create default config (confirmed commitment, preflight enabled)."""
        return cls()

    def with_commitment(self, commitment: Optional[Commitment]) -> "ClientConfig":
        """Set default commitment."""
        self.commitment = commitment
        return self

    def with_skip_preflight(self, skip: bool) -> "ClientConfig":
        """Set whether submissions skip preflight simulation."""
        self.skip_preflight = skip
        return self

    def with_confirm_sleep_seconds(self, seconds: float) -> "ClientConfig":
        """Set the polling interval used while confirming."""
        self.confirm_sleep_seconds = seconds
        return self
