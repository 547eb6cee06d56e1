"""PDA (Program Derived Address) derivation functions for the Cash Link SDK."""

from typing import Sequence, Tuple

from solders.pubkey import Pubkey
from spl.token.instructions import get_associated_token_address as _spl_associated_token_address

from .constants import (
    MAX_SEED_LEN,
    MAX_SEEDS,
    PROGRAM_ID,
    SEED_CASH_LINK,
    SEED_FINGERPRINT,
    SEED_REDEMPTION,
    TOKEN_PROGRAM_ID,
)
from .errors import InvalidSeedsError
from .utils import decode_fingerprint


def _validate_seeds(seeds: Sequence[bytes]) -> None:
    if len(seeds) > MAX_SEEDS:
        raise InvalidSeedsError(f"{len(seeds)} seeds (maximum {MAX_SEEDS})")
    for i, seed in enumerate(seeds):
        if len(seed) > MAX_SEED_LEN:
            raise InvalidSeedsError(
                f"seed {i} is {len(seed)} bytes (maximum {MAX_SEED_LEN})"
            )


def find_program_address(
    seeds: Sequence[bytes],
    program_id: Pubkey = PROGRAM_ID,
) -> Tuple[Pubkey, int]:
    """Find the first off-curve address for the seeds, searching bumps 255 down to 0.

    Raises:
        InvalidSeedsError: If the seeds plus bump exceed the runtime limits
    """
    _validate_seeds(list(seeds) + [b"\x00"])
    return Pubkey.find_program_address(list(seeds), program_id)


def get_cash_link_pda(
    pass_key: Pubkey,
    program_id: Pubkey = PROGRAM_ID,
) -> Tuple[Pubkey, int]:
    """Derive the cash link PDA for a pass key.

    Seeds: ["cash", pass_key]
    """
    return find_program_address([SEED_CASH_LINK, bytes(pass_key)], program_id)


def get_redemption_pda(
    cash_link: Pubkey,
    wallet: Pubkey,
    program_id: Pubkey = PROGRAM_ID,
) -> Tuple[Pubkey, int]:
    """Derive the redemption PDA for a wallet redeeming a cash link.

    Seeds: ["redeem", cash_link, wallet]
    """
    return find_program_address(
        [SEED_REDEMPTION, bytes(cash_link), bytes(wallet)],
        program_id,
    )


def get_fingerprint_pda(
    cash_link: Pubkey,
    fingerprint: str,
    program_id: Pubkey = PROGRAM_ID,
) -> Tuple[Pubkey, int]:
    """Derive the fingerprint PDA guarding against replayed redemptions.

    Seeds: ["fingerprint", cash_link, base58_decode(fingerprint)]
    """
    try:
        fingerprint_bytes = decode_fingerprint(fingerprint)
    except ValueError as e:
        raise InvalidSeedsError(str(e)) from e
    return find_program_address(
        [SEED_FINGERPRINT, bytes(cash_link), fingerprint_bytes],
        program_id,
    )


def get_associated_token_address(
    owner: Pubkey,
    mint: Pubkey,
    token_program_id: Pubkey = TOKEN_PROGRAM_ID,
) -> Pubkey:
    """Derive the associated token account address for an owner and mint.

    Owners may themselves be PDAs (the cash link vault is owned by the cash link).
    """
    return _spl_associated_token_address(owner, mint, token_program_id)
