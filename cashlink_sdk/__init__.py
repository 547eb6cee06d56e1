"""Cash Link SDK - Python SDK for the Cash Link escrow program on Solana.

Example:
    from cashlink_sdk import CashLinkClient, PROGRAM_ID

    # Or import from the program module
    from cashlink_sdk.program import CashLinkClient
"""

__version__ = "0.1.0"

from . import program

from .program import *  # noqa: F401,F403
from .program import __all__ as _program_all

__all__ = ["program", "__version__", *_program_all]
