"""Custom exceptions for the Cash Link program module."""


class CashLinkError(Exception):
    """Base exception for all Cash Link SDK errors."""

    pass


# ============================================================================
# LOOKUP
# ============================================================================


class AccountNotFoundError(CashLinkError):
    """Raised when an account is not found on-chain."""

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Failed to find account: {address}")


class InvalidOwnerError(CashLinkError):
    """Raised when an account exists but is not owned by the expected program."""

    def __init__(self, address: str, expected: str, actual: str):
        self.address = address
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Invalid account owner for {address}: expected {expected}, got {actual}"
        )


# ============================================================================
# STATE MACHINE
# ============================================================================


class StateViolationError(CashLinkError):
    """Raised when an operation is not allowed in the cash link's current state."""

    pass


class AccountAlreadyExistsError(StateViolationError):
    """Raised when initializing a cash link whose address is already in use."""

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Account already exists: {address}")


class AlreadyExpiredError(StateViolationError):
    def __init__(self):
        super().__init__("Account already canceled")


class AlreadySettledError(StateViolationError):
    def __init__(self):
        super().__init__("Account already settled")


class NotExpiredError(StateViolationError):
    def __init__(self):
        super().__init__("Account not canceled")


class HasRedemptionsError(StateViolationError):
    def __init__(self, total_redemptions: int):
        self.total_redemptions = total_redemptions
        super().__init__(f"Account has redemptions: {total_redemptions}")


class MaxRedemptionsReachedError(StateViolationError):
    """Raised when a cash link has no redemptions left."""

    def __init__(self, total_redemptions: int, max_num_redemptions: int):
        self.total_redemptions = total_redemptions
        self.max_num_redemptions = max_num_redemptions
        super().__init__(
            f"Max redemptions reached: {total_redemptions}/{max_num_redemptions}"
        )


# ============================================================================
# PROOFS AND SIGNATURES
# ============================================================================


class FingerprintRequiredError(CashLinkError):
    """Raised when a cash link requires a fingerprint and none was supplied."""

    def __init__(self):
        super().__init__("Fingerprint required")


class InvalidSignatureError(CashLinkError):
    """Raised when a transaction is missing a required signature."""

    def __init__(self, message: str = "Invalid signature"):
        super().__init__(message)


# ============================================================================
# CODEC
# ============================================================================


class CodecError(CashLinkError):
    """Base class for encoding and decoding failures."""

    pass


class MalformedAccountError(CodecError):
    """Raised when account or instruction data cannot be deserialized."""

    def __init__(self, message: str):
        super().__init__(f"Malformed account data: {message}")


class InvalidDiscriminatorError(MalformedAccountError):
    """Raised when the account type tag does not match the expected record."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"invalid account type: expected {expected}, got {actual}"
        )


class SerializationError(CodecError):
    """Raised when a value cannot be encoded into its declared wire slot."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Cannot serialize field '{field}': {message}")


# ============================================================================
# ADDRESS DERIVATION
# ============================================================================


class InvalidSeedsError(CashLinkError):
    """Raised when PDA seeds exceed the runtime limits."""

    def __init__(self, message: str):
        super().__init__(f"Invalid seeds: {message}")


# ============================================================================
# INPUT
# ============================================================================


class InvalidParamsError(CashLinkError):
    """Raised when client parameters would be rejected by the program."""

    def __init__(self, message: str):
        super().__init__(f"Invalid parameters: {message}")
