"""Schema-driven binary codec for Cash Link accounts and instructions.

Every record is a fixed, ordered list of fields encoded back to back with no
tags (Borsh layout). Integers are little-endian, pubkeys are 32 raw bytes,
options carry a one-byte presence flag and strings a u32 length prefix.

Byte offsets used for RPC memcmp filters are computed from the schemas below
rather than written by hand, so reordering a field moves its offset with it.
"""

import struct
from dataclasses import asdict
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from solders.pubkey import Pubkey

from .constants import CASH_LINK_SIZE
from .errors import (
    InvalidDiscriminatorError,
    MalformedAccountError,
    SerializationError,
)
from .types import (
    AccountType,
    CancelCashLinkArgs,
    CashInstruction,
    CashLink,
    CashLinkState,
    CloseCashLinkArgs,
    DistributionType,
    InitCashLinkArgs,
    RedeemCashLinkArgs,
    Redemption,
)
from .utils import (
    decode_pubkey,
    decode_u16,
    decode_u32,
    decode_u64,
    decode_u8,
    encode_u16,
    encode_u32,
    encode_u64,
    encode_u8,
    pubkey_to_bytes,
)


# ============================================================================
# FIELD CODECS
# ============================================================================


class FieldCodec:
    """Encodes and decodes a single wire type.

    `size` is the encoded width in bytes, or None for variable-width types.
    `min_size` is the smallest possible encoding.
    """

    type_name = ""
    size: Optional[int] = None
    min_size = 0

    def encode(self, value: Any) -> bytes:
        raise NotImplementedError

    def decode(self, data: bytes, offset: int) -> Tuple[Any, int]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return self.type_name


class _Int(FieldCodec):
    def __init__(self, type_name: str, size: int, encoder, decoder):
        self.type_name = type_name
        self.size = size
        self.min_size = size
        self._encoder = encoder
        self._decoder = decoder

    def encode(self, value: int) -> bytes:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"expected int, got {type(value).__name__}")
        return self._encoder(value)

    def decode(self, data: bytes, offset: int) -> Tuple[int, int]:
        return self._decoder(data, offset), offset + self.size


class _Bool(FieldCodec):
    type_name = "bool"
    size = 1
    min_size = 1

    def encode(self, value: bool) -> bytes:
        return encode_u8(1 if value else 0)

    def decode(self, data: bytes, offset: int) -> Tuple[bool, int]:
        raw = decode_u8(data, offset)
        if raw not in (0, 1):
            raise MalformedAccountError(f"invalid bool byte {raw} at offset {offset}")
        return raw == 1, offset + 1


class _Pubkey(FieldCodec):
    """A 32-byte address, decoded as a base-58 string."""

    type_name = "pubkeyAsString"
    size = 32
    min_size = 32

    def encode(self, value: Union[Pubkey, str, bytes]) -> bytes:
        return pubkey_to_bytes(value)

    def decode(self, data: bytes, offset: int) -> Tuple[str, int]:
        return str(decode_pubkey(data, offset)), offset + 32


class _String(FieldCodec):
    type_name = "string"
    size = None
    min_size = 4

    def encode(self, value: str) -> bytes:
        if not isinstance(value, str):
            raise TypeError(f"expected str, got {type(value).__name__}")
        encoded = value.encode("utf-8")
        return encode_u32(len(encoded)) + encoded

    def decode(self, data: bytes, offset: int) -> Tuple[str, int]:
        length = decode_u32(data, offset)
        start = offset + 4
        end = start + length
        if end > len(data):
            raise MalformedAccountError(
                f"string of {length} bytes at offset {offset} overruns buffer"
            )
        return bytes(data[start:end]).decode("utf-8"), end


class OptionOf(FieldCodec):
    """Borsh option: presence byte (0 or 1), then the inner value if present."""

    min_size = 1

    def __init__(self, inner: FieldCodec):
        self.inner = inner
        self.type_name = f"option<{inner.type_name}>"
        self.max_size = None if inner.size is None else 1 + inner.size

    def encode(self, value: Any) -> bytes:
        if value is None:
            return b"\x00"
        return b"\x01" + self.inner.encode(value)

    def decode(self, data: bytes, offset: int) -> Tuple[Any, int]:
        flag = decode_u8(data, offset)
        if flag == 0:
            return None, offset + 1
        if flag != 1:
            raise MalformedAccountError(
                f"invalid option presence byte {flag} at offset {offset}"
            )
        return self.inner.decode(data, offset + 1)


U8 = _Int("u8", 1, encode_u8, decode_u8)
U16 = _Int("u16", 2, encode_u16, decode_u16)
U32 = _Int("u32", 4, encode_u32, decode_u32)
U64 = _Int("u64", 8, encode_u64, decode_u64)
BOOL = _Bool()
PUBKEY = _Pubkey()
STRING = _String()


# ============================================================================
# SCHEMA
# ============================================================================


class Schema:
    """An ordered, versionless field list shared by writer and reader."""

    def __init__(self, name: str, fields: Sequence[Tuple[str, FieldCodec]]):
        self.name = name
        self.fields = tuple(fields)
        self.min_size = sum(codec.min_size for _, codec in self.fields)

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.fields)

    @property
    def max_size(self) -> Optional[int]:
        """Encoded size with every option present, or None if unbounded."""
        total = 0
        for _, codec in self.fields:
            width = codec.max_size if isinstance(codec, OptionOf) else codec.size
            if width is None:
                return None
            total += width
        return total

    def offset_of(self, field: str) -> int:
        """Byte offset of a field, valid only while every preceding field is fixed-width."""
        if field not in self.field_names:
            raise KeyError(f"{self.name} has no field '{field}'")
        offset = 0
        for name, codec in self.fields:
            if name == field:
                break
            if codec.size is None:
                raise ValueError(
                    f"{self.name}.{field} has no fixed offset: "
                    f"preceded by variable-width field '{name}' ({codec!r})"
                )
            offset += codec.size
        return offset

    def encode(self, values: Mapping[str, Any]) -> bytes:
        out = bytearray()
        for name, codec in self.fields:
            value = values.get(name)
            if value is None and not isinstance(codec, OptionOf):
                raise SerializationError(name, f"{codec!r} is not optional")
            try:
                out.extend(codec.encode(value))
            except (ValueError, TypeError, struct.error) as e:
                raise SerializationError(name, str(e)) from e
        return bytes(out)

    def decode(self, data: bytes) -> Dict[str, Any]:
        if len(data) < self.min_size:
            raise MalformedAccountError(
                f"{self.name} data too short: {len(data)} bytes "
                f"(expected at least {self.min_size})"
            )
        values: Dict[str, Any] = {}
        offset = 0
        for name, codec in self.fields:
            try:
                values[name], offset = codec.decode(data, offset)
            except MalformedAccountError:
                raise
            except (ValueError, struct.error, UnicodeDecodeError) as e:
                raise MalformedAccountError(
                    f"{self.name}.{name} at offset {offset}: {e}"
                ) from e
        return values


# ============================================================================
# ACCOUNT SCHEMAS
# ============================================================================

CASH_LINK_SCHEMA = Schema(
    "CashLink",
    [
        ("account_type", U8),
        ("authority", PUBKEY),
        ("state", U8),
        ("amount", U64),
        ("fee_bps", U16),
        ("fixed_fee", U64),
        ("fee_to_redeem", U64),
        ("remaining_amount", U64),
        ("distribution_type", U8),
        ("owner", PUBKEY),
        ("last_redeemed_at", OptionOf(U64)),
        ("expires_at", U64),
        ("mint", OptionOf(PUBKEY)),
        ("total_redemptions", U16),
        ("max_num_redemptions", U16),
        ("min_amount", U64),
        ("fingerprint_enabled", BOOL),
        ("pass_key", PUBKEY),
    ],
)

REDEMPTION_SCHEMA = Schema(
    "Redemption",
    [
        ("account_type", U8),
        ("cash_link", PUBKEY),
        ("wallet", PUBKEY),
        ("redeemed_at", U64),
        ("amount", U64),
    ],
)

# memcmp filter offsets
ACCOUNT_TYPE_OFFSET = CASH_LINK_SCHEMA.offset_of("account_type")
CASH_LINK_AUTHORITY_OFFSET = CASH_LINK_SCHEMA.offset_of("authority")
CASH_LINK_STATE_OFFSET = CASH_LINK_SCHEMA.offset_of("state")
REDEMPTION_CASH_LINK_OFFSET = REDEMPTION_SCHEMA.offset_of("cash_link")
REDEMPTION_WALLET_OFFSET = REDEMPTION_SCHEMA.offset_of("wallet")


# ============================================================================
# INSTRUCTION SCHEMAS
# ============================================================================

INIT_CASH_LINK_SCHEMA = Schema(
    "InitCashLink",
    [
        ("instruction", U8),
        ("amount", U64),
        ("fee_bps", U16),
        ("fixed_fee", U64),
        ("fee_to_redeem", U64),
        ("cash_link_bump", U8),
        ("distribution_type", U8),
        ("max_num_redemptions", U16),
        ("min_amount", OptionOf(U64)),
        ("fingerprint_enabled", OptionOf(BOOL)),
        ("num_days_to_expire", U8),
    ],
)

REDEEM_SCHEMA = Schema(
    "Redeem",
    [
        ("instruction", U8),
        ("redemption_bump", U8),
        ("cash_link_bump", U8),
        ("fingerprint", OptionOf(STRING)),
        ("fingerprint_bump", OptionOf(U8)),
    ],
)

CANCEL_SCHEMA = Schema(
    "Cancel",
    [
        ("instruction", U8),
        ("cash_link_bump", U8),
    ],
)

CLOSE_SCHEMA = Schema("Close", [("instruction", U8)])


# ============================================================================
# ACCOUNT RECORDS
# ============================================================================


def _check_account_type(data: bytes, expected: AccountType, schema: Schema) -> None:
    if len(data) < 1:
        raise MalformedAccountError(f"{schema.name} data is empty")
    if data[0] != expected:
        raise InvalidDiscriminatorError(int(expected), data[0])


def _to_enum(enum_cls, value: int, field: str):
    try:
        return enum_cls(value)
    except ValueError as e:
        raise MalformedAccountError(f"invalid {field} value {value}") from e


def serialize_cash_link(cash_link: CashLink, pad: bool = True) -> bytes:
    """Serialize a CashLink, zero-padded to the allocated account size by default."""
    data = CASH_LINK_SCHEMA.encode(asdict(cash_link))
    if pad:
        data = data.ljust(CASH_LINK_SIZE, b"\x00")
    return data


def deserialize_cash_link(data: bytes) -> CashLink:
    """Deserialize a CashLink account.

    Layout (196 bytes allocated, 156 minimum):
    - [0]: account_type (u8, 1)
    - [1..33]: authority (Pubkey)
    - [33]: state (u8)
    - [34..42]: amount (u64 LE)
    - [42..44]: fee_bps (u16 LE)
    - [44..52]: fixed_fee (u64 LE)
    - [52..60]: fee_to_redeem (u64 LE)
    - [60..68]: remaining_amount (u64 LE)
    - [68]: distribution_type (u8)
    - [69..101]: owner (Pubkey)
    - then variable offsets: last_redeemed_at option<u64>, expires_at u64,
      mint option<Pubkey>, total_redemptions u16, max_num_redemptions u16,
      min_amount u64, fingerprint_enabled bool, pass_key Pubkey
    """
    data = bytes(data)
    _check_account_type(data, AccountType.CASH_LINK, CASH_LINK_SCHEMA)
    values = CASH_LINK_SCHEMA.decode(data)
    values["account_type"] = AccountType(values["account_type"])
    values["state"] = _to_enum(CashLinkState, values["state"], "state")
    values["distribution_type"] = _to_enum(
        DistributionType, values["distribution_type"], "distribution_type"
    )
    return CashLink(**values)


def serialize_redemption(redemption: Redemption) -> bytes:
    return REDEMPTION_SCHEMA.encode(asdict(redemption))


def deserialize_redemption(data: bytes) -> Redemption:
    """Deserialize a Redemption account.

    Layout (81 bytes):
    - [0]: account_type (u8, 2)
    - [1..33]: cash_link (Pubkey)
    - [33..65]: wallet (Pubkey)
    - [65..73]: redeemed_at (u64 LE)
    - [73..81]: amount (u64 LE)
    """
    data = bytes(data)
    _check_account_type(data, AccountType.REDEMPTION, REDEMPTION_SCHEMA)
    values = REDEMPTION_SCHEMA.decode(data)
    values["account_type"] = AccountType(values["account_type"])
    return Redemption(**values)


# ============================================================================
# INSTRUCTION DATA
# ============================================================================


def _encode_args(schema: Schema, discriminant: CashInstruction, args: Any) -> bytes:
    values = asdict(args)
    values["instruction"] = int(discriminant)
    return schema.encode(values)


def serialize_init_cash_link_args(args: InitCashLinkArgs) -> bytes:
    return _encode_args(INIT_CASH_LINK_SCHEMA, CashInstruction.INIT_CASH_LINK, args)


def serialize_redeem_args(args: RedeemCashLinkArgs) -> bytes:
    return _encode_args(REDEEM_SCHEMA, CashInstruction.REDEEM, args)


def serialize_cancel_args(args: CancelCashLinkArgs) -> bytes:
    return _encode_args(CANCEL_SCHEMA, CashInstruction.CANCEL, args)


def serialize_close_args(args: Optional[CloseCashLinkArgs] = None) -> bytes:
    return _encode_args(CLOSE_SCHEMA, CashInstruction.CLOSE, args or CloseCashLinkArgs())


_INSTRUCTION_LAYOUTS = {
    CashInstruction.INIT_CASH_LINK: (INIT_CASH_LINK_SCHEMA, InitCashLinkArgs),
    CashInstruction.REDEEM: (REDEEM_SCHEMA, RedeemCashLinkArgs),
    CashInstruction.CANCEL: (CANCEL_SCHEMA, CancelCashLinkArgs),
    CashInstruction.CLOSE: (CLOSE_SCHEMA, CloseCashLinkArgs),
}


def deserialize_instruction(data: bytes) -> Tuple[CashInstruction, Any]:
    """Decode instruction data into its discriminant and typed args."""
    data = bytes(data)
    if not data:
        raise MalformedAccountError("instruction data is empty")
    discriminant = _to_enum(CashInstruction, data[0], "instruction")
    schema, args_cls = _INSTRUCTION_LAYOUTS[discriminant]
    values = schema.decode(data)
    del values["instruction"]
    if "distribution_type" in values:
        values["distribution_type"] = _to_enum(
            DistributionType, values["distribution_type"], "distribution_type"
        )
    return discriminant, args_cls(**values)
