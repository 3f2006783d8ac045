"""Binary instruction layouts understood by the Cove vault program.

Every payload starts with a one-byte tag followed by the operation's fields in
declared order. All fields are fixed width, so the encoded span of an
operation never depends on the values being encoded.
"""
from dataclasses import dataclass
from enum import IntEnum
from types import MappingProxyType
from typing import Any, ClassVar, Dict, Mapping, NamedTuple, Tuple, Union

from borsh_construct import Bool, CStruct, U8, U64

from .errors import EncodingError, InvalidFieldError, MissingFieldError

CRASH_FLAG = 64


class Operation(IntEnum):
    INITIALIZE_VAULT = 0
    DEPOSIT = 1
    WITHDRAW = 2
    ESTIMATE_VALUE = 3
    WRITE_DATA = 4


class FieldKind(NamedTuple):
    codec: Any
    width: int
    minimum: int
    maximum: int


KINDS: Mapping[str, FieldKind] = MappingProxyType(
    {
        "bool": FieldKind(Bool, 1, 0, 1),
        "u8": FieldKind(U8, 1, 0, 0xFF),
        "u64": FieldKind(U64, 8, 0, 0xFFFF_FFFF_FFFF_FFFF),
    }
)


class FieldSpec(NamedTuple):
    name: str
    kind: str

    @property
    def width(self) -> int:
        return KINDS[self.kind].width


class Schema(NamedTuple):
    operation: Operation
    fields: Tuple[FieldSpec, ...]
    layout: CStruct

    @property
    def tag(self) -> int:
        return int(self.operation)


def _schema(operation: Operation, *fields: Tuple[str, str]) -> Schema:
    specs = tuple(FieldSpec(name, kind) for name, kind in fields)
    layout = CStruct(*[spec.name / KINDS[spec.kind].codec for spec in specs])
    return Schema(operation, specs, layout)


# hodl comes first: this is the order the program's unpacker reads.
REGISTRY: Mapping[Operation, Schema] = MappingProxyType(
    {
        Operation.INITIALIZE_VAULT: _schema(
            Operation.INITIALIZE_VAULT,
            ("hodl", "bool"),
            ("deposit_strategy_id", "u8"),
            ("withdraw_strategy_id", "u8"),
            ("estimate_strategy_id", "u8"),
        ),
        Operation.DEPOSIT: _schema(Operation.DEPOSIT, ("amount", "u64")),
        Operation.WITHDRAW: _schema(Operation.WITHDRAW, ("amount", "u64")),
        Operation.ESTIMATE_VALUE: _schema(Operation.ESTIMATE_VALUE),
        Operation.WRITE_DATA: _schema(Operation.WRITE_DATA),
    }
)


def schema_for(operation: Operation) -> Schema:
    try:
        return REGISTRY[Operation(operation)]
    except ValueError as exc:
        raise EncodingError(f"Unknown vault operation {operation!r}") from exc


def span_of(operation: Operation, values: Mapping[str, Any]) -> int:
    schema = schema_for(operation)
    return 1 + sum(spec.width for spec in schema.fields)


def _check_value(label: str, spec: FieldSpec, value: Any) -> None:
    kind = KINDS[spec.kind]
    if spec.kind == "bool":
        if not isinstance(value, bool):
            raise InvalidFieldError(label, spec.name, value, "expected bool")
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidFieldError(label, spec.name, value, f"expected {spec.kind} integer")
    if not kind.minimum <= value <= kind.maximum:
        raise InvalidFieldError(
            label, spec.name, value, f"out of range for {spec.kind}"
        )


def validate(operation: Operation, values: Mapping[str, Any]) -> Dict[str, Any]:
    """Return the schema's fields picked from ``values``.

    Fields are checked in declared order so the first missing one is always
    the one reported.
    """
    operation = schema_for(operation).operation
    picked: Dict[str, Any] = {}
    for spec in schema_for(operation).fields:
        if spec.name not in values:
            raise MissingFieldError(operation.name, spec.name)
        _check_value(operation.name, spec, values[spec.name])
        picked[spec.name] = values[spec.name]
    return picked


def encode_tag(operation: Operation, debug_crash: bool = False) -> int:
    return int(operation) + (CRASH_FLAG if debug_crash else 0)


def encode(operation: Operation, values: Mapping[str, Any], debug_crash: bool = False) -> bytes:
    operation = schema_for(operation).operation
    picked = validate(operation, values)
    data = bytes([encode_tag(operation, debug_crash)]) + schema_for(operation).layout.build(picked)
    if len(data) != span_of(operation, picked):
        raise EncodingError(f"{operation.name} encoded to {len(data)} bytes")
    return data


@dataclass(frozen=True)
class InitializeVault:
    hodl: bool
    deposit_strategy_id: int
    withdraw_strategy_id: int
    estimate_strategy_id: int
    debug_crash: bool = False

    operation: ClassVar[Operation] = Operation.INITIALIZE_VAULT


@dataclass(frozen=True)
class Deposit:
    amount: int
    debug_crash: bool = False

    operation: ClassVar[Operation] = Operation.DEPOSIT


@dataclass(frozen=True)
class Withdraw:
    amount: int  # derivative tokens
    debug_crash: bool = False

    operation: ClassVar[Operation] = Operation.WITHDRAW


@dataclass(frozen=True)
class EstimateValue:
    debug_crash: bool = False

    operation: ClassVar[Operation] = Operation.ESTIMATE_VALUE


@dataclass(frozen=True)
class WriteData:
    # Raw bytes appended after the tag; not part of the fixed layout.
    data: bytes = b""
    debug_crash: bool = False

    operation: ClassVar[Operation] = Operation.WRITE_DATA


VaultInstruction = Union[InitializeVault, Deposit, Withdraw, EstimateValue, WriteData]

VARIANTS: Mapping[Operation, type] = MappingProxyType(
    {
        Operation.INITIALIZE_VAULT: InitializeVault,
        Operation.DEPOSIT: Deposit,
        Operation.WITHDRAW: Withdraw,
        Operation.ESTIMATE_VALUE: EstimateValue,
        Operation.WRITE_DATA: WriteData,
    }
)


def field_values(instruction: VaultInstruction) -> Dict[str, Any]:
    schema = schema_for(instruction.operation)
    return {spec.name: getattr(instruction, spec.name) for spec in schema.fields}


def pack(instruction: VaultInstruction) -> bytes:
    data = encode(instruction.operation, field_values(instruction), instruction.debug_crash)
    if isinstance(instruction, WriteData):
        data += bytes(instruction.data)
    return data


def decode(data: bytes) -> VaultInstruction:
    if not data:
        raise EncodingError("Empty instruction data")
    tag_raw = data[0]
    debug_crash = tag_raw >= CRASH_FLAG
    tag = tag_raw - CRASH_FLAG if debug_crash else tag_raw
    try:
        operation = Operation(tag)
    except ValueError as exc:
        raise EncodingError(f"Unknown instruction tag {tag_raw}") from exc
    schema = schema_for(operation)
    span = span_of(operation, {})
    if len(data) < span:
        raise EncodingError(f"{operation.name} needs {span} bytes, got {len(data)}")
    parsed = schema.layout.parse(bytes(data[1:span]))
    values = {spec.name: parsed[spec.name] for spec in schema.fields}
    if operation is Operation.WRITE_DATA:
        values["data"] = bytes(data[span:])
    return VARIANTS[operation](debug_crash=debug_crash, **values)


# Strategy programs are invoked with the instruction ids the vault was
# initialized with instead of the vault's own tags.
StrategyTransferLayout = CStruct("instruction_id" / U8, "amount" / U64)
StrategyEstimateLayout = CStruct("instruction_id" / U8)


def encode_strategy_transfer(instruction_id: int, amount: int) -> bytes:
    values = {"instruction_id": instruction_id, "amount": amount}
    for spec in (FieldSpec("instruction_id", "u8"), FieldSpec("amount", "u64")):
        _check_value("StrategyTransfer", spec, values[spec.name])
    return StrategyTransferLayout.build(values)


def encode_strategy_estimate(instruction_id: int) -> bytes:
    _check_value("StrategyEstimate", FieldSpec("instruction_id", "u8"), instruction_id)
    return StrategyEstimateLayout.build({"instruction_id": instruction_id})
