"""
FIT Binary Stream Decoder

Decodes the FIT record stream written by dive computers into a flat,
ordered list of messages. Only the wire format is handled here: each
message is tagged with its global message number and maps field numbers
to decoded scalars. Interpretation of the fields lives in dive.py.
"""

import math
import struct
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Union


# Header layout
FIT_SIGNATURE = b'.FIT'
MIN_HEADER_SIZE = 12
HEADER_WITH_CRC_SIZE = 14

# Record header bits
COMPRESSED_HEADER_MASK = 0x80
DEFINITION_MASK = 0x40
DEVELOPER_DATA_MASK = 0x20
LOCAL_TYPE_MASK = 0x0F
COMPRESSED_LOCAL_TYPE_MASK = 0x03
COMPRESSED_TIME_MASK = 0x1F
MAX_LOCAL_TYPES = 16

BASE_TYPE_NUM_MASK = 0x1F
BASE_TYPE_STRING = 7

# Seconds between 1970-01-01 and 1989-12-31T00:00:00Z
GARMIN_EPOCH_OFFSET = 631065600

# base type number -> (struct format, invalid value)
_NUMERIC_BASE_TYPES = {
    0: ('B', 0xFF),           # enum
    1: ('b', 0x7F),           # sint8
    2: ('B', 0xFF),           # uint8
    3: ('h', 0x7FFF),         # sint16
    4: ('H', 0xFFFF),         # uint16
    5: ('i', 0x7FFFFFFF),     # sint32
    6: ('I', 0xFFFFFFFF),     # uint32
    8: ('f', None),           # float32
    9: ('d', None),           # float64
    10: ('B', 0xFF),          # uint8z
    11: ('H', 0xFFFF),        # uint16z
    12: ('I', 0xFFFFFFFF),    # uint32z
    13: ('B', 0xFF),          # byte
}

Scalar = Optional[Union[int, float, str]]


class FitParseError(Exception):
    """Raised when a FIT buffer cannot be decoded."""


class FormatError(FitParseError):
    """The buffer does not carry the FIT signature."""


class TruncatedStreamError(FitParseError):
    """A record referenced an undefined local message type or ran past the buffer."""

    def __init__(self, message: str, offset: int):
        super().__init__(message)
        self.offset = offset


@dataclass
class FileHeader:
    """FIT file header (12 or 14 bytes)"""
    header_size: int
    protocol_version: int
    profile_version: int
    data_size: int
    data_type: bytes
    crc: Optional[int] = None

    @property
    def data_end(self) -> int:
        """Offset one past the last byte of the data section"""
        return self.header_size + self.data_size

    @property
    def is_valid(self) -> bool:
        return self.data_type == FIT_SIGNATURE

    @classmethod
    def from_bytes(cls, data: bytes) -> 'FileHeader':
        """Parse header from bytes"""
        if len(data) < MIN_HEADER_SIZE:
            raise FormatError("not a FIT file")

        header_size, protocol_version, profile_version, data_size = \
            struct.unpack_from('<BBHI', data, 0)
        data_type = bytes(data[8:12])
        if data_type != FIT_SIGNATURE:
            raise FormatError("not a FIT file")

        crc = None
        if header_size >= HEADER_WITH_CRC_SIZE and len(data) >= HEADER_WITH_CRC_SIZE:
            crc = struct.unpack_from('<H', data, 12)[0]

        return cls(
            header_size=header_size,
            protocol_version=protocol_version,
            profile_version=profile_version,
            data_size=data_size,
            data_type=data_type,
            crc=crc
        )


@dataclass(frozen=True)
class FieldDefinition:
    """Standard field descriptor (3 bytes)"""
    number: int
    size: int
    base_type: int


@dataclass(frozen=True)
class DeveloperFieldDefinition:
    """Developer field descriptor (3 bytes); values are skipped"""
    number: int
    size: int
    developer_data_index: int


@dataclass
class MessageDefinition:
    """Field layout bound to a local message type"""
    global_message_type: int
    little_endian: bool
    fields: List[FieldDefinition] = field(default_factory=list)
    developer_fields: List[DeveloperFieldDefinition] = field(default_factory=list)

    @property
    def data_size(self) -> int:
        """Bytes consumed by one data record using this layout"""
        return (sum(f.size for f in self.fields) +
                sum(f.size for f in self.developer_fields))


@dataclass
class RawMessage:
    """One decoded data record"""
    message_type: int
    fields: Dict[int, Scalar] = field(default_factory=dict)

    def has(self, number: int) -> bool:
        return self.fields.get(number) is not None

    def get(self, number: int, default: Scalar = None) -> Scalar:
        value = self.fields.get(number)
        return default if value is None else value

    def _number(self, number: int) -> Optional[Union[int, float]]:
        # float fields carry no sentinel; NaN and infinity count as absent
        value = self.fields.get(number)
        if value is None or isinstance(value, str):
            return None
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return value

    def get_int(self, number: int) -> Optional[int]:
        value = self._number(number)
        return None if value is None else int(value)

    def get_float(self, number: int) -> Optional[float]:
        value = self._number(number)
        return None if value is None else float(value)

    def get_str(self, number: int) -> Optional[str]:
        value = self.fields.get(number)
        return value if isinstance(value, str) else None


@dataclass
class DecodeResult:
    """Messages plus diagnostics from a single decode pass"""
    header: FileHeader
    messages: List[RawMessage] = field(default_factory=list)
    error: Optional[TruncatedStreamError] = None
    skipped_records: int = 0
    definition_count: int = 0
    developer_field_count: int = 0
    unknown_base_types: Dict[int, int] = field(default_factory=dict)
    bytes_consumed: int = 0

    @property
    def is_complete(self) -> bool:
        """True if the whole data section was scanned"""
        return self.error is None and self.skipped_records == 0


def fit_timestamp_to_datetime(timestamp: Optional[int]) -> Optional[datetime]:
    """Convert seconds since the Garmin epoch to an aware UTC datetime"""
    if not timestamp:
        return None
    return datetime.fromtimestamp(timestamp + GARMIN_EPOCH_OFFSET, tz=timezone.utc)


def decode_scalar(data: bytes, offset: int, size: int, base_type: int,
                  little_endian: bool) -> Scalar:
    """
    Decode one field value.

    Args:
        data: Source buffer
        offset: Start of the field
        size: Declared field size in bytes
        base_type: FIT base type byte (only the low 5 bits are used)
        little_endian: Byte order from the owning definition

    Returns:
        int, float or str, or None for invalid/unsupported values
    """
    type_num = base_type & BASE_TYPE_NUM_MASK

    if type_num == BASE_TYPE_STRING:
        raw = data[offset:offset + size]
        null_pos = raw.find(b'\x00')
        if null_pos >= 0:
            raw = raw[:null_pos]
        return raw.decode('utf-8', errors='replace')

    spec = _NUMERIC_BASE_TYPES.get(type_num)
    if spec is None:
        return None

    fmt, invalid = spec
    if struct.calcsize(fmt) > size:
        return None

    value = struct.unpack_from(('<' if little_endian else '>') + fmt, data, offset)[0]
    if invalid is not None and value == invalid:
        return None
    return value


class FitDecoder:
    """
    FIT record stream decoder.

    The definition table is local to each decode() call, so one decoder
    (or many) can be used from several threads at once.

    Example:
        result = FitDecoder(data).decode()
        for msg in result.messages:
            print(msg.message_type, msg.fields)
    """

    def __init__(self, data: bytes):
        self.data = bytes(data)
        self.header = FileHeader.from_bytes(self.data)

    def decode(self, strict: bool = False) -> DecodeResult:
        """
        Decode every record in the data section.

        Args:
            strict: Raise TruncatedStreamError instead of returning the
                    messages decoded before the stream broke

        Returns:
            DecodeResult with messages in stream order
        """
        data = self.data
        result = DecodeResult(header=self.header)
        definitions: Dict[int, MessageDefinition] = {}

        offset = self.header.header_size
        record_start = offset
        end = min(self.header.data_end, len(data))

        try:
            while offset < end:
                record_start = offset
                record_header = data[offset]
                offset += 1

                if record_header & COMPRESSED_HEADER_MASK:
                    local_type = (record_header >> 5) & COMPRESSED_LOCAL_TYPE_MASK
                    definition = definitions.get(local_type)
                    if definition is None:
                        # Layout unknown; only the header byte is consumed
                        result.skipped_records += 1
                        if strict:
                            raise TruncatedStreamError(
                                f"compressed timestamp record for undefined local type {local_type}",
                                record_start)
                        continue
                    offset = self._read_data_record(definition, offset, end, result)

                elif record_header & DEFINITION_MASK:
                    local_type = record_header & LOCAL_TYPE_MASK
                    has_dev = bool(record_header & DEVELOPER_DATA_MASK)
                    definition, offset = self._read_definition(offset, end, has_dev)
                    definitions[local_type] = definition
                    result.definition_count += 1
                    result.developer_field_count += len(definition.developer_fields)

                else:
                    local_type = record_header & LOCAL_TYPE_MASK
                    definition = definitions.get(local_type)
                    if definition is None:
                        raise TruncatedStreamError(
                            f"data record for undefined local type {local_type}",
                            record_start)
                    offset = self._read_data_record(definition, offset, end, result)

        except TruncatedStreamError as e:
            if strict:
                raise
            result.error = e
            # The broken record is not counted as consumed
            offset = record_start

        if result.error is None and self.header.data_end > len(data):
            result.error = TruncatedStreamError(
                f"data section declares {self.header.data_size} bytes, "
                f"buffer holds {len(data) - self.header.header_size}",
                len(data))
            if strict:
                raise result.error

        result.bytes_consumed = offset
        return result

    def _require(self, offset: int, count: int, end: int):
        if offset + count > end:
            raise TruncatedStreamError(
                f"record needs {count} bytes at offset {offset}, data ends at {end}",
                offset)

    def _read_definition(self, offset: int, end: int, has_dev: bool):
        data = self.data
        self._require(offset, 5, end)
        # byte 0 is reserved
        little_endian = data[offset + 1] == 0
        global_num = struct.unpack_from('<H' if little_endian else '>H', data, offset + 2)[0]
        num_fields = data[offset + 4]
        offset += 5

        self._require(offset, num_fields * 3, end)
        fields = []
        for _ in range(num_fields):
            fields.append(FieldDefinition(
                number=data[offset],
                size=data[offset + 1],
                base_type=data[offset + 2]
            ))
            offset += 3

        dev_fields = []
        if has_dev:
            self._require(offset, 1, end)
            num_dev = data[offset]
            offset += 1
            self._require(offset, num_dev * 3, end)
            for _ in range(num_dev):
                dev_fields.append(DeveloperFieldDefinition(
                    number=data[offset],
                    size=data[offset + 1],
                    developer_data_index=data[offset + 2]
                ))
                offset += 3

        definition = MessageDefinition(
            global_message_type=global_num,
            little_endian=little_endian,
            fields=fields,
            developer_fields=dev_fields
        )
        return definition, offset

    def _read_data_record(self, definition: MessageDefinition, offset: int,
                          end: int, result: DecodeResult) -> int:
        self._require(offset, definition.data_size, end)

        message = RawMessage(message_type=definition.global_message_type)
        for fdef in definition.fields:
            type_num = fdef.base_type & BASE_TYPE_NUM_MASK
            if type_num != BASE_TYPE_STRING and type_num not in _NUMERIC_BASE_TYPES:
                result.unknown_base_types[type_num] = \
                    result.unknown_base_types.get(type_num, 0) + 1
            message.fields[fdef.number] = decode_scalar(
                self.data, offset, fdef.size, fdef.base_type, definition.little_endian)
            offset += fdef.size

        # Developer field values are not interpreted
        for dev in definition.developer_fields:
            offset += dev.size

        result.messages.append(message)
        return offset


def decode(data: bytes, strict: bool = False) -> List[RawMessage]:
    """Decode a FIT buffer and return its data messages in stream order"""
    return FitDecoder(data).decode(strict=strict).messages


def read_fit_file(filepath: Union[str, Path]) -> bytes:
    """Read a whole FIT file into memory"""
    with open(filepath, 'rb') as f:
        return f.read()
