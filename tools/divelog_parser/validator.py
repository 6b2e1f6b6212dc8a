"""
FIT File Validator

Validates FIT file integrity through:
- Header signature and size checks
- Header and file CRC-16 verification
- Record stream census (message types, definitions, developer fields)
- Detection of truncated streams and undecodable records
"""

import struct
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Union

from .parser import (
    FitDecoder, FormatError, HEADER_WITH_CRC_SIZE, MIN_HEADER_SIZE
)
from .dive import MESG_RECORD, MESG_SESSION, MESG_DIVE_SUMMARY


CRC_SIZE = 2

CRC_TABLE = [
    0x0000, 0xCC01, 0xD801, 0x1400, 0xF001, 0x3C00, 0x2800, 0xE401,
    0xA001, 0x6C00, 0x7800, 0xB401, 0x5000, 0x9C01, 0x8801, 0x4400
]

MESSAGE_NAMES = {
    0: 'file_id',
    18: 'session',
    19: 'lap',
    20: 'record',
    21: 'event',
    23: 'device_info',
    258: 'dive_settings',
    259: 'dive_gas',
    262: 'dive_alarm',
    268: 'dive_summary',
}


def crc16_fit(data: bytes, crc: int = 0) -> int:
    """
    Calculate the FIT CRC-16 (nibble table, polynomial 0xA001 reflected).
    """
    for byte in data:
        tmp = CRC_TABLE[crc & 0xF]
        crc = ((crc >> 4) & 0x0FFF) ^ tmp ^ CRC_TABLE[byte & 0xF]
        tmp = CRC_TABLE[crc & 0xF]
        crc = ((crc >> 4) & 0x0FFF) ^ tmp ^ CRC_TABLE[(byte >> 4) & 0xF]
    return crc & 0xFFFF


def message_name(message_type: int) -> str:
    return MESSAGE_NAMES.get(message_type, f'mesg_{message_type}')


@dataclass
class ValidationReport:
    """Results of file validation"""
    filepath: str
    is_valid: bool = True
    header_valid: bool = True
    header_size: int = 0
    protocol_version: int = 0
    profile_version: int = 0

    header_crc_present: bool = False
    header_crc_valid: bool = True
    file_crc_present: bool = False
    crc_valid: bool = True
    crc_expected: int = 0
    crc_computed: int = 0

    file_size: int = 0
    declared_data_size: int = 0
    decoded_data_size: int = 0

    message_counts: Dict[int, int] = field(default_factory=dict)
    definition_count: int = 0
    developer_field_count: int = 0
    unknown_base_types: Dict[int, int] = field(default_factory=dict)
    skipped_records: int = 0
    stream_complete: bool = True

    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, msg: str):
        """Add an error and mark as invalid"""
        self.errors.append(msg)
        self.is_valid = False

    def add_warning(self, msg: str):
        """Add a warning (doesn't affect validity)"""
        self.warnings.append(msg)

    @property
    def record_count(self) -> int:
        return self.message_counts.get(MESG_RECORD, 0)

    @property
    def has_dive_data(self) -> bool:
        return self.record_count > 0

    def to_dict(self) -> dict:
        return {
            'filepath': self.filepath,
            'is_valid': self.is_valid,
            'header_valid': self.header_valid,
            'header_size': self.header_size,
            'protocol_version': self.protocol_version,
            'profile_version': self.profile_version,
            'header_crc_valid': self.header_crc_valid if self.header_crc_present else None,
            'crc_valid': self.crc_valid if self.file_crc_present else None,
            'crc_expected': f"0x{self.crc_expected:04X}",
            'crc_computed': f"0x{self.crc_computed:04X}",
            'file_size': self.file_size,
            'declared_data_size': self.declared_data_size,
            'decoded_data_size': self.decoded_data_size,
            'messages': {message_name(k): v for k, v in sorted(self.message_counts.items())},
            'definitions': self.definition_count,
            'developer_fields': self.developer_field_count,
            'skipped_records': self.skipped_records,
            'stream_complete': self.stream_complete,
            'has_dive_data': self.has_dive_data,
            'errors': self.errors,
            'warnings': self.warnings,
        }

    def summary(self) -> str:
        """Generate human-readable summary"""
        lines = [
            f"Validation Report: {self.filepath}",
            "=" * 50,
            f"Status: {'VALID' if self.is_valid else 'INVALID'}",
            "",
            f"Header:  {'OK' if self.header_valid else 'INVALID'} "
            f"({self.header_size} bytes, protocol {self.protocol_version}, "
            f"profile {self.profile_version})",
        ]

        if self.header_crc_present:
            lines.append(f"Header CRC: {'OK' if self.header_crc_valid else 'MISMATCH'}")

        if self.file_crc_present:
            lines.append(f"File CRC:   {'OK' if self.crc_valid else 'MISMATCH'}")
            if not self.crc_valid:
                lines.append(f"  Expected: 0x{self.crc_expected:04X}")
                lines.append(f"  Computed: 0x{self.crc_computed:04X}")
        else:
            lines.append("File CRC:   MISSING")

        lines.extend([
            "",
            f"Definitions: {self.definition_count}",
            f"Developer fields: {self.developer_field_count}",
            "Messages:",
        ])
        for mesg_type, count in sorted(self.message_counts.items()):
            lines.append(f"  {message_name(mesg_type):<16} {count:,}")

        if self.errors:
            lines.extend(["", "Errors:"])
            for err in self.errors:
                lines.append(f"  - {err}")

        if self.warnings:
            lines.extend(["", "Warnings:"])
            for warn in self.warnings:
                lines.append(f"  - {warn}")

        return "\n".join(lines)


def validate_bytes(data: bytes, filepath: str = '<bytes>',
                   check_crc: bool = True) -> ValidationReport:
    """
    Validate an in-memory FIT file.

    Args:
        data: Complete file contents
        filepath: Name used in the report
        check_crc: Whether to verify header and file CRCs

    Returns:
        ValidationReport with detailed results
    """
    report = ValidationReport(filepath=filepath, file_size=len(data))

    try:
        decoder = FitDecoder(data)
    except FormatError as e:
        report.header_valid = False
        report.add_error(f"Invalid header: {e}")
        return report

    header = decoder.header
    report.header_size = header.header_size
    report.protocol_version = header.protocol_version
    report.profile_version = header.profile_version
    report.declared_data_size = header.data_size

    if header.header_size not in (MIN_HEADER_SIZE, HEADER_WITH_CRC_SIZE):
        report.add_warning(f"Unusual header size: {header.header_size} bytes")

    if check_crc:
        # A zero header CRC means the writer did not compute one
        if header.crc:
            report.header_crc_present = True
            computed = crc16_fit(data[:MIN_HEADER_SIZE])
            if computed != header.crc:
                report.header_crc_valid = False
                report.add_error(f"Header CRC mismatch: 0x{header.crc:04X} != 0x{computed:04X}")

        if len(data) >= header.data_end + CRC_SIZE:
            report.file_crc_present = True
            report.crc_expected = struct.unpack_from('<H', data, header.data_end)[0]
            report.crc_computed = crc16_fit(data[:header.data_end])
            if report.crc_computed != report.crc_expected:
                report.crc_valid = False
                report.add_error("File CRC mismatch - file may be corrupted")
        else:
            report.add_warning("File CRC missing")

    if len(data) < header.data_end:
        report.add_error(f"File too short: data section declares {header.data_size} bytes, "
                         f"only {max(0, len(data) - header.header_size)} present")
    elif len(data) > header.data_end + CRC_SIZE:
        report.add_warning(f"{len(data) - header.data_end - CRC_SIZE} trailing bytes after CRC")

    result = decoder.decode()
    report.message_counts = dict(Counter(m.message_type for m in result.messages))
    report.definition_count = result.definition_count
    report.developer_field_count = result.developer_field_count
    report.unknown_base_types = dict(result.unknown_base_types)
    report.skipped_records = result.skipped_records
    report.decoded_data_size = max(0, result.bytes_consumed - header.header_size)
    report.stream_complete = result.is_complete

    if result.error is not None:
        report.add_error(f"Stream truncated: {result.error} (offset {result.error.offset})")

    if result.skipped_records:
        report.add_warning(f"Skipped {result.skipped_records} compressed timestamp "
                           f"record(s) without definition")

    for base_type, count in sorted(report.unknown_base_types.items()):
        report.add_warning(f"Unknown base type {base_type} in {count} field value(s)")

    if not report.has_dive_data:
        report.add_warning("No record messages - file holds no dive profile")
    if MESG_SESSION not in report.message_counts:
        report.add_warning("No session message")
    if MESG_DIVE_SUMMARY not in report.message_counts:
        report.add_warning("No dive summary message")

    return report


def validate_file(filepath: Union[str, Path], check_crc: bool = True) -> ValidationReport:
    """
    Validate a FIT file on disk.

    Args:
        filepath: Path to the file
        check_crc: Whether to verify header and file CRCs

    Returns:
        ValidationReport with detailed results
    """
    path = Path(filepath)
    if not path.exists():
        report = ValidationReport(filepath=str(filepath))
        report.add_error(f"File not found: {filepath}")
        return report

    with open(path, 'rb') as f:
        data = f.read()
    return validate_bytes(data, str(filepath), check_crc=check_crc)
