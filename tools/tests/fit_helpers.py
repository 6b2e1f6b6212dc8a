"""
Builders for synthetic FIT files.

FIT buffers are assembled in memory so every test states exactly which
bytes the decoder sees.
"""

import struct

from divelog_parser.validator import crc16_fit


# FIT base type bytes
ENUM = 0x00
SINT8 = 0x01
UINT8 = 0x02
SINT16 = 0x83
UINT16 = 0x84
SINT32 = 0x85
UINT32 = 0x86
STRING = 0x07
FLOAT32 = 0x88
FLOAT64 = 0x89
UINT8Z = 0x0A
UINT16Z = 0x8B
UINT32Z = 0x8C
BYTE = 0x0D

# Garmin timestamp for 2024-03-12T09:00:00Z
DIVE_START = 1710234000 - 631065600


class FitBuilder:
    """Assembles FIT files record by record."""

    def __init__(self):
        self.records = bytearray()

    def definition(self, local_type, global_num, fields, little_endian=True,
                   dev_fields=None):
        """fields / dev_fields: lists of (number, size, base_type or dev index)"""
        header = 0x40 | local_type
        if dev_fields is not None:
            header |= 0x20
        self.records.append(header)
        self.records.append(0)
        self.records.append(0 if little_endian else 1)
        self.records += struct.pack('<H' if little_endian else '>H', global_num)
        self.records.append(len(fields))
        for number, size, base_type in fields:
            self.records += bytes([number, size, base_type])
        if dev_fields is not None:
            self.records.append(len(dev_fields))
            for number, size, index in dev_fields:
                self.records += bytes([number, size, index])
        return self

    def data(self, local_type, payload):
        self.records.append(local_type & 0x0F)
        self.records += payload
        return self

    def compressed(self, local_type, time_offset, payload):
        self.records.append(0x80 | ((local_type & 0x03) << 5) | (time_offset & 0x1F))
        self.records += payload
        return self

    def raw(self, payload):
        self.records += payload
        return self

    def build(self, header_size=14, tag=b'.FIT', with_crc=True, header_crc=True,
              data_size=None):
        size = len(self.records) if data_size is None else data_size
        header = struct.pack('<BBHI', header_size, 0x20, 2132, size) + tag
        if header_size >= 14:
            header += struct.pack('<H', crc16_fit(header) if header_crc else 0)
        out = header + bytes(self.records)
        if with_crc:
            out += struct.pack('<H', crc16_fit(out))
        return out


def le(fmt, *values):
    return struct.pack('<' + fmt, *values)


def be(fmt, *values):
    return struct.pack('>' + fmt, *values)


def record_fields():
    """Timestamp, depth, ascent rate, temperature, NDL, CNS"""
    return [
        (253, 4, UINT32),
        (92, 4, UINT32),
        (127, 4, SINT32),
        (13, 1, SINT8),
        (96, 4, UINT32),
        (93, 1, UINT8),
    ]


def record_payload(timestamp, depth_mm=None, ascent_mm_s=None, temp=None,
                   ndl=None, cns=None):
    return le(
        'IIibIB',
        timestamp,
        0xFFFFFFFF if depth_mm is None else depth_mm,
        0x7FFFFFFF if ascent_mm_s is None else ascent_mm_s,
        0x7F if temp is None else temp,
        0xFFFFFFFF if ndl is None else ndl,
        0xFF if cns is None else cns,
    )


