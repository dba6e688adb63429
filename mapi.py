#! /usr/bin/env python3
# -*- coding: UTF-8 -*-
#
# Copyright (c) 2014, Dionach Ltd. All rights reserved. See LICENSE file.
#
# mapi: MAPI property lists carried inside TNEF attributes (attMsgProps, attAttachment)
# based on [MS-OXTNEF] 2.1.3.4 MsgPropertyList
#

import struct
from typing import Optional

import tnefutils
from exceptions import MAPIException
from PType import PType, _ValueType, get_ptype
from PTypeEnum import MV_FLAG, PTypeEnum

NAMED_PROPERTY_MIN: int = 0x8000
NAMED_PROPERTY_MAX: int = 0xFFFE

MNID_ID: int = 0
MNID_STRING: int = 1


class MAPIAttribute:
    """One property of a MAPI property list, value bytes kept as they were on the wire"""

    type: int
    name: int
    values: list[bytes]
    is_multi: bool
    guid: Optional[bytes]
    name_id: Optional[int]
    name_string: Optional[str]

    def __init__(self, attr_type: int, name: int, values: list[bytes], is_multi: bool = False,
                 guid: Optional[bytes] = None, name_id: Optional[int] = None, name_string: Optional[str] = None) -> None:

        self.type, self.name, self.values, self.is_multi = attr_type, name, values, is_multi
        self.guid, self.name_id, self.name_string = guid, name_id, name_string

    @property
    def data(self) -> bytes:
        """All values concatenated, which for a single-valued property is just its value"""
        return b''.join(self.values)

    @property
    def ptype(self) -> PType:
        return get_ptype(self.type)

    @property
    def is_named(self) -> bool:
        return self.guid is not None

    @property
    def value(self) -> _ValueType | list[_ValueType]:

        ptype: PType = self.ptype
        if self.is_multi:
            return [ptype.value(value_bytes) for value_bytes in self.values]
        if not self.values:
            return None
        return ptype.value(self.values[0])

    def text(self, codepage: Optional[int] = None) -> str:
        """The value as a string with every NUL removed"""

        if self.type == PTypeEnum.PtypString.value:
            return self.data.decode('utf-16-le', errors='replace').replace('\x00', '')
        return tnefutils.decode_text(self.data, codepage)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MAPIAttribute):
            return NotImplemented
        return (self.type, self.name, self.values, self.is_multi, self.guid, self.name_id, self.name_string) == \
            (other.type, other.name, other.values, other.is_multi, other.guid, other.name_id, other.name_string)

    def __str__(self) -> str:
        tag: str = tnefutils.to_zeropaddedhex((self.name << 16) | self.type, 8)
        return f"0x{tag}-{str(self.value)}"


def _read_bytes(data: bytes, offset: int, size: int) -> bytes:

    if size < 0 or offset + size > len(data):
        raise MAPIException(
            f'MAPI property list truncated at offset {offset}: {size} bytes needed, {max(len(data) - offset, 0)} left')
    return data[offset:offset + size]


def _read_integer(format: str, data: bytes, offset: int) -> int:

    return tnefutils.unpack_integer(format, _read_bytes(data, offset, struct.calcsize(format)))


def _padding(length: int) -> int:
    return -length & 3


def decode_mapi(data: bytes, offset: int = 0, warnings: Optional[list[str]] = None) -> list[MAPIAttribute]:
    """Decodes a property list starting at offset. Raises MAPIException when the list is malformed,
    callers treat that as 'no properties available'.

    A list whose data ends cleanly on a property boundary before the declared count is not malformed:
    the properties read so far are returned and a warning is recorded. Callers, including the title
    lookup of attachments, use them as if the list were complete."""

    attributes: list[MAPIAttribute] = []

    property_count: int = _read_integer('<I', data, offset)
    offset += 4
    for index in range(property_count):
        if offset >= len(data):
            tnefutils.add_warning(
                warnings, f'MAPI property list ended after {index} of {property_count} properties')
            break

        attr_type: int = _read_integer('<H', data, offset)
        attr_name: int = _read_integer('<H', data, offset + 2)
        offset += 4
        is_multi: bool = attr_type & MV_FLAG != 0
        attr_type &= ~MV_FLAG
        ptype: PType = get_ptype(attr_type)

        guid: Optional[bytes] = None
        name_id: Optional[int] = None
        name_string: Optional[str] = None
        if NAMED_PROPERTY_MIN <= attr_name <= NAMED_PROPERTY_MAX:
            guid = _read_bytes(data, offset, 16)
            kind: int = _read_integer('<I', data, offset + 16)
            offset += 20
            if kind == MNID_ID:
                name_id = _read_integer('<I', data, offset)
                offset += 4
            elif kind == MNID_STRING:
                name_length: int = _read_integer('<I', data, offset)
                offset += 4
                name_string = _read_bytes(data, offset, name_length).decode(
                    'utf-16-le', errors='replace').rstrip('\x00')
                offset += name_length + _padding(name_length)
            else:
                raise MAPIException(f'Invalid named property kind {kind} for property {hex(attr_name)}')

        value_count: int = 1
        if is_multi or ptype.is_variable:
            value_count = _read_integer('<I', data, offset)
            offset += 4
            if value_count > len(data) - offset:
                raise MAPIException(f'Invalid value count {value_count} for property {hex(attr_name)}')

        values: list[bytes] = []
        for _ in range(value_count):
            length: int = ptype.byte_count
            if ptype.is_variable:
                length = _read_integer('<I', data, offset)
                offset += 4
            values.append(_read_bytes(data, offset, length))
            offset += length + _padding(length)

        attributes.append(MAPIAttribute(attr_type, attr_name, values, is_multi, guid, name_id, name_string))

    return attributes
