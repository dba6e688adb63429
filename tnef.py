#! /usr/bin/env python3
# -*- coding: UTF-8 -*-
#
# Copyright (c) 2014, Dionach Ltd. All rights reserved. See LICENSE file.
#
# tnef: extract the body and attachments from Microsoft TNEF (winmail.dat) files
# based on [MS-OXTNEF] Transport Neutral Encapsulation Format (TNEF) Data Algorithm
#

import logging
import os
from datetime import datetime
from types import MappingProxyType
from typing import Callable, Final, Iterator, Mapping, Optional

import tnefutils
from AttrIdEnum import AttrIdEnum
from exceptions import MAPIException, NoMarkerException, TNEFException
from mapi import MAPIAttribute, decode_mapi
from PropIdEnum import PropIdEnum

TNEF_SIGNATURE: Final[int] = 0x223E9F78
HEADER_SIZE: Final[int] = 6

LVL_MESSAGE: Final[int] = 0x01
LVL_ATTACHMENT: Final[int] = 0x02

OBJECT_HEADER_SIZE: Final[int] = 9  # level, name, type, length
OBJECT_TRAILER_SIZE: Final[int] = 2  # checksum, never verified
MIN_OBJ_SIZE: Final[int] = 12


###################################################################################################################################
#   ___  _     _           _
#  / _ \| |__ (_) ___  ___| |_ ___
# | | | | '_ \| |/ _ \/ __| __/ __|
# | |_| | |_) | |  __/ (__| |_\__ \
#  \___/|_.__// |\___|\___|\__|___/
#           |__/
###################################################################################################################################


class TNEFObject:
    """One self-describing attribute record of the TNEF stream"""

    level: int
    name: int
    type: int
    data: bytes
    length: int
    offset: int

    def __init__(self, level: int, name: int, type: int, data: bytes, length: int, offset: int = 0) -> None:

        self.level, self.name, self.type, self.data, self.length, self.offset = level, name, type, data, length, offset

    def __str__(self) -> str:
        return f"lvl {self.level} {hex(self.name)} type {hex(self.type)} ({self.length} bytes at {self.offset})"


def decode_tnef_object(data: bytes, offset: int = 0, warnings: Optional[list[str]] = None) -> TNEFObject:
    """Frames the record starting at offset. A declared length running past the end of the data is
    clamped to what is left, so the payload is truncated instead of read out of range"""

    remaining: int = len(data) - offset
    if remaining < OBJECT_HEADER_SIZE:
        raise TNEFException(f'TNEF object header truncated at offset {offset}')

    level: int = data[offset]
    name: int = tnefutils.unpack_integer('<H', data[offset + 1:offset + 3])
    # the type word is stored big-endian, unlike everything around it
    obj_type: int = tnefutils.unpack_integer('>H', data[offset + 3:offset + 5])
    declared: int = tnefutils.unpack_integer('<I', data[offset + 5:offset + 9])

    length: int = declared + OBJECT_HEADER_SIZE + OBJECT_TRAILER_SIZE
    if length > remaining:
        tnefutils.add_warning(
            warnings, f'TNEF object {hex(name)} at offset {offset} declares {declared} bytes, only {remaining} left')
        length = remaining

    payload: bytes = data[offset + OBJECT_HEADER_SIZE:offset + length - OBJECT_TRAILER_SIZE]
    return TNEFObject(level, name, obj_type, payload, length, offset)


def iter_tnef_objects(data: bytes, offset: int = HEADER_SIZE, warnings: Optional[list[str]] = None) -> Iterator[TNEFObject]:
    """Single forward pass over the records, stopping once no more than MIN_OBJ_SIZE bytes are left"""

    while offset + MIN_OBJ_SIZE < len(data):
        obj: TNEFObject = decode_tnef_object(data, offset, warnings)
        offset += obj.length
        yield obj


###################################################################################################################################
#     _   _   _             _                          _
#    / \ | |_| |_ __ _  ___| |__  _ __ ___   ___ _ __ | |_ ___
#   / _ \| __| __/ _` |/ __| '_ \| '_ ` _ \ / _ \ '_ \| __/ __|
#  / ___ \ |_| || (_| | (__| | | | | | | | |  __/ | | | |_\__ \
# /_/   \_\__|\__\__,_|\___|_| |_|_| |_| |_|\___|_| |_|\__|___/
#
###################################################################################################################################


class Attachment:
    """A file embedded in the TNEF container with its name and data extracted"""

    title: str
    data: bytes
    modification_date: bytes
    creation_date: bytes
    attributes: list[MAPIAttribute]

    def __init__(self) -> None:

        self.title = ''
        self.data = b''
        self.modification_date = b''
        self.creation_date = b''
        self.attributes = []

    @property
    def modified(self) -> Optional[datetime]:
        return tnefutils.dtr_to_datetime(self.modification_date)

    @property
    def created(self) -> Optional[datetime]:
        return tnefutils.dtr_to_datetime(self.creation_date)

    def get_attribute(self, prop_id: PropIdEnum) -> Optional[MAPIAttribute]:

        for attr in reversed(self.attributes):
            if attr.name == prop_id.value:
                return attr
        return None

    def add_attr(self, obj: TNEFObject, codepage: Optional[int] = None, warnings: Optional[list[str]] = None) -> None:

        if obj.name in ATTACHMENT_FIELDS:
            setattr(self, ATTACHMENT_FIELDS[obj.name], obj.data)
        elif obj.name == AttrIdEnum.attAttachTitle.value:
            self.title = tnefutils.decode_text(obj.data, codepage)
        elif obj.name == AttrIdEnum.attAttachment.value:
            try:
                attributes: list[MAPIAttribute] = decode_mapi(obj.data, 0, warnings)
            except MAPIException as ex:
                tnefutils.add_warning(warnings, f'Attachment properties at offset {obj.offset} ignored: {ex}')
                return
            self.attributes.extend(attributes)
            for attr in attributes:
                if attr.name in ATTACHMENT_TITLE_PROPS:
                    self.title = attr.text(codepage)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Attachment):
            return NotImplemented
        return vars(self) == vars(other)

    def __str__(self) -> str:
        return f"{self.title} ({tnefutils.size_friendly(len(self.data))})"


ATTACHMENT_FIELDS: Mapping[int, str] = MappingProxyType({
    AttrIdEnum.attAttachModifyDate.value: 'modification_date',
    AttrIdEnum.attAttachCreateDate.value: 'creation_date',
    AttrIdEnum.attAttachData.value: 'data',
})

ATTACHMENT_TITLE_PROPS: frozenset[int] = frozenset((
    PropIdEnum.PidTagAttachFilename.value,
    PropIdEnum.PidTagDisplayName.value,
))


###################################################################################################################################
#  __  __
# |  \/  | ___  ___ ___  __ _  __ _  ___
# | |\/| |/ _ \/ __/ __|/ _` |/ _` |/ _ \
# | |  | |  __/\__ \__ \ (_| | (_| |  __/
# |_|  |_|\___||___/___/\__,_|\__, |\___|
#                             |___/
###################################################################################################################################


def _raw(value_bytes: bytes, codepage: Optional[int]) -> bytes:
    return value_bytes


def _text(value_bytes: bytes, codepage: Optional[int]) -> str:
    return tnefutils.decode_text(value_bytes, codepage)


def _ulong(value_bytes: bytes, codepage: Optional[int]) -> Optional[int]:
    if len(value_bytes) < 4:
        return None
    return tnefutils.unpack_integer('<I', value_bytes[:4])


class TNEFData:
    """The body, attachments and properties extracted from one TNEF container"""

    key: int
    body: bytes
    body_html: bytes
    rtf_body: bytes
    subject: str
    message_class: str
    message_id: str
    date_sent: bytes
    date_received: bytes
    tnef_version: Optional[int]
    oem_codepage: Optional[int]
    attachments: list[Attachment]
    attributes: list[MAPIAttribute]

    def __init__(self, key: int = 0) -> None:

        self.key = key
        self.body = b''
        self.body_html = b''
        self.rtf_body = b''
        self.subject = ''
        self.message_class = ''
        self.message_id = ''
        self.date_sent = b''
        self.date_received = b''
        self.tnef_version = None
        self.oem_codepage = None
        self.attachments = []
        self.attributes = []

    def add_object(self, obj: TNEFObject, attachment: Optional[Attachment],
                   warnings: Optional[list[str]] = None) -> Optional[Attachment]:
        """Routes one record and returns the attachment that is current afterwards"""

        if obj.name == AttrIdEnum.attAttachRenddata.value:
            attachment = Attachment()
            self.attachments.append(attachment)
        elif obj.level == LVL_ATTACHMENT:
            if attachment is None:
                tnefutils.add_warning(
                    warnings, f'Attachment attribute {hex(obj.name)} at offset {obj.offset} before any attachment')
            else:
                attachment.add_attr(obj, self.oem_codepage, warnings)
        elif obj.level == LVL_MESSAGE:
            self.add_message_attr(obj, warnings)
        return attachment

    def add_message_attr(self, obj: TNEFObject, warnings: Optional[list[str]] = None) -> None:

        if obj.name in MESSAGE_FIELDS:
            field, convert = MESSAGE_FIELDS[obj.name]
            setattr(self, field, convert(obj.data, self.oem_codepage))
        elif obj.name == AttrIdEnum.attMsgProps.value:
            try:
                attributes: list[MAPIAttribute] = decode_mapi(obj.data, 0, warnings)
            except MAPIException as ex:
                tnefutils.add_warning(warnings, f'Message properties at offset {obj.offset} ignored: {ex}')
                return
            self.attributes.extend(attributes)
            for attr in attributes:
                if attr.name in MAPI_BODY_FIELDS:
                    setattr(self, MAPI_BODY_FIELDS[attr.name], attr.data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TNEFData):
            return NotImplemented
        return vars(self) == vars(other)


MESSAGE_FIELDS: Mapping[int, tuple[str, Callable[[bytes, Optional[int]], object]]] = MappingProxyType({
    AttrIdEnum.attBody.value: ('body', _raw),
    AttrIdEnum.attSubject.value: ('subject', _text),
    AttrIdEnum.attMessageClass.value: ('message_class', _text),
    AttrIdEnum.attMessageID.value: ('message_id', _text),
    AttrIdEnum.attDateSent.value: ('date_sent', _raw),
    AttrIdEnum.attDateRecd.value: ('date_received', _raw),
    AttrIdEnum.attTnefVersion.value: ('tnef_version', _ulong),
    AttrIdEnum.attOemCodepage.value: ('oem_codepage', _ulong),
})

MAPI_BODY_FIELDS: Mapping[int, str] = MappingProxyType({
    PropIdEnum.PidTagBody.value: 'body',
    PropIdEnum.PidTagBodyHtml.value: 'body_html',
    PropIdEnum.PidTagRtfCompressed.value: 'rtf_body',
})


###################################################################################################################################
#  ____                     _
# |  _ \  ___  ___ ___   __| | ___
# | | | |/ _ \/ __/ _ \ / _` |/ _ \
# | |_| |  __/ (_| (_) | (_| |  __/
# |____/ \___|\___\___/ \__,_|\___|
#
###################################################################################################################################


def decode(data: bytes, warnings: Optional[list[str]] = None) -> TNEFData:
    """Extracts the body, attachments and properties from TNEF data held in memory.

    Raises NoMarkerException if the data does not start with the TNEF signature. Every other problem
    is recovered from; pass a list as warnings to be told about them."""

    if len(data) < 4:
        raise NoMarkerException('Missing TNEF signature')
    signature: int = tnefutils.unpack_integer('<I', data[:4])
    if signature != TNEF_SIGNATURE:
        raise NoMarkerException()
    if len(data) < HEADER_SIZE:
        raise NoMarkerException('TNEF header truncated')

    tnef: TNEFData = TNEFData(key=tnefutils.unpack_integer('<H', data[4:HEADER_SIZE]))

    attachment: Optional[Attachment] = None
    for obj in iter_tnef_objects(data, HEADER_SIZE, warnings):
        attachment = tnef.add_object(obj, attachment, warnings)

    logging.debug(f'Decoded TNEF data: {len(tnef.attachments)} attachments, {len(tnef.attributes)} properties')
    return tnef


def decode_file(path: str | os.PathLike, warnings: Optional[list[str]] = None) -> TNEFData:
    """Reads the whole file into memory before decoding it; I/O errors are not caught"""

    with open(path, 'rb') as f:
        data: bytes = f.read()

    return decode(data, warnings)
