import codecs
import datetime as dt
import logging
import os
import re
import struct
import unicodedata
from ctypes import ArgumentError
from typing import Optional

DEFAULT_CODEC: str = 'utf-8'


def unicode_to_ascii(unicode_str: str) -> str:
    return unicodedata.normalize('NFKD', unicode_str).encode('ascii', 'ignore').decode("ascii")


def bytes_to_time(datetime_bytes: bytes) -> Optional[dt.datetime]:
    """FILETIME: 100ns intervals since 1601-01-01, None when out of datetime's range"""
    try:
        return dt.datetime(year=1601, month=1, day=1) + dt.timedelta(microseconds=unpack_integer('<q', datetime_bytes) / 10.0)
    except (OverflowError, ValueError):
        return None


def dtr_to_datetime(dtr_bytes: bytes) -> Optional[dt.datetime]:
    """TNEF DTR structure: year, month, day, hour, minute, second, day of week as uint16"""

    if len(dtr_bytes) < 12:
        return None
    year, month, day, hour, minute, second = struct.unpack('<6H', dtr_bytes[:12])
    try:
        return dt.datetime(year, month, day, hour, minute, second)
    except ValueError:
        return None


def to_zeropaddedhex(value, fixed_length: int) -> str:
    return f"{value:0{fixed_length}x}".upper()


def get_ext(file_name: str) -> str:

    return os.path.splitext(file_name)[1].lower()


def get_safe_filename(filename: str) -> str:

    return re.sub(r'[/\\;,><&\*:%=\+@!#\^\(\)|\?"]', '', filename)


def size_friendly(size: int) -> str:
    if size < 1024:
        return f"{size}B"
    if size < 1024 * 1024:
        return f"{(size / 1024):.1f}KB"
    if size < 1024 * 1024 * 1024:
        return f"{(size / (1024 * 1024)):.1f}MB"
    return f"{(size / (1024 * 1024 * 1024)):.1f}GB"


def unpack_integer(format: str, buffer: bytes) -> int:
    if format[-1:] in ['b', 'B', 'h', 'H', 'i', 'I', 'l', 'L', 'q', 'Q']:
        return int(struct.unpack(format, buffer)[0])
    else:
        raise ArgumentError(format, buffer)


def unpack_float(format: str, buffer: bytes) -> float:
    if format[-1:] in ['e', 'f', 'd']:
        return float(struct.unpack(format, buffer)[0])
    else:
        raise ArgumentError(format, buffer)


def strip_nul(value_bytes: bytes) -> bytes:
    """Removes every NUL byte, not only the terminating one"""
    return value_bytes.replace(b'\x00', b'')


def codec_for_codepage(codepage: Optional[int]) -> str:

    if not codepage:
        return DEFAULT_CODEC
    if codepage == 65001:
        return 'utf-8'
    try:
        return codecs.lookup(f'cp{codepage}').name
    except LookupError:
        return DEFAULT_CODEC


def decode_text(value_bytes: bytes, codepage: Optional[int] = None) -> str:

    return strip_nul(value_bytes).decode(codec_for_codepage(codepage), errors='replace')


def add_warning(warnings: Optional[list[str]], message: str) -> None:
    """Recoverable decoding problems are logged, and reported to the caller only if it asked for them"""

    logging.debug(message)
    if warnings is not None:
        warnings.append(message)
