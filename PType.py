from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Mapping, Optional, Union

import tnefutils
from PTypeEnum import PTypeEnum

_ValueType = Optional[Union[int, float, datetime, bool, str, bytes]]


class PType:
    """Size and decoding rules of a MAPI property type as it is stored in a TNEF property list"""

    ptype: Optional[PTypeEnum]
    byte_count: int
    is_variable: bool

    def __init__(self, ptype: Optional[PTypeEnum], byte_count: int, is_variable: bool) -> None:

        self.ptype, self.byte_count, self.is_variable = ptype, byte_count, is_variable

    def value(self, value_bytes: bytes) -> _ValueType:
        """Decodes one raw value; types that are not enumerated here come back as the raw bytes"""

        if self.ptype == PTypeEnum.PtypInteger16:
            return tnefutils.unpack_integer('<h', value_bytes[:2])
        if self.ptype == PTypeEnum.PtypInteger32:
            return tnefutils.unpack_integer('<i', value_bytes[:4])
        if self.ptype == PTypeEnum.PtypFloating32:
            return tnefutils.unpack_float('<f', value_bytes[:4])
        if self.ptype == PTypeEnum.PtypFloating64:
            return tnefutils.unpack_float('<d', value_bytes[:8])
        if self.ptype == PTypeEnum.PtypFloatingTime:
            return self.get_floating_time(value_bytes[:8])
        if self.ptype == PTypeEnum.PtypErrorCode:
            return tnefutils.unpack_integer('<I', value_bytes[:4])
        if self.ptype == PTypeEnum.PtypBoolean:
            return tnefutils.unpack_integer('<H', value_bytes[:2]) != 0
        if self.ptype == PTypeEnum.PtypInteger64:
            return tnefutils.unpack_integer('<q', value_bytes[:8])
        if self.ptype == PTypeEnum.PtypString:
            return value_bytes.decode('utf-16-le', errors='replace').rstrip('\x00')
        if self.ptype == PTypeEnum.PtypString8:
            if value_bytes[-1:] == b'\x00':
                return value_bytes[:-1]
            else:
                return value_bytes
        if self.ptype == PTypeEnum.PtypTime:
            return tnefutils.bytes_to_time(value_bytes[:8])
        if self.ptype == PTypeEnum.PtypNull:
            return None
        # PtypCurrency, PtypGuid, PtypBinary, PtypObject and unknown types stay opaque
        return value_bytes

    def get_floating_time(self, time_bytes: bytes) -> Optional[datetime]:

        try:
            return datetime(year=1899, month=12, day=30) + timedelta(days=tnefutils.unpack_float('<d', time_bytes))
        except (OverflowError, ValueError):
            # NaN, infinities and days beyond year 9999
            return None

    def __repr__(self) -> str:
        name: str = self.ptype.name if self.ptype else 'Unknown'
        return f'PType({name}, {self.byte_count}, variable={self.is_variable})'


# Fixed sizes follow [MS-OXTNEF] 2.1.3.4; every value is padded to 4 bytes on the wire.
PTYPE_MAPPING: Mapping[int, PType] = MappingProxyType({
    PTypeEnum.PtypInteger16.value: PType(PTypeEnum.PtypInteger16, 2, False),
    PTypeEnum.PtypInteger32.value: PType(PTypeEnum.PtypInteger32, 4, False),
    PTypeEnum.PtypFloating32.value: PType(PTypeEnum.PtypFloating32, 4, False),
    PTypeEnum.PtypFloating64.value: PType(PTypeEnum.PtypFloating64, 8, False),
    PTypeEnum.PtypCurrency.value: PType(PTypeEnum.PtypCurrency, 8, False),
    PTypeEnum.PtypFloatingTime.value: PType(PTypeEnum.PtypFloatingTime, 8, False),
    PTypeEnum.PtypErrorCode.value: PType(PTypeEnum.PtypErrorCode, 4, False),
    PTypeEnum.PtypBoolean.value: PType(PTypeEnum.PtypBoolean, 2, False),
    PTypeEnum.PtypInteger64.value: PType(PTypeEnum.PtypInteger64, 8, False),
    PTypeEnum.PtypTime.value: PType(PTypeEnum.PtypTime, 8, False),
    PTypeEnum.PtypGuid.value: PType(PTypeEnum.PtypGuid, 16, False),
    PTypeEnum.PtypString8.value: PType(PTypeEnum.PtypString8, 0, True),
    PTypeEnum.PtypString.value: PType(PTypeEnum.PtypString, 0, True),
    PTypeEnum.PtypBinary.value: PType(PTypeEnum.PtypBinary, 0, True),
    PTypeEnum.PtypObject.value: PType(PTypeEnum.PtypObject, 0, True),
})


def get_ptype(type_id: int) -> PType:
    """Types without a known fixed size are read as length-prefixed values"""

    if type_id in PTYPE_MAPPING:
        return PTYPE_MAPPING[type_id]
    try:
        ptype: Optional[PTypeEnum] = PTypeEnum(type_id)
    except ValueError:
        ptype = None
    return PType(ptype, 0, True)
