from enum import Enum

# A multi-valued property has its base type or'ed with this flag
MV_FLAG: int = 0x1000


class PTypeEnum(Enum):

    PtypUnspecified = 0x0000
    PtypNull = 0x0001
    PtypInteger16 = 0x0002
    PtypInteger32 = 0x0003
    PtypFloating32 = 0x0004
    PtypFloating64 = 0x0005
    PtypCurrency = 0x0006
    PtypFloatingTime = 0x0007
    PtypErrorCode = 0x000A
    PtypBoolean = 0x000B
    PtypObject = 0x000D
    PtypInteger64 = 0x0014
    PtypString8 = 0x001E
    PtypString = 0x001F
    PtypTime = 0x0040
    PtypGuid = 0x0048
    PtypBinary = 0x0102
