from enum import Enum


class PropIdEnum(Enum):

    PidTagBody = 0x1000
    PidTagRtfCompressed = 0x1009
    PidTagBodyHtml = 0x1013
    PidTagDisplayName = 0x3001
    PidTagAttachFilename = 0x3704
    PidTagAttachMimeTag = 0x370E
