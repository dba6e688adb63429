from enum import Enum


class AttrIdEnum(Enum):
    """TNEF attribute ids (the low 16 bits of the attribute tag) from [MS-OXTNEF]"""

    attOwner = 0x0000
    attSentFor = 0x0001
    attDelegate = 0x0002
    attDateStart = 0x0006
    attDateEnd = 0x0007
    attAidOwner = 0x0008
    attRequestRes = 0x0009
    attFrom = 0x8000
    attSubject = 0x8004
    attDateSent = 0x8005
    attDateRecd = 0x8006
    attMessageStatus = 0x8007
    attMessageClass = 0x8008
    attMessageID = 0x8009
    attParentID = 0x800A
    attConversationID = 0x800B
    attBody = 0x800C
    attPriority = 0x800D
    attAttachData = 0x800F
    attAttachTitle = 0x8010
    attAttachMetaFile = 0x8011
    attAttachCreateDate = 0x8012
    attAttachModifyDate = 0x8013
    attDateModified = 0x8020
    attAttachTransportFilename = 0x9001
    attAttachRenddata = 0x9002
    attMsgProps = 0x9003
    attRecipTable = 0x9004
    attAttachment = 0x9005
    attTnefVersion = 0x9006
    attOemCodepage = 0x9007
    attOriginalMessageClass = 0x9008
