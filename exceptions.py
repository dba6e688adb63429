class TNEFException(Exception):
    """Base exception for TNEF decoding errors"""


class NoMarkerException(TNEFException):
    """The data does not start with the TNEF signature, so it is not a TNEF
    container we recognize (e.g. it only has the .dat extension or a wrong MIME type)"""

    def __init__(self, message: str = 'Wrong TNEF signature') -> None:
        super().__init__(message)


class MAPIException(TNEFException):
    """Malformed or truncated MAPI property list"""
