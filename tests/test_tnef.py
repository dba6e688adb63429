import struct

import pytest

import tnef
from AttrIdEnum import AttrIdEnum
from builders import dtr, make_object, make_tnef, mapi_list, mapi_variable
from exceptions import NoMarkerException, TNEFException
from PropIdEnum import PropIdEnum
from PTypeEnum import PTypeEnum

LVL_MESSAGE = 1
LVL_ATTACHMENT = 2

BODY = AttrIdEnum.attBody.value
RENDDATA = AttrIdEnum.attAttachRenddata.value
TITLE = AttrIdEnum.attAttachTitle.value
DATA = AttrIdEnum.attAttachData.value
ATTACHMENT = AttrIdEnum.attAttachment.value
STRING8 = PTypeEnum.PtypString8.value
UNICODE = PTypeEnum.PtypString.value
BINARY = PTypeEnum.PtypBinary.value

REND_PAYLOAD = b'\xff\xff\xff\xff' + b'\x00' * 10


def boundary() -> bytes:
    return make_object(LVL_ATTACHMENT, RENDDATA, REND_PAYLOAD)


def test_hello_scenario():
    data = make_tnef(
        make_object(LVL_MESSAGE, BODY, b'Hello'),
        boundary(),
        make_object(LVL_ATTACHMENT, TITLE, b'a.txt\x00'),
        make_object(LVL_ATTACHMENT, DATA, b'\x01\x02'),
        key=0x0000)

    result = tnef.decode(data)

    assert result.body == b'Hello'
    assert result.key == 0
    assert len(result.attachments) == 1
    assert result.attachments[0].title == 'a.txt'
    assert result.attachments[0].data == b'\x01\x02'


def test_key_is_read_little_endian():
    result = tnef.decode(make_tnef(key=0x1234))
    assert result.key == 0x1234


@pytest.mark.parametrize('data', [
    b'',
    b'\x78\x9f',
    b'\x00\x00\x00\x00\x00\x00' + make_object(LVL_MESSAGE, BODY, b'Hello'),
    b'\x9f\x3e\x22\x78\x00\x00',
])
def test_wrong_signature(data):
    with pytest.raises(NoMarkerException):
        tnef.decode(data)


@pytest.mark.parametrize('data', [b'\x78\x9f\x3e\x22', b'\x78\x9f\x3e\x22\x01'])
def test_signature_without_key(data):
    with pytest.raises(NoMarkerException):
        tnef.decode(data)


def test_no_marker_is_a_tnef_exception():
    assert issubclass(NoMarkerException, TNEFException)
    with pytest.raises(TNEFException, match='Wrong TNEF signature'):
        tnef.decode(b'not a tnef file')


def test_header_only():
    result = tnef.decode(make_tnef())
    assert result.attachments == []
    assert result.body == b''


def test_object_fields():
    data = struct.pack('<BH', 2, 0x8010) + b'\x00\x01' + struct.pack('<I', 3) + b'abc' + b'\x00\x00'

    obj = tnef.decode_tnef_object(data)

    assert obj.level == 2
    assert obj.name == 0x8010
    assert obj.type == 0x0001  # big-endian
    assert obj.data == b'abc'
    assert obj.length == 3 + 11
    assert obj.offset == 0


def test_object_at_offset():
    data = b'junk' + make_object(LVL_MESSAGE, BODY, b'xyz')

    obj = tnef.decode_tnef_object(data, 4)

    assert obj.name == BODY
    assert obj.data == b'xyz'
    assert obj.offset == 4


def test_object_length_clamped():
    record = make_object(LVL_ATTACHMENT, DATA, b'A' * 100)[:40]
    warnings: list[str] = []

    obj = tnef.decode_tnef_object(record, 0, warnings)

    assert obj.length == 40
    assert obj.data == b'A' * (40 - 9 - 2)
    assert len(warnings) == 1


def test_object_huge_declared_length():
    record = struct.pack('<BH', 2, DATA) + b'\x00\x06' + struct.pack('<I', 0xFFFFFFFF) + b'B' * 20

    obj = tnef.decode_tnef_object(record)

    assert obj.length == len(record)
    assert obj.data == b'B' * 18


def test_object_header_truncated():
    with pytest.raises(TNEFException):
        tnef.decode_tnef_object(b'\x02\x10\x80\x00')


def test_truncated_trailing_record():
    full = make_tnef(boundary(), make_object(LVL_ATTACHMENT, DATA, b'0123456789' * 10))
    truncated = full[:-50]

    result = tnef.decode(truncated)

    assert len(result.attachments) == 1
    assert result.attachments[0].data == (b'0123456789' * 10)[:len(truncated) - 6 - len(boundary()) - 11]


@pytest.mark.parametrize('cut', range(1, 60))
def test_truncation_never_raises(cut):
    full = make_tnef(
        make_object(LVL_MESSAGE, BODY, b'Hello'),
        boundary(),
        make_object(LVL_ATTACHMENT, TITLE, b'a.txt\x00'),
        make_object(LVL_ATTACHMENT, DATA, b'\x01\x02' * 8))

    result = tnef.decode(full[:-cut])

    assert len(result.attachments) <= 1


def test_records_are_contiguous():
    data = make_tnef(
        make_object(LVL_MESSAGE, BODY, b'Hello'),
        boundary(),
        make_object(LVL_ATTACHMENT, TITLE, b'a.txt\x00'),
        make_object(LVL_ATTACHMENT, DATA, b'\x01\x02'))

    objects = list(tnef.iter_tnef_objects(data))

    assert [obj.name for obj in objects] == [BODY, RENDDATA, TITLE, DATA]
    assert objects[0].offset == 6
    for previous, current in zip(objects, objects[1:]):
        assert current.offset == previous.offset + previous.length
    assert 6 + sum(obj.length for obj in objects) == len(data)


def test_strict_minimum_size_boundary():
    # 13 bytes left: a record with a 2-byte payload is framed
    assert len(list(tnef.iter_tnef_objects(make_tnef(make_object(LVL_ATTACHMENT, DATA, b'\x01\x02'))))) == 1
    # 12 bytes left: a record with a 1-byte payload is not
    assert list(tnef.iter_tnef_objects(make_tnef(make_object(LVL_ATTACHMENT, DATA, b'\x01')))) == []


def test_trailing_record_at_boundary_is_ignored():
    data = make_tnef(boundary(), make_object(LVL_ATTACHMENT, DATA, b'\x01'))

    result = tnef.decode(data)

    assert len(result.attachments) == 1
    assert result.attachments[0].data == b''


def test_unknown_records_are_skipped():
    data = make_tnef(
        make_object(LVL_MESSAGE, 0x1234, b'whatever'),
        make_object(7, BODY, b'not a message level'),
        make_object(LVL_MESSAGE, BODY, b'Hello'))

    result = tnef.decode(data)

    assert result.body == b'Hello'


def test_attachment_count_and_order():
    data = make_tnef(
        boundary(),
        make_object(LVL_ATTACHMENT, TITLE, b'first\x00'),
        boundary(),
        boundary(),
        make_object(LVL_ATTACHMENT, TITLE, b'third\x00'),
        boundary())

    result = tnef.decode(data)

    assert [attachment.title for attachment in result.attachments] == ['first', '', 'third', '']


def test_boundary_marker_at_message_level_opens_attachment():
    data = make_tnef(make_object(LVL_MESSAGE, RENDDATA, REND_PAYLOAD),
                     make_object(LVL_ATTACHMENT, DATA, b'xyz'))

    result = tnef.decode(data)

    assert len(result.attachments) == 1
    assert result.attachments[0].data == b'xyz'


def test_attachment_attribute_before_attachment():
    data = make_tnef(make_object(LVL_ATTACHMENT, TITLE, b'orphan\x00'),
                     boundary(),
                     make_object(LVL_ATTACHMENT, DATA, b'xyz'))
    warnings: list[str] = []

    result = tnef.decode(data, warnings)

    assert len(result.attachments) == 1
    assert result.attachments[0].title == ''
    assert result.attachments[0].data == b'xyz'
    assert any('before any attachment' in warning for warning in warnings)


def test_title_nul_bytes_stripped():
    data = make_tnef(boundary(), make_object(LVL_ATTACHMENT, TITLE, b'\x00re\x00port\x00.pdf\x00\x00'))

    result = tnef.decode(data)

    assert result.attachments[0].title == 'report.pdf'


@pytest.mark.parametrize('payload', [b'\x00', b'\x00\x00\x00', b'a\x00b\x00c', b'\xff\x00\xfe', bytes(range(256))])
def test_title_never_contains_nul(payload):
    data = make_tnef(boundary(), make_object(LVL_ATTACHMENT, TITLE, payload))

    result = tnef.decode(data)

    assert '\x00' not in result.attachments[0].title


def test_attachment_dates_kept_raw():
    modified = dtr(2023, 4, 5, 6, 7, 8, 3)
    created = dtr(2022, 1, 2, 3, 4, 5, 0)
    data = make_tnef(boundary(),
                     make_object(LVL_ATTACHMENT, AttrIdEnum.attAttachModifyDate.value, modified, 0x0003),
                     make_object(LVL_ATTACHMENT, AttrIdEnum.attAttachCreateDate.value, created, 0x0003))

    attachment = tnef.decode(data).attachments[0]

    assert attachment.modification_date == modified
    assert attachment.creation_date == created
    assert attachment.modified.year == 2023
    assert attachment.modified.second == 8
    assert attachment.created.month == 1


def test_attachment_dates_invalid():
    data = make_tnef(boundary(),
                     make_object(LVL_ATTACHMENT, AttrIdEnum.attAttachModifyDate.value, b'\xff' * 14))

    attachment = tnef.decode(data).attachments[0]

    assert attachment.modification_date == b'\xff' * 14
    assert attachment.modified is None
    assert attachment.created is None


def test_title_from_attachment_properties():
    props = mapi_list(
        mapi_variable(STRING8, PropIdEnum.PidTagDisplayName.value, b'Display name\x00'),
        mapi_variable(STRING8, PropIdEnum.PidTagAttachFilename.value, b'REPORT~1.PDF\x00'))
    data = make_tnef(boundary(),
                     make_object(LVL_ATTACHMENT, TITLE, b'report.pdf\x00'),
                     make_object(LVL_ATTACHMENT, ATTACHMENT, props))

    attachment = tnef.decode(data).attachments[0]

    assert attachment.title == 'REPORT~1.PDF'
    assert len(attachment.attributes) == 2


def test_title_from_short_property_list():
    props = struct.pack('<I', 3) + mapi_variable(STRING8, PropIdEnum.PidTagAttachFilename.value, b'short.txt\x00')
    warnings: list[str] = []
    data = make_tnef(boundary(),
                     make_object(LVL_ATTACHMENT, TITLE, b'a.txt\x00'),
                     make_object(LVL_ATTACHMENT, ATTACHMENT, props))

    attachment = tnef.decode(data, warnings).attachments[0]

    assert attachment.title == 'short.txt'
    assert len(attachment.attributes) == 1
    assert any('ended after 1 of 3' in warning for warning in warnings)


def test_title_from_unicode_property():
    props = mapi_list(mapi_variable(UNICODE, PropIdEnum.PidTagAttachFilename.value, 'résumé.doc\x00'.encode('utf-16-le')))
    data = make_tnef(boundary(), make_object(LVL_ATTACHMENT, ATTACHMENT, props))

    attachment = tnef.decode(data).attachments[0]

    assert attachment.title == 'résumé.doc'


def test_bad_attachment_properties_keep_title():
    props = mapi_list(mapi_variable(STRING8, PropIdEnum.PidTagAttachFilename.value, b'other.txt\x00'))[:-6]
    warnings: list[str] = []
    data = make_tnef(boundary(),
                     make_object(LVL_ATTACHMENT, TITLE, b'a.txt\x00'),
                     make_object(LVL_ATTACHMENT, ATTACHMENT, props),
                     make_object(LVL_ATTACHMENT, DATA, b'payload'))

    result = tnef.decode(data, warnings)

    assert result.attachments[0].title == 'a.txt'
    assert result.attachments[0].data == b'payload'
    assert result.attachments[0].attributes == []
    assert any('Attachment properties' in warning for warning in warnings)


def test_attachment_mime_tag_lookup():
    props = mapi_list(mapi_variable(STRING8, PropIdEnum.PidTagAttachMimeTag.value, b'application/pdf\x00'))
    data = make_tnef(boundary(), make_object(LVL_ATTACHMENT, ATTACHMENT, props))

    attachment = tnef.decode(data).attachments[0]

    assert attachment.get_attribute(PropIdEnum.PidTagAttachMimeTag).text() == 'application/pdf'
    assert attachment.get_attribute(PropIdEnum.PidTagAttachFilename) is None


@pytest.mark.parametrize('attr_id, field, payload, expected', [
    (AttrIdEnum.attBody, 'body', b'Body text\r\n', b'Body text\r\n'),
    (AttrIdEnum.attSubject, 'subject', b'Quarterly report\x00', 'Quarterly report'),
    (AttrIdEnum.attMessageClass, 'message_class', b'IPM.Microsoft Mail.Note\x00', 'IPM.Microsoft Mail.Note'),
    (AttrIdEnum.attMessageID, 'message_id', b'0000000001\x00', '0000000001'),
    (AttrIdEnum.attDateSent, 'date_sent', dtr(2020, 2, 3), dtr(2020, 2, 3)),
    (AttrIdEnum.attDateRecd, 'date_received', dtr(2020, 2, 4), dtr(2020, 2, 4)),
    (AttrIdEnum.attTnefVersion, 'tnef_version', b'\x00\x00\x01\x00', 0x00010000),
    (AttrIdEnum.attOemCodepage, 'oem_codepage', b'\xe4\x04\x00\x00\x00\x00\x00\x00', 1252),
])
def test_message_fields(attr_id, field, payload, expected):
    result = tnef.decode(make_tnef(make_object(LVL_MESSAGE, attr_id.value, payload)))

    assert getattr(result, field) == expected


def test_message_attribute_at_attachment_level_not_applied():
    data = make_tnef(boundary(), make_object(LVL_ATTACHMENT, BODY, b'Hello'))

    result = tnef.decode(data)

    assert result.body == b''


def test_codepage_used_for_titles():
    data = make_tnef(make_object(LVL_MESSAGE, AttrIdEnum.attOemCodepage.value, struct.pack('<II', 1252, 0)),
                     boundary(),
                     make_object(LVL_ATTACHMENT, TITLE, b'caf\xe9.txt\x00'))

    result = tnef.decode(data)

    assert result.attachments[0].title == 'café.txt'


def test_message_properties():
    props = mapi_list(
        mapi_variable(STRING8, PropIdEnum.PidTagBody.value, b'Plain body\x00'),
        mapi_variable(BINARY, PropIdEnum.PidTagBodyHtml.value, b'<p>Html body</p>'),
        mapi_variable(BINARY, PropIdEnum.PidTagRtfCompressed.value, b'LZFu-compressed'))
    data = make_tnef(make_object(LVL_MESSAGE, BODY, b'Legacy body'),
                     make_object(LVL_MESSAGE, AttrIdEnum.attMsgProps.value, props))

    result = tnef.decode(data)

    assert result.body == b'Plain body\x00'
    assert result.body_html == b'<p>Html body</p>'
    assert result.rtf_body == b'LZFu-compressed'
    assert [attr.name for attr in result.attributes] == [0x1000, 0x1013, 0x1009]


def test_bad_message_properties_are_ignored():
    warnings: list[str] = []
    data = make_tnef(make_object(LVL_MESSAGE, AttrIdEnum.attMsgProps.value, b'\x05\x00\x00\x00\x1e\x00'),
                     make_object(LVL_MESSAGE, BODY, b'Hello'))

    result = tnef.decode(data, warnings)

    assert result.attributes == []
    assert result.body == b'Hello'
    assert any('Message properties' in warning for warning in warnings)


def test_warnings_are_off_by_default():
    data = make_tnef(make_object(LVL_ATTACHMENT, TITLE, b'orphan\x00'))
    assert tnef.decode(data) == tnef.decode(data, [])


def test_decode_twice_gives_same_result():
    props = mapi_list(mapi_variable(STRING8, PropIdEnum.PidTagAttachFilename.value, b'x.bin\x00'))
    data = make_tnef(
        make_object(LVL_MESSAGE, BODY, b'Hello'),
        boundary(),
        make_object(LVL_ATTACHMENT, ATTACHMENT, props),
        make_object(LVL_ATTACHMENT, DATA, b'\x00\x01\x02'),
        boundary())

    first = tnef.decode(data)
    second = tnef.decode(data)

    assert first == second
    assert first is not second
    assert first.attachments[0] is not second.attachments[0]


def test_step_function_threads_current_attachment():
    result = tnef.TNEFData()

    current = result.add_object(tnef.TNEFObject(LVL_ATTACHMENT, RENDDATA, 0, b'', 11), None)
    assert current is result.attachments[0]

    same = result.add_object(tnef.TNEFObject(LVL_ATTACHMENT, DATA, 6, b'abc', 14), current)
    assert same is current
    assert current.data == b'abc'


def test_decode_file(tmp_path):
    path = tmp_path / 'winmail.dat'
    path.write_bytes(make_tnef(make_object(LVL_MESSAGE, BODY, b'Hello')))

    assert tnef.decode_file(str(path)).body == b'Hello'
    assert tnef.decode_file(path).body == b'Hello'


def test_decode_file_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        tnef.decode_file(tmp_path / 'missing.dat')
