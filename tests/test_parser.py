"""Tests for reply and notification parsing."""

import pytest

from serverquery_mcp.errors import InvalidParameterError, ProtocolError, ReadOnlyError
from serverquery_mcp.protocol.parser import (
    decode_value,
    is_error_line,
    is_event_line,
    parse_error,
    parse_event,
    parse_line,
    parse_record,
    parse_reply,
)


def test_decode_value_types():
    assert decode_value("42") == 42
    assert decode_value("-1") == -1
    assert decode_value("1.5") == "1.5"
    assert decode_value("My\\sServer") == "My Server"
    assert decode_value(None) is None


def test_parse_record_fields():
    record = parse_record("virtualserver_id=1 virtualserver_name=TeamSpeak\\s]I[\\sServer")
    assert record == {"virtualserver_id": 1, "virtualserver_name": "TeamSpeak ]I[ Server"}


def test_parse_record_lowercases_and_last_wins():
    record = parse_record("CID=1 cid=2")
    assert record == {"cid": 2}


def test_parse_record_bare_cell():
    assert parse_record("-away clid=3") == {"-away": None, "clid": 3}


def test_parse_record_keeps_equals_in_value():
    assert parse_record("token=abc=def") == {"token": "abc=def"}


def test_parse_line_multiple_records():
    records = parse_line("clid=1 client_nickname=a|clid=2 client_nickname=b")
    assert records == [
        {"clid": 1, "client_nickname": "a"},
        {"clid": 2, "client_nickname": "b"},
    ]


def test_line_markers():
    assert is_error_line("error id=0 msg=ok")
    assert not is_error_line("errors=1")
    assert is_event_line("notifycliententerview cfid=0")
    assert not is_event_line("clid=1 notify=1")


def test_parse_error_ok():
    error = parse_error("error id=0 msg=ok")
    assert error.code == 0
    assert error.message == "ok"
    assert error.ok


def test_parse_error_details():
    error = parse_error("error id=2568 msg=insufficient\\sclient\\spermissions failed_permid=4")
    assert error.code == 2568
    assert error.message == "insufficient client permissions"
    assert error.failed_permid == 4
    assert not error.ok


def test_parse_error_rejects_missing_id():
    with pytest.raises(ProtocolError):
        parse_error("error msg=ok")


def test_parse_reply_payload():
    reply = parse_reply(
        ["version=3.13.7 build=1655727713 platform=Linux", "error id=0 msg=ok"],
        "version",
    )
    assert len(reply) == 1
    assert reply.ok
    assert reply.to_list() == {"version": "3.13.7", "build": 1655727713, "platform": "Linux"}


def test_parse_reply_no_payload():
    reply = parse_reply(["error id=0 msg=ok"], "use sid=1")
    assert len(reply) == 0
    assert reply.to_list() == {}


def test_parse_reply_requires_error_line():
    with pytest.raises(ProtocolError):
        parse_reply(["clid=1"], "clientlist")


def test_parse_reply_rejects_trailing_data():
    with pytest.raises(ProtocolError):
        parse_reply(["error id=0 msg=ok", "clid=1"], "clientlist")


def test_reply_to_assoc():
    reply = parse_reply(
        ["cid=1 channel_name=Lobby|cid=4 channel_name=AFK", "error id=0 msg=ok"],
        "channellist",
    )
    assoc = reply.to_assoc("cid")
    assert set(assoc) == {1, 4}
    assert assoc[4]["channel_name"] == "AFK"


def test_parse_event():
    event = parse_event("notifycliententerview cfid=0 ctid=1 clid=5 client_nickname=Some\\sUser")
    assert event.type == "cliententerview"
    assert event["clid"] == 5
    assert event["client_nickname"] == "Some User"
    assert "ctid" in event
    assert event.message == "cfid=0 ctid=1 clid=5 client_nickname=Some\\sUser"


def test_parse_event_requires_prefix():
    with pytest.raises(ProtocolError):
        parse_event("clid=5")


def test_parse_event_requires_payload():
    with pytest.raises(ProtocolError):
        parse_event("notifyclientleftview")
    with pytest.raises(ProtocolError):
        parse_event("notifyclientleftview ")


def test_event_is_read_only():
    event = parse_event("notifytextmessage targetmode=3 msg=hi")
    with pytest.raises(ReadOnlyError):
        event["msg"] = "changed"
    with pytest.raises(ReadOnlyError):
        del event["msg"]
    with pytest.raises(ReadOnlyError):
        event.extra = 1
    assert event["msg"] == "hi"


def test_event_missing_field():
    event = parse_event("notifytextmessage targetmode=3 msg=hi")
    with pytest.raises(InvalidParameterError) as excinfo:
        event["invokerid"]
    assert excinfo.value.code == 0x602
    assert event.get("invokerid") is None
    with pytest.raises(KeyError):
        event["invokerid"]


def test_parse_event_keeps_batched_records():
    """A notification batching several records with | keeps all of them."""
    event = parse_event("notifyclientmoved ctid=2 reasonid=0 clid=5|clid=6")

    assert event.type == "clientmoved"
    assert event.data == {"ctid": 2, "reasonid": 0, "clid": 5}
    assert event.records == (
        {"ctid": 2, "reasonid": 0, "clid": 5},
        {"clid": 6},
    )
    assert event["clid"] == 5


def test_event_records_are_copies():
    event = parse_event("notifyclientmoved ctid=2 clid=5|clid=6")
    event.records[1]["clid"] = 99
    assert event.records[1] == {"clid": 6}


def test_decode_value_non_ascii_digits_stay_text():
    assert decode_value("٣") == "٣"
