"""Tests for parsing test events."""

from datetime import UTC, datetime, timedelta

import pytest

from testjson.errors import MalformedEventError
from testjson.models.event import TestEvent, parse_event


def test_parse_event() -> None:
    """Parses every field of an output event and keeps the raw line."""
    raw = (
        b'{"Time":"2018-03-22T22:33:35.168308334Z","Action":"output",'
        b'"Package":"example.com/good","Test": "TestOk","Output":"PASS\\n"}'
    )

    event = parse_event(raw)

    assert event.time == datetime(2018, 3, 22, 22, 33, 35, 168308, tzinfo=UTC)
    assert event.action == "output"
    assert event.package == "example.com/good"
    assert event.test == "TestOk"
    assert event.output == "PASS\n"
    assert event.elapsed is None
    assert event.raw == raw


def test_parse_event_defaults_missing_fields() -> None:
    """Missing optional fields default to empty values."""
    event = parse_event(b'{"Action":"fail","Package":"gotest.tools/testing"}')

    assert event.time is None
    assert event.test == ""
    assert event.output == ""
    assert event.elapsed is None
    assert event.is_package_event
    assert event.is_terminal


def test_parse_event_converts_elapsed_seconds() -> None:
    """Fractional elapsed seconds are converted to a timedelta."""
    event = parse_event(
        b'{"Action":"pass","Package":"p","Test":"TestA","Elapsed":0.012}'
    )

    assert event.elapsed == timedelta(milliseconds=12)
    assert not event.is_package_event


def test_parse_event_keeps_sub_millisecond_elapsed() -> None:
    """Elapsed values keep microsecond precision."""
    event = parse_event(b'{"Action":"pass","Package":"p","Elapsed":0.0005}')

    assert event.elapsed == timedelta(microseconds=500)


def test_parse_event_build_fields() -> None:
    """Build events carry the import path and no package."""
    event = parse_event(
        b'{"ImportPath":"example.com/broken [example.com/broken.test]",'
        b'"Action":"build-output","Output":"# example.com/broken\\n"}'
    )

    assert event.action == "build-output"
    assert event.package == ""
    assert event.import_path == "example.com/broken [example.com/broken.test]"


def test_parse_event_ignores_unknown_fields() -> None:
    """Fields added by newer toolchains are ignored."""
    event = parse_event(b'{"Action":"output","Package":"p","OutputType":"frame"}')

    assert event.action == "output"


@pytest.mark.parametrize(
    "raw",
    [
        pytest.param(b'{"Action":"explode","Package":"p"}', id="unknown action"),
        pytest.param(b'{"Package":"p","Test":"TestA"}', id="missing action"),
        pytest.param(b"FAIL\texample.com/broken [build failed]", id="not json"),
        pytest.param(b'["output"]', id="not an object"),
        pytest.param(b'{"Action":"pass","Elapsed":"soon"}', id="bad elapsed"),
        pytest.param(b'{"Action":"pass","Elapsed":1e300}', id="huge elapsed"),
        pytest.param(
            b'{"Action":"pass","Elapsed":100000000000000000000}',
            id="huge integer elapsed",
        ),
        pytest.param(b'{"Action":"pass","Elapsed":NaN}', id="nan elapsed"),
        pytest.param(b'{"Action":"pass","Elapsed":Infinity}', id="infinite elapsed"),
        pytest.param(b"", id="empty line"),
    ],
)
def test_parse_event_rejects_malformed_lines(raw: bytes) -> None:
    """Raises MalformedEventError carrying the offending line."""
    with pytest.raises(MalformedEventError) as exc_info:
        parse_event(raw)

    assert exc_info.value.line == raw
    assert exc_info.value.text == raw.decode()


def test_malformed_event_error_decodes_invalid_utf8() -> None:
    """Undecodable bytes are replaced when displaying the line."""
    with pytest.raises(MalformedEventError) as exc_info:
        parse_event(b"\xff\xfe not json")

    assert exc_info.value.text.endswith(" not json")


def test_event_accepts_python_field_names() -> None:
    """Events can be built directly by field name."""
    event = TestEvent(action="skip", package="p", test="TestA")

    assert event.is_terminal
    assert event.raw == b""
