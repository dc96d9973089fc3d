import json

import pytest

from studio_api.core.errors import AuthenticationError, MalformedEventError
from studio_api.services.webhook_service import duration_ms, parse_event, verify_signature
from tests.helpers import WEBHOOK_SECRET, sign

BODY = b'{"type":"video.asset.created","data":{"upload_id":"U","id":"A1"}}'
NOW = 1_700_000_000


def test_valid_signature_passes():
    verify_signature(BODY, sign(BODY, timestamp=NOW), WEBHOOK_SECRET, now=NOW)


def test_any_matching_v1_signature_is_accepted():
    header = sign(BODY, timestamp=NOW) + ",v1=" + "0" * 64
    verify_signature(BODY, header, WEBHOOK_SECRET, now=NOW)


@pytest.mark.parametrize("header", [None, "", "garbage", "t=abc,v1=deadbeef", f"t={NOW}"])
def test_missing_or_unparsable_header_is_rejected(header):
    with pytest.raises(AuthenticationError):
        verify_signature(BODY, header, WEBHOOK_SECRET, now=NOW)


def test_signature_covers_exact_bytes():
    reserialized = json.dumps(json.loads(BODY)).encode("utf-8")
    assert reserialized != BODY

    with pytest.raises(AuthenticationError):
        verify_signature(reserialized, sign(BODY, timestamp=NOW), WEBHOOK_SECRET, now=NOW)


def test_wrong_secret_is_rejected():
    with pytest.raises(AuthenticationError):
        verify_signature(BODY, sign(BODY, secret="other", timestamp=NOW), WEBHOOK_SECRET, now=NOW)


def test_stale_timestamp_is_rejected():
    with pytest.raises(AuthenticationError):
        verify_signature(BODY, sign(BODY, timestamp=NOW - 301), WEBHOOK_SECRET, tolerance_seconds=300, now=NOW)


def test_zero_tolerance_skips_timestamp_check():
    verify_signature(BODY, sign(BODY, timestamp=NOW - 86_400), WEBHOOK_SECRET, tolerance_seconds=0, now=NOW)


def test_parse_event_rejects_non_event_bodies():
    with pytest.raises(MalformedEventError):
        parse_event(b"not json")
    with pytest.raises(MalformedEventError):
        parse_event(b'{"data": {}}')


def test_parse_event_keeps_unknown_types():
    event = parse_event(b'{"type": "video.live_stream.created", "data": {"id": "L1"}}')
    assert event.type == "video.live_stream.created"
    assert event.data == {"id": "L1"}


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(None, 0), (0, 0), (12.5, 12500), (3.2, 3200), (0.0004, 0)],
)
def test_duration_is_rounded_to_milliseconds(seconds, expected):
    assert duration_ms(seconds) == expected


def test_endpoint_rejects_unsigned_request(send_event):
    response = send_event("video.asset.created", {"upload_id": "U", "id": "A1"}, signed=False)

    assert response.status_code == 401


def test_endpoint_rejects_bad_signature(send_event):
    response = send_event("video.asset.created", {"upload_id": "U", "id": "A1"}, signature=f"t={NOW},v1={'a' * 64}")

    assert response.status_code == 401
