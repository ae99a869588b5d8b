from datetime import date

import pytest
import requests

from conftest import FakeResponse
from fitbit_exporter.client import FetchStatus, parse_count, steps_range, steps_today
from fitbit_exporter.token_store import Credential, RenewalOutcome


def test_fetch_ok_sends_bearer_token(client, session):
    session.get.return_value = FakeResponse(200, {"activities-steps": [{"dateTime": "2023-01-10", "value": "4321"}]})

    result = client.fetch(steps_today())

    assert result.status is FetchStatus.OK
    assert result.payload["activities-steps"][0]["value"] == "4321"
    args, kwargs = session.get.call_args
    assert args[0] == "https://api.test/1/user/-/activities/steps/date/today/1d.json"
    assert kwargs["headers"] == {"Authorization": "Bearer access-1"}


def test_fetch_uses_renewed_token(client, session, store):
    session.get.return_value = FakeResponse(200, {"activities-steps": []})
    store.renew(lambda cred: RenewalOutcome.success(Credential("access-2", "refresh-2")))

    client.fetch(steps_today())

    assert session.get.call_args[1]["headers"]["Authorization"] == "Bearer access-2"


def test_expired_token_marker(client, session):
    session.get.return_value = FakeResponse(401, {"errors": [{"errorType": "expired_token"}]})
    assert client.fetch(steps_today()).status is FetchStatus.CREDENTIAL_EXPIRED


def test_expired_token_marker_on_200(client, session):
    session.get.return_value = FakeResponse(200, {"errors": [{"errorType": "expired_token"}]})
    assert client.fetch(steps_today()).status is FetchStatus.CREDENTIAL_EXPIRED


def test_fetch_does_not_renew(client, session, store):
    session.get.return_value = FakeResponse(401, {"errors": [{"errorType": "expired_token"}]})
    client.fetch(steps_today())
    assert store.read() == Credential("access-1", "refresh-1")
    session.post.assert_not_called()


def test_other_http_error_is_transport(client, session):
    session.get.return_value = FakeResponse(401, {"errors": [{"errorType": "invalid_token"}]})
    assert client.fetch(steps_today()).status is FetchStatus.TRANSPORT_ERROR


def test_non_json_error_is_transport(client, session):
    session.get.return_value = FakeResponse(502, None, text="<html>bad gateway</html>")
    assert client.fetch(steps_today()).status is FetchStatus.TRANSPORT_ERROR


@pytest.mark.parametrize("error", [requests.ConnectionError("refused"), requests.Timeout("slow")])
def test_request_exception_is_transport(client, session, error):
    session.get.side_effect = error
    assert client.fetch(steps_today()).status is FetchStatus.TRANSPORT_ERROR


@pytest.mark.parametrize("body", [None, ["not", "an", "object"], {"summary": {}}, {"activities-steps": "4321"}])
def test_malformed_payload_is_decode_error(client, session, body):
    session.get.return_value = FakeResponse(200, body)
    assert client.fetch(steps_today()).status is FetchStatus.DECODE_ERROR


def test_fetch_range_parses_days(client, session):
    session.get.return_value = FakeResponse(
        200,
        {
            "activities-steps": [
                {"dateTime": "2023-01-01", "value": "100"},
                {"dateTime": "2023-01-02", "value": "200"},
            ]
        },
    )

    result = client.fetch_range(date(2023, 1, 1), date(2023, 1, 2))

    assert result.ok
    assert result.payload == [(date(2023, 1, 1), 100), (date(2023, 1, 2), 200)]
    assert session.get.call_args[0][0] == "https://api.test/1/user/-/activities/steps/date/2023-01-01/2023-01-02.json"


@pytest.mark.parametrize(
    "bad_entry",
    [
        {"dateTime": "01/02/2023", "value": "200"},
        {"value": "200"},
        {"dateTime": "2023-01-02", "value": "lots"},
        {"dateTime": "2023-01-02"},
        {"dateTime": "2023-01-02", "value": "-5"},
        "2023-01-02",
    ],
)
def test_fetch_range_rejects_whole_response_on_bad_entry(client, session, bad_entry):
    session.get.return_value = FakeResponse(
        200, {"activities-steps": [{"dateTime": "2023-01-01", "value": "100"}, bad_entry]}
    )

    result = client.fetch_range(date(2023, 1, 1), date(2023, 1, 2))

    assert result.status is FetchStatus.DECODE_ERROR
    assert result.payload is None


def test_fetch_range_propagates_expiry(client, session):
    session.get.return_value = FakeResponse(401, {"errors": [{"errorType": "expired_token"}]})
    assert client.fetch_range(date(2023, 1, 1), date(2023, 1, 2)).status is FetchStatus.CREDENTIAL_EXPIRED


def test_parse_count():
    assert parse_count("4321") == 4321
    assert parse_count(7) == 7
    for bad in ("", "4.5", None, True, -1, "abc"):
        with pytest.raises(ValueError):
            parse_count(bad)


def test_steps_range_path():
    assert steps_range(date(2023, 1, 1), date(2023, 2, 1)).path.endswith("/date/2023-01-01/2023-02-01.json")
