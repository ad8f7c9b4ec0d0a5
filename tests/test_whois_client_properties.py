"""
Property-based tests for the WHOIS lookup client.

Uses Hypothesis for property-based testing of the envelope handling and
date parsing. The lookup API is replaced by an httpx.MockTransport.
"""

import asyncio
import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from domain_monitor.enums import LookupErrorCode
from domain_monitor.exceptions import WhoisLookupError
from domain_monitor.whois_client import WhoisClient, parse_date


API_URL = "https://whois.example.net/api/whois"


def run_async(coro):
    """Helper to run async code in tests."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def client_for(handler) -> WhoisClient:
    return WhoisClient(API_URL, timeout=5.0, transport=httpx.MockTransport(handler))


def json_handler(body, status_code: int = 200):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=body)

    return handler


@st.composite
def aware_datetime_strategy(draw) -> datetime:
    """Generate whole-second UTC datetimes."""
    return draw(
        st.datetimes(
            min_value=datetime(1990, 1, 1),
            max_value=datetime(2100, 1, 1),
        )
    ).replace(microsecond=0, tzinfo=timezone.utc)


class TestDateParsingProperty:
    """Property-based tests for the supported date formats."""

    @given(value=aware_datetime_strategy())
    @settings(max_examples=100)
    def test_all_formats_parse_to_same_instant(self, value: datetime) -> None:
        """
        Property 1: Every supported layout yields the same UTC instant.

        *For any* instant, its RFC 3339, literal-Z and space-separated
        renderings SHALL parse to that instant.
        """
        renderings = [
            value.isoformat(),
            value.strftime("%Y-%m-%dT%H:%M:%SZ"),
            value.strftime("%Y-%m-%d %H:%M:%S"),
        ]
        for rendering in renderings:
            assert parse_date(rendering) == value

    @given(value=aware_datetime_strategy(), offset_hours=st.integers(min_value=-12, max_value=14))
    @settings(max_examples=100)
    def test_offsets_are_respected(self, value: datetime, offset_hours: int) -> None:
        local = value.astimezone(timezone(timedelta(hours=offset_hours)))

        assert parse_date(local.isoformat()) == value

    def test_date_only_is_midnight_utc(self) -> None:
        assert parse_date("2025-03-04") == datetime(2025, 3, 4, tzinfo=timezone.utc)

    def test_fractional_seconds(self) -> None:
        assert parse_date("2025-03-04T05:06:07.250+00:00") == datetime(
            2025, 3, 4, 5, 6, 7, 250000, tzinfo=timezone.utc
        )

    @given(value=st.text(alphabet="abcxyz /:-", max_size=30))
    @settings(max_examples=100)
    def test_garbage_is_none(self, value: str) -> None:
        assert parse_date(value) is None

    def test_non_string_is_none(self) -> None:
        assert parse_date(None) is None
        assert parse_date(12345) is None


class TestEnvelopeProperty:
    """
    Property-based tests for the API envelope.

    Only code 0 with a data object is a successful lookup.
    """

    @given(code=st.integers(min_value=-1000, max_value=1000).filter(lambda c: c != 0))
    @settings(max_examples=50)
    def test_nonzero_code_is_lookup_error(self, code: int) -> None:
        """
        Property 2: A non-zero API code fails the lookup.

        *For any* non-zero code, the lookup SHALL raise WhoisLookupError
        carrying the API message.
        """
        client = client_for(json_handler({"code": code, "msg": "quota exceeded", "data": {}}))

        with pytest.raises(WhoisLookupError) as exc_info:
            run_async(client.lookup("example.com"))

        assert exc_info.value.code == LookupErrorCode.API_ERROR.value
        assert "quota exceeded" in exc_info.value.message
        assert exc_info.value.details["api_code"] == code

    @given(status_code=st.sampled_from([301, 400, 403, 404, 429, 500, 502, 503]))
    @settings(max_examples=20)
    def test_non_200_status_is_lookup_error(self, status_code: int) -> None:
        client = client_for(json_handler({"code": 0, "data": {}}, status_code=status_code))

        with pytest.raises(WhoisLookupError) as exc_info:
            run_async(client.lookup("example.com"))

        assert exc_info.value.code == LookupErrorCode.HTTP_ERROR.value
        assert exc_info.value.details["http_status_code"] == status_code

    @pytest.mark.parametrize("body", [{"code": 0}, {"code": 0, "data": None}, {"code": 0, "data": []}])
    def test_missing_data_is_lookup_error(self, body) -> None:
        with pytest.raises(WhoisLookupError) as exc_info:
            run_async(client_for(json_handler(body)).lookup("example.com"))

        assert exc_info.value.code == LookupErrorCode.NO_DATA.value

    def test_invalid_json_is_lookup_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>not json</html>")

        with pytest.raises(WhoisLookupError) as exc_info:
            run_async(client_for(handler).lookup("example.com"))

        assert exc_info.value.code == LookupErrorCode.PARSE_ERROR.value

    def test_non_object_body_is_lookup_error(self) -> None:
        with pytest.raises(WhoisLookupError) as exc_info:
            run_async(client_for(json_handler([1, 2, 3])).lookup("example.com"))

        assert exc_info.value.code == LookupErrorCode.PARSE_ERROR.value

    def test_timeout_is_lookup_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(WhoisLookupError) as exc_info:
            run_async(client_for(handler).lookup("example.com"))

        assert exc_info.value.code == LookupErrorCode.TIMEOUT.value
        assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)

    def test_connection_error_is_lookup_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(WhoisLookupError) as exc_info:
            run_async(client_for(handler).lookup("example.com"))

        assert exc_info.value.code == LookupErrorCode.NETWORK_ERROR.value

    def test_missing_api_url_is_lookup_error(self) -> None:
        with pytest.raises(WhoisLookupError) as exc_info:
            run_async(WhoisClient("").lookup("example.com"))

        assert exc_info.value.code == LookupErrorCode.INVALID_URL.value


class TestFieldExtraction:
    """Tests for mapping the payload onto DomainFacts."""

    def test_full_payload(self) -> None:
        requests: list[httpx.Request] = []
        data = {
            "domainName": "example.com",
            "registrar": "Example Registrar, Inc.",
            "status": [{"text": "clientTransferProhibited"}, {"text": "clientDeleteProhibited"}],
            "expirationDate": "2026-08-13T04:00:00Z",
            "creationDate": "1995-08-14 04:00:00",
            "updatedDate": "2025-08-14T07:01:38+00:00",
            "nameServers": ["a.iana-servers.net", "b.iana-servers.net"],
        }

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"code": 0, "msg": "success", "data": data})

        facts = run_async(client_for(handler).lookup("example.com"))

        assert requests[0].method == "GET"
        assert requests[0].url.params["domain"] == "example.com"
        assert facts.domain == "example.com"
        assert facts.registrar == "Example Registrar, Inc."
        assert facts.status == "clientTransferProhibited"
        assert facts.expiry_date == datetime(2026, 8, 13, 4, tzinfo=timezone.utc)
        assert facts.created_date == datetime(1995, 8, 14, 4, tzinfo=timezone.utc)
        assert facts.updated_date == datetime(2025, 8, 14, 7, 1, 38, tzinfo=timezone.utc)
        assert facts.name_servers == ["a.iana-servers.net", "b.iana-servers.net"]
        assert json.loads(facts.raw_data) == data

    def test_plain_string_status(self) -> None:
        client = client_for(json_handler({"code": 0, "data": {"status": ["ok"]}}))

        assert run_async(client.lookup("example.com")).status == "ok"

    def test_missing_and_malformed_fields_stay_empty(self) -> None:
        data = {
            "registrar": 42,
            "status": [],
            "expirationDate": "next tuesday",
            "nameServers": "ns1.example.com",
        }
        facts = run_async(client_for(json_handler({"code": 0, "data": data})).lookup("example.com"))

        assert facts.registrar == ""
        assert facts.status == ""
        assert facts.expiry_date is None
        assert facts.created_date is None
        assert facts.name_servers == []

    def test_missing_code_counts_as_success(self) -> None:
        facts = run_async(
            client_for(json_handler({"data": {"registrar": "R"}})).lookup("example.com")
        )

        assert facts.registrar == "R"


class TestSimulationMode:
    """Simulated lookups never touch the network."""

    @given(
        sld=st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789", min_size=1, max_size=20),
        tld=st.sampled_from(["com", "net", "org", "de"]),
    )
    @settings(max_examples=50)
    def test_simulated_lookup_is_stable(self, sld: str, tld: str) -> None:
        domain = f"{sld}.{tld}"
        client = WhoisClient("", simulation_mode=True)

        first = run_async(client.lookup(domain))
        second = run_async(client.lookup(domain))

        assert first.expiry_date is not None
        assert first.expiry_date > datetime.now(timezone.utc)
        assert first.registrar == second.registrar
        assert abs((first.expiry_date - second.expiry_date).total_seconds()) < 5

    def test_fail_prefix_raises(self) -> None:
        with pytest.raises(WhoisLookupError):
            run_async(WhoisClient("", simulation_mode=True).lookup("fail-example.com"))
