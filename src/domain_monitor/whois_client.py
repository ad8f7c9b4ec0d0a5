"""
WHOIS Client module for domain expiry monitoring.

This module queries a third-party WHOIS lookup API over HTTP and turns its
``{code, msg, data}`` envelope into DomainFacts. Transport failures,
non-200 responses and API-level error codes all raise WhoisLookupError;
individual fields that are missing or unparseable are left empty instead.
"""

import json
import zlib
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx

from .audit_logger import AuditLogger
from .enums import LogLevel, LookupErrorCode
from .exceptions import WhoisLookupError
from .models import DomainFacts


# Tried in order, first match wins
DATE_FORMATS = (
    "%Y-%m-%dT%H:%M:%S%z",  # RFC 3339 with offset
    "%Y-%m-%dT%H:%M:%S.%f%z",  # RFC 3339 with fractional seconds
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
)


def parse_date(value: str) -> Optional[datetime]:
    """
    Parse a date string from the lookup API.

    Args:
        value: Date string in one of DATE_FORMATS

    Returns:
        Timezone-aware datetime (naive values are taken as UTC), or None
        if no format matches
    """
    if not isinstance(value, str) or not value.strip():
        return None

    value = value.strip()
    for fmt in DATE_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    return None


class WhoisClient:
    """
    Client for an HTTP WHOIS lookup API.

    The API is queried with ``GET <api_url>?domain=<name>`` and answers
    with a JSON envelope. Only ``code == 0`` with a ``data`` object counts
    as a successful lookup.
    """

    COMPONENT = "WhoisClient"

    def __init__(
        self,
        api_url: str,
        timeout: float = 30.0,
        simulation_mode: bool = False,
        logger: Optional[AuditLogger] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the WHOIS client.

        Args:
            api_url: Base URL of the lookup API
            timeout: Request timeout in seconds
            simulation_mode: If True, no real network requests are made
            logger: Optional audit logger
            transport: Optional httpx transport (used by tests)
        """
        self._api_url = api_url
        self._timeout = timeout
        self._simulation_mode = simulation_mode
        self._logger = logger
        self._transport = transport

    async def lookup(self, domain: str) -> DomainFacts:
        """
        Look up registration facts for a domain.

        Args:
            domain: Canonical domain name

        Returns:
            DomainFacts extracted from the API payload

        Raises:
            WhoisLookupError: On transport, HTTP, decoding or API errors
        """
        if self._simulation_mode:
            return self._get_simulated_facts(domain)

        if not self._api_url:
            raise WhoisLookupError(
                code=LookupErrorCode.INVALID_URL.value,
                message="No WHOIS API URL configured",
                details={"domain": domain},
            )

        envelope = await self._fetch(domain)

        if not isinstance(envelope, dict):
            raise WhoisLookupError(
                code=LookupErrorCode.PARSE_ERROR.value,
                message="WHOIS API returned an unexpected response body",
                details={"domain": domain},
            )

        code = envelope.get("code", 0)
        if code != 0:
            raise WhoisLookupError(
                code=LookupErrorCode.API_ERROR.value,
                message=f"WHOIS API error: {envelope.get('msg', '')}",
                details={"domain": domain, "api_code": code},
            )

        data = envelope.get("data")
        if not isinstance(data, dict):
            raise WhoisLookupError(
                code=LookupErrorCode.NO_DATA.value,
                message="No data in WHOIS response",
                details={"domain": domain},
            )

        facts = self.parse_payload(domain, data)

        if self._logger:
            self._logger.log(
                LogLevel.DEBUG,
                self.COMPONENT,
                f"Lookup succeeded for {domain}",
                {
                    "domain": domain,
                    "registrar": facts.registrar,
                    "expiry_date": facts.expiry_date.isoformat() if facts.expiry_date else None,
                },
            )

        return facts

    async def _fetch(self, domain: str) -> Any:
        """Perform the HTTP request and decode the JSON envelope."""
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            ) as client:
                response = await client.get(self._api_url, params={"domain": domain})
        except httpx.TimeoutException as e:
            raise WhoisLookupError(
                code=LookupErrorCode.TIMEOUT.value,
                message=f"WHOIS query timed out after {self._timeout}s",
                details={"domain": domain},
            ) from e
        except httpx.InvalidURL as e:
            raise WhoisLookupError(
                code=LookupErrorCode.INVALID_URL.value,
                message=f"Invalid API URL: {e}",
                details={"domain": domain},
            ) from e
        except httpx.HTTPError as e:
            raise WhoisLookupError(
                code=LookupErrorCode.NETWORK_ERROR.value,
                message=f"Failed to query WHOIS: {e}",
                details={"domain": domain},
            ) from e

        if response.status_code != 200:
            raise WhoisLookupError(
                code=LookupErrorCode.HTTP_ERROR.value,
                message=f"WHOIS API returned status {response.status_code}",
                details={"domain": domain, "http_status_code": response.status_code},
            )

        try:
            return response.json()
        except ValueError as e:
            raise WhoisLookupError(
                code=LookupErrorCode.PARSE_ERROR.value,
                message=f"Failed to parse WHOIS response: {e}",
                details={"domain": domain},
            ) from e

    def parse_payload(self, domain: str, data: dict) -> DomainFacts:
        """
        Extract the defined fields from an API payload.

        Unknown fields are ignored; fields of the wrong type or with
        unparseable dates stay at their empty value.
        """
        facts = DomainFacts(domain=domain)

        registrar = data.get("registrar")
        if isinstance(registrar, str):
            facts.registrar = registrar

        # "status" is a list; its first element carries the text
        status_list = data.get("status")
        if isinstance(status_list, list) and status_list:
            first = status_list[0]
            if isinstance(first, dict) and isinstance(first.get("text"), str):
                facts.status = first["text"]
            elif isinstance(first, str):
                facts.status = first

        facts.expiry_date = parse_date(data.get("expirationDate"))
        facts.created_date = parse_date(data.get("creationDate"))
        facts.updated_date = parse_date(data.get("updatedDate"))

        name_servers = data.get("nameServers")
        if isinstance(name_servers, list):
            facts.name_servers = [ns for ns in name_servers if isinstance(ns, str)]

        facts.raw_data = json.dumps(data, ensure_ascii=False, default=str)

        return facts

    def _get_simulated_facts(self, domain: str) -> DomainFacts:
        """
        Return simulated facts for dry runs.

        Domains starting with 'fail-' raise a lookup error; all others
        expire a stable, name-derived number of days from now.
        """
        sld = domain.split(".")[0]
        if sld.startswith("fail-"):
            raise WhoisLookupError(
                code=LookupErrorCode.API_ERROR.value,
                message="WHOIS API error: [SIMULATED] lookup failed",
                details={"domain": domain},
            )

        now = datetime.now(timezone.utc).replace(microsecond=0)
        days = zlib.crc32(domain.encode("utf-8")) % 400
        data = {
            "registrar": "Example Registrar [SIMULATED]",
            "status": [{"text": "clientTransferProhibited"}],
            "expirationDate": (now + timedelta(days=days, hours=1)).isoformat(),
            "creationDate": "2020-01-01T00:00:00Z",
            "updatedDate": now.isoformat(),
            "nameServers": [f"ns1.{domain}", f"ns2.{domain}"],
        }
        return self.parse_payload(domain, data)
