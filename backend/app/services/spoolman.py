"""Spoolman API client used for spool lookups and remaining-weight updates."""

import logging
import re
from typing import Any

import httpx

logger = logging.getLogger(__name__)

API_SUFFIX = "/api/v1"

_API_SUFFIX_RE = re.compile(r"/api(/v1)?$")


class SpoolmanError(Exception):
    """Base class for failures talking to Spoolman."""

    def __init__(self, message: str, detail: Any = None):
        super().__init__(message)
        self.detail = detail if detail is not None else message


class SpoolmanUnreachableError(SpoolmanError):
    """Spoolman could not be reached (connection refused, DNS, timeout...)."""


class SpoolmanRequestError(SpoolmanError):
    """Spoolman answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int, detail: Any = None):
        super().__init__(message, detail)
        self.status_code = status_code


class SpoolNotFoundError(SpoolmanRequestError):
    """The requested spool does not exist in Spoolman."""

    def __init__(self, spool_id: int | str, detail: Any = None):
        super().__init__(f"Spool {spool_id} not found", 404, detail)
        self.spool_id = spool_id


def normalize_base_url(url: str) -> str:
    """Strip trailing slashes and any /api or /api/v1 suffix from a Spoolman URL.

    >>> normalize_base_url("http://h:1/api/v1/")
    'http://h:1'
    """
    cleaned = url.strip().rstrip("/")
    cleaned = _API_SUFFIX_RE.sub("", cleaned)
    return cleaned.rstrip("/")


def build_api_url(url: str) -> str:
    """Return the versioned API root for a base URL, appending the suffix exactly once."""
    return f"{normalize_base_url(url)}{API_SUFFIX}"


def _error_detail(response: httpx.Response) -> Any:
    """Extract Spoolman's error detail, falling back to the raw body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("detail") is not None:
        return body["detail"]
    return body


def _json(response: httpx.Response) -> Any:
    """Decode a 2xx body, treating non-JSON replies (login pages, wrong host) as Spoolman errors."""
    try:
        return response.json()
    except ValueError as e:
        logger.error("Spoolman returned a non-JSON body for %s %s", response.request.method, response.request.url)
        raise SpoolmanRequestError(
            f"Spoolman returned an invalid response (HTTP {response.status_code})",
            response.status_code,
            response.text[:200] or response.reason_phrase,
        ) from e


class SpoolmanClient:
    """Client for interacting with Spoolman API.

    Instances are cheap and bound to one base URL; callers build a new one
    whenever the configured URL changes.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the Spoolman client.

        Args:
            base_url: The base URL of the Spoolman server (e.g., http://localhost:7912).
                A trailing /api/v1 is tolerated.
            timeout: Timeout in seconds for every request.
            transport: Optional httpx transport, mainly for tests.
        """
        self.base_url = normalize_base_url(base_url)
        self.api_url = build_api_url(base_url)
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
                limits=httpx.Limits(
                    max_keepalive_connections=5,
                    max_connections=10,
                    keepalive_expiry=30.0,
                ),
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Send a request and map transport failures and error statuses to SpoolmanError.

        No retries are attempted; the first failure is surfaced to the caller.
        """
        url = f"{self.api_url}{path}"
        try:
            client = await self._get_client()
            response = await client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            logger.warning("Spoolman unreachable (%s %s): %s", method, url, e)
            raise SpoolmanUnreachableError(f"Could not reach Spoolman at {self.base_url}", str(e) or repr(e)) from e

        if response.is_success:
            return response

        detail = _error_detail(response)
        logger.error("Spoolman returned HTTP %d for %s %s: %s", response.status_code, method, url, detail)
        raise SpoolmanRequestError(
            f"Spoolman rejected {method} {path} with HTTP {response.status_code}",
            response.status_code,
            detail,
        )

    async def get_info(self) -> Any:
        """Get the Spoolman info payload (version, database type, ...)."""
        response = await self._request("GET", "/info")
        return _json(response)

    async def get_spools_payload(self, allow_archived: bool = False) -> Any:
        """Spool list body exactly as Spoolman (or a proxy in front of it) sent it."""
        params = {"allow_archived": "true"} if allow_archived else None
        response = await self._request("GET", "/spool", params=params)
        return _json(response)

    async def get_spools(self, allow_archived: bool = False) -> list[dict]:
        """Get all spools from Spoolman.

        Args:
            allow_archived: Include archived spools as well.

        Returns:
            List of spool dictionaries.
        """
        data = await self.get_spools_payload(allow_archived=allow_archived)
        if isinstance(data, dict):
            # Some proxies wrap list responses
            return data.get("results") or []
        return data

    async def get_spool(self, spool_id: int | str) -> dict:
        """Get a single spool.

        Raises:
            SpoolNotFoundError: If Spoolman has no spool with this ID.
        """
        try:
            response = await self._request("GET", f"/spool/{spool_id}")
        except SpoolmanRequestError as e:
            if e.status_code == 404:
                raise SpoolNotFoundError(spool_id, e.detail) from e
            raise
        return _json(response)

    async def patch_spool(self, spool_id: int | str, fields: dict) -> dict:
        """Apply a partial update to a spool.

        Args:
            spool_id: ID of the spool to update
            fields: Spoolman spool fields, e.g. {"remaining_weight": 120.0}

        Returns:
            Updated spool dictionary.
        """
        logger.debug("Patching spool %s in Spoolman: %s", spool_id, fields)
        try:
            response = await self._request("PATCH", f"/spool/{spool_id}", json=fields)
        except SpoolmanRequestError as e:
            if e.status_code == 404:
                raise SpoolNotFoundError(spool_id, e.detail) from e
            raise
        return _json(response)


def spool_display_name(spool: dict) -> str:
    """Human readable spool name: "<vendor> - <filament>" like Spoolman's UI."""
    if spool.get("display_name"):
        return spool["display_name"]
    filament = spool.get("filament") or {}
    vendor = (filament.get("vendor") or {}).get("name")
    name = filament.get("name") or f"Spool {spool.get('id')}"
    return f"{vendor} - {name}" if vendor else name
