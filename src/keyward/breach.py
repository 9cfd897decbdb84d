# Breach Report - Have I Been Pwned lookup
#
# Checks whether an account (email or username) appears in known data
# breaches using the HIBP v3 API.
#
# Supports:
#   - API key authentication (hibp-api-key header)
#   - Retry with exponential backoff on network errors, 429 and 5xx
#   - 404 means "not found in any breach" (empty result)

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://haveibeenpwned.com/api/v3"

# Retry configuration
MAX_RETRIES = 3
INITIAL_BACKOFF_SEC = 1.0
BACKOFF_MULTIPLIER = 2.0
REQUEST_TIMEOUT_SEC = 15


class BreachCheckError(Exception):
    """Raised when the breach service cannot be queried."""


@dataclass
class Breach:
    """One breach an account appears in."""

    name: str
    domain: str
    breach_date: str
    pwn_count: int
    description: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Breach":
        return cls(
            name=data.get("Name", ""),
            domain=data.get("Domain", ""),
            breach_date=data.get("BreachDate", ""),
            pwn_count=int(data.get("PwnCount", 0)),
            description=data.get("Description", ""),
        )


class BreachChecker:
    """Have I Been Pwned client.

    Usage::

        checker = BreachChecker(api_key="your-hibp-key")
        breaches = checker.check("alice@example.com")
    """

    def __init__(self, api_key: str = "", base_url: str = DEFAULT_BASE_URL):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")

    def _build_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {
            "Accept": "application/json",
            "User-Agent": "Keyward-BreachReport",
        }
        if self._api_key:
            headers["hibp-api-key"] = self._api_key
        return headers

    def _request(self, path: str, params: Optional[Dict[str, str]] = None) -> Optional[httpx.Response]:
        """GET with retry + exponential backoff. Returns None on 404."""
        url = f"{self._base_url}{path}"
        backoff = INITIAL_BACKOFF_SEC
        last_exc: Optional[Exception] = None

        for attempt in range(1, MAX_RETRIES + 1):
            try:
                resp = httpx.get(
                    url,
                    headers=self._build_headers(),
                    params=params,
                    timeout=REQUEST_TIMEOUT_SEC,
                )

                if resp.status_code == 404:
                    return None

                if resp.status_code < 400:
                    return resp

                # Rate limited, retry after backoff
                if resp.status_code == 429:
                    retry_after = resp.headers.get("Retry-After")
                    wait = float(retry_after) if retry_after else backoff
                    logger.warning(
                        "HIBP rate limited (429), retrying in %.1fs (attempt %d/%d)",
                        wait, attempt, MAX_RETRIES,
                    )
                    last_exc = BreachCheckError("rate limited")
                    time.sleep(wait)
                    backoff *= BACKOFF_MULTIPLIER
                    continue

                if resp.status_code >= 500:
                    logger.warning(
                        "HIBP server error %d, retrying in %.1fs (attempt %d/%d)",
                        resp.status_code, backoff, attempt, MAX_RETRIES,
                    )
                    last_exc = BreachCheckError(f"server error {resp.status_code}")
                    time.sleep(backoff)
                    backoff *= BACKOFF_MULTIPLIER
                    continue

                # Client error (4xx except 404/429): fail fast
                resp.raise_for_status()

            except httpx.HTTPStatusError as exc:
                raise BreachCheckError(
                    f"Breach service rejected the request ({exc.response.status_code})"
                ) from exc
            except httpx.HTTPError as exc:
                last_exc = exc
                if attempt < MAX_RETRIES:
                    logger.warning(
                        "HIBP request failed (%s), retrying in %.1fs (attempt %d/%d)",
                        exc, backoff, attempt, MAX_RETRIES,
                    )
                    time.sleep(backoff)
                    backoff *= BACKOFF_MULTIPLIER

        raise BreachCheckError(
            f"Breach lookup failed after {MAX_RETRIES} attempts: {last_exc}"
        )

    def check(self, account: str) -> List[Breach]:
        """Breaches the account appears in (empty list if none).

        Raises:
            ValueError: If account is empty.
            BreachCheckError: If the service cannot be queried.
        """
        account = (account or "").strip()
        if not account:
            raise ValueError("Account must not be empty")

        resp = self._request(
            f"/breachedaccount/{quote(account, safe='')}",
            params={"truncateResponse": "false"},
        )
        if resp is None:
            return []

        data = resp.json()
        items = data if isinstance(data, list) else [data]
        return [Breach.from_api(item) for item in items]
