"""HTTP client for the Pingo Doce mobile-app API."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..config import APIConfig
from ..errors import APIError, NotAuthenticatedError, NotFoundError

logger = logging.getLogger(__name__)

ENDPOINTS: dict[str, str] = {
    "login": "/api/v2/identity/onboarding/login",
    "transactions": "/api/v2/user/transactionsHistory",
    "transaction_details": "/api/v2/user/transactionsHistory/details",
    "catalog_product": "/api/v2/catalog/products/code",
    "catalog_search": "/api/v2/catalog/products/search",
}

BASE_HEADERS: dict[str, str] = {
    "Content-Type": "application/json; charset=UTF-8",
    "Accept-Language": "en-US",
    "User-Agent": "okhttp/4.12.0",
    "X-App-Version": "v-3.12.4 buildType-release flavor-prod",
    "X-Device-Version": "Android-30",
    "X-Screen-Density": "1.3312501",
}

_URL_RE = re.compile(r"^https?://")


@dataclass
class Session:
    """Bearer token and loyalty profile returned by login."""

    access_token: str
    profile: dict = field(default_factory=dict)


class PingoDoceClient:
    """Thin request/response wrapper around the retailer API.

    One timeout per request, no retries. ``transport`` lets tests plug in
    an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        config: APIConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._config = config
        self._http = httpx.Client(
            base_url=config.base_url,
            timeout=config.timeout,
            headers=BASE_HEADERS,
            transport=transport,
        )
        self._session: Session | None = None

    def close(self) -> None:
        self._http.close()

    @property
    def authenticated(self) -> bool:
        return self._session is not None and bool(self._session.access_token)

    def login(self) -> Session:
        """Authenticate with phone number and password.

        Raises:
            AuthenticationError: If credentials are not configured.
            APIError: If the API rejects the login or times out.
        """
        self._config.validate()
        logger.info("Logging in...")

        response = self._request(
            "POST",
            ENDPOINTS["login"],
            json={
                "phoneNumber": self._config.phone_number,
                "password": self._config.password,
            },
        )
        result = _json(response)
        profile = result.get("profile") or {}
        token = (result.get("token") or {}).get("access_token") or ""

        self._session = Session(access_token=token, profile=profile)
        logger.info(
            "Login successful! User: %s %s",
            profile.get("firstName", ""),
            profile.get("lastName", ""),
        )
        return self._session

    def transactions(self, page: int = 1, size: int | None = None) -> list[dict]:
        """Fetch one page of the transaction history."""
        self._ensure_authenticated()
        size = size or self._config.page_size
        logger.info("Fetching transactions (page: %d, size: %d)...", page, size)

        response = self._request(
            "GET",
            ENDPOINTS["transactions"],
            params={"pageNumber": page, "pageSize": size},
            headers=self._auth_headers(),
        )
        result = clean_response_data(_json(response))
        logger.info("Retrieved %d transactions", len(result))
        return result

    def transaction_details(
        self, transaction_id: str, store_id: str | int | None = None
    ) -> dict:
        """Fetch the product lines of one transaction."""
        self._ensure_authenticated()
        logger.info("Fetching details for transaction %s...", transaction_id)

        response = self._request(
            "GET",
            ENDPOINTS["transaction_details"],
            params={"id": transaction_id},
            headers=self._auth_headers(store_id),
        )
        return clean_response_data(_json(response))

    def latest_transaction_with_details(self) -> dict | None:
        """Log in if needed and return the newest transaction with its details."""
        if not self.authenticated:
            self.login()

        txns = self.transactions(page=1, size=1)
        if not txns:
            return None

        summary = txns[0]
        details = self.transaction_details(
            summary["transactionId"], store_id=summary.get("storeId")
        )
        return {"summary": summary, "details": details}

    def fetch_product_by_code(
        self, code: str, store_id: str | int | None = None
    ) -> dict | None:
        """Look up a catalog product by its internal code; None if unknown."""
        self._ensure_authenticated()
        try:
            response = self._request(
                "GET",
                f"{ENDPOINTS['catalog_product']}/{code}",
                headers=self._auth_headers(store_id),
            )
        except NotFoundError:
            return None
        data = clean_response_data(_json(response))
        return data or None

    def search_products(
        self,
        query: str,
        store_id: str | int | None = None,
        page: int = 1,
        size: int = 5,
    ) -> dict:
        """Full-text catalog search. Returns ``{"documents": [...]}``."""
        self._ensure_authenticated()
        response = self._request(
            "GET",
            ENDPOINTS["catalog_search"],
            params={"q": query, "pageNumber": page, "pageSize": size},
            headers=self._auth_headers(store_id),
        )
        return clean_response_data(_json(response))

    def _ensure_authenticated(self) -> None:
        if not self.authenticated:
            raise NotAuthenticatedError("Not authenticated. Call login first.")

    def _auth_headers(self, store_id: str | int | None = None) -> dict[str, str]:
        assert self._session is not None
        profile = self._session.profile
        return {
            "Authorization": f"Bearer {self._session.access_token}",
            "Pdapp-Storeid": str(store_id) if store_id is not None else "-1",
            "Pdapp-Cardnumber": profile.get("ompdCard") or "",
            "Pdapp-Lcid": profile.get("loyaltyId") or "",
            "Pdapp-Hid": profile.get("householdId") or "",
            "Pdapp-Clubs": "",
        }

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._http.request(method, endpoint, **kwargs)
        except httpx.TimeoutException as e:
            raise APIError(f"Request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise APIError(f"{method} {endpoint} failed: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(f"{method} {endpoint} failed: 404 - {response.text}")
        if not response.is_success:
            raise APIError(
                f"{method} {endpoint} failed: {response.status_code} - {response.text}"
            )
        return response


def _json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise APIError(
            f"Invalid JSON from {response.request.url.path}: {response.text[:200]!r}"
        ) from e


def clean_response_data(data: Any) -> Any:
    """Strip stray line breaks and repeated spaces from every string.

    URLs lose all whitespace, other strings keep single spaces.
    """
    if isinstance(data, dict):
        return {key: clean_response_data(value) for key, value in data.items()}
    if isinstance(data, list):
        return [clean_response_data(item) for item in data]
    if isinstance(data, str):
        cleaned = re.sub(r"[\n\r]+", "", data).strip()
        if _URL_RE.match(cleaned):
            return re.sub(r"\s+", "", cleaned)
        return re.sub(r"\s+", " ", cleaned)
    return data
