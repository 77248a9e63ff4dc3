"""
Client for the invoicing document API.

Auth: POST /account/token {id, secret} -> {token}
Docs: POST /documents, GET /documents/{id}, POST /documents/{id}/close

The bearer token is cached on the client object for 25 minutes (tokens
live for 30). Server errors and network failures are retried with backoff;
4xx responses are returned immediately. A 401 drops the cached token.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

import httpx

from models.errors import create_upstream_error, create_validation_error
from utils.http_client import HttpAdapter

logger = logging.getLogger(__name__)

TOKEN_TTL_SECONDS = 25 * 60
MAX_RETRIES = 3
RETRY_DELAYS_SECONDS = (1.0, 2.0, 4.0)

DOC_TYPE_PRICE_QUOTE = 10
DOC_TYPE_TRANSACTION_INVOICE = 300
DOC_TYPE_TAX_INVOICE = 305
DOC_TYPE_TAX_INVOICE_RECEIPT = 320
DOC_TYPE_RECEIPT = 400

DOC_STATUS_DRAFT = 0
DOC_STATUS_OPEN = 1
DOC_STATUS_CLOSED = 2
DOC_STATUS_CANCELLED = 3

_DOC_STATUS_NAMES = {
    DOC_STATUS_DRAFT: "draft",
    DOC_STATUS_OPEN: "open",
    DOC_STATUS_CLOSED: "closed",
    DOC_STATUS_CANCELLED: "cancelled",
}

DEFAULT_CURRENCY = "ILS"
DEFAULT_LANG = "he"
DEFAULT_INCOME_DESCRIPTION = "Service"


def map_document_status(code: Any) -> str:
    """Map an API document status number to draft/open/closed/cancelled/unknown."""
    if isinstance(code, bool):
        return "unknown"
    return _DOC_STATUS_NAMES.get(code, "unknown")


def _to_float(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if number else default


class InvoiceClient(HttpAdapter):
    """
    Invoicing API client with token caching and retries.

    Args:
        api_key, api_secret: Account credentials
        base_url: API root, e.g. https://api.greeninvoice.co.il/api/v1
        user_agent: User-Agent header value
        timeout_seconds: Per-request timeout
        client: Optional httpx.Client (tests pass one with MockTransport)
        clock: Time source for token expiry
        sleep: Called between retries
    """

    provider = "invoice"

    def __init__(
        self,
        api_key: Optional[str],
        api_secret: Optional[str],
        base_url: str,
        user_agent: str,
        timeout_seconds: float,
        client: Optional[httpx.Client] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        super().__init__(base_url, user_agent, timeout_seconds, client)
        self.api_key = api_key
        self.api_secret = api_secret
        self._clock = clock
        self._sleep = sleep
        self._token: Optional[str] = None
        self._token_expires_at = 0.0

    def _secrets(self) -> tuple:
        return tuple(s for s in (self.api_key, self.api_secret, self._token) if s)

    def _request_with_retry(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """
        Send a request, retrying 5xx responses and network failures.

        Raises:
            ToolError: UPSTREAM_ERROR when the last attempt fails at the network level
        """
        url = f"{self.base_url}{path}"
        attempt = 0
        while True:
            try:
                response = self._send(method, url, **kwargs)
            except httpx.TransportError as e:
                if attempt >= MAX_RETRIES:
                    raise create_upstream_error(
                        self.provider, self._scrub(str(e)) or type(e).__name__, original_error=e
                    ) from e
                logger.warning(f"Invoice API network error, retrying: {self._scrub(str(e))}")
            else:
                if response.status_code < 500 or attempt >= MAX_RETRIES:
                    return response
                logger.warning(f"Invoice API HTTP {response.status_code}, retrying")

            self._sleep(RETRY_DELAYS_SECONDS[attempt])
            attempt += 1

    def clear_token(self) -> None:
        self._token = None
        self._token_expires_at = 0.0

    def get_token(self, force_refresh: bool = False) -> str:
        """
        Return a bearer token, requesting a new one when missing or stale.

        Raises:
            ToolError: VALIDATION_ERROR when credentials are not configured,
                UPSTREAM_ERROR when the token request fails
        """
        if not self.api_key or not self.api_secret:
            raise create_validation_error(
                "Invoice API credentials are not configured "
                "(set FIELDCRM_INVOICE_API_KEY and FIELDCRM_INVOICE_API_SECRET)"
            )

        if not force_refresh and self._token and self._clock() < self._token_expires_at:
            return self._token

        response = self._request_with_retry(
            "POST", "/account/token", json={"id": self.api_key, "secret": self.api_secret}
        )
        if not response.is_success:
            self.clear_token()
            raise self._status_error(response, "token request")

        body = self._json(response, "token request")
        token = body.get("token") if isinstance(body, dict) else None
        if not token:
            self.clear_token()
            raise create_upstream_error(self.provider, "token response did not contain a token")

        self._token = token
        self._token_expires_at = self._clock() + TOKEN_TTL_SECONDS
        return token

    def _authorized(self, method: str, path: str, action: str, **kwargs: Any) -> Dict[str, Any]:
        token = self.get_token()
        response = self._request_with_retry(
            method, path, headers={"Authorization": f"Bearer {token}"}, **kwargs
        )
        if not response.is_success:
            if response.status_code == 401:
                self.clear_token()
            raise self._status_error(response, action)
        return self._json(response, action)

    def build_document_body(
        self,
        doc_type: int,
        client_info: Dict[str, Any],
        income: List[Dict[str, Any]],
        description: str = "",
        draft: bool = True,
        currency: str = DEFAULT_CURRENCY,
        lang: str = DEFAULT_LANG,
    ) -> Dict[str, Any]:
        """
        Build the JSON body for POST /documents.

        Raises:
            ToolError: VALIDATION_ERROR when income is empty or the client has no name
        """
        if not income:
            raise create_validation_error("Invoice must contain at least one income line")
        if not client_info or not client_info.get("name"):
            raise create_validation_error("Invoice client name is required")

        emails = client_info.get("emails") or []
        if isinstance(emails, str):
            emails = [emails]

        client_body: Dict[str, Any] = {
            "name": client_info["name"],
            "emails": emails,
            "phone": client_info.get("phone") or "",
            "add": client_info.get("add") is not False,
        }
        if client_info.get("tax_id"):
            client_body["taxId"] = client_info["tax_id"]

        return {
            "type": doc_type,
            "status": DOC_STATUS_DRAFT if draft else DOC_STATUS_OPEN,
            "lang": lang,
            "currency": currency,
            "signed": True,
            "rounding": False,
            "description": description or "",
            "client": client_body,
            "income": [
                {
                    "description": item.get("description") or DEFAULT_INCOME_DESCRIPTION,
                    "quantity": _to_float(item.get("quantity"), 1.0),
                    "price": _to_float(item.get("price"), 0.0),
                    "currency": item.get("currency") or currency,
                    "vatType": item.get("vat_type", 0),
                }
                for item in income
            ],
        }

    def create_document(self, **params: Any) -> Dict[str, Any]:
        """Create a document; params are passed to build_document_body."""
        body = self.build_document_body(**params)
        return self._authorized("POST", "/documents", "create document", json=body)

    def create_draft_tax_invoice(
        self,
        client_info: Dict[str, Any],
        income: List[Dict[str, Any]],
        description: str = "",
        currency: str = DEFAULT_CURRENCY,
        lang: str = DEFAULT_LANG,
    ) -> Dict[str, Any]:
        """Create a draft tax invoice (document type 305)."""
        return self.create_document(
            doc_type=DOC_TYPE_TAX_INVOICE,
            client_info=client_info,
            income=income,
            description=description,
            draft=True,
            currency=currency,
            lang=lang,
        )

    def get_document(self, doc_id: str) -> Dict[str, Any]:
        if not doc_id:
            raise create_validation_error("Document id is required")
        return self._authorized("GET", f"/documents/{doc_id}", "fetch document")
