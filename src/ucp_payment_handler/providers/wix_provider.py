"""Wix Payments provider over HTTP."""

import uuid
from typing import Any

import httpx
import structlog

from ucp_payment_handler.domain.errors import (
    ErrorDetail,
    InvalidCredentialsError,
    ProviderError,
    ProviderTimeout,
)
from ucp_payment_handler.providers.base import (
    CardDetails,
    NetworkTokenData,
    PanData,
    PaymentProvider,
)

logger = structlog.get_logger(__name__)

CARD_TOKENS_PATH = "/payments/v3/card-tokens"
WALLET_TOKENS_PATH = "/payments/v3/wallet-tokens"


def _network_token_path(credential_ref: str) -> str:
    return f"{CARD_TOKENS_PATH}/{credential_ref}/network-token"


def _card_details_path(credential_ref: str) -> str:
    return f"{CARD_TOKENS_PATH}/{credential_ref}/card-details"


def _error_message(response: httpx.Response, default: str) -> str:
    """Extract ``message`` from an error body, which may not be JSON."""
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return default


class WixPaymentsProvider(PaymentProvider):
    """
    Client for the Wix Payments card token API.

    Response handling:
        - timeouts, connection errors, 5xx and 429 -> ProviderError (retryable)
        - 400/402/422 on card tokenization -> InvalidCredentialsError
        - any other non-2xx -> ProviderError
    """

    name = "wix"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        account_id: str = "",
        timeout_seconds: float = 10.0,
    ):
        """
        Initialize the Wix Payments provider.

        Args:
            base_url: Wix API base URL (e.g., "https://www.wixapis.com")
            api_key: API key sent in the Authorization header
            account_id: Wix account ID sent in the wix-account-id header
            timeout_seconds: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.http_client = httpx.AsyncClient(
            timeout=timeout_seconds,
            headers={
                "Authorization": api_key,
                "wix-account-id": account_id,
                "Content-Type": "application/json",
            },
        )

        logger.info(
            "wix_payments_provider_initialized",
            base_url=self.base_url,
            timeout_seconds=timeout_seconds,
        )

    async def close(self) -> None:
        """Close the HTTP client connection pool."""
        await self.http_client.aclose()

    async def _post(
        self,
        operation: str,
        path: str,
        body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        correlation_id = str(uuid.uuid4())
        url = f"{self.base_url}{path}"

        try:
            response = await self.http_client.post(
                url,
                json=body or {},
                headers={"X-Request-ID": correlation_id},
            )
        except httpx.TimeoutException as e:
            logger.error(
                "wix_payments_timeout",
                operation=operation,
                correlation_id=correlation_id,
            )
            raise ProviderTimeout(f"Wix Payments {operation} timed out") from e
        except httpx.RequestError as e:
            logger.error(
                "wix_payments_request_error",
                operation=operation,
                correlation_id=correlation_id,
                error_type=type(e).__name__,
            )
            raise ProviderError(f"Wix Payments {operation} request error") from e

        if response.status_code == 429 or response.status_code >= 500:
            logger.error(
                "wix_payments_unavailable",
                operation=operation,
                status_code=response.status_code,
                correlation_id=correlation_id,
            )
            raise ProviderError(
                f"Wix Payments unavailable (status: {response.status_code})"
            )

        return response

    def _raise_for_status(self, operation: str, response: httpx.Response) -> None:
        if response.status_code >= 400:
            logger.error(
                "wix_payments_request_failed",
                operation=operation,
                status_code=response.status_code,
            )
            raise ProviderError(
                f"Wix Payments {operation} failed (status: {response.status_code})",
                retryable=False,
            )

    async def mint_card_credential(self, card: CardDetails) -> str:
        body = {
            "cardNumber": card.pan,
            "expirationMonth": card.expiry_month,
            "expirationYear": card.expiry_year,
            "cvv": card.cvv,
        }
        if card.cardholder_name:
            body["holderName"] = card.cardholder_name

        response = await self._post("create_card_token", CARD_TOKENS_PATH, body)

        if response.status_code in (400, 402, 422):
            message = _error_message(response, "Card rejected by provider")
            logger.warning(
                "wix_payments_card_rejected",
                status_code=response.status_code,
                card_last_four=card.last_four,
            )
            raise InvalidCredentialsError(
                message,
                details=[
                    ErrorDetail(
                        field="sourceCredential",
                        code="INVALID_CREDENTIALS",
                        message=message,
                    )
                ],
            )

        self._raise_for_status("create_card_token", response)
        credential_ref = response.json()["cardToken"]

        logger.info("wix_card_token_created", card_last_four=card.last_four)
        return credential_ref

    async def mint_wallet_credential(self, wallet_type: str, wallet_token: str) -> str:
        response = await self._post(
            "create_wallet_token",
            WALLET_TOKENS_PATH,
            {"walletType": wallet_type, "paymentToken": wallet_token},
        )
        self._raise_for_status("create_wallet_token", response)

        logger.info("wix_wallet_token_created", wallet_type=wallet_type)
        return response.json()["walletToken"]

    async def fetch_network_token(self, credential_ref: str) -> NetworkTokenData:
        response = await self._post(
            "get_network_token", _network_token_path(credential_ref)
        )
        self._raise_for_status("get_network_token", response)

        data = response.json()["networkToken"]
        return NetworkTokenData(
            token=data["token"],
            cryptogram=data["cryptogram"],
            eci=data["eci"],
            expiry_month=data.get("expirationMonth"),
            expiry_year=data.get("expirationYear"),
        )

    async def fetch_pan(self, credential_ref: str) -> PanData:
        response = await self._post("get_card_details", _card_details_path(credential_ref))
        self._raise_for_status("get_card_details", response)

        data = response.json()["card"]
        return PanData(
            pan=data["cardNumber"],
            expiry_month=data.get("expirationMonth"),
            expiry_year=data.get("expirationYear"),
        )

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
