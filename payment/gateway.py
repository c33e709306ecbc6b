# src/payment/gateway.py
import logging
from typing import Any, Dict

import requests

from config import Settings
from errors import ExternalServiceError, NotFound

logger = logging.getLogger(__name__)


class MidtransClient:
    """Thin Midtrans client: Snap token creation and Core API status lookup.

    Holds only configuration, so one instance built at startup can be shared
    by every request.
    """
    SANDBOX_SNAP_URL = "https://app.sandbox.midtrans.com/snap/v1/transactions"
    PRODUCTION_SNAP_URL = "https://app.midtrans.com/snap/v1/transactions"
    SANDBOX_API_URL = "https://api.sandbox.midtrans.com"
    PRODUCTION_API_URL = "https://api.midtrans.com"

    def __init__(self, server_key: str, client_key: str, is_production: bool = False, timeout: int = 10):
        self.server_key = server_key
        self.client_key = client_key
        self.is_production = is_production
        self.timeout = timeout
        self.snap_url = self.PRODUCTION_SNAP_URL if is_production else self.SANDBOX_SNAP_URL
        self.api_url = self.PRODUCTION_API_URL if is_production else self.SANDBOX_API_URL

    @classmethod
    def from_settings(cls, settings: Settings) -> "MidtransClient":
        if not settings.MIDTRANS_SERVER_KEY or not settings.MIDTRANS_CLIENT_KEY:
            logger.error("MIDTRANS_SERVER_KEY or MIDTRANS_CLIENT_KEY is missing.")
        else:
            logger.info(f"Midtrans keys loaded (production={settings.MIDTRANS_IS_PRODUCTION})")
        return cls(
            server_key=settings.MIDTRANS_SERVER_KEY,
            client_key=settings.MIDTRANS_CLIENT_KEY,
            is_production=settings.MIDTRANS_IS_PRODUCTION,
            timeout=settings.GATEWAY_TIMEOUT_SECONDS,
        )

    def _check_configured(self) -> None:
        if not self.server_key:
            raise ExternalServiceError("Payment gateway is not configured")

    @staticmethod
    def _parse_json(response: requests.Response, order_id: str) -> Dict[str, Any]:
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Midtrans returned non-JSON body for {order_id}: {response.text}")
            raise ExternalServiceError("Payment gateway returned an invalid response") from e

    def create_transaction(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Request a Snap payment token. Returns the gateway body ({token, redirect_url})."""
        self._check_configured()
        order_id = payload.get("transaction_details", {}).get("order_id")
        try:
            response = requests.post(
                self.snap_url,
                json=payload,
                auth=(self.server_key, ""),
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Midtrans Snap call for {order_id} failed: {str(e)}")
            raise ExternalServiceError("Payment gateway unreachable") from e

        if response.status_code >= 400:
            logger.error(f"Midtrans Snap non-2xx for {order_id}: {response.status_code}, text={response.text}")
            raise ExternalServiceError(f"Payment gateway rejected the transaction ({response.status_code})")

        data = self._parse_json(response, order_id)
        if not data.get("token"):
            logger.error(f"Midtrans Snap response without token for {order_id}: {data}")
            raise ExternalServiceError("Payment gateway returned no token")
        return data

    def transaction_status(self, order_id: str) -> Dict[str, Any]:
        """Fetch the current status; the body has the same shape as a webhook notification."""
        self._check_configured()
        url = f"{self.api_url}/v2/{order_id}/status"
        try:
            response = requests.get(
                url,
                auth=(self.server_key, ""),
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Midtrans status call for {order_id} failed: {str(e)}")
            raise ExternalServiceError("Payment gateway unreachable") from e

        if response.status_code >= 400:
            logger.error(f"Midtrans status non-2xx for {order_id}: {response.status_code}, text={response.text}")
            raise ExternalServiceError(f"Payment gateway status lookup failed ({response.status_code})")

        data = self._parse_json(response, order_id)
        # Core API reports unknown orders with HTTP 200 and status_code "404" in the body.
        if str(data.get("status_code")) == "404":
            raise NotFound("Transaction not found at payment gateway")
        return data
