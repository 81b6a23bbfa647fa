import httpx
import logging
from typing import Optional

from storefront.application.interfaces import PaymentGateway, RemoteOrder
from storefront.domain.exceptions import PaymentGatewayError

logger = logging.getLogger(__name__)


class HTTPRazorpayClient(PaymentGateway):
    """Razorpay Orders API. No retries: a failure goes straight back to the caller"""

    def __init__(
        self,
        base_url: str,
        key_id: str,
        key_secret: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self._base_url = base_url.rstrip("/")
        self._key_id = key_id
        self._key_secret = key_secret
        self._timeout = timeout
        self._transport = transport

    @property
    def key_id(self) -> str:
        return self._key_id

    async def create_remote_order(self, amount: int, currency: str, receipt: str) -> RemoteOrder:
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(
                    f"{self._base_url}/v1/orders",
                    json={
                        "amount": amount,
                        "currency": currency,
                        "receipt": receipt
                    },
                    auth=(self._key_id, self._key_secret),
                    timeout=self._timeout
                )

                if response.status_code in (200, 201):
                    data = response.json()
                    return RemoteOrder(id=data["id"], amount=data["amount"], currency=data["currency"])
                else:
                    logger.error(f"Razorpay create order failed: HTTP {response.status_code}")
                    raise PaymentGatewayError(f"Payment gateway error: {response.status_code}")

        except httpx.RequestError as e:
            logger.error(f"Razorpay connection error: {e}")
            raise PaymentGatewayError(f"Payment gateway unavailable: {e.__class__.__name__}") from e
        except (KeyError, ValueError) as e:
            logger.error(f"Razorpay returned an unexpected body: {e}")
            raise PaymentGatewayError("Payment gateway returned an invalid response") from e
