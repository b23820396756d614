"""
Paystack gateway client
"""

import hashlib
import hmac
from decimal import Decimal
from typing import Any, Dict, Optional, Union
import requests
from flask import current_app
from kmmedia.utils.exceptions import PaymentGatewayError

PAYSTACK_CHANNELS = ['card', 'bank', 'ussd', 'qr', 'mobile_money', 'bank_transfer']


def to_minor_units(amount: Decimal) -> int:
    """Convert cedis to pesewas"""
    return int((Decimal(amount) * 100).quantize(Decimal('1')))


def from_minor_units(amount: Union[int, str, None]) -> Optional[Decimal]:
    if amount is None:
        return None
    return (Decimal(str(amount)) / 100).quantize(Decimal('0.01'))


def verify_webhook_signature(body: bytes, signature: Optional[str], secret: Optional[str]) -> bool:
    """Check the x-paystack-signature header (HMAC-SHA512 of the raw body)"""
    if not signature or not secret:
        return False
    expected = hmac.new(secret.encode('utf-8'), body, hashlib.sha512).hexdigest()
    return hmac.compare_digest(expected, signature)


class PaystackClient:
    """Thin wrapper over the Paystack transaction API"""

    def __init__(self, secret_key: str, base_url: str = 'https://api.paystack.co', timeout: int = 30):
        if not secret_key:
            raise PaymentGatewayError("PAYSTACK_SECRET_KEY is not configured")
        self.secret_key = secret_key
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

    @classmethod
    def from_config(cls) -> 'PaystackClient':
        config = current_app.config
        return cls(
            config.get('PAYSTACK_SECRET_KEY'),
            config.get('PAYSTACK_BASE_URL', 'https://api.paystack.co'),
            config.get('PAYSTACK_TIMEOUT', 30)
        )

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        headers = {
            'Authorization': f"Bearer {self.secret_key}",
            'Content-Type': 'application/json'
        }
        try:
            resp = requests.request(method, url, json=payload, headers=headers, timeout=self.timeout)
        except requests.exceptions.Timeout:
            raise PaymentGatewayError("Payment gateway request timed out. Please try again.")
        except requests.exceptions.ConnectionError:
            raise PaymentGatewayError("Payment gateway connection failed. Please try again.")
        except requests.exceptions.RequestException as e:
            raise PaymentGatewayError(f"Payment gateway request failed: {str(e)}")

        try:
            body = resp.json()
        except ValueError:
            body = {}

        if resp.status_code != 200 or not body.get('status'):
            message = body.get('message') or f"Payment gateway error ({resp.status_code})"
            current_app.logger.error(f"Paystack {method} {path} failed: {resp.status_code} {message}")
            raise PaymentGatewayError(message)

        return body.get('data') or {}

    def initialize_transaction(self, email: str, amount: Decimal, reference: str,
                               callback_url: str, currency: str = 'GHS',
                               metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Start a hosted checkout

        Returns:
            Gateway data with authorization_url, access_code and reference
        """
        payload = {
            'email': email,
            'amount': to_minor_units(amount),
            'reference': reference,
            'callback_url': callback_url,
            'currency': currency,
            'channels': PAYSTACK_CHANNELS,
            'metadata': metadata or {}
        }
        return self._request('POST', '/transaction/initialize', payload)

    def verify_transaction(self, reference: str) -> Dict[str, Any]:
        """Look up a transaction by reference"""
        return self._request('GET', f"/transaction/verify/{reference}")
