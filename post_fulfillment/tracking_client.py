"""Russian Post tracking (SOAP) client for operation history lookups."""

import logging
import os

import requests
from dotenv import load_dotenv
from zeep import Client, Settings
from zeep.exceptions import Error as ZeepError
from zeep.exceptions import Fault
from zeep.helpers import serialize_object
from zeep.transports import Transport

from post_fulfillment.config import env_timeout
from post_fulfillment.errors import CarrierError, ConfigurationError, TransportError

load_dotenv()

logger = logging.getLogger(__name__)

WSDL_URL = "https://tracking.russianpost.ru/rtm34?wsdl"

DEFAULT_TIMEOUT = 30.0


class TrackingClient:
    """Client for the Russian Post single-item tracking service."""

    def __init__(
        self,
        login: str | None = None,
        password: str | None = None,
        timeout: float | None = None,
        language: str = "RUS",
        wsdl: str = WSDL_URL,
    ):
        self.login = login or os.getenv("TRACKING_LOGIN") or os.getenv("POST_LOGIN", "")
        self.password = (
            password or os.getenv("TRACKING_PASSWORD") or os.getenv("POST_PASSWORD", "")
        )
        if not self.login or not self.password:
            raise ConfigurationError(
                "TRACKING_LOGIN and TRACKING_PASSWORD (or POST_LOGIN and "
                "POST_PASSWORD) must be set either as arguments or in a .env file."
            )
        self.timeout = timeout or env_timeout(DEFAULT_TIMEOUT)
        self.language = language
        self.wsdl = wsdl
        self._client: Client | None = None

    @property
    def client(self) -> Client:
        if self._client is None:
            transport = Transport(
                session=requests.Session(),
                timeout=self.timeout,
                operation_timeout=self.timeout,
            )
            try:
                self._client = Client(
                    self.wsdl,
                    transport=transport,
                    settings=Settings(strict=False),
                )
            except (requests.RequestException, ZeepError) as exc:
                raise TransportError(f"Cannot load tracking WSDL: {exc}") from exc
        return self._client

    def get_operation_history(self, barcode: str) -> list[dict]:
        """Return the raw history records for a tracking number.

        Each record is a plain dict with ``OperationParameters`` (``OperType``,
        ``OperAttr``, ``OperDate``) and optionally ``AddressParameters``.
        """
        try:
            result = self.client.service.getOperationHistory(
                OperationHistoryRequest={
                    "Barcode": barcode,
                    "MessageType": "0",
                    "Language": self.language,
                },
                AuthorizationHeader={
                    "login": self.login,
                    "password": self.password,
                },
            )
        except Fault as exc:
            detail = exc.message
            if exc.detail is not None:
                detail = f"{detail} ({exc.detail})"
            raise CarrierError(f"Tracking fault for {barcode}: {detail}") from exc
        except (requests.RequestException, ZeepError) as exc:
            raise TransportError(f"Tracking request for {barcode} failed: {exc}") from exc

        return _history_records(serialize_object(result, dict))


def _history_records(result) -> list[dict]:
    """Unwrap the historyRecord list from a serialized response."""
    if result is None:
        return []
    if isinstance(result, list):
        return [r for r in result if r]
    if "OperationHistoryData" in result:
        result = result["OperationHistoryData"] or {}
    records = result.get("historyRecord") or []
    if isinstance(records, dict):
        records = [records]
    return list(records)
