"""Russian Post shipment API client (address cleansing, tariff, backlog)."""

import base64
import logging
import os

import requests
from dotenv import load_dotenv

from post_fulfillment.config import env_timeout
from post_fulfillment.errors import CarrierError, ConfigurationError, TransportError

load_dotenv()

logger = logging.getLogger(__name__)

BASE_URL = "https://otpravka-api.pochta.ru/1.0"

DEFAULT_TIMEOUT = 30.0


class SendClient:
    """Client for the Russian Post shipment REST API."""

    def __init__(
        self,
        login: str | None = None,
        password: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        base_url: str = BASE_URL,
    ):
        self.login = login or os.getenv("POST_LOGIN", "")
        self.password = password or os.getenv("POST_PASSWORD", "")
        self.token = token or os.getenv("POST_TOKEN", "")
        if not self.login or not self.password or not self.token:
            raise ConfigurationError(
                "POST_LOGIN, POST_PASSWORD and POST_TOKEN must be set "
                "either as arguments or in a .env file."
            )
        self.timeout = timeout or env_timeout(DEFAULT_TIMEOUT)
        self.base_url = base_url.rstrip("/")

        user_key = base64.b64encode(
            f"{self.login}:{self.password}".encode("utf-8")
        ).decode("ascii")
        self.session = requests.Session()
        self.session.headers.update(
            {
                "Content-Type": "application/json",
                "Accept": "application/json;charset=UTF-8",
                "Authorization": f"AccessToken {self.token}",
                "X-User-Authorization": f"Basic {user_key}",
            }
        )

    def call(self, endpoint: str, data=None, method: str = "GET"):
        """Call an API method and return the decoded JSON body.

        Args:
            endpoint: Method path without the API version, e.g. "tariff".
            data: Query parameters for GET, JSON body otherwise.
            method: HTTP method.

        Raises:
            CarrierError: The body carries an ``error`` field.
            TransportError: Network failure, timeout, non-2xx status or a
                body that is not JSON.
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        method = method.upper()
        kwargs: dict = {"timeout": self.timeout}
        if method == "GET":
            if data:
                kwargs["params"] = data
        else:
            kwargs["json"] = data if data is not None else {}

        logger.debug("%s %s", method, url)
        try:
            resp = self.session.request(method, url, **kwargs)
        except requests.RequestException as exc:
            raise TransportError(f"{method} {endpoint} failed: {exc}") from exc

        try:
            body = resp.json()
        except ValueError as exc:
            if not resp.ok:
                raise TransportError(
                    f"{method} {endpoint} returned HTTP {resp.status_code}"
                ) from exc
            raise TransportError(f"{method} {endpoint} returned a non-JSON body") from exc

        if isinstance(body, dict) and body.get("error"):
            raise CarrierError(str(body["error"]), body.get("status", resp.status_code))
        try:
            resp.raise_for_status()
        except requests.HTTPError as exc:
            raise TransportError(f"{method} {endpoint} failed: {exc}") from exc
        return body

    def normalize_addresses(self, addresses: list[str]) -> list[dict]:
        """Cleanse free-text addresses, one result per accepted input."""
        data = [{"original-address": address.strip()} for address in addresses]
        result = self.call("clean/address", data, "POST")
        if not isinstance(result, list):
            raise TransportError("clean/address returned an unexpected body")
        return result

    def tariff(self, data: dict) -> dict:
        return self.call("tariff", data, "POST")

    def create_backlog(self, payloads: list[dict]) -> dict:
        return self.call("user/backlog", payloads, "PUT")

    def get_backlog(self, shipment_id: str) -> dict:
        return self.call(f"backlog/{shipment_id}")
