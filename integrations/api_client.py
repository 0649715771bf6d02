from typing import Optional
import httpx
from loguru import logger
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from config.settings import settings
from core.errors import (
    AuthenticationFailed, AuthenticationRequired, BackendError, BackendUnavailable,
)
from services.local_store import TokenStore


class ApiClient:
    """JSON over HTTP with the stored bearer token attached to every call."""

    def __init__(self, base_url: Optional[str] = None,
                 token_store: Optional[TokenStore] = None,
                 timeout: Optional[float] = None,
                 retry_attempts: Optional[int] = None,
                 transport: Optional[httpx.BaseTransport] = None):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.token_store = token_store or TokenStore()
        self.timeout = timeout or settings.HTTP_TIMEOUT
        self.retry_attempts = max(1, retry_attempts or settings.HTTP_RETRY_ATTEMPTS)
        self.transport = transport

    def _headers(self) -> dict:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        token = self.token_store.load()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith("http"):
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _client(self) -> httpx.Client:
        return httpx.Client(headers=self._headers(), timeout=self.timeout,
                            transport=self.transport)

    def _handle(self, resp: httpx.Response, endpoint: str):
        if resp.status_code == 401:
            logger.warning("Authentication failed. Clearing stored token.")
            self.token_store.clear()
            raise AuthenticationRequired()
        if resp.is_error:
            try:
                message = (resp.json() or {}).get("message")
            except (ValueError, AttributeError):
                message = None
            logger.error(f"HTTP error on {endpoint}: {resp.status_code}")
            raise BackendError(message or f"HTTP error! status: {resp.status_code}",
                               status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError as e:
            raise BackendError(f"Invalid JSON from {endpoint}: {e}",
                               status_code=resp.status_code)

    def request(self, method: str, endpoint: str, params: Optional[dict] = None,
                body=None):
        try:
            with self._client() as client:
                resp = client.request(method, self._url(endpoint),
                                      params=params, json=body)
        except httpx.RequestError as e:
            logger.error(f"Cannot reach backend on {endpoint}: {e}")
            raise BackendUnavailable(
                f"Cannot reach backend at {self.base_url}. Check the URL and network."
            ) from e
        return self._handle(resp, endpoint)

    def get(self, endpoint: str, params: Optional[dict] = None):
        for attempt in Retrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            retry=retry_if_exception_type(BackendUnavailable),
            reraise=True,
        ):
            with attempt:
                data = self.request("GET", endpoint, params=params)
        logger.info(f"GET {endpoint} → {len(data) if isinstance(data, list) else 'ok'}")
        return data

    def post(self, endpoint: str, body=None):
        data = self.request("POST", endpoint, body=body)
        logger.info(f"POST {endpoint} → ok")
        return data

    def login(self, username: str, password: str,
              login_url: Optional[str] = None) -> str:
        url = login_url or settings.LOGIN_URL
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.post(url, json={"username": username,
                                              "password": password})
            data = resp.json()
        except httpx.RequestError as e:
            logger.error(f"Login request failed: {e}")
            raise BackendUnavailable(
                "An error occurred while connecting to the server. Please try again."
            ) from e
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if data.get("status") == "success" and data.get("token"):
            self.token_store.save(data["token"])
            logger.info(f"Logged in as {username}")
            return data["token"]
        raise AuthenticationFailed(
            data.get("message") or "Login failed. Please check your credentials."
        )
