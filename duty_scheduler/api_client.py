"""
Backend HTTP access

Owns the shared httpx client, translates transport failures and error
bodies into the client error taxonomy, and wraps the endpoints that do
not need a bearer token.
"""
import logging
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .config import API_BASE_URL, REQUEST_TIMEOUT_SECONDS
from .errors import AuthError, RemoteError, UnavailableError
from .schemas import HealthStatus, LoginResponse, RegisterRequest, RegistrationStatus, User

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def error_detail(response: httpx.Response) -> Optional[str]:
    """Extract `detail` (FastAPI) or `message` (envelope) from an error body"""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message")
        if isinstance(detail, str) and detail:
            return detail
    return None


def error_message(response: httpx.Response) -> str:
    return (
        error_detail(response)
        or response.text.strip()
        or f"HTTP error! status: {response.status_code}"
    )


def unwrap(response: httpx.Response) -> Any:
    """
    Decode a success body.

    The backend answers either with a bare payload or with an envelope of
    the form {"success": bool, "message": str, "data": ...}. Envelopes are
    unwrapped and `success: false` is reported as a RemoteError.
    """
    if not response.content:
        return None
    try:
        body = response.json()
    except ValueError as e:
        raise RemoteError(response.status_code, "Invalid JSON in response") from e
    if isinstance(body, dict) and "success" in body:
        if body.get("success") is False:
            raise RemoteError(response.status_code, body.get("message") or "Request failed")
        return body.get("data")
    return body


def parse_model(model: type[ModelT], payload: Any, status: int) -> ModelT:
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        logger.error(f"❌ Malformed {model.__name__} payload: {e}")
        raise RemoteError(status, f"Malformed {model.__name__} in response") from e


class BackendClient:
    """Shared httpx client for every call to the scheduler backend"""

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self._http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def request(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        json: Any = None,
        params: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        """
        Send one request.

        Raises:
            UnavailableError: If no response was received (network down, timeout)
        """
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            return await self._http.request(
                method, path, headers=headers, json=json, params=params
            )
        except httpx.TransportError as e:
            logger.error(f"❌ API request failed for {method} {path}: {e}")
            raise UnavailableError(f"Cannot reach the schedule service at {self.base_url}") from e

    @property
    def is_closed(self) -> bool:
        return self._http.is_closed

    async def aclose(self) -> None:
        await self._http.aclose()


class AuthClient:
    """Public (unauthenticated) endpoints"""

    def __init__(self, backend: BackendClient):
        self.backend = backend

    async def login(self, username: str, password: str) -> LoginResponse:
        """Exchange credentials for an access token"""
        response = await self.backend.request(
            "POST", "/api/auth/login", json={"username": username, "password": password}
        )
        if not response.is_success:
            message = error_detail(response) or "Login failed"
            logger.warning(f"⚠️ Login rejected for {username}: HTTP {response.status_code}")
            raise AuthError(message)
        return parse_model(LoginResponse, unwrap(response), response.status_code)

    async def register(self, request: RegisterRequest) -> User:
        response = await self.backend.request(
            "POST", "/api/auth/register", json=request.model_dump(exclude_none=True)
        )
        if not response.is_success:
            raise RemoteError(
                response.status_code, error_detail(response) or "Registration failed"
            )
        return parse_model(User, unwrap(response), response.status_code)

    async def registration_status(self) -> RegistrationStatus:
        response = await self.backend.request("GET", "/api/auth/registration-status")
        if not response.is_success:
            raise RemoteError(response.status_code, error_message(response))
        return parse_model(RegistrationStatus, unwrap(response), response.status_code)

    async def health(self) -> HealthStatus:
        """Public health check"""
        response = await self.backend.request("GET", "/health")
        if not response.is_success:
            raise RemoteError(response.status_code, error_message(response))
        return parse_model(HealthStatus, unwrap(response), response.status_code)
