"""Async client for the identity provider (Supabase Auth / GoTrue REST API).

Sign-up, password sign-in and token verification are delegated entirely to
the provider; this service never stores credentials.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    """Error from the identity provider, with HTTP status and URL."""

    def __init__(self, status: int, message: str, url: str):
        self.status = status
        self.message = message
        self.url = url
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status} from {self.url}: {self.message}"
        return f"Connection error for {self.url}: {self.message}"


@dataclass
class AuthResult:
    user_id: Optional[str] = None
    email: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    @property
    def has_session(self) -> bool:
        return bool(self.access_token)


def _error_message(body: Any, status: int) -> str:
    if isinstance(body, dict):
        for key in ("msg", "error_description", "message", "error"):
            if body.get(key):
                return str(body[key])
    return f"Identity provider returned HTTP {status}"


def _parse_auth_body(body: Dict[str, Any]) -> AuthResult:
    """Session responses nest the user; bare sign-up responses are the user."""
    user = body.get("user") if "access_token" in body else body
    user = user or {}
    return AuthResult(
        user_id=user.get("id"),
        email=user.get("email"),
        access_token=body.get("access_token"),
        refresh_token=body.get("refresh_token"),
    )


class IdentityClient:
    """Async HTTP client for the identity provider.

    Opened once at startup and shared by all requests; falls back to a
    per-call session if used before ``open()``.
    """

    def __init__(self, base_url: str, api_key: str, timeout: float = 30):
        if not base_url or not api_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._session: Optional[aiohttp.ClientSession] = None
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def open(self) -> None:
        """Open a persistent session for connection pooling."""
        if not self._session:
            self._session = aiohttp.ClientSession(timeout=self._timeout)

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "IdentityClient":
        await self.open()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def _request(
        self, method: str, path: str,
        json: Optional[dict] = None,
        bearer: Optional[str] = None,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}/auth/v1{path}"
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {bearer or self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            if self._session:
                return await self._send(self._session, method, url, json, headers)
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                return await self._send(session, method, url, json, headers)
        except aiohttp.ClientError as e:
            raise IdentityError(0, str(e), url) from e

    @staticmethod
    async def _send(session, method, url, json, headers) -> Dict[str, Any]:
        async with session.request(method, url, json=json, headers=headers) as resp:
            try:
                body = await resp.json(content_type=None)
            except ValueError:
                body = None
            if resp.status >= 400:
                raise IdentityError(resp.status, _error_message(body, resp.status), url)
            return body or {}

    async def sign_up(self, email: str, password: str) -> AuthResult:
        """Register a user. No session is returned while email confirmation is pending."""
        body = await self._request("POST", "/signup", json={"email": email, "password": password})
        result = _parse_auth_body(body)
        logger.info("Registered user %s (session=%s)", result.user_id, result.has_session)
        return result

    async def sign_in(self, email: str, password: str) -> AuthResult:
        body = await self._request(
            "POST", "/token?grant_type=password",
            json={"email": email, "password": password},
        )
        return _parse_auth_body(body)

    async def get_user(self, token: str) -> Dict[str, Any]:
        return await self._request("GET", "/user", bearer=token)

    async def verify_token(self, token: str) -> Optional[str]:
        """Return the user id a bearer token belongs to, or None if it is not valid."""
        try:
            user = await self.get_user(token)
        except IdentityError as e:
            logger.info("Token rejected by identity provider: %s", e)
            return None
        return user.get("id")
