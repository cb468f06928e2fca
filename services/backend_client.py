"""HTTP client for the answer backend.

The backend owns all reasoning. This client only delivers the question with
its thread context and retries transient failures with exponential backoff.
"""

import asyncio
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from config.settings import BackendSettings
from models.conversation import BackendAnswer

logger = logging.getLogger(__name__)

# HTTP client configuration constants
DEFAULT_REQUEST_TIMEOUT = 30.0  # Per-attempt timeout in seconds
DEFAULT_CONNECT_TIMEOUT = 5.0  # Connection timeout in seconds
DEFAULT_MAX_RETRIES = 3  # Maximum attempts
BACKOFF_BASE = 2  # Delay before the next attempt is BACKOFF_BASE ** attempt seconds


class BackendRequestError(Exception):
    """A single backend attempt failed."""

    pass


class BackendFailure(Exception):
    """Raised when every backend attempt failed.

    Attributes:
        attempts: Number of attempts made
        last_cause: Error from the final attempt
    """

    def __init__(self, attempts: int, last_cause: BaseException):
        self.attempts = attempts
        self.last_cause = last_cause
        super().__init__(f"Backend API failed after {attempts} attempts: {last_cause}")


class BackendClient:
    """Client for the answer backend's /chat endpoint with retry logic."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        bearer_token: str | None = None,
        model: str | None = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ):
        """Initialize backend client.

        Args:
            base_url: Base URL of the backend
            bearer_token: Token sent as ``Authorization: Bearer``
            model: Model name forwarded with every request
            timeout: Independent timeout for each attempt, in seconds
            max_retries: Total attempts before giving up
        """
        self.base_url = base_url.rstrip("/")
        self.bearer_token = bearer_token
        self.model = model
        self.timeout = httpx.Timeout(
            timeout, connect=min(DEFAULT_CONNECT_TIMEOUT, timeout)
        )
        self.timeout_seconds = timeout
        self.max_retries = max_retries
        # Persistent HTTP client to reuse connections
        self._client: httpx.AsyncClient | None = None

        if not self.bearer_token:
            logger.warning("BACKEND_BEARER_TOKEN not set - backend calls are disabled")

    @classmethod
    def from_settings(cls, settings: BackendSettings) -> "BackendClient":
        token = settings.bearer_token.get_secret_value() if settings.bearer_token else None
        return cls(
            base_url=settings.url,
            bearer_token=token,
            model=settings.model,
            timeout=settings.timeout,
            max_retries=settings.max_retries,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.bearer_token)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create persistent HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self):
        """Close the HTTP client and cleanup resources."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def ask(self, text: str, context: dict[str, Any]) -> BackendAnswer:
        """Send a question to the backend, retrying on any failure.

        Args:
            text: The user's message with any leading mention stripped
            context: Thread context. ``conversation_id`` is present only when
                a prior conversation was located; its absence tells the
                backend to start fresh.

        Returns:
            The parsed backend answer

        Raises:
            BackendFailure: After ``max_retries`` failed attempts
        """
        last_error: BaseException | None = None

        for attempt in range(1, self.max_retries + 1):
            logger.info(
                f"Backend API attempt {attempt}/{self.max_retries}",
                extra={"attempt": attempt, "conversation_id": context.get("conversation_id")},
            )
            try:
                return await self._request(text, context)
            except Exception as e:
                last_error = e
                logger.warning(
                    f"Backend attempt {attempt} failed: {e}",
                    extra={"attempt": attempt, "error_type": type(e).__name__},
                )

            if attempt == self.max_retries:
                break

            delay = BACKOFF_BASE**attempt
            logger.info(f"Retrying in {delay}s...", extra={"attempt": attempt})
            await asyncio.sleep(delay)

        raise BackendFailure(self.max_retries, last_error)  # type: ignore[arg-type]

    async def _request(self, text: str, context: dict[str, Any]) -> BackendAnswer:
        """Perform one attempt. Every failure surfaces as BackendRequestError."""
        url = f"{self.base_url}/chat"
        request_body: dict[str, Any] = {"message": text, "context": context}
        if self.model:
            request_body["model"] = self.model

        headers = {
            "Authorization": f"Bearer {self.bearer_token}",
            "Content-Type": "application/json",
        }

        try:
            client = await self._get_client()
            response = await asyncio.wait_for(
                client.post(url, json=request_body, headers=headers),
                timeout=self.timeout_seconds,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            raise BackendRequestError(
                f"Backend request timeout after {self.timeout_seconds}s"
            ) from e
        except httpx.ConnectError as e:
            raise BackendRequestError(f"Cannot connect to backend: {e}") from e
        except httpx.HTTPError as e:
            raise BackendRequestError(f"Backend transport error: {e}") from e

        if response.status_code == 429:
            raise BackendRequestError("Backend rate limited (HTTP 429)")

        if response.status_code == 401:
            raise BackendRequestError(
                "Backend authentication failed (HTTP 401) - check BACKEND_BEARER_TOKEN"
            )

        if not 200 <= response.status_code < 300:
            raise BackendRequestError(
                f"Backend returned HTTP {response.status_code}: {response.text[:200]}"
            )

        try:
            return BackendAnswer.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise BackendRequestError(f"Backend returned malformed body: {e}") from e
