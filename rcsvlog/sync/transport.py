"""Push transports for sending log rows to a remote store.

Handles network delivery with retry logic. A transport returning normally
means the whole batch was acknowledged.
"""

import asyncio
import logging
from abc import ABC, abstractmethod

import httpx

from ..exceptions import RemoteSyncFailure

logger = logging.getLogger(__name__)

PUSH_PATH = "/api/logs/push"


class PushTransport(ABC):
    """Abstract push primitive."""

    @abstractmethod
    async def push(
        self,
        log_name: str,
        header: str,
        rows: list[str],
        first_row: int,
    ) -> None:
        """Deliver a batch of rows.

        Args:
            log_name: Log the rows belong to.
            header: Header line of the log.
            rows: Formatted data lines, oldest first.
            first_row: 1-based index of rows[0] within the log.

        Raises:
            RemoteSyncFailure: If the batch was not acknowledged.
        """
        pass

    async def close(self) -> None:
        """Release any network resources."""
        pass


class HttpPushTransport(PushTransport):
    """Pushes batches as JSON over HTTP with exponential backoff retry.

    The receiving end must tolerate duplicate batches; the Idempotency-Key
    header is derived from the row range.
    """

    def __init__(
        self,
        server_url: str,
        max_retries: int = 3,
        timeout: float = 30.0,
        backoff_seconds: float = 1.0,
    ):
        """Initialize the transport.

        Args:
            server_url: Base URL of the remote store (e.g., "http://db:8080").
            max_retries: Maximum attempts per push.
            timeout: Request timeout in seconds.
            backoff_seconds: Delay before the first retry, doubled each time.
        """
        self.server_url = server_url.rstrip("/")
        self.max_retries = max(max_retries, 1)
        self.timeout = timeout
        self.backoff_seconds = backoff_seconds
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.server_url,
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def push(
        self,
        log_name: str,
        header: str,
        rows: list[str],
        first_row: int,
    ) -> None:
        payload = {
            "log": log_name,
            "header": header.split(",") if header else [],
            "first_row": first_row,
            "rows": rows,
        }
        headers = {
            "Idempotency-Key": f"{log_name}:{first_row}-{first_row + len(rows) - 1}"
        }

        try:
            client = await self._get_client()
        except httpx.InvalidURL as e:
            raise RemoteSyncFailure(
                f"Invalid server URL {self.server_url}: {e}",
                log_name=log_name,
                retryable=False,
            ) from e
        backoff = self.backoff_seconds
        last_error = "no attempt made"

        for attempt in range(self.max_retries):
            try:
                response = await client.post(PUSH_PATH, json=payload, headers=headers)

                if response.status_code == 200:
                    return

                elif response.status_code >= 500:
                    # Server error, retry
                    last_error = f"HTTP {response.status_code}"
                    logger.warning(
                        f"Server error {response.status_code}, "
                        f"attempt {attempt + 1}/{self.max_retries}"
                    )
                else:
                    # Rejected, don't retry
                    raise RemoteSyncFailure(
                        f"HTTP {response.status_code}: {response.text}",
                        log_name=log_name,
                        status_code=response.status_code,
                        retryable=False,
                    )

            except httpx.ConnectError as e:
                last_error = f"Connection failed: {e}"
                logger.warning(
                    f"Connection failed, attempt {attempt + 1}/{self.max_retries}"
                )
            except httpx.TimeoutException as e:
                last_error = f"Request timeout: {e}"
                logger.warning(
                    f"Request timeout, attempt {attempt + 1}/{self.max_retries}"
                )
            except httpx.HTTPError as e:
                raise RemoteSyncFailure(
                    f"Request error: {e}", log_name=log_name
                ) from e

            # Exponential backoff
            if attempt < self.max_retries - 1:
                await asyncio.sleep(backoff)
                backoff *= 2

        raise RemoteSyncFailure(
            f"Max retries ({self.max_retries}) exceeded: {last_error}",
            log_name=log_name,
        )
