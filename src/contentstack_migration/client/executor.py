"""Rate-limit aware request execution.

RequestExecutor issues one logical request and classifies the response:

- 2xx: the parsed JSON body is returned
- 429: retried with a linear backoff (retry ``n`` waits ``n * base_delay``)
  until ``max_retries`` retries have been spent, then RateLimitError
- any other status: UnexpectedStatusError (NotFoundError for missing
  entities), never retried
- transport failures: TransportError, never retried
"""

import logging
import time
from collections.abc import Callable
from typing import Any

import httpx
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from ..exceptions import (
    FormatError,
    NotFoundError,
    RateLimitError,
    TransportError,
    UnexpectedStatusError,
)
from ..log import trace
from ..models.config import RetryConfig
from ..utils.deadline import Deadline


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(data, dict):
        return str(data.get("error_message") or data.get("message") or response.text)
    return response.text


def raise_for_response(response: httpx.Response) -> None:
    """Raise the exception matching a non-2xx response.

    Contentstack answers unknown uids with 422 and an error message such as
    "The Content Type 'blog' was not found", so those map to NotFoundError too.

    Raises:
        RateLimitError: On HTTP 429
        NotFoundError: On 404, or 422 reporting a missing entity
        UnexpectedStatusError: On any other non-2xx status
    """
    if response.is_success:
        return

    status_code = response.status_code
    message = _error_message(response)
    details = {"url": str(response.request.url), "status_code": status_code}

    if status_code == 429:
        retry_after = response.headers.get("Retry-After")
        raise RateLimitError(
            f"Rate limit exceeded: {message}",
            retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            details=details,
        )
    if status_code == 404 or (status_code == 422 and "not found" in message.lower()):
        raise NotFoundError(
            f"Resource not found: {message}",
            status_code=status_code,
            body=response.text,
            details=details,
        )
    raise UnexpectedStatusError(
        f"Unexpected response (HTTP {status_code}): {message}",
        status_code=status_code,
        body=response.text,
        details=details,
    )


class RequestExecutor:
    """Executes HTTP requests with bounded retries on rate limiting.

    The retry settings are read once at construction and stay fixed for the
    lifetime of the executor.

    Example:
        >>> executor = RequestExecutor(httpx.Client(), RetryConfig(max_retries=3))
        >>> executor.execute("GET", "https://api.contentstack.io/v3/content_types")
    """

    def __init__(
        self,
        http_client: httpx.Client,
        retry_config: RetryConfig | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        deadline: Deadline | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            http_client: Transport used for every attempt
            retry_config: Base delay and retry budget (defaults apply when None)
            sleep: Blocking sleep used between attempts
            deadline: Optional run deadline; waits that would cross it abort
            logger: Logger for attempt and rate-limit events
        """
        self._http = http_client
        self.retry_config = retry_config or RetryConfig()
        self._sleep_fn = sleep
        self.deadline = deadline
        self.log = logger or logging.getLogger(__name__)

    def execute(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Execute one logical request.

        Args:
            method: HTTP method
            url: Absolute URL
            params: Query parameters
            json: JSON body
            data: Form fields (multipart uploads)
            files: Multipart files; contents must be bytes so every attempt
                can resend them
            headers: Request headers

        Returns:
            Parsed JSON body ({} for empty responses)

        Raises:
            TransportError: On network failure (no retry)
            RateLimitError: When 429 persists after max_retries retries
            UnexpectedStatusError: On any other non-2xx response (no retry)
            FormatError: On a 2xx body that is not JSON
            DeadlineExceededError: When the run deadline is reached
        """
        attempt = 0

        @self._create_retry_decorator()  # type: ignore[misc]
        def _do_request() -> dict[str, Any]:
            nonlocal attempt
            attempt += 1
            if self.deadline:
                self.deadline.check(f"{method} {url}")

            trace(self.log, f"{method} {url} attempt #{attempt} params={params}")
            try:
                response = self._http.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    data=data,
                    files=files,
                    headers=headers,
                )
            except httpx.RequestError as e:
                self.log.error(f"Transport failure on {method} {url}: {e}")
                raise TransportError(
                    f"Request to {url} failed: {e}", details={"url": url, "method": method}
                ) from e

            trace(self.log, f"{method} {url} status={response.status_code}")
            try:
                raise_for_response(response)
            except RateLimitError as e:
                e.attempts = attempt
                raise

            if response.status_code == 204 or not response.content:
                return {}
            try:
                body: dict[str, Any] = response.json()
            except ValueError as e:
                content_type = response.headers.get("content-type", "unknown")
                raise FormatError(
                    f"Received non-JSON response (content-type: {content_type})",
                    details={"url": url, "body_preview": response.text[:500]},
                ) from e
            return body

        return _do_request()  # type: ignore[no-any-return]

    def _create_retry_decorator(self) -> Any:
        """Create the retry decorator: 429 only, linear backoff, bounded attempts."""
        delay = self.retry_config.base_delay
        return retry(
            stop=stop_after_attempt(self.retry_config.max_retries + 1),
            wait=wait_incrementing(start=delay, increment=delay),
            retry=retry_if_exception_type(RateLimitError),
            before_sleep=self._before_sleep,
            sleep=self._sleep,
            reraise=True,
        )

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        wait = retry_state.next_action.sleep if retry_state.next_action else 0.0
        attempt = retry_state.attempt_number
        self.log.warning(
            f"Rate limited on attempt #{attempt}, "
            f"retry {attempt}/{self.retry_config.max_retries} in {wait * 1000:.0f}ms"
        )

    def _sleep(self, seconds: float) -> None:
        if self.deadline:
            self.deadline.ensure_fits(seconds)
        trace(self.log, f"Waiting {seconds * 1000:.0f}ms before retry")
        self._sleep_fn(seconds)
