"""Synchronous HTTP client for the Contentstack Content Management API.

All JSON calls go through RequestExecutor, so rate limiting is handled in one
place. Asset binaries are streamed straight to disk.
"""

import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx

from ..exceptions import ContentstackError, PartialDownloadError
from ..models.config import StackConfig
from ..utils.deadline import Deadline
from .executor import RequestExecutor, raise_for_response

API_PREFIX = "v3"


class ContentstackClient:
    """Synchronous client bound to one stack and branch.

    Example:
        ```python
        from contentstack_migration import ContentstackClient, StackConfig

        config = StackConfig(api_key="blt...", management_token="cs...")

        with ContentstackClient(config) as client:
            body = client.get("content_types", params={"include_count": "true"})
            print(body["count"])
        ```
    """

    def __init__(
        self,
        config: StackConfig,
        http_client: httpx.Client | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        deadline: Deadline | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Stack configuration
            http_client: HTTP client (defaults to a pooled httpx.Client)
            sleep: Sleep used between rate-limit retries
            deadline: Optional overall run deadline
            logger: Injected logger (defaults to the module logger)
        """
        self.config = config
        self.base_url = config.host
        self.log = logger or logging.getLogger(__name__)

        self._client = http_client or self._create_default_http_client()
        self._owns_client = http_client is None
        self.executor = RequestExecutor(
            self._client,
            config.retry,
            sleep=sleep,
            deadline=deadline,
            logger=self.log,
        )

        self.log.info(
            f"Initialized Contentstack client for {self.base_url} (branch: {config.branch})"
        )

    def _create_default_http_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self.config.timeout,
            verify=self.config.verify_ssl,
            limits=httpx.Limits(
                max_connections=self.config.max_connections,
                max_keepalive_connections=self.config.max_connections,
            ),
        )

    def __enter__(self) -> "ContentstackClient":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            self._client.close()
        self.log.debug("Closed Contentstack client")

    @property
    def deadline(self) -> Deadline | None:
        return self.executor.deadline

    @deadline.setter
    def deadline(self, value: Deadline | None) -> None:
        self.executor.deadline = value

    def _get_headers(self, *, json_body: bool = True) -> dict[str, str]:
        """Build authentication headers.

        Args:
            json_body: Include the JSON content type (False for multipart)
        """
        headers = {
            "api_key": self.config.api_key,
            "authorization": self.config.get_management_token(),
            "branch": self.config.branch,
        }
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    def build_url(self, path: str) -> str:
        """Build a full API URL.

        Args:
            path: Path such as "content_types" or "/v3/content_types/blog"
        """
        path = path.strip("/")
        if not path.startswith(f"{API_PREFIX}/"):
            path = f"{API_PREFIX}/{path}"
        return f"{self.base_url}/{path}"

    def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make a JSON request through the rate-limit aware executor."""
        return self.executor.execute(
            method,
            self.build_url(path),
            params=params,
            json=json,
            headers=self._get_headers(),
        )

    def get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: dict[str, Any]) -> dict[str, Any]:
        return self.request("POST", path, json=json)

    def put(self, path: str, json: dict[str, Any]) -> dict[str, Any]:
        return self.request("PUT", path, json=json)

    def delete(self, path: str) -> dict[str, Any]:
        return self.request("DELETE", path)

    def upload(
        self,
        method: str,
        path: str,
        file_path: str | Path,
        *,
        field: str = "asset[upload]",
        form: dict[str, Any] | None = None,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> dict[str, Any]:
        """Upload a file as multipart form data.

        The file is read into memory once so rate-limit retries can resend it.

        Args:
            method: POST to create, PUT to replace
            path: API path (e.g. "assets")
            file_path: Local file to upload
            field: Multipart field name for the file
            form: Extra form fields
            filename: File name reported to the server (defaults to the local name)
            content_type: MIME type of the file

        Raises:
            FileNotFoundError: If the file does not exist
        """
        path_obj = Path(file_path)
        content = path_obj.read_bytes()
        file_tuple: tuple[Any, ...] = (filename or path_obj.name, content)
        if content_type:
            file_tuple = (*file_tuple, content_type)

        return self.executor.execute(
            method,
            self.build_url(path),
            data=form,
            files={field: file_tuple},
            headers=self._get_headers(json_body=False),
        )

    def download_file(self, url: str, save_path: str | Path) -> Path:
        """Stream a remote binary to ``save_path``.

        Any failure removes the partially written file, so a later run never
        sees a truncated artifact.

        Args:
            url: Absolute asset URL
            save_path: Destination file

        Returns:
            The destination path

        Raises:
            PartialDownloadError: On any transport, status or I/O failure
        """
        path = Path(save_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        if self.deadline:
            self.deadline.check(f"download of {url}")

        try:
            total_bytes = 0
            with self._client.stream("GET", url) as response:
                if not response.is_success:
                    response.read()
                    raise_for_response(response)
                with open(path, "wb") as f:
                    for chunk in response.iter_bytes():
                        f.write(chunk)
                        total_bytes += len(chunk)
            self.log.debug(f"Downloaded {total_bytes} bytes: {url} > {path}")
            return path

        except (httpx.RequestError, OSError, ContentstackError) as e:
            if path.exists():
                path.unlink()
                self.log.debug(f"Deleted partial file: {path}")
            raise PartialDownloadError(
                f"Download failed for {url}: {e}", details={"url": url, "path": str(path)}
            ) from e
