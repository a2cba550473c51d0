"""Pytest configuration and shared fixtures."""

import json
import re
from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest
import respx

from contentstack_migration import ContentstackClient, RetryConfig, StackConfig

SOURCE_HOST = "https://source.contentstack.test"
DEST_HOST = "https://dest.contentstack.test"

# Fields the fake server adds to every record it returns
SERVER_FIELDS = {
    "created_at": "2024-01-01T00:00:00.000Z",
    "created_by": "blt_user",
    "updated_by": "blt_user",
    "_version": 1,
    "ACL": {},
}

_MULTIPART_FIELD = re.compile(
    rb'name="([^"]+)"(?:; filename="([^"]*)")?\r\n(?:[^\r\n]+\r\n)*\r\n(.*?)\r\n--', re.S
)

_ENVELOPES = {
    "content_types": "content_type",
    "global_fields": "global_field",
    "assets": "asset",
    "taxonomies": "taxonomy",
    "entries": "entry",
    "terms": "term",
}


class FakeStack:
    """In-memory Contentstack stack served through respx.

    Implements the list (include_count/limit/skip), get-by-uid, create,
    update, taxonomy export and asset download endpoints. Unknown uids are
    answered with 422 and a "was not found" message, like the real API.
    """

    def __init__(self, host: str) -> None:
        self.host = host
        self.collections: dict[str, dict[str, dict[str, Any]]] = {
            key: {} for key in ("content_types", "global_fields", "assets", "taxonomies")
        }
        self.entries: dict[str, dict[str, dict[str, Any]]] = {}
        self.terms: dict[str, dict[str, dict[str, Any]]] = {}
        self.binaries: dict[str, bytes] = {}
        self.requests: list[tuple[str, str]] = []
        self.writes: list[tuple[str, str, str]] = []
        self.throttled = 0
        self._asset_counter = 0

    # Seeding

    def seed(
        self, collection: str, records: list[dict[str, Any]], parent: str | None = None
    ) -> None:
        for record in records:
            self._bucket(collection, parent)[record["uid"]] = dict(record)

    def seed_asset(self, uid: str, filename: str, content: bytes, **fields: Any) -> None:
        self.collections["assets"][uid] = {
            "uid": uid,
            "filename": filename,
            "title": fields.pop("title", filename),
            "url": f"{self.host}/binaries/{uid}/{filename}",
            **fields,
        }
        self.binaries[uid] = content

    def throttle(self, times: int) -> None:
        """Answer the next ``times`` API requests with HTTP 429."""
        self.throttled = times

    # Helpers

    def _bucket(self, collection: str, parent: str | None = None) -> dict[str, dict[str, Any]]:
        if collection == "entries":
            return self.entries.setdefault(parent or "", {})
        if collection == "terms":
            return self.terms.setdefault(parent or "", {})
        return self.collections[collection]

    @staticmethod
    def _served(record: dict[str, Any]) -> dict[str, Any]:
        served = {**SERVER_FIELDS, **record}
        served.setdefault("updated_at", "2024-03-01T00:00:00.000Z")
        return served

    @staticmethod
    def _not_found(kind: str, uid: str) -> httpx.Response:
        return httpx.Response(
            422, json={"error_message": f"The {kind} '{uid}' was not found.", "error_code": 118}
        )

    def _route(self, parts: list[str]) -> tuple[str, str | None, str | None]:
        """Map path segments to (collection, parent uid, item uid)."""
        if parts[0] == "content_types" and len(parts) >= 3 and parts[2] == "entries":
            return "entries", parts[1], parts[3] if len(parts) > 3 else None
        if parts[0] == "taxonomies" and len(parts) >= 3 and parts[2] == "terms":
            return "terms", parts[1], parts[3] if len(parts) > 3 else None
        return parts[0], None, parts[1] if len(parts) > 1 else None

    # Request handling

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append((request.method, path))

        if path.startswith("/binaries/"):
            uid = path.split("/")[2]
            if uid not in self.binaries:
                return httpx.Response(404, text="missing binary")
            return httpx.Response(200, content=self.binaries[uid])

        if self.throttled:
            self.throttled -= 1
            return httpx.Response(429, json={"error_message": "Too many requests"})

        parts = path.removeprefix("/v3/").strip("/").split("/")
        if parts[0] == "taxonomies" and len(parts) == 3 and parts[2] == "export":
            return self._export_taxonomy(parts[1])

        collection, parent, uid = self._route(parts)
        bucket = self._bucket(collection, parent)

        if request.method == "GET" and uid is None:
            return self._list(request, collection, bucket)
        if request.method == "GET":
            if uid not in bucket:
                return self._not_found(_ENVELOPES[collection], uid)
            return httpx.Response(200, json={_ENVELOPES[collection]: self._served(bucket[uid])})
        if request.method == "POST":
            record = self._read_body(request, collection)
            bucket[record["uid"]] = record
            self.writes.append(("create", collection, record["uid"]))
            return httpx.Response(201, json={_ENVELOPES[collection]: self._served(record)})
        if request.method == "PUT":
            if uid not in bucket:
                return self._not_found(_ENVELOPES[collection], uid)
            record = {**self._read_body(request, collection, uid), "uid": uid}
            bucket[uid] = record
            self.writes.append(("update", collection, uid))
            return httpx.Response(200, json={_ENVELOPES[collection]: self._served(record)})
        return httpx.Response(405)

    def _list(
        self, request: httpx.Request, collection: str, bucket: dict[str, dict[str, Any]]
    ) -> httpx.Response:
        items = list(bucket.values())
        limit = int(request.url.params.get("limit", 100))
        skip = int(request.url.params.get("skip", 0))
        body: dict[str, Any] = {collection: [self._served(i) for i in items[skip : skip + limit]]}
        if request.url.params.get("include_count") == "true":
            body["count"] = len(items)
        return httpx.Response(200, json=body)

    def _export_taxonomy(self, uid: str) -> httpx.Response:
        if uid not in self.collections["taxonomies"]:
            return self._not_found("taxonomy", uid)
        return httpx.Response(
            200,
            json={
                "taxonomy": self._served(self.collections["taxonomies"][uid]),
                "terms": [
                    {**term, "depth": 1, "taxonomy_uid": uid}
                    for term in self.terms.get(uid, {}).values()
                ],
            },
        )

    def _read_body(
        self, request: httpx.Request, collection: str, uid: str | None = None
    ) -> dict[str, Any]:
        body = request.read()
        if collection != "assets":
            return dict(json.loads(body)[_ENVELOPES[collection]])

        fields: dict[str, Any] = {}
        content = b""
        for name, filename, value in _MULTIPART_FIELD.findall(body):
            if name == b"asset[upload]":
                fields["filename"] = filename.decode()
                content = value
            else:
                fields[name.decode()[len("asset[") : -1]] = value.decode()

        if uid is None:
            self._asset_counter += 1
            uid = f"blt_asset_{self._asset_counter}"
        self.binaries[uid] = content
        return {"uid": uid, **fields}


@pytest.fixture
def stack_router() -> Iterator[respx.MockRouter]:
    """respx router active for the duration of a test."""
    with respx.mock(assert_all_called=False) as router:
        yield router


@pytest.fixture
def fake_stack(stack_router: respx.MockRouter) -> Callable[[str], FakeStack]:
    """Factory installing a FakeStack for a host on the active router."""

    def _install(host: str = SOURCE_HOST) -> FakeStack:
        stack = FakeStack(host)
        stack_router.route(host=httpx.URL(host).host).mock(side_effect=stack.handle)
        return stack

    return _install


@pytest.fixture
def stack_config() -> StackConfig:
    """Configuration pointing at the source test host with fast retries."""
    return StackConfig(
        host=SOURCE_HOST,
        api_key="blt_test_key",
        management_token="cs_test_token",  # noqa: S106
        retry=RetryConfig(base_delay_ms=10, max_retries=3),
    )


@pytest.fixture
def dest_config(stack_config: StackConfig) -> StackConfig:
    return stack_config.model_copy(update={"host": DEST_HOST})


@pytest.fixture
def sleeps() -> list[float]:
    """Waits requested by the executor, in seconds."""
    return []


@pytest.fixture
def client(stack_config: StackConfig, sleeps: list[float]) -> Iterator[ContentstackClient]:
    """Client for the source host that records retry waits instead of sleeping."""
    with ContentstackClient(stack_config, sleep=sleeps.append) as c:
        yield c


@pytest.fixture
def dest_client(dest_config: StackConfig, sleeps: list[float]) -> Iterator[ContentstackClient]:
    with ContentstackClient(dest_config, sleep=sleeps.append) as c:
        yield c
