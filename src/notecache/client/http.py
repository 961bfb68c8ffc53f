"""HttpRemoteStoreClient — RemoteStoreClient over a JSON HTTP API."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from notecache.exceptions import NetworkFailure
from notecache.models import Page, Record

if TYPE_CHECKING:
    from .config import ClientConfig

logger = logging.getLogger(__name__)


class HttpRemoteStoreClient:
    """Talks to the notes API with a lazily created ``httpx.AsyncClient``.

    Endpoints (relative to ``config.base_url``)::

        GET    /notes/search?page=&path=&query=   -> {"total": int, "notes": [Record]}
        GET    /notes/tree                        -> [Record]
        GET    /notes?path=                       -> [Record]
        GET    /note?path=                        -> Record
        PUT    /note   {"path", "content", "sha"} -> Record
        DELETE /note?path=&sha=

    There is no retry: every failure surfaces as :class:`NetworkFailure`.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            headers = {
                "Content-Type": "application/json",
                "Accept": "application/json",
                **self.config.headers,
            }
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                headers=headers,
                timeout=httpx.Timeout(self.config.timeout),
                follow_redirects=self.config.follow_redirects,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpRemoteStoreClient:
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # RemoteStoreClient
    # ------------------------------------------------------------------

    async def search(
        self,
        page: int | None = None,
        path: str | None = None,
        query: str | None = None,
    ) -> Page:
        params = _params(page=page, path=path, query=query)
        data = await self._request("GET", "/notes/search", params=params)
        return _parse(Page, data)

    async def list_tree(self) -> list[Record]:
        data = await self._request("GET", "/notes/tree")
        return _parse_records(data)

    async def list_directory(self, path: str) -> list[Record]:
        data = await self._request("GET", "/notes", params={"path": path})
        return _parse_records(data)

    async def get_file(self, path: str) -> Record:
        data = await self._request("GET", "/note", params={"path": path})
        return _parse(Record, data)

    async def save_file(self, path: str, content: str, sha: str | None = None) -> Record:
        body = {"path": path, "content": content, "sha": sha}
        data = await self._request("PUT", "/note", json_body=body)
        return _parse(Record, data)

    async def delete_file(self, path: str, sha: str | None = None) -> None:
        await self._request("DELETE", "/note", params=_params(path=path, sha=sha), expect_body=False)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
        expect_body: bool = True,
    ) -> Any:
        try:
            response = await self.client.request(method, url, params=params, json=json_body)
        except httpx.HTTPError as err:
            logger.warning("%s %s failed: %s", method, url, err)
            raise NetworkFailure(f"{method} {url} failed: {err}") from err
        return self._handle_response(response, expect_body=expect_body)

    def _handle_response(self, response: httpx.Response, *, expect_body: bool = True) -> Any:
        """Map error statuses and undecodable bodies to NetworkFailure."""
        request = response.request
        if response.status_code >= 400:
            logger.warning(
                "%s %s returned %d", request.method, request.url.path, response.status_code
            )
            raise NetworkFailure(
                f"{request.method} {request.url.path} returned {response.status_code}"
            )

        if not expect_body:
            return None

        try:
            return response.json()
        except json.JSONDecodeError as err:
            raise NetworkFailure("Invalid response format from API") from err


def _params(**values: Any) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


def _parse(model: type[Any], data: Any) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as err:
        raise NetworkFailure(f"Malformed {model.__name__} payload: {err}") from err


def _parse_records(data: Any) -> list[Record]:
    if not isinstance(data, list):
        raise NetworkFailure(f"Expected a list of records, got {type(data).__name__}")
    return [_parse(Record, item) for item in data]
