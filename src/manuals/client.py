"""HTTP client for the Manuals API."""
from __future__ import annotations

import json
import logging
import posixpath
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from email.message import Message
from typing import Any, TypeVar

import httpx
import pydantic

from manuals import __version__
from manuals.exceptions import APIError, DecodeError, RequestError, ValidationError
from manuals.models import (
    Device,
    DevicesResponse,
    Document,
    DocumentsResponse,
    SearchResponse,
)

logger = logging.getLogger(__name__)

API_VERSION = "2025.12"
API_KEY_HEADER = "X-API-Key"
DEFAULT_TIMEOUT = 30.0
DOWNLOAD_CHUNK_SIZE = 64 * 1024

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


def parse_content_disposition(header: str | None) -> str:
    """Return the filename suggested by a Content-Disposition header.

    Handles multiple parameters, quoted and unquoted values, and RFC 2231
    encoded names. Directory components are dropped. Returns an empty string
    when the header is absent or carries no usable filename.
    """
    if not header:
        return ""
    msg = Message()
    msg["Content-Disposition"] = header
    try:
        filename = msg.get_filename()
    except (ValueError, LookupError):
        return ""
    if not filename:
        return ""
    name = posixpath.basename(filename.replace("\\", "/")).strip()
    return "" if name in ("", ".", "..") else name


def _error_message(response: httpx.Response) -> str:
    """Best-effort message from an error body: ``{"error": ...}`` or raw text."""
    text = response.text
    try:
        body = json.loads(text)
    except ValueError:
        return text
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        return body["error"]
    return text


@dataclass
class Download:
    """An open document download.

    Only valid inside the ``ManualsClient.download_document`` block that
    produced it; the underlying stream is released when the block exits.
    """

    response: httpx.Response
    filename: str = ""

    def iter_bytes(self, chunk_size: int = DOWNLOAD_CHUNK_SIZE) -> Iterator[bytes]:
        """Yield the body in chunks without buffering it in memory."""
        try:
            yield from self.response.iter_bytes(chunk_size)
        except httpx.HTTPError as e:
            raise RequestError(f"request failed: {e}") from e


class ManualsClient:
    """Synchronous client for the Manuals REST API.

    Every call is a single authenticated GET against
    ``<base_url>/api/<API_VERSION>/<resource>``; failures are raised
    immediately without retries.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._http = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={
                API_KEY_HEADER: api_key,
                "User-Agent": f"manuals-cli/{__version__}",
            },
        )

    def __enter__(self) -> ManualsClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        self._http.close()

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/api/{API_VERSION}{path}"

    # -- requests -----------------------------------------------------------

    def _send(
        self,
        path: str,
        params: dict[str, str] | None = None,
        *,
        stream: bool = False,
    ) -> httpx.Response:
        """Send a GET request, raising RequestError on transport failure."""
        url = self.url_for(path)
        try:
            request = self._http.build_request("GET", url, params=params or None)
        except (httpx.InvalidURL, httpx.UnsupportedProtocol, ValueError) as e:
            raise RequestError(f"failed to create request: {e}") from e

        logger.debug("GET %s", request.url)
        try:
            response = self._http.send(request, stream=stream)
        except httpx.HTTPError as e:
            raise RequestError(f"request failed: {e}") from e
        logger.debug("GET %s -> %d", request.url, response.status_code)
        return response

    def _get(
        self,
        path: str,
        model: type[ModelT],
        params: dict[str, str] | None = None,
    ) -> ModelT:
        """Perform a GET request and decode the JSON body into ``model``."""
        response = self._send(path, params)
        if not response.is_success:
            raise APIError(response.status_code, _error_message(response))

        try:
            return model.model_validate_json(response.content)
        except pydantic.ValidationError as e:
            raise DecodeError(f"failed to decode response: {e}") from e

    @staticmethod
    def _page_params(limit: int, offset: int, **filters: str) -> dict[str, str]:
        params: dict[str, str] = {}
        if limit > 0:
            params["limit"] = str(limit)
        if offset > 0:
            params["offset"] = str(offset)
        for name, value in filters.items():
            if value:
                params[name] = value
        return params

    @staticmethod
    def _require_id(kind: str, value: str) -> str:
        if not value:
            raise ValidationError(f"{kind} id is required")
        return value

    # -- operations ---------------------------------------------------------

    def search(self, query: str, limit: int = 0) -> SearchResponse:
        """Search for devices matching ``query``.

        ``limit <= 0`` leaves the result count to the server default.
        """
        if not query:
            raise ValidationError("search query is required")
        params = {"q": query}
        if limit > 0:
            params["limit"] = str(limit)
        return self._get("/search", SearchResponse, params)

    def list_devices(
        self,
        limit: int = 0,
        offset: int = 0,
        domain: str = "",
        device_type: str = "",
    ) -> DevicesResponse:
        """List devices. Zero and empty filters are left out of the query."""
        params = self._page_params(limit, offset, domain=domain, type=device_type)
        return self._get("/devices", DevicesResponse, params)

    def get_device(self, device_id: str) -> Device:
        """Get a device by ID. The ID is passed through to the URL verbatim."""
        return self._get(f"/devices/{self._require_id('device', device_id)}", Device)

    def list_documents(
        self,
        limit: int = 0,
        offset: int = 0,
        device_id: str = "",
    ) -> DocumentsResponse:
        """List documents, optionally only those of one device."""
        params = self._page_params(limit, offset, device_id=device_id)
        return self._get("/documents", DocumentsResponse, params)

    def get_document(self, document_id: str) -> Document:
        """Get document metadata by ID."""
        return self._get(
            f"/documents/{self._require_id('document', document_id)}", Document
        )

    @contextmanager
    def download_document(self, document_id: str) -> Iterator[Download]:
        """Open a streamed download of a document's file.

        Usage:
            with client.download_document(doc_id) as download:
                for chunk in download.iter_bytes():
                    ...

        Raises:
            APIError: On a non-2xx response; the body is read and released first.
            RequestError: On transport failure.
        """
        path = f"/documents/{self._require_id('document', document_id)}/download"
        response = self._send(path, stream=True)
        try:
            if not response.is_success:
                try:
                    response.read()
                except httpx.HTTPError as e:
                    raise RequestError(f"request failed: {e}") from e
                raise APIError(response.status_code, _error_message(response))
            yield Download(
                response=response,
                filename=parse_content_disposition(
                    response.headers.get("Content-Disposition")
                ),
            )
        finally:
            response.close()
