# pyright: reportAny=false
"""S3-compatible HTTP blob store.

This module provides HttpBlobStore, a BlobStore implementation that talks to
an S3-compatible endpoint using path-style addressing
(``{endpoint}/{bucket}/{key}``). Conditional writes are sent with an
``If-Match`` header carrying the ETag read earlier; the store answers
``412 Precondition Failed`` when another writer got there first.

Connection failures and timeouts are retried a bounded number of times at
the transport level. Everything else is mapped to the deckstore error
taxonomy and raised immediately.
"""

import xml.etree.ElementTree as ET
from types import TracebackType
from typing import TYPE_CHECKING, Final, Self
from urllib.parse import quote

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from deckstore.exceptions import BlobNotFoundError, ConflictError, TransientIOError

from ._protocol import Blob

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

_CONFLICT_STATUSES: Final = frozenset({409, 412})
_WRITE_OK_STATUSES: Final = frozenset({200, 201, 204})
_DELETE_OK_STATUSES: Final = frozenset({200, 202, 204, 404})


def _local_name(tag: str) -> str:
    """Strip an XML namespace from an element tag."""
    return tag.rsplit("}", 1)[-1]


def _etag(response: httpx.Response, key: str) -> str:
    """Extract the unquoted ETag from a response.

    Args:
        response: The store response.
        key: Object key, for error context.

    Returns:
        The ETag without surrounding quotes.

    Raises:
        TransientIOError: If the response carries no ETag.
    """
    etag = response.headers.get("etag")
    if not etag:
        msg = f"Store returned no ETag for '{key}'"
        raise TransientIOError(msg, key=key)
    return etag.strip().removeprefix("W/").strip('"')


def parse_list_objects(payload: bytes) -> tuple[list[str], str | None]:
    """Parse a ListObjectsV2 XML response.

    Args:
        payload: Raw XML body.

    Returns:
        Tuple of (keys on this page, continuation token or None when the
        listing is complete).

    Raises:
        ET.ParseError: If the payload is not well-formed XML.
    """
    root = ET.fromstring(payload)  # noqa: S314
    keys: list[str] = []
    truncated = False
    token: str | None = None

    for element in root:
        name = _local_name(element.tag)
        if name == "Contents":
            for child in element:
                if _local_name(child.tag) == "Key" and child.text:
                    keys.append(child.text)
        elif name == "IsTruncated":
            truncated = (element.text or "").strip().lower() == "true"
        elif name == "NextContinuationToken":
            token = element.text

    return keys, token if truncated else None


class HttpBlobStore:
    """BlobStore backed by an S3-compatible HTTP endpoint.

    The store owns its httpx client unless one is injected. Use it as an
    async context manager (or call ``aclose``) to release connections.

    Example:
        >>> async with HttpBlobStore("https://s3.example.com", "decks") as store:
        ...     keys = await store.list_prefix("collections/user-1/")
    """

    __slots__ = (
        "_bucket",
        "_client",
        "_content_type",
        "_logger",
        "_owns_client",
        "_retrying",
    )

    def __init__(  # noqa: PLR0913
        self,
        endpoint: str,
        bucket: str,
        *,
        auth: httpx.Auth | None = None,
        timeout: float = 10.0,
        transport_retries: int = 3,
        transport_backoff: float = 0.5,
        content_type: str = "application/json",
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
    ) -> None:
        """Initialize the store.

        Args:
            endpoint: Base URL of the S3-compatible service.
            bucket: Bucket name; objects live under ``/{bucket}/``.
            auth: Optional httpx auth used to sign requests.
            timeout: Per-request timeout in seconds.
            transport_retries: Total attempts for requests that fail to
                connect or time out. 1 disables transport retries.
            transport_backoff: Multiplier for the exponential wait between
                transport attempts, in seconds.
            content_type: Content-Type sent with every write.
            client: Pre-built client to use instead of creating one. The
                caller keeps ownership and must close it.
            transport: Custom transport for a newly created client.
            logger: Optional logger for request logging.
        """
        self._bucket: str = bucket
        self._content_type: str = content_type
        self._logger: FilteringBoundLogger | None = logger
        self._owns_client: bool = client is None
        self._client: httpx.AsyncClient = client or httpx.AsyncClient(
            base_url=endpoint,
            auth=auth,
            timeout=timeout,
            transport=transport,
        )
        self._retrying: AsyncRetrying = AsyncRetrying(
            retry=retry_if_exception_type(
                (httpx.ConnectError, httpx.TimeoutException)
            ),
            stop=stop_after_attempt(max(1, transport_retries)),
            wait=wait_exponential(
                multiplier=transport_backoff,
                min=transport_backoff,
                max=transport_backoff * 4,
            ),
            reraise=True,
        )

    async def __aenter__(self) -> Self:
        """Enter async context manager.

        Returns:
            Self for use in async with statement.
        """
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit async context manager, closing an owned client."""
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying client if this store created it."""
        if self._owns_client:
            await self._client.aclose()

    def _object_path(self, key: str) -> str:
        return f"/{self._bucket}/{quote(key, safe='/')}"

    async def _send(
        self,
        method: str,
        url: str,
        *,
        key: str,
        write: bool = False,
        **kwargs: object,
    ) -> tuple[httpx.Response, int]:
        """Send a request, retrying connection failures and timeouts.

        Args:
            method: HTTP method.
            url: Request path.
            key: Object key, for errors and logs.
            write: Whether the request changes the object. A failed write
                is reported as possibly applied.
            **kwargs: Passed through to the client.

        Returns:
            The response and the number of attempts it took.

        Raises:
            TransientIOError: If the request cannot be completed.
        """
        retrying = self._retrying.copy()
        try:
            response: httpx.Response = await retrying(
                self._client.request, method, url, **kwargs
            )
        except httpx.HTTPError as e:
            if self._logger:
                self._logger.warning(
                    "blob_request_failed", method=method, key=key, error=str(e)
                )
            msg = f"{method} '{key}' failed: {e}"
            raise TransientIOError(msg, key=key, cause=e, maybe_applied=write) from e

        if self._logger:
            self._logger.debug(
                "blob_request", method=method, key=key, status=response.status_code
            )
        attempts: int = retrying.statistics.get("attempt_number", 1)
        return response, attempts

    @staticmethod
    def _unexpected(
        response: httpx.Response,
        method: str,
        key: str,
        *,
        maybe_applied: bool = False,
    ) -> TransientIOError:
        msg = f"{method} '{key}' returned unexpected status {response.status_code}"
        return TransientIOError(msg, key=key, maybe_applied=maybe_applied)

    async def get(self, key: str) -> Blob:
        """Fetch an object and its ETag.

        Args:
            key: The object key.

        Returns:
            The stored bytes and version token.

        Raises:
            BlobNotFoundError: If the store answers 404.
            TransientIOError: On transport failure or unexpected status.
        """
        response, _ = await self._send("GET", self._object_path(key), key=key)
        if response.status_code == httpx.codes.NOT_FOUND:
            msg = f"No object stored under '{key}'"
            raise BlobNotFoundError(msg, key=key)
        if response.status_code != httpx.codes.OK:
            raise self._unexpected(response, "GET", key)
        return Blob(data=response.content, version=_etag(response, key))

    async def put(
        self,
        key: str,
        data: bytes,
        *,
        expected_version: str | None = None,
    ) -> str:
        """Write an object, sending If-Match when a version is expected.

        Args:
            key: The object key.
            data: Bytes to store.
            expected_version: ETag the object must currently have.

        Returns:
            The ETag of the newly written object.

        Raises:
            ConflictError: If the store rejects the precondition.
            TransientIOError: On transport failure or unexpected status.
        """
        headers = {"Content-Type": self._content_type}
        if expected_version is not None:
            headers["If-Match"] = f'"{expected_version}"'

        response, attempts = await self._send(
            "PUT",
            self._object_path(key),
            key=key,
            write=True,
            content=data,
            headers=headers,
        )
        status = response.status_code
        if status in _CONFLICT_STATUSES or (
            expected_version is not None and status == httpx.codes.NOT_FOUND
        ):
            msg = f"Version mismatch writing '{key}'"
            raise ConflictError(
                msg,
                key=key,
                expected_version=expected_version,
                maybe_applied=attempts > 1,
            )
        if status not in _WRITE_OK_STATUSES:
            raise self._unexpected(response, "PUT", key, maybe_applied=attempts > 1)
        return _etag(response, key)

    async def delete(self, key: str) -> None:
        """Delete an object; a missing object is not an error.

        Args:
            key: The object key.

        Raises:
            TransientIOError: On transport failure or unexpected status.
        """
        response, _ = await self._send("DELETE", self._object_path(key), key=key)
        if response.status_code not in _DELETE_OK_STATUSES:
            raise self._unexpected(response, "DELETE", key)

    async def list_prefix(self, prefix: str) -> list[str]:
        """List keys under a prefix, following continuation tokens.

        Args:
            prefix: Key prefix to match.

        Returns:
            Every matching key across all result pages.

        Raises:
            TransientIOError: On transport failure, unexpected status or a
                malformed listing.
        """
        keys: list[str] = []
        token: str | None = None

        while True:
            params = {"list-type": "2", "prefix": prefix}
            if token is not None:
                params["continuation-token"] = token

            response, _ = await self._send(
                "GET", f"/{self._bucket}", key=prefix, params=params
            )
            if response.status_code != httpx.codes.OK:
                raise self._unexpected(response, "LIST", prefix)

            try:
                page, token = parse_list_objects(response.content)
            except ET.ParseError as e:
                msg = f"Malformed listing for prefix '{prefix}': {e}"
                raise TransientIOError(msg, key=prefix, cause=e) from e

            keys.extend(page)
            if token is None:
                return keys
