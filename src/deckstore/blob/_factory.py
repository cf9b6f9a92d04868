"""Blob store construction from configuration."""

from typing import TYPE_CHECKING

from deckstore.config import StoreBackend

from ._http import HttpBlobStore
from ._memory import MemoryBlobStore

if TYPE_CHECKING:
    import httpx
    from structlog.typing import FilteringBoundLogger

    from deckstore.config import StoreConfiguration

    from ._protocol import BlobStore


def create_blob_store(
    config: "StoreConfiguration",  # noqa: UP037
    *,
    auth: "httpx.Auth | None" = None,  # noqa: UP037
    logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
) -> "BlobStore":  # noqa: UP037
    """Create the blob store selected by the store configuration.

    Args:
        config: The store configuration section.
        auth: Request signer for the http backend.
        logger: Optional logger passed to the store.

    Returns:
        A MemoryBlobStore or an HttpBlobStore.
    """
    if config.backend == StoreBackend.HTTP:
        return HttpBlobStore(
            config.endpoint,
            config.bucket,
            auth=auth,
            timeout=config.timeout,
            transport_retries=config.transport_retries,
            logger=logger,
        )
    return MemoryBlobStore(logger=logger)
