"""Factory functions for creating and wiring the database service.

Provides a production factory driven by ``Settings`` and a test factory that
keeps every file under one temporary directory and, unless told otherwise,
routes HTTP to a transport where the disk server is unreachable.
"""

from collections.abc import Callable
from pathlib import Path

import httpx
import structlog

from lexistore.config import Settings, get_settings
from lexistore.services.database import DatabaseService, ImageSink
from lexistore.services.disk_sync import DiskSyncClient
from lexistore.services.local_cache import LocalCache, write_atomic
from lexistore.services.reference_lookup import ReferenceLookup
from lexistore.services.static_assets import StaticAssets

FRESH_IMAGE_NAME = "lexicon.sqlite"


def create_export_sink(export_dir: Path) -> ImageSink:
    """Build a sink that drops a fresh image into ``export_dir`` for manual placement."""

    async def write_fresh_image(blob: bytes) -> None:
        await write_atomic(Path(export_dir) / FRESH_IMAGE_NAME, blob)

    return write_fresh_image


def create_database_service(settings: Settings | None = None) -> DatabaseService:
    """Create a production DatabaseService.

    Args:
        settings: Configuration to use; defaults to the cached environment settings.

    Returns:
        A DatabaseService that still needs ``init()`` (or ``async with``).
    """
    settings = settings or get_settings()
    logger = structlog.get_logger(__name__)

    assets = StaticAssets(root=settings.static_root, logger=logger)

    return DatabaseService(
        cache=LocalCache(
            directory=settings.cache_dir,
            name=settings.cache_name,
            key=settings.cache_key,
            logger=logger,
        ),
        sync_client=DiskSyncClient(
            base_url=settings.server_url,
            timeout=settings.server_timeout,
            logger=logger,
        ),
        assets=assets,
        reference=ReferenceLookup(assets=assets, path=settings.reference_path, logger=logger),
        prebuilt_paths=settings.prebuilt_paths,
        fresh_image_sink=create_export_sink(settings.export_dir),
        logger=logger,
    )


def _unreachable_server(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("disk server disabled for tests", request=request)


def create_test_database_service(
    base_dir: Path,
    http_client: httpx.AsyncClient | None = None,
    prebuilt_paths: list[str] | None = None,
    fresh_image_sink: ImageSink | None = None,
    clock: Callable[[], int] | None = None,
) -> DatabaseService:
    """Create a DatabaseService isolated under ``base_dir`` for testing.

    Static resources are read from ``base_dir / "public"`` and the cache
    lives in ``base_dir / "cache"``.

    Args:
        base_dir: Temporary directory owned by the test.
        http_client: Client for the disk server; defaults to one that can
            never connect.
        prebuilt_paths: Prebuilt image paths relative to the static root.
        fresh_image_sink: Receiver for a fresh image when no server answers.
        clock: Millisecond clock used for ``date_added`` stamps.

    Returns:
        A DatabaseService that still needs ``init()``.
    """
    logger = structlog.get_logger(__name__)

    transport = None if http_client is not None else httpx.MockTransport(_unreachable_server)
    assets = StaticAssets(root=base_dir / "public", logger=logger)

    return DatabaseService(
        cache=LocalCache(directory=base_dir / "cache", logger=logger),
        sync_client=DiskSyncClient(
            base_url="http://disk.test",
            http_client=http_client,
            transport=transport,
            logger=logger,
        ),
        assets=assets,
        reference=ReferenceLookup(assets=assets, logger=logger),
        prebuilt_paths=prebuilt_paths,
        fresh_image_sink=fresh_image_sink,
        clock=clock,
        logger=logger,
    )
