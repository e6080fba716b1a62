"""
Composition root: wires stores, service, client and the station flows.
"""

from dataclasses import dataclass

from orion_discard.client import (
    CascadingSelector,
    DiscardClient,
    FlowListener,
    LocalTransport,
    LoggingListener,
    RecordLoader,
    ScanSubmissionFlow,
)
from orion_discard.config import Settings
from orion_discard.core.models import ScopeCriteria
from orion_discard.observability.logger import get_logger
from orion_discard.options import HttpOptionsSource, OptionsSource
from orion_discard.service import DiscardService
from orion_discard.store import (
    DatabaseConnectionPool,
    DiscardEntryLog,
    PostgresEntryLog,
    PostgresRecordStore,
    RecordStore,
    SchemaManager,
)
from orion_discard.table import TableRenderer, TableSynchronizer

logger = get_logger(__name__)


@dataclass
class Station:
    """One operator's discard station."""

    settings: Settings
    scope: ScopeCriteria
    service: DiscardService
    client: DiscardClient
    table: TableSynchronizer
    selector: CascadingSelector
    loader: RecordLoader
    flow: ScanSubmissionFlow

    async def start(self) -> bool:
        """Load the choice lists; False if the options source is unavailable."""
        return await self.selector.start()


def build_station(
    settings: Settings,
    store: RecordStore,
    entry_log: DiscardEntryLog,
    options_source: OptionsSource | None = None,
    renderer: TableRenderer | None = None,
    listener: FlowListener | None = None,
    user_site: str | None = None,
    user_year: str | None = None,
    actor: str | None = None,
) -> Station:
    """
    Assemble a station around the given stores.

    Args:
        settings: Station settings
        store: Record store
        entry_log: Discard entry log
        options_source: Choice-list source (HTTP endpoint from settings when None)
        renderer: Table renderer (headless when None)
        listener: Operator feedback target
        user_site: Operator's configured site, if any
        user_year: Operator's configured year, if any
        actor: Operator id stamped on discards

    Returns:
        Station ready for ``start()``
    """
    listener = listener or LoggingListener()
    scope = ScopeCriteria.build(
        settings.resolve_site(user_site),
        settings.resolve_year(user_year),
        settings.record_type,
    )
    options_source = options_source or HttpOptionsSource(settings.options_url, timeout=settings.options_timeout)

    service = DiscardService(store, entry_log, settings=settings)
    client = DiscardClient(LocalTransport(service), options_source)
    table = TableSynchronizer(renderer=renderer, max_records=settings.max_records)
    loader = RecordLoader(
        client,
        table,
        scope,
        retries=settings.fetch_retries,
        retry_delay=settings.fetch_retry_delay,
        listener=listener,
    )
    selector = CascadingSelector(
        client,
        scope.site,
        on_field_selected=loader.load_field,
        on_field_cleared=loader.clear_field,
        listener=listener,
    )
    flow = ScanSubmissionFlow(client, selector, table, scope, listener=listener, actor=actor or settings.actor)

    logger.info("Station assembled", extra={"scope": scope.model_dump()})
    return Station(
        settings=settings,
        scope=scope,
        service=service,
        client=client,
        table=table,
        selector=selector,
        loader=loader,
        flow=flow,
    )


def open_postgres(
    settings: Settings, ensure_schema: bool = True
) -> tuple[DatabaseConnectionPool, PostgresRecordStore, PostgresEntryLog]:
    """
    Open a connection pool and the PostgreSQL-backed stores.

    Returns:
        (pool, record store, entry log); the caller closes the pool
    """
    db = settings.database
    pool = DatabaseConnectionPool(
        host=db.host,
        port=db.port,
        database=db.name,
        user=db.user,
        password=db.password,
        min_size=db.min_size,
        max_size=db.max_size,
    )
    pool.open()
    if ensure_schema:
        SchemaManager(pool).ensure_schema()
    return pool, PostgresRecordStore(pool), PostgresEntryLog(pool)
