"""
Record loader: fetches the records of the selected field into the table.
"""

import asyncio

from orion_discard.client.api import DiscardClient
from orion_discard.client.listener import LEVEL_ERROR, LEVEL_WARNING, FlowListener, LoggingListener
from orion_discard.core.errors import DependencyUnavailable, DiscardError, NotFound
from orion_discard.core.models import ScopeCriteria
from orion_discard.observability.logger import get_logger
from orion_discard.observability.metrics import (
    increment_counter,
    record_fetch_retries_total,
    stale_responses_total,
)
from orion_discard.table import TableSynchronizer

logger = get_logger(__name__)

NO_DATA_MESSAGE = "No data available for the selected field"


class RecordLoader:
    """
    Loads a field's records into the table.

    Every request takes a new generation number. A response that arrives
    after a newer request was issued is dropped, so the table always ends up
    showing the most recent selection.
    """

    def __init__(
        self,
        client: DiscardClient,
        table: TableSynchronizer,
        scope: ScopeCriteria,
        retries: int = 2,
        retry_delay: float = 1.0,
        listener: FlowListener | None = None,
    ):
        """
        Initialize the loader.

        Args:
            client: Service client
            table: Table to fill
            scope: Active site / year / record type
            retries: Extra attempts after a transient fetch failure
            retry_delay: Fixed delay between attempts, in seconds
            listener: Feedback target
        """
        self.client = client
        self.table = table
        self.scope = scope
        self.retries = retries
        self.retry_delay = retry_delay
        self.listener = listener or LoggingListener()
        self.current_field = ""
        self._generation = 0
        self._outstanding = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def loading(self) -> bool:
        return self._outstanding > 0

    def _is_stale(self, generation: int) -> bool:
        if generation == self._generation:
            return False
        increment_counter(stale_responses_total)
        logger.info(
            "Dropped stale record response",
            extra={"generation": generation, "latest": self._generation},
        )
        return True

    async def load_field(self, field: str) -> bool:
        """
        Fetch and show the records of a field.

        Returns:
            True if the table now shows this field's records
        """
        self._generation += 1
        generation = self._generation
        self.current_field = field

        self._outstanding += 1
        self.listener.on_loading(True)
        try:
            records = await self._fetch_with_retry(field, generation)
        except NotFound:
            if self._is_stale(generation):
                return False
            self.table.clear()
            self.listener.on_message(NO_DATA_MESSAGE, LEVEL_WARNING)
            return False
        except DiscardError as e:
            if self._is_stale(generation):
                return False
            logger.error(f"Record load failed: {e.message}", extra={"field": field, "generation": generation})
            self.listener.on_message(e.message, LEVEL_ERROR)
            return False
        finally:
            self._outstanding -= 1
            self.listener.on_loading(self._outstanding > 0)

        if self._is_stale(generation):
            return False

        try:
            self.table.load(records)
        except DiscardError as e:
            self.listener.on_message(e.message, LEVEL_ERROR)
            return False

        logger.info(
            "Field records loaded",
            extra={"field": field, "generation": generation, "rows": len(records)},
        )
        return True

    async def clear_field(self) -> None:
        """Forget the current field; in-flight responses become stale."""
        self._generation += 1
        self.current_field = ""
        self.table.clear()

    async def _fetch_with_retry(self, field: str, generation: int) -> list[dict]:
        attempt = 0
        while True:
            try:
                records = await self.client.fetch_records(self.scope, field)
            except DependencyUnavailable as e:
                if attempt >= self.retries or generation != self._generation:
                    if attempt:
                        increment_counter(record_fetch_retries_total, 1, status="failure")
                    raise
                attempt += 1
                logger.warning(
                    f"Record fetch failed, retrying: {e.message}",
                    extra={"field": field, "attempt": attempt, "generation": generation},
                )
                await asyncio.sleep(self.retry_delay)
                continue

            if attempt:
                increment_counter(record_fetch_retries_total, 1, status="success")
            return records
