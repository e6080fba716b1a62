"""
Client for the discard service.

Every failure, whatever its cause (transport error, unexpected response,
failure envelope), reaches callers as a DiscardError subclass.
"""

import asyncio
from typing import Any, Protocol

from orion_discard.core.errors import DependencyUnavailable, DiscardError, error_from_dict
from orion_discard.core.models import DiscardRecord, FieldOption, ScopeCriteria
from orion_discard.observability.logger import get_logger
from orion_discard.options.source import OptionsSource
from orion_discard.service import DiscardService

logger = get_logger(__name__)


class Transport(Protocol):
    async def __call__(self, action: str, payload: dict[str, Any]) -> Any:
        ...


class LocalTransport:
    """Calls an in-process DiscardService on a worker thread."""

    def __init__(self, service: DiscardService):
        self.service = service

    async def __call__(self, action: str, payload: dict[str, Any]) -> Any:
        return await asyncio.to_thread(self.service.handle, action, payload)


class DiscardClient:
    """
    Async facade over the service operations and the options source.
    """

    def __init__(self, transport: Transport, options_source: OptionsSource):
        self.transport = transport
        self.options_source = options_source

    async def _call(self, action: str, payload: dict[str, Any]) -> Any:
        try:
            envelope = await self.transport(action, payload)
        except DiscardError:
            raise
        except Exception as e:
            logger.error(f"{action} transport failed: {e}", extra={"action": action})
            raise DependencyUnavailable("discard service", "Could not complete the operation") from e

        if not isinstance(envelope, dict) or not isinstance(envelope.get("success"), bool):
            logger.error("Malformed service response", extra={"action": action})
            raise DiscardError("Could not complete the operation")
        if envelope["success"]:
            return envelope.get("data")
        raise error_from_dict(envelope.get("error"))

    async def fetch_options(self, site: str) -> list[FieldOption]:
        try:
            return await self.options_source.fetch_options(site)
        except DiscardError:
            raise
        except Exception as e:
            logger.error(f"Options fetch failed: {e}", extra={"site": site})
            raise DependencyUnavailable("options source", "Error loading farm data") from e

    async def fetch_records(self, scope: ScopeCriteria, field: str) -> list[dict[str, Any]]:
        data = await self._call("fetch_records", {**scope.model_dump(), "field": field})
        if not isinstance(data, list):
            raise DiscardError("Could not complete the operation")
        return data

    async def check_duplicate(self, scope: ScopeCriteria, barcode: str) -> dict[str, Any]:
        data = await self._call("check_duplicate", {**scope.model_dump(), "barcode": barcode})
        if not isinstance(data, dict):
            raise DiscardError("Could not complete the operation")
        return data

    async def validate_and_discard(
        self, scope: ScopeCriteria, barcode: str, actor: str | None = None
    ) -> DiscardRecord:
        data = await self._call(
            "validate_and_discard", {**scope.model_dump(), "barcode": barcode, "actor": actor}
        )
        return DiscardRecord.from_raw(data)

    async def submit_discard(self, payload: dict[str, Any]) -> dict[str, Any]:
        data = await self._call("submit_discard", payload)
        if not isinstance(data, dict):
            raise DiscardError("Could not complete the operation")
        return data
