"""
Options sources: where the farm / section / field choice lists come from.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from orion_discard.core.errors import DependencyUnavailable
from orion_discard.core.models import FieldOption
from orion_discard.observability.logger import get_logger

logger = get_logger(__name__)


def parse_options(raw_options: Iterable[Any]) -> list[FieldOption]:
    """
    Convert raw option entries, skipping malformed ones.

    Args:
        raw_options: Entries shaped like ``{"id", "title", "field_type", "farm_name", "section_name"}``

    Returns:
        Valid options in source order
    """
    options = []
    for index, raw in enumerate(raw_options):
        if not isinstance(raw, Mapping):
            logger.warning("Skipping option that is not an object", extra={"index": index})
            continue
        try:
            options.append(FieldOption.from_raw(raw))
        except PydanticValidationError as e:
            logger.warning(
                "Skipping malformed option",
                extra={"index": index, "option_id": str(raw.get("id")), "errors": e.error_count()},
            )
    return options


class OptionsSource(ABC):
    """Publishes the choice-list entries for a site."""

    @abstractmethod
    async def fetch_options(self, site: str) -> list[FieldOption]:
        """
        Fetch all farms, sections and fields for a site.

        Raises:
            DependencyUnavailable: If the source cannot be reached or answers
                with something unusable
        """


class StaticOptionsSource(OptionsSource):
    """Options held in memory, keyed by site."""

    def __init__(self, options_by_site: Mapping[str, Iterable[Any]]):
        self._options = {site: list(entries) for site, entries in options_by_site.items()}

    async def fetch_options(self, site: str) -> list[FieldOption]:
        if site not in self._options:
            raise DependencyUnavailable("options source", f"No options published for site {site}")
        return parse_options(self._options[site])


class HttpOptionsSource(OptionsSource):
    """
    Options read from the maps-fields HTTP endpoint.

    The endpoint answers ``GET <url>?site=<site>`` with
    ``{"success": true, "data": {"fields": [...]}}``. Connection failures,
    error statuses and malformed bodies all surface as DependencyUnavailable.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the source.

        Args:
            url: Endpoint URL
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def fetch_options(self, site: str) -> list[FieldOption]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(self.url, params={"site": site})
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Options request failed: {e}", extra={"site": site, "url": self.url})
            raise DependencyUnavailable("options source", "Connection error while loading farm data") from e
        except ValueError as e:
            logger.error("Options response is not JSON", extra={"site": site, "url": self.url})
            raise DependencyUnavailable("options source", "Error loading farm data") from e

        fields = None
        if isinstance(body, dict) and body.get("success") and isinstance(body.get("data"), dict):
            fields = body["data"].get("fields")
        if not isinstance(fields, list):
            logger.error("Options response has no field list", extra={"site": site})
            raise DependencyUnavailable("options source", "Error loading farm data")

        options = parse_options(fields)
        logger.info("Options loaded", extra={"site": site, "count": len(options)})
        return options
