"""
Cascading farm -> section -> field selector.

Choosing a farm fills the section list with that farm's sections; choosing a
section fills the field list with that section's fields; choosing a field
hands the field to a callback (the record loader). A list that ends up with
exactly one option selects it automatically, once the list is filled.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from orion_discard.client.api import DiscardClient
from orion_discard.client.listener import LEVEL_ERROR, LEVEL_WARNING, FlowListener, LoggingListener
from orion_discard.core.errors import DiscardError
from orion_discard.core.models import FieldOption
from orion_discard.observability.logger import get_logger

logger = get_logger(__name__)

NO_FIELDS_MESSAGE = "This section has no fields available"


@dataclass
class ChoiceList:
    """One drop-down: its options, current value and whether it is enabled."""

    name: str
    options: list[FieldOption] = field(default_factory=list)
    selected: str = ""
    enabled: bool = False

    def fill(self, options: list[FieldOption]) -> None:
        self.options = options
        self.selected = ""
        self.enabled = bool(options)

    def reset(self) -> None:
        self.options = []
        self.selected = ""
        self.enabled = False

    @property
    def selected_option(self) -> FieldOption | None:
        for option in self.options:
            if option.value == self.selected:
                return option
        return None

    def has_value(self, value: str) -> bool:
        return any(option.value == value for option in self.options)


@dataclass
class Selection:
    farm_id: str = ""
    farm_name: str = ""
    section_id: str = ""
    section_name: str = ""
    field_id: str = ""
    field_name: str = ""


class CascadingSelector:
    """
    State of the three choice lists.

    ``start()`` loads the options once; awaiting it (or ``wait_ready()``) is
    the readiness signal. Selection methods are coroutines because the
    cascade can end in a record load.
    """

    def __init__(
        self,
        client: DiscardClient,
        site: str,
        on_field_selected: Callable[[str], Awaitable[object]] | None = None,
        on_field_cleared: Callable[[], Awaitable[object]] | None = None,
        listener: FlowListener | None = None,
    ):
        self.client = client
        self.site = site
        self.on_field_selected = on_field_selected
        self.on_field_cleared = on_field_cleared
        self.listener = listener or LoggingListener()
        self.farms = ChoiceList("farm")
        self.sections = ChoiceList("section")
        self.fields = ChoiceList("field")
        self.available = False
        self._options: list[FieldOption] = []
        self._ready = asyncio.Event()

    async def start(self) -> bool:
        """
        Load options and fill the farm list.

        Returns:
            True if options were loaded; False if the options source is
            unavailable, in which case every list stays empty and disabled
        """
        try:
            self._options = await self.client.fetch_options(self.site)
        except DiscardError as e:
            logger.error(f"Options unavailable: {e.message}", extra={"site": self.site})
            self._options = []
            self.available = False
            for choice in (self.farms, self.sections, self.fields):
                choice.reset()
            self.listener.on_message(e.message, LEVEL_ERROR)
            self._ready.set()
            return False

        self.available = True
        self.sections.reset()
        self.fields.reset()
        self.farms.fill([option for option in self._options if option.type == "farm"])
        logger.info(
            "Selector ready",
            extra={"site": self.site, "farms": len(self.farms.options), "options": len(self._options)},
        )
        self._ready.set()

        if len(self.farms.options) == 1:
            await self.select_farm(self.farms.options[0].value)
        return True

    async def wait_ready(self) -> None:
        await self._ready.wait()

    @property
    def ready(self) -> bool:
        return self._ready.is_set()

    async def select_farm(self, farm_id: str) -> None:
        """Select a farm ("" deselects); fills sections and cascades on a single section."""
        farm_id = (farm_id or "").strip()
        self.sections.reset()
        await self._clear_field()

        if not farm_id or not self.farms.has_value(farm_id):
            self.farms.selected = ""
            return

        self.farms.selected = farm_id
        self.sections.fill(
            [option for option in self._options if option.type == "sections" and option.farm == farm_id]
        )
        if len(self.sections.options) == 1:
            await self.select_section(self.sections.options[0].value)

    async def select_section(self, section_id: str) -> None:
        """Select a section ("" deselects); fills fields and cascades on a single field."""
        section_id = (section_id or "").strip()
        await self._clear_field()

        if not section_id or not self.sections.has_value(section_id):
            self.sections.selected = ""
            return

        self.sections.selected = section_id
        self.fields.fill(
            [
                option
                for option in self._options
                if option.type == "fields" and option.farm == self.farms.selected and option.section == section_id
            ]
        )
        if not self.fields.options:
            self.listener.on_message(NO_FIELDS_MESSAGE, LEVEL_WARNING)
        elif len(self.fields.options) == 1:
            await self.select_field(self.fields.options[0].value)

    async def select_field(self, value: str) -> None:
        """Select a field by title; a non-empty selection triggers the record load."""
        value = (value or "").strip()
        if not value or not self.fields.has_value(value):
            await self._clear_field(keep_options=True)
            return

        self.fields.selected = value
        if self.on_field_selected is not None:
            await self.on_field_selected(value)

    async def _clear_field(self, keep_options: bool = False) -> None:
        had_field = bool(self.fields.selected)
        if keep_options:
            self.fields.selected = ""
        else:
            self.fields.reset()
        if had_field and self.on_field_cleared is not None:
            await self.on_field_cleared()

    async def reset(self) -> None:
        """
        Clear every selection after a submission.

        The farm list keeps its options; section and field lists are emptied
        and disabled. No auto-selection runs. A field that was selected is
        reported through ``on_field_cleared``.
        """
        self.farms.selected = ""
        self.farms.enabled = bool(self.farms.options)
        self.sections.reset()
        await self._clear_field()

    @property
    def selection(self) -> Selection:
        farm = self.farms.selected_option
        section = self.sections.selected_option
        chosen = self.fields.selected_option
        return Selection(
            farm_id=farm.id if farm else "",
            farm_name=farm.title if farm else "",
            section_id=section.id if section else "",
            section_name=section.title if section else "",
            field_id=chosen.value if chosen else "",
            field_name=chosen.title if chosen else "",
        )

    def missing(self) -> list[str]:
        """Names of the lists with nothing selected, in cascade order."""
        return [choice.name for choice in (self.farms, self.sections, self.fields) if not choice.selected]
