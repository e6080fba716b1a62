"""
Unit tests for station assembly.
"""

import pytest

from orion_discard.app import build_station
from orion_discard.client import ScanOutcome
from orion_discard.options import HttpOptionsSource, StaticOptionsSource
from orion_discard.table import TextTableRenderer

SINGLE_PATH = [
    {"id": "1", "title": "Farm A", "field_type": "farm"},
    {"id": "10", "title": "North", "field_type": "sections", "farm_name": "1"},
    {"id": "100", "title": "AB-RA", "field_type": "fields", "farm_name": "1", "section_name": "10"},
]


def test_scope_from_operator_and_defaults(settings, record_store, entry_log, options_source):
    station = build_station(settings, record_store, entry_log, options_source=options_source, user_site="MXSA")
    assert (station.scope.site, station.scope.year, station.scope.record_type) == ("MXSA", "2024", "T1")

    station = build_station(settings, record_store, entry_log, options_source=options_source, user_site=" ")
    assert station.scope.site == "PRSA"


def test_http_options_source_by_default(settings, record_store, entry_log):
    station = build_station(settings, record_store, entry_log)
    assert isinstance(station.client.options_source, HttpOptionsSource)
    assert station.client.options_source.url == settings.options_url


@pytest.mark.asyncio
async def test_start_to_discard(settings, record_store, entry_log, listener, scope):
    """Test one option per level loads the field; a scan then discards and resets the station"""
    renderer = TextTableRenderer()
    station = build_station(
        settings,
        record_store,
        entry_log,
        options_source=StaticOptionsSource({"PRSA": SINGLE_PATH}),
        renderer=renderer,
        listener=listener,
        actor="12",
    )

    assert await station.start()
    assert station.loader.current_field == "AB-RA"
    assert len(renderer.lines) == 3

    station.flow.set_scanned_code("AB-101")
    result = await station.flow.submit()

    assert result.outcome == ScanOutcome.SUCCESS
    assert result.record.is_discarded
    assert renderer.lines == []
    assert station.loader.current_field == ""
    assert record_store.get(scope, "2").discarded_by == "12"
    assert entry_log.list_entries()[0].user_id == "12"
