from __future__ import annotations

import asyncio

from domain.models import PartSummary
from domain.services.part_search import SEARCH_DEBOUNCE_SECONDS, PartSearch, choose_selection
from tests.helpers.fake_part_bom_api import FakePartBomApi


def _part(part_id: str, part_number: str = "") -> PartSummary:
    return PartSummary(id=part_id, part_number=part_number or part_id, name=part_id)


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


def test_choose_selection_keeps_current_when_present() -> None:
    results = [_part("A"), _part("B")]

    assert choose_selection("B", results) == "B"
    assert choose_selection("Z", results) == "A"
    assert choose_selection(None, results) == "A"
    assert choose_selection("A", []) is None


def test_run_trims_query_and_reports_results(fake_api: FakePartBomApi) -> None:
    seen: list[list[str]] = []
    search = PartSearch(fake_api, lambda results: seen.append([part.id for part in results]))

    asyncio.run(search.run("  leaf "))

    assert search.query == "  leaf "
    assert fake_api.calls == ["search:leaf"]
    assert [part.id for part in search.results] == ["PART-0003"]
    assert seen == [["PART-0003"]]
    assert search.loading is False
    assert search.error is None


def test_run_awaits_async_handler(fake_api: FakePartBomApi) -> None:
    handled: list[int] = []

    async def on_results(results: list[PartSummary]) -> None:
        await asyncio.sleep(0)
        handled.append(len(results))

    search = PartSearch(fake_api, on_results)

    asyncio.run(search.start())

    assert handled == [5]


def test_run_failure_sets_error_and_keeps_results(fake_api: FakePartBomApi) -> None:
    search = PartSearch(fake_api)

    async def scenario() -> None:
        await search.run("")
        fake_api.fail("search:bolt", "Search is down.")
        await search.run("bolt")

    asyncio.run(scenario())

    assert search.error == "Search is down."
    assert search.loading is False
    assert len(search.results) == 5


def test_set_query_debounces_and_drops_superseded_input(fake_api: FakePartBomApi) -> None:
    sleep = RecordingSleep()
    search = PartSearch(fake_api, sleep=sleep)

    async def scenario() -> None:
        first = search.set_query("a")
        second = search.set_query("bracket")
        await asyncio.gather(first, second, return_exceptions=True)
        assert first.cancelled()

    asyncio.run(scenario())

    assert search.query == "bracket"
    assert fake_api.calls == ["search:bracket"]
    assert sleep.delays[-1] == SEARCH_DEBOUNCE_SECONDS
    assert [part.id for part in search.results] == ["PART-0004"]


def test_stale_search_results_are_discarded(fake_api: FakePartBomApi) -> None:
    search = PartSearch(fake_api)

    async def scenario() -> None:
        gate = fake_api.hold("search:root")
        older = asyncio.create_task(search.run("root"))
        await asyncio.sleep(0)
        await search.run("leaf")
        gate.set()
        await older

    asyncio.run(scenario())

    assert [part.id for part in search.results] == ["PART-0003"]


def test_refresh_silently_uses_catalog_for_empty_query(fake_api: FakePartBomApi) -> None:
    search = PartSearch(fake_api)
    catalog = [_part("X"), _part("Y")]

    asyncio.run(search.refresh_silently(catalog))

    assert [part.id for part in search.results] == ["X", "Y"]
    assert fake_api.calls == []


def test_refresh_silently_reruns_query_without_error(fake_api: FakePartBomApi) -> None:
    search = PartSearch(fake_api)

    async def scenario() -> None:
        await search.run("module")
        fake_api.fail("search:module", "Offline.")
        await search.refresh_silently([])

    asyncio.run(scenario())

    assert search.error is None
    assert [part.id for part in search.results] == ["PART-0002"]
    assert fake_api.count("search:module") == 2


def test_upsert_only_existing(fake_api: FakePartBomApi) -> None:
    search = PartSearch(fake_api)
    search.results = [_part("A", "PRT-1"), _part("B", "PRT-2")]

    search.upsert(_part("C", "PRT-0"), only_existing=True)
    assert [part.id for part in search.results] == ["A", "B"]

    search.upsert(PartSummary(id="B", part_number="PRT-0", name="Moved"), only_existing=True)
    assert [part.id for part in search.results] == ["B", "A"]

    search.upsert(_part("C", "PRT-3"))
    assert [part.id for part in search.results] == ["B", "A", "C"]
