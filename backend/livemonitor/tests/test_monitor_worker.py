"""
Monitor Worker Tests
====================

The worker runs against in-process fakes. drain() processes the queue and
waits for background lookups until nothing is left to do.
"""

import asyncio

import pytest

from livemonitor.models import DiffRef
from livemonitor.services.breaking_news import BreakingNewsThresholds
from livemonitor.services.social_search import SocialNetworkSearch
from livemonitor.workers.monitor_worker import (
    EditReceived,
    EnrichmentReady,
    LanguageLinksResolved,
    MonitorWorker,
)

T0 = 1_700_000_000_000
SECOND = 1000

DIFF_HTML = (
    '<tr><td class="diff-marker">+</td>'
    '<td class="diff-addedline"><div>Flooding along the [[Juniata River]] today.</div></td></tr>'
)


class FakeResolver:

    def __init__(self, versions=None, error=None):
        self.versions = versions or {}
        self.error = error
        self.calls = []

    async def resolve(self, version_key):
        self.calls.append(version_key)
        if self.error:
            raise self.error
        return list(self.versions.get(version_key, []))


class FakeApi:

    def __init__(self, diff_html=DIFF_HTML):
        self.diff_html = diff_html
        self.diff_calls = []

    def compare_url(self, language, diff_ref):
        if diff_ref is None:
            return ''
        return f"https://{language}.wikipedia.org/w/api.php?torev={diff_ref.to_rev}"

    async def get_diff(self, language, diff_ref):
        self.diff_calls.append((language, diff_ref))
        return self.diff_html if diff_ref is not None else None


class ListSink:

    def __init__(self):
        self.records = []

    def write(self, record):
        self.records.append(record)


class FailingSink:

    def write(self, record):
        raise IOError("disk full")


class RecordingSearch(SocialNetworkSearch):

    def __init__(self, error=None):
        self.error = error
        self.calls = []

    async def search(self, terms):
        self.calls.append(terms)
        if self.error:
            raise self.error
        return {"results": len(terms)}


@pytest.fixture
def sink():
    return ListSink()


@pytest.fixture
def make_worker(registry, sink):
    def factory(resolver=None, api=None, social_search=None, sink_=None, **kwargs):
        return MonitorWorker(
            registry=registry,
            resolver=resolver or FakeResolver(),
            api=api or FakeApi(),
            sink=sink_ or sink,
            thresholds=BreakingNewsThresholds(5, 60 * SECOND, 2),
            social_search=social_search,
            **kwargs,
        )
    return factory


REF = DiffRef(514659029, 516269072)


# =============================================================================
# EDIT HANDLING
# =============================================================================

class TestEdits:

    @pytest.mark.asyncio
    async def test_bot_edits_discarded(self, make_worker, registry, make_edit):
        worker = make_worker()
        worker.submit_event(make_edit("en:Foo", editor="SieBot", is_bot=True))

        await worker.drain()

        assert worker.bots_discarded == 1
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_bot_edits_kept_when_configured(self, make_worker, registry, make_edit):
        worker = make_worker(discard_bots=False)
        worker.submit_event(make_edit("en:Foo", editor="SieBot", is_bot=True))

        await worker.drain()

        assert worker.bots_discarded == 0
        assert "en:Foo" in registry

    @pytest.mark.asyncio
    async def test_first_edit_is_not_enriched(self, make_worker, make_edit, sink):
        api = FakeApi()
        resolver = FakeResolver()
        worker = make_worker(api=api, resolver=resolver)
        worker.submit_event(make_edit("en:Foo", diff_ref=REF))

        await worker.drain()

        assert resolver.calls == ["en:Foo"]
        assert api.diff_calls == []
        assert sink.records == []

    @pytest.mark.asyncio
    async def test_diff_url_recorded(self, make_worker, registry, make_edit):
        worker = make_worker()
        worker.submit_event(make_edit("en:Foo", diff_ref=REF))

        await worker.drain()

        change = registry.get("en:Foo").changes[T0]
        assert change.diff_url == "https://en.wikipedia.org/w/api.php?torev=516269072"


# =============================================================================
# LANGUAGE VERSIONS
# =============================================================================

class TestLanguageVersions:

    @pytest.mark.asyncio
    async def test_linked_version_joins_cluster(self, make_worker, registry, make_edit, sink):
        resolver = FakeResolver({"de:Foo": ["en:Foo", "fr:Foo"]})
        worker = make_worker(resolver=resolver)

        worker.submit_event(make_edit("de:Foo", at=T0, diff_ref=REF))
        await worker.drain()
        worker.submit_event(make_edit("en:Foo", editor="Bob", at=T0 + SECOND, diff_ref=REF))
        await worker.drain()

        assert len(registry) == 1
        cluster = registry.get("de:Foo")
        assert cluster.occurrences == 2
        assert cluster.language_counts == {"de": 1, "en": 1}
        assert len(sink.records) == 1
        assert sink.records[0]['title'] == "de:Foo"

    @pytest.mark.asyncio
    async def test_lookup_uses_edited_version(self, make_worker, make_edit):
        resolver = FakeResolver({"de:Foo": ["en:Foo"]})
        worker = make_worker(resolver=resolver)

        worker.submit_event(make_edit("de:Foo", at=T0))
        await worker.drain()
        worker.submit_event(make_edit("en:Foo", at=T0 + 1))
        await worker.drain()

        assert resolver.calls == ["de:Foo", "en:Foo"]

    @pytest.mark.asyncio
    async def test_lookup_failure_leaves_cluster_alone(self, make_worker, registry, make_edit):
        worker = make_worker(resolver=FakeResolver(error=RuntimeError("boom")))
        worker.submit_event(make_edit("de:Foo"))

        await worker.drain()

        assert registry.version_map == {}
        assert "de:Foo" in registry
        assert worker.messages_failed == 0

    @pytest.mark.asyncio
    async def test_merge_message_for_evicted_cluster(self, make_worker, registry):
        worker = make_worker()

        await worker.process(LanguageLinksResolved(source_key="de:Foo", versions=["en:Foo"]))

        assert registry.version_map == {}
        assert worker.messages_failed == 0


# =============================================================================
# BREAKING NEWS RECORDS
# =============================================================================

class TestRecords:

    @pytest.mark.asyncio
    async def test_quick_edits_by_two_editors_emit_candidates(self, make_worker, make_edit, sink):
        search = RecordingSearch()
        worker = make_worker(social_search=search)
        for i in range(5):
            editor = "Alice" if i % 2 == 0 else "Bob"
            worker.submit_event(make_edit("en:Juniata_River", editor=editor, at=T0 + i * 30 * SECOND, diff_ref=REF))

        await worker.drain()

        assert worker.candidates_seen == 4
        assert worker.records_emitted == 4
        assert len(sink.records) == 4
        record = sink.records[-1]
        assert record['isBreakingNewsCandidate'] is True
        assert record['occurrences'] == 5
        assert record['socialNetworksResults'] == {"results": 1}
        assert search.calls[0] == ["Juniata River"]

    @pytest.mark.asyncio
    async def test_record_annotates_its_own_change(self, make_worker, make_edit, sink):
        worker = make_worker()
        worker.submit_event(make_edit("en:Foo", at=T0, diff_ref=REF))
        worker.submit_event(make_edit("en:Foo", at=T0 + SECOND, diff_ref=REF))

        await worker.drain()

        change = sink.records[0]['changes'][str(T0 + SECOND)]
        assert change['diffText'] == "Flooding along the Juniata River today."
        assert change['namedEntities'] == ["en:Juniata_River"]
        assert 'diffText' not in sink.records[0]['changes'][str(T0)]

    @pytest.mark.asyncio
    async def test_no_diff_no_records(self, make_worker, make_edit, sink):
        worker = make_worker()
        worker.submit_event(make_edit("en:Foo", at=T0))
        worker.submit_event(make_edit("en:Foo", at=T0 + SECOND))

        await worker.drain()

        assert sink.records == []

    @pytest.mark.asyncio
    async def test_social_search_failure_still_emits(self, make_worker, make_edit, sink):
        worker = make_worker(social_search=RecordingSearch(error=RuntimeError("rate limited")))
        worker.submit_event(make_edit("en:Foo", at=T0, diff_ref=REF))
        worker.submit_event(make_edit("en:Foo", at=T0 + SECOND, diff_ref=REF))

        await worker.drain()

        assert len(sink.records) == 1
        assert sink.records[0]['socialNetworksResults'] == {}

    @pytest.mark.asyncio
    async def test_enrichment_after_eviction_is_dropped(self, make_worker, registry, make_edit, sink):
        worker = make_worker()
        await worker.process(EditReceived(make_edit("en:Foo", at=T0, diff_ref=REF)))
        await worker.process(EditReceived(make_edit("en:Foo", at=T0 + SECOND, diff_ref=REF)))
        registry.evict("en:Foo")

        await worker.drain()

        assert sink.records == []
        assert worker.messages_failed == 0

    @pytest.mark.asyncio
    async def test_sink_failure_is_counted(self, make_worker, registry, make_edit):
        worker = make_worker(sink_=FailingSink())
        registry.apply_event(make_edit("en:Foo", at=T0))

        await worker.process(EnrichmentReady(key="en:Foo", timestamp=T0, diff_html=DIFF_HTML, social_results={}))

        assert worker.messages_failed == 1


# =============================================================================
# LOOP
# =============================================================================

class TestLoop:

    @pytest.mark.asyncio
    async def test_start_processes_until_stopped(self, make_worker, registry, make_edit):
        worker = make_worker()
        task = asyncio.create_task(worker.start())

        worker.submit_event(make_edit("en:Foo"))
        for _ in range(100):
            await asyncio.sleep(0.01)
            if worker.events_processed:
                break
        worker.running = False
        await asyncio.wait_for(task, timeout=3)

        assert worker.events_processed == 1
        assert "en:Foo" in registry
        assert worker.tasks == set()
