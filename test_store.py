"""
Tests for the RankedStore: merge, cap, ordering, queries and persistence.
"""

import threading
import time
from datetime import datetime, timedelta, timezone

from pulse.config import Settings
from pulse.database import (
    InMemoryPersistence, KVModel, Persistence, PersistenceError, SQLPersistence, get_persistence,
)
from pulse.news.fingerprint import fingerprint
from pulse.news.store import RankedStore
from pulse.schemas import Category, Record, TrendEntry

NOW = datetime(2025, 1, 6, 12, 0, tzinfo=timezone.utc)


def make_record(url, title="Untitled story", hours_ago=0.0, category=Category.GENERAL,
                description="", source_name="Test Source"):
    return Record(
        id=fingerprint(url),
        title=title,
        description=description,
        url=url,
        source_name=source_name,
        category=category,
        published_at=NOW - timedelta(hours=hours_ago),
        ingested_at=NOW,
    )


def assert_newest_first(records):
    stamps = [r.published_at for r in records]
    assert stamps == sorted(stamps, reverse=True), "collection is not newest-first"


# ════════════════════════════════════════════════════════════════════
# insert_merge
# ════════════════════════════════════════════════════════════════════

def test_merge_skips_known_ids():
    store = RankedStore()
    r1, r2, r3 = (make_record(f"https://a.example/{i}", hours_ago=i) for i in range(3))

    assert store.insert_merge([r1, r2]) == 2
    assert store.insert_merge([r1, r3]) == 1
    assert len(store) == 3
    assert [r.id for r in store.records()] == [r1.id, r2.id, r3.id]


def test_merge_dedupes_within_batch():
    store = RankedStore()
    r1 = make_record("https://a.example/1")
    assert store.insert_merge([r1, r1]) == 1
    assert len(store) == 1


def test_merge_keeps_existing_copy():
    store = RankedStore()
    store.insert_merge([make_record("https://a.example/1", title="Original")])
    store.insert_merge([make_record("https://a.example/1", title="Rewritten")])
    assert store.records()[0].title == "Original"


def test_cap_evicts_oldest():
    store = RankedStore(max_records=500)
    batch = [make_record(f"https://a.example/{i}", hours_ago=i) for i in range(501)]

    assert store.insert_merge(batch) == 501
    assert len(store) == 500
    ids = {r.id for r in store.records()}
    assert batch[500].id not in ids, "oldest record should have been evicted"
    assert batch[0].id in ids


def test_merge_resorts_whole_collection():
    store = RankedStore()
    store.insert_merge([make_record("https://a.example/old", hours_ago=10)])
    store.insert_merge([
        make_record("https://a.example/mid", hours_ago=5),
        make_record("https://a.example/older", hours_ago=20),
        make_record("https://a.example/new", hours_ago=1),
    ])
    records = store.records()
    assert_newest_first(records)
    assert [r.url.rsplit("/", 1)[-1] for r in records] == ["new", "mid", "old", "older"]


def test_merge_stamps_last_updated():
    store = RankedStore()
    assert store.last_updated is None
    store.insert_merge([])
    assert store.last_updated is not None


# ════════════════════════════════════════════════════════════════════
# list
# ════════════════════════════════════════════════════════════════════

def _seeded_store(n=7):
    store = RankedStore()
    store.insert_merge([
        make_record(
            f"https://a.example/{i}", hours_ago=i,
            category=Category.RESEARCH if i % 2 else Category.BUSINESS,
        )
        for i in range(n)
    ])
    return store


def test_list_paginates():
    store = _seeded_store(7)
    page = store.list(page=3, page_size=3)
    assert page.total == 7
    assert page.total_pages == 3
    assert len(page.records) == 1
    assert page.records[0].url == "https://a.example/6"


def test_list_clamps_page_and_size():
    store = _seeded_store(7)
    page = store.list(page=0, page_size=1000)
    assert page.page == 1
    assert page.page_size == 50
    assert len(page.records) == 7

    page = store.list(page=1, page_size=0)
    assert page.page_size == 1
    assert page.total_pages == 7


def test_list_past_end_is_empty():
    page = _seeded_store(7).list(page=9, page_size=3)
    assert page.records == []
    assert page.total == 7
    assert page.total_pages == 3


def test_list_filters_category():
    store = _seeded_store(7)
    research = store.list(category="research", page_size=50)
    assert research.total == 3
    assert all(r.category == Category.RESEARCH for r in research.records)

    assert store.list(category=Category.BUSINESS).total == 4
    assert store.list(category="all").total == 7
    assert store.list(category=None).total == 7


def test_list_empty_store():
    page = RankedStore().list()
    assert page.total == 0
    assert page.total_pages == 0
    assert page.records == []


# ════════════════════════════════════════════════════════════════════
# search
# ════════════════════════════════════════════════════════════════════

def test_search_threshold():
    store = RankedStore()
    store.insert_merge([
        make_record("https://a.example/1", title="AI model released", hours_ago=1),
        make_record("https://a.example/2", title="Gardening tips", hours_ago=2),
    ])
    assert store.search("a") == []
    assert store.search("  a  ") == []
    assert store.search(None) == []
    assert [r.title for r in store.search("ai")] == ["AI model released"]


def test_search_matches_description_and_source():
    store = RankedStore()
    store.insert_merge([
        make_record("https://a.example/1", title="One", description="About Robotics", hours_ago=1),
        make_record("https://a.example/2", title="Two", source_name="Robotics Weekly", hours_ago=2),
        make_record("https://a.example/3", title="Three", hours_ago=3),
    ])
    found = store.search(" ROBOTICS ")
    assert [r.title for r in found] == ["One", "Two"]


# ════════════════════════════════════════════════════════════════════
# trending
# ════════════════════════════════════════════════════════════════════

def test_trending_counts_recent_titles():
    store = RankedStore()
    store.insert_merge([
        make_record("https://a.example/1", title="GPT-5 launches today", hours_ago=1),
        make_record("https://a.example/2", title="Why GPT-5 matters", hours_ago=2),
        make_record("https://a.example/3", title="GPT-5 old news", hours_ago=49),
    ])
    trending = store.trending(limit=10, now=NOW)
    assert trending[0] == TrendEntry(keyword="gpt-5", count=2)
    keywords = {t.keyword for t in trending}
    assert "why" not in keywords
    assert "old" not in keywords, "records outside the window must not count"


def test_trending_two_headlines():
    store = RankedStore()
    store.insert_merge([
        make_record("https://a.example/1", title="GPT-5 launch event", hours_ago=1),
        make_record("https://a.example/2", title="GPT-5 review deep dive", hours_ago=2),
    ])
    trending = store.trending(limit=5, now=NOW)
    assert len(trending) == 5
    assert trending[0] == TrendEntry(keyword="gpt-5", count=2)
    assert all(t.count == 1 for t in trending[1:])


def test_trending_drops_short_and_punctuation_tokens():
    store = RankedStore()
    store.insert_merge([
        make_record("https://a.example/1", title="AI: a big (deal) — OK?", hours_ago=1),
    ])
    keywords = [t.keyword for t in store.trending(now=NOW)]
    assert keywords == ["big", "deal"]


def test_trending_limit():
    store = RankedStore()
    store.insert_merge([
        make_record("https://a.example/1", title="alpha bravo charlie delta echo", hours_ago=1),
    ])
    assert len(store.trending(limit=2, now=NOW)) == 2
    assert store.trending(limit=0, now=NOW) == []


# ════════════════════════════════════════════════════════════════════
# persistence
# ════════════════════════════════════════════════════════════════════

class BrokenPersistence(Persistence):
    def load(self):
        raise PersistenceError("disk on fire")

    def save(self, records, last_updated):
        raise PersistenceError("disk on fire")


def test_in_memory_round_trip():
    persistence = InMemoryPersistence()
    first = RankedStore(persistence=persistence)
    first.insert_merge([make_record(f"https://a.example/{i}", hours_ago=i) for i in range(3)])

    second = RankedStore(persistence=persistence)
    assert second.load() == 3
    assert [r.id for r in second.records()] == [r.id for r in first.records()]
    assert second.last_updated == first.last_updated


def test_sql_round_trip(tmp_path):
    url = f"sqlite:///{tmp_path / 'pulse.db'}"
    first = RankedStore(persistence=SQLPersistence(url))
    first.insert_merge([
        make_record(f"https://a.example/{i}", hours_ago=i, category=Category.RESEARCH)
        for i in range(3)
    ])

    second = RankedStore(persistence=SQLPersistence(url))
    assert second.load() == 3
    loaded = second.records()
    assert [r.id for r in loaded] == [r.id for r in first.records()]
    assert loaded[0].published_at == NOW
    assert loaded[0].category == Category.RESEARCH
    assert second.last_updated == first.last_updated


def test_sql_load_without_snapshot(tmp_path):
    store = RankedStore(persistence=SQLPersistence(f"sqlite:///{tmp_path / 'empty.db'}"))
    assert store.load() == 0
    assert len(store) == 0


def test_load_caps_and_sorts_snapshot():
    persistence = InMemoryPersistence()
    records = [make_record(f"https://a.example/{i}", hours_ago=i) for i in range(10)]
    persistence.save(list(reversed(records)), NOW)

    store = RankedStore(persistence=persistence, max_records=5)
    assert store.load() == 5
    assert [r.id for r in store.records()] == [r.id for r in records[:5]]


def test_persistence_failure_is_not_fatal():
    store = RankedStore(persistence=BrokenPersistence())
    assert store.load() == 0
    assert store.insert_merge([make_record("https://a.example/1")]) == 1
    assert len(store) == 1


def test_unopenable_database_falls_back_to_memory(tmp_path):
    url = f"sqlite:///{tmp_path / 'missing' / 'dir' / 'pulse.db'}"

    persistence = get_persistence(Settings(persistence_backend="sqlite", database_url=url))
    assert isinstance(persistence, InMemoryPersistence)

    store = RankedStore(persistence=SQLPersistence(url))
    assert store.load() == 0
    assert store.insert_merge([make_record("https://a.example/1")]) == 1
    assert len(store) == 1


def test_sql_save_refreshes_updated_at(tmp_path):
    persistence = SQLPersistence(f"sqlite:///{tmp_path / 'pulse.db'}")
    persistence.save([make_record("https://a.example/1")], NOW)
    with persistence.get_session() as session:
        first = session.get(KVModel, "records").updated_at

    time.sleep(0.01)
    persistence.save([make_record("https://a.example/2")], NOW)
    with persistence.get_session() as session:
        second = session.get(KVModel, "records").updated_at

    assert second > first


# ════════════════════════════════════════════════════════════════════
# page size ceiling
# ════════════════════════════════════════════════════════════════════

def test_page_size_ceiling_ignores_larger_settings():
    assert Settings(page_size_max=500).page_size_max == 50
    assert Settings(page_size_max=10).page_size_max == 10

    store = _seeded_store(7)
    wide = RankedStore(max_page_size=500)
    wide.insert_merge(store.records())
    assert wide.list(page_size=100).page_size == 50


# ════════════════════════════════════════════════════════════════════
# concurrent readers
# ════════════════════════════════════════════════════════════════════

def _check_snapshot(records, cap):
    ids = [r.id for r in records]
    assert len(ids) == len(set(ids)), "duplicate ids in snapshot"
    assert len(records) <= cap, f"snapshot of {len(records)} exceeds cap {cap}"
    assert_newest_first(records)


def test_readers_never_see_unsorted_collection():
    cap = 50
    store = RankedStore(max_records=cap)
    done = threading.Event()
    errors = []

    def writer():
        try:
            for round_no in range(200):
                store.insert_merge([
                    make_record(
                        f"https://a.example/{round_no}-{i}",
                        title=f"Story {round_no} about agents",
                        hours_ago=(round_no * 7 + i * 13) % 97,
                    )
                    for i in range(5)
                ])
        finally:
            done.set()

    def reader():
        try:
            while not done.is_set():
                _check_snapshot(store.records(), cap)
                _check_snapshot(store.search("agents"), cap)
                store.trending(limit=5, now=NOW)
        except AssertionError as e:
            errors.append(e)

    threads = [threading.Thread(target=reader) for _ in range(3)]
    threads.append(threading.Thread(target=writer))
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert not errors, errors[0]
    assert len(store) == cap
    _check_snapshot(store.records(), cap)
