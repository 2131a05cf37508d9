# tests/test_database.py
import asyncio
import threading
import time

import pytest

from hostsuffix.cache import SuffixListCache
from hostsuffix.database import SuffixDatabase
from hostsuffix.errors import SuffixFormatError, SuffixListFetchError


def test_starts_empty_without_io(database, fake_source):
    assert database.top_level_domains() == []
    assert database.last_refresh() is None
    assert database.next_refresh() is None
    assert fake_source.calls == 0


def test_refresh_twice_within_ttl_fetches_once(database, fake_source, clock):
    first = database.refresh()
    clock.advance(hours=23)
    second = database.refresh()
    assert fake_source.calls == 1
    assert second is first
    assert database.last_refresh() == first.last_refresh
    assert database.next_refresh() == first.last_refresh + database.ttl


def test_refresh_after_ttl_fetches_again(database, fake_source, clock):
    database.refresh()
    clock.advance(hours=24, seconds=1)
    database.refresh()
    assert fake_source.calls == 2
    assert database.last_refresh() == clock()


def test_second_process_adopts_persisted_cache(cache, make_source, clock):
    src1, src2 = make_source(), make_source()
    SuffixDatabase(cache=cache, source=src1, clock=clock).refresh()
    other = SuffixDatabase(cache=SuffixListCache(cache.path), source=src2, clock=clock)
    other.refresh()
    assert (src1.calls, src2.calls) == (1, 0)
    assert "co.uk" in other.top_level_domains()


def test_corrupt_cache_triggers_fetch(cache, fake_source, clock):
    cache.path.write_text("\x00garbage", encoding="utf-8")
    db = SuffixDatabase(cache=cache, source=fake_source, clock=clock)
    db.refresh()
    assert fake_source.calls == 1
    assert cache.load().default_suffixes == db.snapshot.default_suffixes


def test_fetch_error_propagates_without_swapping(cache, make_source, clock):
    src = make_source(error=SuffixListFetchError("https://example.invalid", "refused"))
    db = SuffixDatabase(cache=cache, source=src, clock=clock)
    with pytest.raises(SuffixListFetchError):
        db.refresh()
    assert db.top_level_domains() == []
    assert not cache.path.exists()


def test_custom_suffixes_are_additive_and_survive_refresh(database, clock):
    database.with_custom_top_level_domain("Corp.Example").with_custom_top_level_domain("corp.example")
    database.refresh()
    clock.advance(days=2)
    database.with_custom_top_level_domain("*.lan")
    database.refresh()
    assert database.custom_top_level_domains() == ["corp.example", "lan"]
    assert database.all_top_level_domains()[-2:] == ["corp.example", "lan"]


def test_constructor_custom_suffixes(cache, fake_source, clock):
    db = SuffixDatabase(cache=cache, source=fake_source, clock=clock, custom_suffixes=["a.example", "b.example"])
    assert db.custom_top_level_domains() == ["a.example", "b.example"]


@pytest.mark.parametrize("bad", ["", "   ", "// comment", "*"])
def test_invalid_custom_suffix(database, bad):
    with pytest.raises(SuffixFormatError):
        database.with_custom_top_level_domain(bad)


def test_accessors_return_independent_lists(database):
    database.refresh()
    tlds = database.top_level_domains()
    tlds.clear()
    custom = database.custom_top_level_domains()
    custom.append("x")
    assert database.top_level_domains()
    assert database.custom_top_level_domains() == []


def test_refresh_swaps_snapshot_not_mutating(database, clock):
    database.refresh()
    before = database.snapshot
    kept = before.default_suffixes
    clock.advance(days=1, seconds=1)
    database.refresh()
    assert database.snapshot is not before
    assert before.default_suffixes is kept


def test_concurrent_blocking_refresh_is_single_flight(cache, make_source, clock):
    src = make_source(delay=0.05)
    db = SuffixDatabase(cache=cache, source=src, clock=clock)
    results = []
    threads = [threading.Thread(target=lambda: results.append(db.refresh())) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert src.calls == 1
    assert len({id(r) for r in results}) == 1


def test_concurrent_async_refresh_is_single_flight(cache, make_source, clock):
    src = make_source(delay=0.05)
    db = SuffixDatabase(cache=cache, source=src, clock=clock)

    async def run():
        return await asyncio.gather(*(db.refresh_async(timeout=1) for _ in range(8)))

    results = asyncio.run(run())
    assert src.calls == 1
    assert len({id(r) for r in results}) == 1
    assert db.snapshot is results[0]


def test_async_refresh_fetch_error(cache, make_source, clock):
    src = make_source(error=SuffixListFetchError("https://example.invalid", "timeout"))
    db = SuffixDatabase(cache=cache, source=src, clock=clock)
    with pytest.raises(SuffixListFetchError):
        asyncio.run(db.refresh_async())
    assert db._inflight == {}


def test_closed_database_refuses_refresh(database):
    with database:
        pass
    with pytest.raises(RuntimeError):
        database.refresh()

    async def run():
        await database.aclose()
        await database.refresh_async()

    with pytest.raises(RuntimeError):
        asyncio.run(run())


def test_from_config(tmp_config, clock):
    tmp_config["parser"]["custom_suffixes"] = ["corp.example"]
    tmp_config["suffix_list"]["ttl_hours"] = 6
    db = SuffixDatabase.from_config(tmp_config, clock=clock)
    assert str(db.cache.path) == tmp_config["cache"]["path"]
    assert db.source.timeout == 5
    assert db.ttl.total_seconds() == 6 * 3600
    assert db.custom_top_level_domains() == ["corp.example"]


def test_invalid_utf8_cache_triggers_fetch(cache, fake_source, clock):
    cache.path.write_bytes(b"\xff\xfe\x00garbage")
    db = SuffixDatabase(cache=cache, source=fake_source, clock=clock)
    db.refresh()
    assert fake_source.calls == 1
    assert "co.uk" in db.top_level_domains()


def _wait_for_fetch(src, timeout=2.0):
    deadline = time.monotonic() + timeout
    while src.calls == 0 and time.monotonic() < deadline:
        time.sleep(0.005)
    assert src.calls == 1


def test_async_refresh_from_two_event_loops(cache, make_source, clock):
    src = make_source(delay=0.3)
    db = SuffixDatabase(cache=cache, source=src, clock=clock)
    results, errors = [], []

    def worker():
        try:
            results.append(asyncio.run(db.refresh_async()))
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert errors == []
    assert src.calls == 1
    assert len(results) == 2 and all(r.default_suffixes for r in results)
    assert db._inflight == {}


def test_blocking_and_async_refresh_share_one_fetch(cache, make_source, clock):
    src = make_source(delay=0.3)
    db = SuffixDatabase(cache=cache, source=src, clock=clock)
    t = threading.Thread(target=db.refresh)
    t.start()
    _wait_for_fetch(src)
    snap = asyncio.run(db.refresh_async())
    t.join()
    assert src.calls == 1
    assert snap is db.snapshot


def test_custom_suffix_does_not_wait_for_refresh(cache, make_source, clock):
    src = make_source(delay=0.5)
    db = SuffixDatabase(cache=cache, source=src, clock=clock)
    t = threading.Thread(target=db.refresh)
    t.start()
    _wait_for_fetch(src)
    started = time.monotonic()
    db.with_custom_top_level_domain("corp.example")
    elapsed = time.monotonic() - started
    t.join()
    assert elapsed < 0.25
    assert db.custom_top_level_domains() == ["corp.example"]
    assert "co.uk" in db.top_level_domains()
