import threading

import pytest

from porygodot.atlas_cache import AtlasCache, AtlasCacheEntry, TilesetPairKey

KEY = TilesetPairKey("gTileset_General", "gTileset_PalletTown")


def _entry():
    return AtlasCacheEntry("a_ground.png", "a_overlay.png", 740, True, pair=None)


def test_key_string():
    assert str(KEY) == "gTileset_General|gTileset_PalletTown"


def test_builds_once():
    cache = AtlasCache()
    calls = []

    def build():
        calls.append(1)
        return _entry()

    first = cache.get_or_build(KEY, build)
    second = cache.get_or_build(KEY, build)
    assert first is second
    assert calls == [1]
    assert KEY in cache
    assert len(cache) == 1
    assert TilesetPairKey("a", "b") not in cache


def test_failed_build_is_not_cached():
    cache = AtlasCache()

    def fail():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        cache.get_or_build(KEY, fail)
    assert KEY not in cache
    assert cache.get_or_build(KEY, _entry).total_positions == 740


def test_concurrent_callers_share_one_build():
    cache = AtlasCache()
    calls = []
    results = []

    def build():
        calls.append(1)
        return _entry()

    threads = [
        threading.Thread(target=lambda: results.append(cache.get_or_build(KEY, build)))
        for _ in range(8)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert calls == [1]
    assert len({id(result) for result in results}) == 1
