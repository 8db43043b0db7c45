"""Tests for koopi.storage.housekeeping — HTML cache expiry."""

import os
import random

from koopi.storage.housekeeping import DAY, clean_cache

NOW = 1_760_000_000.0


def _touch(path, age_days):
    path.write_bytes(b"<html></html>")
    ts = NOW - age_days * DAY
    os.utime(path, (ts, ts))
    return path


class TestCleanCache:
    def test_missing_directory(self, tmp_path):
        assert clean_cache(tmp_path / "missing", now=NOW) == []

    def test_old_files_removed_fresh_kept(self, tmp_path):
        old = _touch(tmp_path / "jogurt-1.html", 10)
        fresh = _touch(tmp_path / "jogurt-2.html", 0.5)
        removed = clean_cache(tmp_path, now=NOW, rng=random.Random(0))
        assert removed == [old]
        assert fresh.exists()

    def test_sample_of_aging_files(self, tmp_path):
        aging = [_touch(tmp_path / f"mleko-{i}.html", 3) for i in range(10)]
        fresh = _touch(tmp_path / "chleb-1.html", 1)

        removed = clean_cache(tmp_path, sample_size=4, now=NOW, rng=random.Random(0))

        assert len(removed) == 4
        assert set(removed) <= set(aging)
        assert fresh.exists()
        assert sum(p.exists() for p in aging) == 6

    def test_pool_limit(self, tmp_path):
        aging = [_touch(tmp_path / f"a-{i}.html", 3) for i in range(6)]
        removed = clean_cache(tmp_path, sample_size=50, pool_size=2, now=NOW, rng=random.Random(0))
        assert sorted(removed) == sorted(aging)[:2]

    def test_expired_files_not_counted_twice(self, tmp_path):
        old = _touch(tmp_path / "old.html", 8)
        removed = clean_cache(tmp_path, sample_size=50, now=NOW, rng=random.Random(0))
        assert removed == [old]
