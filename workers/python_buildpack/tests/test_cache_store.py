"""
test_cache_store - restore / persist of named cache entries.

Invariant properties:
  - A file under a cacheable name survives persist and comes back on restore.
  - Restore ignores names missing from the cache.
  - Persist replaces the cached copy wholesale (stale files disappear).
"""
from python_buildpack.core.cache_store import CacheStore


class TestRoundTrip:

    def test_persist_then_restore(self, tmp_path):
        build_a = tmp_path / "a"
        build_b = tmp_path / "b"
        cache = tmp_path / "cache"
        (build_a / ".heroku" / "venv" / "bin").mkdir(parents=True)
        (build_a / ".heroku" / "venv" / "bin" / "python").write_text("py")
        build_b.mkdir()

        stored = CacheStore(cache, build_a).persist([".heroku"])
        assert stored == [".heroku"]
        assert (cache / ".heroku" / "venv" / "bin" / "python").read_text() == "py"

        restored = CacheStore(cache, build_b).restore([".heroku"])
        assert restored == [".heroku"]
        assert (build_b / ".heroku" / "venv" / "bin" / "python").read_text() == "py"

    def test_every_legacy_name_round_trips(self, tmp_path):
        build = tmp_path / "build"
        cache = tmp_path / "cache"
        names = ["bin", "include", "lib"]
        for name in names:
            (build / name).mkdir(parents=True)
            (build / name / "marker").write_text(name)

        CacheStore(cache, build).persist(names)
        fresh = tmp_path / "fresh"
        fresh.mkdir()
        CacheStore(cache, fresh).restore(names)

        for name in names:
            assert (fresh / name / "marker").read_text() == name

    def test_symlinks_are_kept_as_links(self, tmp_path):
        build = tmp_path / "build"
        cache = tmp_path / "cache"
        (build / "bin").mkdir(parents=True)
        (build / "bin" / "python").symlink_to("/usr/bin/python3")

        CacheStore(cache, build).persist(["bin"])

        assert (cache / "bin" / "python").is_symlink()


class TestRestore:

    def test_missing_names_are_skipped(self, build_dir, cache_dir):
        restored = CacheStore(cache_dir, build_dir).restore(["bin", "include", "lib"])
        assert restored == []
        assert not (build_dir / "bin").exists()

    def test_restore_merges_into_existing_dir(self, build_dir, cache_dir):
        (cache_dir / ".heroku" / "venv").mkdir(parents=True)
        (cache_dir / ".heroku" / "venv" / "cached").write_text("x")
        (build_dir / ".heroku").mkdir()
        (build_dir / ".heroku" / "checked_in").write_text("y")

        CacheStore(cache_dir, build_dir).restore([".heroku"])

        assert (build_dir / ".heroku" / "venv" / "cached").exists()
        assert (build_dir / ".heroku" / "checked_in").exists()

    def test_unreadable_entry_does_not_stop_others(self, build_dir, cache_dir, monkeypatch):
        (cache_dir / "bin").mkdir()
        (cache_dir / "lib").mkdir()
        (cache_dir / "lib" / "keep").write_text("k")

        import python_buildpack.core.cache_store as cache_store

        real_copy = cache_store._copy_entry

        def flaky_copy(src, dest):
            if src.name == "bin":
                raise OSError("permission denied")
            real_copy(src, dest)

        monkeypatch.setattr(cache_store, "_copy_entry", flaky_copy)

        restored = CacheStore(cache_dir, build_dir).restore(["bin", "lib"])

        assert restored == ["lib"]
        assert (build_dir / "lib" / "keep").exists()


class TestPersist:

    def test_persist_replaces_stale_cache(self, build_dir, cache_dir):
        (cache_dir / ".heroku" / "old").mkdir(parents=True)
        (build_dir / ".heroku" / "new").mkdir(parents=True)

        CacheStore(cache_dir, build_dir).persist([".heroku"])

        assert (cache_dir / ".heroku" / "new").is_dir()
        assert not (cache_dir / ".heroku" / "old").exists()

    def test_persist_empty_directory(self, build_dir, cache_dir):
        (build_dir / "include").mkdir()

        stored = CacheStore(cache_dir, build_dir).persist(["include"])

        assert stored == ["include"]
        assert (cache_dir / "include").is_dir()

    def test_name_absent_from_build_clears_cache_copy(self, build_dir, cache_dir):
        (cache_dir / "include" / "stale.h").parent.mkdir(parents=True)
        (cache_dir / "include" / "stale.h").write_text("")

        stored = CacheStore(cache_dir, build_dir).persist(["include"])

        assert stored == []
        assert not (cache_dir / "include").exists()

    def test_creates_missing_cache_dir(self, build_dir, tmp_path):
        cache = tmp_path / "not-yet"
        (build_dir / ".heroku").mkdir()

        CacheStore(cache, build_dir).persist([".heroku"])

        assert (cache / ".heroku").is_dir()


class TestFreshness:

    def test_empty_cache_is_fresh(self, build_dir, cache_dir):
        assert CacheStore(cache_dir, build_dir).is_empty() is True

    def test_missing_cache_is_fresh(self, build_dir, tmp_path):
        assert CacheStore(tmp_path / "nope", build_dir).is_empty() is True

    def test_populated_cache_is_not_fresh(self, build_dir, cache_dir):
        (cache_dir / ".heroku").mkdir()
        assert CacheStore(cache_dir, build_dir).is_empty() is False
