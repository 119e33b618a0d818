import json

from services.chat.selection_cache import ACTIVE_SESSION_KEY, SelectionCache

USER = "auth0|alice"


async def test_saved_selection_is_loaded_back(tmp_path):
    cache = SelectionCache(tmp_path / "selection")

    await cache.save(USER, "laptop", "sess-1")

    assert await cache.load(USER, "laptop") == "sess-1"
    assert await SelectionCache(tmp_path / "selection").load(USER, "laptop") == "sess-1"


async def test_missing_cache_loads_none(tmp_path):
    cache = SelectionCache(tmp_path / "never-created")

    assert await cache.load(USER, "laptop") is None


async def test_each_client_keeps_its_own_selection(tmp_path):
    cache = SelectionCache(tmp_path)

    await cache.save(USER, "laptop", "sess-1")
    await cache.save(USER, "phone", "sess-2")
    await cache.save("auth0|bob", "laptop", "sess-3")

    assert await cache.load(USER, "laptop") == "sess-1"
    assert await cache.load(USER, "phone") == "sess-2"
    assert await cache.load("auth0|bob", "laptop") == "sess-3"


async def test_cleared_selection_loads_none(tmp_path):
    cache = SelectionCache(tmp_path)
    await cache.save(USER, "laptop", "sess-1")

    await cache.save(USER, "laptop", None)

    assert await cache.load(USER, "laptop") is None


async def test_corrupt_cache_file_is_ignored_and_overwritten(tmp_path):
    cache = SelectionCache(tmp_path)
    path = cache._path(USER, "laptop")
    path.write_text("{not json")

    assert await cache.load(USER, "laptop") is None

    await cache.save(USER, "laptop", "sess-9")
    assert json.loads(path.read_text()) == {ACTIVE_SESSION_KEY: "sess-9"}


async def test_identity_never_reaches_the_file_name(tmp_path):
    cache = SelectionCache(tmp_path)

    await cache.save("../../etc/passwd", "x/y", "sess-1")

    files = list(tmp_path.iterdir())
    assert len(files) == 1
    assert files[0].parent == tmp_path
    assert "passwd" not in files[0].name
