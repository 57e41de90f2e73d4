import json
import threading

import pytest

from romshelf.core.library import LibraryStore
from romshelf.errors import (
    DuplicateGameError,
    EmulatorNotFoundError,
    GameNotFoundError,
    InputError,
    PlatformNotFoundError,
    StorageError,
)
from romshelf.models.emulator import EmulatorCreate, EmulatorUpdate
from romshelf.models.game import CollectionUpdate, GameCreate, GameUpdate


def _add(store, title="Metroid", path="/roms/Metroid.nes", platform="nes"):
    return store.add_game(GameCreate(title=title, rom_path=path, platform_id=platform))


def test_fresh_store_seeds_platform_catalog(store):
    platforms = {p.id: p for p in store.get_all_platforms()}
    assert ".nes" in platforms["nes"].file_extensions
    assert platforms["ps3"].is_manual_only
    assert store.path.exists()


@pytest.mark.parametrize("kwargs", [
    {"title": "  ", "rom_path": "/r/a.nes", "platform_id": "nes"},
    {"title": "A", "rom_path": "", "platform_id": "nes"},
    {"title": "A", "rom_path": "/r/a.nes", "platform_id": ""},
    {"title": "A", "rom_path": "/r/a.nes", "platform_id": "nope"},
])
def test_add_game_rejects_bad_input_without_writing(store, kwargs):
    with pytest.raises(InputError):
        store.add_game(GameCreate(**kwargs))
    assert store.get_all_games() == []


def test_add_game_rejects_duplicate_path(store):
    first = _add(store)
    with pytest.raises(DuplicateGameError) as exc:
        _add(store, title="Again", platform="snes")
    assert exc.value.existing_id == first.id


def test_update_game_is_a_sparse_patch(store):
    game = _add(store)
    store.update_game(game.id, GameUpdate(description="Space hunter", genre=["Action"]))

    written = store.update_game(game.id, GameUpdate(developer="Nintendo"))

    assert written == ["developer"]
    updated = store.get_game(game.id)
    assert updated.title == "Metroid"
    assert updated.description == "Space hunter"
    assert updated.genre == ["Action"]
    assert updated.developer == "Nintendo"


def test_update_game_validates(store, make_emulator):
    game = _add(store)
    with pytest.raises(InputError):
        store.update_game(game.id, GameUpdate(platform_id="nope"))
    with pytest.raises(EmulatorNotFoundError):
        store.update_game(game.id, GameUpdate(preferred_emulator_id="ghost"))
    with pytest.raises(GameNotFoundError):
        store.update_game("ghost", GameUpdate(title="x"))


def test_returned_records_are_copies(store):
    game = _add(store)
    game.title = "Mutated"
    assert store.get_game(game.id).title == "Metroid"


def test_toggle_favorite(store):
    game = _add(store)
    assert store.toggle_favorite(game.id) is True
    assert store.toggle_favorite(game.id) is False


def test_changes_survive_reload(tmp_path, store):
    game = _add(store)
    store.toggle_favorite(game.id)

    reopened = LibraryStore(store.path)

    assert reopened.get_game(game.id).is_favorite
    assert reopened.get_game_by_path("/roms/Metroid.nes").id == game.id


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
def test_corrupt_library_is_a_storage_error(tmp_path, content):
    path = tmp_path / "library.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(StorageError):
        LibraryStore(path)


def test_existing_default_emulator_survives_reseeding(store, make_emulator):
    emu = make_emulator("Mesen", ["nes"])
    store.set_default_emulator("nes", emu.id)
    data = json.loads(store.path.read_text(encoding="utf-8"))
    data["platforms"] = [p for p in data["platforms"] if p["id"] == "nes"]
    store.path.write_text(json.dumps(data), encoding="utf-8")

    store.reload()

    assert store.get_platform("nes").default_emulator_id == emu.id
    assert store.get_platform("snes") is not None


def test_default_emulator_must_support_platform(store, make_emulator):
    emu = make_emulator("Mesen", ["nes"])
    with pytest.raises(InputError):
        store.set_default_emulator("snes", emu.id)
    with pytest.raises(PlatformNotFoundError):
        store.set_default_emulator("nope", emu.id)
    with pytest.raises(EmulatorNotFoundError):
        store.set_default_emulator("nes", "ghost")


def test_dropping_platform_support_clears_default(store, make_emulator):
    emu = make_emulator("RetroArch", ["nes", "snes"])
    store.set_default_emulator("snes", emu.id)

    store.update_emulator(emu.id, EmulatorUpdate(supported_platform_ids=["nes"]))

    assert store.get_platform("snes").default_emulator_id is None


def test_emulator_template_cannot_be_empty(store, make_emulator):
    with pytest.raises(InputError):
        store.add_emulator(EmulatorCreate(name="X", executable_path="/x", launch_arguments=" "))
    emu = make_emulator("Y", ["nes"])
    with pytest.raises(InputError):
        store.update_emulator(emu.id, EmulatorUpdate(launch_arguments=""))


def test_deleting_emulator_clears_references(store, make_emulator):
    emu = make_emulator("Mesen", ["nes"])
    game = _add(store)
    store.set_default_emulator("nes", emu.id)
    store.update_game(game.id, GameUpdate(preferred_emulator_id=emu.id))

    store.delete_emulator(emu.id)

    assert store.get_platform("nes").default_emulator_id is None
    assert store.get_game(game.id).preferred_emulator_id is None


def test_deleting_game_cleans_collections_and_sessions(store):
    game = _add(store)
    other = _add(store, title="Zelda", path="/roms/Zelda.nes")
    col = store.add_collection("Favourites")
    store.update_collection(col.id, CollectionUpdate(game_ids=[game.id, other.id], cover_game_id=game.id))
    store.start_session(game.id)

    store.delete_game(game.id)

    [col] = store.get_all_collections()
    assert col.game_ids == [other.id]
    assert col.cover_game_id is None
    assert store.get_play_sessions(game.id) == []
    assert store.get_game(other.id).collection_ids == [col.id]


def test_delete_games_skips_unknown_ids(store):
    a = _add(store)
    b = _add(store, title="Zelda", path="/roms/Zelda.nes")
    assert store.delete_games([a.id, "ghost", b.id]) == 2
    assert store.get_all_games() == []


def test_play_time_accumulates(store):
    game = _add(store)
    store.add_play_time(game.id, 90)
    store.add_play_time(game.id, 30)
    updated = store.get_game(game.id)
    assert updated.total_play_time_seconds == 120
    assert updated.last_played is not None


def test_reads_during_reload_see_a_complete_library(store):
    for n in range(150):
        store.add_game(GameCreate(title=f"Game {n}", rom_path=f"/roms/g{n}.nes", platform_id="nes"))
    failures = []

    def reload_loop():
        try:
            for _ in range(100):
                store.reload()
        except Exception as e:  # noqa: BLE001
            failures.append(e)

    worker = threading.Thread(target=reload_loop)
    worker.start()
    sizes, misses = set(), 0
    while worker.is_alive():
        sizes.add(len(store.get_all_games()))
        if store.get_game_by_path("/roms/g0.nes") is None:
            misses += 1
    worker.join()

    assert failures == []
    assert sizes <= {150}
    assert misses == 0
    assert len(store.get_all_games()) == 150


def test_failed_reload_keeps_library_in_memory(store):
    store.add_game(GameCreate(title="Kept", rom_path="/roms/kept.nes", platform_id="nes"))
    store.path.write_text("{broken", encoding="utf-8")

    with pytest.raises(StorageError):
        store.reload()

    assert [g.title for g in store.get_all_games()] == ["Kept"]
