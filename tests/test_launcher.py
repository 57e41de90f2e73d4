import os
import stat

import pytest

from romshelf.core.launcher import Launcher, validate_emulator_path
from romshelf.core.resolver import EmulatorResolver
from romshelf.models.game import GameCreate, GameUpdate


class FakeProc:
    def __init__(self, pid):
        self.pid = pid


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def game(store):
    return store.add_game(GameCreate(title="Tetris", rom_path="/roms/Tetris.gb", platform_id="gb"))


@pytest.fixture
def spawned():
    return []


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def launcher(store, spawned, clock):
    def spawn(argv):
        spawned.append(list(argv))
        return FakeProc(4242)
    return Launcher(store, EmulatorResolver(store), spawn=spawn, clock=clock)


def test_launch_spawns_rendered_command(store, launcher, spawned, game, make_emulator):
    emu = make_emulator("mGBA", ["gb"], args="-f {rom}", exe="/usr/bin/mgba")
    store.set_default_emulator("gb", emu.id)

    result = launcher.launch_game(game.id)

    assert result.success
    assert result.pid == 4242
    assert spawned == [["/usr/bin/mgba", "-f", "/roms/Tetris.gb"]]
    assert launcher.active_game_ids == [game.id]


def test_unresolvable_launch_returns_candidates(launcher, spawned, game, make_emulator):
    emu = make_emulator("mGBA", ["gb"])

    result = launcher.launch_game(game.id)

    assert not result.success
    assert [e.id for e in result.candidates] == [emu.id]
    assert spawned == []


def test_launch_with_picked_emulator(launcher, spawned, game, make_emulator):
    emu = make_emulator("SameBoy", ["gb"], exe="/usr/bin/sameboy")
    assert launcher.launch_game_with_emulator(game.id, emu.id).success
    assert spawned[0][0] == "/usr/bin/sameboy"


def test_spawn_failure_is_reported(store, game, make_emulator):
    def spawn(argv):
        raise FileNotFoundError(2, "No such file", argv[0])

    emu = make_emulator("mGBA", ["gb"])
    launcher = Launcher(store, EmulatorResolver(store), spawn=spawn)

    result = launcher.launch_game_with_emulator(game.id, emu.id)

    assert not result.success
    assert "No such file" in result.error
    assert store.get_play_sessions(game.id) == []


def test_session_end_adds_play_time(store, launcher, clock, game, make_emulator):
    emu = make_emulator("mGBA", ["gb"])
    launcher.launch_game_with_emulator(game.id, emu.id)
    clock.now += 125

    assert launcher.end_game_session(game.id) == 125

    assert store.get_game(game.id).total_play_time_seconds == 125
    [session] = store.get_play_sessions(game.id)
    assert session.duration_seconds == 125
    assert launcher.end_game_session(game.id) == 0


def test_validate_emulator_path(tmp_path):
    exe = tmp_path / "emu"
    exe.write_text("#!/bin/sh\n", encoding="utf-8")
    exe.chmod(exe.stat().st_mode | stat.S_IXUSR)

    assert validate_emulator_path(exe)
    assert not validate_emulator_path(tmp_path)
    assert not validate_emulator_path(tmp_path / "missing")


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_non_executable_file_is_invalid(tmp_path):
    plain = tmp_path / "notes.txt"
    plain.write_text("x", encoding="utf-8")
    plain.chmod(0o644)
    if os.geteuid() == 0:
        pytest.skip("root bypasses permission bits")
    assert not validate_emulator_path(plain)


def test_picked_emulator_that_was_deleted_uses_platform_default(
    store, launcher, spawned, game, make_emulator
):
    default = make_emulator("mGBA", ["gb"], exe="/usr/bin/mgba")
    store.set_default_emulator("gb", default.id)

    result = launcher.launch_game_with_emulator(game.id, "deleted-emu")

    assert result.success
    assert result.emulator_id == default.id
    assert spawned[0][0] == "/usr/bin/mgba"


def test_picked_emulator_unresolvable_returns_candidates(launcher, spawned, game, make_emulator):
    capable = make_emulator("SameBoy", ["gb"])

    result = launcher.launch_game_with_emulator(game.id, "deleted-emu")

    assert not result.success
    assert [e.id for e in result.candidates] == [capable.id]
    assert spawned == []


def test_result_reports_preferred_emulator_over_pick(store, launcher, spawned, game, make_emulator):
    preferred = make_emulator("mGBA", ["gb"], exe="/usr/bin/mgba")
    picked = make_emulator("SameBoy", ["gb"], exe="/usr/bin/sameboy")
    store.update_game(game.id, GameUpdate(preferred_emulator_id=preferred.id))

    result = launcher.launch_game_with_emulator(game.id, picked.id)

    assert result.emulator_id == preferred.id
    assert spawned[0][0] == "/usr/bin/mgba"
