from pathlib import Path

from romshelf.matchers.cue.matcher import read_cue_tracks
from romshelf.matchers.m3u.matcher import read_playlist
from romshelf.matchers.ps3.matcher import read_sfo_title
from romshelf.matchers.wiiu.matcher import WiiUMatcher, read_meta_title

from conftest import touch


def test_discovery_finds_builtin_matchers(matchers):
    assert matchers.get_matcher_names() == ["cue", "m3u", "ps3", "wiiu"]
    # Playlists claim their discs before the CUE matcher sees them
    assert [m.name for m in matchers.get_all_matchers()] == ["m3u", "cue", "ps3", "wiiu"]


def test_wiiu_title_from_meta(tmp_path):
    game = tmp_path / "Mario Kart 8 [AMKP01]"
    for d in ("code", "content"):
        (game / d).mkdir(parents=True)
    touch(game / "meta" / "meta.xml", (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        "<menu>\n"
        '  <longname_en type="string">Mario Kart 8\nDeluxe Edition</longname_en>\n'
        "</menu>\n"
    ).encode("utf-8"))

    matched = WiiUMatcher().claim_directory(game)

    assert matched.platform_id == "wiiu"
    assert matched.title == "Mario Kart 8 Deluxe Edition"
    assert matched.rom_path == game


def test_wiiu_needs_all_three_dirs(tmp_path):
    (tmp_path / "code").mkdir()
    (tmp_path / "meta").mkdir()
    assert WiiUMatcher().claim_directory(tmp_path) is None


def test_wiiu_bad_meta_has_no_title(tmp_path):
    touch(tmp_path / "meta.xml", b"<menu><longname_en>")
    assert read_meta_title(tmp_path / "meta.xml") is None


def test_sfo_rejects_wrong_magic(tmp_path):
    touch(tmp_path / "PARAM.SFO", b"NOPE" + b"\x00" * 40)
    assert read_sfo_title(tmp_path / "PARAM.SFO") is None


def test_playlist_skips_comments_and_keeps_absolute(tmp_path):
    playlist = tmp_path / "game.m3u"
    playlist.write_text("#EXTM3U\n\ndisc1.chd\n/abs/disc2.chd\n", encoding="utf-8")

    assert read_playlist(playlist) == [tmp_path / "disc1.chd", Path("/abs/disc2.chd")]


def test_unregister_removes_matcher(matchers):
    matchers.unregister("ps3")
    assert matchers.get_matcher("ps3") is None
    assert matchers.get_matcher_names() == ["cue", "m3u", "wiiu"]


def test_cue_tracks_quoted_and_bare(tmp_path):
    cue = tmp_path / "Rayman.cue"
    cue.write_text(
        'FILE "Rayman (Track 01).bin" BINARY\n'
        "  TRACK 01 MODE2/2352\n"
        "    INDEX 01 00:00:00\n"
        "file track02.bin binary\n"
        "  TRACK 02 AUDIO\n"
        'FILE "Rayman (Track 01).bin" BINARY\n',
        encoding="utf-8",
    )

    assert read_cue_tracks(cue) == [
        tmp_path / "Rayman (Track 01).bin",
        tmp_path / "track02.bin",
    ]
