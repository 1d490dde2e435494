"""Tests for lintable file discovery."""

from embedlint.discovery import collect_files
from embedlint.settings import EmbedSettings

EXTENSIONS = EmbedSettings().extensions


def _touch(root, *names):
    for name in names:
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("")


class TestCollectFiles:
    def test_walks_directories_by_extension(self, tmp_path):
        _touch(tmp_path, "index.html", "docs/README.md", "feed.xml", "app.js", "style.css")
        found = collect_files([tmp_path], EXTENSIONS)
        assert [p.relative_to(tmp_path).as_posix() for p in found] == [
            "app.js",
            "docs/README.md",
            "feed.xml",
            "index.html",
        ]

    def test_default_excluded_directories(self, tmp_path):
        _touch(tmp_path, "node_modules/lib/page.html", ".git/page.html", "ok.html")
        found = collect_files([tmp_path], EXTENSIONS)
        assert [p.name for p in found] == ["ok.html"]

    def test_exclude_globs(self, tmp_path):
        _touch(tmp_path, "vendor/lib.html", "pages/a.html", "pages/a.min.html")
        found = collect_files([tmp_path], EXTENSIONS, ["vendor", "*.min.html"])
        assert [p.relative_to(tmp_path).as_posix() for p in found] == ["pages/a.html"]

    def test_explicit_file_always_included(self, tmp_path):
        _touch(tmp_path, "template.tpl")
        assert collect_files([tmp_path / "template.tpl"], EXTENSIONS) == [tmp_path / "template.tpl"]

    def test_missing_path_is_skipped(self, tmp_path):
        assert collect_files([tmp_path / "nope"], EXTENSIONS) == []

    def test_duplicates_collapsed(self, tmp_path):
        _touch(tmp_path, "a.html")
        assert collect_files([tmp_path, tmp_path / "a.html"], EXTENSIONS) == [tmp_path / "a.html"]
