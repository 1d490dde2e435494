"""Tests for the unified config loader (.embedlint.yml)."""

import pytest

from embedlint.config import ConfigError, EmbedlintConfig, load_config
from embedlint.models import Severity


@pytest.fixture(autouse=True)
def no_user_config(tmp_path, monkeypatch):
    monkeypatch.setattr("embedlint.config.USER_CONFIG_PATH", tmp_path / "missing-user.yml")


class TestDefaultConfig:
    def test_no_config_file_returns_defaults(self, tmp_path):
        cfg = load_config(str(tmp_path))
        assert cfg.lint.engine == "basic"
        assert cfg.lint.source_type == "script"
        assert cfg.lint.rules == {}
        assert cfg.lint.globals == []
        assert cfg.lint.max_warnings == -1
        assert cfg.embed.indent is None
        assert cfg.embed.report_bad_indent == "off"
        assert cfg.project_config_path is None
        assert cfg.user_config_path is None


class TestLoadConfig:
    def test_loads_full_config(self, tmp_path):
        config = tmp_path / ".embedlint.yml"
        config.write_text("""\
lint:
  engine: basic
  source_type: module
  rules:
    no-undef: warn
    no-debugger: 0
  globals:
    - jQuery
  exclude:
    - "vendor/**"
  max_warnings: 5
embed:
  indent: "+2"
  report_bad_indent: error
  javascript_mime_types:
    - text/javascript
  markdown_languages: [js, mjs]
  prelude: "var injected;\\n"
""")
        cfg = load_config(str(tmp_path))
        assert cfg.lint.source_type == "module"
        assert cfg.lint.rules == {"no-undef": "warn", "no-debugger": 0}
        assert cfg.lint.globals == ["jQuery"]
        assert cfg.lint.exclude == ["vendor/**"]
        assert cfg.lint.max_warnings == 5
        assert cfg.embed.indent == "+2"
        assert cfg.embed.report_bad_indent == "error"
        assert cfg.embed.javascript_mime_types == ["text/javascript"]
        assert cfg.embed.markdown_languages == ["js", "mjs"]
        assert cfg.embed.prelude == "var injected;\n"
        assert cfg.project_config_path == str(config)

    def test_numeric_indent_is_kept_as_text(self, tmp_path):
        (tmp_path / ".embedlint.yml").write_text("embed:\n  indent: 4\n")
        assert load_config(str(tmp_path)).embed.indent == "4"

    def test_single_string_becomes_list(self, tmp_path):
        (tmp_path / ".embedlint.yml").write_text("lint:\n  globals: jQuery\n")
        assert load_config(str(tmp_path)).lint.globals == ["jQuery"]

    def test_empty_file_returns_defaults(self, tmp_path):
        (tmp_path / ".embedlint.yml").write_text("")
        assert load_config(str(tmp_path)).lint.engine == "basic"

    def test_malformed_yaml_returns_defaults(self, tmp_path):
        (tmp_path / ".embedlint.yml").write_text(": : invalid yaml [[[")
        assert load_config(str(tmp_path)).lint.engine == "basic"

    def test_invalid_source_type(self, tmp_path):
        (tmp_path / ".embedlint.yml").write_text("lint:\n  source_type: commonjs\n")
        with pytest.raises(ConfigError):
            load_config(str(tmp_path))

    def test_walks_up_to_find_config(self, tmp_path):
        """Config in a parent dir is found when linting a subdirectory."""
        (tmp_path / ".embedlint.yml").write_text("lint:\n  max_warnings: 3\n")
        subdir = tmp_path / "site" / "pages"
        subdir.mkdir(parents=True)
        assert load_config(str(subdir)).lint.max_warnings == 3

    def test_file_path_searches_its_directory(self, tmp_path):
        (tmp_path / ".embedlint.yml").write_text("lint:\n  max_warnings: 7\n")
        page = tmp_path / "index.html"
        page.write_text("<p></p>")
        assert load_config(str(page)).lint.max_warnings == 7


class TestUnifiedConfig:
    """Project > user > defaults."""

    def test_project_overrides_user(self, tmp_path, monkeypatch):
        user = tmp_path / "user.yml"
        user.write_text("lint:\n  engine: custom\n  max_warnings: 10\nembed:\n  indent: tab\n")
        monkeypatch.setattr("embedlint.config.USER_CONFIG_PATH", user)

        project = tmp_path / "project"
        project.mkdir()
        (project / ".embedlint.yml").write_text("lint:\n  max_warnings: 0\n")

        cfg = load_config(str(project))
        assert cfg.lint.max_warnings == 0
        assert cfg.lint.engine == "custom"
        assert cfg.embed.indent == "tab"
        assert cfg.user_config_path == str(user)
        assert cfg.project_config_path == str(project / ".embedlint.yml")

    def test_project_lists_replace_user_lists(self, tmp_path, monkeypatch):
        user = tmp_path / "user.yml"
        user.write_text("lint:\n  globals: [a, b]\n")
        monkeypatch.setattr("embedlint.config.USER_CONFIG_PATH", user)
        project = tmp_path / "project"
        project.mkdir()
        (project / ".embedlint.yml").write_text("lint:\n  globals: [c]\n")
        assert load_config(str(project)).lint.globals == ["c"]

    def test_sections_merge_independently(self, tmp_path, monkeypatch):
        user = tmp_path / "user.yml"
        user.write_text("lint:\n  globals: [a]\nembed:\n  indent: \"4\"\n")
        monkeypatch.setattr("embedlint.config.USER_CONFIG_PATH", user)
        project = tmp_path / "project"
        project.mkdir()
        (project / ".embedlint.yml").write_text("embed:\n  indent: \"+2\"\n")

        cfg = load_config(str(project))
        assert cfg.lint.globals == ["a"]
        assert cfg.embed.indent == "+2"

    def test_user_fallback_when_no_project(self, tmp_path, monkeypatch):
        user = tmp_path / "user.yml"
        user.write_text("embed:\n  report_bad_indent: warn\n")
        monkeypatch.setattr("embedlint.config.USER_CONFIG_PATH", user)
        empty = tmp_path / "empty"
        empty.mkdir()
        cfg = load_config(str(empty))
        assert cfg.embed.report_bad_indent == "warn"
        assert cfg.project_config_path is None

    def test_explicit_config_path_skips_search(self, tmp_path):
        (tmp_path / ".embedlint.yml").write_text("lint:\n  max_warnings: 1\n")
        explicit = tmp_path / "other.yml"
        explicit.write_text("lint:\n  max_warnings: 9\n")
        cfg = load_config(str(tmp_path), config_path=explicit)
        assert cfg.lint.max_warnings == 9
        assert cfg.project_config_path == str(explicit)


class TestRuleSeverities:
    DEFAULTS = {"no-undef": Severity.ERROR, "no-unused-vars": Severity.WARN}

    def test_configured_levels_override_defaults(self):
        cfg = EmbedlintConfig()
        cfg.lint.rules = {"no-undef": "off", "no-debugger": 2, "no-unused-vars": "warning"}
        assert cfg.rule_severities(self.DEFAULTS) == {
            "no-undef": Severity.OFF,
            "no-unused-vars": Severity.WARN,
            "no-debugger": Severity.ERROR,
        }

    def test_invalid_level(self):
        cfg = EmbedlintConfig()
        cfg.lint.rules = {"no-undef": "loud"}
        with pytest.raises(ConfigError, match="no-undef"):
            cfg.rule_severities(self.DEFAULTS)
