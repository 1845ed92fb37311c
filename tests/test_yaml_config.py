from pathlib import Path

import pytest

from webwhisper.util.yaml import load_yaml_config


def _write(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(body, encoding="utf-8")
    return path


class TestLoadYamlConfig:
    def test_missing_file_returns_defaults(self, tmp_path: Path) -> None:
        result = load_yaml_config(tmp_path / "nope.yaml", defaults={"a": 1})
        assert result == {"a": 1}

    def test_substitutes_env_vars(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setenv("WW_HOST", "db.internal")
        path = _write(tmp_path, "database:\n  url: postgres://$(WW_HOST)/ww\n")

        assert load_yaml_config(path) == {"database": {"url": "postgres://db.internal/ww"}}

    def test_uses_inline_fallback(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.delenv("WW_BACKEND", raising=False)
        path = _write(tmp_path, "backend: $(WW_BACKEND:-memory)\n")

        assert load_yaml_config(path)["backend"] == "memory"

    def test_unset_var_without_fallback_is_empty(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.delenv("WW_KEY", raising=False)
        path = _write(tmp_path, "keys:\n  - $(WW_KEY)\n")

        assert load_yaml_config(path)["keys"] == [""]

    def test_required_var_missing_raises(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.delenv("WW_SECRET", raising=False)
        path = _write(tmp_path, "secret: $(WW_SECRET)\n")

        with pytest.raises(ValueError, match="WW_SECRET"):
            load_yaml_config(path, required_vars={"WW_SECRET"})

    def test_non_mapping_top_level_raises(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "- one\n- two\n")

        with pytest.raises(ValueError, match="mapping"):
            load_yaml_config(path)

    def test_non_string_values_untouched(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "port: 8000\nssl: false\n")

        assert load_yaml_config(path) == {"port": 8000, "ssl": False}
