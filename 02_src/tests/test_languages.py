"""Tests for the language table."""

import json

import pytest

from polyglot.languages import DEFAULT_LANGUAGE_NAMES, language_name, load_language_names


class TestLanguageNames:
    """Tests for language table loading."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("LANGUAGES_FILE", raising=False)

        names = load_language_names()
        assert names == DEFAULT_LANGUAGE_NAMES
        assert names["es"] == "Spanish"

    def test_file_extends_defaults(self, tmp_path):
        path = tmp_path / "languages.json"
        path.write_text(json.dumps({"pt-BR": "Brazilian Portuguese", "en": "English (US)"}))

        names = load_language_names(path)
        assert names["pt-BR"] == "Brazilian Portuguese"
        assert names["en"] == "English (US)"
        assert names["fr"] == "French"

    def test_env_file(self, tmp_path, monkeypatch):
        path = tmp_path / "languages.json"
        path.write_text(json.dumps({"uk": "Ukrainian"}))
        monkeypatch.setenv("LANGUAGES_FILE", str(path))

        assert load_language_names()["uk"] == "Ukrainian"

    def test_invalid_file(self, tmp_path):
        path = tmp_path / "languages.json"
        path.write_text(json.dumps(["en", "es"]))

        with pytest.raises(ValueError):
            load_language_names(path)

    def test_language_name_fallback(self):
        assert language_name("de") == "German"
        assert language_name("tlh") == "tlh"
        assert language_name("tlh", {"tlh": "Klingon"}) == "Klingon"
