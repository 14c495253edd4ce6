from __future__ import annotations

import pytest

from noted.stores.theme import DEFAULT_THEME, ThemeStore


@pytest.fixture
def theme_path(tmp_path):
    return tmp_path / "data" / "theme"


def test_set_persists_and_swaps_marker(theme_path):
    classes = {"app", "theme-cyber"}
    store = ThemeStore(theme_path, classes)
    store.set("nordic")
    assert theme_path.read_text() == "nordic"
    assert classes == {"app", "theme-nordic"}
    assert store.theme.get() == "nordic"


def test_default_theme_has_no_marker(theme_path):
    classes = {"theme-noir"}
    store = ThemeStore(theme_path, classes)
    store.set(DEFAULT_THEME)
    assert classes == set()
    assert theme_path.read_text() == "modern"


def test_unknown_theme_rejected(theme_path):
    store = ThemeStore(theme_path)
    with pytest.raises(ValueError):
        store.set("neon")
    assert not theme_path.exists()
    assert store.theme.get() == DEFAULT_THEME


def test_init_restores_saved_theme(theme_path):
    ThemeStore(theme_path).set("retro")
    classes: set[str] = set()
    store = ThemeStore(theme_path, classes)
    assert store.init() == "retro"
    assert classes == {"theme-retro"}


def test_init_defaults_when_missing_or_invalid(theme_path):
    assert ThemeStore(theme_path).init() == DEFAULT_THEME

    theme_path.parent.mkdir(parents=True)
    theme_path.write_text("vaporwave")
    classes = {"theme-monokai"}
    store = ThemeStore(theme_path, classes)
    assert store.init() == DEFAULT_THEME
    assert classes == set()
