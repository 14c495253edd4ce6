from __future__ import annotations

import logging
from pathlib import Path
from typing import MutableSet

from noted.store import Writable

logger = logging.getLogger(__name__)

THEMES = ("modern", "minimal", "cyber", "noir", "retro", "nordic", "corporate", "monokai")
DEFAULT_THEME = "modern"


def theme_class(theme: str) -> str:
    return f"theme-{theme}"


class ThemeStore:
    """Persists the UI theme and keeps a single ``theme-*`` marker in *classes*.

    *classes* is the class list of the document root; the default theme has
    no marker.
    """

    def __init__(self, path: Path, classes: MutableSet[str] | None = None) -> None:
        self.path = path
        self.classes: MutableSet[str] = classes if classes is not None else set()
        self.theme: Writable[str] = Writable(DEFAULT_THEME)

    def _apply(self, theme: str) -> None:
        for name in THEMES:
            self.classes.discard(theme_class(name))
        if theme != DEFAULT_THEME:
            self.classes.add(theme_class(theme))

    def set(self, theme: str) -> None:
        if theme not in THEMES:
            raise ValueError(f"Unknown theme: {theme}")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(theme)
        self._apply(theme)
        self.theme.set(theme)

    def init(self) -> str:
        try:
            saved = self.path.read_text().strip()
        except OSError:
            saved = ""
        if saved not in THEMES:
            if saved:
                logger.debug("Ignoring unknown saved theme %r", saved)
            saved = DEFAULT_THEME
        self._apply(saved)
        self.theme.set(saved)
        return saved
