"""Color themes for the review UI (rich style strings)."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Theme:
    foreground: str
    highlight: str
    warning: str
    success: str
    muted: str
    border: str
    selection: str

    @classmethod
    def from_name(cls, name: str) -> Theme:
        return THEMES.get(name, THEMES["default"])

    @property
    def title(self) -> str:
        return f"bold {self.highlight}"

    @property
    def selected(self) -> str:
        return f"bold {self.foreground} on {self.selection}"

    @property
    def error(self) -> str:
        return f"bold {self.warning}"


THEMES: dict[str, Theme] = {
    "default": Theme(
        foreground="default",
        highlight="cyan",
        warning="yellow",
        success="green",
        muted="bright_black",
        border="grey70",
        selection="blue",
    ),
    "minimal": Theme(
        foreground="default",
        highlight="white",
        warning="yellow",
        success="green",
        muted="bright_black",
        border="bright_black",
        selection="grey30",
    ),
    "colorful": Theme(
        foreground="default",
        highlight="magenta",
        warning="bright_yellow",
        success="bright_green",
        muted="grey70",
        border="cyan",
        selection="bright_blue",
    ),
}
