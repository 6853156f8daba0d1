"""Classify the editor or terminal hosting a session from its program name."""

from __future__ import annotations

from enum import Enum


class HostApp(Enum):
    VSCODE = "vscode"
    CURSOR = "cursor"
    WINDSURF = "windsurf"
    ZED = "zed"
    ITERM2 = "iterm2"
    WARP = "warp"
    JETBRAINS = "jetbrains"
    TERMINAL = "terminal"
    UNKNOWN = "unknown"

    @classmethod
    def from_program(cls, name: str | None) -> HostApp:
        if not name:
            return cls.UNKNOWN
        lower = name.lower()
        for needle, host in _MATCH_ORDER:
            if needle in lower:
                return host
        return cls.UNKNOWN

    @property
    def bundle_id(self) -> str | None:
        return _BUNDLE_IDS.get(self)

    @property
    def cli_command(self) -> str | None:
        return _CLI_COMMANDS.get(self)

    @property
    def is_editor(self) -> bool:
        return self in _CLI_COMMANDS

    @property
    def uses_workspace_file(self) -> bool:
        return self.is_editor


# Checked top to bottom: Cursor's process name contains "code" and
# JetBrains' JediTerm contains "iterm".
_MATCH_ORDER = (
    ("cursor", HostApp.CURSOR),
    ("windsurf", HostApp.WINDSURF),
    ("zed", HostApp.ZED),
    ("code", HostApp.VSCODE),
    ("jetbrains", HostApp.JETBRAINS),
    ("iterm", HostApp.ITERM2),
    ("warp", HostApp.WARP),
    ("terminal", HostApp.TERMINAL),
)

_BUNDLE_IDS = {
    HostApp.VSCODE: "com.microsoft.VSCode",
    HostApp.CURSOR: "com.todesktop.230313mzl4w4u92",
    HostApp.WINDSURF: "com.codeium.windsurf",
    HostApp.ZED: "dev.zed.Zed",
    HostApp.ITERM2: "com.googlecode.iterm2",
    HostApp.WARP: "dev.warp.Warp-Stable",
    HostApp.TERMINAL: "com.apple.Terminal",
}

_CLI_COMMANDS = {
    HostApp.VSCODE: "code",
    HostApp.CURSOR: "cursor",
    HostApp.WINDSURF: "windsurf",
    HostApp.ZED: "zed",
}
