"""
Shared base for the chat and status panes.
"""
from __future__ import annotations
from textual.widget import Widget
from textual.widgets import Static


class RelayPane(Widget):
    """
    One tab's content. Subclasses compose their widgets and override
    refresh_content(), which the app calls on ctrl+r.
    """
    DEFAULT_CSS = """
    RelayPane {
        height: 1fr;
        width: 1fr;
    }
    """
    def refresh_content(self) -> None:
        self.refresh()
    @staticmethod
    def kv(label: str, value: str, style: str = "white") -> str:
        """'label  value' row for the status pane."""
        return f"[bold]{label:<8}[/bold] [{style}]{value}[/{style}]"
    @staticmethod
    def section(title: str) -> Static:
        return Static(f"[bold green]{title}[/bold green]", markup=True, classes="pane-section")
