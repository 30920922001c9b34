"""
chatrelay console — talk to the relay from a terminal.
Textual-based TUI: a chat pane with typewriter replies and a status pane.
Entry point: chatrelay chat (alias: tui)
"""
from __future__ import annotations
from pathlib import Path
from typing import ClassVar
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header, TabbedContent, TabPane
from chatrelay.client.session import ChatSession
from chatrelay.tui.screens.base import RelayPane
from chatrelay.tui.screens.chat import ChatScreen
from chatrelay.tui.screens.status import StatusScreen

# ---------------------------------------------------------------------------
# Screen registry — (key, label, tab_id, pane_class)
# ---------------------------------------------------------------------------
SCREEN_REGISTRY: list[tuple[str, str, str, type[RelayPane]]] = [
    ("ctrl+1", "Chat",   "chat",   ChatScreen),
    ("ctrl+2", "Status", "status", StatusScreen),
]
class ChatRelayApp(App):
    """Terminal chat client for chatrelay."""
    CSS_PATH = str(Path(__file__).parent / "styles" / "main.tcss")
    TITLE = "chatrelay"
    SUB_TITLE = "chat over the relay"
    BINDINGS: ClassVar[list[Binding]] = [
        Binding("ctrl+q", "quit", "Quit", priority=True),
        Binding("ctrl+1", "switch_tab('chat')",   "Chat",    show=True),
        Binding("ctrl+2", "switch_tab('status')", "Status",  show=True),
        Binding("ctrl+r", "refresh_all",          "Refresh", show=True),
    ]
    def __init__(self, session: ChatSession | None = None, **kwargs):
        super().__init__(**kwargs)
        self.session = session or ChatSession.from_config()
    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with TabbedContent(initial="chat"):
            for _key, label, tab_id, pane_cls in SCREEN_REGISTRY:
                with TabPane(label, id=tab_id):
                    yield pane_cls(session=self.session, id=f"{tab_id}-pane")
        yield Footer()
    def action_switch_tab(self, tab_id: str) -> None:
        self.query_one(TabbedContent).active = tab_id
    def action_refresh_all(self) -> None:
        for _key, _label, tab_id, _cls in SCREEN_REGISTRY:
            self.query_one(f"#{tab_id}-pane", RelayPane).refresh_content()
