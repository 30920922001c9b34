"""
Status screen — relay health and the model catalog it advertises.
"""
from __future__ import annotations
import httpx
from textual.app import ComposeResult
from textual.containers import ScrollableContainer
from textual.widgets import Static
from chatrelay.client.session import ChatSession
from chatrelay.tui.screens.base import RelayPane


class StatusScreen(RelayPane):
    """Health + catalog, refreshed on mount and on 'r'."""
    def __init__(self, session: ChatSession | None = None, **kwargs):
        super().__init__(**kwargs)
        self.session = session or ChatSession.from_config()
    def compose(self) -> ComposeResult:
        yield self.section("Relay")
        yield Static("[dim]checking…[/dim]", id="status-health", markup=True)
        yield self.section("Models")
        with ScrollableContainer(id="status-scroll"):
            yield Static("", id="status-models", markup=True)
    def on_mount(self) -> None:
        self.refresh_content()
    def refresh_content(self) -> None:
        self.run_worker(self._load(), exclusive=True, group="status")
    async def _load(self) -> None:
        health_box = self.query_one("#status-health", Static)
        try:
            health = await self.session.health()
            key_style = "green" if health.get("hasApiKey") else "yellow"
            health_box.update("\n".join([
                self.kv("url", self.session.relay_url),
                self.kv("status", str(health.get("status", "?")), "green"),
                self.kv("api key", "configured" if health.get("hasApiKey") else "missing", key_style),
            ]))
        except (httpx.HTTPError, ValueError) as e:
            health_box.update(f"[red]✗ No answer from {self.session.relay_url}[/red]\n[dim]  {e}[/dim]")
        catalog = await self.session.fetch_models()
        lines = []
        current = None
        for m in catalog["models"]:
            if m.get("provider") != current:
                current = m.get("provider")
                lines.append(f"[bold]{current}[/bold]")
            marker = " [green]◀ default[/green]" if m.get("id") == catalog["default"] else ""
            lines.append(f"  {m.get('name', '?')}  [dim]{m.get('id', '')}[/dim]{marker}")
        if not lines:
            lines.append(f"[dim]catalog unavailable, fallback {catalog['default']}[/dim]")
        self.query_one("#status-models", Static).update("\n".join(lines))
