"""
Chat screen — the conversation view.
Message list on top, model selector + input row at the bottom.
Replies are revealed by the session's typewriter, ticking on this pane's
own set_interval timer, and the input stays disabled until the reveal ends.
"""
from __future__ import annotations
from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Horizontal, VerticalScroll
from textual.widgets import Button, Input, Select, Static
from chatrelay.catalog import DEFAULT_MODEL_ID
from chatrelay.client.session import ChatSession
from chatrelay.conversation import Message
from chatrelay.tui.screens.base import RelayPane

_ROLE_LABEL: dict[str, tuple[str, str]] = {
    "user":      ("→ You", "bold cyan"),
    "assistant": ("← Assistant", "bold yellow"),
    "system":    ("● System", "dim"),
}


class MessageView(Static):
    """One message. Content is plain text, never parsed as markup."""
    def __init__(self, message: Message, **kwargs):
        self.chat_message = message
        super().__init__(self._render_message(), **kwargs)
    def _render_message(self) -> Text:
        label, style = _ROLE_LABEL.get(self.chat_message.role, (self.chat_message.role, "bold"))
        cursor = "▌" if self.chat_message.is_animating else ""
        return Text.assemble((label, style), "\n", self.chat_message.content, (cursor, "dim"))
    def refresh_message(self) -> None:
        self.update(self._render_message())
        self.set_class(self.chat_message.role == "user", "user")


class ChatScreen(RelayPane):
    """Interactive chat against the relay."""
    def __init__(self, session: ChatSession | None = None, **kwargs):
        super().__init__(**kwargs)
        self.session = session or ChatSession.from_config()
        self.session.on_update = self._sync
        self._views: list[MessageView] = []
    def compose(self) -> ComposeResult:
        with VerticalScroll(id="chat-log"):
            yield Static("[dim]Start a conversation[/dim]", classes="chat-empty", markup=True)
        yield Static("", id="chat-typing", markup=True)
        with Horizontal(id="chat-input-row"):
            yield Select([(DEFAULT_MODEL_ID, DEFAULT_MODEL_ID)], value=DEFAULT_MODEL_ID,
                         allow_blank=False, id="chat-model")
            yield Input(placeholder="Send a message...", max_length=self.session.max_input_length,
                        id="chat-input")
            yield Static(f"0/{self.session.max_input_length}", id="chat-count")
            yield Button("Send", id="chat-send", variant="primary")
    def on_mount(self) -> None:
        # Reveal ticks run on this widget's timer
        self.session.schedule = self.set_interval
        self.run_worker(self._load_models(), exclusive=False)
        self.query_one("#chat-input", Input).focus()
    async def _load_models(self) -> None:
        catalog = await self.session.fetch_models()
        options = [(m.get("name", m.get("id")), m.get("id")) for m in catalog["models"] if m.get("id")]
        default = catalog["default"]
        if not any(value == default for _label, value in options):
            options.insert(0, (default, default))
        select = self.query_one("#chat-model", Select)
        select.set_options(options)
        select.value = default
        self.session.model_id = default
    def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.id == "chat-model" and isinstance(event.value, str):
            self.session.model_id = event.value
    def on_input_changed(self, event: Input.Changed) -> None:
        limit = self.session.max_input_length
        count = self.query_one("#chat-count", Static)
        count.update(f"{len(event.value)}/{limit}")
        count.set_class(len(event.value) >= limit, "at-limit")
    def on_input_submitted(self, event: Input.Submitted) -> None:
        self._submit()
    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "chat-send":
            self._submit()
    def _submit(self) -> None:
        box = self.query_one("#chat-input", Input)
        text = box.value
        if not text.strip() or self.session.busy:
            return
        box.value = ""
        self.run_worker(self.session.send(text), exclusive=True, group="send")
    def _sync(self) -> None:
        """Re-render after any session change (send, frame, finalize, error)."""
        if not self.is_mounted:
            return
        log = self.query_one("#chat-log", VerticalScroll)
        messages = self.session.messages
        views = self._views
        same = len(views) == len(messages) and all(v.chat_message is m for v, m in zip(views, messages))
        if same:
            for view in views:
                view.refresh_message()
        else:
            log.remove_children()
            self._views = [MessageView(m, classes="user" if m.role == "user" else "") for m in messages]
            if self._views:
                log.mount_all(self._views)
            else:
                log.mount(Static("[dim]Start a conversation[/dim]", classes="chat-empty", markup=True))
        typing = self.session.pending and bool(messages) and messages[-1].role == "user"
        self.query_one("#chat-typing", Static).update("[dim]← Assistant is typing…[/dim]" if typing else "")
        busy = self.session.busy
        self.query_one("#chat-input", Input).disabled = busy
        self.query_one("#chat-send", Button).disabled = busy
        if not busy:
            self.query_one("#chat-input", Input).focus()
        log.scroll_end(animate=False)
    def refresh_content(self) -> None:
        self._sync()
