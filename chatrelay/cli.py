#!/usr/bin/env python3
"""
chatrelay CLI.

Every command has a short name and standard aliases:

    COMMAND     ALIASES         WHAT IT DOES
    -------     -------         ----------------------------------
    serve       start, up       Start the relay server
    chat        tui, console    Open the terminal chat client
    ask         say             Send one message and print the reply
    health      ping, status    Ping a running relay
    models      catalog         List the model catalog
"""

import argparse
import asyncio
import sys

from chatrelay import __version__


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_serve(args):
    """Start the relay server."""
    import uvicorn
    from chatrelay.config import get_config

    cfg = get_config()
    server = cfg.get("server", {})
    upstream = cfg.get("upstream", {})
    host = args.host or server.get("host", "0.0.0.0")
    port = args.port or server.get("port", 8787)

    print(f"  chatrelay v{__version__}")
    print(f"  Listening on {host}:{port}")
    print(f"  Upstream: {upstream.get('provider', 'inworld')} → {upstream.get('url', '')}")
    print(f"  Default model: {cfg.get('models', {}).get('default', '')}")
    print()

    uvicorn.run(
        "chatrelay.main:app",
        host=host,
        port=port,
        reload=args.reload,
        log_level="info",
    )


def _session(args, **kwargs):
    from chatrelay.client.session import ChatSession
    overrides = dict(kwargs)
    if getattr(args, "url", None):
        overrides["relay_url"] = args.url
    if getattr(args, "model", None):
        overrides["model_id"] = args.model
    return ChatSession.from_config(**overrides)


def _client_logging():
    """Log to a file only, so the TUI screen stays clean."""
    import logging
    from chatrelay.config import get_config

    log_file = get_config().get("logging", {}).get("file")
    if log_file:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            filename=log_file,
        )


def cmd_chat(args):
    """Launch the terminal chat client."""
    from chatrelay.tui.app import ChatRelayApp
    _client_logging()
    ChatRelayApp(session=_session(args)).run()


def cmd_ask(args):
    """Send one message, stream the reveal to stdout."""
    text = " ".join(args.message)

    async def _run():
        shown = 0

        def _echo():
            nonlocal shown
            if not session.messages or session.messages[-1].role != "assistant":
                return
            content = session.messages[-1].content
            sys.stdout.write(content[shown:])
            sys.stdout.flush()
            shown = len(content)

        session = _session(args, on_update=_echo)
        if not await session.send(text):
            print("  ✗  Nothing to send")
            return
        await session.wait_idle()
        _echo()
        print()

    asyncio.run(_run())


def cmd_health(args):
    """Ping a running relay."""
    import httpx

    url = (args.url or "http://localhost:8787").rstrip("/")
    try:
        resp = httpx.get(f"{url}/health", timeout=5)
        if resp.status_code == 200:
            data = resp.json()
            print(f"  ✓  {url} is UP")
            print(f"  🔑 API key: {'configured' if data.get('hasApiKey') else 'MISSING'}")
        else:
            print(f"  ✗  No answer — got HTTP {resp.status_code}")
    except httpx.ConnectError:
        print(f"  ✗  Nothing listening at {url}")
    except Exception as e:
        print(f"  ✗  Error: {e}")


def cmd_models(args):
    """List the model catalog (local table, or a running relay's with --url)."""
    if args.url:
        import httpx
        try:
            data = httpx.get(f"{args.url.rstrip('/')}/models", timeout=5).json()
        except Exception as e:
            print(f"  ✗  Error: {e}")
            return
        models, default = data.get("models", []), data.get("default", "")
    else:
        from chatrelay.catalog import list_models
        from chatrelay.config import get_config
        descriptors, default = list_models(get_config().get("models", {}).get("default"))
        models = [m.to_dict() for m in descriptors]

    provider = None
    for m in models:
        if m.get("provider") != provider:
            provider = m.get("provider")
            print(f"\n  {provider}")
        marker = "  ← default" if m.get("id") == default else ""
        print(f"    {m.get('id', ''):<62} {m.get('name', '')}{marker}")
    print()


# ---------------------------------------------------------------------------
# Parser with aliases
# ---------------------------------------------------------------------------

def _add_command(subparsers, names, help_text, func, setup_fn=None):
    """Register a command under multiple names."""
    p = subparsers.add_parser(names[0], help=help_text, aliases=names[1:])
    p.set_defaults(func=func)
    if setup_fn:
        setup_fn(p)
    return p


def main():
    parser = argparse.ArgumentParser(
        prog="chatrelay",
        description="chatrelay — relay chat to an LLM API and stream the reply back.",
        epilog="Run 'chatrelay <command> --help' for command-specific options.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version", "-V", action="version",
        version=f"chatrelay {__version__}",
    )

    sub = parser.add_subparsers(dest="command", metavar="<command>")

    def setup_serve(p):
        p.add_argument("--host", default=None, help="Override listen host")
        p.add_argument("--port", "-p", type=int, default=None, help="Override listen port")
        p.add_argument("--reload", action="store_true", help="Auto-reload on code changes (dev)")

    _add_command(sub, ["serve", "start", "up"],
                 "Start the relay server", cmd_serve, setup_serve)

    def setup_client(p):
        p.add_argument("--url", "-u", default=None, help="Relay URL (default: from config)")
        p.add_argument("--model", "-m", default=None, help="Model id, e.g. openai:gpt-4.1")

    _add_command(sub, ["chat", "tui", "console"],
                 "Open the terminal chat client", cmd_chat, setup_client)

    def setup_ask(p):
        setup_client(p)
        p.add_argument("message", nargs="+", help="Message to send")

    _add_command(sub, ["ask", "say"],
                 "Send one message and print the reply", cmd_ask, setup_ask)

    def setup_health(p):
        p.add_argument("--url", "-u", default=None, help="Relay URL (default: http://localhost:8787)")

    _add_command(sub, ["health", "ping", "status"],
                 "Ping a running relay", cmd_health, setup_health)

    def setup_models(p):
        p.add_argument("--url", "-u", default=None, help="Query a running relay instead of the local table")

    _add_command(sub, ["models", "catalog"],
                 "List the model catalog", cmd_models, setup_models)

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        return

    args.func(args)


if __name__ == "__main__":
    main()
