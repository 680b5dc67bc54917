#!/usr/bin/env python3
"""
ClipAI - summarize the selected text from anywhere
Main entry point

Usage:
    python main.py                  # Hotkeys + popup + control server on 127.0.0.1:5127
    python main.py --no-server      # Hotkeys + popup only
    python main.py --config PATH    # Use another settings file
"""

import argparse
import logging
import signal
import sys
import tkinter as tk
from pathlib import Path

from rich.logging import RichHandler
from rich.table import Table

from clipai import __version__
from clipai.accelerators import format_for_display
from clipai.app import ClipAIApp
from clipai.config import CONFIG_FILE
from clipai.console import console, print_panel, print_success, print_table, print_warning, print_error
from clipai.web_server import DEFAULT_HOST, DEFAULT_PORT

APP = None


def parse_args(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="ClipAI - summarize the selected text with an LLM",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                  Start with the control server
  python main.py --no-server      Hotkeys and popup only
  python main.py --port 8080      Control server on another port
        """
    )
    parser.add_argument(
        '--config',
        type=Path,
        default=CONFIG_FILE,
        help=f'Settings file (default: {CONFIG_FILE})'
    )
    parser.add_argument(
        '--port',
        type=int,
        default=DEFAULT_PORT,
        help=f'Control server port on {DEFAULT_HOST} (default: {DEFAULT_PORT})'
    )
    parser.add_argument(
        '--no-server',
        action='store_true',
        help='Do not start the local control server'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Verbose logging'
    )
    return parser.parse_args(argv)


def setup_logging(debug: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=debug)],
    )
    # Suppress Flask/werkzeug logging (only show errors)
    logging.getLogger('werkzeug').setLevel(logging.ERROR)


def print_banner(app: ClipAIApp, port):
    """Startup summary: provider, presets and server"""
    config = app.store.load()
    credential = config.active_credential()

    print_panel(f"[bold]ClipAI[/bold] v{__version__}", subtitle=str(app.store.path), style="none")

    key_status = "[green]key set[/green]" if credential.has_key else "[red]no key[/red]"
    print_table([
        ("🤖 Provider", config.active_provider_id),
        ("   Model", credential.model_override),
        ("   API key", key_status),
        ("   Auto-hide", f"{config.auto_hide_ms} ms" if config.auto_hide_ms else "off"),
    ])
    console.print()

    table = Table(title="Presets", show_header=True, header_style="bold cyan", box=None)
    table.add_column("Name")
    table.add_column("Hotkey")
    table.add_column("Status")
    for preset in config.presets:
        hotkey = format_for_display(preset.accelerator, for_display=True) or "[dim]unbound[/dim]"
        if app.registry.binding_for(preset):
            status = "[green]registered[/green]"
        elif preset.accelerator:
            status = "[yellow]not registered[/yellow]"
        else:
            status = ""
        table.add_row(preset.name, hotkey, status)
    console.print(table)
    console.print()

    if port:
        console.print(f"[bold green]🚀 Server[/bold green]  [link=http://{DEFAULT_HOST}:{port}]http://{DEFAULT_HOST}:{port}[/link]")
    if not credential.has_key:
        print_warning(f"No API key for {config.active_provider_id}; add one in {app.store.path}")
    print_success(f"Ready, {len(app.registry.registered)} hotkey(s) active")
    console.print("[dim]Press Ctrl+C to quit[/dim]")


def signal_handler(signum, frame):
    """Handle interrupt signals"""
    console.print("\n[dim]Shutdown signal received...[/dim]")
    if APP:
        APP.stop()
    else:
        sys.exit(0)


def main(argv=None):
    """Main entry point"""
    global APP
    args = parse_args(argv)
    setup_logging(args.debug)

    # Suppress Flask startup banner
    import flask.cli
    flask.cli.show_server_banner = lambda *args: None

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    port = None if args.no_server else args.port
    try:
        APP = ClipAIApp.create(args.config)
    except tk.TclError as e:
        print_error(f"Cannot open the popup window (no display?): {e}")
        return 1
    APP.start(port)
    print_banner(APP, port)

    try:
        APP.run()
    except KeyboardInterrupt:
        APP.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
