"""
Centralized Rich Console Configuration
"""

from rich.console import Console
from rich.theme import Theme
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.box import ROUNDED

# Custom ClipAI Theme
custom_theme = Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "bold green",
    "highlight": "magenta",
    "dim": "dim white",
    "key": "bold cyan",
    "value": "yellow",
    "panel.border": "blue",
})

console = Console(theme=custom_theme)


def print_panel(content, title=None, style="blue", border_style="blue", subtitle=None):
    """Helper to print a uniform panel"""
    if isinstance(content, str):
        content = Text.from_markup(content)

    console.print(Panel(
        content,
        title=title,
        subtitle=subtitle,
        style=style,
        border_style=border_style,
        box=ROUNDED,
        expand=False
    ))


def print_table(rows, title=None):
    """Print key/value rows as a borderless two-column table"""
    table = Table(show_header=False, box=None, padding=(0, 2), title=title)
    table.add_column("Key", style="dim")
    table.add_column("Value")
    for key, value in rows:
        table.add_row(key, value)
    console.print(table)


def print_success(msg):
    console.print(f"[success]✅ {msg}[/success]")


def print_error(msg):
    console.print(f"[error]❌ {msg}[/error]")


def print_warning(msg):
    console.print(f"[warning]⚠️  {msg}[/warning]")
