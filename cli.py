# cli.py
import os
import sys
from datetime import datetime
from typing import List, Dict, Any, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.prompt import IntPrompt, Confirm, Prompt
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich import box

from prompt_toolkit import prompt
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.styles import Style as PromptStyle

from sdk.pyinventory import CatalogClient
import requests

console = Console()
c = CatalogClient(base_url=os.environ.get("CATALOG_URL", "http://127.0.0.1:8085"))


# Global state for status messages and caching
status_message = "Ready"
category_cache: List[Dict[str, Any]] = []

# Custom prompt style for prompt_toolkit
custom_style = PromptStyle.from_dict({
    'completion-menu.completion': 'bg:#008888 #ffffff',
    'completion-menu.completion.current': 'bg:#00aaaa #000000',
    'scrollbar.background': 'bg:#88aaaa',
    'scrollbar.button': 'bg:#222222',
})


# ---------------------------
# Display helpers
# ---------------------------
def show_products(page: Dict[str, Any], title: str = "📦 Products"):
    products = page.get("items", []) if isinstance(page, dict) else page
    if not products:
        console.print("[italic yellow]No products found[/italic yellow]")
        return

    names = {cat["id"]: cat["name"] for cat in category_cache}
    table = Table(
        title=title,
        box=box.ROUNDED,
        header_style="bold cyan",
        title_style="bold magenta",
        show_lines=True
    )
    table.add_column("ID", style="dim", width=6)
    table.add_column("SKU", width=14)
    table.add_column("Name", style="bold", width=24)
    table.add_column("Price", justify="right", width=10)
    table.add_column("Qty", justify="right", width=8)
    table.add_column("Category", width=15)

    for p in products:
        qty = p.get("quantity", 0)
        qty_style = "red" if qty == 0 else ""
        table.add_row(
            str(p.get("id", "N/A")),
            p.get("sku", "N/A"),
            p.get("name", "N/A"),
            f"${p.get('price', '0')}",
            f"[{qty_style}]{qty}[/{qty_style}]" if qty_style else str(qty),
            names.get(p.get("category_id"), "-")
        )
    console.print(table)

    if isinstance(page, dict) and "total_count" in page:
        console.print(
            f"[dim]page {page['page'] + 1} of {max(page['total_pages'], 1)} "
            f"({page['total_count']} matching)[/dim]"
        )


def show_categories(page: Dict[str, Any]):
    categories = page.get("items", [])
    if not categories:
        console.print("[italic yellow]No categories found[/italic yellow]")
        return

    table = Table(
        title="🏷️ Categories",
        box=box.ROUNDED,
        header_style="bold yellow",
        title_style="bold yellow",
        show_lines=True
    )
    table.add_column("ID", style="dim", width=6)
    table.add_column("Name", style="bold", width=24)
    table.add_column("Description", width=40)
    table.add_column("Products", justify="right", width=10)

    for cat in categories:
        table.add_row(
            str(cat.get("id")),
            cat.get("name", "N/A"),
            cat.get("description") or "",
            str(cat.get("product_count", 0))
        )
    console.print(table)


def show_status(message: str, is_success: bool = True):
    style = "green" if is_success else "red"
    return Panel.fit(f"[{style}]{message}[/{style}]", title="Status")


def _error_detail(e: Exception) -> str:
    if isinstance(e, requests.exceptions.HTTPError) and e.response is not None:
        try:
            return e.response.json().get("detail", str(e))
        except ValueError:
            return str(e)
    return str(e)


# ---------------------------
# API wrapper with enhanced exception handling
# ---------------------------
def try_api(fn, *args, success_msg: Optional[str] = None, **kwargs):
    """
    Calls fn(*args, **kwargs). Shows a spinner while calling.
    Returns the decoded result, or None after printing the error.
    """
    global status_message
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            progress.add_task(description="Processing...", total=None)
            result = fn(*args, **kwargs)

        if success_msg:
            status_message = success_msg
            console.print(show_status(success_msg, True))
        return result
    except (requests.exceptions.RequestException, ValueError) as e:
        status_message = f"Error: {_error_detail(e)}"
        console.print(show_status(status_message, False))
        return None


# ---------------------------
# Autocompletion helpers
# ---------------------------
def refresh_category_cache():
    global category_cache
    page = try_api(c.list_categories, size=100) or {}
    category_cache = page.get("items", [])


def get_category_completer():
    names = [cat.get("name", "") for cat in category_cache]
    ids = [str(cat.get("id", "")) for cat in category_cache]
    return WordCompleter([n for n in (names + ids) if n], ignore_case=True)


def resolve_category(raw: str) -> Optional[int]:
    raw = raw.strip()
    if not raw:
        return None
    if raw.isdigit():
        return int(raw)
    for cat in category_cache:
        if cat.get("name") == raw:
            return cat["id"]
    console.print(f"[yellow]Unknown category '{raw}', product will be uncategorized[/yellow]")
    return None


# ---------------------------
# Layout and Header
# ---------------------------
def create_header():
    header = Table(show_header=False, box=box.ROUNDED)
    header.add_column("left", width=30)
    header.add_column("center", width=40)
    header.add_column("right", width=30)

    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    header.add_row(
        "📦 PyInventory SDK",
        "[bold blue]Inventory Catalog CLI[/bold blue]",
        f"[dim]{now}[/dim]"
    )
    return Panel(header, style="bold blue")


# ---------------------------
# Input helpers with autocomplete
# ---------------------------
def prompt_with_autocomplete(message: str, completer=None, default: str = ""):
    return prompt(f"{message} ", completer=completer, style=custom_style, default=default)


def ask_price(message: str, default: str = "10.00") -> str:
    # prices stay strings so the server parses them as exact decimals
    while True:
        raw = Prompt.ask(message, default=default)
        try:
            float(raw)
            return raw
        except ValueError:
            console.print("[red]Please enter a valid number.[/red]")


def ask_page() -> int:
    return IntPrompt.ask("Page (0-based)", default=0)


# ---------------------------
# Main menu
# ---------------------------
def menu():
    global status_message, category_cache

    console.clear()
    console.print(create_header())

    # Preload categories for autocomplete
    refresh_category_cache()

    while True:
        if status_message:
            console.print(show_status(status_message, "Error" not in status_message))

        menu_table = Table.grid(padding=(0, 2))
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)

        options = [
            ("1", "📦 List products", "7", "🏷️ List categories"),
            ("2", "🔍 Search products", "8", "➕ Create category"),
            ("3", "➕ Create product", "9", "🗑️ Delete category"),
            ("4", "ℹ️ Get product by ID", "10", "📉 Low stock"),
            ("5", "💲 Price range", "11", "🚫 Out of stock"),
            ("6", "🗑️ Delete product", "12", "🔄 Reset store"),
            ("", "", "q", "👋 Quit")
        ]

        for row in options:
            menu_table.add_row(*row)

        console.print(Panel(menu_table, title="📋 Menu", border_style="yellow"))

        choice = prompt_with_autocomplete(
            "\nChoose an option",
            completer=WordCompleter([str(i) for i in range(1, 13)] + ["q", "quit", "exit"])
        ).strip()

        if choice == "1":
            sort_by = prompt_with_autocomplete(
                "Sort by",
                completer=WordCompleter(["name", "sku", "price", "quantity", "created_at"]),
                default="name"
            )
            direction = "desc" if Confirm.ask("Descending?", default=False) else "asc"
            page = try_api(c.list_products, ask_page(), 10, sort_by, direction,
                           success_msg="Products loaded successfully")
            if page is not None:
                show_products(page)

        elif choice == "2":
            term = prompt_with_autocomplete("Enter search term")
            page = try_api(c.search_products, term, success_msg=f"Search for '{term}' completed")
            if page is not None:
                show_products(page, title=f"🔍 Results for '{term}'")

        elif choice == "3":
            sku = prompt_with_autocomplete("Enter SKU")
            name = prompt_with_autocomplete("Enter product name")
            price = ask_price("💰 Price")
            qty = IntPrompt.ask("📦 Quantity", default=1)
            description = prompt_with_autocomplete("📝 Description (optional)") or None
            category = prompt_with_autocomplete("🏷️ Category (optional)", completer=get_category_completer())
            resp = try_api(
                c.create_product, sku, name, price, qty, description, resolve_category(category),
                success_msg=f"Product '{sku}' created successfully"
            )
            if resp:
                console.print(Panel(f"Created product: [green]{resp['id']}[/green]"))

        elif choice == "4":
            pid = IntPrompt.ask("Enter product ID")
            resp = try_api(c.get_product, pid, success_msg=f"Product {pid} details loaded")
            if resp:
                show_products([resp])

        elif choice == "5":
            low = ask_price("Minimum price", default="0")
            high = ask_price("Maximum price", default="100")
            page = try_api(c.price_range, low, high, success_msg=f"Products between ${low} and ${high}")
            if page is not None:
                show_products(page)

        elif choice == "6":
            pid = IntPrompt.ask("Enter product ID")
            if Confirm.ask(f"Delete product {pid}?"):
                try_api(c.delete_product, pid, success_msg=f"Product {pid} deleted")

        elif choice == "7":
            page = try_api(c.list_categories, ask_page(), success_msg="Categories loaded successfully")
            if page is not None:
                show_categories(page)

        elif choice == "8":
            name = prompt_with_autocomplete("Enter category name")
            description = prompt_with_autocomplete("📝 Description (optional)") or None
            resp = try_api(c.create_category, name, description,
                           success_msg=f"Category '{name}' created successfully")
            if resp:
                refresh_category_cache()

        elif choice == "9":
            raw = prompt_with_autocomplete("Category to delete", completer=get_category_completer())
            cid = resolve_category(raw)
            if cid is not None:
                resp = try_api(c.delete_category, cid)
                if resp and resp.get("error"):
                    console.print(Panel.fit(f"[red]{resp['detail']}[/red]", title="❌ Not deleted"))
                elif resp:
                    console.print(show_status(f"Category {cid} deleted", True))
                    refresh_category_cache()

        elif choice == "10":
            threshold = IntPrompt.ask("Threshold", default=10)
            page = try_api(c.low_stock, threshold, success_msg=f"Products with fewer than {threshold} units")
            if page is not None:
                show_products(page, title="📉 Low stock")

        elif choice == "11":
            products = try_api(c.out_of_stock, success_msg="Out-of-stock products loaded")
            if products is not None:
                show_products(products, title="🚫 Out of stock")

        elif choice == "12":
            if Confirm.ask("[red]This will clear all data. Continue?[/red]"):
                resp = try_api(c.reset, success_msg="Store reset successfully")
                console.print(resp)
                category_cache = []

        elif choice.lower() in ("q", "quit", "exit"):
            if Confirm.ask("Are you sure you want to quit?"):
                console.print(Panel.fit("[bold green]Thank you for using PyInventory! 👋[/bold green]", title="Goodbye"))
                sys.exit(0)

        console.print()
        console.rule(style="dim")


if __name__ == "__main__":
    try:
        menu()
    except KeyboardInterrupt:
        console.print("\n\n[bold red]Interrupted by user[/bold red]")
        sys.exit(1)
