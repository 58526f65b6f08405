"""
meez - CLI Entry Point.

Usage:
    meez parse <url-or-text>       Parse a recipe
    meez parse <text> --fuzzy      Reuse a similar cached recipe if one exists
    meez ingredient "<line>"       Parse one ingredient line (no model call)
    meez extract <url>             Fetch and extract a page (no model call)
    meez health                    Check configuration
    meez --help                    Show help
"""

import asyncio
import json
import logging

import typer
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.spinner import Spinner
from rich.table import Table

app = typer.Typer(
    name="meez",
    help="meez - Turn recipe pages and pasted text into structured recipes.",
    add_completion=False,
)
console = Console()


def _configure_logging() -> None:
    from meez.config import settings

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def parse(
    source: str = typer.Argument(..., help="Recipe URL or recipe text"),
    force: bool = typer.Option(False, "--force", "-f", help="Ignore the cache and parse again"),
    fuzzy: bool = typer.Option(False, "--fuzzy", help="Reuse a semantically similar cached recipe"),
    log_prompts: bool = typer.Option(False, "--log-prompts", "-l", help="Log all LLM prompts to prompt_logs/"),
    as_json: bool = typer.Option(False, "--json", help="Print the recipe as JSON"),
) -> None:
    """Parse a recipe URL or pasted recipe text."""
    from meez.llm.prompt_logger import enable_prompt_logging, get_session_log_dir
    from meez.pipeline.orchestrator import RecipeParser

    _configure_logging()

    if log_prompts:
        enable_prompt_logging(True)

    try:
        parser = RecipeParser.from_settings()
    except RuntimeError as e:
        console.print(f"[red]FAIL[/red] {e}")
        raise typer.Exit(1)

    intent = "fuzzy_match" if fuzzy else "literal"
    with Live(Spinner("dots", text="Parsing..."), console=console, transient=True):
        result = asyncio.run(parser.parse(source, force_new_parse=force, intent=intent))

    if not result.success:
        console.print(f"[red]{result.error.code.value}[/red] {result.error.message}")
        raise typer.Exit(1)

    if as_json:
        console.print_json(json.dumps(result.recipe.to_json_dict()))
    else:
        _show_recipe(result.recipe)

    for warning in result.warnings:
        console.print(f"[yellow]WARN[/yellow] {warning}")

    source_label = "cache" if result.from_cache else "model"
    console.print(
        f"\n[dim]From {source_label} in {result.timings.get('total', 0):.0f}ms | "
        f"{result.usage.input_tokens:,} in / {result.usage.output_tokens:,} out tokens | "
        f"${result.cost_usd:.4f}[/dim]"
    )

    if log_prompts:
        log_dir = get_session_log_dir()
        if log_dir:
            console.print(f"[dim]Prompts logged to: {log_dir}[/dim]")


def _show_recipe(recipe) -> None:
    """Pretty-print a recipe."""
    meta = [
        f"{label}: {value}"
        for label, value in (
            ("Yield", recipe.recipe_yield),
            ("Prep", recipe.prep_time),
            ("Cook", recipe.cook_time),
            ("Total", recipe.total_time),
        )
        if value
    ]
    console.print(
        Panel.fit(
            f"[bold green]{recipe.title or 'Untitled recipe'}[/bold green]\n"
            f"[dim]{' | '.join(meta) or 'No timing info'}[/dim]",
            border_style="green",
        )
    )

    table = Table(title="Ingredients", show_lines=False)
    table.add_column("Amount", justify="right")
    table.add_column("Unit")
    table.add_column("Name")
    table.add_column("Preparation", style="dim")
    for ing in recipe.ingredients or []:
        table.add_row(ing.amount or "", ing.unit or "", ing.name, ing.preparation or "")
    console.print(table)

    console.print("\n[bold]Instructions[/bold]")
    for i, step in enumerate(recipe.instructions or [], 1):
        console.print(f"  {i}. {step}")

    if recipe.tips:
        console.print("\n[bold]Tips[/bold]")
        for tip in recipe.tips:
            console.print(f"  • {tip}")


@app.command()
def ingredient(
    line: str = typer.Argument(..., help='Ingredient line, e.g. "1 1/2 cups flour, sifted"'),
) -> None:
    """Parse a single ingredient line."""
    from meez.recipe_import.ingredient_parser import ingredient_key, parse_ingredient

    parsed = parse_ingredient(line)

    table = Table(show_header=False, box=None)
    table.add_row("amount", parsed.amount or "-")
    table.add_row("unit", parsed.unit or "-")
    table.add_row("name", parsed.name or "-")
    table.add_row("preparation", parsed.preparation or "-")
    table.add_row("canonical", ingredient_key(parsed) or "-")
    console.print(table)


@app.command()
def extract(
    url: str = typer.Argument(..., help="Recipe page URL"),
) -> None:
    """Fetch a page and show what the extractor pulls out of it."""
    from meez.config import settings
    from meez.pipeline.input_type import ensure_scheme
    from meez.recipe_import.extractor import extract_content
    from meez.recipe_import.fetch import fetch_html
    from meez.recipe_import.normalizer import humanize_duration

    _configure_logging()
    url = ensure_scheme(url.strip())

    with Live(Spinner("dots", text="Fetching..."), console=console, transient=True):
        fetched = asyncio.run(fetch_html(url, timeout=settings.fetch_timeout_seconds))

    if not fetched.success:
        console.print(f"[red]FAIL[/red] {fetched.error}")
        if fetched.fallback_message:
            console.print(f"[dim]{fetched.fallback_message}[/dim]")
        raise typer.Exit(1)

    content = extract_content(fetched.html, fetched.final_url or url)
    if content is None:
        console.print("[yellow]No recipe content found on this page.[/yellow]")
        raise typer.Exit(1)

    tier = "fallback (raw page text)" if content.is_fallback else "structured / selectors"
    console.print(f"\n[bold]{content.title or 'Untitled'}[/bold]  [dim]{tier}[/dim]")
    for label, value in (
        ("Yield", content.yield_text),
        ("Prep", humanize_duration(content.prep_time)),
        ("Cook", humanize_duration(content.cook_time)),
        ("Total", humanize_duration(content.total_time)),
    ):
        if value:
            console.print(f"  {label}: {value}")

    console.print("\n[bold blue]Ingredients[/bold blue]")
    console.print((content.ingredients_text or "-")[:2000])
    console.print("\n[bold blue]Instructions[/bold blue]")
    console.print((content.instructions_text or "-")[:2000])


@app.command()
def health() -> None:
    """Check system health and configuration."""
    from meez.config import get_settings

    console.print("\n[bold]meez Health Check[/bold]\n")

    try:
        settings = get_settings()
        console.print("[green]OK[/green] Configuration loaded")
        console.print(f"   Environment: {settings.meez_env}")
        console.print(f"   Log level: {settings.log_level}")

        if settings.gemini_api_key:
            console.print(f"[green]OK[/green] Gemini configured ({settings.gemini_model})")
        else:
            console.print("[yellow]WARN[/yellow] Gemini API key missing")

        if settings.openai_api_key:
            console.print(f"[green]OK[/green] OpenAI configured ({settings.openai_model})")
        else:
            console.print("[yellow]WARN[/yellow] OpenAI API key missing (no fallback, no embeddings)")

        if not (settings.gemini_api_key or settings.openai_api_key):
            console.print("[red]FAIL[/red] No model provider configured")
            raise typer.Exit(1)

        if settings.has_cache_credentials:
            console.print(f"[green]OK[/green] Supabase cache configured ({settings.cache_table})")
        else:
            console.print("[dim]INFO[/dim] Supabase not configured, using in-memory cache")

        console.print("\n[green]All checks passed![/green]")

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"\n[red]FAIL Configuration error: {e}[/red]")
        console.print("[dim]Make sure you have a .env file with required variables.[/dim]")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    from meez import __version__

    console.print(f"meez version {__version__}")


if __name__ == "__main__":
    app()
