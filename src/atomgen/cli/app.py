from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from atomgen.core.atom import render_atom_feed
from atomgen.core.config import AtomSettings
from atomgen.core.exceptions import AtomValidationError, DescriptorLoadError, FragmentParseError
from atomgen.core.loader import load_descriptor
from atomgen.core.logging import setup_logging
from atomgen.core.validation import validate_feed

app = typer.Typer(name="atomgen", help="Build Atom 1.0 feeds from YAML or JSON descriptors.")

console = Console(stderr=True)


def _settings(lax_urls: bool, fallback_ids: bool, compact: bool = False) -> AtomSettings:
    settings = AtomSettings.load()
    overrides = {}
    if lax_urls:
        overrides["strict_urls"] = False
    if fallback_ids:
        overrides["fallback_ids"] = True
    if compact:
        overrides["pretty_print"] = False
    return settings.model_copy(update=overrides)


def _load(descriptor: Path) -> dict:
    try:
        return load_descriptor(descriptor)
    except DescriptorLoadError as exc:
        console.print(f"[bold red]Error:[/] {exc}")
        raise typer.Exit(code=2) from exc


def _print_issues(exc: AtomValidationError) -> None:
    table = Table(title="Invalid or missing options")
    table.add_column("Field", style="cyan")
    table.add_column("Problem", style="red")
    for issue in exc.issues:
        table.add_row(issue.path or "(root)", issue.message)
    console.print(table)


@app.command()
def render(
    descriptor: Path = typer.Argument(..., help="YAML or JSON feed descriptor."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the feed here instead of stdout."),
    lax_urls: bool = typer.Option(False, "--lax-urls", help="Accept relative URLs in href/uri/scheme."),
    fallback_ids: bool = typer.Option(False, "--fallback-ids", help="Synthesize ids for entries without one."),
    compact: bool = typer.Option(False, "--compact", help="Do not indent the output."),
):
    """
    Render a feed descriptor as an Atom document.
    """
    settings = _settings(lax_urls, fallback_ids, compact)
    setup_logging(settings.log_level)
    data = _load(descriptor)

    try:
        feed = validate_feed(data, settings=settings)
        xml = render_atom_feed(feed, settings=settings)
    except AtomValidationError as exc:
        _print_issues(exc)
        raise typer.Exit(code=1) from exc
    except FragmentParseError as exc:
        console.print(f"[bold red]Invalid customData:[/] {exc}")
        raise typer.Exit(code=1) from exc

    if output is None:
        typer.echo(xml, nl=False)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(xml, encoding="utf-8")
    console.print(f"✅ Wrote {len(feed.entry)} entries to {output}")


@app.command()
def validate(
    descriptor: Path = typer.Argument(..., help="YAML or JSON feed descriptor."),
    lax_urls: bool = typer.Option(False, "--lax-urls", help="Accept relative URLs in href/uri/scheme."),
    fallback_ids: bool = typer.Option(False, "--fallback-ids", help="Synthesize ids for entries without one."),
):
    """
    Check a feed descriptor and list every problem found.
    """
    settings = _settings(lax_urls, fallback_ids)
    setup_logging(settings.log_level)
    data = _load(descriptor)

    try:
        feed = validate_feed(data, settings=settings)
    except AtomValidationError as exc:
        _print_issues(exc)
        raise typer.Exit(code=1) from exc

    console.print(f"[bold green]Valid feed[/] {feed.id} with {len(feed.entry)} entries")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
