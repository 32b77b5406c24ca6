# main.py — 2026-10-12
import logging

import click

import crawler
import reporter
from config import Settings
from errors import AnalysisError


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Debug logging.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Tag, attribute and nesting statistics for web pages."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )
    ctx.obj = Settings.from_env()


@cli.command()
@click.argument("url")
@click.option("-f", "--format", "fmt", default="tree", show_default=True,
              type=click.Choice(sorted(reporter.RENDERERS), case_sensitive=False))
@click.option("--crawl", is_flag=True, help="Follow same-origin links.")
@click.option("--pages", type=int, help="Max resources to analyze when crawling.")
@click.option("--depth", type=int, help="Max link hops from URL when crawling.")
@click.pass_obj
def analyze(settings: Settings, url: str, fmt: str, crawl: bool,
            pages: int | None, depth: int | None) -> None:
    """Analyze URL and print the report."""
    try:
        settings = settings.replace(
            crawl_policy="crawl" if crawl else None,
            crawl_max_resources=pages,
            crawl_max_depth=depth,
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from None
    try:
        result = crawler.analyze_url(url, settings)
    except AnalysisError as exc:
        click.echo(click.style(f"✗ {exc.code}: {exc}", fg="red"), err=True)
        raise SystemExit(1)
    click.echo(reporter.render(result, fmt), nl=False)


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", type=int, help="Defaults to $PORT or 8080.")
@click.pass_obj
def serve(settings: Settings, host: str, port: int | None) -> None:
    """Run the HTTP API (development server)."""
    from server import create_app

    settings = settings.replace(port=port)
    click.echo(click.style(f"✓ listening on http://{host}:{settings.port}", fg="green"))
    click.echo(f"  e.g. http://{host}:{settings.port}/api/report/https://example.com")
    create_app(settings).run(host=host, port=settings.port, threaded=True)


if __name__ == "__main__":
    cli()
