"""Thin CLI wrapper for imagefleet.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from imagefleet import __version__
from imagefleet.config import get_settings, print_settings_json
from imagefleet.log import configure_logging

app = typer.Typer(
    name="imagefleet",
    help="imagefleet - build the container images of a project that changed",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"imagefleet version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """imagefleet - build the container images of a project that changed."""
    configure_logging(get_settings().log_level, err_console)


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings), soft_wrap=True)
    else:
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Paths:[/bold]")
        console.print(f"  Image config file:   {settings.config_file}")
        console.print(f"  Database URL:        {settings.db_url}")
        console.print(f"  Cache namespace:     {settings.cache_namespace}")
        console.print()
        console.print("[bold]Operational:[/bold]")
        console.print(f"  Log level:           {settings.log_level}")
        console.print(f"  Sequential builds:   {settings.sequential}")
        console.print(f"  Skip push:           {settings.skip_push}")
        console.print(f"  Kube context:        {settings.kube_context or '(none)'}")
        console.print()
        console.print("[bold]Build tool:[/bold]")
        console.print(f"  Executable:          {settings.docker_bin}")
        console.print(f"  Tag length:          {settings.tag_length}")
        console.print(f"  Build timeout:       {settings.build_timeout}")


@app.command()
def build(
    config_file: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Image configuration file"),
    ] = None,
    dev: Annotated[
        bool,
        typer.Option("--dev", help="Apply dev overrides"),
    ] = False,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Rebuild even if inputs did not change"),
    ] = False,
    sequential: Annotated[
        bool,
        typer.Option("--sequential", "-s", help="Build one image at a time"),
    ] = False,
    kube_context: Annotated[
        str | None,
        typer.Option("--kube-context", help="Kubernetes context deployed to"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output built images as JSON"),
    ] = False,
) -> None:
    """Build every image whose inputs changed.

    Builds run concurrently unless --sequential is given. On any failure
    nothing is reported as built and the exit code is 1.
    """
    from imagefleet.builds.builder import ClusterClient
    from imagefleet.builds.orchestrator import BuildAllError, build_all
    from imagefleet.cache.store import CacheLoadError, load_active_cache
    from imagefleet.db import get_session, init_cache_db
    from imagefleet.images.io import ImagesConfigError, load_images_config
    from imagefleet.log import BuildLogger

    settings = get_settings()
    path = config_file if config_file is not None else settings.config_file

    try:
        images_config = load_images_config(path)
    except ImagesConfigError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None

    factory = init_cache_db(settings.db_url)

    client = ClusterClient(context=kube_context or settings.kube_context)
    log = BuildLogger(err_console)

    try:
        with get_session(factory) as session:
            cache = load_active_cache(session, settings.cache_namespace)
            built_images = build_all(
                client,
                images_config.images,
                cache,
                log,
                is_dev=dev,
                force_rebuild=force,
                sequential=sequential or settings.sequential,
                settings=settings,
            )
    except (CacheLoadError, BuildAllError) as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None

    if json_output:
        console.print(json.dumps(built_images, indent=2), soft_wrap=True)
        return

    if not built_images:
        console.print("[yellow]No images needed a rebuild[/yellow]")
        return

    console.print(f"[bold]Built {len(built_images)} image(s):[/bold]")
    for image_name, tag in built_images.items():
        console.print(f"  [green]{image_name}:{tag}[/green]")


images_app = typer.Typer(help="Inspect the image configuration")
app.add_typer(images_app, name="images")


@images_app.command("list")
def images_list(
    config_file: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Image configuration file"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """List configured images."""
    from imagefleet.images.io import ImagesConfigError, load_images_config

    settings = get_settings()
    path = config_file if config_file is not None else settings.config_file

    try:
        images_config = load_images_config(path)
    except ImagesConfigError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None

    if json_output:
        output = {
            name: conf.model_dump(exclude_none=True)
            for name, conf in images_config.images.items()
        }
        console.print(json.dumps(output, indent=2), soft_wrap=True)
        return

    if not images_config.images:
        console.print("[yellow]No images configured[/yellow]")
        return

    console.print(f"[bold]Found {len(images_config.images)} image(s):[/bold]")
    console.print()
    for name, conf in images_config.images.items():
        build_settings = conf.effective_build()
        marker = " [yellow](disabled)[/yellow]" if conf.disabled else ""
        console.print(f"  [green]{name}[/green]{marker}")
        console.print(f"    Image: {conf.image or name}")
        if conf.tag:
            console.print(f"    Tag: {conf.tag}")
        console.print(f"    Dockerfile: {build_settings.dockerfile}")
        console.print(f"    Context: {build_settings.context}")
        console.print()


cache_app = typer.Typer(help="Manage the build cache")
app.add_typer(cache_app, name="cache")


@cache_app.command("list")
def cache_list(
    all_namespaces: Annotated[
        bool,
        typer.Option("--all", "-a", help="Show every namespace"),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """List build cache entries."""
    from imagefleet.cache.store import list_cache_entries
    from imagefleet.db import init_cache_db

    settings = get_settings()
    factory = init_cache_db(settings.db_url)

    with factory() as session:
        entries = list_cache_entries(
            session,
            namespace=None if all_namespaces else settings.cache_namespace,
        )

        if json_output:
            output = [
                {
                    "namespace": e.namespace,
                    "image_config_name": e.image_config_name,
                    "image_name": e.image_name,
                    "tag": e.tag,
                    "updated_at": e.updated_at.isoformat() if e.updated_at else None,
                }
                for e in entries
            ]
            console.print(json.dumps(output, indent=2), soft_wrap=True)
            return

        if not entries:
            console.print("[yellow]Build cache is empty[/yellow]")
            return

        console.print(f"[bold]Found {len(entries)} cache entr(ies):[/bold]")
        for e in entries:
            console.print(
                f"  [green]{e.namespace}/{e.image_config_name}[/green] "
                f"{e.image_name}:{e.tag}"
            )


@cache_app.command("clear")
def cache_clear(
    image_config_names: Annotated[
        list[str] | None,
        typer.Argument(help="Images to forget (all when omitted)"),
    ] = None,
) -> None:
    """Forget cached builds so the images are rebuilt next time."""
    from imagefleet.cache.store import clear_cache
    from imagefleet.db import get_session, init_cache_db

    settings = get_settings()
    factory = init_cache_db(settings.db_url)

    with get_session(factory) as session:
        deleted = clear_cache(session, settings.cache_namespace, image_config_names)

    console.print(f"[green]Cleared {deleted} cache entr(ies)[/green]")


if __name__ == "__main__":
    app()
