"""CLI entry point for dirpeek. Uses Click for argument parsing."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
import sys

import click

from dirpeek.config import (
    Config,
    ConfigError,
    get_config,
    get_config_path,
    preview_config_from_dict,
    preview_config_to_dict,
    save_config,
    set_config,
)
from dirpeek.keybindings import BrowserKeybindingsManager
from dirpeek.preview import OverlayContent, PreviewSession, is_previewable
from dirpeek.terminal_image import (
    IMAGE_FILENAME_RE,
    ImageRenderError,
    RenderConstraints,
    format_hint,
    is_image_display_supported,
    render_image,
)

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _setup_logging(level: str, log_file: str | None) -> None:
    if log_file:
        logging.basicConfig(level=getattr(logging, level.upper()), format=_LOG_FORMAT, filename=log_file)
        return
    # The browser owns the screen and reports errors in its status line;
    # nothing may be written to stderr while it runs.
    package_logger = logging.getLogger("dirpeek")
    package_logger.addHandler(logging.NullHandler())
    package_logger.propagate = False


@click.group(invoke_without_command=True)
@click.pass_context
def main(ctx):
    """Browse directories with inline image previews."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@main.command()
@click.argument("directory", default=".", type=click.Path(exists=True, file_okay=False))
@click.option("--auto/--no-auto", default=None, help="Preview the file under the cursor as it moves")
@click.option("--scale", type=float, default=None, help="Image scale factor")
@click.option("--delay", type=float, default=None, help="Seconds to wait after cursor movement")
@click.option("--spacing", type=int, default=None, help="Blank lines around each preview")
@click.option("--max-width", type=int, default=None, help="Maximum preview width in pixels")
@click.option("--max-height", type=int, default=None, help="Maximum preview height in pixels")
@click.option("--auto-remove/--keep-previews", default=None, help="Clear other previews before showing one")
@click.option("--hidden", is_flag=True, help="List dotfiles")
@click.option("--log-file", default=None, type=click.Path(dir_okay=False), help="Write logs to this file")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
)
def browse(directory, auto, scale, delay, spacing, max_width, max_height, auto_remove, hidden, log_file, log_level):
    """Open the interactive browser on DIRECTORY."""
    _setup_logging(log_level, log_file)
    config = get_config()
    try:
        preview_config = config.preview.with_overrides(
            auto_preview_mode=auto,
            scale=scale,
            delay=delay,
            spacing=spacing,
            max_width=max_width,
            max_height=max_height,
            auto_remove=auto_remove,
        )
    except ConfigError as e:
        raise click.BadParameter(str(e)) from e

    if not sys.stdin.isatty():
        click.echo("dirpeek browse needs an interactive terminal", err=True)
        sys.exit(1)

    from dirpeek.app import run_browser

    keybindings = BrowserKeybindingsManager(config.keybindings)  # type: ignore[arg-type]
    asyncio.run(run_browser(directory, preview_config, show_hidden=hidden, keybindings=keybindings))


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--scale", type=float, default=None, help="Image scale factor")
@click.option("--max-width", type=int, default=None, help="Maximum width in pixels")
@click.option("--max-height", type=int, default=None, help="Maximum height in pixels")
def show(file, scale, max_width, max_height):
    """Print a single preview of FILE to the terminal."""
    try:
        settings = get_config().preview.with_overrides(scale=scale, max_width=max_width, max_height=max_height)
    except ConfigError as e:
        raise click.BadParameter(str(e)) from e

    session = PreviewSession(_StandaloneHost(), config=settings)
    if not is_previewable(session, file):
        click.echo(f"{file}: not previewable in this terminal", err=True)
        sys.exit(1)

    try:
        image = render_image(
            file,
            format_hint(file),
            RenderConstraints(settings.scale, settings.max_width, settings.max_height),
        )
    except ImageRenderError as e:
        click.echo(str(e), err=True)
        sys.exit(1)

    # The escape sequences are the output; never let click strip them
    for line in OverlayContent(image=image, spacing=settings.spacing).lines():
        click.echo(line, color=True)


class _StandaloneHost:
    """Eligibility checks for ``dirpeek show`` outside a listing."""

    def is_image_display_supported(self) -> bool:
        return is_image_display_supported()

    def image_filename_pattern(self) -> re.Pattern[str]:
        return IMAGE_FILENAME_RE


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


@main.group("config", invoke_without_command=True)
@click.pass_context
def config_group(ctx):
    """Show or change the stored configuration."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(config_show)


@config_group.command("show")
def config_show():
    """Print the effective configuration as JSON."""
    config = get_config()
    click.echo(f"# {get_config_path()}")
    click.echo(json.dumps(
        {"preview": preview_config_to_dict(config.preview), "keybindings": config.keybindings},
        indent=2,
    ))


@config_group.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key, value):
    """Set a preview option, e.g. ``dirpeek config set scale 0.75``.

    VALUE is parsed as JSON; bare words are taken as strings.
    """
    try:
        parsed = json.loads(value)
    except ValueError:
        parsed = value

    config = get_config()
    data = preview_config_to_dict(config.preview)
    if key not in data:
        click.echo(f"Unknown option '{key}'. Options: {', '.join(sorted(data))}", err=True)
        sys.exit(1)
    if key == "excludedExtensions" and isinstance(parsed, str):
        parsed = [ext for ext in parsed.split(",") if ext]
    data[key] = parsed
    try:
        updated = Config(preview=preview_config_from_dict(data), keybindings=config.keybindings)
    except (ConfigError, TypeError) as e:
        click.echo(f"Invalid value for {key}: {e}", err=True)
        sys.exit(1)

    save_config(updated)
    set_config(updated)
    click.echo(f"{key} = {json.dumps(preview_config_to_dict(updated.preview)[key])}")


@config_group.command("reset")
def config_reset():
    """Restore the default configuration."""
    path = get_config_path()
    if os.path.exists(path):
        os.remove(path)
    set_config(Config())
    click.echo(f"Configuration reset ({path})")


if __name__ == "__main__":
    main()
