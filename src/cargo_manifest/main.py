import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel

from . import __version__
from .config import (
    OUTPUT_FORMATS,
    build_config,
    create_sample_config,
    get_config,
    load_config_file,
    validate_config_values,
)
from .error_handling import ManifestError
from .manifest import CargoToml
from .parsers import parse_cargo_toml_file
from .reporting import ManifestReporter
from .structured_logging import configure_logging

console = Console()


def load_manifest(file_path: str) -> CargoToml:
    """Parse a manifest file, turning parse failures into CLI errors."""
    try:
        return parse_cargo_toml_file(file_path)
    except ManifestError as e:
        raise click.ClickException(f"Failed to parse manifest: {e}")


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version information")
@click.pass_context
def cli(ctx, version):
    """
    📦 cargo-manifest: read dependency versions from Cargo.toml files.
    """
    if version:
        console.print(f"cargo-manifest version {__version__}", style="bold blue")
        ctx.exit()

    configure_logging(get_config().logging.log_level)

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@cli.command()
@click.argument(
    "file_path", type=click.Path(exists=True, readable=True, dir_okay=False)
)
@click.option(
    "--output-format",
    type=click.Choice(OUTPUT_FORMATS),
    default=None,
    help="Output format (defaults to the configured format)",
)
@click.option(
    "--output-file",
    type=click.Path(dir_okay=False, writable=True),
    help="Write JSON output to this file instead of stdout",
)
def deps(file_path: str, output_format: Optional[str], output_file: Optional[str]):
    """List every dependency declared in FILE_PATH."""
    manifest = load_manifest(file_path)
    output_format = output_format or get_config().output.output_format

    reporter = ManifestReporter(console)
    if output_format == "json" or output_file:
        reporter.output_json(manifest, file_path, output_file)
    else:
        reporter.print_dependencies(manifest, file_path)


@cli.command()
@click.argument(
    "file_path", type=click.Path(exists=True, readable=True, dir_okay=False)
)
@click.argument("name")
def get(file_path: str, name: str):
    """Print the version (or tag) of dependency NAME in FILE_PATH."""
    manifest = load_manifest(file_path)

    dependency = manifest.get_dependency(name)
    if dependency is None:
        raise click.ClickException(f"Dependency '{name}' is not declared in {file_path}")

    click.echo(dependency.version)


@cli.group()
def config():
    """Configuration management commands."""
    pass


@config.command("init")
@click.option(
    "--path",
    type=click.Path(dir_okay=False),
    default=".cargo-manifest.json",
    help="Path where to create the config file",
    show_default=True,
)
@click.option("--force", is_flag=True, help="Overwrite existing config file")
def config_init(path: str, force: bool):
    """Create a sample configuration file."""
    config_path = Path(path)

    if config_path.exists() and not force:
        console.print(f"⚠️  Config file already exists at {config_path}", style="yellow")
        console.print("Use --force to overwrite", style="dim")
        return

    try:
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_sample_config())
    except OSError as e:
        raise click.ClickException(f"Failed to create config file: {e}")

    console.print(f"✅ Created configuration file at {config_path}", style="green")


@config.command("show")
def config_show():
    """Show current configuration settings."""
    current_config = get_config()

    console.print(Panel("[bold blue]🔧 Configuration[/bold blue]", border_style="blue"))

    console.print("\n[bold cyan]🔒 Security Settings:[/bold cyan]")
    console.print(f"  Max File Size: {current_config.security.max_file_size_mb} MB")
    console.print(
        f"  Allowed Extensions: {', '.join(current_config.security.allowed_file_extensions)}"
    )

    console.print("\n[bold cyan]📝 Logging Settings:[/bold cyan]")
    console.print(f"  Log Level: {current_config.logging.log_level}")

    console.print("\n[bold cyan]📄 Output Settings:[/bold cyan]")
    console.print(f"  Output Format: {current_config.output.output_format}")


@config.command("validate")
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
def config_validate(config_file: str):
    """Validate a configuration file."""
    config_data = load_config_file(Path(config_file))
    if config_data is None:
        raise click.ClickException(f"Could not load config from {config_file}")

    errors = validate_config_values(build_config(config_data))
    if errors:
        console.print("❌ Configuration validation failed:", style="red")
        for error in errors:
            console.print(f"  • {error}", style="red")
        sys.exit(1)

    console.print(f"✅ Configuration file {config_file} is valid", style="green")


if __name__ == "__main__":
    cli()
