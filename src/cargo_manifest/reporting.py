"""
Output formatting for parsed manifests.

Provides a Rich table for terminals and a JSON document for automation.
"""

import json
from typing import Any, Dict, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .manifest import CargoToml


def manifest_to_json(manifest: CargoToml, file_path: str) -> Dict[str, Any]:
    """Build the JSON document describing a parsed manifest."""
    dependencies = manifest.to_dict()
    return {
        "file_path": file_path,
        "total_dependencies": 0 if dependencies is None else len(dependencies),
        "dependencies": dependencies,
    }


class ManifestReporter:
    """Displays the dependencies of a parsed manifest."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def print_dependencies(self, manifest: CargoToml, file_path: str) -> None:
        """
        Print a manifest's dependencies as a table.

        Args:
            manifest: The parsed manifest
            file_path: Path to the manifest file
        """
        self.console.print(
            Panel(
                f"📦 Dependencies: {escape(file_path)}",
                title="[bold blue]cargo-manifest[/bold blue]",
                border_style="blue",
            )
        )

        if manifest.dependencies is None:
            self.console.print(escape("ℹ️  No [dependencies] table in manifest."), style="blue")
            return
        if not manifest.dependencies:
            self.console.print(escape("ℹ️  The [dependencies] table is empty."), style="blue")
            return

        table = Table(box=box.ROUNDED, title_style="bold cyan")
        table.add_column("Name", style="bold")
        table.add_column("Version", style="green")

        for name in manifest.dependency_names():
            table.add_row(escape(name), escape(manifest.dependencies[name].version))

        self.console.print(table)
        self.console.print(
            f"Total: {len(manifest.dependencies)} dependencies", style="dim"
        )

    def output_json(
        self, manifest: CargoToml, file_path: str, output_file: Optional[str] = None
    ) -> None:
        """Export a manifest as JSON to a file or stdout."""
        json_output = json.dumps(
            manifest_to_json(manifest, file_path), indent=2, ensure_ascii=False
        )

        if output_file:
            with open(output_file, "w", encoding="utf-8") as f:
                f.write(json_output)
            self.console.print(f"✅ Results saved to {output_file}", style="green")
        else:
            print(json_output)
