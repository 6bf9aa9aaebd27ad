"""DiffEngine for comparing and rendering dependency snapshots."""

from __future__ import annotations

import io
from typing import List

from rich import box
from rich.console import Console
from rich.table import Table

from .models import DiffRow, Manifest, Snapshot

ABSENT = "(none)"
TRANSITIVE = "transitive"


def _cell(text: str) -> str:
    """Escape pipes so a value cannot split a Markdown table row."""
    return text.replace("|", "\\|")


class DiffEngine:
    """Renders version deltas between two snapshots."""

    def __init__(
        self,
        registry_url: str = "https://www.npmjs.com/package",
        table_width: int = 100,
    ):
        """Initialize DiffEngine.

        Args:
            registry_url: Base URL used to link package names in Markdown
            table_width: Fixed width of the plain-text table
        """
        self.registry_url = registry_url.rstrip("/")
        self.table_width = table_width

    def compute_rows(self, manifest: Manifest, old: Snapshot, new: Snapshot) -> List[DiffRow]:
        """Create one row per package whose version differs.

        Added and removed packages are included with the missing side set to
        None. Rows are sorted by package name.
        """
        rows = []
        for name in sorted(set(old) | set(new)):
            before = old.version_of(name)
            after = new.version_of(name)
            if before == after:
                continue
            rows.append(DiffRow(
                name=name,
                old_version=before,
                new_version=after,
                dependency_type=manifest.dependency_type(name),
            ))
        return rows

    def render_markdown(self, manifest: Manifest, old: Snapshot, new: Snapshot) -> str:
        """Render the pull-request body.

        Args:
            manifest: Root project manifest (heading and dependency types)
            old: Snapshot before the upgrade
            new: Snapshot after the upgrade

        Returns:
            Markdown text
        """
        rows = self.compute_rows(manifest, old, new)
        lines = [f"## {manifest.title}", ""]
        if not rows:
            lines.append("No dependency changes.")
            return "\n".join(lines) + "\n"

        lines.append(self._summary(rows))
        lines.append("")
        lines.append("| package | type | from | to |")
        lines.append("|---|---|---|---|")
        for row in rows:
            link = f"[{_cell(row.name)}]({self.registry_url}/{row.name})"
            lines.append(
                f"| {link} | {row.dependency_type or TRANSITIVE} "
                f"| {_cell(row.old_version or ABSENT)} | {_cell(row.new_version or ABSENT)} |"
            )
        return "\n".join(lines) + "\n"

    def render_table(self, manifest: Manifest, old: Snapshot, new: Snapshot) -> str:
        """Render a plain-text table for the console or a log sink."""
        rows = self.compute_rows(manifest, old, new)
        table = Table(title=manifest.title, box=box.SIMPLE_HEAD, title_justify="left")
        table.add_column("package")
        table.add_column("type")
        table.add_column("from")
        table.add_column("to")
        for row in rows:
            table.add_row(
                row.name,
                row.dependency_type or TRANSITIVE,
                row.old_version or ABSENT,
                row.new_version or ABSENT,
            )

        buffer = io.StringIO()
        console = Console(
            file=buffer,
            width=self.table_width,
            color_system=None,
            force_terminal=False,
            highlight=False,
        )
        console.print(table)
        if not rows:
            console.print("No dependency changes.")
        return buffer.getvalue()

    @staticmethod
    def _summary(rows: List[DiffRow]) -> str:
        changed = sum(1 for r in rows if r.changed)
        added = sum(1 for r in rows if r.added)
        removed = sum(1 for r in rows if r.removed)
        parts = []
        if changed:
            parts.append(f"{changed} updated")
        if added:
            parts.append(f"{added} added")
        if removed:
            parts.append(f"{removed} removed")
        return ", ".join(parts) + "."
