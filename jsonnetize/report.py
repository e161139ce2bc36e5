"""Run reporting for the materialization pass.

Counts what happened to every reference while a tree was resolved, so the
command can print a short summary at the end of a run.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List


@dataclass
class ResolutionMetrics:
    """Counters collected while resolving one kustomization tree."""

    manifests_written: int = 0
    files_copied: int = 0
    templates_rendered: int = 0
    references_passed_through: int = 0
    directories_recursed: int = 0
    absolute_references: int = 0


@dataclass
class ResolutionReport:
    """Outcome of a resolution run."""

    input_root: Path
    output_root: Path
    metrics: ResolutionMetrics = field(default_factory=ResolutionMetrics)

    def summary_rows(self) -> List[tuple]:
        m = self.metrics
        return [
            ("Manifests written", m.manifests_written),
            ("Files copied", m.files_copied),
            ("Templates rendered", m.templates_rendered),
            ("Remote references kept", m.references_passed_through),
            ("Absolute references rewritten", m.absolute_references),
            ("Subdirectories", m.directories_recursed),
        ]

    def format_report(self) -> str:
        """Format the report as a human-readable string."""
        lines = [
            f"Materialized {self.input_root} -> {self.output_root}",
        ]
        for label, value in self.summary_rows():
            lines.append(f"  {label}: {value}")
        return "\n".join(lines)
