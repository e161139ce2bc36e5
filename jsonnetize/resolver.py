"""Recursive resolution of a kustomization tree.

Each manifest is loaded from the input tree, its resources, generators and
transformers are resolved in order, and the rewritten manifest is written to
its mirrored location in the output tree. A resource naming a local
directory is resolved by recursing into that directory; its entry in the
parent manifest is kept as written, unless it is absolute, in which case it
is pointed at the mirrored directory.

Resolution is depth-first and strictly sequential. The first error aborts
the whole tree.
"""
import os
from pathlib import Path
from typing import List, Optional, Set

import structlog

from jsonnetize.exceptions import InvalidManifestError
from jsonnetize.manifest import REFERENCE_FIELDS, Manifest, load_manifest
from jsonnetize.references import ListKind, classify
from jsonnetize.replicator import Replicator, qualify
from jsonnetize.report import ResolutionMetrics

logger = structlog.get_logger(__name__)


class ManifestResolver:
    """Resolves the manifest of a directory and everything it references.

    Args:
        input_root: Root of the tree being mirrored
        output_root: Root of the mirror
        replicator: Materializes file references; built from the roots when
            not given
        jsonnet_bin: jsonnet binary used by the default replicator
    """

    def __init__(
        self,
        input_root: Path,
        output_root: Path,
        replicator: Optional[Replicator] = None,
        jsonnet_bin: str = "jsonnet",
    ) -> None:
        self.input_root = input_root
        self.output_root = output_root
        self.replicator = replicator or Replicator(
            input_root, output_root, jsonnet_bin=jsonnet_bin
        )
        # Directories currently on the recursion stack
        self._in_progress: Set[Path] = set()

    @property
    def metrics(self) -> ResolutionMetrics:
        return self.replicator.metrics

    def resolve(self, relative_path: Path = Path(".")) -> Manifest:
        """Resolve the manifest at ``input_root/relative_path``.

        Returns:
            The rewritten manifest, already written to the output tree

        Raises:
            JsonnetizeError: On the first structural, filesystem or
                external-process failure anywhere below this directory
        """
        relative_path = Path(os.path.normpath(relative_path))
        directory = qualify(self.input_root, relative_path, ".")
        if directory in self._in_progress:
            raise InvalidManifestError(
                f"Kustomization cycle through {directory}", manifest=directory
            )

        self._in_progress.add(directory)
        try:
            return self._resolve_directory(relative_path, directory)
        finally:
            self._in_progress.discard(directory)

    def _resolve_directory(self, relative_path: Path, directory: Path) -> Manifest:
        manifest = load_manifest(directory)
        logger.info("processing kustomization", manifest=str(manifest.path))

        manifest.validate()

        for field_name, list_kind in REFERENCE_FIELDS:
            references = manifest.references(field_name)
            if not references:
                continue
            resolved = self._resolve_references(relative_path, list_kind, references)
            manifest.replace_references(field_name, resolved)

        destination = self.replicator.destination_for(manifest.path)
        manifest.dump(destination)
        self.metrics.manifests_written += 1
        return manifest

    def _resolve_references(
        self, relative_path: Path, list_kind: ListKind, references: List[str]
    ) -> List[str]:
        resolved = []
        for raw in references:
            logger.info("processing reference", list=str(list_kind), reference=raw)
            resolved.append(self._resolve_reference(relative_path, list_kind, raw))
        return resolved

    def _resolve_reference(
        self, relative_path: Path, list_kind: ListKind, raw: str
    ) -> str:
        reference = classify(raw)
        if list_kind.allows_directories and reference.is_local:
            target = qualify(self.input_root, relative_path, reference.path)
            if target.is_dir():
                self.resolve(relative_path / reference.path)
                self.metrics.directories_recursed += 1
                if reference.is_absolute:
                    self.metrics.absolute_references += 1
                    return str(self.replicator.destination_for(target))
                return raw
        return self.replicator.replicate(relative_path, reference)


def resolve_tree(
    input_root: Path, output_root: Path, jsonnet_bin: str = "jsonnet"
) -> ResolutionMetrics:
    """Materialize the whole tree rooted at ``input_root`` into ``output_root``."""
    resolver = ManifestResolver(input_root, output_root, jsonnet_bin=jsonnet_bin)
    resolver.resolve(Path("."))
    return resolver.metrics
