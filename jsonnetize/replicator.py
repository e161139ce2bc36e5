"""Replication of file references into the output tree.

The output tree mirrors the input tree path for path: every source file is
placed at its full absolute path reproduced below the output root, so
references that climb above the kustomization root, and absolute ones, land
inside the mirror too. A literal file is copied, a Jsonnet template is
rendered next to where it would have been copied (with ``.yml`` appended),
and a non-local reference is left alone.
"""

import os
import shutil
from functools import partial
from pathlib import Path
from typing import Callable, Optional

import structlog

from jsonnetize.exceptions import ReplicationError, wrap_os_error
from jsonnetize.references import RENDERED_SUFFIX, Reference, ReferenceKind
from jsonnetize.renderer import render_jsonnet
from jsonnetize.report import ResolutionMetrics

logger = structlog.get_logger(__name__)

Renderer = Callable[[Path, Path], None]


def qualify(root: Path, relative_dir: Path, path: str) -> Path:
    """Join and normalize a reference path below ``root``."""
    return Path(os.path.normpath(root / relative_dir / path))


def mirror_path(output_root: Path, source: Path) -> Path:
    """Location of ``source`` in the mirror rooted at ``output_root``.

    Example:
        >>> mirror_path(Path("/out"), Path("/repo/base/cm.yml"))
        PosixPath('/out/repo/base/cm.yml')
    """
    source = Path(os.path.abspath(source))
    return Path(os.path.abspath(output_root)) / source.relative_to(source.anchor)


def copy_file(source: Path, destination: Path) -> None:
    """Byte-copy ``source`` to ``destination``, creating parent directories.

    The permission bits of the source are kept.

    Raises:
        ReplicationError: On any filesystem failure
    """
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, destination)
        shutil.copymode(source, destination)
    except OSError as e:
        raise wrap_os_error(e, source=source, destination=destination) from e


class Replicator:
    """Copies or renders references from the input tree into the output tree."""

    def __init__(
        self,
        input_root: Path,
        output_root: Path,
        renderer: Optional[Renderer] = None,
        jsonnet_bin: str = "jsonnet",
        metrics: Optional[ResolutionMetrics] = None,
    ) -> None:
        self.input_root = input_root
        self.output_root = output_root
        self.renderer = renderer or partial(render_jsonnet, jsonnet_bin=jsonnet_bin)
        self.metrics = metrics if metrics is not None else ResolutionMetrics()

    def destination_for(self, source: Path) -> Path:
        """Mirror location of ``source``.

        Raises:
            ReplicationError: If the location falls inside the input tree,
                where writing would overwrite or shadow the sources
        """
        destination = mirror_path(self.output_root, source)
        input_root = Path(os.path.abspath(self.input_root))
        if destination == input_root or input_root in destination.parents:
            raise ReplicationError(
                f"Refusing to write {destination} inside the kustomization root "
                f"{input_root}",
                source=source,
                destination=destination,
                recovery_suggestion="Choose an output location outside the input tree",
            )
        return destination

    def replicate(self, relative_dir: Path, reference: Reference) -> str:
        """Materialize one reference and return the string the manifest keeps.

        Args:
            relative_dir: Directory of the owning manifest, relative to the
                input root
            reference: Classified reference

        Returns:
            The reference unchanged, or with ``.yml`` appended for templates.
            An absolute path is replaced by the absolute path of its copy.

        Raises:
            ReplicationError: If a copy fails
            RenderError: If jsonnet fails
        """
        if reference.kind is ReferenceKind.NON_LOCAL:
            logger.info(
                "not a local file; leaving it alone", reference=reference.raw
            )
            self.metrics.references_passed_through += 1
            return reference.raw

        source = qualify(self.input_root, relative_dir, reference.path)

        if reference.kind is ReferenceKind.TEMPLATED:
            destination = self.destination_for(source).with_name(
                source.name + RENDERED_SUFFIX
            )
            try:
                destination.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise wrap_os_error(e, source=source, destination=destination) from e
            self.renderer(source, destination)
            self.metrics.templates_rendered += 1
            logger.debug(
                "rendered template", source=str(source), destination=str(destination)
            )
            return reference.rendered

        destination = self.destination_for(source)
        copy_file(source, destination)
        self.metrics.files_copied += 1
        logger.debug("copied file", source=str(source), destination=str(destination))
        if reference.is_absolute:
            self.metrics.absolute_references += 1
            return str(destination)
        return reference.raw
