"""Tree driver: from a command-line path to a built kustomization.

Philosophy:
- Thin facade: root discovery + orchestration only
- Resolution logic lives in the resolver, subprocess logic in the builder
"""

import logging
from pathlib import Path
from typing import Callable, Optional, Union

from jsonnetize.builder import run_kustomize
from jsonnetize.config_manager import JsonnetizeConfig
from jsonnetize.exceptions import InvalidRootError
from jsonnetize.manifest import MANIFEST_FILENAMES
from jsonnetize.replicator import mirror_path
from jsonnetize.report import ResolutionReport
from jsonnetize.resolver import resolve_tree

logger = logging.getLogger(__name__)

Builder = Callable[[Path, str], None]


def find_kustomization_root(path: Union[str, Path]) -> Path:
    """Turn the command-line path into a kustomization root directory.

    A directory is used as is. A file is accepted only when it is named like
    a kustomization manifest, in which case its directory is the root.

    Raises:
        InvalidRootError: If the path does not exist, or names some other file
    """
    root = Path(path)
    if not root.exists():
        raise InvalidRootError(f"{root} does not exist", path=root)
    if root.is_dir():
        return root.resolve()
    if root.name not in MANIFEST_FILENAMES:
        raise InvalidRootError(
            "Argument must be a kustomization root or yaml file", path=root
        )
    return root.resolve().parent


def materialize(
    path: Union[str, Path],
    config: JsonnetizeConfig,
    builder: Optional[Builder] = None,
) -> ResolutionReport:
    """Mirror the kustomization at ``path`` into the output root, then build it.

    The kustomization lands at its full absolute path reproduced below the
    output root; that mirrored directory is what kustomize builds.

    Args:
        path: Kustomization directory or manifest file
        config: Validated configuration; its output root is used as is
        builder: Replaces the kustomize invocation (used by tests)

    Returns:
        Report of the resolution

    Raises:
        JsonnetizeError: If resolution or the build fails
    """
    input_root = find_kustomization_root(path)
    output_root = config.output_root.resolve()
    if output_root == input_root or input_root in output_root.parents:
        raise InvalidRootError(
            "Output location must be outside the kustomization root",
            path=input_root,
            context={"output_root": str(output_root)},
            recovery_suggestion="Pass --output or run from another directory",
        )
    logger.info(f"Processing kustomization: {input_root}")

    metrics = resolve_tree(
        input_root, output_root, jsonnet_bin=config.tools.jsonnet_bin
    )
    build_root = mirror_path(output_root, input_root)
    report = ResolutionReport(
        input_root=input_root, output_root=build_root, metrics=metrics
    )
    logger.info(
        f"Materialized {metrics.manifests_written} manifest(s) into {build_root}"
    )
    logger.debug(report.format_report())

    if config.run_build:
        build = builder or run_kustomize
        build(build_root, config.tools.kustomize_bin)
    else:
        logger.info("Skipping kustomize build")

    return report
