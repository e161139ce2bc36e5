"""Kustomize build of the materialized tree.

Philosophy:
- Single responsibility: invoke ``kustomize build`` once, at the end
- Stream the build output straight to our stdout
- Report diagnostics after the process has finished
"""

import logging
import subprocess
from pathlib import Path

from jsonnetize.exceptions import BuildError

logger = logging.getLogger(__name__)

ENABLE_PLUGINS_FLAG = "--enable-alpha-plugins"


def run_kustomize(root: Path, kustomize_bin: str = "kustomize") -> None:
    """Build a kustomization root with plugin support enabled.

    stdout is inherited so the rendered YAML reaches the caller's stdout as
    kustomize produces it. stderr is collected and logged once the process
    exits.

    Args:
        root: Kustomization root in the output tree
        kustomize_bin: Name or path of the kustomize binary

    Raises:
        BuildError: If kustomize cannot be started, waited on, or exits non-zero

    Example:
        >>> from pathlib import Path
        >>> run_kustomize(Path("/tmp/out"))  # doctest: +SKIP
    """
    command = [kustomize_bin, "build", ENABLE_PLUGINS_FLAG, str(root)]
    logger.info(f"Running kustomize build on {root}")

    try:
        process = subprocess.Popen(command, stderr=subprocess.PIPE, text=True)
    except OSError as e:
        raise BuildError(
            f"Could not start kustomize: {e}",
            command=command,
            cause=e,
            recovery_suggestion="Install kustomize or set JSONNETIZE_KUSTOMIZE_BIN",
        ) from e

    try:
        _, stderr = process.communicate()
    except OSError as e:
        process.kill()
        raise BuildError(
            f"Couldn't read kustomize stderr: {e}", command=command, cause=e
        ) from e

    stderr = (stderr or "").strip()
    if stderr:
        logger.warning(stderr)

    if process.returncode != 0:
        raise BuildError(
            f"kustomize build failed: {stderr or 'no output'}",
            command=command,
            returncode=process.returncode,
        )
