"""Jsonnet rendering of templated references.

Runs the ``jsonnet`` binary on one source file and writes the result to an
explicit output path. Whatever jsonnet prints is logged, on success as well
as on failure, so template warnings stay visible.
"""

import logging
import subprocess
from pathlib import Path

from jsonnetize.exceptions import RenderError

logger = logging.getLogger(__name__)


def render_jsonnet(source: Path, destination: Path, jsonnet_bin: str = "jsonnet") -> None:
    """Render a Jsonnet template to a literal file.

    Args:
        source: Template path in the input tree
        destination: File to write in the output tree
        jsonnet_bin: Name or path of the jsonnet binary

    Raises:
        RenderError: If jsonnet cannot be started or exits non-zero
    """
    command = [jsonnet_bin, "-o", str(destination), str(source)]
    logger.info(f"Running jsonnet on {source}")

    try:
        result = subprocess.run(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            check=False,
        )
    except OSError as e:
        raise RenderError(
            f"Could not run jsonnet on {source}: {e}",
            command=command,
            cause=e,
            recovery_suggestion="Install jsonnet or set JSONNETIZE_JSONNET_BIN",
        ) from e

    output = (result.stdout or "").strip()
    if output:
        logger.warning(output)

    if result.returncode != 0:
        raise RenderError(
            f"jsonnet failed on {source}: {output or 'no output'}",
            command=command,
            returncode=result.returncode,
        )
