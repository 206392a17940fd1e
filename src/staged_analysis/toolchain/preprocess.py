"""External preprocessor invocation."""

from __future__ import annotations

import shlex
import subprocess
import tempfile
from pathlib import Path
from typing import Optional

from ..collaborators import PreprocessError
from ..logging_utils import get_logger

logger = get_logger("preprocess")


class CommandPreprocessor:
    """Runs ``command <file>`` in ``workdir`` and returns its standard output.

    The source text is written to a scratch file carrying the query's base
    name, so commands that dispatch on the file extension keep working.
    """

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout

    def apply(self, workdir: str, filename: str, source: str, command: str) -> str:
        argv = shlex.split(command)
        if not argv:
            raise PreprocessError(command, stderr="empty command")

        with tempfile.TemporaryDirectory(prefix="staged-analysis-") as scratch:
            path = Path(scratch) / (Path(filename).name or "source.py")
            path.write_text(source, encoding="utf-8")
            logger.debug("Running preprocessor %s on %s in %s", argv[0], filename, workdir)
            try:
                completed = subprocess.run(
                    [*argv, str(path)],
                    cwd=workdir,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                    check=False,
                )
            except (OSError, subprocess.TimeoutExpired) as exc:
                raise PreprocessError(command, stderr=str(exc)) from exc

        if completed.returncode != 0:
            raise PreprocessError(command, completed.returncode, completed.stderr)
        return completed.stdout
