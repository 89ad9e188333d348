import logging
import os
import re
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Sequence

from .errors import EngineUnavailable
from .interfaces import EngineHandle

logger = logging.getLogger(__name__)

# JSON v2 (and with it --json-input) first shipped in qpdf 11.0.
MIN_QPDF_VERSION = (11, 0)
TIMEOUT_EXIT_CODE = 124

_VERSION_RE = re.compile(r"qpdf version (\d+)\.(\d+)(?:\.(\d+))?")


def parse_qpdf_version(output: str) -> tuple[int, ...] | None:
    m = _VERSION_RE.search(output)
    if not m:
        return None
    return tuple(int(part) for part in m.groups() if part is not None)


class QpdfEngine(EngineHandle):
    """Runs the qpdf executable against files in a private staging root."""

    def __init__(
        self,
        binary: str,
        root: str,
        *,
        version: tuple[int, ...] = (),
        timeout: float | None = None,
    ) -> None:
        self._binary = binary
        self._root = Path(root).resolve()
        self._timeout = timeout
        self.version = version
        self.last_stderr = ""

    @property
    def binary(self) -> str:
        return self._binary

    @property
    def root(self) -> Path:
        return self._root

    @classmethod
    def locate(
        cls,
        binary: str | None = None,
        *,
        staging_dir: str | None = None,
        timeout: float | None = None,
    ) -> "QpdfEngine":
        """Find and verify qpdf, then give it a fresh staging root.

        Lookup order: ``binary`` argument, ``QPDF_BINARY``, then ``PATH``.
        Raises EngineUnavailable if qpdf is missing, broken or too old.
        """
        candidate = binary or os.getenv("QPDF_BINARY") or shutil.which("qpdf")
        if not candidate:
            raise EngineUnavailable("qpdf executable not found (set QPDF_BINARY or add qpdf to PATH)")
        try:
            probe = subprocess.run(
                [candidate, "--version"],
                capture_output=True,
                text=True,
                timeout=30,
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise EngineUnavailable(f"qpdf at {candidate} could not be started: {e}") from e
        if probe.returncode != 0:
            raise EngineUnavailable(f"qpdf --version exited with code {probe.returncode}")
        version = parse_qpdf_version(probe.stdout)
        if version is None:
            raise EngineUnavailable(f"unrecognized qpdf version output: {probe.stdout.strip()!r}")
        if version[:2] < MIN_QPDF_VERSION:
            wanted = ".".join(str(v) for v in MIN_QPDF_VERSION)
            found = ".".join(str(v) for v in version)
            raise EngineUnavailable(f"qpdf {found} is too old; JSON round trips need {wanted} or newer")

        staging_parent = staging_dir or os.getenv("STAGING_DIR") or None
        if staging_parent:
            Path(staging_parent).mkdir(parents=True, exist_ok=True)
        root = tempfile.mkdtemp(prefix="pdf-roundtrip-", dir=staging_parent)
        logger.info(
            "Loaded qpdf %s from %s (staging root %s)",
            ".".join(str(v) for v in version),
            candidate,
            root,
        )
        return cls(candidate, root, version=version, timeout=timeout)

    def _resolve(self, path: str) -> Path:
        target = (self._root / path).resolve()
        if target != self._root and self._root not in target.parents:
            raise ValueError(f"staging path escapes the staging root: {path}")
        return target

    def invoke(self, argv: Sequence[str]) -> int:
        args = [self._binary, *argv]
        logger.debug("Running %s", " ".join(args))
        try:
            proc = subprocess.run(
                args,
                cwd=self._root,
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired:
            self.last_stderr = f"qpdf did not finish within {self._timeout} seconds"
            logger.warning(self.last_stderr)
            return TIMEOUT_EXIT_CODE
        self.last_stderr = proc.stderr.strip()
        if proc.returncode != 0:
            logger.warning("qpdf exited with code %s: %s", proc.returncode, self.last_stderr)
        else:
            logger.info("qpdf %s finished", argv[0] if argv else "")
        return proc.returncode

    def write_file(self, path: str, data: bytes) -> None:
        self._resolve(path).write_bytes(data)

    def read_file(self, path: str) -> bytes:
        return self._resolve(path).read_bytes()

    def remove_file(self, path: str) -> None:
        self._resolve(path).unlink(missing_ok=True)

    def make_scope(self, path: str) -> None:
        self._resolve(path).mkdir(parents=True)

    def close(self) -> None:
        shutil.rmtree(self._root, ignore_errors=True)
