"""
External matcher plumbing: executable discovery, process execution and
scratch storage for intermediate files.

Executables are looked up in the directory named by a tool-specific
environment variable first, then on ``PATH``, then in any fixed fallback
directories. Lookup happens on every call, so environment changes take
effect without a restart.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from astro_correlate.exceptions import ExternalToolError

logger = logging.getLogger(__name__)


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def find_executable(
    name: str,
    env_var: str | None = None,
    fallback_dirs: Sequence[str | Path] = (),
) -> Path:
    """Locate an external tool.

    Parameters
    ----------
    name : str
        Executable file name.
    env_var : str or None
        Environment variable naming a directory to check first.
    fallback_dirs : sequence of path
        Directories checked after ``PATH``.

    Returns
    -------
    Path
        Absolute path to the executable.

    Raises
    ------
    ExternalToolError
        If no usable executable is found.
    """
    if env_var:
        env_dir = os.environ.get(env_var)
        if env_dir and Path(env_dir).is_dir():
            candidate = Path(env_dir) / name
            if _is_executable(candidate):
                logger.debug(f"Found {name} via ${env_var}: {candidate}")
                return candidate.resolve()
            logger.debug(f"${env_var}={env_dir} does not contain an executable {name}")

    found = shutil.which(name)
    if found:
        logger.debug(f"Found {name} on PATH: {found}")
        return Path(found).resolve()

    for directory in fallback_dirs:
        candidate = Path(directory) / name
        if _is_executable(candidate):
            logger.debug(f"Found {name} in fallback directory: {candidate}")
            return candidate.resolve()

    hint = f" Ensure the {env_var} environment variable is set" if env_var else ""
    raise ExternalToolError(
        f"Could not find {name} executable.{hint}",
        tool=name,
        env_var=env_var,
    )


@dataclass
class ToolSession:
    """Runs one external executable as a blocking subprocess.

    A session is owned by a backend instance and reused while the executable
    path stays the same.
    """

    name: str
    executable: Path
    invocations: int = 0

    def run(
        self,
        args: Sequence[str],
        *,
        timeout: float,
        cwd: Path | None = None,
        verbose: bool = False,
    ) -> subprocess.CompletedProcess:
        """Run the tool to completion.

        Raises
        ------
        ExternalToolError
            On launch failure, timeout or nonzero exit status.
        """
        cmd = [str(self.executable), *[str(a) for a in args]]
        log = logger.info if verbose else logger.debug
        log(f"Running {self.name}: {' '.join(cmd)}")
        self.invocations += 1

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                cwd=str(cwd) if cwd is not None else None,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise ExternalToolError(
                f"{self.name} timed out after {timeout}s",
                tool=self.name,
                diagnostic=_decode(e.stderr) or _decode(e.stdout),
                command=cmd,
                timeout=timeout,
            ) from e
        except OSError as e:
            raise ExternalToolError(
                f"Could not execute {self.name}: {e}",
                tool=self.name,
                command=cmd,
            ) from e

        if result.stdout:
            log(f"{self.name} output:\n{result.stdout.rstrip()}")

        if result.returncode != 0:
            diagnostic = (result.stderr or result.stdout or "").strip()
            logger.error(f"{self.name} failed with status {result.returncode}: {diagnostic}")
            raise ExternalToolError(
                f"{self.name} failed with status {result.returncode}: {diagnostic}",
                tool=self.name,
                returncode=result.returncode,
                diagnostic=diagnostic,
                command=cmd,
            )
        return result


def _decode(stream: bytes | str | None) -> str:
    if stream is None:
        return ""
    if isinstance(stream, bytes):
        return stream.decode(errors="replace").strip()
    return stream.strip()


class ScratchSpace:
    """Scoped storage for intermediate files of one correlation call.

    With no ``base_dir`` a fresh directory is created and removed on exit.
    With a caller-supplied ``base_dir`` only the files this scratch space
    created (or registered) are removed; the directory itself is left.
    Nothing is removed when ``keep`` is true. Cleanup is best-effort and
    never raises.

    Examples
    --------
    >>> with ScratchSpace(keep=False, prefix="ritmatch") as scratch:
    ...     table = scratch.new_file(suffix=".cat")
    """

    def __init__(
        self,
        base_dir: str | Path | None = None,
        *,
        keep: bool = False,
        prefix: str = "correlate",
    ) -> None:
        self.keep = keep
        self.prefix = prefix
        self._requested_dir = Path(base_dir) if base_dir is not None else None
        self._owns_dir = base_dir is None
        self._created: list[Path] = []
        self.path: Path | None = None

    def __enter__(self) -> ScratchSpace:
        if self._owns_dir:
            self.path = Path(tempfile.mkdtemp(prefix=f"{self.prefix}_"))
        else:
            self._requested_dir.mkdir(parents=True, exist_ok=True)
            self.path = self._requested_dir
        logger.debug(f"Using scratch directory {self.path}")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def new_file(self, suffix: str = "") -> Path:
        """Create a uniquely named empty file in the scratch directory."""
        fd, name = tempfile.mkstemp(prefix=f"{self.prefix}_", suffix=suffix, dir=self.path)
        os.close(fd)
        path = Path(name)
        self._created.append(path)
        return path

    def new_name(self, suffix: str = "") -> Path:
        """Reserve a unique path without leaving a file behind.

        The path is registered so anything later written there is cleaned up.
        """
        path = self.new_file(suffix=suffix)
        path.unlink()
        return path

    def register(self, *paths: Path) -> None:
        """Mark files written by an external tool for cleanup."""
        self._created.extend(Path(p) for p in paths)

    def cleanup(self) -> None:
        if self.path is None:
            return
        if self.keep:
            logger.info(f"Keeping intermediate files in {self.path}")
            return
        if self._owns_dir:
            shutil.rmtree(self.path, ignore_errors=True)
            if self.path.exists():
                logger.warning(f"Could not remove scratch directory {self.path}")
        else:
            for path in self._created:
                try:
                    path.unlink(missing_ok=True)
                except OSError as e:
                    logger.warning(f"Could not remove intermediate file {path}: {e}")
        self.path = None
