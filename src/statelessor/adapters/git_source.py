"""Clone Git repositories into temporary working copies."""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from ..errors import IngestionError

logger = logging.getLogger(__name__)


class GitSource:
    """Check out repositories with the ``git`` executable."""

    def __init__(self, *, git_bin: str = "git", timeout: float | None = 300.0) -> None:
        self.git_bin = git_bin
        self.timeout = timeout

    @contextmanager
    def checkout(
        self,
        url: str,
        *,
        branch: str | None = None,
        subfolder: str | None = None,
        identity_file: str | os.PathLike[str] | None = None,
    ) -> Iterator[Path]:
        """Yield the directory to analyze inside a shallow clone of ``url``."""

        with tempfile.TemporaryDirectory(prefix="statelessor-git-") as tmpdir:
            clone_dir = Path(tmpdir) / "repo"
            command = [self.git_bin, "clone", "--depth", "1"]
            if branch:
                command.extend(["--branch", branch])
            command.extend([url, str(clone_dir)])

            logger.info("Cloning %s", url)
            self._run_command(command, env=self._build_environment(identity_file))

            target = clone_dir
            if subfolder:
                target = (clone_dir / subfolder.strip("/")).resolve()
                if clone_dir.resolve() not in target.parents and target != clone_dir.resolve():
                    raise IngestionError(
                        f"Subfolder escapes the repository: {subfolder}", code="source_not_found"
                    )
                if not target.is_dir():
                    raise IngestionError(
                        f"Subfolder not found in repository: {subfolder}", code="source_not_found"
                    )

            yield target

    def test_connection(
        self,
        url: str,
        *,
        branch: str | None = None,
        identity_file: str | os.PathLike[str] | None = None,
    ) -> bool:
        """Return ``True`` when the remote (and branch, if given) is reachable."""

        command = [self.git_bin, "ls-remote", "--heads", url]
        if branch:
            command.append(branch)
        try:
            completed = self._run_command(
                command, env=self._build_environment(identity_file), capture_output=True
            )
        except IngestionError as exc:
            logger.warning("Connection test for %s failed: %s", url, exc.message)
            return False

        if branch:
            return bool(completed.stdout.strip())
        return True

    # ------------------------------------------------------------------
    def _build_environment(self, identity_file: str | os.PathLike[str] | None) -> dict[str, str]:
        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"
        if identity_file:
            env["GIT_SSH_COMMAND"] = (
                f"ssh -i {Path(identity_file)} -o IdentitiesOnly=yes "
                "-o StrictHostKeyChecking=accept-new"
            )
        return env

    def _run_command(
        self,
        args: List[str],
        *,
        env: Optional[dict[str, str]] = None,
        capture_output: bool = False,
    ) -> subprocess.CompletedProcess[str]:
        try:
            completed = subprocess.run(
                args,
                env=env,
                check=True,
                capture_output=capture_output,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            raise IngestionError(
                f"Executable not found: {args[0]}", code="git_clone_failed"
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise IngestionError(
                f"Command '{' '.join(args)}' timed out", code="git_clone_failed"
            ) from exc
        except subprocess.CalledProcessError as exc:
            raise IngestionError(
                f"Command '{' '.join(args)}' failed with exit code {exc.returncode}",
                code="git_clone_failed",
            ) from exc

        return completed
