"""Commit a merged document to disk and apply it.

The pipeline is an ordered series of independently failing steps. It is
not transactional: when a step fails, earlier steps stay done and the
directory may be left with a staged file, a new primary file next to
stale secondary files, or a written configuration that was never
applied. The next load folds whatever is left, which is the only
recovery path.
"""
import logging
import os
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from ..config.settings import Settings
from ..system.commands import CommandError, run_command
from ..utils.logging_config import timed
from .errors import CommitFailure
from .loader import list_config_files
from .parser import dump_document
from .schema import NetplanDocument

logger = logging.getLogger(__name__)


class CommitStep(str, Enum):
    """Steps of the commit pipeline, in execution order."""
    ENUMERATE = "enumerate"   # list existing files, pick the primary
    STAGE = "stage"           # write the document to the staging path
    PROMOTE = "promote"       # copy the staged file over the primary
    UNSTAGE = "unstage"       # delete the staged file
    PRUNE = "prune"           # delete every other configuration file
    APPLY = "apply"           # run the apply command


def _write_staged(path: Path, text: str) -> None:
    # Truncate-or-create, never append; refuse to follow a symlink
    # planted at the staging name
    flags = os.O_WRONLY | os.O_CREAT | os.O_TRUNC | os.O_NOFOLLOW
    fd = os.open(path, flags, 0o644)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(text)


@dataclass
class CommitResult:
    """Outcome of a successful commit."""
    primary: Path
    removed: list[Path] = field(default_factory=list)


class CommitPipeline:
    """Write a document as the single configuration file and apply it."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        runner: Callable = run_command,
    ):
        """
        Args:
            settings: Directories, default file name and apply command
            runner: Command runner, ``runner(program, args)``
        """
        self.settings = settings or Settings()
        self.runner = runner

    @timed("netplan_commit")
    def commit(self, document: NetplanDocument) -> CommitResult:
        """
        Persist ``document`` and apply it to the system.

        Raises:
            CommitFailure: If any step fails; ``.step`` tells which one
        """
        directory = self.settings.netplan_dir

        try:
            existing = list_config_files(directory, self.settings.file_suffixes)
        except OSError as e:
            raise CommitFailure(CommitStep.ENUMERATE, directory, e) from e

        primary_name = existing[0].name if existing else self.settings.default_filename
        staged = self.settings.staging_dir / primary_name
        target = directory / primary_name

        try:
            _write_staged(staged, dump_document(document))
        except OSError as e:
            raise CommitFailure(CommitStep.STAGE, staged, e) from e

        try:
            shutil.copyfile(staged, target)
        except OSError as e:
            raise CommitFailure(CommitStep.PROMOTE, target, e) from e

        try:
            staged.unlink()
        except OSError as e:
            raise CommitFailure(CommitStep.UNSTAGE, staged, e) from e

        removed = []
        for path in existing:
            if path == target:
                continue
            try:
                path.unlink()
            except OSError as e:
                raise CommitFailure(CommitStep.PRUNE, path, e) from e
            removed.append(path)
            logger.info(f"Removed merged configuration file {path}")

        self.apply()

        logger.info(f"Committed netplan configuration to {target}")
        return CommitResult(primary=target, removed=removed)

    def apply(self) -> None:
        """Ask the network stack to adopt the configuration on disk."""
        program, *args = self.settings.apply_command
        try:
            self.runner(program, args)
        except CommandError as e:
            raise CommitFailure(CommitStep.APPLY, None, e) from e
