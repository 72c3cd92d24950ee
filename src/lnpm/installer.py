"""Package manager detection and the delegated install step.

The manager is chosen from the lockfile present next to package.json: yarn
for ``yarn.lock``, pnpm for ``pnpm-lock.yaml``, npm otherwise.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Dict, List, Sequence, Union

from lnpm.common import console
from lnpm.common.logging_utils import Timer
from lnpm.constants import Constants, PackageManagers

logger = logging.getLogger(__name__)

INSTALL_COMMANDS: Dict[PackageManagers, List[str]] = {
    PackageManagers.NPM: ["npm", "install"],
    PackageManagers.YARN: ["yarn", "install"],
    PackageManagers.PNPM: ["pnpm", "install"],
}

# Checked in order; the first lockfile found wins.
_LOCKFILES = [
    (Constants.YARN_LOCK_FILE, PackageManagers.YARN),
    (Constants.PNPM_LOCK_FILE, PackageManagers.PNPM),
]


class InstallerError(Exception):
    """The delegated install command exited non-zero."""

    def __init__(self, command: Sequence[str], returncode: int):
        self.command = list(command)
        self.returncode = returncode
        super().__init__(f"{' '.join(self.command)} exited with code {returncode}")


def detect_package_manager(directory: Union[str, Path]) -> PackageManagers:
    """Pick the package manager for the project in ``directory``."""
    for lockfile, manager in _LOCKFILES:
        if (Path(directory) / lockfile).exists():
            return manager
    return PackageManagers.NPM


def build_install_command(manager: PackageManagers) -> List[str]:
    return list(INSTALL_COMMANDS[manager])


def run_install(directory: Union[str, Path]) -> None:
    """Run the detected manager's install command in ``directory``.

    Standard streams are inherited so the user sees the manager's own output.

    Raises:
        InstallerError: The command could not be started or exited non-zero.
    """
    command = build_install_command(detect_package_manager(directory))
    console.shell(command)
    logger.info("Running: %s in %s", " ".join(command), directory)
    with Timer() as timer:
        try:
            result = subprocess.run(command, cwd=str(directory), check=False)  # noqa: S603
        except FileNotFoundError as exc:
            logger.error("%s executable not found: %s", command[0], exc)
            raise InstallerError(command, 127) from exc
    logger.debug("%s finished in %s ms", command[0], timer.duration_ms())
    if result.returncode != 0:
        raise InstallerError(command, result.returncode)
