"""Loading of the repository environment file.

The env file is the shell snippet the timer unit used to ``source``
(``export RESTIC_REPOSITORY=...``). Its values are credentials, so they
are passed to restic untouched and never logged.
"""

import logging
import os
from pathlib import Path

from dotenv import dotenv_values

logger = logging.getLogger(__name__)


def load_environment(
    env_file: str | Path | None,
    base: dict[str, str] | None = None,
) -> dict[str, str]:
    """Return the environment restic child processes run with.

    Args:
        env_file: Shell env file to merge on top of ``base`` (None to skip)
        base: Starting environment, defaults to a copy of ``os.environ``

    Returns:
        Merged environment mapping
    """
    env = dict(os.environ if base is None else base)

    if not env_file:
        return env

    path = Path(env_file)
    if not path.is_file():
        logger.warning("Environment file not found, using process environment: %s", path)
        return env

    values = dotenv_values(path)
    loaded = {key: value for key, value in values.items() if value is not None}
    env.update(loaded)
    logger.debug("Loaded %d variable(s) from %s", len(loaded), path)

    if "RESTIC_REPOSITORY" not in env and "RESTIC_REPOSITORY_FILE" not in env:
        logger.warning("RESTIC_REPOSITORY is not set; restic will refuse to run")

    return env
