# pyright: standard

"""restic-backup-ng: restic_backup_ng/__main__.py.

Back up directories to a restic repository, then apply a retention policy.
"""

import sys

from .cli.dispatcher import main

if __name__ == "__main__":
    sys.exit(main())
