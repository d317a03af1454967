#!/usr/bin/env python
"""
Apply or inspect schema migrations for the channel landing database.

    python migrate.py upgrade [revision]     # default: head
    python migrate.py downgrade [revision]   # default: one step back
    python migrate.py current
    python migrate.py history
    python migrate.py revision "message"     # autogenerate from the models
    python migrate.py stamp <revision>

The database URL comes from the application settings (DATABASE_URL).
"""

import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

from channel_landing.core.config import settings
from channel_landing.core.database import ensure_sqlite_dir

ROOT = Path(__file__).resolve().parent


def alembic_config() -> Config:
    config = Config(str(ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(ROOT / "alembic"))
    return config


def main(argv) -> int:
    if not argv:
        print(__doc__)
        return 1

    action, args = argv[0].lower(), argv[1:]
    config = alembic_config()
    ensure_sqlite_dir(settings.DATABASE_URL)

    if action == "upgrade":
        command.upgrade(config, args[0] if args else "head")
    elif action == "downgrade":
        command.downgrade(config, args[0] if args else "-1")
    elif action == "current":
        command.current(config, verbose=True)
    elif action == "history":
        command.history(config, verbose=True)
    elif action == "revision":
        if not args:
            print('revision needs a message: python migrate.py revision "add column"')
            return 1
        command.revision(config, message=args[0], autogenerate=True)
    elif action == "stamp":
        if not args:
            print("stamp needs a revision: python migrate.py stamp head")
            return 1
        command.stamp(config, args[0])
    else:
        print(f"Unknown action: {action}")
        print(__doc__)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
