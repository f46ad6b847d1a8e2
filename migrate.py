#!/usr/bin/env python3
"""
Manage database migrations with Alembic.
"""
import sys
from pathlib import Path

from alembic.config import Config
from alembic import command
from erp_api.core.config import settings

root_dir = Path(__file__).parent


def get_alembic_config():
    """Alembic configuration pointed at the configured database."""
    alembic_cfg = Config(str(root_dir / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(root_dir / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
    return alembic_cfg


def create_migration(message: str):
    alembic_cfg = get_alembic_config()
    command.revision(alembic_cfg, autogenerate=True, message=message)
    print(f"Migration created: {message}")


def run_migrations():
    alembic_cfg = get_alembic_config()
    command.upgrade(alembic_cfg, "head")
    print("Migrations applied")


def rollback_migration():
    """Undo the latest migration."""
    alembic_cfg = get_alembic_config()
    command.downgrade(alembic_cfg, "-1")
    print("Rollback complete")


def show_history():
    command.history(get_alembic_config())


def show_current():
    command.current(get_alembic_config())


ACTIONS = {
    "upgrade": run_migrations,
    "downgrade": rollback_migration,
    "history": show_history,
    "current": show_current,
}

if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage:")
        print("  python migrate.py create 'message'  # Create a migration")
        print("  python migrate.py upgrade            # Apply pending migrations")
        print("  python migrate.py downgrade          # Roll back one migration")
        print("  python migrate.py history            # Show history")
        print("  python migrate.py current            # Show current revision")
        sys.exit(1)

    action = sys.argv[1]

    if action == "create":
        if len(sys.argv) < 3:
            print("Error: a message is required for the migration")
            sys.exit(1)
        create_migration(sys.argv[2])
    elif action in ACTIONS:
        ACTIONS[action]()
    else:
        print(f"Unknown action: {action}")
        sys.exit(1)
