#!/usr/bin/env python3
"""
Run pending migrations for a migrations folder.

Usage: python run_migrations_now.py [folder]   (default: postgres)
"""
import asyncio
import logging
import sys

from strata.modules.config import DEFAULT_BACKEND, get_migration_dir, load_config
from strata.services.database.migration_runner import execute_migration_workflow

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("strata.cli")


async def main() -> int:
    folder_name = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_BACKEND

    print("🗄️  Running Database Migration Tool")
    try:
        config = load_config(folder_name)
        print(f"🔗 Connection string: {config.masked_connection_string()}")

        migrations_dir = get_migration_dir(config.backend)
        print(f"📁 Migration folder: {config.backend} ({migrations_dir})")

        result = await execute_migration_workflow(config.backend, config.database_url, migrations_dir)
    except Exception as e:
        logger.error(f"❌ Migration failed: {e}")
        return 1

    print(f"📤 Migration result: executed={result.executed}, skipped={result.skipped}")
    print("👍 All done!")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
