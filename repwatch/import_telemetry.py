"""
Entry point for the scheduled import: `python -m repwatch.import_telemetry`.
Exits 0 when the run completes and 1 when it aborts or crashes.
"""
import asyncio
import sys

from repwatch.core import database
from repwatch.core.logging_config import setup_logging, get_logger
from repwatch.db.init_db import init_db
from repwatch.ingestion.pipeline import ImportAbortedError, run_import

logger = get_logger("import_telemetry")

async def main() -> int:
    try:
        await init_db()
        await run_import()
    except ImportAbortedError as e:
        logger.error("import_aborted", error=str(e))
        return 1
    except Exception as e:
        logger.exception("import_failed", error=str(e))
        return 1
    finally:
        await database.db_manager.dispose()
    return 0

def cli():
    setup_logging()
    sys.exit(asyncio.run(main()))

if __name__ == "__main__":
    cli()
