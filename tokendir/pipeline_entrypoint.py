"""Pipeline entrypoint - Runs one reconciliation cycle outside the API process.

Usage:
    python -m tokendir.pipeline_entrypoint                  # Log the result only
    python -m tokendir.pipeline_entrypoint directory.json   # Also write the directory as JSON
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

from tokendir.core.logging import get_logger
from tokendir.models.runs import CycleRun
from tokendir.services.pipeline import DirectoryPipeline
from tokendir.services.store import DirectoryStore

logger = get_logger("pipeline_entrypoint")


async def run_cycle(output: Optional[Path] = None) -> CycleRun:
    """Run a single reconciliation cycle and optionally dump the directory."""
    store = DirectoryStore()
    pipeline = DirectoryPipeline(store)
    run = await pipeline.run_reconciliation_cycle()

    directory = store.current()
    if output is not None and directory is not None:
        output.write_text(directory.model_dump_json(indent=2), encoding="utf-8")
        logger.info(f"Directory v{directory.version} written to {output}")
    return run


def main():
    """Main entry point for a one-shot reconciliation."""
    logger.info("Reconciliation starting...")
    output = Path(sys.argv[1]) if len(sys.argv) > 1 else None

    run = asyncio.run(run_cycle(output))
    logger.info(f"Reconciliation completed: status={run.status} records={run.records_processed}")

    # A skipped cycle published nothing
    if run.status != "success":
        sys.exit(1)
    return run


if __name__ == "__main__":
    main()
