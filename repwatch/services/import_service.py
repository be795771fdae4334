from repwatch.ingestion.pipeline import run_import

async def trigger_import_job():
    """
    Runs one telemetry import and returns its summary.
    """
    return await run_import()
