"""
Read-only views over persisted telemetry for the dashboard, plus a manual import trigger.
"""
import time
import uuid
from collections import defaultdict
from typing import Dict, List

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from repwatch.core.config import get_settings
from repwatch.core.database import get_db
from repwatch.core.logging_config import get_logger
from repwatch.db.models import RepresentativeTelemetry
from repwatch.ingestion.pipeline import ImportAbortedError
from repwatch.ingestion.rpc import RpcClient, RpcError
from repwatch.schemas.data import PaginatedResponse, MetaData, TopRepresentativeEntry
from repwatch.schemas.network import NetworkInfoResponse
from repwatch.schemas.telemetry import RepresentativeTelemetryResponse, RepresentativesOnlineResponse
from repwatch.services.import_service import trigger_import_job
from repwatch.services.persistence import TelemetryRepository

logger = get_logger("api")

router = APIRouter()

ONE_WEEK = 7 * 24 * 60 * 60

@router.get("/representatives/top", response_model=Dict[str, List[TopRepresentativeEntry]])
async def get_top_representatives(db: AsyncSession = Depends(get_db)):
    """
    Cemented lag of every representative over the last week, grouped by account.
    """
    since = int(time.time()) - ONE_WEEK
    result = await db.execute(
        select(
            RepresentativeTelemetry.account,
            RepresentativeTelemetry.timestamp,
            RepresentativeTelemetry.cemented_behind,
        )
        .where(
            RepresentativeTelemetry.account.is_not(None),
            RepresentativeTelemetry.timestamp > since,
        )
        .order_by(RepresentativeTelemetry.timestamp)
    )

    grouped = defaultdict(list)
    for row in result.all():
        grouped[row.account].append(
            TopRepresentativeEntry(account=row.account, timestamp=row.timestamp, cemented_behind=row.cemented_behind)
        )
    return grouped

@router.get("/representatives/online", response_model=RepresentativesOnlineResponse)
async def get_representatives_online():
    settings = get_settings()
    async with httpx.AsyncClient() as client:
        rpc = RpcClient(settings.RPC_ADDRESSES, client, max_attempts=settings.RPC_MAX_ATTEMPTS)
        try:
            return await rpc.representatives_online()
        except RpcError as e:
            logger.error("representatives_online_failed", error=str(e))
            raise HTTPException(status_code=502, detail=str(e))

@router.get("/representatives/{account}/telemetry", response_model=PaginatedResponse[RepresentativeTelemetryResponse])
async def get_representative_telemetry(
    request: Request,
    account: str,
    limit: int = Query(10, ge=1, le=500),
    db: AsyncSession = Depends(get_db)
):
    start_time = time.time()
    rows = await TelemetryRepository(db).telemetry_for_account(account, limit=limit)

    latency = (time.time() - start_time) * 1000
    request_id = str(uuid.uuid4())

    return PaginatedResponse(
        meta=MetaData(request_id=request_id, latency_ms=latency),
        data=[RepresentativeTelemetryResponse.model_validate(row) for row in rows]
    )

@router.get("/representatives/{account}/network", response_model=NetworkInfoResponse)
async def get_representative_network(account: str, address: str = Query(...), db: AsyncSession = Depends(get_db)):
    row = await TelemetryRepository(db).latest_network_info(account, address)
    if row is None:
        raise HTTPException(status_code=404, detail="no network info for representative")
    return row

@router.post("/import/run")
async def run_import_job():
    """
    Manually runs the telemetry import and waits for it to finish.
    """
    try:
        summary = await trigger_import_job()
        return {"status": "completed", "summary": summary.model_dump()}
    except ImportAbortedError as e:
        return {"status": "aborted", "error": str(e)}
    except Exception as e:
        logger.error("manual_import_failed", error=str(e))
        return {"status": "failed", "error": str(e)}
