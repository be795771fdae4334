"""
One telemetry import run: fetch telemetry and quorum data from the configured
nodes, merge them, persist the metric records, then backfill geolocation for
representatives whose network info is missing or stale.
"""
import asyncio
import time
from typing import Callable, List, Optional, Sequence

import httpx
from pydantic import ValidationError
from prometheus_client import Counter, Gauge, Histogram

from repwatch.core import config
from repwatch.core.database import AsyncSessionLocal
from repwatch.core.logging_config import get_logger
from repwatch.ingestion.geolocation import GeolocationClient, GeolocationError
from repwatch.ingestion.merge import merge_quorum_peers, merge_telemetry
from repwatch.ingestion.rate_limit import FixedIntervalGate
from repwatch.ingestion.rpc import RpcClient, RpcError
from repwatch.schemas.data import ImportSummary
from repwatch.schemas.network import NetworkInfoRecord
from repwatch.schemas.telemetry import ConfirmationQuorumResponse, RepresentativeMetricRecord
from repwatch.services.persistence import TelemetryRepository

logger = get_logger("import_pipeline")

SECONDS_PER_DAY = 24 * 60 * 60

# --- Metrics ---
IMPORT_RECORDS_PERSISTED = Counter('import_records_persisted_total', 'Telemetry records persisted', ['kind'])
IMPORT_NETWORK_LOOKUPS = Counter('import_network_lookups_total', 'Geolocation lookups', ['outcome'])
IMPORT_RUN_DURATION = Histogram('import_run_duration_seconds', 'Import run duration')
IMPORT_JOB_STATUS = Gauge('import_job_status', 'Import job status (1=Success, 0=Fail)')


class ImportAbortedError(Exception):
    """Raised when the anchor telemetry fetch fails. Nothing has been written."""


class TelemetryImportJob:
    def __init__(
        self,
        rpc: RpcClient,
        geolocation: GeolocationClient,
        rpc_addresses: Sequence[str],
        session_factory: Callable = AsyncSessionLocal,
        gate: Optional[FixedIntervalGate] = None,
        network_info_max_age_days: int = 3,
        now: Callable[[], float] = time.time,
    ):
        self.rpc = rpc
        self.geolocation = geolocation
        self.rpc_addresses = list(rpc_addresses)
        self.session_factory = session_factory
        self.gate = gate or FixedIntervalGate(2.0)
        self.network_info_max_age = network_info_max_age_days * SECONDS_PER_DAY
        self.now = now

    async def _fetch_quorum(self, summary: ImportSummary) -> List[ConfirmationQuorumResponse]:
        requests = [self.rpc.confirmation_quorum(url=url) for url in self.rpc_addresses]
        responses = await asyncio.gather(*requests, return_exceptions=True)

        results = []
        for url, res in zip(self.rpc_addresses, responses):
            if isinstance(res, (RpcError, ValidationError)):
                summary.quorum_failures += 1
                logger.warning("quorum_fetch_failed", url=url, error=str(res))
                continue
            if isinstance(res, BaseException):
                raise res
            results.append(res)
        return results

    async def _backfill_network_info(
        self,
        repo: TelemetryRepository,
        representatives: List[RepresentativeMetricRecord],
        summary: ImportSummary,
    ):
        for item in representatives:
            latest = await repo.latest_network_info(item.account, item.address)
            collected_at = latest.timestamp if latest is not None else None
            # end the read transaction before waiting on the gate and the lookup
            await repo.session.rollback()

            # ignore any account / address combos fetched within the max age
            if collected_at is not None and collected_at + self.network_info_max_age > summary.timestamp:
                summary.network_skipped_fresh += 1
                IMPORT_NETWORK_LOOKUPS.labels(outcome="fresh").inc()
                continue

            await self.gate.acquire()
            try:
                network = await self.geolocation.lookup(item.address)
            except GeolocationError as e:
                summary.network_failed += 1
                IMPORT_NETWORK_LOOKUPS.labels(outcome="error").inc()
                logger.warning("network_lookup_failed", account=item.account, address=item.address, error=str(e))
                continue

            if not network.is_success:
                summary.network_failed += 1
                IMPORT_NETWORK_LOOKUPS.labels(outcome="unsuccessful").inc()
                logger.info("network_lookup_unsuccessful", account=item.account, address=item.address, message=network.message)
                continue

            logger.info("saving_network_info", account=item.account, address=item.address)
            record = NetworkInfoRecord.from_geolocation(item.account, item.address, network, summary.timestamp)
            summary.network_records += await repo.insert_network_info([record])
            IMPORT_NETWORK_LOOKUPS.labels(outcome="success").inc()

    async def run(self) -> ImportSummary:
        start_time = time.time()
        summary = ImportSummary(timestamp=int(round(self.now())))
        logger.info("import_start", timestamp=summary.timestamp)

        async with self.session_factory() as session:
            repo = TelemetryRepository(session)

            # 1. Telemetry from a single node
            try:
                telemetry = await self.rpc.telemetry()
            except RpcError as e:
                logger.error("telemetry_unavailable", error=str(e))
                raise ImportAbortedError(str(e)) from e
            logger.info("telemetry_received", nodes=len(telemetry.metrics))

            # 2. confirmation_quorum from every node
            quorum = await self._fetch_quorum(summary)
            peers = merge_quorum_peers(quorum)
            logger.info("representatives_discovered", count=len(peers))

            # 3. Merge by ip address & port
            merged = merge_telemetry(telemetry.metrics, peers.values(), summary.timestamp)

            # 4. Load
            if merged.representatives:
                logger.info("saving_representative_metrics", count=len(merged.representatives))
                summary.representatives = await repo.insert_telemetry(merged.representatives)
                IMPORT_RECORDS_PERSISTED.labels(kind="representative").inc(summary.representatives)

            if merged.nodes:
                logger.info("saving_node_metrics", count=len(merged.nodes))
                summary.nodes = await repo.insert_telemetry(merged.nodes)
                IMPORT_RECORDS_PERSISTED.labels(kind="node").inc(summary.nodes)

            # 5. Geolocation backfill, one lookup at a time
            await self._backfill_network_info(repo, merged.representatives, summary)

        summary.duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            "import_success",
            representatives=summary.representatives,
            nodes=summary.nodes,
            network_records=summary.network_records,
            duration_ms=summary.duration_ms,
        )
        return summary


async def run_import() -> ImportSummary:
    settings = config.get_settings()
    start_time = time.time()
    try:
        async with httpx.AsyncClient() as client:
            job = TelemetryImportJob(
                rpc=RpcClient(settings.RPC_ADDRESSES, client, max_attempts=settings.RPC_MAX_ATTEMPTS),
                geolocation=GeolocationClient(client, base_url=settings.GEOLOCATION_URL),
                rpc_addresses=settings.RPC_ADDRESSES,
                gate=FixedIntervalGate(settings.GEOLOCATION_INTERVAL_SECONDS),
                network_info_max_age_days=settings.NETWORK_INFO_MAX_AGE_DAYS,
            )
            summary = await job.run()
    except Exception:
        IMPORT_JOB_STATUS.set(0)
        raise
    finally:
        IMPORT_RUN_DURATION.observe(time.time() - start_time)
    IMPORT_JOB_STATUS.set(1)
    return summary
