"""
Client for the node JSON RPC.
Every action is a POST of `{"action": ..., **params}`. A node reports
application errors as `{"error": "..."}` with a 200 status, so transport
failures and error payloads are both raised as RpcError.
"""
from typing import Any, Dict, List, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from repwatch.core.logging_config import get_logger
from repwatch.schemas.telemetry import (
    ConfirmationQuorumResponse,
    RepresentativesOnlineResponse,
    TelemetryResponse,
    TelemetrySnapshot,
    QuorumPeer,
)
from repwatch.services.drift_detection import detect_drift

logger = get_logger("rpc")


class RpcError(Exception):
    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class RpcClient:
    def __init__(self, addresses: List[str], client: httpx.AsyncClient, max_attempts: int = 1):
        if not addresses:
            raise ValueError("at least one rpc address is required")
        self.addresses = list(addresses)
        self._client = client
        self._max_attempts = max(1, max_attempts)

    async def _post(self, url: str, data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await self._client.post(url, json=data)
        except httpx.HTTPError as e:
            raise RpcError(f"{type(e).__name__}: {e}", url=url) from e

        try:
            body = response.json()
        except ValueError as e:
            raise RpcError(f"invalid json response (status {response.status_code})", url=url) from e

        if not isinstance(body, dict):
            raise RpcError("unexpected response shape", url=url)
        if not response.is_success:
            raise RpcError(body.get("error") or response.reason_phrase, url=url)
        if "error" in body:
            raise RpcError(str(body["error"]), url=url)
        return body

    async def _post_with_retry(self, url: str, data: Dict[str, Any]) -> Dict[str, Any]:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(RpcError),
            reraise=True,
        ):
            with attempt:
                return await self._post(url, data)

    async def request(self, data: Dict[str, Any], url: Optional[str] = None) -> Dict[str, Any]:
        """
        Sends `data` to `url`, or to each configured address in order until one succeeds.
        """
        if url:
            return await self._post_with_retry(url, data)

        last_error = None
        for address in self.addresses:
            try:
                return await self._post_with_retry(address, data)
            except RpcError as e:
                logger.warning("rpc_node_failed", action=data.get("action"), url=address, error=str(e))
                last_error = e
        raise RpcError(f"all rpc nodes failed for {data.get('action')}: {last_error}")

    async def telemetry(self, url: Optional[str] = None) -> TelemetryResponse:
        body = await self.request({"action": "telemetry", "raw": True}, url=url)
        telemetry = TelemetryResponse.model_validate(body)
        if telemetry.metrics:
            detect_drift(body["metrics"][0], TelemetrySnapshot, "telemetry")
        return telemetry

    async def confirmation_quorum(self, url: Optional[str] = None) -> ConfirmationQuorumResponse:
        body = await self.request({"action": "confirmation_quorum", "peer_details": True}, url=url)
        quorum = ConfirmationQuorumResponse.model_validate(body)
        if quorum.peers:
            detect_drift(body["peers"][0], QuorumPeer, "confirmation_quorum")
        return quorum

    async def representatives_online(self, url: Optional[str] = None) -> RepresentativesOnlineResponse:
        body = await self.request({"action": "representatives_online", "weight": True}, url=url)
        return RepresentativesOnlineResponse.model_validate(body)
