"""
Schemas for node RPC payloads and the metric records derived from them.
Node RPC encodes every number as a string; pydantic coerces them here so that a
non-numeric count fails validation instead of reaching the merge step.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TelemetrySnapshot(BaseModel):
    model_config = ConfigDict(extra="ignore")

    block_count: int
    cemented_count: int
    unchecked_count: Optional[int] = None
    account_count: Optional[int] = None
    bandwidth_cap: Optional[int] = None
    peer_count: Optional[int] = None
    protocol_version: Optional[int] = None
    uptime: Optional[int] = None
    genesis_block: Optional[str] = None
    major_version: Optional[int] = None
    minor_version: Optional[int] = None
    patch_version: Optional[int] = None
    pre_release_version: Optional[int] = None
    maker: Optional[int] = None
    timestamp: Optional[int] = Field(None, description="Node clock, milliseconds since epoch")
    active_difficulty: Optional[str] = None
    node_id: str
    signature: Optional[str] = None
    address: str
    port: int

    @property
    def key(self) -> str:
        """Matches the `ip` field of a quorum peer, e.g. `[::ffff:1.2.3.4]:7075`."""
        return f"[{self.address}]:{self.port}"

    @property
    def telemetry_timestamp(self) -> Optional[int]:
        if self.timestamp is None:
            return None
        return self.timestamp // 1000


class TelemetryResponse(BaseModel):
    metrics: List[TelemetrySnapshot]


class QuorumPeer(BaseModel):
    model_config = ConfigDict(extra="ignore")

    account: str
    ip: str
    weight: str

    @field_validator('weight', mode='before')
    def weight_is_integer(cls, v):
        v = str(v)
        if not (v.isascii() and v.isdigit()):
            raise ValueError(f"weight must be an integer amount, got {v!r}")
        return v


class ConfirmationQuorumResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    quorum_delta: Optional[str] = None
    online_weight_quorum_percent: Optional[str] = None
    online_weight_minimum: Optional[str] = None
    online_stake_total: Optional[str] = None
    trended_stake_total: Optional[str] = None
    peers_stake_total: Optional[str] = None
    peers: List[QuorumPeer]


class RepresentativeOnline(BaseModel):
    weight: str


class RepresentativesOnlineResponse(BaseModel):
    representatives: Dict[str, RepresentativeOnline]


class NodeMetricRecord(BaseModel):
    """Telemetry of one node for one run, with distance to the network tip."""
    block_count: int
    block_behind: int
    cemented_count: int
    cemented_behind: int
    unchecked_count: Optional[int] = None
    bandwidth_cap: Optional[int] = None
    peer_count: Optional[int] = None
    protocol_version: Optional[int] = None
    uptime: Optional[int] = None
    major_version: Optional[int] = None
    minor_version: Optional[int] = None
    patch_version: Optional[int] = None
    pre_release_version: Optional[int] = None
    maker: Optional[int] = None
    node_id: str
    address: str
    port: int
    telemetry_timestamp: Optional[int] = None
    timestamp: int


class RepresentativeMetricRecord(NodeMetricRecord):
    account: str
    weight: str


class RepresentativeTelemetryResponse(RepresentativeMetricRecord):
    account: Optional[str] = None
    weight: Optional[str] = None
    id: int

    model_config = ConfigDict(from_attributes=True)
