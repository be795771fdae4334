from pydantic import BaseModel
from typing import List, Generic, TypeVar

T = TypeVar('T')

class MetaData(BaseModel):
    request_id: str
    latency_ms: float

class PaginatedResponse(BaseModel, Generic[T]):
    meta: MetaData
    data: List[T]

class TopRepresentativeEntry(BaseModel):
    account: str
    timestamp: int
    cemented_behind: int

class ImportSummary(BaseModel):
    timestamp: int
    representatives: int = 0
    nodes: int = 0
    network_records: int = 0
    network_skipped_fresh: int = 0
    network_failed: int = 0
    quorum_failures: int = 0
    duration_ms: int = 0
