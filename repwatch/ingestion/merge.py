"""
Joins node telemetry with confirmation quorum peers.

Quorum peers are matched to telemetry by `ip` ("[address]:port"). Matched
nodes become representative records; every other node becomes a plain node
record. Both carry how far they trail the highest block and cemented counts
seen in the same telemetry set.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence

from repwatch.schemas.telemetry import (
    ConfirmationQuorumResponse,
    NodeMetricRecord,
    QuorumPeer,
    RepresentativeMetricRecord,
    TelemetrySnapshot,
)


@dataclass
class MergeResult:
    representatives: List[RepresentativeMetricRecord] = field(default_factory=list)
    nodes: List[NodeMetricRecord] = field(default_factory=list)
    max_block_count: int = 0
    max_cemented_count: int = 0


def merge_quorum_peers(responses: Iterable[ConfirmationQuorumResponse]) -> Dict[str, QuorumPeer]:
    """Deduplicates peers by account. Later responses overwrite earlier ones."""
    peers: Dict[str, QuorumPeer] = {}
    for response in responses:
        for peer in response.peers:
            peers[peer.account] = peer
    return peers


def _node_metrics(node: TelemetrySnapshot, max_block_count: int, max_cemented_count: int, timestamp: int) -> dict:
    return {
        "block_count": node.block_count,
        "block_behind": max_block_count - node.block_count,
        "cemented_count": node.cemented_count,
        "cemented_behind": max_cemented_count - node.cemented_count,
        "unchecked_count": node.unchecked_count,
        "bandwidth_cap": node.bandwidth_cap,
        "peer_count": node.peer_count,
        "protocol_version": node.protocol_version,
        "uptime": node.uptime,
        "major_version": node.major_version,
        "minor_version": node.minor_version,
        "patch_version": node.patch_version,
        "pre_release_version": node.pre_release_version,
        "maker": node.maker,
        "node_id": node.node_id,
        "address": node.address,
        "port": node.port,
        "telemetry_timestamp": node.telemetry_timestamp,
        "timestamp": timestamp,
    }


def merge_telemetry(
    snapshots: Sequence[TelemetrySnapshot],
    peers: Iterable[QuorumPeer],
    timestamp: int,
) -> MergeResult:
    telemetry_by_ip: Dict[str, TelemetrySnapshot] = {}
    for node in snapshots:
        telemetry_by_ip[node.key] = node

    max_block_count = max((node.block_count for node in snapshots), default=0)
    max_cemented_count = max((node.cemented_count for node in snapshots), default=0)

    result = MergeResult(max_block_count=max_block_count, max_cemented_count=max_cemented_count)

    for peer in peers:
        node = telemetry_by_ip.get(peer.ip)
        if node is None:
            continue
        result.representatives.append(
            RepresentativeMetricRecord(
                account=peer.account,
                weight=peer.weight,
                **_node_metrics(node, max_block_count, max_cemented_count, timestamp),
            )
        )

    representative_ids = {rep.node_id for rep in result.representatives}
    for node in snapshots:
        if node.node_id in representative_ids:
            continue
        result.nodes.append(
            NodeMetricRecord(**_node_metrics(node, max_block_count, max_cemented_count, timestamp))
        )

    return result
