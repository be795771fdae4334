import pytest
from pydantic import ValidationError

from repwatch.ingestion.merge import merge_quorum_peers, merge_telemetry
from repwatch.schemas.telemetry import ConfirmationQuorumResponse, QuorumPeer, TelemetrySnapshot

from conftest import snapshot, peer

RUN_TS = 1700000100


def snapshots(*items):
    return [TelemetrySnapshot.model_validate(item) for item in items]


def peers(*items):
    return [QuorumPeer.model_validate(item) for item in items]


def test_scenario_representative_and_node():
    nodes = snapshots(
        snapshot("n1", 100, 90, "1.1.1.1"),
        snapshot("n2", 80, 70, "2.2.2.2"),
    )
    result = merge_telemetry(nodes, peers(peer("acc1", "[1.1.1.1]:7075", "50")), RUN_TS)

    assert len(result.representatives) == 1
    rep = result.representatives[0]
    assert rep.node_id == "n1"
    assert rep.account == "acc1"
    assert rep.weight == "50"
    assert rep.block_behind == 0
    assert rep.cemented_behind == 0

    assert len(result.nodes) == 1
    node = result.nodes[0]
    assert node.node_id == "n2"
    assert node.block_behind == 20
    assert node.cemented_behind == 20


def test_deltas_use_network_maxima():
    nodes = snapshots(
        snapshot("a", 10, 200, "10.0.0.1"),
        snapshot("b", 300, 5, "10.0.0.2"),
        snapshot("c", 150, 150, "10.0.0.3"),
    )
    result = merge_telemetry(nodes, [], RUN_TS)

    assert result.max_block_count == 300
    assert result.max_cemented_count == 200
    for record in result.nodes:
        assert record.block_behind == 300 - record.block_count
        assert record.cemented_behind == 200 - record.cemented_count
        assert record.block_behind >= 0
        assert record.cemented_behind >= 0


def test_unmatched_peer_is_dropped():
    nodes = snapshots(snapshot("n1", 100, 90, "1.1.1.1"))
    result = merge_telemetry(nodes, peers(peer("ghost", "[9.9.9.9]:7075")), RUN_TS)

    assert result.representatives == []
    assert [n.node_id for n in result.nodes] == ["n1"]


def test_partition_covers_every_snapshot_once():
    nodes = snapshots(
        snapshot("n1", 100, 100, "1.1.1.1"),
        snapshot("n2", 100, 100, "2.2.2.2"),
        snapshot("n3", 100, 100, "3.3.3.3"),
        snapshot("n4", 100, 100, "4.4.4.4", port=54000),
    )
    quorum = peers(
        peer("acc1", "[1.1.1.1]:7075"),
        peer("acc4", "[4.4.4.4]:54000"),
        peer("acc5", "[4.4.4.4]:7075"),
    )
    result = merge_telemetry(nodes, quorum, RUN_TS)

    rep_ids = {r.node_id for r in result.representatives}
    node_ids = {n.node_id for n in result.nodes}
    assert rep_ids == {"n1", "n4"}
    assert node_ids == {"n2", "n3"}
    assert rep_ids.isdisjoint(node_ids)
    assert rep_ids | node_ids == {n.node_id for n in nodes}


def test_records_share_run_timestamp_and_convert_node_clock():
    nodes = snapshots(snapshot("n1", 1, 1, "1.1.1.1", timestamp="1700000000999"))
    result = merge_telemetry(nodes, peers(peer("acc1", "[1.1.1.1]:7075")), RUN_TS)

    rep = result.representatives[0]
    assert rep.timestamp == RUN_TS
    assert rep.telemetry_timestamp == 1700000000


def test_two_peers_on_one_address_both_reference_the_snapshot():
    nodes = snapshots(snapshot("n1", 5, 5, "1.1.1.1"))
    quorum = peers(peer("acc1", "[1.1.1.1]:7075"), peer("acc2", "[1.1.1.1]:7075"))
    result = merge_telemetry(nodes, quorum, RUN_TS)

    assert sorted(r.account for r in result.representatives) == ["acc1", "acc2"]
    assert result.nodes == []


def test_empty_telemetry():
    result = merge_telemetry([], peers(peer("acc1", "[1.1.1.1]:7075")), RUN_TS)
    assert result.representatives == []
    assert result.nodes == []
    assert result.max_block_count == 0


def test_non_numeric_count_is_rejected():
    with pytest.raises(ValidationError):
        TelemetrySnapshot.model_validate(snapshot("n1", "lots", 90, "1.1.1.1"))


def test_missing_node_id_is_rejected():
    item = snapshot("n1", 1, 1, "1.1.1.1")
    del item["node_id"]
    with pytest.raises(ValidationError):
        TelemetrySnapshot.model_validate(item)


def test_quorum_peers_deduplicated_last_response_wins():
    first = ConfirmationQuorumResponse.model_validate({"peers": [
        peer("acc1", "[1.1.1.1]:7075", "10"),
        peer("acc2", "[2.2.2.2]:7075", "20"),
    ]})
    second = ConfirmationQuorumResponse.model_validate({"peers": [
        peer("acc1", "[1.1.1.1]:7075", "11"),
    ]})

    merged = merge_quorum_peers([first, second])

    assert set(merged) == {"acc1", "acc2"}
    assert merged["acc1"].weight == "11"
    assert merged["acc2"].weight == "20"


@pytest.mark.parametrize("weight", ["²", "٣", "-5", "1e30", ""])
def test_weight_must_be_ascii_digits(weight):
    with pytest.raises(ValidationError):
        QuorumPeer.model_validate(peer("acc1", "[1.1.1.1]:7075", weight))


def test_large_raw_weight_is_kept_exact():
    weight = "133248061996216572282917317807824970865"
    assert QuorumPeer.model_validate(peer("acc1", "[1.1.1.1]:7075", weight)).weight == weight
