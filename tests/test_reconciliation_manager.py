import pytest

from account_db_compare.core.exceptions import (
    ArchiverUnavailableError,
    NodesFolderNotFoundError,
)
from account_db_compare.core.models import ComparisonStatus, MismatchKind
from account_db_compare.reconciliation.reconciliation_manager import ReconciliationManager


@pytest.fixture
def manager(config, logger):
    return ReconciliationManager(config, logger, run_id="test-run")


class TestEndToEndScenarios:

    def test_identical_record_matches(self, manager, make_archiver, make_node, nodes_folder, regular_payload):
        rows = [("acc", regular_payload(balance="A", nonce="1"))]
        archiver = make_archiver(rows)
        make_node("node-1", rows)

        summary = manager.run_reconciliation_operations(archiver, nodes_folder)

        assert summary.stats.compared == 1
        assert summary.stats.mismatched == 0
        assert summary.stats.match_rate == 1.0
        assert summary.status == "completed"
        assert summary.run_id == "test-run"

    def test_nonce_mismatch(self, manager, make_archiver, make_node, nodes_folder, regular_payload):
        archiver = make_archiver([("acc", regular_payload(balance="A", nonce="5"))])
        make_node("node-1", [("acc", regular_payload(balance="A", nonce="6"))])

        summary = manager.run_reconciliation_operations(archiver, nodes_folder)

        assert summary.stats.compared == 1
        assert summary.stats.mismatched == 1
        assert summary.stats.nonce_mismatched == 1
        assert summary.stats.balance_mismatched == 0
        assert manager.results[0].mismatches == frozenset({MismatchKind.NONCE})

    def test_special_account_matches(self, manager, make_archiver, make_node, nodes_folder, special_payload):
        rows = [("foundation", special_payload(nonce=7, account_type=13, name="Foundation"))]
        archiver = make_archiver(rows)
        make_node("node-1", rows)

        summary = manager.run_reconciliation_operations(archiver, nodes_folder)

        assert summary.stats.compared == 1
        assert summary.stats.mismatched == 0
        assert manager.results[0].is_match

    def test_account_missing_from_every_node(
        self, manager, make_archiver, make_node, nodes_folder, regular_payload
    ):
        archiver = make_archiver([("shared", regular_payload()), ("lost", regular_payload())])
        for node_name in ("node-1", "node-2", "node-3"):
            make_node(node_name, [("shared", regular_payload())])

        summary = manager.run_reconciliation_operations(archiver, nodes_folder)

        missing = [r for r in manager.results if r.status == ComparisonStatus.MISSING_IN_NODE]
        assert sorted(r.node_name for r in missing) == ["node-1", "node-2", "node-3"]
        assert all(r.account_id == "lost" for r in missing)
        assert summary.stats.missing_in_node == 3
        assert summary.stats.missing_in_archiver == 0
        assert summary.stats.mismatched == 0
        assert all(stats.missing_in_node == 1 for stats in summary.node_stats.values())


class TestFailureHandling:

    def test_corrupt_node_is_skipped(self, manager, make_archiver, make_node, nodes_folder, regular_payload):
        rows = [("acc", regular_payload())]
        archiver = make_archiver(rows)
        make_node("good", rows)
        corrupt = nodes_folder / "bad" / "db" / "shardeum.sqlite"
        corrupt.parent.mkdir(parents=True)
        corrupt.write_bytes(b"not sqlite" * 200)

        summary = manager.run_reconciliation_operations(archiver, nodes_folder)

        assert summary.status == "completed_with_failures"
        assert summary.failed_nodes == ["bad"]
        assert summary.total_nodes == 2
        assert list(summary.node_stats) == ["good"]
        assert summary.stats.compared == 1
        failed = [r for r in manager.node_results if r.status == "failed"]
        assert failed[0].error_message

    def test_unparsable_records_are_counted(
        self, manager, make_archiver, make_node, nodes_folder, regular_payload
    ):
        archiver = make_archiver(
            [("acc", regular_payload()), ("bad-archiver", "{oops"), ("bad-node", regular_payload())]
        )
        make_node("node-1", [("acc", regular_payload()), ("bad-node", '{"account": 1}')])

        summary = manager.run_reconciliation_operations(archiver, nodes_folder)

        assert summary.archiver_unparsable == 1
        assert summary.stats.unparsable == 2
        assert summary.node_stats["node-1"].unparsable == 1
        assert summary.stats.compared == 1
        assert summary.stats.missing_in_node == 0
        assert {e.account_id for e in manager.record_errors} == {"bad-archiver", "bad-node"}

    def test_undecodable_payloads_are_unparsable_records(
        self, manager, make_archiver, make_node, nodes_folder, regular_payload
    ):
        archiver = make_archiver([("acc", regular_payload()), ("bad", b'{"x": "\xff\xfe"}')])
        make_node("node-1", [("acc", regular_payload()), ("garbled", b"\xff\xfe")])

        summary = manager.run_reconciliation_operations(archiver, nodes_folder)

        assert summary.failed_nodes == []
        assert summary.archiver_unparsable == 1
        assert summary.node_stats["node-1"].unparsable == 1
        assert summary.stats.compared == 1
        assert summary.stats.mismatched == 0
        assert {e.error_type for e in manager.record_errors} == {"unrecognized_shape"}

    def test_missing_archiver_is_fatal(self, manager, nodes_folder, tmp_path):
        with pytest.raises(ArchiverUnavailableError):
            manager.run_reconciliation_operations(tmp_path / "missing.sqlite3", nodes_folder)

    def test_missing_nodes_folder_is_fatal(self, manager, make_archiver, tmp_path, regular_payload):
        archiver = make_archiver([("acc", regular_payload())])
        with pytest.raises(NodesFolderNotFoundError):
            manager.run_reconciliation_operations(archiver, tmp_path / "no-nodes")

    def test_no_nodes_found(self, manager, make_archiver, nodes_folder, regular_payload):
        archiver = make_archiver([("acc", regular_payload())])

        summary = manager.run_reconciliation_operations(archiver, nodes_folder)

        assert summary.total_nodes == 0
        assert summary.stats.compared == 0
        assert summary.stats.match_rate == 0.0


class TestConcurrency:

    def test_results_are_deterministic_across_workers(
        self, config, logger, make_archiver, make_node, nodes_folder, regular_payload
    ):
        archiver_rows = [(f"acc-{i}", regular_payload(nonce=f"{i:x}")) for i in range(20)]
        archiver = make_archiver(archiver_rows)
        for n in range(6):
            node_rows = [
                (f"acc-{i}", regular_payload(nonce=f"{i + (1 if i % (n + 2) == 0 else 0):x}"))
                for i in range(n, 20)
            ]
            make_node(f"node-{n}", node_rows)

        config.concurrency.max_workers = 1
        serial = ReconciliationManager(config, logger).run_reconciliation_operations(
            archiver, nodes_folder
        )
        config.concurrency.max_workers = 4
        parallel_manager = ReconciliationManager(config, logger)
        parallel = parallel_manager.run_reconciliation_operations(archiver, nodes_folder)

        assert parallel.stats == serial.stats
        assert parallel.node_stats == serial.node_stats
        assert list(parallel.node_stats) == [f"node-{n}" for n in range(6)]
        assert [r.node_name for r in parallel_manager.results] == sorted(
            r.node_name for r in parallel_manager.results
        )
        assert parallel.stats.missing_in_node == sum(range(6))
