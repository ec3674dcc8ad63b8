import json

import pytest

from account_db_compare.core.models import ComparisonStatus, MismatchKind
from account_db_compare.reconciliation.reconciler import (
    ArchiverIndex,
    Reconciler,
    reconcile,
)


def _run(archiver_rows, node_rows, node_name="node-1"):
    errors = []
    results = list(reconcile(archiver_rows, node_rows, node_name, errors))
    return {result.account_id: result for result in results}, errors


def _with_id(payload, account_id):
    data = json.loads(payload)
    data["id"] = account_id
    return json.dumps(data)


class TestEqualityPolicy:

    def test_identical_records_match(self, regular_payload):
        rows = [("acc", regular_payload(balance="a", nonce="1"))]
        results, errors = _run(rows, rows)

        result = results["acc"]
        assert result.status == ComparisonStatus.MATCH
        assert result.is_match
        assert result.mismatches == frozenset()
        assert errors == []

    def test_nonce_difference_only(self, regular_payload):
        results, _ = _run(
            [("acc", regular_payload(balance="a", nonce="5"))],
            [("acc", regular_payload(balance="a", nonce="6"))],
        )
        assert results["acc"].mismatches == frozenset({MismatchKind.NONCE})
        assert results["acc"].status == ComparisonStatus.MISMATCH

    def test_balance_difference_only(self, regular_payload):
        results, _ = _run(
            [("acc", regular_payload(balance="a", nonce="1"))],
            [("acc", regular_payload(balance="b", nonce="1"))],
        )
        assert results["acc"].mismatches == frozenset({MismatchKind.BALANCE})

    def test_both_fields_differ(self, regular_payload):
        results, _ = _run(
            [("acc", regular_payload(balance="a", nonce="1"))],
            [("acc", regular_payload(balance="b", nonce="2"))],
        )
        assert results["acc"].mismatches == frozenset({MismatchKind.BALANCE, MismatchKind.NONCE})

    def test_hex_formatting_differences_still_match(self, regular_payload):
        results, _ = _run(
            [("acc", regular_payload(balance="00AB", nonce="0F"))],
            [("acc", regular_payload(balance="ab", nonce="f"))],
        )
        assert results["acc"].is_match

    def test_unequal_nonce_with_different_casing_is_mismatch(self, regular_payload):
        results, _ = _run(
            [("acc", regular_payload(nonce="0A"))],
            [("acc", regular_payload(nonce="b"))],
        )
        assert MismatchKind.NONCE in results["acc"].mismatches

    def test_unknown_balance_never_equals_zero(self, regular_payload):
        results, _ = _run(
            [("acc", regular_payload(balance=None))],
            [("acc", regular_payload(balance="0"))],
        )
        assert results["acc"].mismatches == frozenset({MismatchKind.BALANCE})

    def test_unknown_nonce_is_a_mismatch(self, special_payload):
        results, _ = _run(
            [("acc", special_payload(nonce=None))],
            [("acc", special_payload(nonce=None))],
        )
        assert results["acc"].mismatches == frozenset({MismatchKind.NONCE})

    def test_special_account_skips_balance(self, special_payload):
        rows = [("network", special_payload(nonce=7))]
        results, _ = _run(rows, rows)
        assert results["network"].is_match

    def test_kind_disagreement(self, regular_payload, special_payload):
        results, _ = _run(
            [("acc", regular_payload(balance="5", nonce="7"))],
            [("acc", special_payload(nonce=7))],
        )
        assert results["acc"].mismatches == frozenset({MismatchKind.KIND})


class TestMissingRecords:

    def test_missing_in_node(self, regular_payload):
        results, _ = _run([("acc", regular_payload())], [])

        result = results["acc"]
        assert result.status == ComparisonStatus.MISSING_IN_NODE
        assert result.node_snapshot is None
        assert result.archiver_snapshot is not None
        assert result.mismatches == frozenset()

    def test_missing_in_archiver(self, regular_payload):
        results, _ = _run([], [("acc", regular_payload())])

        assert results["acc"].status == ComparisonStatus.MISSING_IN_ARCHIVER
        assert results["acc"].archiver_snapshot is None

    def test_missing_results_follow_node_results(self, regular_payload):
        archiver = [("b", regular_payload()), ("a", regular_payload()), ("c", regular_payload())]
        node = [("c", regular_payload())]

        ordered = [r.account_id for r in reconcile(archiver, node, "n")]
        assert ordered == ["c", "a", "b"]


class TestUnparsableRecords:

    def test_node_payload_failure_yields_no_result(self, regular_payload):
        results, errors = _run(
            [("acc", regular_payload())],
            [("acc", "{broken")],
        )

        assert results == {}
        assert len(errors) == 1
        assert errors[0].store == "node-1"
        assert errors[0].error_type == "unrecognized_shape"

    def test_archiver_payload_failure_is_recorded_once(self, regular_payload):
        index = ArchiverIndex.build(
            [("acc", regular_payload(balance="xyz")), ("acc", "{broken"), ("ok", regular_payload())]
        )

        assert list(index.errors) == ["acc"]
        assert index.errors["acc"].error_type == "malformed_number"
        assert "acc" not in index
        assert len(index) == 1

    def test_archiver_failure_excludes_identity_from_comparison(self, regular_payload):
        results, errors = _run(
            [("acc", "{broken")],
            [("acc", regular_payload())],
        )
        assert results == {}
        assert [e.store for e in errors] == ["archiver"]


class TestReconciler:

    def test_index_is_read_only(self, regular_payload):
        index = ArchiverIndex.build([("acc", regular_payload(), 1)])
        with pytest.raises(TypeError):
            index.snapshots["other"] = index.snapshots["acc"]

    def test_index_shared_between_nodes(self, regular_payload):
        index = ArchiverIndex.build([("acc", regular_payload(nonce="1"))])
        reconciler = Reconciler(index)

        first = list(reconciler.reconcile([("acc", regular_payload(nonce="1"))], "node-a"))
        second = list(reconciler.reconcile([("acc", regular_payload(nonce="2"))], "node-b"))

        assert first[0].node_name == "node-a" and first[0].is_match
        assert second[0].node_name == "node-b"
        assert second[0].mismatches == frozenset({MismatchKind.NONCE})

    def test_duplicate_node_rows_keep_first(self, regular_payload, logger):
        index = ArchiverIndex.build([("acc", regular_payload(nonce="1"))])
        node_rows = [("acc", regular_payload(nonce="1")), ("acc", regular_payload(nonce="9"))]

        results = list(Reconciler(index, logger).reconcile(node_rows, "n"))

        assert len(results) == 1
        assert results[0].is_match

    def test_one_result_per_identity(self, regular_payload):
        archiver = [(f"acc-{i}", regular_payload()) for i in range(5)]
        node = [(f"acc-{i}", regular_payload()) for i in range(2, 8)]

        results = list(reconcile(archiver, node, "n"))

        assert sorted(r.account_id for r in results) == [f"acc-{i}" for i in range(8)]


class TestPayloadIdentity:

    def test_empty_row_ids_use_payload_id(self, regular_payload):
        archiver = [("x", _with_id(regular_payload(), "x")), ("y", _with_id(regular_payload(), "y"))]
        node = [("", _with_id(regular_payload(), "x")), ("", _with_id(regular_payload(), "y"))]

        results, errors = _run(archiver, node)

        assert errors == []
        assert sorted(results) == ["x", "y"]
        assert all(result.status == ComparisonStatus.MATCH for result in results.values())

    def test_archiver_rows_without_row_id_are_indexed_by_payload_id(self, regular_payload):
        index = ArchiverIndex.build([("", _with_id(regular_payload(), "x"))])

        assert "x" in index
        assert "" not in index

    def test_unidentified_node_failures_are_each_recorded(self, regular_payload):
        results, errors = _run(
            [("acc", regular_payload())],
            [("", "{broken"), ("", "[1]"), ("acc", regular_payload())],
        )

        assert len(errors) == 2
        assert results["acc"].is_match

    def test_payload_id_failure_is_keyed_by_payload_id(self, regular_payload):
        results, errors = _run(
            [("x", regular_payload())],
            [("", _with_id(regular_payload(nonce="zz"), "x"))],
        )

        assert [(e.account_id, e.error_type) for e in errors] == [("x", "malformed_number")]
        assert results == {}
