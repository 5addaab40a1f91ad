# flagmirror/tests/test_kinds_and_batching.py
"""
Unit tests for data kinds, table naming and the batching helpers.
"""


import pytest

from flagmirror.repositories.batching import chunked, submit_in_batches
from flagmirror.repositories.namespace import table_name, validate_prefix
from flagmirror.services.kinds import (
    ALL_KINDS,
    FLAGS,
    SEGMENTS,
    FeatureFlag,
    Segment,
    kind_for_namespace,
)


# ---------- Kinds ----------


def test_kinds_have_distinct_namespaces():
    namespaces = [kind.namespace for kind in ALL_KINDS]
    assert namespaces == ["flags", "segments"]


def test_make_deleted_item_builds_tombstone_of_kind_type():
    flag = FLAGS.make_deleted_item("old-flag", 7)
    segment = SEGMENTS.make_deleted_item("old-segment", 2)

    assert flag == FeatureFlag(key="old-flag", version=7, deleted=True)
    assert segment == Segment(key="old-segment", version=2, deleted=True)


def test_kind_for_namespace():
    assert kind_for_namespace("flags") is FLAGS
    assert kind_for_namespace("segments") is SEGMENTS
    assert kind_for_namespace("users") is None


# ---------- Table naming ----------


def test_table_name_concatenates_prefix_and_namespace():
    assert table_name("flagmirror-prod-", FLAGS) == "flagmirror-prod-flags"
    assert table_name("app.", SEGMENTS) == "app.segments"


@pytest.mark.parametrize("prefix", ["", "bad prefix", "tables/", "ünicode-"])
def test_validate_prefix_rejects_invalid_prefixes(prefix):
    with pytest.raises(ValueError):
        validate_prefix(prefix)


def test_validate_prefix_returns_valid_prefix():
    assert validate_prefix("flagmirror_staging-") == "flagmirror_staging-"


# ---------- Batching ----------


def test_chunked_splits_into_bounded_lists():
    assert list(chunked(range(7), 3)) == [[0, 1, 2], [3, 4, 5], [6]]
    assert list(chunked(range(6), 3)) == [[0, 1, 2], [3, 4, 5]]
    assert list(chunked([], 25)) == []


def test_chunked_rejects_non_positive_size():
    with pytest.raises(ValueError):
        list(chunked([1, 2], 0))


def test_submit_in_batches_returns_total_count():
    seen = []
    count = submit_in_batches(range(30), 25, seen.append)

    assert count == 30
    assert [len(batch) for batch in seen] == [25, 5]


def test_submit_in_batches_stops_at_first_failure():
    seen = []

    def _submit(batch):
        if len(seen) == 1:
            raise RuntimeError("backend failure")
        seen.append(batch)

    with pytest.raises(RuntimeError):
        submit_in_batches(range(10), 4, _submit)

    # The first batch stays committed.
    assert seen == [[0, 1, 2, 3]]
