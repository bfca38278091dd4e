"""End-to-end bulk edit runs against the in-memory store."""

import asyncio

import pytest

from bulkedit import run_bulk_edit
from bulkedit.conditions import ConditionRegistry, EntryStatusEvaluator
from bulkedit.contracts import (
    ConditionSet,
    ConditionResult,
    EntryStatusCondition,
    FieldOperation,
    RecordOperation,
    RunRequest,
)
from bulkedit.errors import EnumerationError
from bulkedit.operations import OperationDispatcher
from bulkedit.runner import BulkEditRunner
from bulkedit.stores.inmemory import InMemoryRecordStore


def _assert_accounting(state, records, operations):
    assert state.phase == "done"
    assert state.steps_total == records * operations
    assert state.steps_processed == records * operations
    assert (
        state.steps_succeeded + state.steps_skipped + state.steps_errored
        == state.steps_processed
    )
    assert state.records_processed == records


@pytest.mark.asyncio
async def test_publish_and_set_field_on_all_entries(record_factory, config):
    store = InMemoryRecordStore([record_factory(f"e{i}") for i in range(5)])
    request = RunRequest(
        filter={"content_type": "article"},
        operations=[
            FieldOperation(operation="set", field="title", new_value="Hello"),
            RecordOperation(operation="publish"),
        ],
    )

    tracker = await run_bulk_edit(request, store=store, config=config)

    _assert_accounting(tracker.state, 5, 2)
    assert tracker.state.steps_succeeded == 10
    for i in range(5):
        record = store.peek(f"e{i}")
        assert record.status == "published"
        assert record.fields["title"]["en-US"] == "Hello"
        messages = [line.message for line in tracker.logs_for(f"e{i}")]
        assert messages == [
            'Operation "field_set" succeeded',
            'Operation "publish" succeeded',
            "Entry processed",
        ]


@pytest.mark.asyncio
async def test_failure_skips_rest_of_chain_for_that_entry_only(record_factory, config):
    store = InMemoryRecordStore([record_factory(f"e{i}") for i in range(3)])
    store.fail_on("update_record", "e1")
    request = RunRequest(
        operations=[
            FieldOperation(operation="set", field="title", new_value="x"),
            RecordOperation(operation="publish"),
            RecordOperation(operation="archive"),
        ],
    )
    runner = BulkEditRunner(store, config=config)

    tracker = await runner.run(request)

    _assert_accounting(tracker.state, 3, 3)
    assert tracker.state.steps_errored == 1
    assert tracker.state.steps_skipped == 2
    assert tracker.state.steps_succeeded == 6
    assert tracker.failed_records == frozenset({"e1"})
    assert sorted(store.calls_to("publish")) == ["e0", "e2"]
    assert "e1" not in store.calls_to("archive")

    messages = [line.message for line in tracker.logs_for("e1")]
    assert messages[0].startswith('Operation "field_set" failed')
    assert messages[1:] == [
        'Skipping operation "publish" for this entry, previous operation for this entry failed',
        'Skipping operation "archive" for this entry, previous operation for this entry failed',
        "Entry processed",
    ]


@pytest.mark.asyncio
async def test_dispatcher_not_called_after_failure(record_factory, config, monkeypatch):
    store = InMemoryRecordStore([record_factory("e1"), record_factory("e2")])
    store.fail_on("publish", "e1")
    calls = []
    original_apply = OperationDispatcher.apply

    async def counting_apply(self, operation, record, dry_run):
        calls.append((record.id, operation.label))
        return await original_apply(self, operation, record, dry_run)

    monkeypatch.setattr(OperationDispatcher, "apply", counting_apply)
    request = RunRequest(
        operations=[
            RecordOperation(operation="publish"),
            RecordOperation(operation="unpublish"),
            FieldOperation(operation="clear", field="title"),
        ],
    )

    tracker = await run_bulk_edit(request, store=store, config=config)

    assert [c for c in calls if c[0] == "e1"] == [("e1", "publish")]
    assert [c for c in calls if c[0] == "e2"] == [
        ("e2", "publish"),
        ("e2", "unpublish"),
        ("e2", "field_clear"),
    ]
    assert tracker.state.steps_skipped == 2
    assert tracker.state.steps_errored == 1


@pytest.mark.asyncio
async def test_conditions_skip_without_marking_failure(record_factory, config):
    store = InMemoryRecordStore(
        [record_factory("draft-1"), record_factory("pub-1", status="published")]
    )
    only_published = ConditionSet(
        operator="and", conditions=[EntryStatusCondition(type="status.published")]
    )
    request = RunRequest(
        operations=[
            RecordOperation(operation="archive", conditions=only_published),
            FieldOperation(operation="set", field="note", new_value="seen"),
        ],
    )

    tracker = await run_bulk_edit(request, store=store, config=config)

    _assert_accounting(tracker.state, 2, 2)
    assert tracker.state.steps_skipped == 1
    assert tracker.state.steps_succeeded == 3
    assert store.peek("pub-1").status == "archived"
    assert store.peek("draft-1").status == "draft"
    assert store.peek("draft-1").fields["note"]["en-US"] == "seen"

    first = tracker.logs_for("draft-1")[0]
    assert first.tone == "neutral"
    assert first.message.startswith(
        'Skipping operation "archive" for this entry, conditions do not match'
    )


@pytest.mark.asyncio
async def test_later_operations_observe_earlier_effects(record_factory, config):
    store = InMemoryRecordStore([record_factory("e1")])
    request = RunRequest(
        operations=[
            RecordOperation(operation="publish"),
            RecordOperation(
                operation="archive",
                conditions=ConditionSet(
                    operator="and",
                    conditions=[EntryStatusCondition(type="status.published")],
                ),
            ),
        ],
    )

    tracker = await run_bulk_edit(request, store=store, config=config)

    assert tracker.state.steps_succeeded == 2
    assert store.peek("e1").status == "archived"


@pytest.mark.asyncio
async def test_dry_run_is_side_effect_free_and_matches_real_run(record_factory, config):
    records = [
        record_factory("e1", fields={"title": {"en-US": "old"}}),
        record_factory("e2", status="published"),
    ]
    operations = [
        FieldOperation(operation="replace", field="title", replaced_value="old", new_value="new"),
        FieldOperation(operation="set", field="title"),
        RecordOperation(operation="publish"),
    ]

    dry_store = InMemoryRecordStore(records)
    dry = await run_bulk_edit(
        RunRequest(operations=operations, dry_run=True), store=dry_store, config=config
    )
    real_store = InMemoryRecordStore(records)
    real = await run_bulk_edit(
        RunRequest(operations=operations), store=real_store, config=config
    )

    assert dry_store.mutating_calls == []
    assert real_store.mutating_calls != []
    for attr in ("steps_succeeded", "steps_errored", "steps_skipped", "steps_processed"):
        assert getattr(dry.state, attr) == getattr(real.state, attr)
    assert dry.state.steps_errored == 2


@pytest.mark.asyncio
async def test_run_with_no_matching_entries_is_done(config):
    store = InMemoryRecordStore()
    request = RunRequest(operations=[RecordOperation(operation="publish")])

    tracker = await run_bulk_edit(request, store=store, config=config)

    assert tracker.state.phase == "done"
    assert tracker.state.steps_processed == 0
    assert store.calls_to("get_record") == []


@pytest.mark.asyncio
async def test_enumeration_failure_aborts_before_processing(record_factory, config):
    store = InMemoryRecordStore([record_factory("e1")])
    store.fail_on("list_records")
    runner = BulkEditRunner(store, config=config)

    with pytest.raises(EnumerationError):
        await runner.run(RunRequest(operations=[RecordOperation(operation="publish")]))

    assert runner.tracker.state.phase == "enumerating"
    assert store.calls_to("get_record") == []


@pytest.mark.asyncio
async def test_processing_starts_only_after_enumeration(record_factory, config_factory):
    phases_at_fetch = []

    class ObservingStore(InMemoryRecordStore):
        runner = None

        async def get_record(self, record_id):
            phases_at_fetch.append(self.runner.tracker.state.phase)
            return await super().get_record(record_id)

    store = ObservingStore([record_factory(f"e{i}") for i in range(6)])
    runner = BulkEditRunner(store, config=config_factory(page_size=2))
    store.runner = runner

    await runner.run(RunRequest(operations=[RecordOperation(operation="publish")]))

    assert len(store.calls_to("list_records")) == 3
    assert phases_at_fetch == ["processing"] * 6


@pytest.mark.asyncio
async def test_entries_in_enumeration_order_get_priority(record_factory, config_factory):
    config = config_factory()
    config.execution.processing.interval_cap = 1
    config.execution.processing.burst = 1
    config.execution.processing.interval = 0.005
    store = InMemoryRecordStore([record_factory(f"e{i}") for i in range(4)])
    request = RunRequest(
        operations=[
            RecordOperation(operation="publish"),
            RecordOperation(operation="unpublish"),
        ]
    )

    await run_bulk_edit(request, store=store, config=config)

    # An entry's next step outranks the first step of later entries.
    assert store.calls_to("get_record") == ["e0", "e0", "e1", "e1", "e2", "e2", "e3", "e3"]


@pytest.mark.asyncio
async def test_step_timeout_counts_as_error(record_factory, config_factory):
    class SlowStore(InMemoryRecordStore):
        async def publish(self, record):
            await asyncio.sleep(1)
            return await super().publish(record)

    store = SlowStore([record_factory("e1")])
    request = RunRequest(
        operations=[
            RecordOperation(operation="publish"),
            RecordOperation(operation="archive"),
        ]
    )

    tracker = await run_bulk_edit(
        request, store=store, config=config_factory(step_timeout=0.05)
    )

    _assert_accounting(tracker.state, 1, 2)
    assert tracker.state.steps_errored == 1
    assert tracker.state.steps_skipped == 1
    assert tracker.logs_for("e1")[0].message == 'Operation "publish" timed out'


@pytest.mark.asyncio
async def test_new_run_starts_with_fresh_log(record_factory, config):
    store = InMemoryRecordStore([record_factory("e1")])
    runner = BulkEditRunner(store, config=config)
    request = RunRequest(operations=[RecordOperation(operation="publish")])

    first = await runner.run(request)
    second = await runner.run(request)

    assert first is not second
    assert len(second.logs_for("e1")) == 2
    assert second.state.steps_processed == 1


class _PickyEvaluator:
    def can_evaluate(self, condition):
        return condition.value == "x"

    def evaluate(self, condition, record):
        return ConditionResult(passed=True, reason="Picky")


@pytest.mark.asyncio
async def test_failing_evaluator_lookup_still_reaches_done(record_factory, config):
    store = InMemoryRecordStore([record_factory("e1"), record_factory("e2")])
    only_drafts = ConditionSet(
        operator="and", conditions=[EntryStatusCondition(type="status.draft")]
    )
    request = RunRequest(
        operations=[
            RecordOperation(operation="publish", conditions=only_drafts),
            RecordOperation(operation="archive", conditions=only_drafts),
        ]
    )
    registry = ConditionRegistry([_PickyEvaluator(), EntryStatusEvaluator()])

    tracker = await run_bulk_edit(request, store=store, config=config, registry=registry)

    _assert_accounting(tracker.state, 2, 2)
    assert tracker.state.steps_skipped == 4
    assert store.mutating_calls == []


class _BrokenRegistry(ConditionRegistry):
    def evaluate(self, condition, record):
        raise RuntimeError("registry unavailable")


@pytest.mark.asyncio
async def test_unexpected_step_error_marks_entry_failed(record_factory, config):
    store = InMemoryRecordStore([record_factory("e1"), record_factory("e2")])
    request = RunRequest(
        operations=[
            RecordOperation(
                operation="publish",
                conditions=ConditionSet(
                    operator="and",
                    conditions=[EntryStatusCondition(type="status.draft")],
                ),
            ),
            RecordOperation(operation="archive"),
        ]
    )

    tracker = await run_bulk_edit(
        request, store=store, config=config, registry=_BrokenRegistry()
    )

    _assert_accounting(tracker.state, 2, 2)
    assert tracker.state.steps_errored == 2
    assert tracker.state.steps_skipped == 2
    assert tracker.failed_records == frozenset({"e1", "e2"})
    messages = [line.message for line in tracker.logs_for("e1")]
    assert messages == [
        'Operation "publish" failed: registry unavailable',
        'Skipping operation "archive" for this entry, previous operation for this entry failed',
        "Entry processed",
    ]
