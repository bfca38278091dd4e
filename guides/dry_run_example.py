"""Example comparing a dry run with a real run on an in-memory store."""

import asyncio

from bulkedit import (
    BulkEditRunner,
    ConditionSet,
    EntryStatusCondition,
    FieldOperation,
    InMemoryRecordStore,
    Record,
    RecordOperation,
    RecordSys,
    RunRequest,
)


def seed_store() -> InMemoryRecordStore:
    return InMemoryRecordStore(
        [
            Record(
                sys=RecordSys(id=f"article-{i}", content_type="article"),
                fields={"title": {"en-US": f"Draft title {i}"}},
            )
            for i in range(3)
        ]
    )


async def main():
    """Retitle every article, then publish the ones still in draft."""
    operations = [
        FieldOperation(
            operation="replace",
            field="title",
            replaced_value="Draft",
            new_value="Final",
        ),
        RecordOperation(
            operation="publish",
            conditions=ConditionSet(
                operator="and",
                conditions=[EntryStatusCondition(type="status.draft")],
            ),
        ),
    ]

    for dry_run in (True, False):
        store = seed_store()
        runner = BulkEditRunner(store)
        request = RunRequest(
            filter={"content_type": "article"},
            operations=operations,
            dry_run=dry_run,
        )
        tracker = await runner.run(request)
        state = tracker.state

        print("Dry run:" if dry_run else "Real run:")
        print(f"  succeeded={state.steps_succeeded} skipped={state.steps_skipped} errored={state.steps_errored}")
        print(f"  article-0 is now {store.peek('article-0').status}")


if __name__ == "__main__":
    asyncio.run(main())
