# ============================================================================
# File: tests/integration/test_reset.py
# ============================================================================

import pytest
from unittest.mock import PropertyMock, patch
from sqlalchemy import Column, Integer, MetaData, Table, func, select

from core.exceptions import TransactionError
from migration.reset import ResetTool
from migration.runner import BatchController
from models.base import Base
from models.identity import User


async def _row_counts(session_maker):
    counts = {}
    async with session_maker() as session:
        for table in Base.metadata.sorted_tables:
            result = await session.execute(select(func.count()).select_from(table))
            counts[table.name] = result.scalar_one()
    return counts


@pytest.mark.asyncio
async def test_reset_empties_every_table(session_maker, sample_snapshot):
    await BatchController(session_maker).run(sample_snapshot)
    assert sum((await _row_counts(session_maker)).values()) > 0

    async with session_maker() as session:
        emptied = await ResetTool(session).reset()

    assert set(emptied) == set(Base.metadata.tables)
    assert all(count == 0 for count in (await _row_counts(session_maker)).values())


@pytest.mark.asyncio
async def test_migration_after_reset_applies_everything_again(session_maker, sample_snapshot, sample_counts):
    controller = BatchController(session_maker)
    await controller.run(sample_snapshot)

    async with session_maker() as session:
        await ResetTool(session).reset()

    outcome = await controller.run(sample_snapshot)

    assert outcome.skipped is False
    assert outcome.summary == sample_counts


@pytest.mark.asyncio
async def test_failed_reset_leaves_target_untouched(session_maker, sample_snapshot):
    await BatchController(session_maker).run(sample_snapshot)
    before = await _row_counts(session_maker)

    # Sorted first, so it is emptied last, after every real table
    missing = Table("no_such_table", MetaData(), Column("id", Integer, primary_key=True))
    tables = [missing, *Base.metadata.sorted_tables]

    with patch.object(type(Base.metadata), "sorted_tables", new_callable=PropertyMock, return_value=tables):
        async with session_maker() as session:
            with pytest.raises(TransactionError) as exc_info:
                await ResetTool(session).reset()

    assert exc_info.value.context["table_name"] == "no_such_table"
    assert await _row_counts(session_maker) == before
    assert before[User.__tablename__] == 2
