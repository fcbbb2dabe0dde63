# ============================================================================
# File: tests/integration/test_migration_engine.py
# ============================================================================

import copy
import pytest
from datetime import date
from decimal import Decimal
from unittest.mock import patch
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from core.exceptions import ReferentialGapError, TransactionError
from migration.appliers.inventory import KardexApplier
from migration.runner import BatchController
from migration.transformers.normalizer import PayloadNormalizer
from migration.verifier import ReconciliationVerifier
from models.base import BatchStatus
from models.migration import MigrationBatch, MigrationRow
from models.identity import User
from models.operations import Movement
from models.accounting import JournalEntry, JournalLine
from models.compliance import FiscalDocument, TaxConfig


async def _ledger(session_maker):
    async with session_maker() as session:
        result = await session.execute(
            select(MigrationRow.entity, MigrationRow.row_key, MigrationRow.checksum, MigrationRow.batch_id)
        )
        return {(row.entity, row.row_key): (row.checksum, row.batch_id) for row in result}


async def _count(session_maker, model):
    async with session_maker() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar_one()


async def _batch(session_maker, batch_id):
    async with session_maker() as session:
        return await session.get(MigrationBatch, batch_id)


@pytest.mark.asyncio
async def test_first_run_applies_every_record(session_maker, sample_snapshot, sample_counts):
    controller = BatchController(session_maker)

    outcome = await controller.run(sample_snapshot)

    assert outcome.skipped is False
    assert outcome.status == BatchStatus.COMPLETED.value
    assert outcome.summary == sample_counts
    assert all(o.skipped == 0 and o.dropped == 0 for o in outcome.outcomes.values())

    batch = await _batch(session_maker, outcome.batch_id)
    assert batch.status == BatchStatus.COMPLETED
    assert batch.checksum == outcome.checksum
    assert batch.summary == sample_counts
    assert batch.attempts == 1
    assert batch.finished_at is not None

    ledger = await _ledger(session_maker)
    assert len(ledger) == sum(sample_counts.values())


@pytest.mark.asyncio
async def test_parents_resolve_through_aliases(session_maker, sample_snapshot):
    await BatchController(session_maker).run(sample_snapshot)

    async with session_maker() as session:
        user = (await session.execute(select(User).where(User.email == "ana@example.com"))).scalar_one()
        entry = (await session.execute(select(JournalEntry))).scalar_one()
        lines = (await session.execute(select(JournalLine))).scalars().all()
        m1 = (await session.execute(select(Movement).where(Movement.source_key == "m1"))).scalar_one()
        m3 = (await session.execute(select(Movement).where(Movement.source_key == "m3"))).scalar_one()

    # Author referenced by email in a different case
    assert entry.autor_id == user.id
    # Second line references its account by code
    assert len(lines) == 2
    assert all(line.asiento_id == entry.id for line in lines)
    assert m1.producto_id is not None
    assert m1.tercero_id is not None
    assert m1.periodo == "2024-03"
    assert m3.periodo == "no-period"
    assert m3.fecha is None


@pytest.mark.asyncio
async def test_rerun_of_identical_snapshot_is_skipped(session_maker, sample_snapshot):
    controller = BatchController(session_maker)

    first = await controller.run(sample_snapshot)
    ledger_before = await _ledger(session_maker)

    second = await controller.run(copy.deepcopy(sample_snapshot))

    assert second.skipped is True
    assert second.checksum == first.checksum
    assert second.previous_batch_id == first.batch_id
    assert await _ledger(session_maker) == ledger_before
    assert await _count(session_maker, MigrationBatch) == 1


@pytest.mark.asyncio
async def test_changing_one_record_applies_exactly_one_row(session_maker, sample_snapshot):
    controller = BatchController(session_maker)

    first = await controller.run(sample_snapshot)
    ledger_before = await _ledger(session_maker)

    changed = copy.deepcopy(sample_snapshot)
    changed["movimientos"][1]["total"] = 60001

    second = await controller.run(changed)

    assert second.skipped is False
    assert second.batch_id != first.batch_id
    assert second.outcomes["movimientos"].applied == 1
    assert second.outcomes["movimientos"].skipped == 2
    assert second.outcomes["movimientos"].reasons == {"unchanged": 2}
    assert sum(second.summary.values()) == 1

    ledger_after = await _ledger(session_maker)
    assert set(ledger_after) == set(ledger_before)
    for key, (checksum, batch_id) in ledger_after.items():
        if key == ("movimientos", "m2"):
            assert checksum != ledger_before[key][0]
            assert batch_id == second.batch_id
        else:
            assert (checksum, batch_id) == ledger_before[key]


@pytest.mark.asyncio
async def test_unchanged_parents_still_resolve_for_changed_dependents(session_maker, sample_snapshot):
    controller = BatchController(session_maker)
    await controller.run(sample_snapshot)

    changed = copy.deepcopy(sample_snapshot)
    changed["asientoLineas"][0]["debe"] = "50000.01"

    outcome = await controller.run(changed)

    assert outcome.outcomes["asientoLineas"].applied == 1
    assert outcome.outcomes["asientoLineas"].dropped == 0


@pytest.mark.asyncio
async def test_failure_rolls_back_every_write(session_maker, sample_snapshot):
    controller = BatchController(session_maker)

    with patch.object(KardexApplier, "apply", side_effect=RuntimeError("Simulated failure in stage 3")):
        with pytest.raises(RuntimeError):
            await controller.run(sample_snapshot)

    # Nothing from stages 1-3 survives
    assert await _count(session_maker, User) == 0
    assert await _count(session_maker, Movement) == 0
    assert await _count(session_maker, MigrationRow) == 0

    async with session_maker() as session:
        batch = (await session.execute(select(MigrationBatch))).scalar_one()
    assert batch.status == BatchStatus.FAILED
    assert "Simulated failure" in batch.error_message

    # Resubmitting the same payload reuses the failed batch
    outcome = await controller.run(sample_snapshot)

    assert outcome.batch_id == batch.id
    retried = await _batch(session_maker, batch.id)
    assert retried.status == BatchStatus.COMPLETED
    assert retried.attempts == 2
    assert retried.error_message is None
    assert await _count(session_maker, User) == 2


@pytest.mark.asyncio
async def test_natural_key_upsert_updates_instead_of_duplicating(session_maker, sample_snapshot):
    controller = BatchController(session_maker)
    await controller.run(sample_snapshot)

    async with session_maker() as session:
        original = (await session.execute(select(User).where(User.email == "ana@example.com"))).scalar_one()

    changed = copy.deepcopy(sample_snapshot)
    # Same email under a new source id
    changed["usuarios"][0]["id"] = "u9"
    changed["usuarios"][0]["nombre"] = "Ana Maria"

    outcome = await controller.run(changed)

    assert outcome.outcomes["usuarios"].applied == 1
    assert await _count(session_maker, User) == 2

    async with session_maker() as session:
        updated = (await session.execute(select(User).where(User.email == "ana@example.com"))).scalar_one()
    assert updated.id == original.id
    assert updated.nombre == "Ana Maria"
    assert updated.source_key == "u9"


@pytest.mark.asyncio
async def test_rcv_rows_become_fiscal_documents(session_maker, sample_snapshot):
    await BatchController(session_maker).run(sample_snapshot)

    async with session_maker() as session:
        documents = (await session.execute(select(FiscalDocument))).scalars().all()

    by_origin = {document.origen: document for document in documents}
    assert set(by_origin) == {"documentosFiscales", "rcvVentas", "rcvCompras"}
    assert by_origin["documentosFiscales"].tipo_dte == "33"
    assert by_origin["documentosFiscales"].folio == "101"
    assert by_origin["rcvVentas"].tipo_dte == "RCV_VENTA"
    assert by_origin["rcvCompras"].tipo_dte == "RCV_COMPRA"
    assert by_origin["rcvVentas"].source_key == "rcvVentas:201-2024-03-06"
    assert by_origin["rcvVentas"].registro_fecha == "2024-03-06"
    assert by_origin["documentosFiscales"].registro_fecha == ""


@pytest.mark.asyncio
async def test_register_rows_sharing_a_folio_on_different_dates_stay_distinct(session_maker, sample_snapshot):
    sample_snapshot["rcvVentas"].append({"folio": "201", "fecha": "2024-04-06", "total": "2380"})
    controller = BatchController(session_maker)

    outcome = await controller.run(sample_snapshot)

    assert outcome.outcomes["documentosFiscales"].applied == 4
    assert await _count(session_maker, FiscalDocument) == 4

    payload = PayloadNormalizer().normalize(sample_snapshot)
    async with session_maker() as session:
        report = await ReconciliationVerifier(session).verify(payload)
        sales = (
            await session.execute(
                select(FiscalDocument).where(FiscalDocument.origen == "rcvVentas").order_by(FiscalDocument.fecha_emision)
            )
        ).scalars().all()

    assert report.diff["documentosFiscales"] == 0
    assert report.integrity.zero_diff is True
    assert [(d.folio, d.total) for d in sales] == [("201", Decimal("1190.00")), ("201", Decimal("2380.00"))]

    # Editing one register row rewrites that row only
    sample_snapshot["rcvVentas"][1]["total"] = "2400"
    rerun = await controller.run(sample_snapshot)

    assert rerun.outcomes["documentosFiscales"].applied == 1
    assert await _count(session_maker, FiscalDocument) == 4



@pytest.mark.asyncio
async def test_unresolved_required_parent_is_dropped(session_maker, sample_snapshot):
    sample_snapshot["asientoLineas"].append({"id": "l3", "asientoId": "missing", "cuentaId": "c1", "debe": 10})
    sample_snapshot["sesiones"].append({"id": "s2", "token": "tok-2"})

    outcome = await BatchController(session_maker).run(sample_snapshot)

    assert outcome.outcomes["asientoLineas"].applied == 2
    assert outcome.outcomes["asientoLineas"].dropped == 1
    assert outcome.outcomes["asientoLineas"].reasons == {"unresolved asientos": 1}
    assert outcome.outcomes["sesiones"].reasons == {"missing usuarios reference": 1}
    assert await _count(session_maker, JournalLine) == 2

    # Dropped rows are not recorded in the ledger
    ledger = await _ledger(session_maker)
    assert ("asientoLineas", "l3") not in ledger
    assert ("sesiones", "s2") not in ledger


@pytest.mark.asyncio
async def test_fail_policy_fails_the_batch(session_maker, sample_snapshot):
    sample_snapshot["asientoLineas"].append({"id": "l3", "asientoId": "missing", "cuentaId": "c1"})
    controller = BatchController(session_maker, unresolved_parent_policy="fail")

    with pytest.raises(ReferentialGapError):
        await controller.run(sample_snapshot)

    assert await _count(session_maker, JournalLine) == 0
    async with session_maker() as session:
        batch = (await session.execute(select(MigrationBatch))).scalar_one()
    assert batch.status == BatchStatus.FAILED


@pytest.mark.asyncio
async def test_invalid_rows_are_skipped_with_reason(session_maker, sample_snapshot):
    sample_snapshot["usuarios"].append({"id": "u3", "nombre": "No Email"})
    sample_snapshot["inventoryLots"].append({"id": "lot2", "productId": "p1", "qty": 0})
    sample_snapshot["periodos"].append({"anio": 2024, "mes": 13})

    outcome = await BatchController(session_maker).run(sample_snapshot)

    assert outcome.outcomes["usuarios"].reasons == {"missing email": 1}
    assert outcome.outcomes["inventoryLots"].reasons == {"non-positive quantity": 1}
    assert outcome.outcomes["periodos"].reasons == {"invalid month": 1}
    assert await _count(session_maker, User) == 2


@pytest.mark.asyncio
async def test_empty_snapshot_completes_with_nothing_applied(session_maker):
    outcome = await BatchController(session_maker).run({})

    assert outcome.skipped is False
    assert sum(outcome.summary.values()) == 0
    assert len(outcome.outcomes) == 15


@pytest.mark.asyncio
async def test_store_error_surfaces_as_transaction_error(session_maker, sample_snapshot):
    controller = BatchController(session_maker)
    store_error = OperationalError("INSERT INTO kardex_movimientos", {}, Exception("database is locked"))

    with patch.object(KardexApplier, "apply", side_effect=store_error):
        with pytest.raises(TransactionError) as exc_info:
            await controller.run(sample_snapshot)

    assert exc_info.value.original_exception is store_error
    assert exc_info.value.__cause__ is store_error
    assert exc_info.value.context["operation"] == "APPLY"
    assert await _count(session_maker, User) == 0

    async with session_maker() as session:
        batch = (await session.execute(select(MigrationBatch))).scalar_one()
    assert batch.status == BatchStatus.FAILED
    assert "database is locked" in batch.error_message
    assert exc_info.value.context["batch_id"] == batch.id


@pytest.mark.asyncio
async def test_tax_config_without_year_takes_current_year_and_regime_rate(session_maker, sample_snapshot):
    sample_snapshot["taxConfig"] = {"regime": "14D3"}

    outcome = await BatchController(session_maker).run(sample_snapshot)

    assert outcome.outcomes["taxConfig"].applied == 1
    async with session_maker() as session:
        config = (await session.execute(select(TaxConfig))).scalar_one()
    assert config.anio == date.today().year
    assert config.regimen == "14D3"
    assert config.ppm_rate == Decimal("0.25")


@pytest.mark.asyncio
async def test_apply_error_survives_a_failure_to_mark_the_batch(session_maker, sample_snapshot):
    opened = []

    def flaky_session_maker():
        # begin, apply, then the mark-failed session
        opened.append(True)
        if len(opened) == 3:
            raise OSError("connection reset by peer")
        return session_maker()

    controller = BatchController(flaky_session_maker)

    with patch.object(KardexApplier, "apply", side_effect=RuntimeError("Simulated failure in stage 3")):
        with pytest.raises(RuntimeError, match="Simulated failure"):
            await controller.run(sample_snapshot)

    assert len(opened) == 3
    async with session_maker() as session:
        batch = (await session.execute(select(MigrationBatch))).scalar_one()
    # Left running; the next submission reclaims it
    assert batch.status == BatchStatus.RUNNING

    outcome = await BatchController(session_maker).run(sample_snapshot)
    assert outcome.batch_id == batch.id
