import asyncio

import pytest

from src.integrations.clients.mocks import MockProductBackend
from src.integrations.contracts.errors import NetworkUnavailable
from src.integrations.contracts.interfaces import RowKind, SelectionPhase
from src.matrix.models import RowKey
from src.matrix.orchestrator import SelectionOrchestrator
from src.utils.config_loader import MatrixConfig, SelectionConfig


async def _wait_for(predicate, attempts=200):
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


@pytest.mark.asyncio
async def test_select_builds_and_enriches_full_matrix(orchestrator):
    snapshot = await orchestrator.select_primary_code("21686")

    assert [r.key for r in snapshot.rows] == [
        RowKey("21686", "10년", "10년납"),
        RowKey("21686", "20년", "20년납"),
        RowKey("31001", "10년", "10년납"),
        RowKey("31002", "20년", "20년납"),
    ]
    assert [r.kind for r in snapshot.rows] == [RowKind.PRIMARY, RowKind.PRIMARY, RowKind.RELATED, RowKind.RELATED]
    assert all(r.availability.label() == "준비금키 Y/준비금 Y/보험료 Y" for r in snapshot.rows)
    assert all(r.male_premium == 100 * 12 + 15 for r in snapshot.rows)
    assert snapshot.state.related_codes == ["31001", "31002"]
    assert snapshot.state.errors == []
    assert snapshot.state.progress == 100
    assert snapshot.state.is_loading is False
    assert snapshot.state.phase == SelectionPhase.SETTLED


@pytest.mark.asyncio
async def test_related_detail_failure_keeps_placeholder_row(orchestrator, backend):
    backend.fail("product", "31001", NetworkUnavailable("connection refused"))

    snapshot = await orchestrator.select_primary_code("21686")

    assert {r.code for r in snapshot.rows} >= {"21686", "31001", "31002"}
    assert len(snapshot.rows) >= 3
    gap = snapshot.rows_for("31001")
    assert len(gap) == 1
    assert gap[0].availability.label() == "준비금키 N/준비금 N/보험료 N"
    assert gap[0].error_text
    assert "상품 정보 조회 실패 (31001)" in gap[0].error_text

    other = snapshot.rows_for("31002")[0]
    assert other.availability.label() == "준비금키 Y/준비금 Y/보험료 Y"
    assert other.error_text is None
    assert any("31001" in e for e in snapshot.state.errors)


@pytest.mark.asyncio
async def test_every_resolved_code_has_a_row_even_when_all_details_fail(backend, config):
    for code in ("21686", "31001", "31002"):
        backend.fail("product", code, NetworkUnavailable("down"))

    snapshot = await SelectionOrchestrator(backend, config).select_primary_code("21686")

    assert [r.code for r in snapshot.rows] == ["21686", "31001", "31002"]
    assert snapshot.state.progress == 100


@pytest.mark.asyncio
async def test_related_lookup_failure_degrades_to_primary_only(orchestrator, backend):
    backend.fail("related", "21686", NetworkUnavailable("down"))

    snapshot = await orchestrator.select_primary_code("21686")

    assert {r.code for r in snapshot.rows} == {"21686"}
    assert snapshot.state.related_codes == []
    assert snapshot.state.errors[0].startswith("관련 코드 조회 실패 (21686)")
    assert snapshot.state.progress == 100


@pytest.mark.asyncio
async def test_progress_is_non_decreasing_and_ends_at_100(orchestrator):
    seen = []
    orchestrator.store.subscribe(lambda snap: seen.append(snap.state.progress))

    await orchestrator.select_primary_code("21686")

    assert seen == sorted(seen)
    assert seen[-1] == 100
    distinct = [p for i, p in enumerate(seen) if i == 0 or p != seen[i - 1]]
    assert distinct == [0, 10, 20, 30, 45, 60, 75, 90, 100]


@pytest.mark.asyncio
async def test_failure_in_one_row_does_not_affect_others(config):
    baseline = await SelectionOrchestrator(MockProductBackend(), config).select_primary_code("21686")

    failing_backend = MockProductBackend()
    failing_backend.fail("check", "31002", NetworkUnavailable("down"))
    failing_backend.fail("premium", "31002", NetworkUnavailable("down"))
    snapshot = await SelectionOrchestrator(failing_backend, config).select_primary_code("21686")

    for before, after in zip(baseline.rows, snapshot.rows):
        if after.code == "31002":
            assert after.error_text is not None
            assert after.male_premium is None
            continue
        assert after == before


@pytest.mark.asyncio
async def test_unexpected_error_is_reported_and_selection_settles(orchestrator, backend):
    backend.fail("related", "21686", RuntimeError("resolver bug"))

    snapshot = await orchestrator.select_primary_code("21686")

    assert snapshot.state.errors == ["주계약 21686 선택 실패: resolver bug"]
    assert snapshot.state.progress == 100
    assert snapshot.state.is_loading is False


@pytest.mark.asyncio
async def test_blank_code_is_rejected(orchestrator):
    with pytest.raises(ValueError):
        await orchestrator.select_primary_code("  ")


@pytest.mark.asyncio
@pytest.mark.parametrize("cancel_superseded", [True, False])
async def test_superseded_selection_never_writes_into_new_matrix(backend, cancel_superseded):
    config = MatrixConfig(selection=SelectionConfig(cancel_superseded=cancel_superseded))
    orchestrator = SelectionOrchestrator(backend, config)
    held = backend.gate("check", "31001")

    first = orchestrator.start_selection("21686")
    await _wait_for(lambda: backend.count_calls("check", "31001") == 1)

    second = await orchestrator.select_primary_code("31002")
    held.set()
    await first

    snapshot = orchestrator.snapshot()
    assert snapshot.state.primary_code == "31002"
    assert [r.key for r in snapshot.rows] == [RowKey("31002", "20년", "20년납")]
    assert snapshot.rows == second.rows
    assert snapshot.state.errors == []
    assert snapshot.state.progress == 100
    assert orchestrator.fanout.pending(1) == 0


@pytest.mark.asyncio
async def test_superseded_enrichment_is_cancelled_when_configured(backend, orchestrator):
    backend.gate("check", "31001")

    first = orchestrator.start_selection("21686")
    await _wait_for(lambda: backend.count_calls("check", "31001") == 1)
    await orchestrator.select_primary_code("31002")
    await asyncio.wait_for(first, timeout=1)

    assert first.done()
    assert orchestrator.snapshot().state.primary_code == "31002"


@pytest.mark.asyncio
async def test_aclose_cancels_running_selection(backend, orchestrator):
    backend.gate("product", "21686")

    task = orchestrator.start_selection("21686")
    await _wait_for(lambda: backend.count_calls("product", "21686") == 1)
    await orchestrator.aclose()

    assert task.cancelled()
