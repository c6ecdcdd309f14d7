"""Tests pour l'orchestrateur de repli entre stratégies."""

from __future__ import annotations

import asyncio

import pytest

from hdchart.domain.errors import AllStrategiesExhausted, EmptyResult
from hdchart.domain.orchestrator import FallbackOrchestrator, OrchestratorState
from tests.fakes import ScriptedStrategy, usable_result

EXPECTED_STRATEGY_COUNT = 4


@pytest.mark.asyncio
async def test_first_usable_success_wins(birth) -> None:
    """Teste que l'orchestrateur s'arrête au premier résultat exploitable."""
    strategies = [
        ScriptedStrategy("direct_api"),
        ScriptedStrategy("browser"),
        ScriptedStrategy("httpx_form", usable_result()),
        ScriptedStrategy("aiohttp_form", usable_result()),
    ]
    orchestrator = FallbackOrchestrator(strategies)

    success = await orchestrator.run(birth)

    assert success.strategy == "httpx_form"
    assert [s.calls for s in strategies] == [1, 1, 1, 0]
    assert orchestrator.state is OrchestratorState.SUCCEEDED
    assert orchestrator.current_index == 2
    assert [a.strategy for a in orchestrator.attempts] == ["direct_api", "browser"]


@pytest.mark.asyncio
async def test_empty_success_is_recorded_and_skipped(birth) -> None:
    """Teste qu'un Success vide est consigné comme empty_result."""
    orchestrator = FallbackOrchestrator(
        [ScriptedStrategy("direct_api", "empty"), ScriptedStrategy("browser", usable_result())]
    )

    success = await orchestrator.run(birth)

    assert success.strategy == "browser"
    attempt = orchestrator.attempts[0]
    assert attempt.kind == EmptyResult.kind == "empty_result"
    assert attempt.reason == "Strategy returned an empty chart"


@pytest.mark.asyncio
async def test_all_failures_raise_with_every_attempt_in_order(birth) -> None:
    """Teste l'agrégation des causes quand toutes les stratégies échouent."""
    names = ["direct_api", "browser", "httpx_form", "aiohttp_form"]
    strategies = [ScriptedStrategy(n, "empty" if n == "browser" else "fail") for n in names]
    orchestrator = FallbackOrchestrator(strategies)

    with pytest.raises(AllStrategiesExhausted) as excinfo:
        await orchestrator.run(birth)

    attempts = excinfo.value.attempts
    assert len(attempts) == EXPECTED_STRATEGY_COUNT
    assert [a.strategy for a in attempts] == names
    assert attempts[1].kind == "empty_result"
    assert attempts[0].kind == "transport_failure"
    assert "direct_api: direct_api unavailable" in str(excinfo.value)
    assert orchestrator.state is OrchestratorState.EXHAUSTED_FAILED
    assert excinfo.value.to_details()["attempts"][0] == {
        "strategy": "direct_api",
        "kind": "transport_failure",
        "reason": "direct_api unavailable",
    }


@pytest.mark.asyncio
async def test_all_empty_results_exhaust_every_strategy(birth) -> None:
    """Teste que des résultats tous vides épuisent les quatre stratégies."""
    names = ["direct_api", "browser", "httpx_form", "aiohttp_form"]
    orchestrator = FallbackOrchestrator([ScriptedStrategy(n, "empty") for n in names])

    with pytest.raises(AllStrategiesExhausted) as excinfo:
        await orchestrator.run(birth)

    assert len(excinfo.value.attempts) == EXPECTED_STRATEGY_COUNT
    assert {a.kind for a in excinfo.value.attempts} == {"empty_result"}


@pytest.mark.asyncio
async def test_no_strategy_raises(birth) -> None:
    """Teste qu'une liste vide de stratégies épuise immédiatement le repli."""
    orchestrator = FallbackOrchestrator([])
    with pytest.raises(AllStrategiesExhausted, match="no strategy configured"):
        await orchestrator.run(birth)


@pytest.mark.asyncio
async def test_cancellation_propagates(birth) -> None:
    """Teste que l'annulation d'une stratégie n'est pas absorbée."""
    orchestrator = FallbackOrchestrator(
        [ScriptedStrategy("direct_api", asyncio.CancelledError()), ScriptedStrategy("browser")]
    )
    with pytest.raises(asyncio.CancelledError):
        await orchestrator.run(birth)
    assert orchestrator.state is OrchestratorState.TRYING


def test_initial_state() -> None:
    """Teste l'état initial de l'orchestrateur."""
    orchestrator = FallbackOrchestrator([ScriptedStrategy("direct_api")])
    assert orchestrator.state is OrchestratorState.NOT_STARTED
    assert orchestrator.current_index is None
    assert orchestrator.attempts == []
