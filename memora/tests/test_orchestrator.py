"""
Tests for RetrievalOrchestrator

End-to-end retrieval cycles with mocked collaborators: concept bridging,
no-match, empty-query mode, failure handling, debounce and stale-cycle
discard.
"""

import asyncio
import logging

import pytest
from unittest.mock import AsyncMock, Mock

from memora.common.config import RetrieverConfig
from memora.common.embedding_service import EmbeddingMode
from memora.common.schemas import ExpansionResult, MemoryRecord, ScoredRecord
from memora.retriever.orchestrator import (
    FAILURE_ANSWER,
    NO_MATCH_ANSWER,
    RetrievalOrchestrator,
    RetrievalState,
)
from memora.retriever.scorer import score_record

CAKE_QUERY = "When will I cut the cake?"


@pytest.fixture
def records(birthday_record, lease_record, flight_record):
    return [lease_record, birthday_record, flight_record]


@pytest.fixture
def expander():
    expander = Mock()
    expander.expand = AsyncMock(return_value=ExpansionResult(
        expanded_query="birthday party celebration",
        concepts=["birthday", "party", "celebration"],
    ))
    return expander


@pytest.fixture
def synthesizer():
    synthesizer = Mock()
    synthesizer.synthesize = AsyncMock(return_value="Alice's birthday party is on June 12.")
    return synthesizer


@pytest.fixture
def orchestrator(expander, synthesizer, records):
    return RetrievalOrchestrator(expander, None, synthesizer, records=records, debounce_seconds=0.05)


class TestRunCycle:
    @pytest.mark.asyncio
    async def test_concept_bridging_cake_query(self, orchestrator, synthesizer):
        response = await orchestrator.run_cycle(CAKE_QUERY)

        assert [s.id for s in response.sources] == ["r-birthday"]
        assert response.confidence == pytest.approx(0.7)
        assert response.answer == "Alice's birthday party is on June 12."
        assert response.is_thinking is False
        assert orchestrator.state == RetrievalState.DONE
        assert orchestrator.response == response

        query, sources = synthesizer.synthesize.call_args.args
        assert query == CAKE_QUERY
        assert [s.id for s in sources] == ["r-birthday"]

    @pytest.mark.asyncio
    async def test_no_match_returns_apology(self, orchestrator, expander, synthesizer):
        expander.expand.return_value = ExpansionResult.passthrough("quantum chromodynamics lecture")

        response = await orchestrator.run_cycle("quantum chromodynamics lecture")

        assert response.answer == NO_MATCH_ANSWER
        assert response.sources == []
        assert response.confidence == 0.0
        synthesizer.synthesize.assert_not_called()

    @pytest.mark.asyncio
    async def test_unrelated_gibberish_has_no_match(self, orchestrator, expander, synthesizer):
        expander.expand.return_value = ExpansionResult.passthrough("xyzzyunrelatedgibberish")

        response = await orchestrator.run_cycle("xyzzyunrelatedgibberish")

        assert response.sources == []
        assert response.confidence == 0.0
        assert response.answer == NO_MATCH_ANSWER
        assert response.is_thinking is False
        assert orchestrator.state == RetrievalState.DONE
        synthesizer.synthesize.assert_not_called()

    @pytest.mark.asyncio
    async def test_birthday_party_bridged_without_vector_signal(self, make_record, synthesizer):
        party = make_record(
            "r-party",
            title="Birthday Party",
            summary="Celebrating with friends at the park",
        )
        expander = Mock()
        expander.expand = AsyncMock(return_value=ExpansionResult(
            expanded_query="birthday cake party",
            concepts=["birthday", "cake", "party"],
        ))
        embedder = Mock()
        embedder.aembed = AsyncMock(return_value=[])
        orchestrator = RetrievalOrchestrator(expander, embedder, synthesizer, records=[party])

        lexical = score_record(CAKE_QUERY, ["birthday", "cake", "party"], party)
        response = await orchestrator.run_cycle(CAKE_QUERY)

        assert lexical.concept_score > 0
        assert lexical.title_boost > 0
        assert [s.id for s in response.sources] == ["r-party"]
        assert response.confidence > 0.08
        embedder.aembed.assert_awaited_once_with("birthday cake party", EmbeddingMode.QUERY)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   ", "\n\t"])
    async def test_blank_query_returns_all_records(self, orchestrator, expander, synthesizer, records, query):
        response = await orchestrator.run_cycle(query)

        assert response.answer == ""
        assert response.sources == records
        assert all(isinstance(s, MemoryRecord) for s in response.sources)
        assert response.confidence == 1.0
        assert response.is_thinking is False
        assert orchestrator.state == RetrievalState.IDLE
        expander.expand.assert_not_called()
        synthesizer.synthesize.assert_not_called()

    @pytest.mark.asyncio
    async def test_sources_sorted_and_confidence_is_top_score(self, orchestrator, expander):
        expander.expand.return_value = ExpansionResult(
            expanded_query="x", concepts=["birthday", "apartment", "lisbon"],
        )

        response = await orchestrator.run_cycle("zzz")

        scores = [s.score for s in response.sources]
        assert all(isinstance(s, ScoredRecord) for s in response.sources)
        assert scores == sorted(scores, reverse=True)
        assert response.confidence == scores[0]
        # equal scores keep collection order (lease, birthday, flight)
        assert [s.id for s in response.sources] == ["r-lease", "r-birthday", "r-flight"]

    @pytest.mark.asyncio
    async def test_expanded_query_embedded_in_query_mode(self, expander, synthesizer, records):
        embedder = Mock()
        embedder.aembed = AsyncMock(return_value=[1.0, 0.0])
        orchestrator = RetrievalOrchestrator(expander, embedder, synthesizer, records=records)

        await orchestrator.run_cycle(CAKE_QUERY)

        query_calls = [c for c in embedder.aembed.call_args_list if c.args[1] == EmbeddingMode.QUERY]
        assert len(query_calls) == 1
        assert query_calls[0].args[0] == "birthday party celebration"
        expander.expand.assert_awaited_once_with(CAKE_QUERY)

    @pytest.mark.asyncio
    async def test_empty_query_vector_disables_vector_scoring(self, expander, synthesizer, records):
        embedder = Mock()
        embedder.aembed = AsyncMock(return_value=[])
        orchestrator = RetrievalOrchestrator(expander, embedder, synthesizer, records=records)

        response = await orchestrator.run_cycle(CAKE_QUERY)

        # only the query was embedded; no document vectors requested
        embedder.aembed.assert_awaited_once()
        assert response.confidence == pytest.approx(0.7)

    @pytest.mark.asyncio
    async def test_expander_exception_fails_cycle(self, orchestrator, expander, caplog):
        expander.expand.side_effect = RuntimeError("expander crashed")

        with caplog.at_level(logging.ERROR, logger="memora.retriever.orchestrator"):
            response = await orchestrator.run_cycle(CAKE_QUERY)

        assert response.answer == FAILURE_ANSWER
        assert response.sources == []
        assert response.confidence == 0.0
        assert response.is_thinking is False
        assert orchestrator.state == RetrievalState.FAILED
        assert "Retrieval pipeline failed" in caplog.text

    @pytest.mark.asyncio
    async def test_synthesizer_exception_fails_cycle(self, orchestrator, synthesizer):
        synthesizer.synthesize.side_effect = RuntimeError("synth crashed")

        response = await orchestrator.run_cycle(CAKE_QUERY)

        assert response.answer == FAILURE_ANSWER
        assert orchestrator.state == RetrievalState.FAILED

    @pytest.mark.asyncio
    async def test_failed_cycle_is_not_retried(self, orchestrator, expander):
        expander.expand.side_effect = RuntimeError("expander crashed")
        await orchestrator.run_cycle(CAKE_QUERY)
        assert expander.expand.await_count == 1

    @pytest.mark.asyncio
    async def test_thinking_published_with_previous_answer(self, expander, synthesizer, records):
        published = []
        orchestrator = RetrievalOrchestrator(
            expander, None, synthesizer, records=records, on_response=published.append,
        )

        await orchestrator.run_cycle(CAKE_QUERY)
        await orchestrator.run_cycle("birthday plans")

        assert [r.is_thinking for r in published] == [True, False, True, False]
        assert published[2].answer == published[1].answer

    @pytest.mark.asyncio
    async def test_listener_error_does_not_break_cycle(self, expander, synthesizer, records, caplog):
        listener = Mock(side_effect=RuntimeError("ui gone"))
        orchestrator = RetrievalOrchestrator(expander, None, synthesizer, records=records, on_response=listener)

        with caplog.at_level(logging.ERROR, logger="memora.retriever.orchestrator"):
            response = await orchestrator.run_cycle(CAKE_QUERY)

        assert response.answer == "Alice's birthday party is on June 12."
        assert "Response listener failed" in caplog.text

    @pytest.mark.asyncio
    async def test_set_records_used_by_next_cycle(self, orchestrator, birthday_record):
        orchestrator.set_records([birthday_record])
        response = await orchestrator.run_cycle("")
        assert response.sources == [birthday_record]

    @pytest.mark.asyncio
    async def test_generation_increments_per_cycle(self, orchestrator):
        await orchestrator.run_cycle(CAKE_QUERY)
        await orchestrator.run_cycle("")
        assert orchestrator.generation == 2


class TestDebounce:
    @pytest.mark.asyncio
    async def test_rapid_changes_run_one_cycle_on_last_value(self, orchestrator, expander):
        orchestrator.submit("when")
        await asyncio.sleep(0.01)
        orchestrator.submit("when will I")
        await asyncio.sleep(0.01)
        orchestrator.submit(CAKE_QUERY)

        await orchestrator.wait_idle()

        expander.expand.assert_awaited_once_with(CAKE_QUERY)
        assert orchestrator.generation == 1
        assert orchestrator.response.answer == "Alice's birthday party is on June 12."

    @pytest.mark.asyncio
    async def test_no_cycle_before_quiet_window(self, orchestrator, expander):
        orchestrator.submit(CAKE_QUERY)
        await asyncio.sleep(0.01)
        expander.expand.assert_not_called()
        await orchestrator.wait_idle()
        expander.expand.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cancel_drops_pending_query(self, orchestrator, expander):
        orchestrator.submit(CAKE_QUERY)
        orchestrator.cancel()
        await asyncio.sleep(0.1)
        expander.expand.assert_not_called()


class TestStaleCycles:
    @pytest.mark.asyncio
    async def test_late_result_of_older_cycle_is_discarded(self, records):
        gate = asyncio.Event()

        async def expand(query):
            if query == "slow birthday":
                await gate.wait()
            return ExpansionResult(expanded_query=query, concepts=["birthday"])

        async def synthesize(query, sources):
            return f"answer for {query}"

        expander = Mock()
        expander.expand = AsyncMock(side_effect=expand)
        synthesizer = Mock()
        synthesizer.synthesize = AsyncMock(side_effect=synthesize)
        orchestrator = RetrievalOrchestrator(expander, None, synthesizer, records=records)

        slow = asyncio.create_task(orchestrator.run_cycle("slow birthday"))
        await asyncio.sleep(0.01)
        await orchestrator.run_cycle("lease")

        gate.set()
        slow_response = await slow

        assert slow_response.answer == "answer for slow birthday"
        assert orchestrator.response.answer == "answer for lease"
        assert orchestrator.state == RetrievalState.DONE
        assert orchestrator.generation == 2

    @pytest.mark.asyncio
    async def test_cancel_discards_in_flight_cycle(self, records, synthesizer):
        gate = asyncio.Event()

        async def expand(query):
            await gate.wait()
            return ExpansionResult(expanded_query=query, concepts=["birthday"])

        expander = Mock()
        expander.expand = AsyncMock(side_effect=expand)
        published = []
        orchestrator = RetrievalOrchestrator(
            expander, None, synthesizer, records=records, on_response=published.append,
        )

        task = asyncio.create_task(orchestrator.run_cycle(CAKE_QUERY))
        await asyncio.sleep(0.01)
        assert orchestrator.state == RetrievalState.EXPANDING
        assert orchestrator.response.is_thinking is True

        orchestrator.cancel()
        assert orchestrator.state == RetrievalState.IDLE
        assert orchestrator.response.is_thinking is False

        gate.set()
        await task

        assert orchestrator.state == RetrievalState.IDLE
        assert orchestrator.response.is_thinking is False
        assert orchestrator.response.sources == []
        assert [r.is_thinking for r in published] == [True, False]

    @pytest.mark.asyncio
    async def test_cancel_when_idle_keeps_response(self, orchestrator):
        response = await orchestrator.run_cycle(CAKE_QUERY)
        orchestrator.cancel()
        assert orchestrator.response == response
        assert orchestrator.state == RetrievalState.DONE


class TestFromConfig:
    def test_uses_retriever_config(self, expander, synthesizer):
        config = RetrieverConfig(debounce_ms=250, score_threshold=0.3, topk=2)
        orchestrator = RetrievalOrchestrator.from_config(config, expander, None, synthesizer)
        assert orchestrator._debouncer.delay == pytest.approx(0.25)
        assert orchestrator._searcher._threshold == 0.3
        assert orchestrator._searcher._topk == 2
