"""Unit tests for the grounding engine, answer generators and canned answers."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from langchain_core.messages import AIMessage

from tenant_rag.config import Settings
from tenant_rag.grounding.defaults import DEFAULT_ANSWERS, MessageType, detect_message_type
from tenant_rag.grounding.engine import PDF_CONTENT, GroundingEngine
from tenant_rag.grounding.extraction import (
    AnswerIntent,
    ScoringWeights,
    classify_intent,
    extract_answer,
    query_keywords,
    split_segments,
    strip_markers,
)
from tenant_rag.grounding.generators import (
    AnswerGenerator,
    ExtractiveAnswerGenerator,
    LLMAnswerGenerator,
    build_answer_generator,
)
from tenant_rag.grounding.prompts import NOT_FOUND_SENTINEL
from tenant_rag.retrieval.models import ChunkMetadata, EmbeddingRecord, RetrievalMatch

REFUND_TEXT = "The refund policy allows returns within 30 days. Shipping takes 5 business days."


def _match(text: str, similarity: float, *, document_id: str = "doc-1", chunk_index: int = 0) -> RetrievalMatch:
    record = EmbeddingRecord(
        tenant_id="t1",
        document_id=document_id,
        text=text,
        vector=(1.0, 0.0),
        metadata=ChunkMetadata(chunk_index=chunk_index),
    )
    return RetrievalMatch(record=record, similarity=similarity)


class FixedGenerator(AnswerGenerator):
    """Returns a canned reply and records the context it was given."""

    def __init__(self, reply: str | None) -> None:
        self.reply = reply
        self.contexts: list[str] = []

    def generate(self, query: str, context: str) -> str | None:
        self.contexts.append(context)
        return self.reply


# ── Engine policy ───────────────────────────────────────────────────────


class TestGroundingEngine:
    @pytest.mark.parametrize("query", ["What is the refund policy?", "hello", "thanks!", "", "bye"])
    def test_no_matches_is_always_not_found(self, query: str) -> None:
        answer = GroundingEngine().answer(query, [])
        assert answer.message == DEFAULT_ANSWERS.not_found
        assert answer.confidence == 0.3
        assert answer.source == "default"
        assert answer.sources == []
        assert answer.message_type == MessageType.NOT_FOUND.value

    def test_grounded_refund_answer(self) -> None:
        answer = GroundingEngine().answer("what is your refund policy", [_match(REFUND_TEXT, 0.82)])
        assert answer.source == "pdf"
        assert answer.confidence == 0.9
        assert answer.message_type == PDF_CONTENT
        assert "30 days" in answer.message
        assert answer.message == "The refund policy allows returns within 30 days."
        assert answer.sources[0].similarity == 0.82

    def test_only_high_quality_matches_form_the_context(self) -> None:
        generator = FixedGenerator("Answer.")
        engine = GroundingEngine(generator)
        engine.answer("q", [_match("strong one", 0.9), _match("strong two", 0.5), _match("weak", 0.49)])
        assert generator.contexts == ["strong one\n\nstrong two"]

    def test_low_quality_matches_never_ground(self) -> None:
        generator = FixedGenerator("Should not be used.")
        matches = [_match(f"passage {i} " + "x" * 300, 0.3 - i * 0.01, chunk_index=i) for i in range(5)]
        answer = GroundingEngine(generator).answer("what is your refund policy", matches)

        assert generator.contexts == []
        assert answer.message == DEFAULT_ANSWERS.not_found
        assert answer.confidence == 0.3
        assert len(answer.sources) == 3
        assert all(len(s.text) == 203 and s.text.endswith("...") for s in answer.sources)
        assert [s.chunk_index for s in answer.sources] == [0, 1, 2]

    def test_high_quality_sources_are_truncated_at_300(self) -> None:
        answer = GroundingEngine(FixedGenerator("Yes.")).answer("q", [_match("y" * 400, 0.7), _match("short", 0.6)])
        assert answer.sources[0].text == "y" * 300 + "..."
        assert answer.sources[1].text == "short"

    def test_similarity_is_rounded_in_sources(self) -> None:
        answer = GroundingEngine(FixedGenerator("Yes.")).answer("q", [_match("text", 0.87654)])
        assert answer.sources[0].similarity == 0.88

    def test_conversational_query_with_weak_matches(self) -> None:
        answer = GroundingEngine().answer("Hello there", [_match("unrelated text about shipping", 0.2)])
        assert answer.message == DEFAULT_ANSWERS.greeting
        assert answer.confidence == 0.8
        assert answer.source == "default"
        assert answer.message_type == "greeting"
        assert len(answer.sources) == 1

    def test_conversational_query_when_context_does_not_answer(self) -> None:
        answer = GroundingEngine().answer("thanks a lot", [_match("Shipping takes 5 business days.", 0.75)])
        assert answer.message == DEFAULT_ANSWERS.thanks
        assert answer.confidence == 0.8

    def test_irrelevant_high_quality_context_is_not_found(self) -> None:
        answer = GroundingEngine(FixedGenerator(None)).answer("what is the warranty", [_match("Shipping.", 0.9)])
        assert answer.message == DEFAULT_ANSWERS.not_found
        assert answer.confidence == 0.3
        assert len(answer.sources) == 1

    def test_confidences_are_configurable(self) -> None:
        engine = GroundingEngine(FixedGenerator("Yes."), confidence_grounded=0.95, confidence_not_found=0.1)
        assert engine.answer("q", [_match("t", 0.9)]).confidence == 0.95
        assert engine.answer("q", []).confidence == 0.1

    def test_from_settings(self) -> None:
        engine = GroundingEngine.from_settings(Settings(high_quality_threshold=0.6, answer_generator="extractive"))
        assert engine.high_quality_threshold == 0.6
        assert isinstance(engine.generator, ExtractiveAnswerGenerator)


# ── Message types ───────────────────────────────────────────────────────


class TestDetectMessageType:
    @pytest.mark.parametrize(
        ("message", "expected"),
        [
            ("Hello", MessageType.GREETING),
            ("hi there", MessageType.GREETING),
            ("Good morning!", MessageType.GREETING),
            ("Can you help me?", MessageType.HELP),
            ("How do I reach you by phone", MessageType.CONTACT),
            ("How much does it cost?", MessageType.PRICING),
            ("I see an error on upload", MessageType.TECHNICAL),
            ("I forgot my password", MessageType.ACCOUNT),
            ("Thank you!", MessageType.THANKS),
            ("bye for now", MessageType.GOODBYE),
            ("What is the refund policy?", MessageType.NOT_FOUND),
            ("this is high", MessageType.NOT_FOUND),
        ],
    )
    def test_detection(self, message: str, expected: MessageType) -> None:
        assert detect_message_type(message) is expected

    def test_conversational_types(self) -> None:
        assert MessageType.GREETING.is_conversational
        assert MessageType.THANKS.is_conversational
        assert MessageType.GOODBYE.is_conversational
        assert not MessageType.PRICING.is_conversational

    def test_every_type_has_a_canned_answer(self) -> None:
        for message_type in MessageType:
            assert DEFAULT_ANSWERS.for_type(message_type)
        assert DEFAULT_ANSWERS.for_type(MessageType.NOT_FOUND) == DEFAULT_ANSWERS.not_found


# ── Extraction heuristics ───────────────────────────────────────────────


class TestExtraction:
    def test_query_keywords_drop_stop_words(self) -> None:
        assert query_keywords("What is your refund policy?") == ["refund", "policy"]

    def test_split_segments_keeps_list_markers(self) -> None:
        segments = split_segments("1. Open settings. 2. Click reset password.\n\nDone!")
        assert segments == ["1. Open settings.", "2. Click reset password.", "Done!"]

    @pytest.mark.parametrize(
        ("query", "intent"),
        [
            ("What is your product?", AnswerIntent.OVERVIEW),
            ("how do I reset my password", AnswerIntent.HOW_TO),
            ("what's the price", AnswerIntent.PRICING),
            ("list the key features", AnswerIntent.FEATURE),
            ("email address please", AnswerIntent.CONTACT),
            ("refund window", AnswerIntent.GENERAL),
        ],
    )
    def test_classify_intent(self, query: str, intent: AnswerIntent) -> None:
        assert classify_intent(query) is intent

    def test_how_to_answer(self) -> None:
        context = "1. Open settings. 2. Click reset password. 3. Check your email."
        assert extract_answer("how do I reset my password", context) == "2. Click reset password."

    def test_pricing_answer(self) -> None:
        context = "The Pro plan costs $49 per month. Our office is in Berlin."
        assert extract_answer("how much does the pro plan cost", context) == "The Pro plan costs $49 per month."

    def test_nothing_relevant(self) -> None:
        assert extract_answer("warranty length", "Shipping takes 5 business days.") is None
        assert extract_answer("refund", "   ") is None

    def test_weights_are_tunable(self) -> None:
        silent = ScoringWeights(
            keyword_match=0, synonym_group=0, overview_boost=0, procedural_penalty=0,
            support_boost=0, pricing_boost=0, feature_boost=0,
        )
        assert extract_answer("what is your refund policy", REFUND_TEXT) is not None
        assert extract_answer("what is your refund policy", REFUND_TEXT, silent) is None
        assert ExtractiveAnswerGenerator(silent).generate("what is your refund policy", REFUND_TEXT) is None

    def test_strip_markers(self) -> None:
        text = "The refund policy [doc 3] applies (Source: faq.pdf) {id: 7}"
        assert strip_markers(text) == "The refund policy applies"


# ── LLM generator ───────────────────────────────────────────────────────


class TestLLMAnswerGenerator:
    def test_returns_model_answer(self) -> None:
        llm = MagicMock()
        llm.invoke.return_value = AIMessage(content="Returns are accepted within 30 days.")
        generator = LLMAnswerGenerator(llm=llm)

        answer = generator.generate("refund policy?", "Refunds within 30 days.\n\nShipping is free.")

        assert answer == "Returns are accepted within 30 days."
        messages = llm.invoke.call_args.args[0]
        assert len(messages) == 2
        assert "[1] Refunds within 30 days." in messages[1].content
        assert "[2] Shipping is free." in messages[1].content
        assert "Question: refund policy?" in messages[1].content

    def test_sentinel_means_no_answer(self) -> None:
        llm = MagicMock()
        llm.invoke.return_value = AIMessage(content=NOT_FOUND_SENTINEL)
        assert LLMAnswerGenerator(llm=llm).generate("q", "context") is None

    def test_model_failure_means_no_answer(self) -> None:
        llm = MagicMock()
        llm.invoke.side_effect = RuntimeError("connection refused")
        assert LLMAnswerGenerator(llm=llm).generate("q", "context") is None

    def test_empty_context_skips_the_model(self) -> None:
        llm = MagicMock()
        assert LLMAnswerGenerator(llm=llm).generate("q", "  ") is None
        llm.invoke.assert_not_called()

    def test_markers_are_stripped(self) -> None:
        llm = MagicMock()
        llm.invoke.return_value = AIMessage(content="Returns within 30 days [1].")
        assert LLMAnswerGenerator(llm=llm).generate("q", "context") == "Returns within 30 days ."

    def test_engine_falls_back_when_model_declines(self) -> None:
        llm = MagicMock()
        llm.invoke.return_value = AIMessage(content=NOT_FOUND_SENTINEL)
        answer = GroundingEngine(LLMAnswerGenerator(llm=llm)).answer("what is the warranty", [_match("text", 0.9)])
        assert answer.message == DEFAULT_ANSWERS.not_found


class TestBuildAnswerGenerator:
    def test_extractive(self) -> None:
        assert isinstance(build_answer_generator(Settings(answer_generator="extractive")), ExtractiveAnswerGenerator)

    def test_llm_is_created_lazily(self) -> None:
        generator = build_answer_generator(Settings(answer_generator="llm"))
        assert isinstance(generator, LLMAnswerGenerator)
        assert generator._llm is None

    def test_llm_targets_compatible_endpoint(self) -> None:
        config = Settings(
            answer_generator="llm",
            llm_model_name="mistral-7b",
            llm_base_url="http://localhost:8000/v1",
            openai_api_key="",
        )
        model = LLMAnswerGenerator(config=config).llm
        assert model.model_name == "mistral-7b"
        assert model.temperature == 0.0
        assert model.openai_api_base == "http://localhost:8000/v1"
        assert model.openai_api_key.get_secret_value() == "EMPTY"
