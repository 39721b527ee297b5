"""
unistream - Frame Classification Tests

Verifies each provider's frames map onto the canonical event vocabulary:
Content, Thinking, Error, Done and Ignore.
"""

import json

import pytest

from unistream.adapters import get_adapter
from unistream.core.models import EventType, StreamEvent


def _openai(payload) -> str:
    return "data: " + json.dumps(payload)


# ============================================================
# OpenAI-style Parser Tests
# ============================================================

class TestOpenAIClassifier:
    """Test classification of OpenAI-style SSE lines."""

    @pytest.fixture
    def classify(self):
        return get_adapter("openai").classify_frame

    def test_content_delta(self, classify):
        frame = _openai({"choices": [{"delta": {"content": "Hello"}}]})
        assert classify(frame) == StreamEvent.content("Hello")

    def test_done_sentinel(self, classify):
        assert classify("data: [DONE]").type == EventType.DONE

    def test_role_only_delta_is_ignored(self, classify):
        frame = _openai({"choices": [{"delta": {"role": "assistant"}}]})
        assert classify(frame).type == EventType.IGNORE

    def test_empty_content_is_ignored(self, classify):
        frame = _openai({"choices": [{"delta": {"content": ""}, "finish_reason": "stop"}]})
        assert classify(frame).type == EventType.IGNORE

    def test_empty_choices_is_ignored(self, classify):
        assert classify(_openai({"choices": []})).type == EventType.IGNORE

    @pytest.mark.parametrize("frame", [
        ": keep-alive",
        "event: completion",
        "id: 42",
        "data:",
    ])
    def test_non_data_lines_are_ignored(self, classify, frame):
        assert classify(frame).type == EventType.IGNORE

    def test_malformed_json(self, classify):
        event = classify('data: {"choices": [')

        assert event.type == EventType.ERROR
        assert event.malformed is True
        assert event.message.startswith("Error parsing stream data:")

    def test_error_payload(self, classify):
        event = classify(_openai({"error": {"message": "Rate limit reached", "type": "requests"}}))

        assert event.type == EventType.ERROR
        assert event.malformed is False
        assert event.message == "Stream error: Rate limit reached"

    def test_deepseek_shares_classifier(self):
        frame = _openai({"choices": [{"delta": {"content": "hi"}}]})
        assert get_adapter("deepseek").classify_frame(frame) == StreamEvent.content("hi")


# ============================================================
# Anthropic Parser Tests
# ============================================================

class TestAnthropicClassifier:
    """Test classification of Anthropic typed SSE lines."""

    @pytest.fixture
    def classify(self):
        return get_adapter("anthropic").classify_frame

    def test_text_delta(self, classify):
        frame = _openai({
            "type": "content_block_delta",
            "index": 0,
            "delta": {"type": "text_delta", "text": "Hi"},
        })
        assert classify(frame) == StreamEvent.content("Hi")

    def test_thinking_delta(self, classify):
        frame = _openai({
            "type": "content_block_delta",
            "index": 0,
            "delta": {"type": "thinking_delta", "thinking": "Let me see"},
        })
        assert classify(frame) == StreamEvent.thinking("Let me see")

    def test_signature_delta_is_ignored(self, classify):
        frame = _openai({
            "type": "content_block_delta",
            "delta": {"type": "signature_delta", "signature": "abc"},
        })
        assert classify(frame).type == EventType.IGNORE

    def test_redacted_thinking_is_ignored(self, classify):
        frame = _openai({
            "type": "content_block_start",
            "content_block": {"type": "redacted_thinking", "data": "xyz"},
        })
        assert classify(frame).type == EventType.IGNORE

    def test_message_stop_event_line(self, classify):
        assert classify("event: message_stop").type == EventType.DONE

    def test_message_stop_data(self, classify):
        assert classify(_openai({"type": "message_stop"})).type == EventType.DONE

    @pytest.mark.parametrize("frame", [
        "event: content_block_delta",
        "event: ping",
        'data: {"type": "ping"}',
        'data: {"type": "message_start", "message": {"id": "msg_1"}}',
    ])
    def test_bookkeeping_frames_are_ignored(self, classify, frame):
        assert classify(frame).type == EventType.IGNORE

    def test_error_event(self, classify):
        event = classify(_openai({
            "type": "error",
            "error": {"type": "overloaded_error", "message": "Overloaded"},
        }))

        assert event.type == EventType.ERROR
        assert event.message == "Stream error: overloaded_error - Overloaded"

    def test_malformed_json(self, classify):
        event = classify("data: {not json")
        assert event.type == EventType.ERROR
        assert event.malformed is True


# ============================================================
# Gemini Parser Tests
# ============================================================

class TestGeminiClassifier:
    """Test classification of Gemini array elements."""

    @pytest.fixture
    def classify(self):
        return get_adapter("gemini").classify_frame

    def test_candidate_text(self, classify):
        frame = json.dumps({"candidates": [{"content": {"parts": [{"text": "Hola"}], "role": "model"}}]})
        assert classify(frame) == StreamEvent.content("Hola")

    def test_array_uses_first_element(self, classify):
        frame = json.dumps([
            {"candidates": [{"content": {"parts": [{"text": "first"}]}}]},
            {"candidates": [{"content": {"parts": [{"text": "second"}]}}]},
        ])
        assert classify(frame) == StreamEvent.content("first")

    def test_empty_array_is_ignored(self, classify):
        assert classify("[]").type == EventType.IGNORE

    def test_finish_without_text_is_ignored(self, classify):
        frame = json.dumps({"candidates": [{"finishReason": "STOP"}], "usageMetadata": {}})
        assert classify(frame).type == EventType.IGNORE

    def test_error_object(self, classify):
        event = classify(json.dumps({"error": {"code": 429, "message": "Quota exceeded"}}))

        assert event.type == EventType.ERROR
        assert event.message == "API Error in stream: Quota exceeded"

    def test_truncated_value(self, classify):
        event = classify('{"candidates": [{"content"')

        assert event.type == EventType.ERROR
        assert event.malformed is True
