"""Tests for keyword-based message analysis."""

import pytest

from kyartu.services.analysis import (
    MessageAnalysis,
    analyze_message,
    detect_emotion,
    determine_mode,
    determine_sentiment,
    is_joke,
    mood_from_display,
)
from kyartu.services.cache.models import ConversationMode, Mood


def _categories(analysis: MessageAnalysis) -> set[str]:
    return {factor["category"] for factor in analysis.factors}


class TestAnalyzeMessage:
    def test_gratitude_is_very_positive(self):
        analysis = analyze_message("Thank you so much, this is great!")

        assert analysis.respect_change == 9.0
        assert analysis.sentiment == "very_positive"
        assert analysis.respect_delta == 0.45
        assert analysis.emotion == "happy"
        assert {"gratitude", "enthusiasm"} <= _categories(analysis)

    def test_rudeness_is_very_negative(self):
        analysis = analyze_message("you are stupid and useless")

        assert analysis.respect_change == -10.0
        assert analysis.sentiment == "very_negative"
        assert analysis.respect_delta == -0.5

    def test_question_bonus(self):
        analysis = analyze_message("how do I cook khash?")
        assert analysis.respect_change == 2.0
        assert "questions" in _categories(analysis)

    def test_caps_penalty(self):
        analysis = analyze_message("WHY ARE YOU LIKE THIS")
        assert "excessive_caps" in _categories(analysis)
        assert analysis.sentiment == "very_negative"

    def test_short_message_penalty(self):
        analysis = analyze_message("ok")
        assert analysis.respect_change == -1
        assert analysis.sentiment == "negative"

    def test_repeated_letters_bonus(self):
        analysis = analyze_message("soooo cool")
        assert analysis.respect_change == 2.5
        assert "emotional_expression" in _categories(analysis)

    @pytest.mark.parametrize("message", ["", "   "])
    def test_empty_message_is_neutral(self, message: str):
        analysis = analyze_message(message)
        assert analysis.respect_change == 0
        assert analysis.sentiment == "neutral"
        assert analysis.factors == []

    def test_confidence_grows_with_factors(self):
        assert analyze_message("Thank you so much, this is great!").confidence == pytest.approx(0.4)

    def test_to_dict(self):
        data = analyze_message("haha that was funny lol").to_dict()
        assert data["is_joke"] is True
        assert set(data) == {
            "respect_change", "sentiment", "emotion", "is_joke", "confidence", "factors",
        }


class TestHelpers:
    @pytest.mark.parametrize("change,expected", [
        (3, "very_positive"),
        (1, "positive"),
        (0, "neutral"),
        (-1, "negative"),
        (-3, "very_negative"),
    ])
    def test_sentiment_bands(self, change: float, expected: str):
        assert determine_sentiment(change) == expected

    @pytest.mark.parametrize("text,expected", [
        ("I feel so sad today", "sad"),
        ("I'm worried and nervous", "anxious"),
        ("this makes me furious", "angry"),
        ("the weather is mild", "neutral"),
    ])
    def test_emotion(self, text: str, expected: str):
        assert detect_emotion(text) == expected

    @pytest.mark.parametrize("text,expected", [
        ("knock knock", True),
        ("LMAO", True),
        ("😂", True),
        ("pass the salt", False),
    ])
    def test_joke_detection(self, text: str, expected: bool):
        assert is_joke(text) is expected

    @pytest.mark.parametrize("value,expected", [
        (100, Mood.HAPPY),
        (80, Mood.HAPPY),
        (79, Mood.NEUTRAL),
        (60, Mood.NEUTRAL),
        (40, Mood.NEUTRAL),
        (39, Mood.ANNOYED),
        (20, Mood.ANNOYED),
        (19, Mood.ANGRY),
        (0, Mood.ANGRY),
    ])
    def test_mood_thresholds(self, value: float, expected: Mood):
        assert mood_from_display(value) == expected


class TestDetermineMode:
    @pytest.mark.parametrize("message,expected", [
        ("I feel so sad and down today", ConversationMode.SUPPORTIVE),
        ("you are stupid and useless", ConversationMode.SAVAGE),
        ("how do I cook khash?", ConversationMode.EDUCATIONAL),
        ("Thank you so much, this is great!", ConversationMode.FRIENDLY),
        ("the bus left", ConversationMode.DEFAULT),
    ])
    def test_modes(self, message: str, expected: ConversationMode):
        assert determine_mode(analyze_message(message)) == expected
