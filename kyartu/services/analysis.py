"""Keyword-based message analysis driving respect, mood and mode changes.

Scores a user message on the 0-100 display scale used by the respect meter
UI; ``respect_delta`` converts that to the cached [0,5] scale.
"""

import re
from dataclasses import dataclass, field
from typing import Any

from kyartu.services.cache.constants import RESPECT_DISPLAY_FACTOR
from kyartu.services.cache.models import ConversationMode, Mood


@dataclass(frozen=True)
class PatternGroup:
    keywords: tuple[str, ...]
    phrases: tuple[str, ...]
    weight: float


POSITIVE_PATTERNS: dict[str, PatternGroup] = {
    "gratitude": PatternGroup(
        keywords=("thank", "thanks", "grateful", "appreciate", "awesome", "amazing",
                  "wonderful", "fantastic", "excellent", "brilliant"),
        phrases=("thank you", "thanks a lot", "much appreciated", "you're amazing",
                 "great job", "well done"),
        weight=3,
    ),
    "politeness": PatternGroup(
        keywords=("please", "kindly", "would you", "could you", "may i", "excuse me",
                  "sorry", "pardon"),
        phrases=("if you don't mind", "would you please", "could you help", "may i ask"),
        weight=2,
    ),
    "encouragement": PatternGroup(
        keywords=("good", "nice", "cool", "interesting", "helpful", "useful", "smart",
                  "clever", "impressive"),
        phrases=("good point", "that's helpful", "makes sense", "i understand", "that works"),
        weight=2,
    ),
    "enthusiasm": PatternGroup(
        keywords=("love", "like", "enjoy", "excited", "happy", "glad", "pleased", "delighted"),
        phrases=("i love this", "this is great", "i'm excited", "looking forward"),
        weight=1,
    ),
}

NEGATIVE_PATTERNS: dict[str, PatternGroup] = {
    "rudeness": PatternGroup(
        keywords=("stupid", "dumb", "idiot", "moron", "useless", "worthless", "pathetic",
                  "terrible", "awful", "horrible"),
        phrases=("you're stupid", "this is dumb", "what a waste", "completely useless",
                 "total garbage"),
        weight=-5,
    ),
    "aggression": PatternGroup(
        keywords=("shut up", "damn", "crap", "bullshit", "ridiculous", "absurd"),
        phrases=("shut the hell up", "this is bullshit", "what the hell", "are you kidding"),
        weight=-4,
    ),
    "dismissiveness": PatternGroup(
        keywords=("whatever", "boring", "lame", "meh", "blah", "ugh", "seriously"),
        phrases=("i don't care", "this is boring", "waste of time", "not interested"),
        weight=-2,
    ),
    "impatience": PatternGroup(
        keywords=("hurry", "faster", "slow", "quick", "immediately", "asap"),
        phrases=("hurry up", "come on", "take forever", "so slow", "right now"),
        weight=-1,
    ),
}

QUESTION_WORDS = ("how", "what", "when", "where", "why", "who", "which")
MAX_QUESTION_BONUS = 3
CAPS_THRESHOLD = 0.3
CAPS_WEIGHT = -2
SHORT_MESSAGE_LENGTH = 5

EMOTION_KEYWORDS: dict[str, tuple[str, ...]] = {
    "happy": ("happy", "joy", "excited", "great", "awesome", "amazing", "wonderful", "love"),
    "sad": ("sad", "depressed", "down", "upset", "disappointed", "hurt", "crying", "miserable"),
    "angry": ("angry", "mad", "furious", "pissed", "annoyed", "frustrated", "rage", "hate"),
    "anxious": ("anxious", "worried", "nervous", "scared", "afraid", "panic", "stress"),
}

JOKE_MARKERS = ("joke", "funny", "haha", "lol", "lmao", "rofl", "knock knock", "😂", "🤣")

_REPEATED_CHARS = re.compile(r"(.)\1{2,}")


@dataclass
class MessageAnalysis:
    """Result of analyzing one user message."""

    respect_change: float  # display scale (0-100)
    sentiment: str  # very_positive, positive, neutral, negative, very_negative
    emotion: str = "neutral"
    is_joke: bool = False
    confidence: float = 0.0
    factors: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "respect_change": round(self.respect_change, 4),
            "sentiment": self.sentiment,
            "emotion": self.emotion,
            "is_joke": self.is_joke,
            "confidence": round(self.confidence, 2),
            "factors": self.factors,
        }

    @property
    def respect_delta(self) -> float:
        """Change on the cached [0,5] respect scale."""
        return round(self.respect_change / RESPECT_DISPLAY_FACTOR, 4)


def _score_patterns(
    text: str,
    patterns: dict[str, PatternGroup],
    factors: list[dict[str, Any]],
) -> float:
    total = 0.0
    for category, group in patterns.items():
        score = 0.0
        matches: list[str] = []
        for keyword in group.keywords:
            if keyword in text:
                score += group.weight
                matches.append(keyword)
        for phrase in group.phrases:
            if phrase in text:
                score += group.weight * 1.5
                matches.append(phrase)
        if score:
            total += score
            factors.append({"category": category, "score": score, "matches": matches})
    return total


def determine_sentiment(respect_change: float) -> str:
    if respect_change > 2:
        return "very_positive"
    if respect_change > 0:
        return "positive"
    if respect_change < -2:
        return "very_negative"
    if respect_change < 0:
        return "negative"
    return "neutral"


def detect_emotion(text: str) -> str:
    """Dominant emotion by keyword count, ``neutral`` when nothing matches."""
    lowered = text.lower()
    scores = {
        emotion: sum(lowered.count(keyword) for keyword in keywords)
        for emotion, keywords in EMOTION_KEYWORDS.items()
    }
    emotion, score = max(scores.items(), key=lambda item: item[1])
    return emotion if score > 0 else "neutral"


def is_joke(text: str) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in JOKE_MARKERS)


def analyze_message(message: str) -> MessageAnalysis:
    """Score a user message for respect, sentiment, emotion and humor."""
    if not message or not message.strip():
        return MessageAnalysis(respect_change=0.0, sentiment="neutral")

    text = message.lower().strip()
    factors: list[dict[str, Any]] = []
    change = _score_patterns(text, POSITIVE_PATTERNS, factors)
    change += _score_patterns(text, NEGATIVE_PATTERNS, factors)

    question_marks = message.count("?")
    question_words = sum(1 for word in QUESTION_WORDS if word in text)
    if question_marks or question_words:
        score = float(min(question_marks + question_words, MAX_QUESTION_BONUS))
        change += score
        factors.append({"category": "questions", "score": score, "matches": []})

    letters = [char for char in message if char.isascii() and char.isalpha()]
    if letters:
        caps_ratio = sum(1 for char in letters if char.isupper()) / len(letters)
        if caps_ratio > CAPS_THRESHOLD:
            score = CAPS_WEIGHT * (caps_ratio - CAPS_THRESHOLD) * 10
            change += score
            factors.append({
                "category": "excessive_caps",
                "score": score,
                "matches": [f"{round(caps_ratio * 100)}% caps"],
            })

    if len(text) < SHORT_MESSAGE_LENGTH and "?" not in text:
        change -= 1
        factors.append({"category": "too_short", "score": -1, "matches": []})

    repeated = _REPEATED_CHARS.findall(text)
    if repeated:
        score = len(repeated) * 0.5
        change += score
        factors.append({"category": "emotional_expression", "score": score, "matches": repeated})

    return MessageAnalysis(
        respect_change=change,
        sentiment=determine_sentiment(change),
        emotion=detect_emotion(message),
        is_joke=is_joke(message),
        confidence=min(len(factors) * 0.2, 1.0),
        factors=factors,
    )


def mood_from_display(value: float) -> Mood:
    """Map a 0-100 respect display value to Kyartu's mood."""
    if value >= 80:
        return Mood.HAPPY
    if value >= 40:
        return Mood.NEUTRAL
    if value >= 20:
        return Mood.ANNOYED
    return Mood.ANGRY


def determine_mode(analysis: MessageAnalysis) -> ConversationMode:
    """Persona tone suggested by a message."""
    if analysis.emotion in ("sad", "anxious"):
        return ConversationMode.SUPPORTIVE
    if analysis.emotion == "angry" or analysis.sentiment == "very_negative":
        return ConversationMode.SAVAGE
    if any(factor["category"] == "questions" for factor in analysis.factors):
        return ConversationMode.EDUCATIONAL
    if analysis.sentiment in ("positive", "very_positive"):
        return ConversationMode.FRIENDLY
    return ConversationMode.DEFAULT
