"""Tests for per-message and aggregate signal extraction."""

from datetime import timedelta

import pytest

from rapport.signals import (
    communication_balance,
    count_emojis,
    extract_signals,
    is_question,
    language_mix,
    message_sentiment,
    message_theme,
    message_topics,
    sentiment_label,
)


class TestMessageSentiment:
    def test_positive_words(self):
        assert message_sentiment("Thanks, this is great!") == pytest.approx(0.4)

    def test_negative_words(self):
        assert message_sentiment("so sorry, that is awful") == pytest.approx(-0.4)

    def test_mixed_cancel_out(self):
        assert message_sentiment("good and bad") == pytest.approx(0.0)

    def test_clamped(self):
        text = " ".join(["love"] * 10)
        assert message_sentiment(text) == 1.0
        assert message_sentiment(" ".join(["hate"] * 10)) == -1.0

    def test_whole_words_only(self):
        """'goodbye' is not 'good'."""
        assert message_sentiment("goodbye") == 0.0


class TestSentimentLabel:
    @pytest.mark.parametrize("score,label", [
        (0.8, "very positive"),
        (0.5, "positive"),
        (0.2, "positive"),
        (0.1, "neutral"),
        (0.0, "neutral"),
        (-0.3, "negative"),
        (-0.5, "very negative"),
        (-1.0, "very negative"),
    ])
    def test_bands(self, score, label):
        assert sentiment_label(score) == label


class TestMessageTopics:
    def test_each_category_once(self):
        """Several Work keywords still count Work once."""
        assert message_topics("the boss moved the meeting and the deadline") == ["Work"]

    def test_multiple_categories_in_table_order(self):
        assert message_topics("Flight booked, mom says hi") == ["Family", "Travel"]

    def test_whole_word_match(self):
        """'workshop' is not 'work', 'planet' is not 'plan'."""
        assert message_topics("the workshop on planets") == []

    def test_multi_word_keyword(self):
        assert "Plans" in message_topics("are you free next week?")


class TestThemesAndCounts:
    def test_first_theme_only(self):
        """'sorry' (conflict) is checked before 'haha' (humor)."""
        assert message_theme("sorry haha") == "conflict"

    def test_emoji_keyword_theme(self):
        assert message_theme("\U0001F602\U0001F602") == "humor"

    def test_general_when_nothing_matches(self):
        assert message_theme("ok") == "general"

    def test_count_emojis(self):
        assert count_emojis("hi \U0001F600 \U0001F44D ❤") == 3
        assert count_emojis("no emoji here :)") == 0

    def test_question(self):
        assert is_question("coming?")
        assert not is_question("coming.")

    def test_language_mix(self):
        mix = language_mix(["బాగున్నావా how are you"])
        assert mix == {"telugu": 25.0, "english": 75.0}

    def test_language_mix_empty(self):
        assert language_mix(["123 !!"]) == {"telugu": 0.0, "english": 0.0}


class TestCommunicationBalance:
    @pytest.mark.parametrize("user,contact,expected", [
        (10, 10, "balanced"),
        (11, 10, "balanced"),
        (12, 10, "user-dominant"),
        (8, 10, "contact-dominant"),
        (5, 0, "user-dominant"),
        (0, 0, "contact-dominant"),
    ])
    def test_bands(self, user, contact, expected):
        assert communication_balance(user, contact) == expected


class TestExtractSignals:
    def test_counts_and_sentiment(self, make_messages):
        messages = make_messages([
            (0, "I love this", True),
            (1, "great", False),
            (2, "ok", True),
        ])
        signals = extract_signals(messages)
        assert signals["message_count"] == 3
        assert signals["contact_count"] == 2
        assert signals["user_count"] == 1
        assert signals["sentiment_avg"] == pytest.approx(0.4 / 3)
        assert signals["sentiment_label"] == "positive"

    def test_response_times_only_for_alternating_turns(self, make_messages):
        messages = make_messages([
            (0, "a", True),
            (2, "b", True),     # same party: no sample
            (5, "c", False),    # user replies after 3 min
            (65, "d", True),    # contact replies after 1 h
        ])
        signals = extract_signals(messages)
        assert signals["response_samples"]["user"] == [180.0]
        assert signals["response_samples"]["contact"] == [3600.0]
        assert signals["response_avg"] == pytest.approx((180 + 3600) / 2)

    def test_response_window_excludes_long_gaps(self, make_messages):
        messages = make_messages([(0, "a", True), (60 * 25, "b", False)])
        signals = extract_signals(messages)
        assert signals["response_samples"] == {"user": [], "contact": []}
        assert signals["response_avg"] == 0.0

    def test_initiations_new_day_and_long_silence(self, make_messages):
        messages = make_messages([
            (0, "morning", True),           # first message: contact initiates
            (10, "hey", False),
            (10 + 180, "back again", False),  # 3h silence: user initiates
            (60 * 24, "next day", True),    # new day: contact initiates
        ])
        signals = extract_signals(messages)
        assert signals["initiations"] == {"user": 1, "contact": 2}
        assert signals["initiation_ratio"] == pytest.approx(1 / 3)

    def test_custom_gaps(self, make_messages):
        messages = make_messages([(0, "a", True), (40, "b", False)])
        signals = extract_signals(
            messages,
            initiation_gap=timedelta(minutes=30),
            response_window=timedelta(minutes=30),
        )
        assert signals["initiations"] == {"user": 1, "contact": 1}
        assert signals["response_samples"]["user"] == []

    def test_topic_and_theme_counts(self, make_messages):
        messages = make_messages([
            (0, "meeting with the boss", True),
            (1, "haha the project again", False),
            (2, "see you at dinner with mom", True),
        ])
        signals = extract_signals(messages)
        assert signals["topic_counts"]["Work"] == 2
        assert signals["topic_counts"]["Family"] == 1
        assert signals["topic_counts"]["Social"] == 1
        assert signals["topic_counts"]["Travel"] == 0
        assert signals["theme_counts"]["humor"] == 1
        assert signals["theme_counts"]["general"] == 2

    def test_auxiliary_telugu_keywords(self, make_messages):
        messages = make_messages([(0, "amma made pappu", True)])
        signals = extract_signals(messages)
        assert signals["auxiliary_counts"]["Family"] == 1
        assert signals["auxiliary_counts"]["Food"] == 1

    def test_empty_input(self):
        signals = extract_signals([])
        assert signals["message_count"] == 0
        assert signals["sentiment_avg"] == 0.0
        assert signals["sentiment_label"] == "neutral"
        assert signals["length_avg"] == 0.0
