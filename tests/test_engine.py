"""Tests for the alert engine: detectors, arbitration and idle calm."""
from datetime import timedelta

import pytest

from chatpulse.config.models import AlertsConfig
from chatpulse.detection.detectors import detect_spam
from chatpulse.detection.engine import CALM_MESSAGE, AlertEngine
from chatpulse.models.alerts import (
    AlertMetrics,
    AlertPriority,
    AlertTone,
    DetectorKind,
    EngineState,
)
from chatpulse.models.chat import Tone
from chatpulse.models.metrics import BaselineSet, BaselineSnapshot


@pytest.fixture
def engine(alerts_config):
    """Returns an AlertEngine with default settings."""
    return AlertEngine(config=alerts_config)


@pytest.fixture
def ready_rate_baseline():
    """Baselines with a ready message-rate EMA of 10 and std 2."""
    return BaselineSet(
        message_rate=BaselineSnapshot(short=10.0, long=10.0, std=2.0, samples=300.0, ready=True),
    )


def of_kind(alerts, kind):
    return [alert for alert in alerts if alert.kind == kind]


class TestSpam:
    """Spam detector through the engine."""

    def test_spam_surge_is_high_priority(self, engine, make_message, at):
        """Test that three spam messages produce a HIGH spam alert."""
        batch = [
            make_message(i, author=f"bot{i}", text="free followers at bestsite.com", tone=Tone.SPAM)
            for i in range(3)
        ]

        alerts = engine.evaluate(
            batch,
            AlertMetrics(message_rate=3, unique_chatters=3, newcomers=3),
            BaselineSet(),
            session_age_seconds=5,
            now=at(2),
        )

        spam = of_kind(alerts, DetectorKind.SPAM)
        assert len(spam) == 1
        assert spam[0].message == "Spam surge—moderators should clean chat."
        assert spam[0].priority == AlertPriority.HIGH
        assert spam[0].tone == AlertTone.NEGATIVE
        assert spam[0].emitted_at == at(2)

    def test_untagged_spam_is_inferred(self, engine, make_message, at):
        """Test that untagged messages are classified by heuristics before detection."""
        batch = [
            make_message(i, author=f"bot{i}", text="free followers at bestsite.com")
            for i in range(3)
        ]

        alerts = engine.evaluate(
            batch, AlertMetrics(message_rate=3, unique_chatters=3), BaselineSet(), 5, at(2)
        )

        assert [a.priority for a in of_kind(alerts, DetectorKind.SPAM)] == [AlertPriority.HIGH]

    def test_escalation_bypasses_cooldown_once(self, engine, make_message, at):
        """Test MEDIUM -> HIGH escalation, then suppression of the repeat."""
        spam = [
            make_message(i, author=f"bot{i}", text="free followers at bestsite.com", tone=Tone.SPAM)
            for i in range(4)
        ]
        metrics = AlertMetrics(message_rate=3, unique_chatters=3)

        first = engine.evaluate(spam[:1], metrics, BaselineSet(), 5, at(0))
        second = engine.evaluate(spam[:3], metrics, BaselineSet(), 7, at(2))
        third = engine.evaluate(spam[:4], metrics, BaselineSet(), 8, at(3))

        assert [a.priority for a in of_kind(first, DetectorKind.SPAM)] == [AlertPriority.MEDIUM]
        assert of_kind(first, DetectorKind.SPAM)[0].message == "Spam is popping up—keep an eye on chat."
        assert [a.priority for a in of_kind(second, DetectorKind.SPAM)] == [AlertPriority.HIGH]
        assert of_kind(third, DetectorKind.SPAM) == []

    def test_only_newest_messages_are_considered(self, make_message, at):
        """Test that the batch is capped to the newest messages."""
        engine = AlertEngine(config=AlertsConfig(max_batch_messages=2), detectors=[detect_spam])
        batch = [
            make_message(0, author="bot", text="buy now", tone=Tone.SPAM),
            make_message(2, author="a", text="hi", tone=Tone.NEUTRAL),
            make_message(1, author="b", text="hey", tone=Tone.NEUTRAL),
        ]

        assert engine.evaluate(batch, AlertMetrics(), BaselineSet(), 60, at(2)) == []


class TestToneDip:
    """Toxic and negative mood alerts."""

    def test_repeated_toxicity_is_hostile(self, engine, make_message, at):
        """Test that two toxic messages give the HIGH hostile alert."""
        batch = [
            make_message(0, author="troll1", text="you are trash", tone=Tone.TOXIC),
            make_message(1, author="troll2", text="you are trash", tone=Tone.TOXIC),
        ]

        alerts = engine.evaluate(
            batch, AlertMetrics(message_rate=2, unique_chatters=2), BaselineSet(), 60, at(1)
        )

        dip = of_kind(alerts, DetectorKind.TONE_DIP)
        assert len(dip) == 1
        assert dip[0].message == "Chat is turning hostile—step in quickly."
        assert dip[0].priority == AlertPriority.HIGH

    def test_single_toxic_message_is_medium(self, engine, make_message, at):
        """Test that one recent toxic message gives the milder alert."""
        batch = [make_message(0, author="troll", text="you are trash", tone=Tone.TOXIC)]

        alerts = engine.evaluate(
            batch, AlertMetrics(message_rate=1, unique_chatters=1), BaselineSet(), 60, at(5)
        )

        dip = of_kind(alerts, DetectorKind.TONE_DIP)
        assert dip[0].message == "Toxic language detected—reset the tone fast."
        assert dip[0].priority == AlertPriority.MEDIUM

    def test_stale_toxicity_does_not_alert(self, engine, make_message, at):
        """Test that toxic messages well before the newest message are ignored."""
        batch = [
            make_message(0, author="troll", text="you are trash", tone=Tone.TOXIC),
            make_message(40, author="fan", text="nice play", tone=Tone.NEUTRAL),
        ]

        alerts = engine.evaluate(
            batch, AlertMetrics(message_rate=2, unique_chatters=2), BaselineSet(), 60, at(40)
        )

        assert of_kind(alerts, DetectorKind.TONE_DIP) == []

    def test_toxic_window_is_measured_from_newest_message(self, engine, make_message, at):
        """Test that a quiet stretch after a toxic message does not age it out."""
        batch = [make_message(0, author="troll", text="you are trash", tone=Tone.TOXIC)]

        alerts = engine.evaluate(
            batch, AlertMetrics(message_rate=1, unique_chatters=1), BaselineSet(), 60, at(40)
        )

        dip = of_kind(alerts, DetectorKind.TONE_DIP)
        assert dip[0].message == "Toxic language detected—reset the tone fast."
        assert dip[0].emitted_at == at(0)

    def test_critical_message_dips_mood(self, engine, make_message, at):
        """Test that a fresh critical message gives a mood dip alert."""
        batch = [
            make_message(0, author="a", text="nice", tone=Tone.NEUTRAL),
            make_message(1, author="b", text="this is boring", tone=Tone.CRITICAL),
        ]

        alerts = engine.evaluate(
            batch, AlertMetrics(message_rate=2, unique_chatters=2), BaselineSet(), 60, at(2)
        )

        dip = of_kind(alerts, DetectorKind.TONE_DIP)
        assert dip[0].message == "Mood dipped—address concerns before they spread."
        assert dip[0].priority == AlertPriority.HIGH


class TestNewcomers:
    """First-time chatter greetings."""

    def test_greets_newest_first_timer(self, engine, make_message, at):
        """Test the fresh greeting lists other newcomers."""
        batch = [
            make_message(0, author="viewer42", text="hello", tone=Tone.NEUTRAL),
            make_message(5, author="viewer7", text="hey all", tone=Tone.NEUTRAL),
        ]
        metrics = AlertMetrics(message_rate=2, unique_chatters=2, newcomers=2)

        alerts = engine.evaluate(batch, metrics, BaselineSet(), 5, at(5))

        greetings = of_kind(alerts, DetectorKind.NEW_CHATTER)
        assert len(greetings) == 1
        assert greetings[0].message == "Say hi to viewer7! Also new: viewer42."
        assert greetings[0].priority == AlertPriority.LOW
        assert greetings[0].emitted_at == at(5)

    def test_known_authors_are_not_greeted_again(self, engine, make_message, at):
        """Test that authors seen in a previous cycle are remembered."""
        batch = [
            make_message(0, author="viewer42", text="hello", tone=Tone.NEUTRAL),
            make_message(5, author="viewer7", text="hey all", tone=Tone.NEUTRAL),
        ]
        metrics = AlertMetrics(message_rate=2, unique_chatters=2, newcomers=2)
        engine.evaluate(batch, metrics, BaselineSet(), 5, at(5))

        alerts = engine.evaluate(batch, metrics, BaselineSet(), 6, at(6))

        assert of_kind(alerts, DetectorKind.NEW_CHATTER) == []

    def test_single_chatter_gets_no_fresh_greeting(self, engine, make_message, at):
        """Test that a lone chatter falls through to the rolling greeting."""
        batch = [make_message(0, author="viewer42", text="hello", tone=Tone.NEUTRAL)]

        alerts = engine.evaluate(
            batch, AlertMetrics(message_rate=1, unique_chatters=1, newcomers=1), BaselineSet(), 5, at(0)
        )

        greetings = of_kind(alerts, DetectorKind.NEW_CHATTER)
        assert greetings[0].message == "viewer42 just hopped into chat for the first time."


class TestVelocity:
    """Velocity surge variants."""

    def test_positive_surge_with_hype(self, engine, make_message, at, ready_rate_baseline):
        """Test that a strong surge in a hyped chat is a HIGH positive alert."""
        batch = [
            make_message(590 + i, author=f"fan{i}", text="LETS GO", tone=Tone.HYPE)
            for i in range(5)
        ]
        metrics = AlertMetrics(message_rate=30, unique_chatters=10, sentiment=0.4)

        alerts = engine.evaluate(batch, metrics, ready_rate_baseline, 600, at(600))

        surge = of_kind(alerts, DetectorKind.VELOCITY_SURGE)
        assert len(surge) == 1
        assert surge[0].message == "Chat is surging—lean into the moment!"
        assert surge[0].priority == AlertPriority.HIGH
        assert surge[0].tone == AlertTone.POSITIVE

        hype = of_kind(alerts, DetectorKind.HYPE)
        assert hype[0].message == "Chat is hyped—amplify the momentum!"
        assert hype[0].priority == AlertPriority.HIGH

    def test_sour_surge_is_negative(self, engine, make_message, at, ready_rate_baseline):
        """Test that a surge with critical messages is the negative variant."""
        batch = [
            make_message(590 + i, author=f"fan{i}", text="this is boring", tone=Tone.CRITICAL)
            for i in range(3)
        ]
        metrics = AlertMetrics(message_rate=30, unique_chatters=10)

        alerts = engine.evaluate(batch, metrics, ready_rate_baseline, 600, at(600))

        surge = of_kind(alerts, DetectorKind.VELOCITY_SURGE)
        assert surge[0].message == "Chat is spiking but the mood is sour—acknowledge the frustration."
        assert surge[0].tone == AlertTone.NEGATIVE

    def test_no_surge_early_in_session(self, engine, make_message, at, ready_rate_baseline):
        """Test that surges are ignored in the first 30 seconds."""
        batch = [make_message(i, author=f"fan{i}", text="LETS GO", tone=Tone.HYPE) for i in range(5)]
        metrics = AlertMetrics(message_rate=30, unique_chatters=10)

        alerts = engine.evaluate(batch, metrics, ready_rate_baseline, 10, at(10))

        assert of_kind(alerts, DetectorKind.VELOCITY_SURGE) == []

    def test_momentum_drop(self, engine, at, ready_rate_baseline):
        """Test that a rate far below a ready baseline is a momentum drop."""
        metrics = AlertMetrics(message_rate=2, unique_chatters=4)

        alerts = engine.evaluate([], metrics, ready_rate_baseline, 600, at(600))

        drop = of_kind(alerts, DetectorKind.MOMENTUM_DROP)
        assert drop[0].message == "Momentum is cooling—try a new prompt."
        assert drop[0].priority == AlertPriority.MEDIUM


class TestIdleCalm:
    """Calm notice after a quiet stretch."""

    def test_calm_after_ninety_idle_seconds(self, engine, at):
        """Test that an idle session older than 90 seconds gets one calm notice."""
        alerts = engine.evaluate([], AlertMetrics(), BaselineSet(), 91, at(91))

        assert len(alerts) == 1
        assert alerts[0].kind == DetectorKind.CALM
        assert alerts[0].message == CALM_MESSAGE
        assert alerts[0].priority == AlertPriority.LOW
        assert alerts[0].tone == AlertTone.NEUTRAL

    def test_calm_respects_cooldown(self, engine, at):
        """Test that calm repeats only after its cooldown."""
        engine.evaluate([], AlertMetrics(), BaselineSet(), 91, at(91))

        assert engine.evaluate([], AlertMetrics(), BaselineSet(), 101, at(101)) == []
        again = engine.evaluate([], AlertMetrics(), BaselineSet(), 152, at(152))
        assert [a.kind for a in again] == [DetectorKind.CALM]

    def test_no_calm_early_in_session(self, engine, at):
        """Test that a young idle session gets no calm notice."""
        assert engine.evaluate([], AlertMetrics(), BaselineSet(), 30, at(30)) == []

    def test_activity_restarts_idle_clock(self, engine, at):
        """Test that idle time is measured from the end of activity."""
        engine.evaluate([], AlertMetrics(message_rate=1, unique_chatters=1), BaselineSet(), 100, at(100))

        assert engine.evaluate([], AlertMetrics(), BaselineSet(), 150, at(150)) == []
        assert engine.evaluate([], AlertMetrics(), BaselineSet(), 191, at(191)) == []
        calm = engine.evaluate([], AlertMetrics(), BaselineSet(), 250, at(250))
        assert [a.kind for a in calm] == [DetectorKind.CALM]


class TestArbitration:
    """Dedup, budget, ordering and state."""

    @staticmethod
    def _fixed(kind, message, seconds_ago=0.0, priority=AlertPriority.MEDIUM, scope=None):
        def detector(ctx):
            return ctx.candidate(
                kind,
                message,
                AlertTone.NEUTRAL,
                priority,
                30.0,
                timestamp=ctx.now - timedelta(seconds=seconds_ago),
                scope=scope,
            )
        return detector

    def test_duplicate_messages_collapse(self, at):
        """Test that candidates with the same tone, priority and text are emitted once."""
        engine = AlertEngine(detectors=[
            self._fixed(DetectorKind.SPAM, "Same text", scope="a"),
            self._fixed(DetectorKind.SPAM, "same text ", scope="b"),
        ])

        alerts = engine.evaluate([], AlertMetrics(message_rate=1), BaselineSet(), 60, at(60))

        assert len(alerts) == 1

    def test_budget_caps_emissions(self, at):
        """Test that at most the budget is emitted for a tiny audience."""
        engine = AlertEngine(detectors=[
            self._fixed(DetectorKind.SPAM, f"alert {i}", scope=str(i)) for i in range(10)
        ])

        alerts = engine.evaluate([], AlertMetrics(message_rate=1), BaselineSet(), 60, at(60))

        assert len(alerts) == 5

    def test_newest_first_then_priority(self, at):
        """Test presentation order."""
        engine = AlertEngine(detectors=[
            self._fixed(DetectorKind.SPAM, "older high", seconds_ago=5, priority=AlertPriority.HIGH),
            self._fixed(DetectorKind.TONE_DIP, "newer low", priority=AlertPriority.LOW),
            self._fixed(DetectorKind.CONSTRUCTIVE, "newer high", priority=AlertPriority.HIGH),
        ])

        alerts = engine.evaluate([], AlertMetrics(message_rate=1), BaselineSet(), 60, at(60))

        assert [a.message for a in alerts] == ["newer high", "newer low", "older high"]

    def test_state_transitions_and_reset(self, make_message, at):
        """Test COLD -> SUPPRESSED -> ACTIVE -> COLD."""
        engine = AlertEngine(detectors=[detect_spam])
        assert engine.state(at(0)) == EngineState.COLD

        engine.evaluate(
            [make_message(0, author="bot", text="buy now", tone=Tone.SPAM)],
            AlertMetrics(message_rate=1, unique_chatters=1),
            BaselineSet(),
            60,
            at(0),
        )
        assert engine.state(at(1)) == EngineState.SUPPRESSED
        assert engine.state(at(31)) == EngineState.ACTIVE
        assert len(engine.presented(at(1))) == 1

        engine.reset()
        assert engine.state(at(31)) == EngineState.COLD
        assert engine.presented(at(31)) == []

    def test_history_stays_within_window(self, make_message, at):
        """Test that a long session keeps only recently emitted alerts."""
        engine = AlertEngine(detectors=[detect_spam])

        for step in range(600):
            seconds = step * 31
            engine.evaluate(
                [make_message(seconds, author=f"bot{step}", text="buy now", tone=Tone.SPAM)],
                AlertMetrics(message_rate=1, unique_chatters=1),
                BaselineSet(),
                seconds,
                at(seconds),
            )

        assert 1 <= len(engine.history) <= 4
