"""Tests for individual detectors over a hand-built DetectionContext."""
import pytest

from chatpulse.config.models import AlertsConfig
from chatpulse.detection.authors import AuthorMemory
from chatpulse.detection.detectors import (
    ClassifiedMessage,
    build_context,
    detect_audience_summary,
    detect_constructive,
    detect_hype,
    detect_laughter,
    detect_newcomers,
    detect_returning_audience,
    detect_support,
)
from chatpulse.models.alerts import AlertMetrics, AlertPriority, AlertTone, DetectorKind
from chatpulse.models.chat import Tone
from chatpulse.models.metrics import BaselineSet, BaselineSnapshot


@pytest.fixture
def make_context(at):
    """Factory fixture: (seconds, author, tone) triples to a DetectionContext."""
    def _make(
        batch,
        metrics,
        baseline=None,
        session_age=600.0,
        known_authors=(),
        now=None,
    ):
        messages = [
            ClassifiedMessage(
                author=author,
                text="message",
                timestamp=at(seconds),
                tone=tone,
                confidence=0.7,
            )
            for seconds, author, tone in batch
        ]
        authors = AuthorMemory()
        if known_authors:
            authors.remember(known_authors, at(0))
        return build_context(
            messages=messages,
            metrics=metrics,
            baseline=baseline or BaselineSet(),
            session_age_seconds=session_age,
            now=now or (messages[-1].timestamp if messages else at(0)),
            settings=AlertsConfig(),
            authors=authors,
        )
    return _make


def lively(unique=5, rate=12, sentiment=0.3):
    return AlertMetrics(message_rate=rate, unique_chatters=unique, sentiment=sentiment)


class TestPositiveToneSpikes:
    """Hype, laughter and support detectors."""

    def test_hype_priority_scales_with_count(self, make_context, at):
        """Test that three hype messages are HIGH and one is MEDIUM."""
        many = make_context([(40 + i, f"fan{i}", Tone.HYPE) for i in range(3)], lively())
        one = make_context([(40, "fan0", Tone.HYPE)], lively())

        alert = detect_hype(many)
        assert alert.key.kind == DetectorKind.HYPE
        assert alert.message == "Chat is hyped—amplify the momentum!"
        assert alert.priority == AlertPriority.HIGH
        assert alert.tone == AlertTone.POSITIVE
        assert alert.timestamp == at(42)
        assert detect_hype(one).priority == AlertPriority.MEDIUM

    def test_laughter(self, make_context):
        """Test that humor messages produce the laughter alert."""
        ctx = make_context([(40, "fan0", Tone.HUMOR)], lively())

        alert = detect_laughter(ctx)

        assert alert.message == "Chat is laughing—lean into the bit!"
        assert alert.priority == AlertPriority.MEDIUM

    def test_support(self, make_context):
        """Test that supportive messages produce the support alert."""
        ctx = make_context([(40 + i, f"fan{i}", Tone.SUPPORTIVE) for i in range(3)], lively())

        alert = detect_support(ctx)

        assert alert.message == "Viewers are showing love—acknowledge them!"
        assert alert.priority == AlertPriority.MEDIUM

    @pytest.mark.parametrize(
        "metrics,session_age",
        [
            (lively(), 10.0),
            (lively(unique=2), 600.0),
            (lively(unique=250), 600.0),
            (lively(rate=5), 600.0),
        ],
        ids=["early-session", "too-few-chatters", "huge-audience", "slow-chat"],
    )
    def test_gates(self, make_context, metrics, session_age):
        """Test that session age, chatter count and pace gate positive spikes."""
        ctx = make_context([(40, "fan0", Tone.HYPE)], metrics, session_age=session_age)

        assert detect_hype(ctx) is None

    def test_ready_baseline_needs_rate_above_normal(self, make_context):
        """Test that with a ready baseline the rate z-score must reach 0.8."""
        baseline = BaselineSet(
            message_rate=BaselineSnapshot(short=10.0, long=10.0, std=2.0, samples=300.0, ready=True),
        )
        calm = make_context([(40, "fan0", Tone.HYPE)], lively(rate=11), baseline=baseline)
        busy = make_context([(40, "fan0", Tone.HYPE)], lively(rate=12), baseline=baseline)

        assert detect_hype(calm) is None
        assert detect_hype(busy) is not None

    def test_negative_contamination_blocks_lift(self, make_context):
        """Test that a trailing critical message suppresses positive spikes."""
        ctx = make_context(
            [(40, "fan0", Tone.HYPE), (41, "fan1", Tone.HUMOR), (42, "grump", Tone.CRITICAL)],
            lively(),
        )

        assert detect_hype(ctx) is None
        assert detect_laughter(ctx) is None

    def test_latest_positive_overrides_older_negativity(self, make_context):
        """Test that a positive newest message still allows the lift."""
        ctx = make_context(
            [(40, "grump", Tone.CRITICAL), (41, "fan0", Tone.HYPE)],
            lively(),
        )

        assert detect_hype(ctx) is not None


class TestConstructive:
    """Suggestions and feedback."""

    def test_single_suggestion_is_low(self, make_context, at):
        """Test that one constructive message is a LOW alert."""
        ctx = make_context([(40, "helper", Tone.CONSTRUCTIVE)], lively())

        alert = detect_constructive(ctx)

        assert alert.message == "Chat is offering suggestions—acknowledge the feedback."
        assert alert.priority == AlertPriority.LOW
        assert alert.tone == AlertTone.NEUTRAL
        assert alert.timestamp == at(40)

    def test_three_suggestions_are_medium(self, make_context):
        """Test that three constructive messages raise the priority."""
        ctx = make_context([(40 + i, f"helper{i}", Tone.CONSTRUCTIVE) for i in range(3)], lively())

        assert detect_constructive(ctx).priority == AlertPriority.MEDIUM

    def test_suppressed_when_toxicity_dominates(self, make_context):
        """Test that toxic messages at least as many as suggestions suppress it."""
        ctx = make_context(
            [(40, "helper", Tone.CONSTRUCTIVE), (41, "troll1", Tone.TOXIC), (42, "troll2", Tone.TOXIC)],
            lively(),
        )

        assert detect_constructive(ctx) is None

    def test_survives_when_suggestions_outnumber_toxicity(self, make_context):
        """Test that suggestions outnumbering toxic messages still alert."""
        ctx = make_context(
            [(40, "helper1", Tone.CONSTRUCTIVE), (41, "helper2", Tone.CONSTRUCTIVE), (42, "troll", Tone.TOXIC)],
            lively(),
        )

        assert detect_constructive(ctx) is not None


class TestAudience:
    """Returning audience, pulse summary and newcomer variants."""

    def test_returning_audience(self, make_context):
        """Test that many familiar names in a busy chat are called out."""
        batch = [(i, f"regular{i}", Tone.NEUTRAL) for i in range(15)]

        familiar = make_context(batch, AlertMetrics(message_rate=15, unique_chatters=20))
        thin = make_context(batch, AlertMetrics(message_rate=15, unique_chatters=16))

        alert = detect_returning_audience(familiar)
        assert alert.message == "Lots of familiar names are active—shout them out."
        assert alert.priority == AlertPriority.LOW
        assert detect_returning_audience(thin) is None

    def test_returning_audience_needs_fifteen_authors(self, make_context):
        """Test that small batches never trigger the returning-audience alert."""
        batch = [(i, f"regular{i}", Tone.NEUTRAL) for i in range(14)]

        ctx = make_context(batch, AlertMetrics(message_rate=14, unique_chatters=40))

        assert detect_returning_audience(ctx) is None

    def test_audience_summary_for_large_audience(self, make_context):
        """Test the pulse summary lists pace, newcomers and sentiment."""
        baseline = BaselineSet(
            message_rate=BaselineSnapshot(short=10.0, long=10.0, std=2.0, samples=300.0, ready=True),
        )
        metrics = AlertMetrics(message_rate=15, unique_chatters=250, newcomers=3, sentiment=0.25)

        alert = detect_audience_summary(make_context([], metrics, baseline=baseline))

        assert alert.message == "Pulse summary: 50% vs typical pace · 3 newcomers · sentiment 25%"
        assert alert.priority == AlertPriority.MEDIUM

    def test_audience_summary_steady_and_small(self, make_context):
        """Test the steady summary and the minimum audience size."""
        steady = make_context([], AlertMetrics(message_rate=15, unique_chatters=200))
        small = make_context([], AlertMetrics(message_rate=15, unique_chatters=199))

        assert detect_audience_summary(steady).message == "Pulse summary: chat steady."
        assert detect_audience_summary(small) is None

    @pytest.mark.parametrize(
        "count,priority",
        [(2, AlertPriority.LOW), (3, AlertPriority.MEDIUM), (6, AlertPriority.HIGH)],
    )
    def test_fresh_greeting_priority_scale(self, make_context, count, priority):
        """Test that more fresh first-timers raise the greeting priority."""
        batch = [(i, f"newbie{i}", Tone.NEUTRAL) for i in range(count)]

        ctx = make_context(batch, AlertMetrics(message_rate=count, unique_chatters=count, newcomers=count))
        alert = detect_newcomers(ctx)

        assert alert.message.startswith(f"Say hi to newbie{count - 1}!")
        assert alert.priority == priority

    def test_newcomer_wave_names_older_newcomers(self, make_context):
        """Test the wave variant when the newcomers are outside the fresh window."""
        batch = [
            (0, "newbie1", Tone.NEUTRAL),
            (10, "newbie2", Tone.NEUTRAL),
            (400, "regular", Tone.NEUTRAL),
        ]
        metrics = AlertMetrics(message_rate=1, unique_chatters=4, newcomers=2)

        alert = detect_newcomers(make_context(batch, metrics, known_authors=["regular"]))

        assert alert.message == "New chatters arriving: newbie1, newbie2"
        assert alert.key.scope == "batch"
        assert alert.priority == AlertPriority.MEDIUM
        assert alert.tone == AlertTone.NEUTRAL

    def test_newcomer_wave_without_names(self, make_context):
        """Test the anonymous wave when every batch author is already known."""
        batch = [(i, f"regular{i}", Tone.NEUTRAL) for i in range(3)]
        metrics = AlertMetrics(message_rate=3, unique_chatters=20, newcomers=10)

        alert = detect_newcomers(
            make_context(batch, metrics, known_authors=[f"regular{i}" for i in range(3)])
        )

        assert alert.message == "A wave of new chatters just joined."
        assert alert.priority == AlertPriority.HIGH
