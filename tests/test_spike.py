"""Tests for the message-rate spike detector."""
import pytest

from chatpulse.metrics.spike import SpikeDetector
from chatpulse.models.metrics import BaselineSnapshot


@pytest.fixture
def detector():
    """Returns a SpikeDetector with default thresholds."""
    return SpikeDetector()


@pytest.fixture
def ready_baseline():
    """Ready baseline with a long EMA of 10."""
    return BaselineSnapshot(short=10.0, long=10.0, std=1.0, samples=120.0, ready=True)


@pytest.fixture
def warmup_baseline():
    """Warming-up baseline with a long EMA of 10."""
    return BaselineSnapshot(short=10.0, long=10.0, std=1.0, samples=30.0, ready=False)


class TestSpikeDetector:
    """Ratio thresholds, re-arm and history."""

    def test_emits_at_one_and_a_half_times_baseline(self, detector, ready_baseline, at):
        """Test that rate 15 against a ready baseline of 10 emits one event."""
        event = detector.evaluate(15, ready_baseline, at(0))

        assert event is not None
        assert event.ratio_to_baseline == pytest.approx(1.5)
        assert event.title == "Message spike detected"
        assert event.detail == "Velocity is 150% of baseline."
        assert event.timestamp == at(0)

    def test_rearm_suppresses_within_twenty_seconds(self, detector, ready_baseline, at):
        """Test that a second spike inside the re-arm window is suppressed."""
        assert detector.evaluate(15, ready_baseline, at(0)) is not None
        assert detector.evaluate(15, ready_baseline, at(10)) is None
        assert detector.evaluate(15, ready_baseline, at(20)) is None
        assert detector.evaluate(15, ready_baseline, at(21)) is not None

    def test_one_event_per_rearm_window_over_a_minute(self, detector, ready_baseline, at):
        """Test that a sustained spike emits once per 20-second window."""
        events = [detector.evaluate(15, ready_baseline, at(s)) for s in range(0, 60)]

        assert len([e for e in events if e is not None]) == 3

    def test_ready_threshold_is_1_4(self, detector, ready_baseline, at):
        """Test the ready threshold boundary."""
        assert detector.evaluate(13.9, ready_baseline, at(0)) is None
        assert detector.evaluate(14, ready_baseline, at(1)) is not None

    def test_warmup_threshold_is_1_8(self, detector, warmup_baseline, at):
        """Test that warmup baselines need a larger ratio."""
        assert detector.evaluate(15, warmup_baseline, at(0)) is None
        assert detector.evaluate(18, warmup_baseline, at(1)) is not None

    def test_zero_baseline_never_spikes(self, detector, at):
        """Test that a baseline without a positive long EMA cannot spike."""
        baseline = BaselineSnapshot(short=0.0, long=0.0, std=0.0, samples=300.0, ready=False)

        assert detector.evaluate(50, baseline, at(0)) is None
        assert detector.evaluate(50, BaselineSnapshot.empty(), at(1)) is None

    def test_history_newest_first_and_capped(self, ready_baseline, at):
        """Test that history keeps the newest events first up to its size."""
        detector = SpikeDetector(history_size=2)
        for s in (0, 30, 60):
            detector.evaluate(15, ready_baseline, at(s))

        history = detector.history
        assert len(history) == 2
        assert history[0].timestamp == at(60)
        assert history[1].timestamp == at(30)

    def test_reset_rearms_immediately(self, detector, ready_baseline, at):
        """Test that reset clears history and the re-arm timer."""
        detector.evaluate(15, ready_baseline, at(0))

        detector.reset()

        assert detector.history == []
        assert detector.evaluate(15, ready_baseline, at(1)) is not None
