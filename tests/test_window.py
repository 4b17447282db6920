"""Tests for the rolling-window aggregator."""
import pytest

from chatpulse.metrics.window import WindowAggregator
from chatpulse.models.chat import EmoteRef


@pytest.fixture
def aggregator():
    """Returns a WindowAggregator with default windows."""
    return WindowAggregator()


class TestWindowMetrics:
    """Point-in-time metrics computed on ingest."""

    def test_message_rate_counts_trailing_minute(self, aggregator, make_record):
        """Test that message_rate only counts records in the trailing 60 seconds."""
        aggregator.ingest(make_record(0, author="a"))
        aggregator.ingest(make_record(30, author="b"))
        snapshot = aggregator.ingest(make_record(61, author="c"))

        assert snapshot.message_rate == 2
        assert snapshot.unique_chatters == 3

    def test_rate_window_is_inclusive(self, aggregator, make_record):
        """Test that a record exactly 60 seconds old still counts."""
        aggregator.ingest(make_record(0, author="a"))
        snapshot = aggregator.ingest(make_record(60, author="b"))

        assert snapshot.message_rate == 2

    def test_retention_evicts_old_records(self, aggregator, make_record):
        """Test that records older than the retention window are evicted."""
        aggregator.ingest(make_record(0, author="a"))
        snapshot = aggregator.ingest(make_record(601, author="b"))

        assert snapshot.unique_chatters == 1
        assert len(aggregator.records) == 1

    def test_newcomers_use_first_seen(self, aggregator, make_record):
        """Test that an author first seen outside retention is not a newcomer."""
        aggregator.ingest(make_record(0, author="veteran"))
        aggregator.ingest(make_record(650, author="veteran"))
        snapshot = aggregator.ingest(make_record(651, author="fresh"))

        assert snapshot.unique_chatters == 2
        assert snapshot.newcomers == 1

    def test_sentiment_is_mean_over_five_minutes(self, aggregator, make_record):
        """Test that sentiment averages records in the trailing 300 seconds."""
        aggregator.ingest(make_record(0, author="a", sentiment=-1.0))
        aggregator.ingest(make_record(301, author="b", sentiment=0.5))
        snapshot = aggregator.ingest(make_record(302, author="c", sentiment=0.1))

        assert snapshot.sentiment == pytest.approx(0.3)

    def test_trend_percent_against_previous_rate(self, aggregator, make_record):
        """Test that trend_percent compares with the previous ingest."""
        aggregator.ingest(make_record(0, author="a"))
        snapshot = aggregator.ingest(make_record(1, author="b"))

        assert snapshot.trend_percent == pytest.approx(100.0)

    def test_out_of_order_record_does_not_rewind_window(self, aggregator, make_record):
        """Test that a late record is inserted without moving the reference time."""
        aggregator.ingest(make_record(100, author="a"))
        snapshot = aggregator.ingest(make_record(30, author="late"))

        assert aggregator.latest_timestamp == make_record(100).timestamp
        assert snapshot.message_rate == 1
        assert [r.author_display for r in aggregator.records] == ["late", "a"]


class TestWindowRankings:
    """Top tokens and top emotes."""

    def test_top_tokens_ranked_by_count(self, aggregator, make_record):
        """Test that the most frequent token comes first."""
        aggregator.ingest(make_record(0, tokens=("clutch", "play")))
        aggregator.ingest(make_record(1, tokens=("clutch",)))
        snapshot = aggregator.ingest(make_record(2, tokens=("clutch", "again")))

        assert snapshot.top_tokens[0].name == "clutch"
        assert snapshot.top_tokens[0].count == 3

    def test_emote_codes_excluded_from_tokens(self, aggregator, make_record):
        """Test that a top emote's code never shows up as a top token."""
        emote = EmoteRef(code="catJAM", id="555")
        aggregator.ingest(make_record(0, tokens=("catjam", "vibes"), emotes=(emote,)))
        snapshot = aggregator.ingest(make_record(1, tokens=("catjam",), emotes=(emote,)))

        assert snapshot.top_emotes[0].code == "catJAM"
        assert snapshot.top_emotes[0].count == 2
        assert "catjam" not in [t.name for t in snapshot.top_tokens]

    def test_emote_ids_excluded_from_tokens(self, aggregator, make_record):
        """Test that a token equal to a top emote's id is left out of the tokens."""
        emote = EmoteRef(code="catJAM", id="555")
        snapshot = aggregator.ingest(make_record(0, tokens=("555", "vibes"), emotes=(emote,)))

        names = [t.name for t in snapshot.top_tokens]
        assert "555" not in names
        assert "vibes" in names

    def test_ties_keep_first_encountered_order(self, aggregator, make_record):
        """Test that equal counts rank in the order they were first seen."""
        first = EmoteRef(code="catJAM", id="555")
        second = EmoteRef(code="peepoHey", id="777")
        aggregator.ingest(make_record(0, tokens=("zebra", "apple"), emotes=(first,)))
        snapshot = aggregator.ingest(make_record(1, tokens=("apple", "zebra"), emotes=(second,)))

        assert [t.name for t in snapshot.top_tokens] == ["zebra", "apple"]
        assert [e.code for e in snapshot.top_emotes] == ["catJAM", "peepoHey"]


class TestWindowLifecycle:
    """Baselines, measurement and reset."""

    def test_snapshot_carries_all_baselines(self, aggregator, make_record):
        """Test that every snapshot carries the three baselines."""
        snapshot = aggregator.ingest(make_record(0))

        assert snapshot.baseline.message_rate.long == 1.0
        assert snapshot.baseline.unique_chatters.long == 1.0
        assert snapshot.baseline.newcomers.long == 1.0
        assert snapshot.baseline.message_rate.ready is False

    def test_measure_decays_rate_without_ingest(self, aggregator, make_record, at):
        """Test that measure() reports zero rate once the minute has passed."""
        aggregator.ingest(make_record(0, author="a"))

        metrics = aggregator.measure(at(120))

        assert metrics.message_rate == 0
        assert metrics.unique_chatters == 1
        assert len(aggregator.records) == 1

    def test_timeline_point_reports_last_rate(self, aggregator, make_record, at):
        """Test that timeline_point stamps the last computed rate."""
        aggregator.ingest(make_record(0, author="a"))
        aggregator.ingest(make_record(10, author="b"))

        point = aggregator.timeline_point()

        assert point.timestamp == at(10)
        assert point.velocity == 2
        assert len(aggregator.timeline) == 2

    def test_timeline_point_requires_a_timestamp(self, aggregator):
        """Test that timeline_point before any ingest needs an explicit time."""
        with pytest.raises(ValueError):
            aggregator.timeline_point()

    def test_reset_clears_everything(self, aggregator, make_record):
        """Test that reset drops records, first-seen times and baselines."""
        record = make_record(0, author="a")
        aggregator.ingest(record)

        aggregator.reset(reason="test")

        assert aggregator.records == []
        assert aggregator.latest_timestamp is None
        assert aggregator.first_seen(record.author_key) is None
        assert aggregator.baselines().message_rate.long is None
