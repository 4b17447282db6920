"""Tests for the channel supervisor."""
from collections import defaultdict

import pytest

from chatpulse.config.models import AppConfig, BreakerScope, ClassifierConfig
from chatpulse.interfaces.update_sink import UpdateSink
from chatpulse.services.supervisor import ChannelSupervisor


class CollectingSink(UpdateSink):
    """Sink that keeps everything it receives."""

    def __init__(self):
        self.snapshots = defaultdict(list)
        self.alerts = defaultdict(list)
        self.presented = {}

    async def publish_snapshot(self, channel, snapshot):
        self.snapshots[channel].append(snapshot)

    async def publish_alerts(self, channel, alerts):
        self.alerts[channel].extend(alerts)

    async def publish_presented(self, channel, alerts):
        self.presented[channel] = list(alerts)


@pytest.fixture
def sink():
    """Returns a CollectingSink."""
    return CollectingSink()


@pytest.mark.asyncio
async def test_channels_are_processed_independently(sink, make_event):
    """Test that each channel gets its own processor and metrics."""
    supervisor = ChannelSupervisor(AppConfig(), sink=sink)
    await supervisor.start()

    for i in range(3):
        await supervisor.submit(make_event(i, author=f"a{i}", channel="alpha"))
    await supervisor.submit(make_event(0, author="b0", channel="beta"))
    await supervisor.join()

    assert sorted(supervisor.channels) == ["alpha", "beta"]
    assert [s.message_rate for s in sink.snapshots["alpha"]] == [1, 2, 3]
    assert [s.message_rate for s in sink.snapshots["beta"]] == [1]
    assert supervisor.processor("ALPHA").state.processed == 3
    assert sink.alerts["beta"][0].message == "b0 just hopped into chat for the first time."
    assert [a.message for a in sink.presented["beta"]] == [
        "b0 just hopped into chat for the first time."
    ]

    await supervisor.stop()


@pytest.mark.asyncio
async def test_submit_requires_start(make_event):
    """Test that events are refused before start and after stop."""
    supervisor = ChannelSupervisor(AppConfig(), sink=CollectingSink())

    with pytest.raises(RuntimeError):
        await supervisor.submit(make_event(0))

    await supervisor.start()
    await supervisor.stop()
    with pytest.raises(RuntimeError):
        await supervisor.submit(make_event(0))


@pytest.mark.asyncio
async def test_breaker_shared_across_channels_by_default(sink, make_event):
    """Test that process scope shares one quota breaker."""
    supervisor = ChannelSupervisor(AppConfig(), sink=sink)
    await supervisor.start()
    await supervisor.submit(make_event(0, channel="alpha"))
    await supervisor.submit(make_event(0, channel="beta"))
    await supervisor.join()

    alpha = supervisor.processor("alpha").resolver.breaker
    beta = supervisor.processor("beta").resolver.breaker
    assert alpha is beta

    await supervisor.stop()


@pytest.mark.asyncio
async def test_breaker_per_channel_scope(sink, make_event):
    """Test that channel scope gives every channel its own breaker."""
    config = AppConfig(classifier=ClassifierConfig(breaker_scope=BreakerScope.CHANNEL))
    supervisor = ChannelSupervisor(config, sink=sink)
    await supervisor.start()
    await supervisor.submit(make_event(0, channel="alpha"))
    await supervisor.submit(make_event(0, channel="beta"))
    await supervisor.join()

    alpha = supervisor.processor("alpha").resolver.breaker
    beta = supervisor.processor("beta").resolver.breaker
    assert alpha is not beta
    assert alpha.name == "alpha"

    await supervisor.stop()


@pytest.mark.asyncio
async def test_reset_is_ordered_after_submitted_events(sink, make_event):
    """Test that a reset applies after already-queued events."""
    supervisor = ChannelSupervisor(AppConfig(), sink=sink)
    await supervisor.start()
    await supervisor.submit(make_event(0, channel="alpha"))
    await supervisor.submit(make_event(1, channel="alpha"))
    await supervisor.reset_channel("alpha")
    await supervisor.join()

    assert supervisor.processor("alpha").state.processed == 0

    await supervisor.submit(make_event(2, channel="alpha"))
    await supervisor.join()
    assert supervisor.processor("alpha").state.processed == 1
    assert sink.snapshots["alpha"][-1].message_rate == 1

    await supervisor.stop()


@pytest.mark.asyncio
async def test_reset_unknown_channel_is_noop():
    """Test that resetting a channel with no worker does nothing."""
    supervisor = ChannelSupervisor(AppConfig(), sink=CollectingSink())
    await supervisor.start()

    await supervisor.reset_channel("nobody")

    assert supervisor.channels == []
    await supervisor.stop()
