"""
Live chat engagement analytics.

A real-time engine that turns a stream of chat messages into engagement
metrics, adaptive baselines, velocity spikes and prioritised alerts for the
streamer.

This package provides:
- Data models for chat events, records, snapshots and alerts
- Rolling-window metrics with adaptive baselines and spike detection
- Tone classification (remote with heuristic fallback)
- An alert engine with cooldown arbitration
- A per-channel pipeline and asyncio supervisor
- Configuration management
"""

__version__ = "0.1.0"
