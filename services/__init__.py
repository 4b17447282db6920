"""
Service entry points for the engagement engine.

Each subdirectory contains a standalone service.

Services:
    pulse_engine: Chat event ingestion, per-channel metrics and alerting
"""
