"""Collector execution and metric normalization for a telemetry agent."""
