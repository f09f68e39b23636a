"""Escalation engine: request executor, round controller and listener."""
