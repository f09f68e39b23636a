"""LoadClimb: escalate concurrent HTTP load until the target times out."""

from __future__ import annotations

from loadclimb._internal.config import EngineConfig
from loadclimb.engine.escalation import EscalationEngine, RunOutcome, RunResult
from loadclimb.engine.runner import run_escalation
from loadclimb.engine.signals import FailureKind, FailureReport
from loadclimb.transport.http import HttpTransport

__version__ = "0.1.0"

__all__ = [
    "EngineConfig",
    "EscalationEngine",
    "FailureKind",
    "FailureReport",
    "HttpTransport",
    "RunOutcome",
    "RunResult",
    "run_escalation",
]
