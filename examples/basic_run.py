"""Basic escalation: the simplest possible LoadClimb run.

Escalates GET requests against a local server for at most 30 seconds.
The same run from the command line:

    loadclimb run http://localhost:8080/ --deadline 30
"""

from __future__ import annotations

from loadclimb import RunOutcome, run_escalation

if __name__ == "__main__":
    result = run_escalation("http://localhost:8080/", deadline=30.0)

    if result.outcome is RunOutcome.TIMEOUT:
        print(f"Target stopped keeping up at concurrency {result.concurrency}")
    else:
        print(f"No timeout after {result.rounds_completed} rounds")
