"""Run a decision analysis in-process and show that a restart skips finished steps.

Usage:
    PERSPECTIVE_MODEL=test python guides/decision_workflow_example.py
"""

import asyncio
import tempfile
from pathlib import Path

from perspective.config import load_config
from perspective.contracts import DecisionInput
from perspective.service import build_services


async def main():
    """Analyze one decision against a SQLite-backed ledger."""
    db_path = Path(tempfile.mkdtemp()) / "perspective.db"
    config = load_config()
    config.database_url = f"sqlite://{db_path}"
    config.polling.interval = 0.2

    services = build_services(config=config)

    instance_id = await services.registry.create(
        DecisionInput(prompt="Should I change careers?", user_id="user_1")
    )
    print(f"Created instance {instance_id}")

    result = await services.poller.wait(
        instance_id,
        max_attempts=config.polling.max_attempts,
        interval=config.polling.interval,
    )
    print(f"Poll result: {result.kind}")

    for step in await services.repository.list_steps(instance_id):
        print(f"  {step.step_name}: recorded {step.recorded_at}")

    # A fresh set of services over the same database resumes nothing:
    # the instance is terminal and every step result is on record.
    restarted = build_services(config=config)
    print(f"Resumed after restart: {await restarted.registry.resume_incomplete()}")

    for entry in await services.decisions.list_decisions("user_1"):
        print(f"[{entry.timestamp}] {entry.prompt} -> {entry.analysis}")


if __name__ == "__main__":
    asyncio.run(main())
