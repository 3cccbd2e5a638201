"""Shared constants for the decision workflow."""

STEP_FETCH_HISTORY = "fetch-history"
STEP_REASON = "reason"
STEP_PERSIST = "persist"

# Execution order of the decision pipeline
WORKFLOW_STEPS = (STEP_FETCH_HISTORY, STEP_REASON, STEP_PERSIST)

DEFAULT_MODEL_ID = "openai:gpt-4o-mini"
DEFAULT_SYSTEM_PROMPT = (
    "You are a Decision Architect. Help the user see hidden perspectives."
)
DEFAULT_HISTORY_LIMIT = 3

DEFAULT_POLL_ATTEMPTS = 40
DEFAULT_POLL_INTERVAL = 1.0

DEMO_USER_ID = "user_1"

GENERIC_ERROR_MESSAGE = "Internal Workflow Error."
