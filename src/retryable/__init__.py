"""retryable: async retry orchestration.

Re-invokes a unit of async work under a declarative policy: fixed or
exponential backoff with optional jitter, a retry-eligibility gate, and
a terminal error that keeps the original failure's traceback.
"""

__version__ = "1.0.0"
