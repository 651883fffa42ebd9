"""
Menu recommendation engine.

Responsibilities:
- Fetch one catalog snapshot per request from the venue's catalog store.
- Exclude items the guest must not or cannot be served.
- Score and rank dishes against the guest's intent with deterministic heuristics.
- Explain each pick in one sentence and pair a single drink with the top dish.
"""
