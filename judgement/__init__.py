"""Round engine package for Judgement score keeping."""

__all__ = [
    "cards",
    "errors",
    "state",
    "planner",
    "bidding",
    "tricks",
    "scoring",
    "game",
    "roster",
    "predictions",
    "rules_schema",
    "service",
]
