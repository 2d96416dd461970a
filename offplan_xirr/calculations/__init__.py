"""
Financial Calculation Engine

Pure calculation modules for off-plan property investment returns.
No I/O: every function derives its result from the values passed in.
"""

from offplan_xirr.calculations import exit_strategies, models, returns, schedule, xirr

__all__ = ["exit_strategies", "models", "returns", "schedule", "xirr"]
