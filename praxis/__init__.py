"""
Praxis: asynchronous plan generation.

A user submits a goal, a queued worker asks a language model for a plan,
and the plan with its ordered, XP-scored tasks is persisted for polling.
"""

__version__ = "1.0.0"
