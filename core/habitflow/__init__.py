"""
habitflow - Daily routines as directed graphs of trigger, habit and branch steps.

The engine is a set of pure functions from one routine snapshot to the next.
"""

__version__ = "0.1.0"
