"""
Backlot - turn-based film studio management simulation.

The engine owns all studio state and advances it one week at a time:
project pipelines, talent negotiations, distribution deals, crises,
rival studios and franchise chains.
"""

__version__ = "0.4.0"
