"""Government contracting opportunity tracker.

Pulls opportunity records from SAM.gov, reconciles them into a canonical
store, scores them against tenant company profiles and evaluates them
against user-defined alert rules.
"""

__version__ = "0.1.0"
