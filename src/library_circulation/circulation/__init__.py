"""
Circulation transactions: staging items into a loan session and the engine
that commits, returns and renews loans.
"""

from .engine import CirculationEngine, build_engine
from .staging import LoanStaging

__all__ = ["CirculationEngine", "LoanStaging", "build_engine"]
