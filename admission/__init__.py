"""
Admission Simulation Backend

Greedy priority-ranked allocation of applicants to programs per cycle date,
passing score computation, and the per-date result cache.
"""

__version__ = "1.0.0"
