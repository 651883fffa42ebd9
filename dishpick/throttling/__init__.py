"""
Request throttling.

Responsibilities:
- Gate how often one client may request a new recommendation computation.
- Keep only time-windowed counters, evicting clients once their window empties.
"""
