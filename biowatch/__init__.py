"""
Biosimilar News Monitor.

Gathers biosimilar-industry news for a keyword taxonomy and a company
watchlist, deduplicates and scores it, and serves the result to the
monitoring dashboard.
"""

__version__ = "1.0.0"
