"""metwall: a polite client for a public museum collection service.

Assembles curated grids of artwork while pacing, capping and retrying
outbound calls, caching normalized records across sessions and throttling
image loads to what the viewport is about to show.
"""

__version__ = "1.0.0"
