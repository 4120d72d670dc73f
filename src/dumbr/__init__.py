"""
dumbr - configuration driven HTTP mock server.

Routes are read from a JSON file; each route renders a named template with
the incoming request as its context.
"""

__version__ = "1.0.0"
__build__ = "unknown"
