"""
Roadwatch backend.

Ingests vehicle and bus detection events from the mobile client,
normalizes and de-duplicates them, and serves them to the web client.
"""

__version__ = "0.1.0"
