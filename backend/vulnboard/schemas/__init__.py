"""
Schema Exports

Response envelopes used by the API layer and the services that build them.
"""

from vulnboard.schemas.vulnerability import VulnerabilityPage

__all__ = ["VulnerabilityPage"]
