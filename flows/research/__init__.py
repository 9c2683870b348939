"""
NyayaGPT Research & Analysis Flow

Resolves a query or case citation to one document and answers the question.
"""

from .flow import LegalResearchFlow

__all__ = ["LegalResearchFlow"]
