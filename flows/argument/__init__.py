"""
NyayaGPT Argument Drafting Flow

Drafts legal arguments citing Indian authorities.
"""

from .flow import LegalArgumentFlow

__all__ = ["LegalArgumentFlow"]
