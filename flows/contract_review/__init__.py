"""
NyayaGPT Contract Review Flow

Summarizes contract clauses and reports risks, missing clauses and revisions.
"""

from .flow import ContractReviewFlow

__all__ = ["ContractReviewFlow"]
