"""
NyayaGPT Document Summarization Flow
"""

from .flow import DocumentSummaryFlow

__all__ = ["DocumentSummaryFlow"]
