"""
NyayaGPT Document Chat Flow
"""

from .flow import DocumentChatFlow

__all__ = ["DocumentChatFlow"]
