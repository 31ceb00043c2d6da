"""
Question generation orchestration
"""

from .generation_service import get_generation_service

__all__ = ["get_generation_service"]
