# mdcat_generator/__init__.py
"""
MDCAT Past Paper Generator
AI-powered multiple-choice exam generation with validated output
"""

__version__ = "3.1.0"
__description__ = "MDCAT question generator backed by a generative language model"
