"""
Core module containing configuration, syllabus data, prompts, AI services and utilities
"""
