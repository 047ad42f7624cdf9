"""
Command line interface for loudbatch
"""

from .main import main, create_parser

__all__ = ['main', 'create_parser']
