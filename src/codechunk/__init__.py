"""
Codechunk: hierarchical, language-aware source code chunking.
"""

__version__ = "0.1.0"
