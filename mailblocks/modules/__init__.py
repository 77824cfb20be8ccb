"""
mailblocks Modules
==================

Flask blueprint modules for the email editor.
"""

__all__ = ['editor']
