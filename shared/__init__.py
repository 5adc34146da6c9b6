"""
LogAllot - Shared Library
=========================

Constants, event schemas and utilities shared by the analysis service
and its collaborators.
"""

__version__ = "0.1.0"
__author__ = "LogAllot Team"
