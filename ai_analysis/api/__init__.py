"""
LogAllot - AI Analysis API Package
"""
