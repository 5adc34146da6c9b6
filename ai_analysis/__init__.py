"""
LogAllot - AI Analysis Service
==============================

Turns free-text error logs into a structured root-cause analysis by
orchestrating several third-party LLM providers.
"""
