"""
LogAllot - AI Analysis Core Package
"""

from ai_analysis.core.config_resolver import ConfigResolver, InMemorySettingsStore, EdgeConfigClient
from ai_analysis.core.dispatcher import ResilientDispatcher
from ai_analysis.core.pipeline import LogAnalysisPipeline, get_analysis_pipeline
from ai_analysis.core.report_builder import build_report
from ai_analysis.core.traceback_parser import parse_traceback

__all__ = [
    "ConfigResolver",
    "InMemorySettingsStore",
    "EdgeConfigClient",
    "ResilientDispatcher",
    "LogAnalysisPipeline",
    "get_analysis_pipeline",
    "build_report",
    "parse_traceback",
]
