"""
Core modules that must remain source neutral.

Keep collector transports and output format quirks out of this package.
"""

from .models import AnalysisResult, FlowRecord, SecurityFinding
from .errors import CollectionCancelled, CollectionFailed
from .analyzer import FlowAnalyzer
from .report import render
from .pipeline import AnalysisRun, run_analysis

__all__ = [
    "AnalysisResult",
    "FlowRecord",
    "SecurityFinding",
    "CollectionCancelled",
    "CollectionFailed",
    "FlowAnalyzer",
    "render",
    "AnalysisRun",
    "run_analysis",
]
