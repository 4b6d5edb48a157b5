from .analyzer import SemanticAnalyzer, analyze
from .session import AnalysisSession

__all__ = [
    "AnalysisSession",
    "SemanticAnalyzer",
    "analyze",
]
