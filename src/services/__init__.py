"""Service modules"""
from .analyzer import Analyzer, AnalysisResult, ShortfallSummary

__all__ = ["Analyzer", "AnalysisResult", "ShortfallSummary"]
