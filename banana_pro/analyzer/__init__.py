from .gemini_client import VisualAnalyzer, AnalysisError, describe_api_error, is_retryable_error

__all__ = [
    "VisualAnalyzer",
    "AnalysisError",
    "describe_api_error",
    "is_retryable_error",
]
