"""External analysis provider."""
from .client import AnalysisProvider, ChatCompletionsProvider, ProviderError, ProviderPolicy

__all__ = ["AnalysisProvider", "ChatCompletionsProvider", "ProviderError", "ProviderPolicy"]
