"""Web Search Router - tiered web search service"""

__version__ = "1.0.0"
