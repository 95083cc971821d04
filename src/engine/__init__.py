"""Engine Layer - Tiered Search Routing

This module provides the core engine layer, implementing:
- SearchOrchestrator: Main entry point for search execution
- TtlLruCache / CacheAdapter: Bounded expiring result cache
- CircuitBreakerRegistry: Per-provider failure isolation
- DailyBudget: Per-day provider call caps
- ProviderSelector / EscalationPolicy: Candidate order and basic → ai escalation
- SearchEnvelope / ToolPayload: Standardized result format
"""

from .budget import BudgetConfig, DailyBudget
from .cache import TtlLruCache
from .cache_adapter import CacheAdapter, build_cache_key
from .circuit_breaker import CircuitBreakerRegistry
from .orchestrator import SearchOrchestrator
from .result import DebugTrace, SearchEnvelope, SearchTier, ToolPayload
from .strategy import EscalationPolicy, ProviderPreset, ProviderSelector, SearchMode

__all__ = [
    "SearchOrchestrator",
    "TtlLruCache",
    "CacheAdapter",
    "build_cache_key",
    "CircuitBreakerRegistry",
    "DailyBudget",
    "BudgetConfig",
    "ProviderSelector",
    "EscalationPolicy",
    "ProviderPreset",
    "SearchMode",
    "SearchTier",
    "DebugTrace",
    "SearchEnvelope",
    "ToolPayload",
]
