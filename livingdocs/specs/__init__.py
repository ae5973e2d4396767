"""Business specs derived from documentation changes."""

from .analyzer import ChangeSpecAnalyzer
from .models import (
    BusinessSpec,
    SpecChangeAnalysis,
    SpecPriority,
    SpecStatus,
    SuggestedSpec,
)
from .store import BusinessSpecStore

__all__ = [
    'ChangeSpecAnalyzer',
    'BusinessSpec',
    'SpecChangeAnalysis',
    'SpecPriority',
    'SpecStatus',
    'SuggestedSpec',
    'BusinessSpecStore',
]
