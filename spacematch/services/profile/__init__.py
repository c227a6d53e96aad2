"""
Behaviour profile system.

Profiles are rebuilt from history on every request; patterns are derived, never stored.
"""

from spacematch.services.profile.builder import ProfileBuilder
from spacematch.services.profile.patterns import BehaviorPatternAnalyzer

__all__ = ["ProfileBuilder", "BehaviorPatternAnalyzer"]
