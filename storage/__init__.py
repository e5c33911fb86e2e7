from .schema import (
    FixedCountMatch,
    Match,
    MatchAdapter,
    OperandRange,
    Operator,
    OperatorPolicy,
    Problem,
    ProblemAlreadyGraded,
    Settings,
    TimedMatch,
    default_operator_policies,
    parse_match,
    upgrade_legacy_match,
)
from .store import MATCHES_FILE, SETTINGS_FILE, MatchStore, SettingsStore

__all__ = [
    "FixedCountMatch",
    "Match",
    "MatchAdapter",
    "OperandRange",
    "Operator",
    "OperatorPolicy",
    "Problem",
    "ProblemAlreadyGraded",
    "Settings",
    "TimedMatch",
    "default_operator_policies",
    "parse_match",
    "upgrade_legacy_match",
    "MATCHES_FILE",
    "SETTINGS_FILE",
    "MatchStore",
    "SettingsStore",
]
