from .base import BaseSession, Phase, SubmitResult, parse_answer
from .fixed_count import FixedCountSession
from .scheduling import ClockTicker, ManualScheduler, Scheduler, ThreadingScheduler
from .timed import TimedSession

__all__ = [
    "BaseSession",
    "Phase",
    "SubmitResult",
    "parse_answer",
    "FixedCountSession",
    "TimedSession",
    "ClockTicker",
    "ManualScheduler",
    "Scheduler",
    "ThreadingScheduler",
]
