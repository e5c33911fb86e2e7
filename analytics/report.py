from __future__ import annotations

"""Plain-text formatting of stats and matches for the terminal."""

from typing import List, Optional, Union

from storage.schema import FixedCountMatch, TimedMatch

from .stats import Stats

AnyMatch = Union[FixedCountMatch, TimedMatch]


def format_duration(seconds: Optional[int]) -> str:
    """``m:ss``, or an em dash when unknown."""
    if not seconds:
        return "—"
    m, s = divmod(int(seconds), 60)
    return f"{m}:{s:02d}"


def describe_mode(match: AnyMatch) -> str:
    if isinstance(match, TimedMatch):
        return f"timed {format_duration(match.timer_duration)}"
    label = f"{match.count} questions"
    if match.difficulty:
        label += f", {match.difficulty}"
    return label


def format_history_line(match: AnyMatch) -> str:
    when = match.timestamp.strftime("%Y-%m-%d %H:%M") if match.timestamp else "?"
    return f"{match.id}  {when}  {describe_mode(match):<22} {match.score}/{match.total} ({match.accuracy:.0f}%)"


def format_match(match: AnyMatch) -> str:
    lines = [
        f"Match {match.id}",
        f"Date: {match.timestamp.isoformat() if match.timestamp else '?'}",
        f"Mode: {describe_mode(match)}",
        f"Score: {match.score}/{match.total} ({match.accuracy:.0f}%)",
    ]
    if isinstance(match, FixedCountMatch):
        lines.append(f"Time: {match.time_taken}s")
    lines.append("Questions:")
    for idx, q in enumerate(match.questions, 1):
        mark = "ok" if q.is_correct else "x"
        answer = "-" if q.user_answer is None else q.user_answer
        lines.append(f"  #{idx:<3} {q.question} = {q.correct_answer}   your answer: {answer} [{mark}]")
    return "\n".join(lines)


def format_stats(stats: Stats) -> str:
    """Return a human-readable summary of stats."""
    if stats.total_matches == 0:
        return "No data yet. Play some games to see your stats."
    lines: List[str] = [
        f"Matches: {stats.total_matches}",
        f"Questions answered: {stats.total_questions_answered}",
        f"Overall accuracy: {stats.overall_accuracy:.1f}%",
        f"Average score: {stats.average_score:.1f}",
        f"Best score: {stats.best_score}",
        f"Best accuracy: {stats.best_accuracy:.1f}%",
        f"Questions per minute: {stats.average_qpm:.1f}",
    ]
    if stats.accuracy_by_operation:
        lines.append("Accuracy by operation:")
        for op, acc in sorted(stats.accuracy_by_operation.items()):
            lines.append(f"  {op:<9} {acc:.1f}%")
    if stats.score_by_duration:
        lines.append("Score by duration:")
        for key, b in stats.score_by_duration.items():
            lines.append(f"  {key:<8} best {b.best}  avg {b.avg:.1f}  matches {b.matches}")
    if stats.score_by_difficulty:
        lines.append("Score by difficulty:")
        for key, b in stats.score_by_difficulty.items():
            lines.append(f"  {key:<8} best {b.best}  avg {b.avg:.1f}  matches {b.matches}")
    return "\n".join(lines)
