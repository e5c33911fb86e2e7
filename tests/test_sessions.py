import io
import random
import tempfile
import threading
import unittest
from pathlib import Path

from mentalmath.app import explain
from mentalmath.app.events import EventBus
from mentalmath.errors import SessionError
from mentalmath.session import (
    FixedCountSession,
    ManualScheduler,
    Phase,
    ThreadingScheduler,
    TimedSession,
    parse_answer,
)
from storage.schema import OperandRange, Operator, OperatorPolicy, Settings
from storage.store import MatchStore


def settings_with(*ops: Operator) -> Settings:
    s = Settings()
    for op in Operator:
        s.operators[op] = OperatorPolicy(enabled=op in ops, range=s.operators[op].range)
    return s


class _NoCancel:
    def cancel(self) -> None:
        pass


class LeakyScheduler(ManualScheduler):
    """Cancelling is a no-op, like a timer that already fired."""

    def call_later(self, delay, fn):
        super().call_later(delay, fn)
        return _NoCancel()


class SessionTestCase(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.store = MatchStore(Path(tmp.name) / "matches.json")
        self.sched = ManualScheduler()
        self.rng = random.Random(42)

    def kwargs(self):
        return {"scheduler": self.sched, "clock": self.sched.monotonic, "rng": self.rng}

    def answer_correctly(self, session):
        return session.submit(str(session.current.correct_answer))

    def answer_wrongly(self, session):
        return session.submit(str(session.current.correct_answer + 1))


class ParseAnswerTests(unittest.TestCase):
    def test_parse(self) -> None:
        self.assertEqual(parse_answer(" 42 "), 42)
        self.assertEqual(parse_answer("-3"), -3)
        self.assertIsNone(parse_answer(""))
        self.assertIsNone(parse_answer("   "))
        self.assertIsNone(parse_answer("abc"))
        self.assertIsNone(parse_answer("4.5"))
        self.assertIsNone(parse_answer(None))


class FixedCountSessionTests(SessionTestCase):
    def make(self, count=10, **kw) -> FixedCountSession:
        return FixedCountSession(self.store, Settings(), question_count=count, **self.kwargs(), **kw)

    def test_all_correct_match(self) -> None:
        session = self.make(10)
        self.assertTrue(session.start())
        self.assertEqual(session.total, 10)
        for _ in range(10):
            result = self.answer_correctly(session)
            self.assertTrue(result.graded and result.correct)
            self.sched.advance(1.0)
        self.assertIs(session.phase, Phase.SUMMARY)
        m = session.match
        self.assertEqual((m.score, m.attempted, m.count, m.total), (10, 10, 10, 10))
        self.assertEqual(m.time_taken, 10)
        self.assertEqual(len(self.store.all()), 1)
        self.assertEqual(self.store.all()[0].id, m.id)

    def test_mixed_answers(self) -> None:
        session = self.make(4)
        session.start()
        for i in range(4):
            if i % 2:
                self.answer_correctly(session)
            else:
                result = self.answer_wrongly(session)
                self.assertFalse(result.correct)
                self.assertEqual(result.correct_answer, session.current.correct_answer)
            self.sched.advance(1.0)
        m = session.match
        self.assertEqual((m.score, m.attempted), (2, 4))
        self.assertEqual([q.is_correct for q in m.questions], [False, True, False, True])

    def test_blank_and_non_numeric_input_is_ignored(self) -> None:
        session = self.make(3)
        session.start()
        for raw in ("", "   ", "abc", None):
            self.assertFalse(session.submit(raw).graded)
        self.assertEqual(session.attempted, 0)
        self.assertFalse(session.current.is_graded)

    def test_input_locked_during_reveal(self) -> None:
        session = self.make(3)
        session.start()
        first = session.current
        self.answer_wrongly(session)
        self.assertFalse(session.submit(str(first.correct_answer)).graded)
        self.assertEqual((session.score, session.attempted), (0, 1))
        self.sched.advance(0.5)
        self.assertIs(session.current, first)
        self.sched.advance(0.5)
        self.assertEqual(session.index, 1)
        self.assertIsNot(session.current, first)

    def test_question_time_is_recorded(self) -> None:
        session = self.make(2)
        session.start()
        self.sched.advance(2.5)
        self.answer_correctly(session)
        self.assertEqual(session.questions[0].time_taken_ms, 2500)

    def test_start_refused_without_operators(self) -> None:
        session = FixedCountSession(self.store, settings_with(), question_count=5, **self.kwargs())
        self.assertFalse(session.start())
        self.assertIs(session.phase, Phase.SETUP)
        self.assertIsNone(session.current)
        self.assertEqual(self.store.all(), [])

    def test_reset_cancels_pending_advance(self) -> None:
        session = self.make(1)
        session.start()
        self.answer_correctly(session)
        self.assertEqual(self.sched.pending(), 1)
        session.reset()
        self.assertEqual(self.sched.pending(), 0)
        self.sched.advance(5)
        self.assertIs(session.phase, Phase.SETUP)
        self.assertEqual(self.store.all(), [])

    def test_restart_after_summary(self) -> None:
        session = self.make(1)
        session.start()
        self.answer_correctly(session)
        self.sched.advance(1.0)
        self.assertIs(session.phase, Phase.SUMMARY)
        self.assertFalse(session.submit("1").graded)
        self.assertTrue(session.start())
        self.assertEqual((session.score, session.attempted, session.index), (0, 0, 0))
        self.assertIsNone(session.match)

    def test_uses_settings_question_count(self) -> None:
        session = FixedCountSession(self.store, Settings(question_count=3), **self.kwargs())
        session.start()
        self.assertEqual(session.total, 3)

    def test_has_no_countdown(self) -> None:
        with self.assertRaises(SessionError):
            self.make(1).tick()

    def test_difficulty_is_recorded(self) -> None:
        session = self.make(1, difficulty="hard")
        session.start()
        self.answer_correctly(session)
        self.sched.advance(1.0)
        self.assertEqual(self.store.all()[0].difficulty, "hard")

    def test_phase_events(self) -> None:
        bus = EventBus()
        phases = []
        bus.subscribe("phase", lambda p: phases.append(p.value))
        session = FixedCountSession(self.store, Settings(), question_count=1, events=bus, **self.kwargs())
        session.start()
        self.answer_correctly(session)
        self.sched.advance(1.0)
        self.assertEqual(phases, ["playing", "summary"])


class TimedSessionTests(SessionTestCase):
    def make(self, duration=30, settings=None, **kw) -> TimedSession:
        return TimedSession(self.store, settings or Settings(), duration=duration, **self.kwargs(), **kw)

    def test_wrong_answer_then_timeout(self) -> None:
        session = self.make(30)
        session.start()
        self.answer_wrongly(session)
        for _ in range(30):
            session.tick()
        self.assertIs(session.phase, Phase.SUMMARY)
        m = session.match
        self.assertEqual((m.score, m.attempted, m.timer_duration), (0, 1, 30))
        self.assertEqual(len(m.questions), 1)
        self.assertIs(m.questions[0].is_correct, False)
        self.assertEqual(len(self.store.all()), 1)

    def test_correct_answer_moves_on_immediately(self) -> None:
        session = self.make()
        session.start()
        first = session.current
        self.answer_correctly(session)
        self.assertIsNot(session.current, first)
        self.assertFalse(session.locked)
        self.assertEqual(self.sched.pending(), 0)

    def test_wrong_answer_locks_input(self) -> None:
        session = self.make()
        session.start()
        first = session.current
        self.answer_wrongly(session)
        self.assertTrue(session.locked)
        self.assertFalse(session.submit(str(first.correct_answer)).graded)
        self.sched.advance(0.5)
        self.assertTrue(session.locked)
        self.sched.advance(0.3)
        self.assertFalse(session.locked)
        self.assertIsNot(session.current, first)
        self.assertEqual((session.score, session.attempted), (0, 1))

    def test_log_is_kept_while_playing(self) -> None:
        session = self.make()
        session.start()
        for _ in range(3):
            self.answer_correctly(session)
        self.assertEqual(len(session.log), 3)
        self.assertEqual(session.score, 3)

    def test_ungraded_last_problem_is_not_logged(self) -> None:
        session = self.make(2)
        session.start()
        self.answer_correctly(session)
        session.tick()
        session.tick()
        m = session.match
        self.assertEqual((m.score, m.attempted, len(m.questions)), (1, 1, 1))

    def test_countdown(self) -> None:
        bus = EventBus()
        seen = []
        bus.subscribe("tick", seen.append)
        session = self.make(3, events=bus)
        session.start()
        self.assertEqual(session.remaining, 3)
        session.tick()
        self.assertEqual(session.remaining, 2)
        session.tick()
        session.tick()
        self.assertEqual(seen, [2, 1, 0])
        self.assertIs(session.phase, Phase.SUMMARY)

    def test_finishes_once(self) -> None:
        finished = []
        bus = EventBus()
        bus.subscribe("finished", finished.append)
        session = self.make(1, events=bus)
        session.start()
        session.tick()
        session.tick()
        self.assertEqual(len(finished), 1)
        self.assertEqual(len(self.store.all()), 1)

    def test_timeout_while_locked_cancels_pending(self) -> None:
        session = self.make(1)
        session.start()
        self.answer_wrongly(session)
        session.tick()
        self.assertEqual(self.sched.pending(), 0)
        self.assertFalse(session.locked)
        self.sched.advance(1.0)
        self.assertIs(session.phase, Phase.SUMMARY)
        self.assertEqual(session.match.attempted, 1)

    def test_reset_during_lockout(self) -> None:
        session = self.make()
        session.start()
        self.answer_wrongly(session)
        session.reset()
        self.assertEqual(self.sched.pending(), 0)
        self.sched.advance(1.0)
        self.assertIs(session.phase, Phase.SETUP)
        self.assertIsNone(session.current)
        self.assertEqual(session.log, [])

    def test_stale_callback_is_ignored(self) -> None:
        self.sched = LeakyScheduler()
        session = self.make()
        session.start()
        self.answer_wrongly(session)
        session.reset()
        session.start()
        fresh = session.current
        self.sched.advance(1.0)
        self.assertIs(session.current, fresh)
        self.assertEqual(session.attempted, 0)

    def test_tick_ignored_outside_play(self) -> None:
        session = self.make(5)
        session.tick()
        self.assertIs(session.phase, Phase.SETUP)
        self.assertEqual(self.store.all(), [])

    def test_uses_settings_duration(self) -> None:
        session = TimedSession(self.store, Settings(duration=45), **self.kwargs())
        session.start()
        self.assertEqual(session.remaining, 45)

    def test_single_operator_pool(self) -> None:
        s = settings_with(Operator.DIVIDE)
        s.operators[Operator.DIVIDE] = OperatorPolicy(range=OperandRange(min1=2, max1=12, min2=2, max2=100))
        session = self.make(settings=s)
        session.start()
        for _ in range(50):
            self.assertIs(session.current.operator, Operator.DIVIDE)
            self.answer_correctly(session)

    def test_start_refused_without_operators(self) -> None:
        session = self.make(settings=settings_with())
        self.assertFalse(session.start())
        self.assertIs(session.phase, Phase.SETUP)


class ExplainTraceTests(SessionTestCase):
    def tearDown(self) -> None:
        explain.enable(False)

    def test_milestones_are_traced(self) -> None:
        buf = io.StringIO()
        explain.enable(True, stream=buf)
        session = TimedSession(self.store, Settings(), duration=1, **self.kwargs())
        session.start()
        self.answer_correctly(session)
        session.tick()
        lines = buf.getvalue().splitlines()
        events = [line.split("] ", 1)[1].split(" :: ", 1)[0] for line in lines]
        self.assertEqual(events, ["session_started", "graded", "time_up", "session_finished"])
        self.assertTrue(lines[1].startswith("[EXPLAIN +"))
        self.assertIn('"correct":true', lines[1])

    def test_silent_when_disabled(self) -> None:
        buf = io.StringIO()
        explain.enable(False, stream=buf)
        session = TimedSession(self.store, Settings(), duration=1, **self.kwargs())
        session.start()
        session.tick()
        self.assertEqual(buf.getvalue(), "")


class ThreadingSchedulerTests(unittest.TestCase):
    def test_wrong_answer_delay_with_real_timer(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        bus = EventBus()
        shown = threading.Event()
        session = TimedSession(
            MatchStore(Path(tmp.name) / "matches.json"),
            Settings(),
            duration=30,
            wrong_answer_delay=0.01,
            scheduler=ThreadingScheduler(),
            events=bus,
        )
        session.start()
        bus.subscribe("question", lambda p: shown.set())
        session.submit(str(session.current.correct_answer + 1))
        self.assertTrue(shown.wait(timeout=5))
        self.assertFalse(session.locked)
        session.reset()


if __name__ == "__main__":
    unittest.main()
