import unittest

from app.models import AnalysisStatus
from app.services.status_machine import InvalidStatusTransition, StatusStateMachine


class TestStatusStateMachine(unittest.TestCase):
    def test_happy_path(self):
        machine = StatusStateMachine("img-1")
        machine.transition(AnalysisStatus.PROCESSING)
        machine.transition(AnalysisStatus.COMPLETED)
        self.assertTrue(machine.is_terminal)
        self.assertEqual(
            machine.history,
            [AnalysisStatus.PENDING, AnalysisStatus.PROCESSING, AnalysisStatus.COMPLETED],
        )

    def test_processing_can_fail(self):
        machine = StatusStateMachine("img-1", AnalysisStatus.PROCESSING)
        self.assertEqual(machine.transition(AnalysisStatus.FAILED), AnalysisStatus.FAILED)

    def test_cannot_skip_processing(self):
        machine = StatusStateMachine("img-1")
        self.assertFalse(machine.can_transition(AnalysisStatus.COMPLETED))
        with self.assertRaises(InvalidStatusTransition):
            machine.transition(AnalysisStatus.COMPLETED)
        self.assertEqual(machine.status, AnalysisStatus.PENDING)

    def test_terminal_states_are_final(self):
        for terminal in (AnalysisStatus.COMPLETED, AnalysisStatus.FAILED):
            machine = StatusStateMachine("img-1", terminal)
            self.assertTrue(machine.is_terminal)
            for target in AnalysisStatus:
                self.assertFalse(machine.can_transition(target))

    def test_no_retry_from_failed(self):
        machine = StatusStateMachine("img-1", AnalysisStatus.FAILED)
        with self.assertRaises(InvalidStatusTransition) as ctx:
            machine.transition(AnalysisStatus.PROCESSING)
        self.assertEqual(ctx.exception.current, AnalysisStatus.FAILED)
        self.assertEqual(ctx.exception.target, AnalysisStatus.PROCESSING)


if __name__ == '__main__':
    unittest.main()
