"""
Unit tests for utility helpers
"""

import threading
import unittest
from utils.exceptions import CompilationInProgressError, InvalidScoreError
from utils.locks import CompileLockRegistry
from utils.validators import (
    validate_score, validate_weights, validate_promotion_criteria, validate_submission_status
)

class TestValidators(unittest.TestCase):

    def test_validate_score(self):
        self.assertTrue(validate_score(15, 20)[0])
        self.assertTrue(validate_score('20', '20')[0])
        self.assertFalse(validate_score(21, 20)[0])
        self.assertFalse(validate_score(-1, 20)[0])
        self.assertFalse(validate_score(5, 0)[0])
        self.assertFalse(validate_score('abc', 20)[0])
        self.assertFalse(validate_score('nan', 20)[0])
        self.assertFalse(validate_score('inf', 'inf')[0])
        self.assertFalse(validate_weights({1: float('inf')})[0])

    def test_validate_weights(self):
        self.assertTrue(validate_weights({1: 30, 2: 70})[0])
        self.assertTrue(validate_weights({1: 30, 2: 50})[0])
        self.assertFalse(validate_weights({})[0])
        self.assertFalse(validate_weights({1: -5})[0])
        self.assertFalse(validate_weights({1: 'x'})[0])

    def test_validate_promotion_criteria(self):
        data = {'name': 'Standard', 'passing_average': 50, 'passing_per_subject': 40, 'max_failing_subjects': 2}
        self.assertTrue(validate_promotion_criteria(data)[0])

        self.assertFalse(validate_promotion_criteria(dict(data, name='  '))[0])
        self.assertFalse(validate_promotion_criteria(dict(data, passing_per_subject=None))[0])
        self.assertFalse(validate_promotion_criteria(dict(data, max_failing_subjects='two'))[0])

    def test_validate_submission_status(self):
        self.assertTrue(validate_submission_status('approved')[0])
        self.assertFalse(validate_submission_status('submitted')[0])

class TestCompileLocks(unittest.TestCase):

    def test_hold_releases_lock(self):
        registry = CompileLockRegistry()

        with registry.hold((1, 1)):
            self.assertTrue(registry.is_locked((1, 1)))
            self.assertFalse(registry.is_locked((1, 2)))

        self.assertFalse(registry.is_locked((1, 1)))

    def test_hold_times_out_while_busy(self):
        registry = CompileLockRegistry()
        started = threading.Event()
        release = threading.Event()

        def compile_in_background():
            with registry.hold((3, 1)):
                started.set()
                release.wait(5)

        worker = threading.Thread(target=compile_in_background)
        worker.start()
        started.wait(5)
        try:
            with self.assertRaises(CompilationInProgressError) as ctx:
                with registry.hold((3, 1), timeout=0.05):
                    pass
            self.assertEqual(ctx.exception.to_dict()['code'], 'COMPILATION_IN_PROGRESS')
        finally:
            release.set()
            worker.join()

    def test_registries_do_not_share_state(self):
        first = CompileLockRegistry()
        second = CompileLockRegistry()

        self.assertIsNot(first._lock, second._lock)
        with first.hold((1, 1)):
            self.assertFalse(second.is_locked((1, 1)))
            with second.hold((1, 1), timeout=0.05):
                self.assertTrue(second.is_locked((1, 1)))

    def test_released_keys_are_forgotten(self):
        registry = CompileLockRegistry()

        with registry.hold((1, 1)):
            with registry.hold((1, 2)):
                self.assertEqual(len(registry), 2)
        self.assertEqual(len(registry), 0)

        with self.assertRaises(CompilationInProgressError):
            with registry.hold((4, 1)):
                with registry.hold((4, 1), timeout=0.01):
                    pass
        self.assertEqual(len(registry), 0)

    def test_lock_released_on_error(self):
        registry = CompileLockRegistry()

        with self.assertRaises(InvalidScoreError):
            with registry.hold((2, 1)):
                raise InvalidScoreError("bad mark", score=5, max_score=0)

        self.assertFalse(registry.is_locked((2, 1)))

if __name__ == '__main__':
    unittest.main()
