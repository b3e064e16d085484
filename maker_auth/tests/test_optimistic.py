"""Tests for :mod:`maker_auth.optimistic`."""

from unittest import TestCase, mock

from .. import optimistic
from ..exceptions import DirectoryError, ErrorKind, RetriesExhausted


class TestCompareAndSwap(TestCase):
    """Tests for :func:`optimistic.compare_and_swap`."""

    def test_first_try(self):
        """The value read is returned once it has been applied."""
        applied = []
        value = optimistic.compare_and_swap(lambda: 7, applied.append,
                                            tries=3, delay=0)
        self.assertEqual(value, 7)
        self.assertEqual(applied, [7])

    def test_conflict_then_success(self):
        """A failed apply is followed by a fresh read."""
        reads = iter([1, 2, 3])
        applied = []

        def _apply(value):
            applied.append(value)
            if value < 3:
                raise DirectoryError(ErrorKind.NO_SUCH_ATTRIBUTE)

        value = optimistic.compare_and_swap(lambda: next(reads), _apply,
                                            tries=5, delay=0,
                                            conflicts=(DirectoryError,))
        self.assertEqual(value, 3)
        self.assertEqual(applied, [1, 2, 3])

    def test_failed_read_is_retried(self):
        """A read that fails counts as a conflict."""
        read = mock.MagicMock(side_effect=[DirectoryError(ErrorKind.TIMEOUT),
                                           42])
        apply = mock.MagicMock()
        value = optimistic.compare_and_swap(read, apply, tries=2, delay=0,
                                            conflicts=(DirectoryError,))
        self.assertEqual(value, 42)
        apply.assert_called_once_with(42)

    def test_exhausted(self):
        """After ``tries`` conflicts, gives up with the last one attached."""
        apply = mock.MagicMock(
            side_effect=DirectoryError(ErrorKind.NO_SUCH_ATTRIBUTE)
        )
        with self.assertRaises(RetriesExhausted) as caught:
            optimistic.compare_and_swap(lambda: 1, apply, tries=4, delay=0,
                                        conflicts=(DirectoryError,))
        self.assertEqual(apply.call_count, 4)
        conflict = caught.exception.__cause__
        self.assertIsInstance(conflict, optimistic.Conflict)
        self.assertIsInstance(conflict.__cause__, DirectoryError)

    def test_other_errors_propagate(self):
        """Exceptions that are not conflicts are not retried."""
        apply = mock.MagicMock(side_effect=KeyError('nope'))
        with self.assertRaises(KeyError):
            optimistic.compare_and_swap(lambda: 1, apply, tries=4, delay=0,
                                        conflicts=(DirectoryError,))
        self.assertEqual(apply.call_count, 1)

    @mock.patch('retry.api.time.sleep')
    def test_delay(self, mock_sleep):
        """The same pause is taken after each conflict."""
        apply = mock.MagicMock(
            side_effect=DirectoryError(ErrorKind.NO_SUCH_ATTRIBUTE)
        )
        with self.assertRaises(RetriesExhausted):
            optimistic.compare_and_swap(lambda: 1, apply, tries=3, delay=0.1,
                                        conflicts=(DirectoryError,))
        self.assertEqual(mock_sleep.call_args_list,
                         [mock.call(0.1), mock.call(0.1)])
