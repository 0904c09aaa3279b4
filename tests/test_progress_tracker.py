"""
Unit tests for ProgressTracker class.
"""
import json
import logging
import shutil
import tempfile
import unittest
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import patch

from psalm_quiz.progress_tracker import ProgressTracker


class TestProgressTracker(unittest.TestCase):
    """Test cases for in-memory progress aggregation."""

    def setUp(self):
        self.tracker = ProgressTracker()
        self.day = datetime(2024, 3, 10, 9, 30)
        logging.disable(logging.CRITICAL)

    def tearDown(self):
        logging.disable(logging.NOTSET)

    def test_first_result_creates_record(self):
        record = self.tracker.record_quiz_result(1, 1, "kjv", 8, 10, duration_seconds=95.6, completed_at=self.day)

        self.assertEqual(record.translation, "KJV")
        self.assertEqual(record.attempts, 1)
        self.assertAlmostEqual(record.best_score, 0.8)
        self.assertAlmostEqual(record.last_score, 0.8)
        self.assertEqual(record.questions_answered, 10)
        self.assertEqual(record.correct_answers, 8)
        self.assertEqual(record.total_time_seconds, 95)
        self.assertEqual(record.streak_days, 1)
        self.assertEqual(record.last_practiced, self.day)
        self.assertIs(self.tracker.get_record(1, 1, "KJV"), record)

    def test_best_score_never_decreases(self):
        self.tracker.record_quiz_result(1, 1, "KJV", 9, 10, completed_at=self.day)
        record = self.tracker.record_quiz_result(1, 1, "KJV", 3, 10, completed_at=self.day)

        self.assertAlmostEqual(record.best_score, 0.9)
        self.assertAlmostEqual(record.last_score, 0.3)
        self.assertEqual(record.attempts, 2)
        self.assertAlmostEqual(record.accuracy, 0.6)

    def test_zero_questions_scores_zero(self):
        record = self.tracker.record_quiz_result(1, 1, "KJV", 0, 0, completed_at=self.day)
        self.assertEqual(record.last_score, 0.0)
        self.assertEqual(record.accuracy, 0.0)

    def test_streak_rules(self):
        """Test streak growth, same-day practice and reset after a gap."""
        record = self.tracker.record_quiz_result(1, 1, "KJV", 5, 10, completed_at=self.day)
        self.assertEqual(record.streak_days, 1)

        record = self.tracker.record_quiz_result(1, 1, "KJV", 5, 10, completed_at=self.day + timedelta(hours=5))
        self.assertEqual(record.streak_days, 1)

        record = self.tracker.record_quiz_result(1, 1, "KJV", 5, 10, completed_at=self.day + timedelta(days=1))
        self.assertEqual(record.streak_days, 2)

        record = self.tracker.record_quiz_result(1, 1, "KJV", 5, 10, completed_at=self.day + timedelta(days=2))
        self.assertEqual(record.streak_days, 3)

        record = self.tracker.record_quiz_result(1, 1, "KJV", 5, 10, completed_at=self.day + timedelta(days=5))
        self.assertEqual(record.streak_days, 1)

    def test_records_are_separate_per_translation(self):
        self.tracker.record_quiz_result(1, 1, "KJV", 5, 10, completed_at=self.day)
        self.tracker.record_quiz_result(1, 1, "ESV", 10, 10, completed_at=self.day)
        self.tracker.record_quiz_result(2, 1, "KJV", 1, 10, completed_at=self.day)

        records = self.tracker.get_user_records(1)
        self.assertEqual([(r.psalm_number, r.translation) for r in records], [(1, "ESV"), (1, "KJV")])
        self.assertEqual(len(self.tracker.get_user_records(2)), 1)

    def test_user_summary(self):
        self.tracker.record_quiz_result(1, 1, "KJV", 9, 10, duration_seconds=60, completed_at=self.day)
        self.tracker.record_quiz_result(1, 23, "KJV", 5, 10, duration_seconds=30, completed_at=self.day)

        summary = self.tracker.get_user_summary(1, today=self.day + timedelta(days=1))

        self.assertEqual(summary['psalms_practiced'], 2)
        self.assertEqual(summary['total_attempts'], 2)
        self.assertEqual(summary['total_time_seconds'], 90)
        self.assertAlmostEqual(summary['accuracy'], 0.7)
        self.assertEqual(summary['current_streak'], 1)
        self.assertEqual(summary['completed_psalms'], [1])

    def test_user_summary_streak_expires(self):
        self.tracker.record_quiz_result(1, 1, "KJV", 9, 10, completed_at=self.day)
        summary = self.tracker.get_user_summary(1, today=self.day + timedelta(days=3))
        self.assertEqual(summary['current_streak'], 0)

    def test_summary_for_unknown_user(self):
        summary = self.tracker.get_user_summary(99)
        self.assertEqual(summary['total_attempts'], 0)
        self.assertEqual(summary['accuracy'], 0.0)
        self.assertEqual(summary['completed_psalms'], [])

    def test_reset_user(self):
        self.tracker.record_quiz_result(1, 1, "KJV", 9, 10, completed_at=self.day)
        self.tracker.record_quiz_result(1, 2, "KJV", 9, 10, completed_at=self.day)
        self.tracker.record_quiz_result(2, 1, "KJV", 9, 10, completed_at=self.day)

        self.assertEqual(self.tracker.reset_user(1), 2)
        self.assertEqual(self.tracker.get_user_records(1), [])
        self.assertEqual(len(self.tracker.get_user_records(2)), 1)


class TestProgressPersistence(unittest.TestCase):
    """Test cases for saving and loading the progress file."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.progress_file = Path(self.temp_dir) / "data" / "progress.json"
        logging.disable(logging.CRITICAL)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)
        logging.disable(logging.NOTSET)

    def test_records_survive_restart(self):
        tracker = ProgressTracker(str(self.progress_file))
        day = datetime(2024, 5, 1, 18, 0)
        tracker.record_quiz_result(7, 23, "KJV", 4, 5, duration_seconds=40, completed_at=day)

        self.assertTrue(self.progress_file.exists())

        reloaded = ProgressTracker(str(self.progress_file))
        record = reloaded.get_record(7, 23, "KJV")
        self.assertIsNotNone(record)
        self.assertAlmostEqual(record.best_score, 0.8)
        self.assertEqual(record.total_time_seconds, 40)
        self.assertEqual(record.last_practiced, day)

    def test_missing_file_starts_empty(self):
        tracker = ProgressTracker(str(self.progress_file))
        self.assertEqual(tracker.get_user_records(1), [])
        self.assertFalse(self.progress_file.exists())

    def test_corrupt_file_is_moved_aside(self):
        self.progress_file.parent.mkdir(parents=True)
        self.progress_file.write_text("{ not json", encoding='utf-8')
        corrupt_copy = self.progress_file.with_name("progress.json.corrupt")

        tracker = ProgressTracker(str(self.progress_file))

        self.assertEqual(tracker.get_user_records(1), [])
        self.assertFalse(self.progress_file.exists())
        self.assertEqual(corrupt_copy.read_text(encoding='utf-8'), "{ not json")

        tracker.record_quiz_result(1, 1, "KJV", 1, 2)
        self.assertEqual(len(ProgressTracker(str(self.progress_file)).get_user_records(1)), 1)
        self.assertEqual(corrupt_copy.read_text(encoding='utf-8'), "{ not json")

    def test_load_reports_unreadable_file(self):
        tracker = ProgressTracker(str(self.progress_file))
        self.progress_file.parent.mkdir(parents=True)
        self.progress_file.write_text(json.dumps(["not", "an", "object"]), encoding='utf-8')

        result = tracker.load()

        self.assertFalse(result['success'])
        self.assertTrue(self.progress_file.with_name("progress.json.corrupt").exists())

    def test_unmovable_corrupt_file_is_never_overwritten(self):
        self.progress_file.parent.mkdir(parents=True)
        self.progress_file.write_text("{ not json", encoding='utf-8')

        with patch("psalm_quiz.progress_tracker.os.replace", side_effect=PermissionError("locked")):
            tracker = ProgressTracker(str(self.progress_file))
        tracker.record_quiz_result(1, 1, "KJV", 1, 2)

        self.assertFalse(tracker.save()['success'])
        self.assertEqual(self.progress_file.read_text(encoding='utf-8'), "{ not json")

    def test_malformed_record_is_skipped(self):
        self.progress_file.parent.mkdir(parents=True)
        self.progress_file.write_text(json.dumps({"records": [{"user_id": 1}]}), encoding='utf-8')

        tracker = ProgressTracker(str(self.progress_file))

        self.assertEqual(tracker.get_user_records(1), [])
        self.assertEqual(tracker.load()['skipped'], 1)

    def test_malformed_record_does_not_erase_other_records(self):
        """One bad entry must not cost the other users their history."""
        tracker = ProgressTracker(str(self.progress_file))
        day = datetime(2024, 5, 1, 18, 0)
        for user_id in (1, 2, 3):
            tracker.record_quiz_result(user_id, 1, "KJV", 4, 5, completed_at=day)

        data = json.loads(self.progress_file.read_text(encoding='utf-8'))
        data["records"].append({"user_id": 9})
        self.progress_file.write_text(json.dumps(data), encoding='utf-8')

        restarted = ProgressTracker(str(self.progress_file))
        restarted.record_quiz_result(4, 23, "KJV", 5, 5, completed_at=day)

        on_disk = json.loads(self.progress_file.read_text(encoding='utf-8'))["records"]
        self.assertEqual(len(on_disk), 5)
        self.assertIn({"user_id": 9}, on_disk)
        reloaded = ProgressTracker(str(self.progress_file))
        for user_id in (1, 2, 3, 4):
            with self.subTest(user_id=user_id):
                self.assertEqual(len(reloaded.get_user_records(user_id)), 1)

    def test_failed_write_keeps_previous_file(self):
        tracker = ProgressTracker(str(self.progress_file))
        tracker.record_quiz_result(1, 1, "KJV", 4, 5)
        before = self.progress_file.read_text(encoding='utf-8')

        with patch("psalm_quiz.progress_tracker.json.dump", side_effect=OSError("disk full")):
            tracker.record_quiz_result(2, 1, "KJV", 1, 5)

        self.assertEqual(self.progress_file.read_text(encoding='utf-8'), before)
        self.assertFalse(self.progress_file.with_name("progress.json.tmp").exists())
        self.assertEqual(len(ProgressTracker(str(self.progress_file)).get_user_records(1)), 1)

    def test_save_failure_is_reported_not_raised(self):
        tracker = ProgressTracker(str(self.progress_file))

        with patch("builtins.open", side_effect=PermissionError("read-only")):
            record = tracker.record_quiz_result(1, 1, "KJV", 1, 2)
            result = tracker.save()

        self.assertEqual(record.attempts, 1)
        self.assertFalse(result['success'])
        self.assertIn("read-only", result['error'])

    def test_memory_only_save_is_noop(self):
        tracker = ProgressTracker()
        tracker.record_quiz_result(1, 1, "KJV", 1, 2)
        self.assertTrue(tracker.save()['success'])


if __name__ == '__main__':
    unittest.main()
