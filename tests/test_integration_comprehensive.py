"""
Comprehensive integration tests for the Psalm Quiz bot.
Tests complete quiz session flows and component interactions.
"""
import json
import logging
import shutil
import tempfile
import unittest
from pathlib import Path

from psalm_quiz.config_manager import ConfigManager
from psalm_quiz.data_manager import DataManager
from psalm_quiz.progress_tracker import ProgressTracker
from psalm_quiz.quiz_controller import QuizController, SessionState
from psalm_quiz.quiz_engine import QuizEngine
from psalm_quiz.models import QuestionType
from tests.test_fixtures import TestFixtures, TestDataValidation


class TestCompleteQuizFlow(unittest.TestCase):
    """Test complete quiz flow from psalm files to recorded progress."""

    @classmethod
    def setUpClass(cls):
        logging.disable(logging.CRITICAL)
        cls.quiz_engine = QuizEngine()

    @classmethod
    def tearDownClass(cls):
        logging.disable(logging.NOTSET)

    def setUp(self):
        """Set up integration test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.progress_file = Path(self.temp_dir) / "progress" / "progress.json"
        TestFixtures.create_temp_psalm_files(self.temp_dir)

        self.data_manager = DataManager(self.temp_dir)
        self.data_manager.load_psalm_files()
        self.config_manager = ConfigManager()
        self.config_manager.set_seed(5)
        self.progress_tracker = ProgressTracker(str(self.progress_file))
        self.quiz_controller = QuizController(
            self.data_manager, self.config_manager, self.progress_tracker, self.quiz_engine
        )

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_complete_quiz_session_flow(self):
        """Test a quiz from start to finish, then reload the saved progress."""
        channel_id = 12345

        self.config_manager.set_question_count(4)
        result = self.quiz_controller.start_quiz(channel_id, 42, 1, style="fill_blank")
        self.assertTrue(result['success'])
        self.assertTrue(TestDataValidation.validate_quiz_session(self.quiz_controller.get_session(channel_id)))

        answers = 0
        while self.quiz_controller.has_active_session(channel_id):
            question = self.quiz_controller.get_current_question(channel_id)
            self.assertEqual(question.kind, QuestionType.FILL_BLANK)
            self.assertTrue(TestDataValidation.has_valid_options(question))
            # Every other answer is wrong
            answer = question.correct_answer if answers % 2 == 0 else "zzzz"
            result = self.quiz_controller.submit_answer(channel_id, answer)
            answers += 1

        self.assertEqual(answers, 4)
        completion = result['completion']
        self.assertEqual(completion['score'], 2)
        self.assertEqual(completion['percentage'], 50)
        self.assertEqual(len(completion['missed_verses']), len(set(completion['missed_verses'])))

        reloaded = ProgressTracker(str(self.progress_file))
        record = reloaded.get_record(42, 1, "KJV")
        self.assertIsNotNone(record)
        self.assertAlmostEqual(record.best_score, 0.5)
        self.assertEqual(record.questions_answered, 4)

    def test_multiple_concurrent_quiz_sessions(self):
        """Test that sessions in different channels do not interfere."""
        self.config_manager.set_question_count(2)
        self.assertTrue(self.quiz_controller.start_quiz(1, 10, 1)['success'])
        self.assertTrue(self.quiz_controller.start_quiz(2, 20, 23, translation="esv")['success'])

        question = self.quiz_controller.get_current_question(1)
        self.quiz_controller.submit_answer(1, question.correct_answer)

        self.assertEqual(self.quiz_controller.get_session(1).correct_count, 1)
        self.assertEqual(self.quiz_controller.get_session(2).correct_count, 0)
        self.assertEqual(self.quiz_controller.get_session(2).translation, "ESV")

        self.quiz_controller.stop_quiz(1)
        self.assertTrue(self.quiz_controller.has_active_session(2))

    def test_every_style_runs_to_completion(self):
        styles = ["fill_blank", "multiple_choice", "word_order", "verse_completion", "mixed"]
        for channel_id, style in enumerate(styles, 100):
            with self.subTest(style=style):
                self.assertTrue(self.quiz_controller.start_quiz(channel_id, 7, 1, style=style)['success'])

                result = None
                while self.quiz_controller.has_active_session(channel_id):
                    question = self.quiz_controller.get_current_question(channel_id)
                    result = self.quiz_controller.submit_answer(channel_id, question.correct_answer)

                self.assertEqual(result['completion']['percentage'], 100)
                self.assertEqual(self.quiz_controller.get_session_state(channel_id), SessionState.COMPLETED)

    def test_short_translation_still_produces_a_quiz(self):
        """Psalm 23 ESV has a single short verse in the test files."""
        result = self.quiz_controller.start_quiz(12345, 1, 23, translation="ESV", style="word_order")

        self.assertTrue(result['success'])
        self.assertGreaterEqual(result['session_info']['total_questions'], 1)


class TestDataFlowIntegration(unittest.TestCase):
    """Test data flow between components."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.data_manager = DataManager(self.temp_dir)
        self.config_manager = ConfigManager()
        self.quiz_controller = QuizController(self.data_manager, self.config_manager)
        logging.disable(logging.CRITICAL)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)
        logging.disable(logging.NOTSET)

    def test_fallback_psalm_flow(self):
        """Test that an empty psalm directory still allows a quiz."""
        self.data_manager.load_psalm_files()

        summary = self.data_manager.get_loading_summary()
        self.assertTrue(summary['fallback_active'])

        psalm_number = self.quiz_controller.get_available_psalms()[0]
        result = self.quiz_controller.start_quiz(12345, 1, psalm_number)
        self.assertTrue(result['success'])
        self.assertIsNotNone(self.quiz_controller.get_current_question(12345))

    def test_settings_propagation_flow(self):
        """Test configured defaults reaching a new session."""
        with open(Path(self.temp_dir) / "psalm_001.json", 'w', encoding='utf-8') as f:
            json.dump(TestFixtures.create_valid_psalm_json(), f)
        self.data_manager.load_psalm_files()

        errors = self.config_manager.apply_config({
            "default_style": "verse-completion",
            "default_question_count": 3,
            "seed": 9
        })
        self.assertEqual(errors, [])

        result = self.quiz_controller.start_quiz(12345, 1, 1)
        self.assertTrue(result['success'])

        session = self.quiz_controller.get_session(12345)
        self.assertEqual(len(session.questions), 3)
        self.assertEqual(session.settings.seed, 9)
        self.assertTrue(all(q.kind == QuestionType.VERSE_COMPLETION for q in session.questions))

    def test_question_count_larger_than_deck(self):
        with open(Path(self.temp_dir) / "psalm_150.json", 'w', encoding='utf-8') as f:
            json.dump({
                "psalm": 150,
                "title": "Praise",
                "translations": {"KJV": {"verses": [
                    {"number": number, "text": verse.text}
                    for number, verse in enumerate(TestFixtures.create_short_verses(), 1)
                ]}}
            }, f)
        self.data_manager.load_psalm_files()
        self.config_manager.set_question_count(100)

        result = self.quiz_controller.start_quiz(12345, 1, 150, style="word_order")

        # Verses too short for word order fall back to one generic question
        self.assertTrue(result['success'])
        self.assertEqual(result['session_info']['total_questions'], 1)


if __name__ == '__main__':
    unittest.main()
