"""
Unit tests for ContentManager class.
"""
import json
import logging
import shutil
import tempfile
import unittest
from pathlib import Path

from psalm_quiz.content_manager import ContentManager, MEANINGS_FILE, THEMES_FILE, COMPLETIONS_FILE
from psalm_quiz.models import Verse


class TestBundledContent(unittest.TestCase):
    """Test cases for the content tables shipped with the package."""

    @classmethod
    def setUpClass(cls):
        logging.disable(logging.CRITICAL)
        cls.content = ContentManager()
        cls.summary = cls.content.load_content()

    @classmethod
    def tearDownClass(cls):
        logging.disable(logging.NOTSET)

    def test_bundled_content_loads_cleanly(self):
        self.assertFalse(self.summary['has_errors'])
        self.assertEqual(self.summary['psalms_with_meanings'], [1, 23])
        self.assertEqual(self.summary['theme_categories'], ['focus', 'theme', 'emotion'])
        self.assertEqual(self.summary['completion_rules'], 5)

    def test_meanings_are_keyed_by_psalm_and_verse(self):
        psalm_1 = Verse(psalm=1, translation="KJV", number=4, text="The ungodly are like the chaff")
        psalm_23 = Verse(psalm=23, translation="KJV", number=4, text="though I walk through the valley")
        other = Verse(psalm=2, translation="KJV", number=4, text="He that sitteth in the heavens shall laugh")

        self.assertEqual(self.content.meaning_for(psalm_1).answer, "The wicked are like chaff")
        self.assertEqual(self.content.meaning_for(psalm_23).answer, "God's presence removes fear in danger")
        self.assertIsNone(self.content.meaning_for(other))
        self.assertTrue(self.content.has_meanings(1))
        self.assertFalse(self.content.has_meanings(2))

    def test_meaning_distractors_follow_keywords(self):
        distractors = self.content.meaning_distractors(1, "But his delight is in the law of the LORD")
        self.assertTrue(distractors)
        self.assertEqual(self.content.meaning_distractors(2, "delight"), [])
        self.assertEqual(len(self.content.general_distractors()), 4)

    def test_theme_answers_take_first_matching_rule(self):
        answers = self.content.theme_answers("The LORD is my shepherd; I will praise him")
        by_category = {category.name: rule.answer for category, rule in answers}

        self.assertEqual(by_category['focus'], "God")
        self.assertEqual(by_category['theme'], "Praise and worship")
        self.assertEqual(by_category['emotion'], "Joy and praise")

    def test_theme_answers_without_keywords(self):
        self.assertEqual(self.content.theme_answers("Quiet words with nothing to match"), [])

    def test_completion_alternates(self):
        alternates = self.content.completion_alternates("like the chaff which the wind driveth away")
        self.assertIn("and they shall prosper", alternates)
        self.assertEqual(self.content.completion_alternates("nothing matches here"), [])
        self.assertEqual(len(self.content.generic_completions()), 8)

    def test_accessors_return_copies(self):
        self.content.general_distractors().clear()
        self.content.generic_completions().clear()
        self.assertEqual(len(self.content.general_distractors()), 4)
        self.assertEqual(len(self.content.generic_completions()), 8)


class TestContentLoadingErrors(unittest.TestCase):
    """Test cases for missing and malformed content files."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        logging.disable(logging.CRITICAL)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)
        logging.disable(logging.NOTSET)

    def write(self, name: str, data) -> None:
        with open(Path(self.temp_dir) / name, 'w', encoding='utf-8') as f:
            if isinstance(data, str):
                f.write(data)
            else:
                json.dump(data, f)

    def test_missing_files_leave_tables_empty(self):
        content = ContentManager(self.temp_dir)
        summary = content.load_content()

        self.assertTrue(summary['has_errors'])
        self.assertEqual(len(content.get_load_errors()), 3)
        self.assertEqual(content.theme_answers("blessed righteous delight"), [])
        self.assertEqual(content.generic_completions(), [])

    def test_invalid_json_is_reported(self):
        self.write(MEANINGS_FILE, "{ broken")
        content = ContentManager(self.temp_dir)
        content.load_content()

        self.assertTrue(any(error.startswith(MEANINGS_FILE) and "Invalid JSON" in error
                            for error in content.get_load_errors()))

    def test_one_bad_table_does_not_affect_the_others(self):
        self.write(MEANINGS_FILE, {"psalms": {"one": {"verses": {}}}})
        self.write(THEMES_FILE, {"categories": []})
        self.write(COMPLETIONS_FILE, {"rules": [], "generic": ["and he shall prosper"]})

        content = ContentManager(self.temp_dir)
        content.load_content()

        self.assertEqual(content.get_load_errors(), [f"{MEANINGS_FILE}: Invalid content structure"])
        self.assertEqual(content.generic_completions(), ["and he shall prosper"])

    def test_validate_meanings_structure(self):
        content = ContentManager(self.temp_dir)
        valid = {
            "psalms": {"3": {"verses": {"1": {"keywords": ["lord"], "answer": "Many rise up"}}}},
            "general_distractors": []
        }
        self.assertTrue(content.validate_meanings_structure(valid))
        self.assertFalse(content.validate_meanings_structure({"psalms": []}))
        self.assertFalse(content.validate_meanings_structure(
            {"psalms": {"3": {"verses": {"one": {"answer": "x"}}}}}
        ))
        self.assertFalse(content.validate_meanings_structure(
            {"psalms": {"3": {"verses": {"1": {"keywords": "lord", "answer": "x"}}}}}
        ))
        self.assertFalse(content.validate_meanings_structure(
            {"psalms": {"3": {"verses": {}, "distractors": [{"keyword": "x"}]}}}
        ))

    def test_validate_themes_structure(self):
        content = ContentManager(self.temp_dir)
        rule = {"any": ["praise"], "answer": "God", "options": ["God", "A", "B", "C"]}
        self.assertTrue(content.validate_themes_structure(
            {"categories": [{"name": "focus", "prompt": "Who?", "rules": [rule]}]}
        ))
        self.assertFalse(content.validate_themes_structure({"categories": {}}))
        self.assertFalse(content.validate_themes_structure(
            {"categories": [{"name": "focus", "prompt": "Who?", "rules": [{"answer": "God", "options": []}]}]}
        ))

    def test_validate_completions_structure(self):
        content = ContentManager(self.temp_dir)
        self.assertTrue(content.validate_completions_structure({"rules": [], "generic": []}))
        self.assertFalse(content.validate_completions_structure([]))
        self.assertFalse(content.validate_completions_structure({"rules": [{"keywords": ["x"]}]}))

    def test_custom_meanings_for_new_psalm(self):
        """Test that a new psalm's paraphrases come from data alone."""
        self.write(MEANINGS_FILE, {
            "psalms": {"3": {
                "verses": {"1": {"keywords": ["increased"], "answer": "Enemies have multiplied"}},
                "distractors": []
            }},
            "general_distractors": ["A", "B", "C"]
        })
        content = ContentManager(self.temp_dir)
        content.load_content()

        verse = Verse(psalm=3, translation="KJV", number=1, text="LORD, how are they increased that trouble me!")
        self.assertEqual(content.meaning_for(verse).answer, "Enemies have multiplied")
        self.assertEqual(content.meaning_for(verse).explanation, "")


if __name__ == '__main__':
    unittest.main()
