"""
Content manager for the hand-authored quiz content tables.

Meaning paraphrases, psalm-level theme rules and verse-completion
alternates are content data rather than logic. They live as JSON files in
the ``content`` directory so new psalms can be covered without code changes.
"""
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .models import Verse


DEFAULT_CONTENT_DIRECTORY = Path(__file__).parent / "content"

MEANINGS_FILE = "meanings.json"
THEMES_FILE = "themes.json"
COMPLETIONS_FILE = "completions.json"


@dataclass(frozen=True)
class MeaningEntry:
    """Paraphrase of a single verse, guarded by keywords in the verse text."""
    answer: str
    explanation: str
    keywords: Tuple[str, ...] = ()

    def matches(self, text: str) -> bool:
        lowered = text.lower()
        return all(keyword in lowered for keyword in self.keywords)


@dataclass(frozen=True)
class ThemeRule:
    """Keyword rule deciding the answer of a psalm-level question."""
    answer: str
    options: Tuple[str, ...]
    explanation: str
    all_keywords: Tuple[str, ...] = ()
    any_keywords: Tuple[str, ...] = ()

    def matches(self, text: str) -> bool:
        if not self.all_keywords and not self.any_keywords:
            return False
        if not all(keyword in text for keyword in self.all_keywords):
            return False
        if self.any_keywords and not any(keyword in text for keyword in self.any_keywords):
            return False
        return True


@dataclass(frozen=True)
class ThemeCategory:
    """A psalm-level question (focus, theme, emotion) and its ordered rules."""
    name: str
    prompt: str
    rules: Tuple[ThemeRule, ...]


@dataclass(frozen=True)
class CompletionRule:
    """Alternate verse endings used as completion distractors."""
    keywords: Tuple[str, ...]
    alternates: Tuple[str, ...]

    def matches(self, text: str) -> bool:
        return bool(self.keywords) and all(keyword in text for keyword in self.keywords)


def _lowered(values) -> Tuple[str, ...]:
    return tuple(str(value).lower() for value in values)


class ContentManager:
    """Loads, validates and serves the quiz content tables."""

    def __init__(self, content_directory: Optional[str] = None):
        """
        Initialize ContentManager with the content directory path.

        Args:
            content_directory: Directory holding the content JSON files,
                defaults to the tables bundled with the package
        """
        self.content_directory = Path(content_directory) if content_directory else DEFAULT_CONTENT_DIRECTORY
        self.logger = logging.getLogger(__name__)
        self.load_errors: List[str] = []

        self._meanings: Dict[int, Dict[int, MeaningEntry]] = {}
        self._meaning_distractors: Dict[int, List[Tuple[str, str]]] = {}
        self._general_distractors: List[str] = []
        self._theme_categories: List[ThemeCategory] = []
        self._completion_rules: List[CompletionRule] = []
        self._generic_completions: List[str] = []

    def load_content(self) -> Dict[str, Any]:
        """
        Load all content tables. A file that is missing or malformed leaves
        its table empty and is reported in the load errors.

        Returns:
            Loading summary dictionary
        """
        self.load_errors.clear()

        meanings = self._load_json_file(MEANINGS_FILE, self.validate_meanings_structure)
        self._parse_meanings(meanings or {})

        themes = self._load_json_file(THEMES_FILE, self.validate_themes_structure)
        self._parse_themes(themes or {})

        completions = self._load_json_file(COMPLETIONS_FILE, self.validate_completions_structure)
        self._parse_completions(completions or {})

        self.logger.info(
            f"Loaded quiz content: meanings for {len(self._meanings)} psalms, "
            f"{len(self._theme_categories)} theme categories, "
            f"{len(self._completion_rules)} completion rules"
        )
        if self.load_errors:
            self.logger.warning(f"Encountered {len(self.load_errors)} content loading errors")

        return self.get_loading_summary()

    def _load_json_file(self, file_name: str, validator) -> Optional[dict]:
        file_path = self.content_directory / file_name
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            self.logger.error(f"Content file not found: {file_path}")
            self.load_errors.append(f"{file_name}: File not found")
            return None
        except json.JSONDecodeError as e:
            self.logger.error(f"Invalid JSON in {file_path}: {e}")
            self.load_errors.append(f"{file_name}: Invalid JSON ({e})")
            return None
        except OSError as e:
            self.logger.error(f"Failed to read content file {file_path}: {e}")
            self.load_errors.append(f"{file_name}: {e}")
            return None

        if not validator(data):
            self.logger.error(f"Invalid content structure in {file_path}")
            self.load_errors.append(f"{file_name}: Invalid content structure")
            return None
        return data

    def validate_meanings_structure(self, data: Any) -> bool:
        """
        Validate the meanings table.

        Expected structure:
        {
            "psalms": {
                "<psalm>": {
                    "verses": {"<verse>": {"keywords": [str], "answer": str, "explanation": str}},
                    "distractors": [{"keyword": str, "text": str}]
                }
            },
            "general_distractors": [str]
        }
        """
        if not isinstance(data, dict) or not isinstance(data.get("psalms"), dict):
            self.logger.error("Meanings content must contain a 'psalms' object")
            return False
        if not isinstance(data.get("general_distractors", []), list):
            self.logger.error("'general_distractors' must be an array")
            return False

        for psalm_key, psalm_data in data["psalms"].items():
            if not str(psalm_key).isdigit():
                self.logger.error(f"Psalm key '{psalm_key}' must be a number")
                return False
            if not isinstance(psalm_data, dict) or not isinstance(psalm_data.get("verses"), dict):
                self.logger.error(f"Psalm {psalm_key} must contain a 'verses' object")
                return False
            for verse_key, entry in psalm_data["verses"].items():
                if not str(verse_key).isdigit():
                    self.logger.error(f"Psalm {psalm_key} verse key '{verse_key}' must be a number")
                    return False
                if not isinstance(entry, dict) or not isinstance(entry.get("answer"), str):
                    self.logger.error(f"Psalm {psalm_key} verse {verse_key} missing 'answer'")
                    return False
                if not isinstance(entry.get("keywords", []), list):
                    self.logger.error(f"Psalm {psalm_key} verse {verse_key} 'keywords' must be an array")
                    return False
            for distractor in psalm_data.get("distractors", []):
                if (not isinstance(distractor, dict) or not isinstance(distractor.get("keyword"), str)
                        or not isinstance(distractor.get("text"), str)):
                    self.logger.error(f"Psalm {psalm_key} has a malformed distractor")
                    return False
        return True

    def validate_themes_structure(self, data: Any) -> bool:
        """Validate the psalm-level theme rules table."""
        if not isinstance(data, dict) or not isinstance(data.get("categories"), list):
            self.logger.error("Themes content must contain a 'categories' array")
            return False

        for i, category in enumerate(data["categories"]):
            if not isinstance(category, dict):
                self.logger.error(f"Theme category {i} must be an object")
                return False
            if not isinstance(category.get("name"), str) or not isinstance(category.get("prompt"), str):
                self.logger.error(f"Theme category {i} needs 'name' and 'prompt' strings")
                return False
            if not isinstance(category.get("rules"), list):
                self.logger.error(f"Theme category {i} 'rules' must be an array")
                return False
            for j, rule in enumerate(category["rules"]):
                if not isinstance(rule, dict):
                    self.logger.error(f"Theme rule {i}.{j} must be an object")
                    return False
                if not isinstance(rule.get("answer"), str) or not isinstance(rule.get("options"), list):
                    self.logger.error(f"Theme rule {i}.{j} needs 'answer' and 'options'")
                    return False
                if not rule.get("all") and not rule.get("any"):
                    self.logger.error(f"Theme rule {i}.{j} needs 'all' or 'any' keywords")
                    return False
        return True

    def validate_completions_structure(self, data: Any) -> bool:
        """Validate the verse-completion alternates table."""
        if not isinstance(data, dict):
            self.logger.error("Completions content must be a JSON object")
            return False
        if not isinstance(data.get("rules", []), list) or not isinstance(data.get("generic", []), list):
            self.logger.error("Completions 'rules' and 'generic' must be arrays")
            return False
        for i, rule in enumerate(data.get("rules", [])):
            if (not isinstance(rule, dict) or not isinstance(rule.get("keywords"), list)
                    or not isinstance(rule.get("alternates"), list)):
                self.logger.error(f"Completion rule {i} needs 'keywords' and 'alternates' arrays")
                return False
        return True

    def _parse_meanings(self, data: dict) -> None:
        self._meanings = {}
        self._meaning_distractors = {}
        for psalm_key, psalm_data in data.get("psalms", {}).items():
            psalm_number = int(psalm_key)
            self._meanings[psalm_number] = {
                int(verse_key): MeaningEntry(
                    answer=entry["answer"],
                    explanation=entry.get("explanation", ""),
                    keywords=_lowered(entry.get("keywords", []))
                )
                for verse_key, entry in psalm_data["verses"].items()
            }
            self._meaning_distractors[psalm_number] = [
                (distractor["keyword"].lower(), distractor["text"])
                for distractor in psalm_data.get("distractors", [])
            ]
        self._general_distractors = list(data.get("general_distractors", []))

    def _parse_themes(self, data: dict) -> None:
        self._theme_categories = [
            ThemeCategory(
                name=category["name"],
                prompt=category["prompt"],
                rules=tuple(
                    ThemeRule(
                        answer=rule["answer"],
                        options=tuple(rule["options"]),
                        explanation=rule.get("explanation", ""),
                        all_keywords=_lowered(rule.get("all", [])),
                        any_keywords=_lowered(rule.get("any", []))
                    )
                    for rule in category["rules"]
                )
            )
            for category in data.get("categories", [])
        ]

    def _parse_completions(self, data: dict) -> None:
        self._completion_rules = [
            CompletionRule(keywords=_lowered(rule["keywords"]), alternates=tuple(rule["alternates"]))
            for rule in data.get("rules", [])
        ]
        self._generic_completions = list(data.get("generic", []))

    def has_meanings(self, psalm_number: int) -> bool:
        return bool(self._meanings.get(psalm_number))

    def meaning_for(self, verse: Verse) -> Optional[MeaningEntry]:
        """
        Get the paraphrase entry for a verse.

        Returns:
            The entry keyed by (psalm, verse number) when its keywords all
            occur in the verse text, None otherwise
        """
        entry = self._meanings.get(verse.psalm, {}).get(verse.number)
        if entry is not None and entry.matches(verse.text):
            return entry
        return None

    def meaning_distractors(self, psalm_number: int, text: str) -> List[str]:
        """Wrong paraphrases of a psalm triggered by keywords in the text."""
        lowered = text.lower()
        return [
            distractor_text
            for keyword, distractor_text in self._meaning_distractors.get(psalm_number, [])
            if keyword in lowered
        ]

    def general_distractors(self) -> List[str]:
        return list(self._general_distractors)

    def theme_answers(self, all_text: str) -> List[Tuple[ThemeCategory, ThemeRule]]:
        """First matching rule of every category for the concatenated psalm text."""
        lowered = all_text.lower()
        answers = []
        for category in self._theme_categories:
            for rule in category.rules:
                if rule.matches(lowered):
                    answers.append((category, rule))
                    break
        return answers

    def completion_alternates(self, text: str) -> List[str]:
        """Alternate endings of the first completion rule matching the verse text."""
        lowered = text.lower()
        for rule in self._completion_rules:
            if rule.matches(lowered):
                return list(rule.alternates)
        return []

    def generic_completions(self) -> List[str]:
        return list(self._generic_completions)

    def get_load_errors(self) -> List[str]:
        return self.load_errors.copy()

    def has_load_errors(self) -> bool:
        return len(self.load_errors) > 0

    def get_loading_summary(self) -> Dict[str, Any]:
        return {
            'content_directory': str(self.content_directory),
            'psalms_with_meanings': sorted(number for number in self._meanings if self._meanings[number]),
            'theme_categories': [category.name for category in self._theme_categories],
            'completion_rules': len(self._completion_rules),
            'has_errors': self.has_load_errors(),
            'errors': self.get_load_errors()
        }
