"""
Data manager for psalm JSON files and verse data validation.
"""
import json
import os
import logging
from typing import Dict, List, Optional, Tuple
from pathlib import Path

from .models import Psalm, Translation, Verse


DEFAULT_PSALM_DIRECTORY = Path(__file__).parent / "psalms"

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB limit

FALLBACK_PSALM = {
    "psalm": 117,
    "title": "Praise the LORD, All Nations",
    "translations": {
        "KJV": {
            "name": "King James Version",
            "verses": [
                {"number": 1, "text": "O praise the LORD, all ye nations: praise him, all ye people."},
                {"number": 2, "text": "For his merciful kindness is great toward us: and the truth of the LORD endureth for ever. Praise ye the LORD."}
            ]
        }
    }
}


class DataManager:
    """Manages loading and validation of psalm verse files."""

    def __init__(self, psalm_directory: Optional[str] = None):
        """
        Initialize DataManager with psalm directory path.

        Args:
            psalm_directory: Path to directory containing psalm JSON files,
                defaults to the psalms bundled with the package
        """
        self.psalm_directory = Path(psalm_directory) if psalm_directory else DEFAULT_PSALM_DIRECTORY
        self.loaded_psalms: Dict[int, Psalm] = {}
        self.loaded_verses: Dict[Tuple[int, str], List[Verse]] = {}
        self.logger = logging.getLogger(__name__)
        self.load_errors: List[str] = []  # Track loading errors for user feedback
        self.fallback_psalm_created = False

    def load_psalm_files(self) -> Dict[int, Psalm]:
        """
        Load all JSON files from the psalm directory with comprehensive error handling.

        Returns:
            Dictionary mapping psalm numbers to Psalm objects
        """
        self.loaded_psalms.clear()
        self.loaded_verses.clear()
        self.load_errors.clear()
        self.fallback_psalm_created = False

        directory_result = self._check_psalm_directory()
        if not directory_result['success']:
            self.load_errors.append(directory_result['error'])
            return self._create_fallback_psalm()

        scan_result = self._scan_psalm_files()
        if not scan_result['success']:
            self.load_errors.append(scan_result['error'])
            return self._create_fallback_psalm()

        json_files = scan_result['files']

        if not json_files:
            self.logger.warning(f"No JSON files found in {self.psalm_directory}")
            self.load_errors.append(f"No psalm files found in {self.psalm_directory}")
            return self._create_fallback_psalm()

        successful_loads = 0
        for json_file in json_files:
            load_result = self._load_psalm_file_safely(json_file)
            if load_result['success']:
                successful_loads += 1
            else:
                self.load_errors.append(f"{json_file.name}: {load_result['error']}")

        if successful_loads == 0:
            self.logger.error("No psalm files could be loaded successfully")
            self.load_errors.append("All psalm files failed to load")
            return self._create_fallback_psalm()

        self.logger.info(f"Successfully loaded {successful_loads} psalm files")
        if self.load_errors:
            self.logger.warning(f"Encountered {len(self.load_errors)} loading errors")

        return self.loaded_psalms

    def _load_single_file(self, file_path: Path) -> Optional[dict]:
        """
        Load and parse a single JSON file.

        Returns:
            Parsed JSON data or None if loading failed
        """
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
                if self.validate_psalm_structure(data):
                    return data
                else:
                    self.logger.error(f"Invalid psalm structure in {file_path}")
                    return None
        except json.JSONDecodeError as e:
            self.logger.error(f"Invalid JSON in {file_path}: {e}")
            return None
        except FileNotFoundError:
            self.logger.error(f"Psalm file not found: {file_path}")
            return None
        except OSError as e:
            self.logger.error(f"Failed to read psalm file {file_path}: {e}")
            return None

    def validate_psalm_structure(self, data: dict) -> bool:
        """
        Validate that JSON data has the correct psalm structure.

        Expected structure:
        {
            "psalm": int,
            "title": str,
            "translations": {
                "KJV": {
                    "name": str,
                    "verses": [{"number": int, "text": str}]
                }
            }
        }

        Args:
            data: Parsed JSON data to validate

        Returns:
            True if structure is valid, False otherwise
        """
        if not isinstance(data, dict):
            self.logger.error("Psalm data must be a JSON object")
            return False

        psalm_number = data.get("psalm")
        if not isinstance(psalm_number, int) or isinstance(psalm_number, bool) or psalm_number < 1:
            self.logger.error("Psalm data must contain a positive integer 'psalm' field")
            return False

        if not isinstance(data.get("title"), str):
            self.logger.error(f"Psalm {psalm_number} 'title' field must be a string")
            return False

        translations = data.get("translations")
        if not isinstance(translations, dict) or not translations:
            self.logger.error(f"Psalm {psalm_number} must contain a non-empty 'translations' object")
            return False

        for abbreviation, translation_data in translations.items():
            if not isinstance(translation_data, dict):
                self.logger.error(f"Translation {abbreviation} must be an object")
                return False

            verses = translation_data.get("verses")
            if not isinstance(verses, list) or not verses:
                self.logger.error(f"Translation {abbreviation} must contain a non-empty 'verses' array")
                return False

            seen_numbers = set()
            for i, verse_data in enumerate(verses):
                if not isinstance(verse_data, dict):
                    self.logger.error(f"{abbreviation} verse {i} must be an object")
                    return False

                number = verse_data.get("number")
                if not isinstance(number, int) or isinstance(number, bool) or number < 1:
                    self.logger.error(f"{abbreviation} verse {i} 'number' must be a positive integer")
                    return False

                if number in seen_numbers:
                    self.logger.error(f"{abbreviation} verse {number} appears more than once")
                    return False
                seen_numbers.add(number)

                text = verse_data.get("text")
                if not isinstance(text, str) or not text.strip():
                    self.logger.error(f"{abbreviation} verse {number} 'text' must be a non-empty string")
                    return False

        return True

    def _parse_psalm(self, psalm_data: dict) -> Tuple[Psalm, Dict[Tuple[int, str], List[Verse]]]:
        """
        Parse validated psalm data into a Psalm and its ordered verses per translation.
        """
        psalm_number = psalm_data["psalm"]
        psalm = Psalm(number=psalm_number, title=psalm_data["title"])
        verses_by_translation = {}

        for key, translation_data in psalm_data["translations"].items():
            abbreviation = key.upper()
            psalm.translations.append(Translation(
                name=translation_data.get("name", key),
                abbreviation=abbreviation
            ))
            verses = [
                Verse(
                    psalm=psalm_number,
                    translation=abbreviation,
                    number=verse_data["number"],
                    text=verse_data["text"].strip()
                )
                for verse_data in translation_data["verses"]
            ]
            verses.sort(key=lambda verse: verse.number)
            verses_by_translation[(psalm_number, abbreviation)] = verses

        return psalm, verses_by_translation

    def _store_psalm(self, psalm_data: dict) -> Psalm:
        psalm, verses_by_translation = self._parse_psalm(psalm_data)
        self.loaded_psalms[psalm.number] = psalm
        self.loaded_verses.update(verses_by_translation)
        return psalm

    def get_available_psalms(self) -> List[int]:
        """
        Get list of available psalm numbers in ascending order.
        """
        return sorted(self.loaded_psalms.keys())

    def get_psalm(self, psalm_number: int) -> Optional[Psalm]:
        """
        Retrieve a loaded psalm by number.

        Returns:
            Psalm object, or None if psalm not found
        """
        return self.loaded_psalms.get(psalm_number)

    def get_translations(self, psalm_number: int) -> List[str]:
        """
        Get the translation abbreviations available for a psalm.
        """
        psalm = self.get_psalm(psalm_number)
        if psalm is None:
            return []
        return [translation.abbreviation for translation in psalm.translations]

    def get_verses(self, psalm_number: int, translation: str) -> List[Verse]:
        """
        Retrieve the ordered verses of a psalm in one translation.

        Args:
            psalm_number: Number of the psalm
            translation: Translation abbreviation (case-insensitive)

        Returns:
            Verses ordered by verse number, or an empty list if not loaded
        """
        return list(self.loaded_verses.get((psalm_number, str(translation).upper()), []))

    def psalm_exists(self, psalm_number: int) -> bool:
        return psalm_number in self.loaded_psalms

    def translation_exists(self, psalm_number: int, translation: str) -> bool:
        return (psalm_number, str(translation).upper()) in self.loaded_verses

    def get_psalm_count(self) -> int:
        """
        Get the total number of loaded psalms.
        """
        return len(self.loaded_psalms)

    def get_verse_count(self, psalm_number: int, translation: str) -> int:
        """
        Get the number of verses of a psalm in one translation, 0 if not loaded.
        """
        return len(self.loaded_verses.get((psalm_number, str(translation).upper()), []))

    def _check_psalm_directory(self) -> Dict[str, any]:
        """
        Check the psalm directory exists and is readable.

        Returns:
            Dictionary with success status and error message if applicable
        """
        try:
            if not self.psalm_directory.exists():
                return {
                    'success': False,
                    'error': f"Psalm directory not found: {self.psalm_directory}"
                }

            if not self.psalm_directory.is_dir():
                return {
                    'success': False,
                    'error': f"Psalm path is not a directory: {self.psalm_directory}"
                }

            if not os.access(self.psalm_directory, os.R_OK):
                return {
                    'success': False,
                    'error': f"Permission denied: Cannot read from {self.psalm_directory}"
                }

            return {'success': True}

        except PermissionError:
            return {
                'success': False,
                'error': f"Permission denied: Cannot access {self.psalm_directory}"
            }
        except OSError as e:
            return {
                'success': False,
                'error': f"System error accessing {self.psalm_directory}: {e}"
            }

    def _scan_psalm_files(self) -> Dict[str, any]:
        """
        Scan psalm directory for JSON files with error handling.

        Returns:
            Dictionary with success status, files list, and error message if applicable
        """
        try:
            json_files = sorted(self.psalm_directory.glob("*.json"))
            return {
                'success': True,
                'files': json_files
            }
        except PermissionError:
            return {
                'success': False,
                'error': f"Permission denied: Cannot read directory {self.psalm_directory}",
                'files': []
            }
        except OSError as e:
            return {
                'success': False,
                'error': f"System error scanning {self.psalm_directory}: {e}",
                'files': []
            }

    def _load_psalm_file_safely(self, json_file: Path) -> Dict[str, any]:
        """
        Load a single psalm file with comprehensive error handling.

        Args:
            json_file: Path to the JSON file to load

        Returns:
            Dictionary with success status and error message if applicable
        """
        try:
            if not json_file.exists():
                return {
                    'success': False,
                    'error': "File not found"
                }

            if not os.access(json_file, os.R_OK):
                return {
                    'success': False,
                    'error': "Permission denied: Cannot read file"
                }

            file_size = json_file.stat().st_size
            if file_size > MAX_FILE_SIZE:
                return {
                    'success': False,
                    'error': f"File too large ({file_size / 1024 / 1024:.1f}MB). Maximum size is {MAX_FILE_SIZE / 1024 / 1024}MB"
                }

            psalm_data = self._load_single_file(json_file)
            if psalm_data is None:
                return {
                    'success': False,
                    'error': "Invalid JSON structure or validation failed"
                }

            if psalm_data["psalm"] in self.loaded_psalms:
                return {
                    'success': False,
                    'error': f"Psalm {psalm_data['psalm']} is already loaded from another file"
                }

            psalm = self._store_psalm(psalm_data)
            self.logger.info(
                f"Loaded psalm {psalm.number} '{psalm.title}' with "
                f"{len(psalm.translations)} translations from {json_file.name}"
            )

            return {'success': True}

        except PermissionError:
            return {
                'success': False,
                'error': "Permission denied"
            }
        except OSError as e:
            return {
                'success': False,
                'error': f"System error: {e}"
            }

    def _create_fallback_psalm(self) -> Dict[int, Psalm]:
        """
        Load a minimal built-in psalm in memory when no psalm file can be loaded.

        Returns:
            Dictionary with the fallback psalm loaded
        """
        psalm = self._store_psalm(FALLBACK_PSALM)
        self.fallback_psalm_created = True
        self.logger.warning(f"Loaded fallback psalm {psalm.number} due to file loading failures")
        return self.loaded_psalms

    def get_load_errors(self) -> List[str]:
        """
        Get list of errors encountered during the last load operation.
        """
        return self.load_errors.copy()

    def has_load_errors(self) -> bool:
        """
        Check if there were any errors during the last load operation.
        """
        return len(self.load_errors) > 0

    def is_fallback_psalm_active(self) -> bool:
        """
        Check if the fallback psalm was loaded due to loading failures.
        """
        return self.fallback_psalm_created

    def get_loading_summary(self) -> Dict[str, any]:
        """
        Get a comprehensive summary of the loading operation.

        Returns:
            Dictionary with loading statistics and status
        """
        return {
            'total_psalms': len(self.loaded_psalms),
            'has_errors': self.has_load_errors(),
            'error_count': len(self.load_errors),
            'errors': self.get_load_errors(),
            'fallback_active': self.is_fallback_psalm_active(),
            'psalm_directory': str(self.psalm_directory),
            'available_psalms': self.get_available_psalms()
        }
