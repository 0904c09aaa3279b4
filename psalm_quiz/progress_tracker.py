"""
Progress tracker for quiz results per user, psalm and translation.
"""
import json
import logging
import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .models import ProgressRecord


COMPLETED_SCORE = 0.8

RecordKey = Tuple[int, int, str]


class ProgressTracker:
    """
    Keeps aggregated quiz statistics keyed by (user, psalm, translation).

    With a progress file the records are loaded on start and saved after
    every recorded quiz; without one they only live in memory.
    """

    def __init__(self, progress_file: Optional[str] = None):
        self.logger = logging.getLogger(__name__)
        self.progress_file = Path(progress_file) if progress_file else None
        self._records: Dict[RecordKey, ProgressRecord] = {}
        self._unreadable_entries: List[Any] = []
        self._save_blocked = False

        if self.progress_file is not None:
            self.load()

    @staticmethod
    def _key(user_id: int, psalm_number: int, translation: str) -> RecordKey:
        return int(user_id), int(psalm_number), str(translation).upper()

    def record_quiz_result(
        self,
        user_id: int,
        psalm_number: int,
        translation: str,
        correct: int,
        total: int,
        duration_seconds: float = 0,
        completed_at: Optional[datetime] = None
    ) -> ProgressRecord:
        """
        Fold a finished quiz into the user's record for the psalm.

        The best score only ever increases. The streak grows when the previous
        practice was the day before, is kept on the same day and restarts at 1
        after a gap.

        Returns:
            The updated ProgressRecord
        """
        completed_at = completed_at or datetime.now()
        key = self._key(user_id, psalm_number, translation)
        record = self._records.get(key)
        if record is None:
            record = ProgressRecord(
                user_id=key[0],
                psalm_number=key[1],
                translation=key[2],
                created_at=completed_at
            )
            self._records[key] = record

        score = correct / total if total > 0 else 0.0

        record.last_score = score
        record.best_score = max(record.best_score, score)
        record.attempts += 1
        record.questions_answered += max(total, 0)
        record.correct_answers += max(correct, 0)
        record.total_time_seconds += max(int(duration_seconds), 0)
        record.streak_days = self._next_streak(record, completed_at)
        record.last_practiced = completed_at

        self.logger.info(
            f"Recorded quiz result for user {key[0]}: psalm {key[1]} {key[2]} "
            f"{correct}/{total} (best {record.best_score:.0%}, streak {record.streak_days})",
            extra={
                'event_type': 'progress_recorded',
                'user_id': key[0],
                'psalm': key[1],
                'translation': key[2],
                'score': score,
                'best_score': record.best_score,
                'streak_days': record.streak_days
            }
        )

        if self.progress_file is not None:
            self.save()

        return record

    @staticmethod
    def _next_streak(record: ProgressRecord, completed_at: datetime) -> int:
        if record.last_practiced is None:
            return 1

        last_day = record.last_practiced.date()
        today = completed_at.date()
        if today == last_day:
            return max(record.streak_days, 1)
        if today - last_day == timedelta(days=1):
            return record.streak_days + 1
        if today < last_day:
            return record.streak_days
        return 1

    def get_record(self, user_id: int, psalm_number: int, translation: str) -> Optional[ProgressRecord]:
        return self._records.get(self._key(user_id, psalm_number, translation))

    def get_user_records(self, user_id: int) -> List[ProgressRecord]:
        """All records of a user ordered by psalm number and translation."""
        records = [record for key, record in self._records.items() if key[0] == int(user_id)]
        return sorted(records, key=lambda record: (record.psalm_number, record.translation))

    def get_user_summary(self, user_id: int, today: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Aggregate statistics across every psalm the user practiced.

        Returns:
            Dictionary with attempts, time spent, accuracy, current streak and
            the psalms whose best score counts as completed
        """
        records = self.get_user_records(user_id)
        today = (today or datetime.now()).date()

        questions_answered = sum(record.questions_answered for record in records)
        correct_answers = sum(record.correct_answers for record in records)

        current_streak = 0
        for record in records:
            if record.last_practiced is None:
                continue
            if today - record.last_practiced.date() <= timedelta(days=1):
                current_streak = max(current_streak, record.streak_days)

        return {
            'user_id': int(user_id),
            'psalms_practiced': len({record.psalm_number for record in records}),
            'total_attempts': sum(record.attempts for record in records),
            'total_time_seconds': sum(record.total_time_seconds for record in records),
            'accuracy': correct_answers / questions_answered if questions_answered else 0.0,
            'current_streak': current_streak,
            'completed_psalms': sorted({
                record.psalm_number for record in records if record.best_score >= COMPLETED_SCORE
            })
        }

    def reset_user(self, user_id: int) -> int:
        """
        Remove every record of a user.

        Returns:
            Number of records removed
        """
        keys = [key for key in self._records if key[0] == int(user_id)]
        for key in keys:
            del self._records[key]

        self.logger.info(f"Removed {len(keys)} progress records for user {user_id}")
        if keys and self.progress_file is not None:
            self.save()
        return len(keys)

    def load(self) -> Dict[str, Any]:
        """
        Load records from the progress file. A missing file means no progress
        yet. Malformed entries are skipped one by one and kept aside so the
        next save writes them back unchanged. A file that cannot be parsed at
        all is moved to a ``.corrupt`` copy before progress starts empty.
        """
        self._records.clear()
        self._unreadable_entries = []
        self._save_blocked = False
        if self.progress_file is None or not self.progress_file.exists():
            return {'success': True, 'records': 0}

        try:
            with open(self.progress_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict) or not isinstance(data.get("records", []), list):
                raise ValueError("Progress file must contain an object with a 'records' list")
        except (OSError, json.JSONDecodeError, ValueError) as e:
            self.logger.error(f"Failed to load progress file {self.progress_file}: {e}")
            self._set_aside_unreadable_file()
            return {'success': False, 'error': str(e), 'records': 0}

        for index, entry in enumerate(data.get("records", [])):
            try:
                record = self._record_from_dict(entry)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                self.logger.warning(f"Skipping malformed progress record {index} in {self.progress_file}: {e}")
                self._unreadable_entries.append(entry)
                continue
            self._records[self._key(record.user_id, record.psalm_number, record.translation)] = record

        self.logger.info(
            f"Loaded {len(self._records)} progress records from {self.progress_file}"
            + (f", skipped {len(self._unreadable_entries)} malformed" if self._unreadable_entries else "")
        )
        return {
            'success': True,
            'records': len(self._records),
            'skipped': len(self._unreadable_entries)
        }

    def _set_aside_unreadable_file(self) -> None:
        corrupt_copy = self.progress_file.with_name(self.progress_file.name + ".corrupt")
        try:
            os.replace(self.progress_file, corrupt_copy)
        except OSError as e:
            # Keep the file untouched and refuse to overwrite it
            self._save_blocked = True
            self.logger.error(f"Could not move unreadable progress file aside, saving disabled: {e}")
            return
        self.logger.warning(f"Moved unreadable progress file to {corrupt_copy}")

    def save(self) -> Dict[str, Any]:
        """
        Write all records to the progress file. The data goes to a temporary
        file in the same directory first, which then replaces the real one.

        Returns:
            Dictionary with success status and error message if applicable
        """
        if self.progress_file is None:
            return {'success': True, 'records': len(self._records)}

        if self._save_blocked:
            error_msg = f"Saving disabled because {self.progress_file} could not be loaded"
            self.logger.error(error_msg)
            return {'success': False, 'error': error_msg}

        payload = {
            "records": [self._record_to_dict(record) for record in self._records.values()]
            + self._unreadable_entries
        }
        temp_file = self.progress_file.with_name(self.progress_file.name + ".tmp")
        try:
            self.progress_file.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            os.replace(temp_file, self.progress_file)
        except OSError as e:
            self.logger.error(f"Failed to save progress to {self.progress_file}: {e}")
            if temp_file.exists():
                temp_file.unlink()
            return {'success': False, 'error': str(e)}

        return {'success': True, 'records': len(self._records)}

    @staticmethod
    def _record_to_dict(record: ProgressRecord) -> Dict[str, Any]:
        return {
            "user_id": record.user_id,
            "psalm": record.psalm_number,
            "translation": record.translation,
            "best_score": record.best_score,
            "last_score": record.last_score,
            "attempts": record.attempts,
            "questions_answered": record.questions_answered,
            "correct_answers": record.correct_answers,
            "total_time_seconds": record.total_time_seconds,
            "streak_days": record.streak_days,
            "last_practiced": record.last_practiced.isoformat() if record.last_practiced else None,
            "created_at": record.created_at.isoformat()
        }

    @staticmethod
    def _record_from_dict(data: Dict[str, Any]) -> ProgressRecord:
        last_practiced = data.get("last_practiced")
        return ProgressRecord(
            user_id=int(data["user_id"]),
            psalm_number=int(data["psalm"]),
            translation=str(data["translation"]).upper(),
            best_score=float(data.get("best_score", 0.0)),
            last_score=float(data.get("last_score", 0.0)),
            attempts=int(data.get("attempts", 0)),
            questions_answered=int(data.get("questions_answered", 0)),
            correct_answers=int(data.get("correct_answers", 0)),
            total_time_seconds=int(data.get("total_time_seconds", 0)),
            streak_days=int(data.get("streak_days", 0)),
            last_practiced=datetime.fromisoformat(last_practiced) if last_practiced else None,
            created_at=datetime.fromisoformat(data["created_at"]) if data.get("created_at") else datetime.now()
        )
