"""
Quiz session controller for the Psalm Quiz bot.
Manages active quiz sessions, answers and grading per Discord channel.
"""
import logging
import time
from typing import Dict, Optional, List, Any
from datetime import datetime
from enum import Enum

from .models import QuizSession, Question, QuizSettings, QuestionStyle
from .quiz_engine import QuizEngine
from .data_manager import DataManager
from .config_manager import ConfigManager
from .progress_tracker import ProgressTracker

logger = logging.getLogger(__name__)


class QuizLifecycleLogger:
    """Structured logging for quiz lifecycle events."""

    @staticmethod
    def log_quiz_generated(channel_id: int, psalm_number: int, style: str, question_count: int,
                           generation_start: float) -> None:
        """Log deck generation with its duration."""
        duration = time.time() - generation_start
        logger.info(
            f"Quiz lifecycle: GENERATED - Channel {channel_id}, Psalm {psalm_number}, "
            f"Style {style}, {question_count} questions in {duration:.3f}s",
            extra={
                'event_type': 'quiz_generated',
                'channel_id': channel_id,
                'psalm': psalm_number,
                'style': style,
                'question_count': question_count,
                'generation_duration': duration,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_quiz_started(channel_id: int, user_id: int, psalm_number: int, translation: str, style: str) -> None:
        logger.info(
            f"Quiz lifecycle: STARTED - Channel {channel_id}, User {user_id}, Psalm {psalm_number} {translation}, Style {style}",
            extra={
                'event_type': 'quiz_started',
                'channel_id': channel_id,
                'user_id': user_id,
                'psalm': psalm_number,
                'translation': translation,
                'style': style,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_question_answered(channel_id: int, question: Question, correct: bool) -> None:
        logger.debug(
            f"Quiz lifecycle: ANSWERED - Channel {channel_id}, {question.kind.value} "
            f"verse {question.verse_number}, {'correct' if correct else 'incorrect'}",
            extra={
                'event_type': 'question_answered',
                'channel_id': channel_id,
                'question_type': question.kind.value,
                'verse_number': question.verse_number,
                'correct': correct,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_quiz_completed(channel_id: int, psalm_number: int, style: str, score: int, total: int) -> None:
        logger.info(
            f"Quiz lifecycle: COMPLETED - Channel {channel_id}, Psalm {psalm_number}, Style {style}, Score {score}/{total}",
            extra={
                'event_type': 'quiz_completed',
                'channel_id': channel_id,
                'psalm': psalm_number,
                'style': style,
                'score': score,
                'total_questions': total,
                'timestamp': time.time()
            }
        )


class SessionState(Enum):
    """Enumeration of possible quiz session states."""
    INACTIVE = "inactive"
    ACTIVE = "active"
    COMPLETED = "completed"


class QuizControllerError(Exception):
    """Base exception for quiz controller errors."""
    pass


class SessionNotFoundError(QuizControllerError):
    """Raised when attempting to operate on a non-existent session."""
    pass


class InvalidSessionStateError(QuizControllerError):
    """Raised when session is in an invalid state for the requested operation."""
    pass


def performance_message(ratio: float) -> str:
    """Headline for a finished quiz by score ratio."""
    if ratio >= 0.9:
        return "Excellent! You have a strong grasp of this psalm."
    elif ratio >= 0.8:
        return "Great job! You're well on your way to memorizing this psalm."
    elif ratio >= 0.6:
        return "Good effort! Keep practicing to improve your memorization."
    else:
        return "Keep practicing! Review the psalm and try again."


def performance_advice(ratio: float) -> str:
    """Study advice for a finished quiz by score ratio."""
    if ratio >= 0.9:
        return "Try a more challenging quiz type or move on to the next psalm."
    elif ratio >= 0.8:
        return "Focus on the verses you missed and practice them specifically."
    elif ratio >= 0.6:
        return "Spend more time reading and reflecting on the psalm text."
    else:
        return "Start with reading the full psalm several times before attempting the quiz again."


class QuizController:
    """
    Orchestrates quiz sessions across Discord channels.

    Each channel holds at most one active session. The controller asks the
    quiz engine for a deck once when the quiz starts, checks every answer
    with it, and records the final score with the progress tracker.
    """

    def __init__(
        self,
        data_manager: DataManager,
        config_manager: ConfigManager,
        progress_tracker: Optional[ProgressTracker] = None,
        quiz_engine: Optional[QuizEngine] = None
    ):
        """
        Initialize the quiz controller.

        Args:
            data_manager: Provider of psalm verses
            config_manager: Instance for managing configuration
            progress_tracker: Where finished quizzes are recorded, in-memory if None
            quiz_engine: Question generator, defaults to one with the bundled content
        """
        self.logger = logging.getLogger(__name__)
        self.data_manager = data_manager
        self.config_manager = config_manager
        self.progress_tracker = progress_tracker or ProgressTracker()
        self.quiz_engine = quiz_engine or QuizEngine()

        # Sessions mapped by channel ID; completed sessions stay until replaced
        self._sessions: Dict[int, QuizSession] = {}
        self._completion_info: Dict[int, Dict[str, Any]] = {}

        self.logger.info("QuizController initialized")

    def create_session(
        self,
        channel_id: int,
        user_id: int,
        psalm_number: int,
        translation: Optional[str] = None,
        style=None,
        settings: Optional[QuizSettings] = None
    ) -> bool:
        """
        Create a new quiz session for the specified channel.

        Args:
            channel_id: Discord channel identifier
            user_id: Discord user taking the quiz
            psalm_number: Psalm to quiz on
            translation: Translation abbreviation, configured default if None
            style: Question style, configured default if None
            settings: Optional quiz settings, uses global config if None

        Returns:
            True if session was created successfully, False otherwise
        """
        if self.has_active_session(channel_id):
            self.logger.warning(f"Attempted to create session for channel {channel_id} "
                                f"but session already exists")
            return False

        try:
            base_settings = settings or self.config_manager.get_quiz_settings()
            settings = QuizSettings(
                style=QuestionStyle.parse(style) if style is not None else base_settings.style,
                translation=(translation or base_settings.translation).upper(),
                question_count=base_settings.question_count,
                seed=base_settings.seed
            )

            verses = self.data_manager.get_verses(psalm_number, settings.translation)
            if not verses:
                raise ValueError(f"No verses found for psalm {psalm_number} ({settings.translation})")

            generation_start = time.time()
            questions = self.quiz_engine.generate(verses, settings.style, settings.seed)
            QuizLifecycleLogger.log_quiz_generated(
                channel_id, psalm_number, settings.style.value, len(questions), generation_start
            )

            if settings.question_count is not None:
                questions = self.quiz_engine.limit_question_count(questions, settings.question_count)

            if not questions:
                raise ValueError("No questions available after applying settings")

            session = QuizSession(
                channel_id=channel_id,
                user_id=user_id,
                psalm_number=psalm_number,
                translation=settings.translation,
                questions=questions,
                current_index=0,
                correct_count=0,
                is_active=True,
                settings=settings,
                start_time=datetime.now()
            )

            self._sessions[channel_id] = session
            self._completion_info.pop(channel_id, None)

            QuizLifecycleLogger.log_quiz_started(
                channel_id, user_id, psalm_number, settings.translation, settings.style.value
            )
            return True

        except ValueError as e:
            self.logger.error(f"Failed to create session for channel {channel_id}: {e}")
            return False

    def get_session(self, channel_id: int) -> Optional[QuizSession]:
        return self._sessions.get(channel_id)

    def has_active_session(self, channel_id: int) -> bool:
        """
        Check if a channel has an active quiz session.
        """
        session = self._sessions.get(channel_id)
        return session is not None and session.is_active

    def get_session_state(self, channel_id: int) -> SessionState:
        """
        Get the current state of a session.
        """
        session = self._sessions.get(channel_id)

        if session is None:
            return SessionState.INACTIVE

        if not session.is_active:
            return SessionState.COMPLETED

        return SessionState.ACTIVE

    def _require_active_session(self, channel_id: int) -> QuizSession:
        session = self._sessions.get(channel_id)
        if session is None:
            raise SessionNotFoundError("No quiz is running in this channel. Use /quiz to start one.")
        if not session.is_active:
            raise InvalidSessionStateError("This quiz has already finished. Use /quiz to start a new one.")
        if session.current_index >= len(session.questions):
            raise InvalidSessionStateError("There are no questions left in this quiz.")
        return session

    def get_current_question(self, channel_id: int) -> Optional[Question]:
        """
        Get the current question for an active session.

        Returns:
            Current Question if session is active, None otherwise
        """
        try:
            session = self._require_active_session(channel_id)
        except QuizControllerError:
            return None
        return session.questions[session.current_index]

    def submit_answer(self, channel_id: int, answer) -> Dict[str, Any]:
        """
        Check an answer to the current question and advance the quiz.

        Args:
            channel_id: Discord channel identifier
            answer: Submitted answer text

        Returns:
            Dictionary with operation result, correctness and progress
        """
        try:
            session = self._require_active_session(channel_id)
        except QuizControllerError as e:
            return {'success': False, 'message': str(e)}

        question = session.questions[session.current_index]
        correct = self.quiz_engine.check(question, answer)
        return self._record_answer(session, question, correct)

    def skip_question(self, channel_id: int) -> Dict[str, Any]:
        """
        Skip the current question; it counts as answered incorrectly.
        """
        try:
            session = self._require_active_session(channel_id)
        except QuizControllerError as e:
            return {'success': False, 'message': str(e)}

        question = session.questions[session.current_index]
        result = self._record_answer(session, question, False)
        result['skipped'] = True
        return result

    def _record_answer(self, session: QuizSession, question: Question, correct: bool) -> Dict[str, Any]:
        question.answered_correctly = correct
        if correct:
            session.correct_count += 1
        QuizLifecycleLogger.log_question_answered(session.channel_id, question, correct)

        session.current_index += 1
        result = {
            'success': True,
            'message': "Correct!" if correct else "Not quite.",
            'correct': correct,
            'correct_answer': question.correct_answer,
            'explanation': question.explanation,
            'is_complete': False,
            'score': session.correct_count,
            'answered': session.current_index,
            'total': len(session.questions),
            'completion': None
        }

        if session.current_index >= len(session.questions):
            result['is_complete'] = True
            result['completion'] = self._complete_session(session)

        return result

    def _complete_session(self, session: QuizSession) -> Dict[str, Any]:
        session.is_active = False
        completion_time = datetime.now()
        duration = completion_time - session.start_time
        total = len(session.questions)
        ratio = session.correct_count / total if total else 0.0

        QuizLifecycleLogger.log_quiz_completed(
            session.channel_id, session.psalm_number, session.settings.style.value,
            session.correct_count, total
        )

        record = self.progress_tracker.record_quiz_result(
            user_id=session.user_id,
            psalm_number=session.psalm_number,
            translation=session.translation,
            correct=session.correct_count,
            total=total,
            duration_seconds=duration.total_seconds(),
            completed_at=completion_time
        )

        info = {
            'psalm_number': session.psalm_number,
            'translation': session.translation,
            'style': session.settings.style.value,
            'score': session.correct_count,
            'total_questions': total,
            'percentage': int(ratio * 100),
            'performance_message': performance_message(ratio),
            'performance_advice': performance_advice(ratio),
            'missed_verses': sorted({
                question.verse_number for question in session.questions
                if question.answered_correctly is False
            }),
            'duration': {
                'total_seconds': int(duration.total_seconds()),
                'minutes': int(duration.total_seconds() // 60),
                'seconds': int(duration.total_seconds() % 60)
            },
            'best_score': record.best_score,
            'streak_days': record.streak_days,
            'start_time': session.start_time,
            'completion_time': completion_time
        }
        self._completion_info[session.channel_id] = info
        return info

    def get_quiz_completion_info(self, channel_id: int) -> Optional[Dict[str, Any]]:
        """
        Get completion information for a finished quiz.

        Returns:
            Dictionary with completion info, None if quiz not complete
        """
        return self._completion_info.get(channel_id)

    def get_session_progress(self, channel_id: int) -> Optional[Dict[str, Any]]:
        """
        Get progress information for a session.

        Returns:
            Dictionary with progress info, None if no session
        """
        session = self._sessions.get(channel_id)

        if session is None:
            return None

        return {
            'psalm_number': session.psalm_number,
            'translation': session.translation,
            'user_id': session.user_id,
            'current_question': min(session.current_index + 1, len(session.questions)),
            'answered': session.current_index,
            'total_questions': len(session.questions),
            'score': session.correct_count,
            'is_active': session.is_active,
            'start_time': session.start_time,
            'settings': {
                'style': session.settings.style.value,
                'question_count': session.settings.question_count,
                'seed': session.settings.seed
            }
        }

    def get_available_psalms(self) -> List[int]:
        return self.data_manager.get_available_psalms()

    def start_quiz(
        self,
        channel_id: int,
        user_id: int,
        psalm_number: int,
        translation: Optional[str] = None,
        style=None
    ) -> Dict[str, Any]:
        """
        Start a new quiz session with validation and error handling.

        Returns:
            Dictionary with operation result and session info
        """
        result = {
            'success': False,
            'message': '',
            'session_info': None
        }

        if self.has_active_session(channel_id):
            result['message'] = "A quiz is already running in this channel. Use /stop to end it first."
            return result

        available_psalms = self.get_available_psalms()
        if psalm_number not in available_psalms:
            listed = ", ".join(str(number) for number in available_psalms)
            result['message'] = f"Psalm {psalm_number} is not available. Available psalms: {listed}"
            return result

        if style is not None:
            try:
                style = QuestionStyle.parse(style)
            except ValueError:
                listed = ", ".join(option.value for option in QuestionStyle)
                result['message'] = f"Unknown quiz style '{style}'. Available styles: {listed}"
                return result

        translation = (translation or self.config_manager.get_quiz_settings().translation).upper()
        available_translations = self.data_manager.get_translations(psalm_number)
        if translation not in available_translations:
            result['message'] = (
                f"Psalm {psalm_number} is not available in {translation}. "
                f"Available translations: {', '.join(available_translations)}"
            )
            return result

        if self.create_session(channel_id, user_id, psalm_number, translation, style):
            session_info = self.get_session_progress(channel_id)
            result.update({
                'success': True,
                'message': f"Started Psalm {psalm_number} ({translation}) quiz with "
                           f"{session_info['total_questions']} questions.",
                'session_info': session_info
            })
            self.logger.info(f"Successfully started psalm {psalm_number} quiz for channel {channel_id}")
        else:
            result['message'] = f"Failed to start the Psalm {psalm_number} quiz. Please try again."
            self.logger.error(f"Failed to start psalm {psalm_number} quiz for channel {channel_id}")

        return result

    def stop_quiz(self, channel_id: int) -> Dict[str, Any]:
        """
        Stop an active quiz session without recording progress.

        Returns:
            Dictionary with operation result and final session info
        """
        result = {
            'success': False,
            'message': '',
            'session_info': None
        }

        if not self.has_active_session(channel_id):
            result['message'] = "No active quiz session to stop in this channel."
            return result

        session_info = self.get_session_progress(channel_id)
        del self._sessions[channel_id]
        self._completion_info.pop(channel_id, None)

        result.update({
            'success': True,
            'message': "Quiz session stopped.",
            'session_info': session_info
        })
        self.logger.info(f"Stopped quiz session for channel {channel_id}")
        return result

    def get_session_status_summary(self, channel_id: int) -> str:
        """
        Get a one-line, human-readable summary of the channel's session.
        """
        session_info = self.get_session_progress(channel_id)
        if session_info is None:
            return "No quiz session in this channel"

        status = "Active" if session_info['is_active'] else "Completed"
        status_parts = [
            f"Psalm {session_info['psalm_number']} ({session_info['translation']})",
            f"Status: {status}",
            f"Style: {QuestionStyle(session_info['settings']['style']).display_name}",
            f"Progress: {session_info['answered']}/{session_info['total_questions']}",
            f"Score: {session_info['score']}",
        ]

        duration = datetime.now() - session_info['start_time']
        minutes = int(duration.total_seconds() // 60)
        seconds = int(duration.total_seconds() % 60)
        status_parts.append(f"Duration: {minutes}m {seconds}s")

        return " | ".join(status_parts)

