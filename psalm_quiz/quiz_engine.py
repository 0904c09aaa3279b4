"""
Quiz engine core logic for the Psalm Quiz bot.
Generates question decks from psalm verses and checks submitted answers.
"""
import logging
import random
import re
import time
from collections import Counter
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from .content_manager import ContentManager
from .models import Question, QuestionStyle, QuestionType, Verse

logger = logging.getLogger(__name__)

BLANK = "_____"
OPTION_COUNT = 4
DISTRACTOR_COUNT = OPTION_COUNT - 1
MAX_BLANKS_PER_VERSE = 3
MAX_COMPLETION_SPLITS = 3

# Word-count thresholds: a verse needs MORE words than these
FILL_BLANK_MIN_WORDS = 3
WORD_ORDER_MIN_WORDS = 4
WORD_ORDER_PINNED_MIN_WORDS = 6
COMPLETION_MIN_WORDS = 5

SIMILAR_WORDS = (
    "the", "his", "her", "their", "our", "my", "your", "its", "this", "that",
    "these", "those", "a", "an", "some", "any", "all", "each", "every", "many",
    "few", "several", "both", "either", "neither",
)
FALLBACK_WORDS = (
    "and", "of", "in", "to", "for", "with", "by", "from", "is", "are", "was",
    "were", "be", "been", "have", "has", "had",
)
FILLER_WORDS = ("selah", "amen", "hallelujah", "hosanna")

COMPLETION_FRACTIONS = (1 / 2, 1 / 3, 2 / 3)

MIXED_LIMITS = (
    (QuestionStyle.FILL_BLANK, 5),
    (QuestionStyle.MULTIPLE_CHOICE, 5),
    (QuestionStyle.WORD_ORDER, 4),
    (QuestionStyle.VERSE_COMPLETION, 4),
)
MIXED_MINIMUM = 8

VERSE_NUMBER_RANGE = 20
SNIPPET_LENGTH = 50

FALLBACK_PROMPT = "No quiz questions could be generated for this selection. What should you do next?"
FALLBACK_ANSWER = "Read the psalm and try again"
FALLBACK_DISTRACTORS = ("Give up on the psalm", "Skip every verse", "Guess the answers")
FALLBACK_EXPLANATION = "Reading the whole psalm a few times is the best first step before taking a quiz."

_TOKEN_PATTERN = re.compile(r"^(\W*)(.*?)(\W*)$", re.DOTALL)

SeedLike = Union[int, random.Random, None]


def split_token(token: str) -> Tuple[str, str, str]:
    """Split a verse token into (leading punctuation, word, trailing punctuation)."""
    match = _TOKEN_PATTERN.match(token)
    return match.group(1), match.group(2), match.group(3)


def _answer_key(value: str) -> str:
    return value.strip().lower()


def _collect_distinct(correct: str, candidates: Iterable[str], limit: int) -> List[str]:
    """Take up to `limit` candidates distinct from each other and from the correct answer."""
    seen = {_answer_key(correct)}
    chosen = []
    for candidate in candidates:
        if len(chosen) >= limit:
            break
        key = _answer_key(candidate)
        if not key or key in seen:
            continue
        seen.add(key)
        chosen.append(candidate)
    return chosen


def _distinct(values: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        key = _answer_key(value)
        if key and key not in seen:
            seen.add(key)
            result.append(value)
    return result


class QuizEngine:
    """
    Core quiz engine that builds question decks and validates answers.

    The engine keeps no state between calls: every ``generate`` call draws
    all of its randomness from a single ``random.Random`` built from the
    given seed, so a fixed seed reproduces the same deck.
    """

    def __init__(self, content_manager: Optional[ContentManager] = None):
        """
        Initialize the quiz engine.

        Args:
            content_manager: Loaded content tables, defaults to the bundled tables
        """
        if content_manager is None:
            content_manager = ContentManager()
            content_manager.load_content()
        self.content = content_manager

    def generate(
        self,
        verses: Sequence[Verse],
        style: Union[QuestionStyle, str] = QuestionStyle.MIXED,
        seed: SeedLike = None
    ) -> List[Question]:
        """
        Generate a shuffled deck of questions for the given verses.

        Args:
            verses: Ordered verses of one psalm in one translation
            style: Requested question style
            seed: Integer seed or Random instance for reproducible decks

        Returns:
            Non-empty list of questions. An empty verse list, or a style that
            yields nothing for these verses, produces a single fallback question.
        """
        generation_start = time.time()
        rng = self._make_random(seed)
        style = QuestionStyle.parse(style)
        verses = list(verses)

        if not verses:
            logger.warning(
                "Quiz generation requested without verses, using fallback question",
                extra={'event_type': 'quiz_generation_fallback', 'style': style.value, 'reason': 'no_verses'}
            )
            return [self._fallback_question(rng, 0)]

        questions = self._generate_for_style(verses, style, rng)
        if not questions:
            logger.warning(
                f"No {style.value} questions could be generated for {len(verses)} verses, using fallback question",
                extra={'event_type': 'quiz_generation_fallback', 'style': style.value, 'reason': 'no_questions'}
            )
            return [self._fallback_question(rng, verses[0].number)]

        rng.shuffle(questions)

        logger.debug(
            f"Generated {len(questions)} {style.value} questions from {len(verses)} verses "
            f"in {time.time() - generation_start:.3f}s",
            extra={
                'event_type': 'quiz_generated',
                'style': style.value,
                'verse_count': len(verses),
                'question_count': len(questions),
                'psalm': verses[0].psalm,
                'translation': verses[0].translation
            }
        )
        return questions

    def _generate_for_style(self, verses: List[Verse], style: QuestionStyle, rng: random.Random) -> List[Question]:
        if style == QuestionStyle.FILL_BLANK:
            return self.generate_fill_blank_questions(verses, rng)
        if style == QuestionStyle.MULTIPLE_CHOICE:
            return self.generate_multiple_choice_questions(verses, rng)
        if style == QuestionStyle.WORD_ORDER:
            return self.generate_word_order_questions(verses, rng)
        if style == QuestionStyle.VERSE_COMPLETION:
            return self.generate_verse_completion_questions(verses, rng)
        return self.generate_mixed_questions(verses, rng)

    @staticmethod
    def _make_random(seed: SeedLike) -> random.Random:
        if isinstance(seed, random.Random):
            return seed
        return random.Random(seed)

    def _fallback_question(self, rng: random.Random, verse_number: int) -> Question:
        options = [FALLBACK_ANSWER, *FALLBACK_DISTRACTORS]
        rng.shuffle(options)
        return Question(
            kind=QuestionType.MULTIPLE_CHOICE,
            prompt=FALLBACK_PROMPT,
            correct_answer=FALLBACK_ANSWER,
            options=options,
            verse_number=verse_number,
            explanation=FALLBACK_EXPLANATION
        )

    # ------------------------------------------------------------
    # Fill in the blank
    # ------------------------------------------------------------
    def generate_fill_blank_questions(self, verses: List[Verse], rng: random.Random) -> List[Question]:
        """One question per blank; each verse gets 1-3 blanks at distinct positions."""
        questions = []

        for verse in verses:
            tokens = verse.words
            if len(tokens) <= FILL_BLANK_MIN_WORDS:
                continue

            eligible = [index for index, token in enumerate(tokens) if split_token(token)[1]]
            if not eligible:
                continue

            blank_count = rng.randint(1, min(MAX_BLANKS_PER_VERSE, len(eligible)))
            for position in sorted(rng.sample(eligible, blank_count)):
                leading, correct_word, trailing = split_token(tokens[position])
                display_tokens = list(tokens)
                display_tokens[position] = f"{leading}{BLANK}{trailing}"

                wrong_options = self._fill_blank_distractors(correct_word, verse, verses, rng)
                options = [correct_word] + wrong_options
                rng.shuffle(options)

                questions.append(Question(
                    kind=QuestionType.FILL_BLANK,
                    prompt=f"Complete the verse: {' '.join(display_tokens)}",
                    correct_answer=correct_word,
                    options=options,
                    verse_number=verse.number
                ))

        return questions

    def _fill_blank_distractors(
        self, correct_word: str, verse: Verse, verses: List[Verse], rng: random.Random
    ) -> List[str]:
        other_verses = [other for other in verses if other.number != verse.number]
        rng.shuffle(other_verses)

        from_other_verses = []
        for other in other_verses:
            words = [split_token(token)[1] for token in other.words]
            words = [word for word in words if word]
            if words:
                from_other_verses.append(rng.choice(words))

        similar = list(SIMILAR_WORDS)
        rng.shuffle(similar)
        fallback = list(FALLBACK_WORDS)
        rng.shuffle(fallback)

        return _collect_distinct(
            correct_word,
            [*from_other_verses, *similar, *fallback, *FILLER_WORDS],
            DISTRACTOR_COUNT
        )

    # ------------------------------------------------------------
    # Multiple choice
    # ------------------------------------------------------------
    def generate_multiple_choice_questions(self, verses: List[Verse], rng: random.Random) -> List[Question]:
        """Meaning questions, verse identification questions and psalm-level theme questions."""
        questions = []

        psalm_number = verses[0].psalm
        if not self.content.has_meanings(psalm_number):
            logger.info(
                f"No meaning paraphrases for psalm {psalm_number}, meaning questions skipped",
                extra={'event_type': 'content_missing', 'psalm': psalm_number, 'table': 'meanings'}
            )

        for verse in verses:
            question = self._meaning_question(verse, rng)
            if question is not None:
                questions.append(question)

        for verse in verses:
            question = self._verse_identification_question(verse, verses, rng)
            if question is not None:
                questions.append(question)

        questions.extend(self._theme_questions(verses, rng))
        return questions

    def _meaning_question(self, verse: Verse, rng: random.Random) -> Optional[Question]:
        entry = self.content.meaning_for(verse)
        if entry is None:
            return None

        general = self.content.general_distractors()
        rng.shuffle(general)
        wrong_options = _collect_distinct(
            entry.answer,
            [*self.content.meaning_distractors(verse.psalm, verse.text), *general],
            DISTRACTOR_COUNT
        )
        options = [entry.answer] + wrong_options
        if len(options) < OPTION_COUNT:
            return None

        rng.shuffle(options)
        return Question(
            kind=QuestionType.MULTIPLE_CHOICE,
            prompt=f"What is the main action or subject in verse {verse.number}?",
            correct_answer=entry.answer,
            options=options,
            verse_number=verse.number,
            explanation=entry.explanation or None
        )

    def _verse_identification_question(
        self, verse: Verse, verses: List[Verse], rng: random.Random
    ) -> Optional[Question]:
        present = {other.number for other in verses}
        upper = max(VERSE_NUMBER_RANGE, max(present))

        candidates = [number for number in range(1, upper + 1) if number not in present]
        rng.shuffle(candidates)
        picked = candidates[:DISTRACTOR_COUNT]
        next_number = upper + 1
        while len(picked) < DISTRACTOR_COUNT:
            picked.append(next_number)
            next_number += 1

        correct_answer = f"Verse {verse.number}"
        options = _distinct([correct_answer] + [f"Verse {number}" for number in picked])
        if len(options) < OPTION_COUNT:
            return None
        options = options[:OPTION_COUNT]
        rng.shuffle(options)

        snippet = verse.text[:SNIPPET_LENGTH]
        if len(verse.text) > SNIPPET_LENGTH:
            snippet += "..."

        return Question(
            kind=QuestionType.MULTIPLE_CHOICE,
            prompt=f"Which verse contains this phrase: \"{snippet}\"?",
            correct_answer=correct_answer,
            options=options,
            verse_number=verse.number
        )

    def _theme_questions(self, verses: List[Verse], rng: random.Random) -> List[Question]:
        all_text = " ".join(verse.text for verse in verses)
        questions = []

        for category, rule in self.content.theme_answers(all_text):
            options = _distinct([rule.answer, *rule.options])
            if len(options) < OPTION_COUNT:
                continue
            rng.shuffle(options)
            questions.append(Question(
                kind=QuestionType.MULTIPLE_CHOICE,
                prompt=category.prompt,
                correct_answer=rule.answer,
                options=options,
                verse_number=verses[0].number,
                explanation=rule.explanation or None
            ))

        return questions

    # ------------------------------------------------------------
    # Word order
    # ------------------------------------------------------------
    def generate_word_order_questions(self, verses: List[Verse], rng: random.Random) -> List[Question]:
        """Shuffled, pinned-ends and reversed variants of each long enough verse."""
        questions = []

        for verse in verses:
            words = verse.words
            if len(words) <= WORD_ORDER_MIN_WORDS:
                continue

            correct_answer = " ".join(words)
            base_prompt = f"Arrange these words in the correct order for verse {verse.number}"

            shuffled = list(words)
            rng.shuffle(shuffled)
            variants = [(f"{base_prompt}:", shuffled)]

            if len(words) > WORD_ORDER_PINNED_MIN_WORDS:
                interior = words[1:-1]
                rng.shuffle(interior)
                variants.append((
                    f"{base_prompt} (the first and last words are already in place):",
                    [words[0], *interior, words[-1]]
                ))

            variants.append((f"{base_prompt} (the words are in reverse order):", words[::-1]))

            for prompt, tokens in variants:
                questions.append(Question(
                    kind=QuestionType.WORD_ORDER,
                    prompt=prompt,
                    correct_answer=correct_answer,
                    options=tokens,
                    verse_number=verse.number
                ))

        return questions

    # ------------------------------------------------------------
    # Verse completion
    # ------------------------------------------------------------
    def generate_verse_completion_questions(self, verses: List[Verse], rng: random.Random) -> List[Question]:
        """Split verses at half, one-third or two-thirds and ask for the hidden ending."""
        questions = []

        for verse in verses:
            words = verse.words
            if len(words) <= COMPLETION_MIN_WORDS:
                continue

            split_count = rng.randint(1, MAX_COMPLETION_SPLITS)
            split_points = []
            for fraction in rng.sample(COMPLETION_FRACTIONS, split_count):
                index = min(max(int(len(words) * fraction), 1), len(words) - 1)
                if index not in split_points:
                    split_points.append(index)

            for index in split_points:
                visible = " ".join(words[:index])
                hidden = " ".join(words[index:])

                generic = self.content.generic_completions()
                rng.shuffle(generic)
                wrong_options = _collect_distinct(
                    hidden,
                    [*self.content.completion_alternates(verse.text), *generic],
                    DISTRACTOR_COUNT
                )
                options = [hidden] + wrong_options
                if len(options) < OPTION_COUNT:
                    continue

                rng.shuffle(options)
                questions.append(Question(
                    kind=QuestionType.VERSE_COMPLETION,
                    prompt=f"Complete verse {verse.number}: {visible} {BLANK}",
                    correct_answer=hidden,
                    options=options,
                    verse_number=verse.number
                ))

        return questions

    # ------------------------------------------------------------
    # Mixed
    # ------------------------------------------------------------
    def generate_mixed_questions(self, verses: List[Verse], rng: random.Random) -> List[Question]:
        """Bounded prefixes of every style, topped up from the leftovers when short."""
        pools = [
            (self._generate_for_style(verses, style, rng), limit)
            for style, limit in MIXED_LIMITS
        ]

        selected = []
        for pool, limit in pools:
            selected.extend(pool[:limit])

        for pool, limit in pools:
            if len(selected) >= MIXED_MINIMUM:
                break
            shortfall = MIXED_MINIMUM - len(selected)
            selected.extend(pool[limit:limit + shortfall])

        return selected

    # ------------------------------------------------------------
    # Selection and answer checking
    # ------------------------------------------------------------
    def limit_question_count(self, questions: List[Question], count: int) -> List[Question]:
        """
        Limit the number of questions to the specified count.

        Note:
            If count is greater than available questions, returns all questions.
            If count is less than 1, returns empty list.
        """
        if count < 1:
            return []

        return questions[:count]

    def check(self, question: Question, submitted_answer) -> bool:
        """
        Check a submitted answer against a question. Never raises.

        Args:
            question: The question being answered
            submitted_answer: Answer text; word-order answers may also be a list of words

        Returns:
            True if the answer is correct
        """
        if question is None or question.correct_answer is None:
            return False

        if isinstance(submitted_answer, (list, tuple)):
            submitted_answer = " ".join(str(word) for word in submitted_answer)
        if not isinstance(submitted_answer, str):
            return False

        if question.kind == QuestionType.WORD_ORDER:
            return self.check_word_order(submitted_answer, question.correct_answer)

        return _answer_key(submitted_answer) == _answer_key(question.correct_answer)

    @staticmethod
    def check_word_order(submitted_answer: str, correct_answer: str) -> bool:
        """
        Validate a word-order answer.

        The word multisets must match (case-insensitive). A forward scan then
        walks both sequences; a submitted word that does not match the
        current correct word may skip ahead when it occurs later in the
        correct sequence. Correct only if both sequences are consumed together.
        """
        submitted_text = submitted_answer.strip().lower()
        correct_text = correct_answer.strip().lower()
        if submitted_text == correct_text:
            return True

        submitted_words = submitted_text.split()
        correct_words = correct_text.split()
        if Counter(submitted_words) != Counter(correct_words):
            return False

        submitted_index = 0
        correct_index = 0
        while submitted_index < len(submitted_words) and correct_index < len(correct_words):
            submitted_word = submitted_words[submitted_index]
            if submitted_word == correct_words[correct_index]:
                submitted_index += 1
                correct_index += 1
                continue

            if submitted_word in correct_words[correct_index + 1:]:
                correct_index += 1
                continue

            return False

        return submitted_index == len(submitted_words) and correct_index == len(correct_words)
