import discord
from discord.ext import commands
import logging
import asyncio
from typing import Optional, Dict, Any
import os
from pathlib import Path

from .models import Question, QuestionType, QuestionStyle
from .data_manager import DataManager
from .config_manager import ConfigManager
from .progress_tracker import ProgressTracker
from .quiz_controller import QuizController

logger = logging.getLogger(__name__)

COLOR_SUCCESS = 0x00ff00
COLOR_ERROR = 0xff0000
COLOR_WARNING = 0xffaa00
COLOR_INFO = 0x6699ff
COLOR_QUESTION = 0x9966cc


def setup_logging(log_directory: str = "logs", level: str = "INFO"):
    """Set up comprehensive logging for debugging and monitoring."""
    logs_dir = Path(log_directory)
    logs_dir.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),  # Console output
            logging.FileHandler(logs_dir / "bot.log", encoding='utf-8'),
        ]
    )

    error_handler = logging.FileHandler(logs_dir / "errors.log", encoding='utf-8')
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))
    logging.getLogger().addHandler(error_handler)

    # Reduce discord.py noise
    logging.getLogger('discord').setLevel(logging.WARNING)
    logging.getLogger('discord.http').setLevel(logging.WARNING)

    return logging.getLogger(__name__)


def resolve_answer(question: Question, answer: str) -> str:
    """
    Map an option number typed by the user to the option text.

    Anything that is not a valid option number is returned unchanged. Word-order
    options are the shuffled words, so numbers are never mapped for them.
    """
    if question.kind == QuestionType.WORD_ORDER:
        return answer

    text = answer.strip()
    if question.options and text.isdigit():
        index = int(text)
        if 1 <= index <= len(question.options):
            return question.options[index - 1]
    return answer


def build_question_embed(question: Question, number: int, total: int) -> discord.Embed:
    """Render a question with numbered options."""
    embed = discord.Embed(
        title=f"❓ Question {number}/{total} - {question.kind.display_name}",
        description=question.prompt,
        color=COLOR_QUESTION
    )

    if question.options:
        embed.add_field(
            name="Options",
            value="\n".join(f"**{index}.** {option}" for index, option in enumerate(question.options, 1)),
            inline=False
        )

    if question.kind == QuestionType.WORD_ORDER:
        hint = "Type the words in the correct order with `/answer`"
    elif question.options:
        hint = "Answer with `/answer` using the option number or its text"
    else:
        hint = "Answer with `/answer`"
    embed.set_footer(text=hint)
    return embed


def build_completion_embed(completion: Dict[str, Any]) -> discord.Embed:
    """Render the final result of a quiz."""
    percentage = completion['percentage']
    embed = discord.Embed(
        title="🏁 Quiz Complete!",
        description=(
            f"**Psalm {completion['psalm_number']} ({completion['translation']})**\n"
            f"{completion['performance_message']}"
        ),
        color=COLOR_SUCCESS if percentage >= 80 else COLOR_WARNING
    )
    embed.add_field(
        name="📊 Score",
        value=f"{completion['score']}/{completion['total_questions']} ({percentage}%)",
        inline=True
    )
    embed.add_field(
        name="⏱️ Duration",
        value=f"{completion['duration']['minutes']}m {completion['duration']['seconds']}s",
        inline=True
    )
    embed.add_field(
        name="🏆 Best / Streak",
        value=f"{int(completion['best_score'] * 100)}% | {completion['streak_days']} day(s)",
        inline=True
    )
    if completion['missed_verses']:
        embed.add_field(
            name="📖 Verses to review",
            value=", ".join(str(number) for number in completion['missed_verses']),
            inline=False
        )
    embed.add_field(name="💡 Advice", value=completion['performance_advice'], inline=False)
    embed.set_footer(text="Use /quiz to start another quiz")
    return embed


class QuizBot(commands.Bot):
    """Discord bot for practicing psalm memorization"""

    def __init__(self, config=None):
        # Minimal intents for slash commands
        intents = discord.Intents.none()
        intents.guilds = True

        command_prefix = '!'
        if config and 'bot' in config:
            command_prefix = config['bot'].get('command_prefix', '!')

        super().__init__(
            command_prefix=command_prefix,  # Fallback prefix, mainly using slash commands
            intents=intents,
            help_command=None
        )

        self.app_config = config or {}

        self.data_manager: Optional[DataManager] = None
        self.config_manager: Optional[ConfigManager] = None
        self.progress_tracker: Optional[ProgressTracker] = None
        self.quiz_controller: Optional[QuizController] = None

    async def setup_hook(self):
        """Called when the bot is starting up"""
        try:
            logger.info("Setting up bot components...")
            self.setup_components()
            await self.setup_commands()
            logger.info("Bot setup completed successfully")

        except Exception as e:
            logger.error(f"Error during bot setup: {e}")
            raise

    def setup_components(self):
        """Create managers from the configuration and load psalm data."""
        self.config_manager = ConfigManager()

        if self.app_config:
            self.apply_configuration()

        self.data_manager = DataManager(self.config_manager.get_psalm_directory())
        self.load_psalm_data()

        self.progress_tracker = ProgressTracker(self.config_manager.get_progress_file())
        self.quiz_controller = QuizController(
            self.data_manager, self.config_manager, self.progress_tracker
        )

    def apply_configuration(self):
        """Apply settings from configuration file to managers."""
        quiz_config = self.app_config.get('quiz', {})
        errors = self.config_manager.apply_config(quiz_config)
        for error in errors:
            # Defaults stay in place for rejected values
            logger.warning(f"Ignoring invalid configuration value {error}")

    def load_psalm_data(self):
        """Load psalm files from the psalm directory"""
        loaded_psalms = self.data_manager.load_psalm_files()
        logger.info(f"Loaded {len(loaded_psalms)} psalms from {self.data_manager.psalm_directory}")
        if self.data_manager.has_load_errors():
            for error in self.data_manager.get_load_errors():
                logger.warning(f"Psalm loading issue: {error}")

    async def setup_commands(self):
        """Register all slash commands"""

        @self.tree.command(name="help", description="Display available commands and their descriptions")
        async def help_command(interaction: discord.Interaction):
            await self.handle_help(interaction)

        @self.tree.command(name="psalms", description="List the psalms and translations available for quizzes")
        async def psalms_command(interaction: discord.Interaction):
            await self.handle_psalms(interaction)

        @self.tree.command(name="quiz", description="Start a quiz on a psalm")
        async def quiz_command(interaction: discord.Interaction, psalm: int,
                               style: Optional[str] = None, translation: Optional[str] = None):
            await self.handle_quiz(interaction, psalm, style, translation)

        @self.tree.command(name="question", description="Show the current question again")
        async def question_command(interaction: discord.Interaction):
            await self.handle_question(interaction)

        @self.tree.command(name="answer", description="Answer the current question")
        async def answer_command(interaction: discord.Interaction, text: str):
            await self.handle_answer(interaction, text)

        @self.tree.command(name="skip", description="Skip the current question")
        async def skip_command(interaction: discord.Interaction):
            await self.handle_skip(interaction)

        @self.tree.command(name="stop", description="Stop the current quiz session")
        async def stop_command(interaction: discord.Interaction):
            await self.handle_stop(interaction)

        @self.tree.command(name="status", description="Show current quiz status and progress")
        async def status_command(interaction: discord.Interaction):
            await self.handle_status(interaction)

        @self.tree.command(name="progress", description="Show your memorization progress")
        async def progress_command(interaction: discord.Interaction):
            await self.handle_progress(interaction)

        @self.tree.command(name="reset_progress", description="Delete all of your recorded progress")
        async def reset_progress_command(interaction: discord.Interaction):
            await self.handle_reset_progress(interaction)

        @self.tree.command(name="set_style", description="Set the default question style")
        async def set_style_command(interaction: discord.Interaction, style: str):
            await self.handle_set_style(interaction, style)

        @self.tree.command(name="set_translation", description="Set the default translation")
        async def set_translation_command(interaction: discord.Interaction, translation: str):
            await self.handle_set_translation(interaction, translation)

        @self.tree.command(name="set_questions", description="Set the number of questions for the next quiz")
        async def set_questions_command(interaction: discord.Interaction, number: int):
            await self.handle_set_questions(interaction, number)

        logger.info("Slash commands registered successfully")

    async def on_ready(self):
        """Called when the bot has successfully connected to Discord"""
        logger.info(f"Bot is ready! Logged in as {self.user}")
        logger.info(f"Bot is in {len(self.guilds)} guilds")

        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} slash commands")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync slash commands: {e}")

    async def on_error(self, event, *args, **kwargs):
        """Handle general bot errors"""
        logger.error(f"An error occurred in event {event}", exc_info=True)

    async def handle_discord_api_error(self, error: Exception, operation: str,
                                       interaction: discord.Interaction = None) -> bool:
        """
        Handle Discord API errors with appropriate retry logic and user feedback.

        Returns:
            True if error was handled and operation should be retried, False otherwise
        """
        if isinstance(error, discord.HTTPException):
            if error.status == 429:  # Rate limited
                retry_after = getattr(error, 'retry_after', 5)
                logger.warning(f"Rate limited during {operation}, waiting {retry_after}s")
                await asyncio.sleep(retry_after)
                return True

            elif error.status in [500, 502, 503, 504]:
                logger.warning(f"Discord server error during {operation}: {error.status}")
                await asyncio.sleep(2)
                return True

            elif error.status == 403:
                logger.error(f"Permission denied during {operation}: {error}")
                if interaction:
                    await self.send_error_response(
                        interaction,
                        "Bot doesn't have permission to perform this action. Please check bot permissions.",
                        "❌ Permission Error"
                    )
                return False

            logger.error(f"Discord API error during {operation}: {error}")
            if interaction:
                await self.send_error_response(
                    interaction,
                    "Discord API error occurred. Please try again in a moment.",
                    "❌ Discord Error"
                )
            return False

        logger.error(f"Unexpected error during {operation}: {error}")
        if interaction:
            await self.send_error_response(
                interaction,
                "An unexpected error occurred. Please try again.",
                "❌ Unexpected Error"
            )
        return False

    async def handle_help(self, interaction: discord.Interaction):
        """Handle /help command"""
        try:
            help_embed = discord.Embed(
                title="📖 Psalm Quiz Commands",
                description="Practice memorizing psalms with generated quizzes",
                color=COLOR_SUCCESS
            )

            help_embed.add_field(
                name="🎮 Quiz Commands",
                value=(
                    "`/psalms` - List available psalms and translations\n"
                    "`/quiz <psalm> [style] [translation]` - Start a quiz\n"
                    "`/question` - Show the current question again\n"
                    "`/answer <text>` - Answer with text or an option number\n"
                    "`/skip` - Skip the current question\n"
                    "`/stop` - Stop the current quiz\n"
                    "`/status` - Show quiz status and progress\n"
                    "`/progress` - Show your memorization progress\n"
                    "`/reset_progress` - Delete your recorded progress"
                ),
                inline=False
            )

            help_embed.add_field(
                name="📋 Settings Commands",
                value=(
                    "`/set_style <style>` - Default question style\n"
                    "`/set_translation <abbreviation>` - Default translation\n"
                    "`/set_questions <number>` - Questions per quiz"
                ),
                inline=False
            )

            help_embed.add_field(
                name="🎨 Question Styles",
                value="\n".join(f"`{style.value}` - {style.description}" for style in QuestionStyle),
                inline=False
            )

            help_embed.add_field(
                name="⚙️ Current Settings",
                value=f"```\n{self.config_manager.get_settings_summary()}\n```",
                inline=False
            )

            help_embed.set_footer(text="Use slash commands to interact with the bot")
            await interaction.response.send_message(embed=help_embed)

        except discord.HTTPException as e:
            logger.error(f"Error in help command: {e}")
            await self.send_error_response(interaction, "Failed to display help information", "❌ Help Error")

    async def handle_psalms(self, interaction: discord.Interaction):
        """Handle /psalms command"""
        try:
            loading_summary = self.data_manager.get_loading_summary()
            embed = discord.Embed(
                title="📚 Available Psalms",
                color=COLOR_INFO
            )

            lines = []
            for psalm_number in loading_summary['available_psalms']:
                psalm = self.data_manager.get_psalm(psalm_number)
                translations = ", ".join(self.data_manager.get_translations(psalm_number))
                lines.append(f"**Psalm {psalm_number}** - {psalm.title} ({translations})")
            embed.description = "\n".join(lines) if lines else "No psalms are loaded."

            if loading_summary['fallback_active']:
                embed.add_field(
                    name="⚠️ Using Fallback Psalm",
                    value="Psalm files could not be loaded, only a built-in psalm is available.",
                    inline=False
                )
            elif loading_summary['has_errors']:
                embed.add_field(
                    name="⚠️ Loading Issues",
                    value="Some psalm files had loading errors. Check logs for details.",
                    inline=False
                )

            await interaction.response.send_message(embed=embed)

        except discord.HTTPException as e:
            logger.error(f"Error in psalms command: {e}")
            await self.send_error_response(interaction, "Failed to list psalms", "❌ Psalm List Error")

    async def handle_quiz(self, interaction: discord.Interaction, psalm: int,
                          style: Optional[str] = None, translation: Optional[str] = None):
        """Handle /quiz command"""
        channel_id = interaction.channel_id
        result = self.quiz_controller.start_quiz(
            channel_id, interaction.user.id, psalm, translation, style
        )

        if not result['success']:
            embed = discord.Embed(
                title="❌ Quiz Start Failed",
                description=result['message'],
                color=COLOR_ERROR
            )
            session_info = self.quiz_controller.get_session_progress(channel_id)
            if session_info and session_info['is_active']:
                embed.add_field(
                    name="Current Quiz",
                    value=(
                        f"Psalm {session_info['psalm_number']} - Question "
                        f"{session_info['current_question']}/{session_info['total_questions']}"
                    ),
                    inline=False
                )
        else:
            session_info = result['session_info']
            psalm_data = self.data_manager.get_psalm(psalm)
            embed = discord.Embed(
                title="🎯 Quiz Started!",
                description=f"**Psalm {psalm}: {psalm_data.title}** ({session_info['translation']})",
                color=COLOR_SUCCESS
            )
            embed.add_field(
                name="📊 Quiz Details",
                value=(
                    f"Questions: {session_info['total_questions']}\n"
                    f"Style: {QuestionStyle(session_info['settings']['style']).display_name}"
                ),
                inline=False
            )
            if self.data_manager.is_fallback_psalm_active():
                embed.add_field(
                    name="⚠️ Using Fallback Psalm",
                    value="This is a built-in psalm used because psalm files failed to load.",
                    inline=False
                )

        if not result['success']:
            await self.send_response_with_followup(interaction, "start_quiz", embed, ephemeral=True)
            return

        question = self.quiz_controller.get_current_question(channel_id)
        await self.send_response_with_followup(
            interaction, "start_quiz", embed,
            followup_embed=build_question_embed(question, 1, session_info['total_questions'])
        )

    async def send_response_with_followup(self, interaction: discord.Interaction, operation: str,
                                          embed: discord.Embed, followup_embed: Optional[discord.Embed] = None,
                                          ephemeral: bool = False) -> bool:
        """
        Send the interaction response and an optional followup message.

        A retryable Discord error only repeats the step that failed; an
        interaction can be responded to once.

        Returns:
            True if every message was delivered
        """
        max_retries = 2
        response_sent = False
        for attempt in range(max_retries):
            try:
                if not response_sent:
                    await interaction.response.send_message(embed=embed, ephemeral=ephemeral)
                    response_sent = True
                if followup_embed is not None:
                    await interaction.followup.send(embed=followup_embed)
                return True

            except discord.HTTPException as e:
                if await self.handle_discord_api_error(e, operation, interaction):
                    if attempt < max_retries - 1:
                        continue
                return False
        return False

    async def handle_question(self, interaction: discord.Interaction):
        """Handle /question command"""
        try:
            channel_id = interaction.channel_id
            question = self.quiz_controller.get_current_question(channel_id)
            if question is None:
                await self.send_info_response(
                    interaction, "There is no active quiz in this channel. Use `/quiz` to start one.",
                    "ℹ️ No Active Quiz"
                )
                return

            progress = self.quiz_controller.get_session_progress(channel_id)
            await interaction.response.send_message(
                embed=build_question_embed(question, progress['current_question'], progress['total_questions'])
            )

        except discord.HTTPException as e:
            logger.error(f"Error in question command: {e}")
            await self.send_error_response(interaction, "Failed to show the question", "❌ Quiz Error")

    async def handle_answer(self, interaction: discord.Interaction, text: str):
        """Handle /answer command"""
        channel_id = interaction.channel_id
        question = self.quiz_controller.get_current_question(channel_id)
        if question is None:
            await self.send_info_response(
                interaction, "There is no active quiz in this channel. Use `/quiz` to start one.",
                "ℹ️ No Active Quiz"
            )
            return

        result = self.quiz_controller.submit_answer(channel_id, resolve_answer(question, text))
        await self.send_answer_result(interaction, result)

    async def handle_skip(self, interaction: discord.Interaction):
        """Handle /skip command"""
        result = self.quiz_controller.skip_question(interaction.channel_id)
        await self.send_answer_result(interaction, result)

    async def send_answer_result(self, interaction: discord.Interaction, result: Dict[str, Any]):
        """Report a graded answer, then the next question or the final score."""
        if not result['success']:
            await self.send_info_response(interaction, result['message'], "ℹ️ No Active Quiz")
            return

        if result.get('skipped'):
            title, color = "⏭️ Skipped", COLOR_WARNING
        elif result['correct']:
            title, color = "✅ Correct!", COLOR_SUCCESS
        else:
            title, color = "❌ Not quite", COLOR_ERROR

        embed = discord.Embed(
            title=title,
            description=f"Answer: **{result['correct_answer']}**",
            color=color
        )
        if result['explanation']:
            embed.add_field(name="📖 Explanation", value=result['explanation'], inline=False)
        embed.set_footer(text=f"Score: {result['score']}/{result['answered']}")

        followup_embed = None
        if result['is_complete']:
            followup_embed = build_completion_embed(result['completion'])
        else:
            question = self.quiz_controller.get_current_question(interaction.channel_id)
            if question is not None:
                followup_embed = build_question_embed(question, result['answered'] + 1, result['total'])

        await self.send_response_with_followup(interaction, "send_answer_result", embed, followup_embed)

    async def handle_stop(self, interaction: discord.Interaction):
        """Handle /stop command"""
        try:
            result = self.quiz_controller.stop_quiz(interaction.channel_id)

            if result['success']:
                session_info = result['session_info']
                embed = discord.Embed(
                    title="🛑 Quiz Stopped",
                    description=f"**Psalm {session_info['psalm_number']}** quiz has been ended",
                    color=0xff6600
                )
                embed.add_field(
                    name="📊 Final Stats",
                    value=(
                        f"Answered: {session_info['answered']}/{session_info['total_questions']}\n"
                        f"Score: {session_info['score']}"
                    ),
                    inline=False
                )
                embed.set_footer(text="Stopped quizzes are not recorded in /progress")
                await interaction.response.send_message(embed=embed)
            else:
                await self.send_info_response(interaction, result['message'], "ℹ️ No Active Quiz")

        except discord.HTTPException as e:
            logger.error(f"Error in stop command: {e}")
            await self.send_error_response(interaction, "Failed to stop quiz", "❌ Quiz Control Error")

    async def handle_status(self, interaction: discord.Interaction):
        """Handle /status command"""
        try:
            channel_id = interaction.channel_id
            session_info = self.quiz_controller.get_session_progress(channel_id)

            if session_info is None:
                available = ", ".join(str(number) for number in self.quiz_controller.get_available_psalms())
                await self.send_info_response(
                    interaction,
                    f"There is no quiz session in this channel.\nAvailable psalms: {available}",
                    "ℹ️ No Active Quiz"
                )
                return

            if session_info['is_active']:
                status_emoji, status_text, color = "▶️", "Active", COLOR_SUCCESS
            else:
                status_emoji, status_text, color = "✅", "Completed", COLOR_INFO

            embed = discord.Embed(
                title=f"{status_emoji} Quiz Status - {status_text}",
                description=self.quiz_controller.get_session_status_summary(channel_id),
                color=color
            )

            completion = self.quiz_controller.get_quiz_completion_info(channel_id)
            if completion:
                embed.add_field(name="🏁 Result", value=completion['performance_message'], inline=False)

            embed.set_footer(text="Use /help to see all available commands")
            await interaction.response.send_message(embed=embed)

        except discord.HTTPException as e:
            logger.error(f"Error in status command: {e}")
            await self.send_error_response(interaction, "Failed to get quiz status", "❌ Status Error")

    async def handle_progress(self, interaction: discord.Interaction):
        """Handle /progress command"""
        try:
            user_id = interaction.user.id
            summary = self.progress_tracker.get_user_summary(user_id)
            records = self.progress_tracker.get_user_records(user_id)

            if not records:
                await self.send_info_response(
                    interaction, "You haven't finished any quizzes yet. Use `/quiz` to start one.",
                    "📈 No Progress Yet"
                )
                return

            embed = discord.Embed(
                title="📈 Your Progress",
                description=(
                    f"Psalms practiced: {summary['psalms_practiced']}\n"
                    f"Quizzes finished: {summary['total_attempts']}\n"
                    f"Accuracy: {int(summary['accuracy'] * 100)}%\n"
                    f"Current streak: {summary['current_streak']} day(s)"
                ),
                color=COLOR_INFO
            )
            embed.add_field(
                name="📖 Per Psalm",
                value="\n".join(
                    f"Psalm {record.psalm_number} ({record.translation}): best {int(record.best_score * 100)}%, "
                    f"last {int(record.last_score * 100)}%, {record.attempts} attempt(s)"
                    for record in records[:10]
                ),
                inline=False
            )
            await interaction.response.send_message(embed=embed, ephemeral=True)

        except discord.HTTPException as e:
            logger.error(f"Error in progress command: {e}")
            await self.send_error_response(interaction, "Failed to load your progress", "❌ Progress Error")

    async def handle_reset_progress(self, interaction: discord.Interaction):
        """Handle /reset_progress command"""
        removed = self.progress_tracker.reset_user(interaction.user.id)
        if removed:
            message = f"Deleted {removed} progress record(s). Your next quiz starts a fresh history."
        else:
            message = "You have no recorded progress to delete."
        await self.send_info_response(interaction, message, "🗑️ Progress Reset")

    async def handle_set_style(self, interaction: discord.Interaction, style: str):
        """Handle /set_style command"""
        result = self.config_manager.set_default_style(style)
        await self.send_setting_result(interaction, result, "✅ Quiz Style Updated")

    async def handle_set_translation(self, interaction: discord.Interaction, translation: str):
        """Handle /set_translation command"""
        result = self.config_manager.set_default_translation(translation)
        if result['success']:
            missing = [
                psalm_number for psalm_number in self.data_manager.get_available_psalms()
                if not self.data_manager.translation_exists(psalm_number, translation)
            ]
            if missing:
                result['user_message'] += (
                    "\n⚠️ Not available for psalm(s): " + ", ".join(str(number) for number in missing)
                )
        await self.send_setting_result(interaction, result, "✅ Translation Updated")

    async def handle_set_questions(self, interaction: discord.Interaction, number: int):
        """Handle /set_questions command"""
        result = self.config_manager.set_question_count(number)
        await self.send_setting_result(interaction, result, "✅ Question Count Updated")

    async def send_setting_result(self, interaction: discord.Interaction, result: Dict[str, Any], title: str):
        """Confirm a settings change or report why it was rejected."""
        try:
            if not result['success']:
                await interaction.response.send_message(
                    result.get('user_message', f"❌ {result.get('error', 'Unknown error')}"),
                    ephemeral=True
                )
                return

            embed = discord.Embed(title=title, description=result['user_message'], color=COLOR_SUCCESS)
            embed.add_field(
                name="⚙️ Current Settings",
                value=f"```\n{self.config_manager.get_settings_summary()}\n```",
                inline=False
            )

            health_check = self.config_manager.get_configuration_health_check()
            if not health_check['healthy']:
                embed.add_field(
                    name="⚠️ Configuration Issues",
                    value="\n".join(health_check['errors'][:3]),
                    inline=False
                )

            await interaction.response.send_message(embed=embed)

        except discord.HTTPException as e:
            await self.handle_discord_api_error(e, "update_setting", interaction)

    async def send_error_response(self, interaction: discord.Interaction, message: str, title: str = "❌ Error"):
        """Send formatted error response to user"""
        try:
            embed = discord.Embed(
                title=title,
                description=message,
                color=COLOR_ERROR
            )
            embed.set_footer(text="If this error persists, try using /help for available commands")

            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send error response to user")

    async def send_info_response(self, interaction: discord.Interaction, message: str, title: str = "ℹ️ Information"):
        """Send formatted info response to user"""
        try:
            embed = discord.Embed(
                title=title,
                description=message,
                color=COLOR_INFO
            )

            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send info response to user")


async def run_bot(token=None, config=None):
    """Run the bot with proper error handling"""
    if not token:
        token = os.getenv('DISCORD_BOT_TOKEN')

    if not token:
        logger.error("No Discord bot token provided")
        return

    bot = QuizBot(config)

    try:
        logger.info("Starting Psalm Quiz Bot...")
        await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid bot token provided")
    except discord.HTTPException as e:
        logger.error(f"HTTP error occurred: {e}")
    finally:
        if not bot.is_closed():
            await bot.close()
