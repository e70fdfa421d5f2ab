import asyncio
import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import discord
from discord.ext import commands

from .config_manager import ConfigManager
from .models import SessionState
from .presenter import DiscordPresenter, format_status
from .quiz_controller import QuizController, QuizControllerError


def setup_logging(level: str = "INFO", log_directory: str = "logs") -> logging.Logger:
    """Set up console and file logging for the bot process."""
    logs_dir = Path(log_directory)
    logs_dir.mkdir(exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(logs_dir / "bot.log", encoding='utf-8'),
        ]
    )

    # Reduce discord.py noise
    logging.getLogger('discord').setLevel(logging.WARNING)
    logging.getLogger('discord.http').setLevel(logging.WARNING)

    return logging.getLogger(__name__)


logger = logging.getLogger(__name__)


@dataclass
class ChannelGame:
    """A quiz session being played in one channel."""
    channel_id: int
    player_id: int
    controller: QuizController
    presenter: DiscordPresenter
    task: Optional[asyncio.Task] = field(default=None)
    last_tick: Optional[float] = None


class FlashCalcBot(commands.Bot):
    """Discord bot hosting FlashCalc quiz sessions"""

    DEFAULT_TICK_INTERVAL = 0.1

    def __init__(self, config=None):
        self.app_config = config or {}
        bot_config = self.app_config.get('bot', {})

        intents = discord.Intents.none()
        intents.guilds = True  # Required for slash commands
        intents.guild_messages = True  # Answers are plain messages
        # Privileged intent, enable it in the Discord Developer Portal
        intents.message_content = bot_config.get('message_content_intent', True)

        super().__init__(
            command_prefix=bot_config.get('command_prefix', '!'),
            intents=intents,
            help_command=None
        )

        self.config_manager = ConfigManager()
        self.tick_interval = bot_config.get('tick_interval', self.DEFAULT_TICK_INTERVAL)
        self.timer_update_interval = bot_config.get('timer_update_interval', 1.0)
        self.games: Dict[int, ChannelGame] = {}
        self.tick_clock = time.monotonic

    async def setup_hook(self):
        """Called when the bot is starting up"""
        logger.info("Setting up bot components...")
        self.apply_configuration()
        await self.setup_commands()
        logger.info("Bot setup completed successfully")

    def apply_configuration(self):
        """Apply the quiz section of the configuration file."""
        rejected = self.config_manager.apply_config(self.app_config.get('quiz', {}))
        for error in rejected:
            logger.warning(f"Ignoring configured value: {error}")

    async def setup_commands(self):
        """Register all slash commands"""
        @self.tree.command(name="help", description="Display available commands and their descriptions")
        async def help_command(interaction: discord.Interaction):
            await self.handle_help(interaction)

        @self.tree.command(name="flashcalc", description="Start a flash calculation quiz in this channel")
        async def flashcalc_command(interaction: discord.Interaction):
            await self.handle_start(interaction)

        @self.tree.command(name="stop", description="Abandon the quiz running in this channel")
        async def stop_command(interaction: discord.Interaction):
            await self.handle_stop(interaction)

        @self.tree.command(name="status", description="Show the quiz progress in this channel")
        async def status_command(interaction: discord.Interaction):
            await self.handle_status(interaction)

        @self.tree.command(name="settings", description="Show the current quiz settings")
        async def settings_command(interaction: discord.Interaction):
            await self.handle_settings(interaction)

        @self.tree.command(name="set_display_time", description="Set the starting seconds per question (1-60)")
        async def set_display_time_command(interaction: discord.Interaction, seconds: float):
            await self.handle_set_display_time(interaction, seconds)

        @self.tree.command(name="set_max_questions", description="Set how many questions complete a session (1-100)")
        async def set_max_questions_command(interaction: discord.Interaction, count: int):
            await self.handle_set_max_questions(interaction, count)

        logger.info("Slash commands registered successfully")

    async def on_ready(self):
        """Called when the bot has successfully connected to Discord"""
        logger.info(f"Bot is ready! Logged in as {self.user}")
        print(f"🤖 {self.user} is Ready and Online!")

        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} slash commands")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync slash commands: {e}")

    async def on_error(self, event, *args, **kwargs):
        """Handle general bot errors"""
        logger.error(f"An error occurred in event {event}", exc_info=True)

    async def on_message(self, message: discord.Message):
        """Deliver the player's chat messages to their running quiz as answers."""
        if message.author.bot:
            return

        game = self.games.get(message.channel.id)
        if game is None or message.author.id != game.player_id:
            return

        # Time passed since the last loop tick counts before the answer does
        self._advance_game(game)
        game.controller.submit_answer(message.content)
        if game.presenter.has_pending_events:
            await game.presenter.flush()

    async def handle_help(self, interaction: discord.Interaction):
        """Handle /help command"""
        try:
            help_embed = discord.Embed(
                title="🧮 FlashCalc Commands",
                description="Answer arithmetic problems before the timer runs out",
                color=0x00ff00
            )
            help_embed.add_field(
                name="🎮 Playing",
                value=(
                    "`/flashcalc` - Start a quiz in this channel\n"
                    "`/stop` - Abandon the running quiz\n"
                    "`/status` - Show the quiz progress\n"
                    "Type your answers as plain messages. One wrong answer or timeout ends the run."
                ),
                inline=False
            )
            help_embed.add_field(
                name="📋 Settings",
                value=(
                    "`/settings` - Show the current settings\n"
                    "`/set_display_time <seconds>` - Starting seconds per question\n"
                    "`/set_max_questions <count>` - Questions in a full session"
                ),
                inline=False
            )
            help_embed.add_field(
                name="🏆 Ranks",
                value="SS 25+ | S 20+ | A 16+ | B 13+ | C 9+ | D 6+ | E",
                inline=False
            )
            await interaction.response.send_message(embed=help_embed)

        except discord.HTTPException as e:
            logger.error(f"Error in help command: {e}")
            await self.send_error_response(interaction, "Failed to display help", "❌ Help Error")

    async def handle_start(self, interaction: discord.Interaction):
        """Handle /flashcalc command"""
        channel_id = interaction.channel_id

        if channel_id in self.games:
            await self.send_warning_response(
                interaction,
                "A quiz is already running in this channel. Use `/stop` to abandon it.",
                "⚠️ Quiz In Progress"
            )
            return

        settings = self.config_manager.get_quiz_settings()
        presenter = DiscordPresenter(
            interaction.channel,
            settings.max_questions,
            timer_update_interval=self.timer_update_interval
        )
        controller = QuizController(self.config_manager, presenter)

        try:
            controller.start_trigger(settings)
        except QuizControllerError as e:
            logger.error(f"Failed to start quiz in channel {channel_id}: {e}")
            await self.send_error_response(interaction, str(e), "❌ Start Error")
            return

        game = ChannelGame(
            channel_id=channel_id,
            player_id=interaction.user.id,
            controller=controller,
            presenter=presenter,
            last_tick=self.tick_clock()
        )
        self.games[channel_id] = game

        embed = discord.Embed(
            title="🧮 FlashCalc Started!",
            description=f"{interaction.user.mention}, answer each problem by typing the number.",
            color=0x00ff00
        )
        embed.add_field(
            name="⚙️ Settings",
            value=(
                f"Questions: {settings.max_questions}\n"
                f"Starting time: {settings.initial_display_time:g} seconds per question"
            ),
            inline=False
        )
        try:
            await interaction.response.send_message(embed=embed)
        except discord.HTTPException as e:
            logger.error(f"Failed to announce quiz start: {e}")

        game.task = asyncio.create_task(self.run_game(game))
        logger.info(f"Quiz started in channel {channel_id} for user {interaction.user.id}")

    async def run_game(self, game: ChannelGame):
        """
        Drive a game's controller with real elapsed time until it is idle again.

        Args:
            game: The game to run
        """
        try:
            await game.presenter.flush()
            if game.last_tick is None:
                game.last_tick = self.tick_clock()
            while game.controller.state is not SessionState.IDLE:
                await asyncio.sleep(self.tick_interval)
                self._advance_game(game)
                await game.presenter.flush()
        finally:
            if self.games.get(game.channel_id) is game:
                del self.games[game.channel_id]
            logger.debug(f"Game loop finished for channel {game.channel_id}")

    def _advance_game(self, game: ChannelGame):
        """Tick a game's controller by the real time since its previous tick."""
        now = self.tick_clock()
        if game.last_tick is not None:
            game.controller.tick(now - game.last_tick)
        game.last_tick = now

    async def handle_stop(self, interaction: discord.Interaction):
        """Handle /stop command"""
        game = self.games.pop(interaction.channel_id, None)
        if game is None:
            await self.send_info_response(interaction, "No quiz is running in this channel", "ℹ️ No Quiz")
            return

        if game.task and not game.task.done():
            game.task.cancel()
        game.controller.abandon()

        summary = game.controller.last_summary
        description = "The quiz was abandoned."
        if summary is not None:
            description += f" {summary.correct_count} correct answer(s) so far."

        try:
            await interaction.response.send_message(
                embed=discord.Embed(title="🛑 Quiz Stopped", description=description, color=0xff6600)
            )
        except discord.HTTPException as e:
            logger.error(f"Failed to confirm quiz stop: {e}")

    async def handle_status(self, interaction: discord.Interaction):
        """Handle /status command"""
        game = self.games.get(interaction.channel_id)
        if game is None:
            await self.send_info_response(interaction, "No quiz is running in this channel", "ℹ️ No Quiz")
            return

        embed = discord.Embed(
            title="📊 Quiz Status",
            description=format_status(game.controller.get_snapshot()),
            color=0x6699ff
        )
        embed.set_footer(text="Use /help to see all available commands")
        try:
            await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException as e:
            logger.error(f"Error in status command: {e}")

    async def handle_settings(self, interaction: discord.Interaction):
        """Handle /settings command"""
        embed = discord.Embed(
            title="⚙️ Current Settings",
            description=f"```\n{self.config_manager.get_settings_summary()}\n```",
            color=0x6699ff
        )
        health_check = self.config_manager.get_configuration_health_check()
        if health_check['warnings']:
            embed.add_field(name="Notes", value="\n".join(health_check['warnings']), inline=False)
        try:
            await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException as e:
            logger.error(f"Error in settings command: {e}")

    async def handle_set_display_time(self, interaction: discord.Interaction, seconds: float):
        """Handle /set_display_time command"""
        result = self.config_manager.set_initial_display_time(seconds)
        await self._send_config_result(interaction, result, "✅ Display Time Updated")

    async def handle_set_max_questions(self, interaction: discord.Interaction, count: int):
        """Handle /set_max_questions command"""
        result = self.config_manager.set_max_questions(count)
        await self._send_config_result(interaction, result, "✅ Question Count Updated")

    async def _send_config_result(self, interaction: discord.Interaction, result: dict, title: str):
        if not result['success']:
            await self.send_error_response(interaction, result['user_message'], "❌ Configuration Error")
            return

        embed = discord.Embed(title=title, description=result['user_message'], color=0x00ff00)
        embed.set_footer(text="Applies to quizzes started from now on")
        try:
            await interaction.response.send_message(embed=embed)
        except discord.HTTPException as e:
            logger.error(f"Failed to confirm configuration change: {e}")

    async def send_error_response(self, interaction: discord.Interaction, message: str, title: str = "❌ Error"):
        """Send formatted error response to user"""
        await self._send_ephemeral(interaction, message, title, 0xff0000)

    async def send_info_response(self, interaction: discord.Interaction, message: str, title: str = "ℹ️ Information"):
        """Send formatted info response to user"""
        await self._send_ephemeral(interaction, message, title, 0x6699ff)

    async def send_warning_response(self, interaction: discord.Interaction, message: str, title: str = "⚠️ Warning"):
        """Send formatted warning response to user"""
        await self._send_ephemeral(interaction, message, title, 0xffaa00)

    async def _send_ephemeral(self, interaction: discord.Interaction, message: str, title: str, color: int):
        try:
            embed = discord.Embed(title=title, description=message, color=color)
            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error(f"Failed to send response to user: {title}")


async def run_bot(token=None, config=None):
    """Run the bot with proper error handling"""
    if not token:
        token = os.getenv('DISCORD_BOT_TOKEN')

    if not token:
        logger.error("No Discord bot token provided")
        return

    bot = FlashCalcBot(config)

    try:
        logger.info("Starting FlashCalc bot...")
        await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid bot token provided")
    except discord.HTTPException as e:
        logger.error(f"HTTP error occurred: {e}")
    finally:
        if not bot.is_closed():
            await bot.close()
