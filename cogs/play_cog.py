from __future__ import annotations

import copy
import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from playback.cache import KeyValueCache
from playback.errors import PreconditionError
from playback.metrics import autocomplete_failures_total
from playback.play_command import (
    PlayCommand,
    PlayInvocation,
    QueueService,
    query_description,
)
from playback.third_party import ThirdParty

log = logging.getLogger(__name__)

# Discord rejects choice names longer than this.
MAX_CHOICE_LENGTH = 100


def _truncate(text: str) -> str:
    if len(text) > MAX_CHOICE_LENGTH:
        return text[: MAX_CHOICE_LENGTH - 3] + "..."
    return text


async def _reply(interaction: discord.Interaction, msg: str) -> None:
    if interaction.response.is_done():
        await interaction.followup.send(msg, ephemeral=True)
    else:
        await interaction.response.send_message(msg, ephemeral=True)


class PlayCog(commands.Cog):
    def __init__(
        self,
        bot: commands.Bot,
        queue_service: QueueService,
        cache: KeyValueCache,
        third_party: ThirdParty | None = None,
    ) -> None:
        self.bot = bot
        self.command = PlayCommand(queue_service, cache, third_party)
        # The query hint depends on whether Spotify is configured. Swap in a
        # copy so the parameter shared with the class-level command is untouched.
        params = self.play._params
        query_param = copy.copy(params["query"])
        query_param.description = self.command.query_description
        params["query"] = query_param

    @app_commands.command(name="play", description="play a song")
    @app_commands.describe(
        query=query_description(None),
        immediate="add track to the front of the queue",
        shuffle="shuffle the input if you're adding multiple tracks",
        split="if a track has chapters, split it",
        skip="skip the currently playing track",
    )
    async def play(
        self,
        interaction: discord.Interaction,
        query: str,
        immediate: Optional[bool] = None,
        shuffle: Optional[bool] = None,
        split: Optional[bool] = None,
        skip: Optional[bool] = None,
    ) -> None:
        voice = getattr(interaction.user, "voice", None)
        if not voice or not voice.channel:
            await _reply(interaction, "You need to be in a voice channel.")
            return

        await self.command.execute(
            PlayInvocation(
                query=query,
                immediate=immediate,
                shuffle=shuffle,
                split=split,
                skip=skip,
                channel=interaction.channel,
                interaction=interaction,
            )
        )

    @play.autocomplete("query")
    async def query_autocomplete(
        self, interaction: discord.Interaction, current: str
    ) -> list[app_commands.Choice[str]]:
        try:
            suggestions = await self.command.resolve(current)
        except Exception as exc:
            autocomplete_failures_total.inc()
            log.warning("Autocomplete for %r failed: %s", current, exc)
            return []
        return [
            app_commands.Choice(name=_truncate(s.name), value=s.value[:MAX_CHOICE_LENGTH])
            for s in suggestions
        ]

    async def cog_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        original = getattr(error, "original", error)
        if isinstance(original, PreconditionError):
            await _reply(interaction, str(original))
            return
        log.error("/%s failed", getattr(interaction.command, "name", "?"), exc_info=original)
        try:
            await _reply(interaction, "Something went wrong while running this command.")
        except discord.HTTPException:
            pass


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(
        PlayCog(
            bot,
            queue_service=bot.queue_service,  # type: ignore[attr-defined]
            cache=bot.cache,  # type: ignore[attr-defined]
            third_party=bot.third_party,  # type: ignore[attr-defined]
        )
    )
