import importlib
import logging
import os

import discord
from discord.ext import commands
from dotenv import load_dotenv

from playback.cache import KeyValueCache
from playback.play_command import QueueService
from playback.third_party import ThirdParty

load_dotenv()

log = logging.getLogger("playbot")


def load_queue_service(path: str) -> QueueService:
    """Build the queue service from a ``module:factory`` path."""
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"QUEUE_SERVICE must look like 'module:factory', got {path!r}")
    factory = getattr(importlib.import_module(module_name), attr)
    return factory()


class Playbot(commands.AutoShardedBot):
    def __init__(
        self,
        queue_service: QueueService,
        third_party: ThirdParty | None = None,
        cache: KeyValueCache | None = None,
    ) -> None:
        intents = discord.Intents.default()
        super().__init__(command_prefix="!", intents=intents)
        self.queue_service = queue_service
        self.third_party = third_party
        self.cache = cache if cache is not None else KeyValueCache()

    async def setup_hook(self) -> None:
        await self.load_extension("cogs.play_cog")
        await self.tree.sync()
        log.info("Command tree synced.")

        metrics_port = os.getenv("METRICS_PORT")
        if metrics_port:
            try:
                from playback.metrics import start_metrics_server
                start_metrics_server(int(metrics_port))
                log.info("Prometheus metrics server started on :%s", metrics_port)
            except Exception as exc:
                log.warning("Failed to start metrics server: %s", exc)

    async def on_ready(self) -> None:
        log.info("Logged in as %s (ID: %s), %d guilds, %s shard(s)",
                 self.user, self.user.id, len(self.guilds),
                 self.shard_count or 1)


def main() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    token = os.getenv("DISCORD_TOKEN")
    if not token:
        raise SystemExit("DISCORD_TOKEN not set in .env")

    queue_service_path = os.getenv("QUEUE_SERVICE")
    if not queue_service_path:
        raise SystemExit("QUEUE_SERVICE not set in .env")

    bot = Playbot(
        queue_service=load_queue_service(queue_service_path),
        third_party=ThirdParty.from_env(),
    )
    bot.run(token, log_handler=None)


if __name__ == "__main__":
    main()
