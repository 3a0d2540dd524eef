"""Command of the day: one random command, stable for a TTL window."""

import random
import time

from .cache import CacheStore, Clock, get_or_compute
from .config import Config
from .logging_config import create_request_logger
from .models import CommandEntry
from .responses import Response, json_response

COMMAND_KEY = "command:current"


class CommandListEmpty(Exception):
    """No commands were loaded."""


class CommandOfTheDay:
    """Picks a command uniformly at random and holds it for ``ttl_seconds``."""

    def __init__(
        self,
        commands: list[CommandEntry],
        store: CacheStore,
        ttl_seconds: float = 12 * 60 * 60,
        clock: Clock = time.time,
        rng: random.Random | None = None,
    ):
        self.commands = list(commands)
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.rng = rng or random.Random()

    @classmethod
    def from_config(cls, config: Config, store: CacheStore, **kwargs) -> "CommandOfTheDay":
        """Load the command list, falling back to an empty list on failure."""
        logger = create_request_logger("commands")
        try:
            commands = config.load_commands()
            logger.info("Loaded command list", command_count=len(commands))
        except (OSError, ValueError, KeyError) as e:
            logger.error(f"Failed to load command list: {e}", error=str(e))
            commands = []
        return cls(commands, store, ttl_seconds=config.get_cache_config().command_ttl_seconds, **kwargs)

    def _pick(self) -> dict[str, str]:
        if not self.commands:
            raise CommandListEmpty("Command list is empty")
        return self.rng.choice(self.commands).to_dict()

    def get_command(self) -> dict[str, str]:
        """Return the current command, picking a new one once the TTL has passed.

        Raises:
            CommandListEmpty: If there is nothing to pick from
        """
        value, _ = get_or_compute(
            self.store, COMMAND_KEY, self.ttl_seconds, self._pick, clock=self.clock
        )
        return value

    def handle(self, request_id: str | None = None) -> Response:
        try:
            return json_response(self.get_command())
        except CommandListEmpty as e:
            create_request_logger("commands", request_id).warning(str(e))
            return json_response(
                {
                    "error": "Command list unavailable",
                    "message": "No commands could be loaded on this server",
                }
            )
