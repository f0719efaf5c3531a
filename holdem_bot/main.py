"""Bot entry point.

홀덤 디스코드 봇 - Texas Hold'em games hosted in Discord channels
"""

from holdem_bot.bot.client import HoldemClient
from holdem_bot.config import get_settings
from holdem_bot.logging_config import configure_logging, get_logger

logger = get_logger(__name__)


def main() -> None:
    settings = get_settings()

    configure_logging(
        log_level=settings.log_level,
        json_logs=settings.app_env == "production",
        app_env=settings.app_env,
    )

    logger.info(
        "starting_bot",
        app_env=settings.app_env,
        recruit_timeout=settings.recruit_timeout_seconds,
        default_buy_in=settings.default_buy_in,
    )

    client = HoldemClient(settings)
    # log_handler=None: logging is already configured above
    client.run(settings.discord_token, log_handler=None)


if __name__ == "__main__":
    main()
