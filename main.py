import sys
from loguru import logger
from config.settings import settings

logger.remove()
logger.add(sys.stderr, level=settings.LOG_LEVEL,
           format="<green>{time:HH:mm:ss}</green> | <level>{level:<8}</level> | {name}:{line} | {message}",
           colorize=True)
logger.add("logs/vulntrack.log", level="DEBUG", rotation="10 MB", retention=5,
           format="{time} | {level} | {name}:{function} | {message}")

from cli.commands import cli

if __name__ == "__main__":
    logger.debug(f"{settings.APP_NAME} {settings.VERSION} starting ({settings.APP_ENV})")
    cli()
