import sys
import os

from loguru import logger

from marketplace.config.config import settings


class SingletonLogger():
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance.setup_logger()
        return cls._instance

    def setup_logger(self):
        logger.remove()  # Remove default handler

        log_level = os.getenv('LOG_LEVEL') or settings.Logging.LEVEL
        deployment = os.getenv('DEPLOYMENT')
        if deployment == 'CLOUD':
            # Structured records for the log collector
            logger.add(sink=sys.stdout, level=log_level, serialize=True)
        else:
            logger.add(sink=sys.stdout, level=log_level)

    def get_logger(self):
        return logger


logger = SingletonLogger().get_logger()
