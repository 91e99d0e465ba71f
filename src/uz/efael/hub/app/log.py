import json
import logging
from logging.config import dictConfig

from uz.efael.hub.app.config import Settings


def configure_logging(settings: Settings) -> None:
    if len(settings.logging_config_file) > 0:
        with open(settings.logging_config_file) as fl:
            dictConfig(json.load(fl))
        return

    logging.basicConfig()
    logging.getLogger().setLevel(logging.DEBUG if settings.debug else logging.INFO)
