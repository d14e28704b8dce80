import logging
import sys

import config


class CustomExtraLogAdapter(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        my_context = kwargs.pop("extra", self.extra["extra"])
        if my_context in (None, ""):
            return msg, kwargs
        return "[%s] %s" % (my_context, msg), kwargs


def get_logger(name, level=None) -> logging.LoggerAdapter:

    FORMAT = "[%(levelname)s  %(name)s %(module)s:%(lineno)s - %(funcName)s() - %(asctime)s]\n\t %(message)s \n"
    TIME_FORMAT = "%d.%m.%Y %I:%M:%S %p"

    level = level or getattr(logging, config.LOG_LEVEL, logging.INFO)

    logger_instance = logging.getLogger(name)
    logger_instance.setLevel(level)

    # re-imports must not stack handlers
    if not logger_instance.handlers:
        formatter = logging.Formatter(FORMAT, datefmt=TIME_FORMAT)

        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger_instance.addHandler(handler)

        if config.LOG_FILE:
            file_handler = logging.FileHandler(config.LOG_FILE)
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            logger_instance.addHandler(file_handler)

        logger_instance.propagate = False

    return CustomExtraLogAdapter(logger_instance, {"extra": None})


logger = get_logger("courier_rates")
