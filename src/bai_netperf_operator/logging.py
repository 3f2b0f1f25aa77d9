import logging

from bai_netperf_operator import service_logger

LOGGING_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO", service_level: str = None):
    logging.basicConfig(format=LOGGING_FORMAT, level=level)
    service_logger.setLevel(service_level or level)
