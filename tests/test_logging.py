import logging

from listing_search.utils.logging import configure_logging, get_logger


def test_child_loggers_hang_off_the_package_logger():
    assert get_logger("services.filters").name == "listing_search.services.filters"
    assert get_logger().name == "listing_search"


def test_reconfiguring_changes_level_without_duplicate_handlers():
    logger = configure_logging(level="debug")
    handlers = len(logger.handlers)
    configure_logging(level="warning")
    assert logger.level == logging.WARNING
    assert len(logger.handlers) == handlers == 1
    assert logger.propagate is False
    configure_logging(level="info")
