import logging

LOG_FORMAT = "%(asctime)s %(levelname)s: %(message)s"

NOISY_LOGGERS = ("urllib3", "PIL")


def set_log_level(module_name: str, level: int | str) -> None:
    """
    Set the logging level for a specific module.

    Args:
        module_name: Name of the module to configure
        level: Logging level (can be int constant like logging.WARNING or string like 'WARNING')
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())
    logging.getLogger(module_name).setLevel(level)


def configure_logging(level: int | str = logging.INFO) -> None:
    """
    Configure the root logger for a script entry point.

    Third party loggers that report every HTTP connection or image plugin are capped at WARNING.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())
    logging.basicConfig(level=level, format=LOG_FORMAT)

    for name in NOISY_LOGGERS:
        set_log_level(name, max(level, logging.WARNING))
