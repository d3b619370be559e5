import contextvars
import logging
import sys
from configparser import RawConfigParser
from contextlib import contextmanager
from logging import Logger
from logging import config as logging_config
from typing import TYPE_CHECKING, Any, Generator, Optional, Tuple, cast

from authz import config

if TYPE_CHECKING:
    from logging import LogRecord

# Default logging configuration
DEFAULT_LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "loggers": {
        "authz": {
            "level": "INFO",
            "handlers": ["consoleHandler"],
            "propagate": False,
        },
    },
    "handlers": {
        "consoleHandler": {
            "class": "logging.StreamHandler",
            "level": "INFO",
            "formatter": "formatter_formatter",
            "stream": "ext://sys.stdout",  # Outputs to console
        }
    },
    "formatters": {
        "formatter_formatter": {
            "format": "%(asctime)s.%(msecs)03d - %(name)s - %(levelname)s - %(message)s %(reqidf)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
}

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id")

_configured = False


def annotate_logger(logger: Logger) -> None:
    """
    Adds a request ID filter to all handlers of the specified logger.

    Args:
        logger (Logger): The logger instance to annotate.
    """
    for handler in logger.handlers:
        if not any(isinstance(f, RequestIDFilter) for f in handler.filters):
            handler.addFilter(RequestIDFilter())


def _configure_logging_from_raw(raw_config: RawConfigParser) -> None:
    """
    Dynamically configures logging based on a RawConfigParser object.

    Args:
        raw_config (RawConfigParser): The source configuration containing logging sections.
    """
    # Step 1: Configure formatters
    formatters = {}
    for section in raw_config.sections():
        if section.startswith("formatter_"):
            formatter_name = section.split("_", 1)[1]
            formatter_options = dict(raw_config.items(section))
            format_str = formatter_options.get("format", "%(message)s")
            datefmt = formatter_options.get("datefmt", None)
            formatters[formatter_name] = logging.Formatter(format_str, datefmt)

    # Step 2: Configure handlers
    handlers = {}
    for section in raw_config.sections():
        if section.startswith("handler_"):
            handler_name = section.split("_", 1)[1]
            handler_options = dict(raw_config.items(section))
            handler_class = handler_options.get("class", "logging.StreamHandler")
            level = handler_options.get("level", "NOTSET").upper()
            formatter_name = handler_options.get("formatter", "NOTSET")

            args = _parse_args(handler_options.get("args", "()"))
            handler: logging.Handler
            if "StreamHandler" in handler_class:
                handler = logging.StreamHandler(stream=sys.stdout if not args else args[0])
            elif "FileHandler" in handler_class:
                handler = logging.FileHandler(filename=args[0])
            else:
                raise ValueError(f"Unsupported handler class: {handler_class}")

            handler.setLevel(getattr(logging, level, logging.NOTSET))
            if formatter_name in formatters:
                handler.setFormatter(formatters[formatter_name])

            handlers[handler_name] = handler

    # Step 3: Configure root logger
    if "logger_root" in raw_config.sections():
        root_logger = logging.getLogger()
        root_options = dict(raw_config.items("logger_root"))
        level = root_options.get("level", "NOTSET").upper()
        handler_names = [name.strip() for name in root_options.get("handlers", "").split(",") if name]

        root_logger.setLevel(level)
        root_logger.handlers = [handlers[name] for name in handler_names if name in handlers]

    # Step 4: Configure other loggers
    for section in raw_config.sections():
        if section.startswith("logger_") and section != "logger_root":
            logger_name = section.split("_", 1)[1]
            logger_options = dict(raw_config.items(section))
            level = logger_options.get("level", "NOTSET").upper()
            propagate = logger_options.get("propagate", "1") == "1"
            handler_names = [name.strip() for name in logger_options.get("handlers", "").split(",") if name]

            logger = logging.getLogger(logger_name)
            logger.setLevel(level)
            logger.propagate = propagate
            logger.handlers = [handlers[name] for name in handler_names if name in handlers]


def _parse_args(args_str: str) -> Tuple[Any, ...]:
    """
    Parse the `args` string of a handler section (e.g., "(sys.stdout,)" or "('/var/log/authz.log',)").

    Only standard streams and plain strings are understood; nothing is evaluated.
    """
    if args_str == "()":
        return ()

    if args_str.startswith("(") and args_str.endswith(")"):
        parsed_args: list[Any] = []

        for arg in (a.strip() for a in args_str[1:-1].split(",")):
            if not arg:
                continue
            if arg == "sys.stdout":
                parsed_args.append(sys.stdout)
            elif arg == "sys.stderr":
                parsed_args.append(sys.stderr)
            else:
                parsed_args.append(arg.strip("'\""))

        return tuple(parsed_args)

    raise ValueError(f"Invalid args format: {args_str}")


@contextmanager
def _safe_logging_configuration() -> Generator[None, None, None]:
    """
    Context manager to safely apply logging configuration. If an error occurs,
    all loggers (root and named) are restored to their original state.
    """
    existing_loggers: dict[str, dict[str, list[logging.Handler] | int | bool]] = {
        name: {
            "handlers": list(logger.handlers),
            "level": logger.level,
            "propagate": logger.propagate,
        }
        for name, logger in logging.Logger.manager.loggerDict.items()
        if isinstance(logger, logging.Logger)
    }
    root_logger: Logger = logging.getLogger()
    root_backup: dict[str, list[logging.Handler] | int] = {
        "handlers": list(root_logger.handlers),
        "level": root_logger.level,
    }

    try:
        yield
    except Exception:
        for name, logger in logging.Logger.manager.loggerDict.items():
            if name in existing_loggers and isinstance(logger, logging.Logger):
                logger.handlers = cast(list[logging.Handler], existing_loggers[name]["handlers"])
                logger.level = cast(int, existing_loggers[name]["level"])
                logger.propagate = cast(bool, existing_loggers[name]["propagate"])
        root_logger.handlers = cast(list[logging.Handler], root_backup["handlers"])
        root_logger.setLevel(cast(int, root_backup["level"]))
        raise


def _safe_get_config(component: str) -> Optional[RawConfigParser]:
    try:
        return config.get_config(component)
    except Exception:
        return None


def configure_logging(disable_tornado_access: bool = False) -> None:
    """
    Applies the default logging configuration, then the configuration of the "logging" component, if any.

    Importing the package never configures logging: applications which want the package's log output formatted
    this way call this function once at startup. Later calls do nothing.

    Args:
        disable_tornado_access (bool): Also silence the "tornado.access" logger, for applications which rely on
            the request lines that PipelineHandler logs to "authz.web" instead.
    """
    global _configured

    if _configured:
        return

    _configured = True
    logging_config.dictConfig(DEFAULT_LOGGING_CONFIG)

    logging_conf = _safe_get_config("logging")

    if logging_conf and logging_conf.sections():
        logger = logging.getLogger("authz")

        try:
            with _safe_logging_configuration():
                _configure_logging_from_raw(logging_conf)
        except Exception as e:
            logger.error("Logging configuration error: %s", e)

    if disable_tornado_access:
        logging.getLogger("tornado.access").disabled = True

    annotate_logger(logging.getLogger())
    annotate_logger(logging.getLogger("authz"))


def init_logging(loggername: str) -> Logger:
    """
    Returns the "authz.<loggername>" logger. Handlers, levels and formats are left to the application.
    """
    return logging.getLogger(f"authz.{loggername}")


class RequestIDFilter(logging.Filter):
    """
    A logging filter that adds a request ID to log records.

    This filter retrieves the request ID from the `request_id_var` context variable
    and attaches it to each log record as `reqid` and `reqidf`.
    """

    def filter(self, record: "LogRecord") -> bool:
        reqid = request_id_var.get("")

        record.reqid = reqid
        record.reqidf = f"(reqid={reqid})" if reqid else ""

        return True
