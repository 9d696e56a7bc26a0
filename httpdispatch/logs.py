import logging
import sys

import structlog


def configure_logging(level: str = "INFO", fmt: str = "%(message)s", json_output: bool = True,
                      cache_logger_on_first_use: bool = True, stream=None):
    """Route structlog through stdlib logging, on stdout unless another stream is given."""
    logging.basicConfig(
        format=fmt,
        stream=stream or sys.stdout,
        level=getattr(logging, str(level).upper(), logging.INFO),
        force=True,
    )

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=cache_logger_on_first_use,
    )


def configure_from(log_config: dict, stream=None):
    """Apply the `logging` section of a Config. Entrypoints pass stderr so logs stay out of program output."""
    configure_logging(
        level=log_config.get('level', 'INFO'),
        fmt=log_config.get('format', '%(message)s'),
        json_output=log_config.get('json', True),
        stream=stream,
    )
