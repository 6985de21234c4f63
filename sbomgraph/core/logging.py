import logging
import os
import sys
from typing import Any

import structlog
from rich.console import Console

# Central console for rich output
console = Console()
err_console = Console(stderr=True)


class RichConsoleRenderer:
    """
    A structlog renderer printing key=value events through rich.

    An optional '_style' key in the event dict overrides the line style.
    """

    LEVEL_STYLES = {
        'debug': 'dim',
        'info': 'green',
        'warning': 'yellow',
        'error': 'bold red',
        'critical': 'bold magenta',
    }

    def __init__(self, target: Console | None = None):
        self._console = target or err_console

    def __call__(self, logger, name, event_dict):
        custom_style = event_dict.pop('_style', None)

        event = event_dict.pop('event', '')
        log_level = event_dict.pop('level', 'info')
        logger_name = event_dict.pop('logger', None)
        timestamp = event_dict.pop('timestamp', '')
        exception = event_dict.pop('exception', None) or event_dict.pop('exc_info', None)
        stack_info = event_dict.pop('stack_info', None)

        parts = []
        if timestamp:
            parts.append(f"[dim]{timestamp}[/dim]")
        if logger_name:
            parts.append(f"[bold]{logger_name}[/bold]")

        level_style = self.LEVEL_STYLES.get(log_level, 'white')
        parts.append(f"[{level_style}]{log_level:<8}[/{level_style}]")
        parts.append(str(event))

        for key, value in event_dict.items():
            parts.append(f"[cyan]{key}[/cyan]=[green]{value!r}[/green]")

        message = ' '.join(parts)
        if exception:
            message += f"\n[red]{exception}[/red]"
        if stack_info:
            message += f"\n[dim]{stack_info}[/dim]"

        self._console.print(message, style=custom_style, highlight=False)

        # Already printed; keep the stdlib logger from emitting an empty line
        raise structlog.DropEvent


def drop_style_processor(logger, method_name, event_dict):
    """Remove the internal '_style' key so it never leaks into JSON logs."""
    event_dict.pop('_style', None)
    return event_dict


def setup_logging(level: str = 'INFO') -> None:
    """Configure structured logging for the application."""
    logging.basicConfig(format='%(message)s', stream=sys.stderr, level=level)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt='iso'),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if os.getenv('ENV') == 'production':
        processors = shared_processors + [
            drop_style_processor,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            RichConsoleRenderer(),
        ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
