import os
import logging
from typing import Literal

type LogLevel = Literal['none', 'errors', 'warnings', 'info', 'verbose']

LEVELS: dict[str, int] = {
    'none': logging.CRITICAL + 1,
    'errors': logging.ERROR,
    'warnings': logging.WARNING,
    'info': logging.INFO,
    'verbose': logging.DEBUG,
}


_debug = os.environ.get('DEBUG') == '1'


# Output is left to the host: records propagate to its handlers, and
# `init_logging` sets up a console for the CLI.
def _get_logger(name):
    logger = logging.getLogger(name)
    if _debug:
        logger.setLevel(logging.DEBUG)
    logger.addHandler(logging.NullHandler())
    return logger


def init_logging(logger: logging.Logger | None = None):
    logger = logger or log
    level = logging.DEBUG if _debug else logging.INFO

    if 'JOURNAL_STREAM' in os.environ:
        fmt = '[%(levelname)s] %(message)s'
    else:
        fmt = '%(asctime)s [%(levelname)s] %(message)s'

    logger.setLevel(level)
    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        h = logging.StreamHandler()
        h.setLevel(level)
        h.setFormatter(logging.Formatter(fmt))
        logger.addHandler(h)
    logger.propagate = False


log = _get_logger('tracery')

is_tracing = os.environ.get('TRACE') == '1' and _debug
trace = log.debug if is_tracing else lambda *_: None


def shorten(text: str, max_len: int = 64) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len // 2] + '...' + text[-(max_len // 2) :]


class EngineLog:
    '''
    Per-engine view of a logger with its own verbosity.

    The threshold is checked here instead of on the logger, so several engines
    can share one logger with different verbosities. Warnings and errors are
    also collected in `errors` for the host to inspect.
    '''

    def __init__(self, logger: logging.Logger | None = None, level: LogLevel = 'errors'):
        self.logger = logger or log
        self.errors: list[str] = []
        self.set_level(level)

    def set_level(self, level: LogLevel):
        try:
            self._threshold = LEVELS[level]
        except KeyError:
            raise ValueError(f'bad log level: {level!r}') from None
        self.tracing = self._threshold <= logging.DEBUG

    def _log(self, level: int, msg: str, *args):
        # The logger's own level and the host's handlers still apply.
        if level >= self._threshold:
            self.logger.log(level, msg, *args)

    def error(self, msg: str, *args):
        self.errors.append(msg % args if args else msg)
        self._log(logging.ERROR, msg, *args)

    def warning(self, msg: str, *args):
        self.errors.append(msg % args if args else msg)
        self._log(logging.WARNING, msg, *args)

    def info(self, msg: str, *args):
        self._log(logging.INFO, msg, *args)

    def trace(self, msg: str, *args):
        if self.tracing:
            self._log(logging.DEBUG, msg, *args)
