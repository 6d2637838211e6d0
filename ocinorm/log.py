import copy
import logging
import sys


class Bcolors:
    RESET_ALL = '\033[0m'
    BOLD = '\033[1m'
    RED = '\033[31m'
    GREEN = '\033[32m'
    YELLOW = '\033[33m'
    BLUE = '\033[34m'


class LevelColourFormatter(logging.Formatter):
    '''
    formatter exposing `levelprefix` (the record's level name; coloured if writing to a tty)
    '''
    level_colours = {
        logging.DEBUG: Bcolors.BLUE,
        logging.INFO: Bcolors.GREEN,
        logging.WARNING: Bcolors.YELLOW,
        logging.ERROR: Bcolors.RED,
    }

    def __init__(self, fmt: str, stream=sys.stderr):
        super().__init__(fmt=fmt)
        self._stream = stream

    def colour_level_name(self, level_name: str, level_number: int) -> str:
        if not (colour := self.level_colours.get(level_number)):
            return level_name

        return f'{Bcolors.BOLD}{colour}{level_name}{Bcolors.RESET_ALL}'

    def formatMessage(self, record):
        record = copy.copy(record)
        levelname = record.levelname
        if self._stream.isatty():
            levelname = self.colour_level_name(levelname, record.levelno)
        record.levelprefix = levelname
        return super().formatMessage(record)


def default_fmt_string() -> str:
    return '%(asctime)s [%(levelprefix)s] %(name)s: %(message)s'


def configure_default_logging(
    stdout_level=None,
    force=True,
):
    '''
    configures the root logger to emit to stderr. Intended to be called from cli-entrypoints;
    the library itself never configures logging.
    '''
    if not stdout_level:
        stdout_level = logging.INFO

    # make sure to have a clean root logger (in case setup is called multiple times)
    if force:
        for h in list(logging.root.handlers):
            logging.root.removeHandler(h)
            h.close()

    sh = logging.StreamHandler(stream=sys.stderr)
    sh.setLevel(stdout_level)
    sh.setFormatter(LevelColourFormatter(fmt=default_fmt_string(), stream=sys.stderr))

    logging.root.addHandler(hdlr=sh)
    logging.root.setLevel(level=stdout_level)
