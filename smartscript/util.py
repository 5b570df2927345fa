import os
import logging


def _get_logger(name):
    if os.environ.get('DEBUG') == '1' or os.environ.get('TRACE') == '1':
        level = logging.DEBUG
    else:
        level = logging.INFO

    if 'JOURNAL_STREAM' in os.environ:
        fmt = '[%(levelname)s] %(message)s'
    else:
        fmt = '%(asctime)s [%(levelname)s] %(message)s'

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.propagate = False

    h = logging.StreamHandler()
    h.setLevel(level)
    h.setFormatter(logging.Formatter(fmt))
    logger.addHandler(h)

    return logger


log = _get_logger('smartscript')


def shorten(text: str, max_len: int = 64) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len // 2] + '...' + text[-(max_len // 2) :]
