import os
import sys
from datetime import datetime, timezone

_LEVELS = {'DEBUG': 10, 'INFO': 20, 'WARN': 30, 'ERROR': 40}


def _ts() -> str:
    return datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S')


def _threshold() -> int:
    name = (os.getenv('LOG_LEVEL') or 'INFO').strip().upper()
    if name == 'WARNING':
        name = 'WARN'
    return _LEVELS.get(name, _LEVELS['INFO'])


def _emit(level: str, msg: str) -> None:
    if _LEVELS[level] < _threshold():
        return
    # stdout is reserved for CLI results
    print(f"[{_ts()}] {level:<5} {msg}", file=sys.stderr)


def debug(msg: str) -> None:
    _emit('DEBUG', msg)


def log(msg: str) -> None:
    _emit('INFO', msg)


def warn(msg: str) -> None:
    _emit('WARN', msg)


def err(msg: str) -> None:
    _emit('ERROR', msg)
