"""Removal of expired files and directories at the top level of a directory."""

from __future__ import annotations

import logging
import os
import shutil
import stat
from datetime import datetime
from typing import Iterable, Union


def _timestamp(value: Union[datetime, float]) -> float:
    if isinstance(value, datetime):
        return value.timestamp()
    return float(value)


def _remove_all(path: str, info: os.stat_result) -> None:
    try:
        if stat.S_ISDIR(info.st_mode):
            shutil.rmtree(path)
        else:
            os.remove(path)
    except FileNotFoundError:
        pass


def garbage_collect(
    logger: logging.Logger,
    root_path: str,
    include_substr: Iterable[str],
    expiration_time: Union[datetime, float],
) -> None:
    """Delete the entries directly under ``root_path`` that have expired.

    An entry goes when its name contains one of ``include_substr`` (or its
    path equals one of them) and it was modified before ``expiration_time``,
    a datetime or a ``time.time()`` timestamp. Subdirectories are not
    descended into.
    """
    logger = logger.getChild("gc")
    limit = _timestamp(expiration_time)
    substrings = list(include_substr)
    root = os.fspath(root_path)

    root_info = os.lstat(root)
    if not stat.S_ISDIR(root_info.st_mode):
        return

    for name in sorted(os.listdir(root)):
        path = os.path.normpath(os.path.join(root, name))
        info = os.lstat(path)

        if info.st_mtime >= limit:
            continue
        if not any(substr in name or path == substr for substr in substrings):
            continue

        try:
            _remove_all(path, info)
        except OSError as err:
            raise OSError(f"garbage collect '{path}': {err}") from err
        logger.debug(f"'{path}' removed")