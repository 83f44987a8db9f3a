import logging
import re
from typing import Iterable, Union


_LONG_HEX = re.compile(r"\b([0-9a-f]{12})[0-9a-f]{20,}\b", re.IGNORECASE)


class DigestAbbreviatingFilter(logging.Filter):
    """Shorten full-length hex digests in log records to their first 12 chars."""

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        short = _LONG_HEX.sub(r"\1…", msg)
        if short != msg:
            record.msg = short
            record.args = None
        return True


def setup_logging(
    level: Union[int, str] = logging.INFO,
    loggers: Iterable[str] = ("treechain_core", "treechain_cli"),
) -> None:
    logging.basicConfig(level=level)
    f = DigestAbbreviatingFilter()
    for name in loggers:
        lg = logging.getLogger(name)
        lg.setLevel(level)
        lg.addFilter(f)
