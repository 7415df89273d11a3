"""Entry point for the MIME decoder.

Usage::

    python -m umbrella_mime message.eml   # decoded summary as JSON on stdout
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import structlog

logger = structlog.get_logger()


def main() -> None:
    if len(sys.argv) != 2:
        print("Usage: python -m umbrella_mime <message.eml>", file=sys.stderr)
        sys.exit(1)

    from .config import LoggingConfig, ParserConfig
    from .logging import setup_logging
    from .parser import MimeParser

    setup_logging(LoggingConfig())

    path = Path(sys.argv[1])
    try:
        raw = path.read_bytes()
    except OSError as exc:
        logger.error("message_read_failed", path=str(path), error=str(exc))
        sys.exit(1)

    result = MimeParser(ParserConfig()).parse(raw)
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
