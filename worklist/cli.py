import logging
import os
import sys
from pathlib import Path

import fncli

from . import config, db
from .core.errors import WorklistError
from .lib import ansi

_VERBOSE_FLAGS = ("-v", "--verbose")


def main():
    user_args = sys.argv[1:]
    verbose = any(a in _VERBOSE_FLAGS for a in user_args)
    user_args = [a for a in user_args if a not in _VERBOSE_FLAGS]

    logging.basicConfig(
        level=logging.DEBUG if verbose else config.get_log_level(),
        format="%(levelname)s %(name)s: %(message)s",
    )
    if os.environ.get("NO_COLOR") or not sys.stdout.isatty():
        ansi.use(ansi.PLAIN)

    db.init()
    fncli.autodiscover(Path(__file__).parent, "worklist")

    argv = ["worklist", *user_args]
    try:
        code = fncli.dispatch(argv)
    except WorklistError as e:
        sys.stderr.write(f"{e}\n")
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
