import logging
import os
import sys

from app import TimeCircuits
from keypad import RestartRequested
import config, web_remote

log = logging.getLogger("timecircuits")


def setup_logging(level: int = logging.INFO) -> None:
    fmt = logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s")
    root = logging.getLogger()
    root.setLevel(level)
    for handler in (logging.StreamHandler(), logging.FileHandler(web_remote.LOG_FILE)):
        handler.setFormatter(fmt)
        root.addHandler(handler)


def main():
    setup_logging(logging.DEBUG if "-v" in sys.argv[1:] else logging.INFO)
    tc = TimeCircuits()
    if getattr(config, "WEB_REMOTE", True):
        web_remote.start(tc)  # tc = current TimeCircuits instance
    try:
        tc.run()
    except RestartRequested:
        log.info("Restarting")
        logging.shutdown()
        os.execv(sys.executable, [sys.executable] + sys.argv)


if __name__ == "__main__":
    main()
