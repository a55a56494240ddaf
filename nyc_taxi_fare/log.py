import logging
import time


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"


def setup_logging(level=logging.INFO):
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S")


class Timer:
    """Logs start, duration and failure of a pipeline phase."""

    def __init__(self, what, logger=None):
        self.what = what
        self.log = logger or logging.getLogger("nyc_taxi_fare")
        self.t0 = None
        self.elapsed = None

    def __enter__(self):
        self.t0 = time.perf_counter()
        self.log.info("%s ...", self.what)
        return self

    def __exit__(self, exc_type, exc, tb):
        self.elapsed = time.perf_counter() - self.t0
        if exc:
            self.log.error("%s failed after %.2fs: %s", self.what, self.elapsed, exc)
        else:
            self.log.info("%s done in %.2fs", self.what, self.elapsed)
        return False
