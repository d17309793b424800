import logging


def setup_logging(level: str = "INFO"):
    # basicConfig writes to stderr, stdout is reserved for the report
    levelno = getattr(logging, str(level).upper(), logging.INFO)
    fmt = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
    logging.basicConfig(level=levelno, format=fmt)
