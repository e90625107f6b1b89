import logging
from pathlib import Path


def setup_logger(name: str = "metaopt", log_dir: str | None = None, log_file: str = "run.log",
                 console_level: str = "INFO", file_level: str = "DEBUG"):
    """
    Set up a logger that writes to the console and, when log_dir is given,
    to a file in log_dir.

    Calling it again for the same name returns the already configured logger.
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)  # Handlers filter

    if not logger.handlers:
        ch = logging.StreamHandler()
        ch.setLevel(getattr(logging, console_level.upper(), logging.INFO))
        ch.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        logger.addHandler(ch)

        if log_dir is not None:
            Path(log_dir).mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(Path(log_dir) / log_file, encoding="utf-8")
            fh.setLevel(getattr(logging, file_level.upper(), logging.DEBUG))
            fh.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
            logger.addHandler(fh)

    return logger
