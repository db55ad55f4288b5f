import logging


class SourceNameFilter(logging.Filter):
    def __init__(self, source_name: str):
        super().__init__()
        self.source_name = source_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.source = self.source_name
        return True


FORMAT = "%(asctime)s %(levelname)s [%(source)s] %(message)s"


def setup_logger(source_name: str, level: int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(f"laser_anchor.{source_name}")
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(FORMAT))
        handler.addFilter(SourceNameFilter(source_name))
        logger.addHandler(handler)

    return logger


def add_file_handler(logger: logging.Logger, source_name: str, log_path: str) -> logging.Handler:
    handler = logging.FileHandler(log_path)
    handler.setFormatter(logging.Formatter(FORMAT))
    handler.addFilter(SourceNameFilter(source_name))
    logger.addHandler(handler)
    return handler
