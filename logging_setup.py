import logging

ROOT_LOGGER = "circulation"


def get_logger(name: str) -> logging.Logger:
    """
    Returns a child of the 'circulation' logger, configuring the parent
    with a single stream handler the first time it is asked for.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(logging.INFO)

    if not root.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
        )
        handler.setFormatter(formatter)
        root.addHandler(handler)

    return root.getChild(name)
