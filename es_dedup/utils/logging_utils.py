# utils/logging_utils.py

import logging, sys

def setup_logging(level="INFO"):
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    # basicConfig is a no-op once handlers exist, the level still has to change
    logging.getLogger().setLevel(level)
    # elastic_transport logs every request at INFO
    logging.getLogger("elastic_transport").setLevel(max(level, logging.WARNING))
