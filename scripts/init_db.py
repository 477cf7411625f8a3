import logging

from brickbook.config import configure_logging
from brickbook.db.engine import get_engine
from brickbook.db.schema import metadata

logger = logging.getLogger(__name__)


def main():
    configure_logging()
    engine = get_engine()
    metadata.drop_all(engine)
    metadata.create_all(engine)
    logger.info("DB schema created at %s", engine.url)

if __name__ == "__main__":
    main()
