import sys

from .cli import main as cli_main
from ..utils.logging import get_logger

logger = get_logger(__name__)


def main():
    try:
        return cli_main()
    except KeyboardInterrupt:
        logger.info("Program terminated.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
