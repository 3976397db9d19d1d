#!/usr/bin/env python3
"""
Run a hashdb mode against one drive: python -m hashdb <mode> <drive>

Every phase commits after each file, so an interrupted run is resumed by
running the same mode again.
"""

import sys
import logging

from .cli import main


logger = logging.getLogger('hashdb')


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        logger.warning("Run interrupted by user")
        print("\nInterrupted. Finished files are already recorded; rerun the same mode to resume.", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        logger.exception("Unexpected failure")
        print(f"\nUnexpected failure (details in hashdb.log): {e}", file=sys.stderr)
        sys.exit(1)
