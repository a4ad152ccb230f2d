"""Generate the six XML test fixtures and TEST_RESULTS.txt.

Usage:
    python scripts/generate_fixtures.py [output_dir] [record_count]
"""

import logging
import sys
from pathlib import Path

from commitments.config import get_settings
from commitments.services.fixture_service import write_fixtures


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    out_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else get_settings().EXPORTS_DIR
    count = int(sys.argv[2]) if len(sys.argv) > 2 else 300

    lines = write_fixtures(out_dir, count=count)
    for line in lines:
        print(f"  [OK] {line}")
    print(f"Wrote {out_dir / 'TEST_RESULTS.txt'}")


if __name__ == "__main__":
    main()
