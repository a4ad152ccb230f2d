"""Re-parse every TEST_*.xml in a directory and write TEST_VALIDATION_RESULTS.json.

Usage:
    python scripts/validate_fixtures.py [directory]

Exits with status 1 when no fixture is found or a file fails to parse.
"""

import json
import sys
from pathlib import Path

from commitments.config import get_settings
from commitments.exceptions import XmlParseError
from commitments.services.fixture_service import validate_fixture


def main() -> int:
    directory = Path(sys.argv[1]) if len(sys.argv) > 1 else get_settings().EXPORTS_DIR
    files = sorted(directory.glob("TEST_*.xml"))
    if not files:
        print(f"No TEST_*.xml files found in {directory}")
        return 1

    results = []
    failed = False
    for path in files:
        try:
            report = validate_fixture(path)
        except XmlParseError as exc:
            print(f"  [ERROR] {path.name}: {exc}")
            failed = True
            continue
        results.append(report.as_dict())
        print(
            f"  [OK] {report.file}: {report.total} records, urgent={report.urgent}, "
            f"missing_fields={report.missing_fields}, duplicates={report.duplicates}, "
            f"invalid_amounts={report.invalid_amounts}, invalid_dates={report.invalid_dates}, "
            f"sequence_gaps={report.sequence_gaps}"
        )

    out = directory / "TEST_VALIDATION_RESULTS.json"
    out.write_text(json.dumps(results, indent=2), encoding="utf-8")
    print(f"Wrote {out}")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
