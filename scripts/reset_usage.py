#!/usr/bin/env python3
"""
Reset Today's Usage

Administrative helper that zeroes today's usage bucket for one or more
students. Earlier days are left untouched.

Usage:
    python scripts/reset_usage.py 12345
    python scripts/reset_usage.py 12345 67890
    python scripts/reset_usage.py --all --dry-run
"""

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.database import SessionLocal
from app.models import Student
from app.services.usage_service import StudentNotFound, reset_today_usage

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler()],
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Reset today's usage for students")
    parser.add_argument(
        "student_ids",
        nargs="*",
        help="Student IDs to reset"
    )
    parser.add_argument(
        "--all",
        action="store_true",
        help="Reset every student"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List affected students without making changes"
    )
    args = parser.parse_args()

    if not args.student_ids and not args.all:
        parser.error("Pass at least one student ID or --all")

    with SessionLocal() as db:
        if args.all:
            student_ids = [row[0] for row in db.query(Student.student_id).all()]
        else:
            student_ids = args.student_ids

        reset = 0
        missing = []
        for student_id in student_ids:
            if args.dry_run:
                logger.info(f"[DRY RUN] Would reset {student_id}")
                continue
            try:
                status = reset_today_usage(db, student_id)
            except StudentNotFound:
                missing.append(student_id)
                continue
            reset += 1
            logger.info(f"{student_id}: {status.used_seconds}s used, {status.remaining_seconds}s remaining")

    print("=" * 60)
    print("Usage Reset Complete" + (" (DRY RUN)" if args.dry_run else ""))
    print("=" * 60)
    print(f"  Students reset: {reset:,}")
    if missing:
        print(f"  Not found:      {', '.join(missing)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
