"""
Audit retention: delete audit log entries whose expires_at has passed.

Entries are written with expires_at = created_at + AUDIT_RETENTION_DAYS; this
is the only code path that ever deletes them. Run it from a scheduler.

Usage:
    python scripts/purge_audit_log.py            # delete expired entries
    python scripts/purge_audit_log.py --dry-run  # only count them
"""

import argparse
import logging
import os
import sys
from datetime import datetime, timezone

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from marketadmin.database import SessionLocal
from marketadmin.models.audit import AuditLogEntry
from marketadmin.services.transaction import atomic
from marketadmin.settings import settings

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger("purge_audit_log")


def purge_expired(db, now: datetime, dry_run: bool = False) -> int:
    query = db.query(AuditLogEntry).filter(AuditLogEntry.expires_at <= now)
    if dry_run:
        return query.count()
    with atomic(db):
        deleted = query.delete(synchronize_session=False)
    return deleted


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--dry-run", action="store_true", help="count expired entries only")
    args = parser.parse_args()

    now = datetime.now(timezone.utc)
    with SessionLocal() as db:
        count = purge_expired(db, now, dry_run=args.dry_run)
    verb = "would be deleted" if args.dry_run else "deleted"
    logger.info("%d expired audit entries %s (retention %d days)", count, verb, settings.audit_retention_days)


if __name__ == "__main__":
    main()
