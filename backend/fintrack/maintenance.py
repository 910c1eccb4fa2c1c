#!/usr/bin/env python3
"""Housekeeping commands: purge expired tokens, clean up orphaned rows."""

import argparse
import sys
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.fintrack.config import get_settings
from backend.fintrack.db import SessionLocal, init_db, utcnow
from backend.fintrack.logging_config import configure_logging, get_logger
from backend.fintrack.models.budget_model import Budget
from backend.fintrack.models.category_model import Category
from backend.fintrack.models.token_model import AccessToken
from backend.fintrack.models.transaction_model import Transaction
from backend.fintrack.models.user_model import User

logger = get_logger(__name__)


def cleanup_expired_tokens(db: Session) -> int:
    count = (
        db.query(AccessToken)
        .filter(AccessToken.expires_at < utcnow())
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info("expired_tokens_deleted", count=count)
    return count


def find_orphans(db: Session) -> dict:
    """Rows whose owner (or, for transactions, category) no longer exists at all."""
    user_ids = select(User.id)
    category_ids = select(Category.id)
    return {
        "categories": db.query(Category).filter(~Category.user_id.in_(user_ids)).all(),
        "transactions": db.query(Transaction).filter(~Transaction.user_id.in_(user_ids)).all(),
        "budgets": db.query(Budget).filter(~Budget.user_id.in_(user_ids)).all(),
        # Informational only: category_id on transactions has no foreign key on purpose
        "dangling_category_refs": db.query(Transaction)
        .filter(Transaction.category_id.isnot(None), ~Transaction.category_id.in_(category_ids))
        .all(),
    }


def cleanup_orphans(db: Session, dry_run: bool = True, out: Callable[[str], None] = print) -> int:
    orphans = find_orphans(db)
    removed = 0

    for label in ("categories", "transactions", "budgets"):
        rows = orphans[label]
        if not rows:
            out(f"No orphaned {label} found")
            continue
        out(f"Found {len(rows)} orphaned {label}: " + ", ".join(f"#{r.id} (user {r.user_id})" for r in rows))
        if not dry_run:
            for row in rows:
                db.delete(row)
            removed += len(rows)

    dangling = orphans["dangling_category_refs"]
    if dangling:
        out(
            f"{len(dangling)} transactions reference hard-deleted categories "
            "(kept for history): " + ", ".join(f"#{t.id} -> category {t.category_id}" for t in dangling)
        )

    if dry_run:
        out("Dry run: nothing was deleted")
    else:
        db.commit()
        out(f"Deleted {removed} orphaned rows")
    logger.info("orphan_cleanup", dry_run=dry_run, removed=removed, dangling=len(dangling))
    return removed


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="FinTrack maintenance tasks.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("tokens-cleanup", help="Delete expired access tokens")

    orphans = sub.add_parser("cleanup-orphans", help="Find and delete rows whose owner no longer exists")
    orphans.add_argument("--dry-run", action="store_true", help="Show what would be deleted without deleting")
    orphans.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    args = parser.parse_args(argv)
    configure_logging(get_settings())
    init_db()

    db = SessionLocal()
    try:
        if args.command == "tokens-cleanup":
            count = cleanup_expired_tokens(db)
            print(f"Deleted {count} expired tokens.")
            return 0

        if not args.dry_run and not args.yes:
            answer = input("This permanently deletes data. Proceed? [y/N] ")
            if answer.strip().lower() not in ("y", "yes"):
                print("Operation cancelled.")
                return 0
        cleanup_orphans(db, dry_run=args.dry_run)
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
