"""
Prune stale FCM tokens and subscriptions.

Usage:
    python scripts/cleanup_stale_tokens.py [days] [--yes]

Example:
    python scripts/cleanup_stale_tokens.py 30 --yes
    # delete subscriptions idle for 30+ days and inactive devices untouched since then
"""
import os
import sys
from datetime import datetime, timedelta

# project root on sys.path
sys.path.insert(0, os.path.abspath(os.path.dirname(os.path.dirname(__file__))))

from loguru import logger

from sniket.core.config import settings
from sniket.db import SessionLocal
from sniket.domains.fcm.repository.fcm_repository import FcmRepository


def cleanup_stale_tokens(days: int, confirm: bool = False) -> bool:
    cutoff = datetime.utcnow() - timedelta(days=days)
    db = SessionLocal()

    try:
        if not confirm:
            print(f"Delete FCM subscriptions idle since {cutoff:%Y-%m-%d %H:%M} and inactive devices? (yes/no): ", end="")
            response = input().strip().lower()
            if response not in ["yes", "y"]:
                logger.info("[FCM Cleanup] Cancelled")
                return False

        removed = FcmRepository(db).prune_stale_tokens(cutoff)
        db.commit()
        logger.info(f"[FCM Cleanup] Removed {removed} stale row(s) older than {days} day(s)")
        return True

    except Exception as e:
        db.rollback()
        logger.exception(f"[FCM Cleanup] Stale token cleanup failed: {e}")
        return False
    finally:
        db.close()


if __name__ == "__main__":
    args = [a for a in sys.argv[1:] if a != "--yes"]

    try:
        days = int(args[0]) if args else settings.FCM_STALE_TOKEN_DAYS
    except ValueError:
        print("days must be a number")
        print("Usage: python scripts/cleanup_stale_tokens.py [days] [--yes]")
        sys.exit(1)

    success = cleanup_stale_tokens(days, confirm="--yes" in sys.argv)
    sys.exit(0 if success else 1)
