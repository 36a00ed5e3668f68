"""
Hash Legacy Passwords

Replaces every plaintext password left in student_accounts with its bcrypt
hash, so password login no longer depends on the plaintext comparison path.
Safe to run more than once: hashed rows are skipped.

Usage:
    cd apps/api
    python scripts/hash_legacy_passwords.py [--dry-run]
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy import select

from app.core.database import async_session_maker, engine
from app.core.security import hash_password, is_password_hash
from app.modules.students.models import StudentAccount


async def hash_legacy_passwords(dry_run: bool) -> None:
    """Hash all plaintext passwords in student_accounts."""
    upgraded = 0
    skipped = 0

    async with async_session_maker() as db:
        result = await db.execute(select(StudentAccount).where(StudentAccount.password.is_not(None)))
        accounts = result.scalars().all()

        for account in accounts:
            if not account.password or is_password_hash(account.password):
                skipped += 1
                continue

            if not dry_run:
                account.password = await asyncio.to_thread(hash_password, account.password)
            upgraded += 1
            print(f"  {'Would hash' if dry_run else 'Hashed'} password for LRN {account.lrn}")

        if not dry_run:
            await db.commit()

    print(f"Done: {upgraded} {'to upgrade' if dry_run else 'upgraded'}, {skipped} already hashed")
    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--dry-run", action="store_true", help="report without writing")
    args = parser.parse_args()
    asyncio.run(hash_legacy_passwords(args.dry_run))
