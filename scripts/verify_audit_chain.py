# scripts/verify_audit_chain.py

import sys
from pathlib import Path

# Ensure project root is on the path when running this script directly
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import asyncio

from access_ledger.config.settings import get_settings
from access_ledger.governance.audit_chain import AuditChain
from access_ledger.infrastructure.database.audit_repository_db import DbAuditRepository
from access_ledger.infrastructure.database.session import dispose_engine, get_sessionmaker


async def verify() -> int:
    if not get_settings().database_url:
        print("DATABASE_URL is not configured")
        return 2
    chain = AuditChain(DbAuditRepository(get_sessionmaker()))
    try:
        report = await chain.verify_integrity()
    finally:
        await dispose_engine()

    print("Records:", report.total_records)
    for link in report.broken_links:
        print(
            f"Broken link at {link.position}: expected previous_hash "
            f"{link.expected_previous_hash}, found {link.actual_previous_hash}"
        )
    for mismatch in report.hash_mismatches:
        print(
            f"Hash mismatch at {mismatch.position}: stored {mismatch.stored_hash}, "
            f"computed {mismatch.computed_hash}"
        )
    print("Intact" if report.is_intact else "TAMPERED")
    return 0 if report.is_intact else 1


sys.exit(asyncio.run(verify()))
