# src/docuchain/scripts/tokens.py
"""
Operator commands for session tokens, one-time codes and lockouts.

Usage:
    python -m docuchain.scripts.tokens mint <address>
    python -m docuchain.scripts.tokens sweep-otc
    python -m docuchain.scripts.tokens unlock <address>
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

from sqlalchemy.orm import Session

from docuchain.core.security import is_wallet_address, normalize_address
from docuchain.db.session import SessionLocal
from docuchain.repositories.identity_repo import IdentityRepository
from docuchain.services.otc import OTCStore, get_otc_store
from docuchain.services.tokens import TokenService


def mint_tokens(db: Session, address: str, tokens: TokenService | None = None) -> int:
    """Print a token pair for a registered identity.

    Args:
        db: Database session
        address: Wallet address of the identity
        tokens: Token service to sign with

    Returns:
        Process exit code
    """
    normalized = normalize_address(address)
    if IdentityRepository(db).find_by_address(normalized) is None:
        print(f"No identity registered for {normalized}", file=sys.stderr)
        return 1

    pair = (tokens or TokenService()).issue_pair(normalized)
    print(f"access_token={pair.access_token}")
    print(f"refresh_token={pair.refresh_token}")
    return 0


def sweep_otc(store: OTCStore | None = None) -> int:
    """Run one sweep of the configured OTC backend."""
    removed = (store or get_otc_store()).sweep()
    print(f"Removed {removed} expired one-time codes")
    return 0


def unlock_identity(db: Session, address: str) -> int:
    """Clear a lockout and the failed-attempt counter."""
    normalized = normalize_address(address)
    if not IdentityRepository(db).reset_lock(normalized):
        print(f"No auth state for {normalized}", file=sys.stderr)
        return 1
    db.commit()
    print(f"Unlocked {normalized}")
    return 0


def _wallet_address(value: str) -> str:
    if not is_wallet_address(value):
        raise argparse.ArgumentTypeError(f"not a wallet address: {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="docuchain.scripts.tokens", description=__doc__)
    sub = parser.add_subparsers(dest="command", required=True)

    mint = sub.add_parser("mint", help="Print an access/refresh token pair")
    mint.add_argument("address", type=_wallet_address)

    sub.add_parser("sweep-otc", help="Purge expired one-time codes")

    unlock = sub.add_parser("unlock", help="Clear a lockout")
    unlock.add_argument("address", type=_wallet_address)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "sweep-otc":
        return sweep_otc()

    db = SessionLocal()
    try:
        if args.command == "mint":
            return mint_tokens(db, args.address)
        return unlock_identity(db, args.address)
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
