"""Wallet address and message-signature utilities built on eth-account."""
from __future__ import annotations

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import is_address


def is_wallet_address(value: str | None) -> bool:
    """Return True if `value` is a well-formed Ethereum address.

    Mixed-case input must carry a valid EIP-55 checksum; all-lowercase and
    all-uppercase hex are accepted as-is.
    """
    if not value or not isinstance(value, str):
        return False
    return bool(is_address(value.strip()))


def normalize_address(value: str) -> str:
    """Return the canonical lowercase form of an address."""
    return value.strip().lower()


def recover_signer(message: str, signature: str | bytes) -> str:
    """Recover the address that produced an EIP-191 ``personal_sign`` signature.

    Args:
        message: The exact text the wallet was asked to sign.
        signature: 65-byte signature as bytes or hex (with or without ``0x``).

    Returns:
        The recovered address in lowercase form.

    Raises:
        ValueError: If the signature is malformed and no signer can be recovered.
    """
    try:
        signable = encode_defunct(text=message)
        recovered = Account.recover_message(signable, signature=signature)
    except Exception as err:
        raise ValueError(f"Unable to recover signer: {err}") from err
    return normalize_address(recovered)
