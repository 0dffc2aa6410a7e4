"""
access.py - Authorization and timing checks shared by all transitions

Every check raises Unauthorized (or ExpiredTerms for creation) and never
mutates anything, so a failed check leaves the record and balances untouched.
"""

from __future__ import annotations
from enum import Enum
from typing import Optional

from .core import Unauthorized, ExpiredTerms
from .option import OptionRecord


class OpenFundingPolicy(Enum):
    """
    Who may trigger the open-funding exchange.

    ANYONE: No caller-identity restriction (default).
    OWNER_ONLY: Only the option holder.
    PARTIES_ONLY: The holder or the liquidity pool.
    """
    ANYONE = "anyone"
    OWNER_ONLY = "owner_only"
    PARTIES_ONLY = "parties_only"


EARLY_SALE = "early_sale"
EXPIRE = "expire"


def check_create(expiration: int, now: int) -> None:
    """Terms cannot describe an option that has already expired."""
    if expiration <= now:
        raise ExpiredTerms(
            f"expiration {expiration} must be after current height {now}"
        )


def check_open_funding(
    record: OptionRecord,
    caller: Optional[str],
    now: int,
    policy: OpenFundingPolicy,
) -> None:
    """
    Validate an open-funding request.

    Funding prices the option, which is only possible before expiry; from the
    expiration height onward the option must be settled through expire().
    """
    if now >= record.expiration:
        raise Unauthorized(
            f"option expired at height {record.expiration}; use expire()"
        )
    if policy is OpenFundingPolicy.OWNER_ONLY and caller != record.owner:
        raise Unauthorized(f"{caller} is not the option owner")
    if policy is OpenFundingPolicy.PARTIES_ONLY and caller not in (record.owner, record.liquidity):
        raise Unauthorized(f"{caller} is not a party to the option")


def check_early_sale(record: OptionRecord, caller: str, now: int) -> None:
    """Only the owner may sell, and only strictly before expiration."""
    if caller != record.owner:
        raise Unauthorized(f"{caller} is not the option owner")
    if record.expiration <= now:
        raise Unauthorized(
            f"option expired at height {record.expiration}; use expire()"
        )


def check_expire(record: OptionRecord, now: int) -> None:
    """Expiration settlement is valid from the expiration height onward."""
    if now < record.expiration:
        raise Unauthorized(
            f"option expires at height {record.expiration}, current height is {now}"
        )


def eligible_terminal_transition(record: OptionRecord, now: int) -> str:
    """Return the one terminal transition allowed at this height."""
    return EXPIRE if now >= record.expiration else EARLY_SALE
