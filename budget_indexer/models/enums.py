"""
Enumerations shared by models and services.
"""

from enum import StrEnum


class ContractRole(StrEnum):
    """Role of the contract that emitted a log."""

    FACTORY = "factory"
    BUDGET_WALLET = "budget_wallet"
    TOKEN = "token"


class TransferType(StrEnum):
    """Provenance of a token transfer relative to known wallets."""

    DEPOSIT = "deposit"  # into a known wallet
    WITHDRAWAL = "withdrawal"  # out of a known wallet
    BUCKET_TRANSFER = "bucket_transfer"  # between two known wallets
    EXTERNAL = "external"  # neither side known


class WithdrawalType(StrEnum):
    """Withdrawal kind emitted by a budget wallet."""

    UNALLOCATED = "unallocated"
    EMERGENCY = "emergency"


class EventName(StrEnum):
    """Every event the decoder understands."""

    # Factory
    WALLET_CREATED = "WalletCreated"
    WALLET_REGISTERED = "WalletRegistered"
    OWNERSHIP_TRANSFERRED = "OwnershipTransferred"

    # Budget wallet
    BUCKET_CREATED = "BucketCreated"
    BUCKET_UPDATED = "BucketUpdated"
    BUCKET_FUNDED = "BucketFunded"
    SPENT_FROM_BUCKET = "SpentFromBucket"
    BUCKET_TRANSFER = "BucketTransfer"
    FUNDS_DEPOSITED = "FundsDeposited"
    MONTHLY_LIMIT_RESET = "MonthlyLimitReset"
    DELEGATE_ADDED = "DelegateAdded"
    DELEGATE_REMOVED = "DelegateRemoved"
    UNALLOCATED_WITHDRAW = "UnallocatedWithdraw"
    EMERGENCY_WITHDRAW = "EmergencyWithdraw"
    ROLE_GRANTED = "RoleGranted"
    ROLE_REVOKED = "RoleRevoked"

    # Token
    TRANSFER = "Transfer"
    APPROVAL = "Approval"
