"""
Contract ABIs.

Event fragments for the factory, budget wallet and token contracts.
Only events are listed; the indexer never calls contract functions.
"""


def _event(name: str, *inputs: tuple[str, str, bool]) -> dict:
    return {
        "anonymous": False,
        "inputs": [
            {"indexed": indexed, "name": arg, "type": arg_type}
            for arg, arg_type, indexed in inputs
        ],
        "name": name,
        "type": "event",
    }


_OWNERSHIP_TRANSFERRED = _event(
    "OwnershipTransferred",
    ("previousOwner", "address", True),
    ("newOwner", "address", True),
)

# SimpleBudgetWalletFactory
FACTORY_ABI = [
    _event(
        "WalletCreated",
        ("user", "address", True),
        ("wallet", "address", True),
        ("salt", "uint256", False),
    ),
    _event(
        "WalletRegistered",
        ("user", "address", True),
        ("wallet", "address", True),
    ),
    _OWNERSHIP_TRANSFERRED,
]

# SimpleBudgetWallet
BUDGET_WALLET_ABI = [
    _event(
        "BucketCreated",
        ("user", "address", True),
        ("bucketName", "string", False),
        ("monthlyLimit", "uint256", False),
    ),
    _event(
        "BucketUpdated",
        ("user", "address", True),
        ("bucketName", "string", False),
        ("newLimit", "uint256", False),
        ("active", "bool", False),
    ),
    _event(
        "BucketFunded",
        ("user", "address", True),
        ("bucketName", "string", False),
        ("amount", "uint256", False),
        ("token", "address", False),
    ),
    _event(
        "SpentFromBucket",
        ("user", "address", True),
        ("bucketName", "string", False),
        ("amount", "uint256", False),
        ("recipient", "address", False),
        ("token", "address", False),
    ),
    _event(
        "BucketTransfer",
        ("user", "address", True),
        ("fromBucket", "string", False),
        ("toBucket", "string", False),
        ("amount", "uint256", False),
        ("token", "address", False),
    ),
    _event(
        "FundsDeposited",
        ("user", "address", True),
        ("amount", "uint256", False),
        ("token", "address", False),
    ),
    _event(
        "MonthlyLimitReset",
        ("user", "address", True),
        ("bucketName", "string", False),
    ),
    _event(
        "DelegateAdded",
        ("user", "address", True),
        ("delegate", "address", True),
        ("bucketName", "string", False),
    ),
    _event(
        "DelegateRemoved",
        ("user", "address", True),
        ("delegate", "address", True),
        ("bucketName", "string", False),
    ),
    _event(
        "UnallocatedWithdraw",
        ("user", "address", True),
        ("token", "address", False),
        ("amount", "uint256", False),
        ("recipient", "address", False),
    ),
    _event(
        "EmergencyWithdraw",
        ("user", "address", True),
        ("token", "address", False),
        ("amount", "uint256", False),
    ),
    _event(
        "RoleGranted",
        ("role", "bytes32", True),
        ("account", "address", True),
        ("sender", "address", True),
    ),
    _event(
        "RoleRevoked",
        ("role", "bytes32", True),
        ("account", "address", True),
        ("sender", "address", True),
    ),
]

# ERC20 token (USDC)
ERC20_ABI = [
    _event(
        "Transfer",
        ("from", "address", True),
        ("to", "address", True),
        ("value", "uint256", False),
    ),
    _event(
        "Approval",
        ("owner", "address", True),
        ("spender", "address", True),
        ("value", "uint256", False),
    ),
    _OWNERSHIP_TRANSFERRED,
]
