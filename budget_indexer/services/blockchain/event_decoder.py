"""
Event decoder.

Turns raw logs into typed events. Each contract role has a static
topic0 -> event table built from its ABI; logs with an unknown topic
are ignored and logs that fail to decode are logged and skipped.
"""

import re
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Union

from eth_utils import event_abi_to_log_topic
from loguru import logger
from web3 import Web3

from budget_indexer.models.enums import ContractRole, EventName
from budget_indexer.utils.exceptions import EventDecodeError
from budget_indexer.utils.security import mask_tx_hash
from budget_indexer.utils.validation import to_hex_str

from .abis import BUDGET_WALLET_ABI, ERC20_ABI, FACTORY_ABI


def _abi_name(name: str) -> dict:
    """Field metadata for an argument whose ABI name differs from snake_case."""
    return {"abi": name}


# ========================================================================
# PAYLOADS
# ========================================================================

@dataclass(frozen=True)
class WalletCreated:
    user: str
    wallet: str
    salt: int


@dataclass(frozen=True)
class WalletRegistered:
    user: str
    wallet: str


@dataclass(frozen=True)
class OwnershipTransferred:
    previous_owner: str
    new_owner: str


@dataclass(frozen=True)
class BucketCreated:
    user: str
    bucket_name: str
    monthly_limit: int


@dataclass(frozen=True)
class BucketUpdated:
    user: str
    bucket_name: str
    new_limit: int
    active: bool


@dataclass(frozen=True)
class BucketFunded:
    user: str
    bucket_name: str
    amount: int
    token: str


@dataclass(frozen=True)
class SpentFromBucket:
    user: str
    bucket_name: str
    amount: int
    recipient: str
    token: str


@dataclass(frozen=True)
class BucketTransfer:
    user: str
    from_bucket: str
    to_bucket: str
    amount: int
    token: str


@dataclass(frozen=True)
class FundsDeposited:
    user: str
    amount: int
    token: str


@dataclass(frozen=True)
class MonthlyLimitReset:
    user: str
    bucket_name: str


@dataclass(frozen=True)
class DelegateAdded:
    user: str
    delegate: str
    bucket_name: str


@dataclass(frozen=True)
class DelegateRemoved:
    user: str
    delegate: str
    bucket_name: str


@dataclass(frozen=True)
class UnallocatedWithdraw:
    user: str
    token: str
    amount: int
    recipient: str


@dataclass(frozen=True)
class EmergencyWithdraw:
    user: str
    token: str
    amount: int


@dataclass(frozen=True)
class RoleGranted:
    role: str
    account: str
    sender: str


@dataclass(frozen=True)
class RoleRevoked:
    role: str
    account: str
    sender: str


@dataclass(frozen=True)
class TokenTransfer:
    from_address: str = field(metadata=_abi_name("from"))
    to_address: str = field(metadata=_abi_name("to"))
    value: int = field(metadata=_abi_name("value"))


@dataclass(frozen=True)
class Approval:
    owner: str
    spender: str
    value: int


EventPayload = Union[
    WalletCreated,
    WalletRegistered,
    OwnershipTransferred,
    BucketCreated,
    BucketUpdated,
    BucketFunded,
    SpentFromBucket,
    BucketTransfer,
    FundsDeposited,
    MonthlyLimitReset,
    DelegateAdded,
    DelegateRemoved,
    UnallocatedWithdraw,
    EmergencyWithdraw,
    RoleGranted,
    RoleRevoked,
    TokenTransfer,
    Approval,
]

PAYLOAD_TYPES: dict[EventName, type] = {
    EventName.WALLET_CREATED: WalletCreated,
    EventName.WALLET_REGISTERED: WalletRegistered,
    EventName.OWNERSHIP_TRANSFERRED: OwnershipTransferred,
    EventName.BUCKET_CREATED: BucketCreated,
    EventName.BUCKET_UPDATED: BucketUpdated,
    EventName.BUCKET_FUNDED: BucketFunded,
    EventName.SPENT_FROM_BUCKET: SpentFromBucket,
    EventName.BUCKET_TRANSFER: BucketTransfer,
    EventName.FUNDS_DEPOSITED: FundsDeposited,
    EventName.MONTHLY_LIMIT_RESET: MonthlyLimitReset,
    EventName.DELEGATE_ADDED: DelegateAdded,
    EventName.DELEGATE_REMOVED: DelegateRemoved,
    EventName.UNALLOCATED_WITHDRAW: UnallocatedWithdraw,
    EventName.EMERGENCY_WITHDRAW: EmergencyWithdraw,
    EventName.ROLE_GRANTED: RoleGranted,
    EventName.ROLE_REVOKED: RoleRevoked,
    EventName.TRANSFER: TokenTransfer,
    EventName.APPROVAL: Approval,
}

REGISTRATION_EVENTS = frozenset(
    {EventName.WALLET_CREATED, EventName.WALLET_REGISTERED}
)


def payload_to_json(payload: EventPayload) -> dict[str, Any]:
    """
    Serialize a payload for the events.args column.

    Integers become decimal strings so uint256 values survive JSON.
    """
    result = {}
    for f in fields(payload):
        value = getattr(payload, f.name)
        if isinstance(value, int) and not isinstance(value, bool):
            value = str(value)
        result[f.name] = value
    return result


# ========================================================================
# INDEXED EVENT
# ========================================================================

@dataclass
class IndexedEvent:
    """
    A decoded log with its chain position.

    timestamp is filled in by the sync engine once the block's
    timestamp is known.
    """

    contract_address: str
    role: ContractRole
    event_name: EventName
    block_number: int
    block_hash: str
    transaction_hash: str
    transaction_index: int
    log_index: int
    payload: EventPayload
    timestamp: datetime | None = None
    processed: bool = False

    @property
    def position(self) -> tuple[int, int, int]:
        """Chain order key."""
        return (self.block_number, self.transaction_index, self.log_index)

    @property
    def is_registration(self) -> bool:
        return self.event_name in REGISTRATION_EVENTS

    def to_row(self) -> dict[str, Any]:
        """Row for the events table."""
        return {
            "contract_address": self.contract_address,
            "event_name": str(self.event_name),
            "block_number": self.block_number,
            "block_hash": self.block_hash,
            "transaction_hash": self.transaction_hash,
            "transaction_index": self.transaction_index,
            "log_index": self.log_index,
            "args": payload_to_json(self.payload),
            "timestamp": self.timestamp,
            "processed": self.processed,
        }


# ========================================================================
# DECODER
# ========================================================================

ROLE_ABIS: dict[ContractRole, list[dict]] = {
    ContractRole.FACTORY: FACTORY_ABI,
    ContractRole.BUDGET_WALLET: BUDGET_WALLET_ABI,
    ContractRole.TOKEN: ERC20_ABI,
}

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(name: str) -> str:
    return _CAMEL_RE.sub("_", name).lower()


def _normalize_arg(value: Any, abi_type: str) -> Any:
    if abi_type == "address":
        return value.lower()
    if abi_type.startswith("bytes"):
        return to_hex_str(value)
    return value


def _build_payload(
    payload_type: type, args: dict[str, Any], arg_types: dict[str, str]
) -> EventPayload:
    """Map decoded ABI arguments onto a payload dataclass."""
    by_field = {_snake(name): name for name in args}
    by_field.update({name: name for name in args})

    values = {}
    for f in fields(payload_type):
        key = f.metadata.get("abi", f.name)
        if key not in by_field:
            raise EventDecodeError(
                f"{payload_type.__name__} is missing argument {key!r}"
            )
        arg = by_field[key]
        values[f.name] = _normalize_arg(args[arg], arg_types[arg])
    return payload_type(**values)


class EventDecoder:
    """
    Decodes raw logs for the three contract roles.

    Example:
        decoder = EventDecoder()
        event = decoder.decode(log, ContractRole.TOKEN)
    """

    def __init__(self) -> None:
        """Build topic0 lookup tables from the role ABIs."""
        w3 = Web3()
        self._topics: dict[ContractRole, dict[str, tuple[EventName, Any, dict]]] = {}

        for role, abi in ROLE_ABIS.items():
            contract = w3.eth.contract(abi=abi)
            table = {}
            for entry in abi:
                if entry["type"] != "event":
                    continue
                name = EventName(entry["name"])
                topic0 = to_hex_str(event_abi_to_log_topic(entry))
                arg_types = {arg["name"]: arg["type"] for arg in entry["inputs"]}
                table[topic0] = (
                    name,
                    getattr(contract.events, entry["name"])(),
                    arg_types,
                )
            self._topics[role] = table

    def known_topics(self, role: ContractRole) -> list[str]:
        """topic0 values (0x hex) the decoder understands for a role."""
        return list(self._topics[role])

    def topic_for(self, role: ContractRole, event_name: EventName) -> str:
        """topic0 (0x hex) of one event of a role."""
        for topic0, (name, _event, _types) in self._topics[role].items():
            if name == event_name:
                return topic0
        raise KeyError(f"{event_name} is not a {role} event")

    def decode_strict(self, raw_log: Any, role: ContractRole) -> IndexedEvent | None:
        """
        Decode one log.

        Args:
            raw_log: Log as returned by eth_getLogs
            role: Role of the emitting contract

        Returns:
            IndexedEvent, or None if the topic is unknown for the role

        Raises:
            EventDecodeError: If the log matches a known topic but
                cannot be decoded
        """
        topics = raw_log.get("topics") or []
        if not topics:
            return None

        entry = self._topics[role].get(to_hex_str(topics[0]))
        if entry is None:
            return None
        name, contract_event, arg_types = entry

        try:
            decoded = contract_event.process_log(raw_log)
            payload = _build_payload(
                PAYLOAD_TYPES[name], dict(decoded["args"]), arg_types
            )
            return IndexedEvent(
                contract_address=raw_log["address"].lower(),
                role=role,
                event_name=name,
                block_number=int(raw_log["blockNumber"]),
                block_hash=to_hex_str(raw_log["blockHash"]),
                transaction_hash=to_hex_str(raw_log["transactionHash"]),
                transaction_index=int(raw_log["transactionIndex"]),
                log_index=int(raw_log["logIndex"]),
                payload=payload,
            )
        except EventDecodeError:
            raise
        except Exception as e:
            raise EventDecodeError(f"Failed to decode {name}: {e}") from e

    def decode(self, raw_log: Any, role: ContractRole) -> IndexedEvent | None:
        """Decode one log; decode failures are logged and yield None."""
        try:
            return self.decode_strict(raw_log, role)
        except EventDecodeError as e:
            logger.warning(
                f"[Decoder] Skipping log "
                f"{mask_tx_hash(to_hex_str(raw_log.get('transactionHash', b'')))}"
                f"#{raw_log.get('logIndex')}: {e}"
            )
            return None

    def decode_many(self, raw_logs: list[Any], role: ContractRole) -> list[IndexedEvent]:
        """Decode a list of logs, dropping unknown and malformed ones."""
        events = []
        for raw_log in raw_logs:
            event = self.decode(raw_log, role)
            if event is not None:
                events.append(event)
        return events
