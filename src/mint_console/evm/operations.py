"""Privileged operations: inputs, constraints and the contract call each one makes."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from web3 import Web3

from ..allowlist import build_batch
from ..base import ContractGateway
from ..constants import MAX_BATCH_SIZE, ORDINARY_GAS_MARGIN, ROUND_ADVANCE_GAS_MARGIN
from ..exceptions import MalformedInputError, ValidationFailedError
from ..types import BatchMode, LimitKind, OperationKind, Role, SaleKind
from ..utils import (
    format_ether,
    is_valid_address,
    is_valid_amount,
    is_valid_integer,
    is_valid_uri,
    parse_ether,
    parse_integer,
    percent_to_basis_points,
    shorten_address,
)
from .queries import read_role_id
from .snapshot import read_total_minted

MAX_OWNER_MINT_AMOUNT = 100
MAX_ROYALTY_PERCENT = 10


# ---------------------------------------------------------------------------
# Input records
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class OwnerMintInputs:
    recipient: str
    amount: int | str


@dataclass(frozen=True)
class AllowListBatchInputs:
    entries: Sequence[str]


@dataclass(frozen=True)
class AllowListEntryInputs:
    address: str
    allowed: bool


@dataclass(frozen=True)
class StartNewRoundInputs:
    pass


@dataclass(frozen=True)
class SaleConfigInputs:
    allowlist_price: str | int | float
    public_price: str | int | float
    end_token_id: int | str
    allowlist_open: bool
    public_open: bool


@dataclass(frozen=True)
class SaleFlagInputs:
    sale: SaleKind
    open: bool


@dataclass(frozen=True)
class LimitInputs:
    limit: LimitKind
    value: int | str


@dataclass(frozen=True)
class BaseUriInputs:
    uri: str


@dataclass(frozen=True)
class PauseInputs:
    paused: bool


@dataclass(frozen=True)
class RoyaltyInputs:
    receiver: str
    percentage: str | int | float


@dataclass(frozen=True)
class WithdrawalAddressInputs:
    address: str


@dataclass(frozen=True)
class WithdrawInputs:
    pass


@dataclass(frozen=True)
class RoleInputs:
    role: Role
    account: str


@dataclass(frozen=True)
class PreparedCall:
    """A validated contract call ready for estimation and submission."""

    method: str
    args: tuple[Any, ...]
    description: str
    confirm_prompt: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LimitSetting:
    method: str
    label: str
    min_value: int
    max_value: int | None = None


LIMIT_SETTINGS: dict[LimitKind, LimitSetting] = {
    LimitKind.MAX_SUPPLY: LimitSetting("setMaxSupply", "max supply", 1),
    LimitKind.MAX_ALLOWLIST_MINT_PER_TX: LimitSetting(
        "setMaxWhitelistMintPerTx", "max allow-list mint per transaction", 1, 2
    ),
    LimitKind.MAX_PUBLIC_MINT_PER_TX: LimitSetting(
        "setMaxPublicMintPerTx", "max public mint per transaction", 1, 12
    ),
    LimitKind.MAX_ALLOWLIST_BATCH_SIZE: LimitSetting(
        "setMaxWhitelistBatchSize", "max allow-list batch size", 1, 300
    ),
    LimitKind.MAX_OPERATOR_MINT_AMOUNT: LimitSetting(
        "setMaxOperatorMintAmount", "max operator mint amount", 1
    ),
}


def _range_text(min_value: int | float, max_value: int | float | None) -> str:
    if max_value is None:
        return f"at least {min_value}"
    return f"between {min_value} and {max_value}"


def _check_address(violations: list[str], label: str, value: str) -> None:
    if not is_valid_address((value or "").strip()):
        violations.append(f"{label}: not a valid address ({value!r})")


def _check_integer(
    violations: list[str], label: str, value: Any, min_value: int, max_value: int | None = None
) -> None:
    if not is_valid_integer(value, min_value, max_value):
        violations.append(f"{label}: must be an integer {_range_text(min_value, max_value)} ({value!r})")


def _checksum(value: str) -> str:
    return Web3.to_checksum_address(value.strip())


# ---------------------------------------------------------------------------
# Operation declarations
# ---------------------------------------------------------------------------
class OperationSpec(ABC):
    """Declared constraints and call shape of one privileged operation."""

    kind: OperationKind
    inputs_type: type
    gas_margin: int = ORDINARY_GAS_MARGIN
    clears: tuple[str, ...] = ()

    def validate(self, inputs: Any) -> None:
        """Raise ValidationFailedError listing every violation found."""

        if not isinstance(inputs, self.inputs_type):
            raise MalformedInputError(
                f"{self.kind.value} expects {self.inputs_type.__name__}",
                details={"got": type(inputs).__name__},
            )
        violations = self.violations(inputs)
        if violations:
            raise ValidationFailedError(violations, details={"operation": self.kind.value})

    def violations(self, inputs: Any) -> list[str]:
        return []

    @abstractmethod
    async def prepare(self, inputs: Any, gateway: ContractGateway) -> PreparedCall:
        pass


class OwnerMint(OperationSpec):
    kind = OperationKind.OWNER_MINT
    inputs_type = OwnerMintInputs
    clears = ("recipient", "amount")

    def violations(self, inputs: OwnerMintInputs) -> list[str]:
        violations: list[str] = []
        _check_address(violations, "recipient", inputs.recipient)
        _check_integer(violations, "amount", inputs.amount, 1, MAX_OWNER_MINT_AMOUNT)
        return violations

    async def prepare(self, inputs: OwnerMintInputs, gateway: ContractGateway) -> PreparedCall:
        recipient = _checksum(inputs.recipient)
        amount = parse_integer(inputs.amount)
        return PreparedCall(
            "safeMint",
            (recipient, amount),
            f"Mint {amount} token(s) to {shorten_address(recipient)}",
        )


class AllowListBatchOperation(OperationSpec):
    inputs_type = AllowListBatchInputs
    clears = ("entries",)
    mode: BatchMode
    method: str

    def validate(self, inputs: Any) -> None:
        super().validate(inputs)
        build_batch(self.mode, inputs.entries, MAX_BATCH_SIZE)

    async def prepare(self, inputs: AllowListBatchInputs, gateway: ContractGateway) -> PreparedCall:
        batch = build_batch(self.mode, inputs.entries, MAX_BATCH_SIZE)
        verb = "Add" if self.mode is BatchMode.ADD else "Remove"
        preposition = "to" if self.mode is BatchMode.ADD else "from"
        description = f"{verb} {len(batch)} address(es) {preposition} the allow-list"
        if batch.duplicates_removed:
            description += f" ({batch.duplicates_removed} duplicate(s) removed)"
        return PreparedCall(
            self.method,
            (batch.contract_args(),),
            description,
            details={"count": len(batch), "duplicates_removed": batch.duplicates_removed},
        )


class AddAllowList(AllowListBatchOperation):
    kind = OperationKind.ADD_ALLOWLIST
    mode = BatchMode.ADD
    method = "addWhitelist"


class RemoveAllowList(AllowListBatchOperation):
    kind = OperationKind.REMOVE_ALLOWLIST
    mode = BatchMode.REMOVE
    method = "removeWhitelist"


class SetAllowListEntry(OperationSpec):
    kind = OperationKind.SET_ALLOWLIST_ENTRY
    inputs_type = AllowListEntryInputs
    clears = ("address",)

    def violations(self, inputs: AllowListEntryInputs) -> list[str]:
        violations: list[str] = []
        _check_address(violations, "address", inputs.address)
        return violations

    async def prepare(self, inputs: AllowListEntryInputs, gateway: ContractGateway) -> PreparedCall:
        address = _checksum(inputs.address)
        action = "Allow-list" if inputs.allowed else "Remove from allow-list"
        return PreparedCall(
            "setWhitelist", (address, bool(inputs.allowed)), f"{action}: {shorten_address(address)}"
        )


class StartNewRound(OperationSpec):
    kind = OperationKind.START_NEW_ROUND
    inputs_type = StartNewRoundInputs
    gas_margin = ROUND_ADVANCE_GAS_MARGIN

    async def prepare(self, inputs: StartNewRoundInputs, gateway: ContractGateway) -> PreparedCall:
        current = int(await gateway.call("currentEpoch"))
        return PreparedCall(
            "startNewRound",
            (),
            f"Start round {current + 1}",
            confirm_prompt=(
                "Start a new round?\n\n"
                f"Current round: {current}\n"
                f"Next round: {current + 1}\n\n"
                "Per-account mint counts reset for the new round. This cannot be undone."
            ),
            details={"current_epoch": current, "next_epoch": current + 1},
        )


class SetSaleConfig(OperationSpec):
    kind = OperationKind.SET_SALE_CONFIG
    inputs_type = SaleConfigInputs
    clears = ("allowlist_price", "public_price", "end_token_id")

    def violations(self, inputs: SaleConfigInputs) -> list[str]:
        violations: list[str] = []
        if not is_valid_amount(inputs.allowlist_price, 0):
            violations.append(f"allow-list price: not a valid ETH amount ({inputs.allowlist_price!r})")
        if not is_valid_amount(inputs.public_price, 0):
            violations.append(f"public price: not a valid ETH amount ({inputs.public_price!r})")
        _check_integer(violations, "end token id", inputs.end_token_id, 1)
        return violations

    async def prepare(self, inputs: SaleConfigInputs, gateway: ContractGateway) -> PreparedCall:
        end_token_id = parse_integer(inputs.end_token_id)
        max_supply, minted = await asyncio.gather(
            gateway.call("maxSupply"), read_total_minted(gateway)
        )

        violations = []
        if end_token_id > int(max_supply):
            violations.append(f"end token id: {end_token_id} exceeds max supply {int(max_supply)}")
        if end_token_id < int(minted):
            violations.append(
                f"end token id: {end_token_id} is below the number already minted ({int(minted)})"
            )
        if violations:
            raise ValidationFailedError(
                violations,
                details={"max_supply": int(max_supply), "total_minted": int(minted)},
            )

        allowlist_wei = parse_ether(inputs.allowlist_price)
        public_wei = parse_ether(inputs.public_price)
        return PreparedCall(
            "setSaleConfig",
            (
                allowlist_wei,
                public_wei,
                end_token_id,
                bool(inputs.allowlist_open),
                bool(inputs.public_open),
            ),
            (
                f"Update sale config (allow-list {format_ether(allowlist_wei)} ETH, "
                f"public {format_ether(public_wei)} ETH, ends at #{end_token_id})"
            ),
        )


class SetSaleFlag(OperationSpec):
    kind = OperationKind.SET_SALE_FLAG
    inputs_type = SaleFlagInputs

    async def prepare(self, inputs: SaleFlagInputs, gateway: ContractGateway) -> PreparedCall:
        method = "setWhitelistStart" if inputs.sale is SaleKind.ALLOWLIST else "setPublicStart"
        label = "Allow-list" if inputs.sale is SaleKind.ALLOWLIST else "Public"
        state = "open" if inputs.open else "closed"
        return PreparedCall(method, (bool(inputs.open),), f"{label} sale {state}")


class SetLimit(OperationSpec):
    kind = OperationKind.SET_LIMIT
    inputs_type = LimitInputs
    clears = ("value",)

    def violations(self, inputs: LimitInputs) -> list[str]:
        setting = LIMIT_SETTINGS[inputs.limit]
        violations: list[str] = []
        _check_integer(violations, setting.label, inputs.value, setting.min_value, setting.max_value)
        return violations

    async def prepare(self, inputs: LimitInputs, gateway: ContractGateway) -> PreparedCall:
        setting = LIMIT_SETTINGS[inputs.limit]
        value = parse_integer(inputs.value)
        return PreparedCall(setting.method, (value,), f"Set {setting.label} to {value}")


class SetBaseUri(OperationSpec):
    kind = OperationKind.SET_BASE_URI
    inputs_type = BaseUriInputs
    clears = ("uri",)

    def violations(self, inputs: BaseUriInputs) -> list[str]:
        uri = (inputs.uri or "").strip()
        if not uri:
            return ["base URI: must not be empty"]
        if not is_valid_uri(uri):
            return [f"base URI: not a valid URL or ipfs:// / ar:// reference ({inputs.uri!r})"]
        return []

    async def prepare(self, inputs: BaseUriInputs, gateway: ContractGateway) -> PreparedCall:
        uri = inputs.uri.strip()
        return PreparedCall("setBaseURI", (uri,), f"Set base URI to {uri}")


class SetPaused(OperationSpec):
    kind = OperationKind.SET_PAUSED
    inputs_type = PauseInputs

    async def prepare(self, inputs: PauseInputs, gateway: ContractGateway) -> PreparedCall:
        action = "Pause" if inputs.paused else "Unpause"
        return PreparedCall("pause", (bool(inputs.paused),), f"{action} the contract")


class SetRoyalty(OperationSpec):
    kind = OperationKind.SET_ROYALTY
    inputs_type = RoyaltyInputs
    clears = ("receiver", "percentage")

    def violations(self, inputs: RoyaltyInputs) -> list[str]:
        violations: list[str] = []
        _check_address(violations, "royalty receiver", inputs.receiver)
        if not is_valid_amount(inputs.percentage, 0, MAX_ROYALTY_PERCENT):
            violations.append(
                f"royalty percentage: must be between 0 and {MAX_ROYALTY_PERCENT} ({inputs.percentage!r})"
            )
        return violations

    async def prepare(self, inputs: RoyaltyInputs, gateway: ContractGateway) -> PreparedCall:
        receiver = _checksum(inputs.receiver)
        basis_points = percent_to_basis_points(inputs.percentage)
        return PreparedCall(
            "setDefaultRoyalty",
            (receiver, basis_points),
            f"Set royalty to {inputs.percentage}% for {shorten_address(receiver)}",
            details={"basis_points": basis_points},
        )


class SetWithdrawalAddress(OperationSpec):
    kind = OperationKind.SET_WITHDRAWAL_ADDRESS
    inputs_type = WithdrawalAddressInputs
    clears = ("address",)

    def violations(self, inputs: WithdrawalAddressInputs) -> list[str]:
        violations: list[str] = []
        _check_address(violations, "withdrawal address", inputs.address)
        return violations

    async def prepare(
        self, inputs: WithdrawalAddressInputs, gateway: ContractGateway
    ) -> PreparedCall:
        address = _checksum(inputs.address)
        return PreparedCall(
            "setWithdrawalAddress", (address,), f"Set withdrawal address to {shorten_address(address)}"
        )


class Withdraw(OperationSpec):
    kind = OperationKind.WITHDRAW
    inputs_type = WithdrawInputs

    async def prepare(self, inputs: WithdrawInputs, gateway: ContractGateway) -> PreparedCall:
        balance = await gateway.get_balance(str(gateway.contract_address))
        return PreparedCall(
            "withdraw",
            (),
            f"Withdraw {format_ether(balance)} ETH",
            confirm_prompt=(
                f"Withdraw the contract's entire balance ({format_ether(balance)} ETH) "
                "to the withdrawal address?"
            ),
            details={"balance_wei": balance},
        )


class RoleOperation(OperationSpec):
    inputs_type = RoleInputs
    clears = ("account",)
    method: str
    verb: str

    def violations(self, inputs: RoleInputs) -> list[str]:
        violations: list[str] = []
        if inputs.role not in (Role.ADMIN, Role.OPERATOR):
            violations.append(f"role: must be admin or operator ({inputs.role!r})")
        _check_address(violations, "account", inputs.account)
        return violations

    async def prepare(self, inputs: RoleInputs, gateway: ContractGateway) -> PreparedCall:
        account = _checksum(inputs.account)
        role_id = await read_role_id(gateway, inputs.role)
        return PreparedCall(
            self.method,
            (role_id, account),
            f"{self.verb.capitalize()} {inputs.role.value} role for {shorten_address(account)}",
            confirm_prompt=f"{self.verb.capitalize()} the {inputs.role.value} role for {account}?",
        )


class GrantRole(RoleOperation):
    kind = OperationKind.GRANT_ROLE
    method = "grantRole"
    verb = "grant"


class RevokeRole(RoleOperation):
    kind = OperationKind.REVOKE_ROLE
    method = "revokeRole"
    verb = "revoke"


OPERATIONS: dict[OperationKind, OperationSpec] = {
    spec.kind: spec
    for spec in (
        OwnerMint(),
        AddAllowList(),
        RemoveAllowList(),
        SetAllowListEntry(),
        StartNewRound(),
        SetSaleConfig(),
        SetSaleFlag(),
        SetLimit(),
        SetBaseUri(),
        SetPaused(),
        SetRoyalty(),
        SetWithdrawalAddress(),
        Withdraw(),
        GrantRole(),
        RevokeRole(),
    )
}


def get_operation(kind: OperationKind) -> OperationSpec:
    return OPERATIONS[kind]
