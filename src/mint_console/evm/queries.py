"""Read-only lookups against the token contract."""

from __future__ import annotations

import calendar
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from web3 import Web3

from ..base import ContractGateway
from ..classifier import classify_error
from ..constants import ZERO_ADDRESS
from ..exceptions import ContractNotFoundError, ContractRevertError, ValidationFailedError
from ..types import AllowListMintStatus, PublicMintStatus, Role, RoundInfo, UserMintInfo
from ..utils import is_valid_address, is_valid_integer, parse_integer
from .abi import PUBLIC_MINT_STATUS_FIELDS, USER_MINT_INFO_FIELDS, WHITELIST_MINT_STATUS_FIELDS
from .connections import ConnectionManager

logger = logging.getLogger(__name__)

ROLE_GETTERS = {Role.ADMIN: "DEFAULT_ADMIN_ROLE", Role.OPERATOR: "OPERATOR_ROLE"}


async def read_role_id(gateway: ContractGateway, role: Role) -> bytes:
    return await gateway.call(ROLE_GETTERS[role])


async def read_role(gateway: ContractGateway, address: str) -> Role:
    """Highest role held by ``address``: admin, then operator, else none."""

    for role in (Role.ADMIN, Role.OPERATOR):
        role_id = await read_role_id(gateway, role)
        if await gateway.call("hasRole", role_id, address):
            return role
    return Role.NONE


def round_label(epoch: int) -> str:
    if epoch <= 0:
        return "Not started"
    if epoch <= 12:
        return calendar.month_name[epoch]
    return f"Round {epoch}"


def _named(result: Any, names: Sequence[str]) -> dict[str, Any]:
    if isinstance(result, Mapping):
        return {name: result[name] for name in names}
    return dict(zip(names, result))


def _checked_address(value: str, field: str = "address") -> str:
    text = (value or "").strip()
    if not is_valid_address(text):
        raise ValidationFailedError([f"{field}: not a valid address ({value!r})"])
    return Web3.to_checksum_address(text)


class ContractQueries:
    """Operator-facing lookups; failures are raised as classified OperationErrors."""

    def __init__(self, connections: ConnectionManager) -> None:
        self._connections = connections

    def _gateway(self) -> ContractGateway:
        gateway = self._connections.gateway
        if not gateway.is_configured:
            raise ContractNotFoundError(
                f"No contract address is configured for {self._connections.network_label()}"
            )
        return gateway

    async def _call(self, method: str, *args: Any) -> Any:
        gateway = self._gateway()
        try:
            return await gateway.call(method, *args)
        except Exception as exc:
            logger.debug("Read %s failed: %s", method, exc)
            raise classify_error(exc) from exc

    async def is_allowlisted(self, address: str) -> bool:
        return bool(await self._call("whitelist", _checked_address(address)))

    async def token_balance(self, address: str) -> int:
        return int(await self._call("balanceOf", _checked_address(address)))

    async def token_uri(self, token_id: int | str) -> str:
        if not is_valid_integer(token_id, min_value=0):
            raise ValidationFailedError([f"token id: must be a non-negative integer ({token_id!r})"])

        gateway = self._gateway()
        try:
            return str(await gateway.call("tokenURI", parse_integer(token_id)))
        except Exception as exc:
            message = str(exc)
            if "nonexistent" in message:
                raise ContractRevertError(
                    "That token id has not been minted yet", reason="nonexistent"
                ) from exc
            if "URI" in message:
                raise ContractRevertError(
                    "Token URI lookup failed: the base URI is not set or the token does not exist",
                    reason="URI",
                ) from exc
            raise classify_error(exc) from exc

    async def role_of(self, address: str) -> Role:
        checked = _checked_address(address)
        gateway = self._gateway()
        try:
            return await read_role(gateway, checked)
        except Exception as exc:
            raise classify_error(exc) from exc

    async def allowlist_mint_status(self, address: str) -> AllowListMintStatus:
        values = _named(
            await self._call("whitelistMintStatus", _checked_address(address)),
            WHITELIST_MINT_STATUS_FIELDS,
        )
        return AllowListMintStatus(
            is_open=bool(values["isOpen"]),
            is_allowlisted=bool(values["isWhitelisted"]),
            price_wei=int(values["priceWei"]),
            next_token_id=int(values["nextTokenId"]),
            end_token_id=int(values["endTokenId"]),
            remaining=int(values["remaining"]),
            epoch=int(values["epoch"]),
            user_minted=int(values["userMintedWhitelist"]),
            user_remaining=int(values["userRemainingWhitelist"]),
        )

    async def public_mint_status(self, address: str | None = None) -> PublicMintStatus:
        """Public sale status; without an address only the sale-wide fields are meaningful."""

        target = _checked_address(address) if address and address.strip() else ZERO_ADDRESS
        values = _named(await self._call("publicMintStatus", target), PUBLIC_MINT_STATUS_FIELDS)
        return PublicMintStatus(
            is_open=bool(values["isOpen"]),
            price_wei=int(values["priceWei"]),
            next_token_id=int(values["nextTokenId"]),
            end_token_id=int(values["endTokenId"]),
            remaining=int(values["remaining"]),
            epoch=int(values["epoch"]),
            user_minted=int(values["userMintedPublic"]),
            user_remaining=int(values["userRemainingPublic"]),
        )

    async def user_mint_info(self, address: str) -> UserMintInfo:
        values = _named(
            await self._call("getUserMintInfo", _checked_address(address)), USER_MINT_INFO_FIELDS
        )
        return UserMintInfo(
            epoch=int(values["epoch"]),
            allowlist_minted=int(values["whitelistMintedThisEpoch"]),
            public_minted=int(values["publicMintedThisEpoch"]),
            total_minted=int(values["totalMintedThisEpoch"]),
            allowlist_remaining=int(values["whitelistRemainingThisEpoch"]),
            public_remaining=int(values["publicRemainingThisEpoch"]),
            max_possible=int(values["maxPossibleMintThisEpoch"]),
        )

    async def current_round(self) -> RoundInfo:
        epoch = int(await self._call("currentEpoch"))
        return RoundInfo(epoch=epoch, label=round_label(epoch))
