"""Tests for the single-flight transaction pipeline."""

from __future__ import annotations

import asyncio

import pytest
from conftest import (
    CONTRACT,
    OPERATOR_ROLE_ID,
    OTHER,
    TX_HASH,
    FakeWallet,
    RecordingPresenter,
    build_console,
)

from mint_console.constants import ORDINARY_GAS_MARGIN, ROUND_ADVANCE_GAS_MARGIN
from mint_console.evm.operations import (
    AllowListBatchInputs,
    OwnerMintInputs,
    RoleInputs,
    SaleConfigInputs,
    StartNewRoundInputs,
    WithdrawInputs,
)
from mint_console.exceptions import (
    BusyError,
    CapacityExceededError,
    ContractNotFoundError,
    ContractRevertError,
    NetworkMismatchError,
    NotConnectedError,
    ProviderRpcError,
    UserRejectedError,
    ValidationFailedError,
)
from mint_console.types import MessageLevel, OperationKind, OperationStatus, Role, Topic
from mint_console.utils import apply_gas_margin

SEPOLIA = 11155111


def _run(env, kind, inputs):
    return asyncio.run(env.pipeline.execute(kind, inputs))


def _mint(env, recipient=OTHER, amount=3):
    return _run(env, OperationKind.OWNER_MINT, OwnerMintInputs(recipient, amount))


class TestSuccess:
    def test_owner_mint_end_to_end(self, console):
        snapshots_before = len(console.presenter.topics(Topic.SNAPSHOT))

        result = _mint(console)

        gateway = console.factory.gateways[1]
        assert result.status is OperationStatus.SUCCEEDED
        assert gateway.sent == [
            {
                "method": "safeMint",
                "args": (OTHER, 3),
                "sender": console.manager.state.wallet_address,
                "gas": 120_000,
            }
        ]
        assert result.transaction.hash == TX_HASH
        assert result.transaction.gas_estimate == 100_000
        assert result.explorer_url == f"https://etherscan.io/tx/{TX_HASH}"
        assert result.cleared_fields == ("recipient", "amount")
        assert len(console.presenter.topics(Topic.SNAPSHOT)) == snapshots_before + 1

        clear = console.presenter.topics(Topic.CLEAR_INPUTS)
        assert clear[-1].data["fields"] == ("recipient", "amount")

    def test_messages_report_submission_then_confirmation(self, console):
        _mint(console)

        info = console.presenter.messages(MessageLevel.INFO)
        success = console.presenter.messages(MessageLevel.SUCCESS)
        assert info[-1].message.startswith("Transaction sent: Mint 3 token(s)")
        assert TX_HASH in info[-1].message
        assert success[-1].message.endswith(f"confirmed. Hash: {TX_HASH}")

    def test_busy_marker_wraps_the_run(self, console):
        _mint(console)

        busy = [n.data["busy"] for n in console.presenter.topics(Topic.BUSY)]
        assert busy == [True, False]
        assert not console.pipeline.guard.is_busy

    @pytest.mark.parametrize("estimate", [1, 21_001, 123_457])
    def test_ordinary_gas_margin(self, console, estimate):
        console.factory.gateways[1].estimate = estimate

        _mint(console)

        sent = console.factory.gateways[1].sent[-1]
        assert sent["gas"] == apply_gas_margin(estimate, ORDINARY_GAS_MARGIN)

    def test_round_advance_uses_larger_margin(self, console):
        console.factory.gateways[1].estimate = 123_457

        result = _run(console, OperationKind.START_NEW_ROUND, StartNewRoundInputs())

        assert result.success
        sent = console.factory.gateways[1].sent[-1]
        assert sent["method"] == "startNewRound"
        assert sent["gas"] == apply_gas_margin(123_457, ROUND_ADVANCE_GAS_MARGIN) == 160_495
        assert "Current round: 3" in console.presenter.prompts[-1]
        assert "Next round: 4" in console.presenter.prompts[-1]

    def test_allowlist_batch_is_deduplicated_before_submission(self, console):
        raw = ["0x" + f"{i % 80:040x}" for i in range(150)]

        result = _run(console, OperationKind.ADD_ALLOWLIST, AllowListBatchInputs(raw))

        assert result.success
        (addresses,) = console.factory.gateways[1].sent[-1]["args"]
        assert len(addresses) == 80

    def test_role_grant_confirms_and_uses_role_id(self, console):
        result = _run(console, OperationKind.GRANT_ROLE, RoleInputs(Role.OPERATOR, OTHER))

        assert result.success
        assert console.factory.gateways[1].sent[-1]["args"] == (OPERATOR_ROLE_ID, OTHER)
        assert console.presenter.prompts[-1] == f"Grant the operator role for {OTHER}?"


class TestGuard:
    def test_second_operation_is_rejected_while_one_is_pending(self):
        class ReentrantPresenter(RecordingPresenter):
            nested = None

            async def confirm(self, prompt):
                self.nested = await env.pipeline.execute(
                    OperationKind.OWNER_MINT, OwnerMintInputs(OTHER, 1)
                )
                return True

        presenter = ReentrantPresenter()
        env = build_console(presenter=presenter)

        result = _run(env, OperationKind.START_NEW_ROUND, StartNewRoundInputs())

        assert result.success
        assert presenter.nested.status is OperationStatus.REJECTED
        assert isinstance(presenter.nested.error, BusyError)
        assert [sent["method"] for sent in env.factory.gateways[1].sent] == ["startNewRound"]
        assert presenter.messages(MessageLevel.WARNING)[-1].message == BusyError().message

    def test_busy_rejection_leaves_state_unchanged(self, console):
        pending = console.pipeline.guard.acquire(OperationKind.WITHDRAW)
        notifications_before = len(console.presenter.notifications)

        result = _mint(console)

        assert result.status is OperationStatus.REJECTED
        assert console.pipeline.guard.active is pending
        assert console.factory.gateways[1].estimates == []
        new = console.presenter.notifications[notifications_before:]
        assert [n.level for n in new] == [MessageLevel.WARNING]

    def test_guard_released_after_failure(self, console):
        console.factory.gateways[1].estimate_error = ProviderRpcError(-32000, "boom")

        _mint(console)

        assert not console.pipeline.guard.is_busy


class TestPreflight:
    def test_not_connected_makes_no_provider_call(self):
        env = build_console(connect=False)

        result = _mint(env)

        assert result.status is OperationStatus.REJECTED
        assert isinstance(result.error, NotConnectedError)
        assert env.wallet.requests == []

    def test_validation_stops_before_estimate(self, console):
        result = _mint(console, recipient="nope", amount=0)

        assert result.status is OperationStatus.REJECTED
        assert isinstance(result.error, ValidationFailedError)
        assert len(result.error.violations) == 2
        assert console.factory.gateways[1].estimates == []
        assert console.presenter.messages(MessageLevel.ERROR)[-1].message == result.message

    def test_sale_end_below_minted_is_rejected(self, console):
        inputs = SaleConfigInputs("0.01", "0.02", 5, True, False)

        result = _run(console, OperationKind.SET_SALE_CONFIG, inputs)

        assert result.status is OperationStatus.REJECTED
        assert "below the number already minted (10)" in result.message
        assert console.factory.gateways[1].estimates == []

    def test_sale_end_above_max_supply_is_rejected(self, console):
        inputs = SaleConfigInputs("0.01", "0.02", 2000, True, False)

        result = _run(console, OperationKind.SET_SALE_CONFIG, inputs)

        assert "exceeds max supply 1000" in result.message
        assert console.factory.gateways[1].sent == []

    def test_capacity_exceeded(self, console):
        raw = ["0x" + f"{i:040x}" for i in range(101)]

        result = _run(console, OperationKind.REMOVE_ALLOWLIST, AllowListBatchInputs(raw))

        assert isinstance(result.error, CapacityExceededError)
        assert console.factory.gateways[1].estimates == []

    def test_unconfigured_contract(self):
        env = build_console(contract_address=None)

        result = _mint(env)

        assert isinstance(result.error, ContractNotFoundError)
        assert result.message == "No contract address is configured for Ethereum Mainnet"
        assert env.snapshots.snapshot.configured is False

    def test_switches_to_intended_network_first(self, console):
        console.manager.intended_chain_id = SEPOLIA

        result = _mint(console)

        assert result.success
        assert console.factory.gateways[SEPOLIA].sent
        assert console.factory.gateways[1].sent == []
        assert result.explorer_url.startswith("https://sepolia.etherscan.io/tx/")

    def test_network_mismatch_blocks_submission(self, console):
        console.wallet.ignore_switch = True
        console.manager.intended_chain_id = SEPOLIA

        result = _mint(console)

        assert isinstance(result.error, NetworkMismatchError)
        assert console.factory.gateways[1].estimates == []


class TestConfirmation:
    def test_declined_confirmation_cancels(self):
        env = build_console(presenter=RecordingPresenter(answer=False))

        result = _run(env, OperationKind.WITHDRAW, WithdrawInputs())

        assert result.status is OperationStatus.CANCELLED
        assert "0.5 ETH" in env.presenter.prompts[-1]
        assert env.factory.gateways[1].estimates == []
        assert env.presenter.messages(MessageLevel.INFO)[-1].message == "Cancelled"

    def test_unconfirmed_operations_skip_the_prompt(self, console):
        _mint(console)
        assert console.presenter.prompts == []


class TestSubmissionFailures:
    def test_estimate_failure_is_classified(self, console):
        gateway = console.factory.gateways[1]
        gateway.estimate_error = ProviderRpcError(-32000, "execution reverted: MintPaused()")

        result = _mint(console)

        assert result.status is OperationStatus.FAILED
        assert isinstance(result.error, ContractRevertError)
        assert result.error.reason == "MintPaused"
        assert gateway.sent == []

    def test_wallet_rejection(self, console):
        gateway = console.factory.gateways[1]
        gateway.transact_error = ProviderRpcError(4001, "User rejected the request.")

        result = _mint(console)

        assert result.status is OperationStatus.FAILED
        assert isinstance(result.error, UserRejectedError)
        assert gateway.waited == 0
        assert not result.submitted

    def test_receipt_wait_failure_reports_hash(self, console):
        gateway = console.factory.gateways[1]
        gateway.wait_error = TimeoutError("timed out")

        result = _mint(console)

        assert result.status is OperationStatus.UNCONFIRMED
        assert result.transaction.hash == TX_HASH
        warning = console.presenter.messages(MessageLevel.WARNING)[-1]
        assert TX_HASH in warning.message
        assert not console.presenter.topics(Topic.CLEAR_INPUTS)
        assert not console.pipeline.guard.is_busy

    def test_reverted_receipt(self, console):
        gateway = console.factory.gateways[1]
        gateway.receipt = {"status": 0, "blockNumber": 43}

        result = _mint(console)

        assert result.status is OperationStatus.REVERTED
        assert isinstance(result.error, ContractRevertError)
        assert TX_HASH in console.presenter.messages(MessageLevel.ERROR)[-1].message
        assert not console.presenter.topics(Topic.CLEAR_INPUTS)

    def test_refresh_failure_does_not_fail_the_operation(self):
        env = build_console(FakeWallet())

        async def broken_refresh():
            raise RuntimeError("rpc down")

        env.pipeline.set_refresh_callback(broken_refresh)

        result = _mint(env)

        assert result.success
        assert env.presenter.topics(Topic.CLEAR_INPUTS)


def test_withdraw_reads_contract_balance(console):
    result = _run(console, OperationKind.WITHDRAW, WithdrawInputs())

    assert result.success
    assert console.factory.gateways[1].sent[-1]["method"] == "withdraw"
    assert CONTRACT in console.factory.gateways[1].balances
