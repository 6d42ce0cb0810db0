"""Tests for ccli.engine.contract — counter contract binding."""

import asyncio

import pytest

from ccli.engine.contract import Confirmation, CounterContract, counterFactory
from ccli.engine.errors import (
    ConfirmationFailed,
    ProviderRpcError,
    ReadFailed,
    SessionInactive,
    SubmissionRejected,
)
from tests.conftest import CONTRACT, settle


@pytest.fixture
async def connected(link):
    await link.connect()
    return link


def make_contract(link, **kwargs):
    kwargs.setdefault("pollInterval", 0)
    return CounterContract(link, CONTRACT, **kwargs)


class TestReadCount:
    async def test_reads_chain_value(self, connected, provider):
        contract = make_contract(connected)
        assert await contract.readCount() == 5
        assert provider.calls == [(CONTRACT, "getCount", connected.address)]

    async def test_provider_error_is_read_failed(self, connected, provider):
        provider.readError = ProviderRpcError(-32000, "header not found")
        with pytest.raises(ReadFailed) as exc:
            await make_contract(connected).readCount()

        assert not exc.value.fatal

    async def test_lost_provider_is_fatal(self, connected, provider):
        provider.readError = ProviderRpcError(4900, "disconnected")
        with pytest.raises(ReadFailed) as exc:
            await make_contract(connected).readCount()

        assert exc.value.fatal

    async def test_inactive_link(self, link):
        with pytest.raises(SessionInactive):
            await make_contract(link).readCount()


class TestMutate:
    async def test_increment_confirms(self, connected, provider):
        provider.txHashes = ["0x111"]
        contract = make_contract(connected)

        result = await contract.increment()

        assert isinstance(result, Confirmation)
        assert result.txHash == "0x111"
        assert result.confirmed is True
        assert result.blockNumber == 101
        assert provider.sent == [(CONTRACT, "increment")]
        assert provider.chain.count == 6

    async def test_decrement_confirms(self, connected, provider):
        result = await make_contract(connected).decrement()
        assert result.confirmed
        assert provider.chain.count == 4

    async def test_declined_signature(self, connected, provider):
        provider.rejectSubmit = True
        with pytest.raises(SubmissionRejected):
            await make_contract(connected).increment()

        assert provider.chain.count == 5

    async def test_offline_submission_is_fatal(self, connected, provider):
        provider.offline = True
        with pytest.raises(SubmissionRejected) as exc:
            await make_contract(connected).increment()

        assert exc.value.fatal

    async def test_reverted_receipt(self, connected, provider):
        provider.chain.count = 0
        with pytest.raises(ConfirmationFailed, match="reverted"):
            await make_contract(connected).decrement()

        assert provider.chain.count == 0

    async def test_revert_at_submission(self, connected, provider):
        provider.chain.count = 0
        provider.chain.revertMode = "estimate"
        with pytest.raises(ConfirmationFailed, match="reverted"):
            await make_contract(connected).decrement()

    async def test_dropped_transaction(self, connected, provider):
        provider.txHashes = ["0xdead"]
        provider.dropped.add("0xdead")
        with pytest.raises(ConfirmationFailed, match="dropped"):
            await make_contract(connected).increment()

    async def test_confirmation_timeout(self, connected, provider):
        provider.confirmGate = asyncio.Event()
        contract = make_contract(connected, confirmTimeout=0.01)
        with pytest.raises(ConfirmationFailed, match="not confirmed"):
            await contract.increment()

    async def test_waits_for_confirmation(self, connected, provider):
        provider.confirmGate = asyncio.Event()
        task = asyncio.create_task(make_contract(connected).increment())
        await settle()

        # submitted but never returns for a pending transaction
        assert provider.sent == [(CONTRACT, "increment")]
        assert not task.done()

        provider.confirmGate.set()
        result = await task
        assert result.confirmed

    async def test_inactive_link(self, link, provider):
        with pytest.raises(SessionInactive):
            await make_contract(link).increment()

        assert provider.sent == []


class TestBindingLifetime:
    async def test_invalid_after_disconnect(self, connected):
        contract = make_contract(connected)
        assert contract.valid

        connected.disconnect()

        assert not contract.valid
        with pytest.raises(SessionInactive):
            await contract.readCount()

    async def test_does_not_follow_reconnect(self, connected):
        contract = make_contract(connected)
        connected.disconnect()
        await connected.connect()

        # new session, new signer: the old binding stays dead
        assert not contract.valid
        with pytest.raises(SessionInactive):
            await contract.increment()

    async def test_borrows_signer_by_reference(self, connected):
        contract = make_contract(connected)
        assert contract.signer is connected.signer

    async def test_factory(self, connected):
        contract = counterFactory(CONTRACT.lower(), confirmTimeout=5, pollInterval=0.5)(connected)
        assert contract.address == CONTRACT
        assert contract.confirmTimeout == 5
        assert contract.pollInterval == 0.5
