"""
web3.py ledger access for the Arc services.

Provides contract events that can be fetched or watched (by polling a node
filter) and an ``IntVoteInterface`` binding that sends transactions and
returns receipts with decoded logs.
"""

import asyncio
import logging
from typing import Optional, Dict, Any, List, Callable

from web3 import Web3
from web3.contract import Contract
from web3.logs import DISCARD
from eth_account import Account

from ..abi import INT_VOTE_INTERFACE_ABI, event_names
from ..config import ArcSettings, get_settings
from ..interfaces import RawEventCallback
from ..types import Address, Hash, DecodedLogEntry, ContractNotFoundError, UnsupportedOperationError
from ..utils import normalize_address

logger = logging.getLogger(__name__)


class Web3EventFilter:
    """
    One contract event filtered by argument values and block range.

    The contract fixes the emitting address and event topic, so ``address``
    and ``topics`` options are not used here.
    """

    def __init__(self, w3: Web3, contract_event: Any, arg_filter: Dict[str, Any],
                 options: Dict[str, Any]):
        self.w3 = w3
        self._event = contract_event
        self._arg_filter = arg_filter or None
        self.from_block = options.get("from_block", "latest")
        self.to_block = options.get("to_block", "latest")
        self.poll_interval = options.get("poll_interval", 2.0)
        self._filter = None
        self._task: Optional[asyncio.Task] = None

    def __repr__(self) -> str:
        return f"Web3EventFilter({self._event.event_name}, {self._arg_filter}, from={self.from_block})"

    async def get(self) -> List[DecodedLogEntry]:
        """Fetch matching logs between from_block and to_block"""
        loop = asyncio.get_running_loop()

        def _get_logs():
            return self._event.get_logs(
                argument_filters=self._arg_filter,
                from_block=self.from_block,
                to_block=self.to_block,
            )

        logs = await loop.run_in_executor(None, _get_logs)
        return [DecodedLogEntry.from_web3(log) for log in logs]

    def watch(self, callback: RawEventCallback) -> None:
        """Poll a node filter, delivering matching logs to ``callback``"""
        if self._task is not None and not self._task.done():
            self.stop_watching()

        self._filter = self._event.create_filter(
            from_block=self.from_block,
            argument_filters=self._arg_filter,
        )
        self._task = asyncio.get_running_loop().create_task(self._poll(self._filter, callback))
        self._task.add_done_callback(self._on_watch_done)
        logger.info(f"Watching {self!r} every {self.poll_interval}s")

    async def _poll(self, event_filter: Any, callback: RawEventCallback) -> None:
        loop = asyncio.get_running_loop()
        # the first poll also returns logs already in range of from_block
        first = True
        while True:
            try:
                if first:
                    entries = await loop.run_in_executor(None, event_filter.get_all_entries)
                else:
                    entries = await loop.run_in_executor(None, event_filter.get_new_entries)
                first = False
            except Exception as e:
                await self._deliver(callback, e, [])
            else:
                if entries:
                    await self._deliver(callback, None, [DecodedLogEntry.from_web3(entry) for entry in entries])
            await asyncio.sleep(self.poll_interval)

    async def _deliver(self, callback: RawEventCallback, error: Optional[Exception],
                       entries: List[DecodedLogEntry]) -> None:
        # a failing consumer must not end the watch
        try:
            await callback(error, entries)
        except Exception as e:
            logger.error(f"Watch callback of {self!r} failed: {e}", exc_info=True)

    def _on_watch_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Watch of {self!r} ended: {error}")

    def stop_watching(self) -> None:
        """Stop polling and uninstall the node filter. Safe to call repeatedly."""
        if self._task is not None:
            self._task.cancel()
            self._task = None
        if self._filter is not None:
            event_filter, self._filter = self._filter, None
            try:
                self.w3.eth.uninstall_filter(event_filter.filter_id)
            except Exception as e:
                logger.warning(f"Could not uninstall filter {event_filter.filter_id}: {e}")


class Web3ContractEvent:
    """A named event of a web3 contract, usable as an event fetcher source"""

    def __init__(self, contract: Contract, event_name: str):
        if getattr(contract.events, event_name, None) is None:
            raise ContractNotFoundError(f"Event {event_name} not found in contract")
        self.contract = contract
        self.event_name = event_name

    def __call__(self, arg_filter: Dict[str, Any], filter_options: Dict[str, Any]) -> Web3EventFilter:
        contract_event = getattr(self.contract.events, self.event_name)()
        return Web3EventFilter(self.contract.w3, contract_event, arg_filter, filter_options)


class Web3IntVoteContract:
    """``IntVoteInterface`` binding over a web3 contract"""

    def __init__(self, contract: Contract, account: Optional[Address] = None,
                 private_key: Optional[str] = None, receipt_timeout: float = 120.0):
        self.contract = contract
        self.w3 = contract.w3
        self.private_key = private_key
        if account is None and private_key:
            account = Account.from_key(private_key).address
        self.account = account
        self.receipt_timeout = receipt_timeout

    @property
    def address(self) -> Address:
        return self.contract.address

    def _sender(self, from_address: Optional[Address] = None) -> Optional[Address]:
        return from_address or self.account or self.w3.eth.default_account

    def _function(self, function_name: str, *args) -> Any:
        fn = getattr(self.contract.functions, function_name, None)
        if fn is None:
            raise UnsupportedOperationError(
                f"Voting machine at {self.address} does not support {function_name}",
                error_code="UNSUPPORTED_OPERATION",
            )
        return fn(*args)

    async def _call(self, function_name: str, *args) -> Any:
        fn = self._function(function_name, *args)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn.call)

    async def _transact(self, function_name: str, *args, from_address: Optional[Address] = None) -> Dict[str, Any]:
        fn = self._function(function_name, *args)
        sender = self._sender(from_address)
        loop = asyncio.get_running_loop()

        def _send_and_wait():
            if self.private_key:
                tx = fn.build_transaction({
                    "from": sender,
                    "nonce": self.w3.eth.get_transaction_count(sender),
                })
                signed_tx = self.w3.eth.account.sign_transaction(tx, self.private_key)
                tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
            else:
                # Assume unlocked account
                tx_hash = fn.transact({"from": sender} if sender else {})
            return self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)

        receipt = await loop.run_in_executor(None, _send_and_wait)
        logger.debug(f"{function_name} mined in block {receipt['blockNumber']}")
        return self.decode_receipt(receipt)

    def decode_receipt(self, receipt: Any) -> Dict[str, Any]:
        """Return the receipt as a dict whose ``logs`` are decoded events"""
        decoded = []
        for name in event_names(self.contract.abi):
            for log in getattr(self.contract.events, name)().process_receipt(receipt, errors=DISCARD):
                entry = dict(log)
                entry["args"] = dict(log["args"])
                decoded.append(entry)
        decoded.sort(key=lambda entry: entry.get("logIndex", 0))

        result = dict(receipt)
        result["rawLogs"] = receipt["logs"]
        result["logs"] = decoded
        return result

    async def propose(self, num_of_choices: int, proposal_parameters: Hash,
                      avatar: Address, executable: Address) -> Dict[str, Any]:
        return await self._transact("propose", num_of_choices, proposal_parameters, avatar, executable)

    async def cancel_proposal(self, proposal_id: Hash) -> Dict[str, Any]:
        return await self._transact("cancelProposal", proposal_id)

    async def owner_vote(self, proposal_id: Hash, vote: int, voter: Address) -> Dict[str, Any]:
        return await self._transact("ownerVote", proposal_id, vote, voter)

    async def vote(self, proposal_id: Hash, vote: int,
                   from_address: Optional[Address] = None) -> Dict[str, Any]:
        return await self._transact("vote", proposal_id, vote, from_address=from_address)

    async def vote_with_specified_amounts(self, proposal_id: Hash, vote: int,
                                          reputation: int, tokens: int) -> Dict[str, Any]:
        return await self._transact("voteWithSpecifiedAmounts", proposal_id, vote, reputation, tokens)

    async def cancel_vote(self, proposal_id: Hash) -> Dict[str, Any]:
        return await self._transact("cancelVote", proposal_id)

    async def execute(self, proposal_id: Hash) -> Dict[str, Any]:
        return await self._transact("execute", proposal_id)

    async def get_number_of_choices(self, proposal_id: Hash) -> int:
        return await self._call("getNumberOfChoices", proposal_id)

    async def is_votable(self, proposal_id: Hash) -> bool:
        return await self._call("isVotable", proposal_id)

    async def vote_status(self, proposal_id: Hash, choice: int) -> int:
        return await self._call("voteStatus", proposal_id, choice)

    async def is_abstain_allow(self) -> bool:
        return await self._call("isAbstainAllow")


class Web3ContractProvider:
    """Creates contract bindings and event sources on one web3 connection"""

    def __init__(self, w3: Web3, settings: Optional[ArcSettings] = None):
        self.w3 = w3
        self.settings = settings or get_settings()

    @classmethod
    def from_settings(cls, settings: Optional[ArcSettings] = None) -> "Web3ContractProvider":
        settings = settings or get_settings()
        if settings.provider_url.startswith("ws"):
            provider = Web3.LegacyWebSocketProvider(settings.provider_url)
        else:
            provider = Web3.HTTPProvider(settings.provider_url)
        w3 = Web3(provider)
        if settings.default_account:
            w3.eth.default_account = normalize_address(settings.default_account)
        logger.info(f"Using ledger at {settings.provider_url}")
        return cls(w3, settings)

    def contract(self, address: Address, abi: List[Dict[str, Any]]) -> Contract:
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def contract_event(self, address: Address, abi: List[Dict[str, Any]],
                       event_name: str) -> Web3ContractEvent:
        return Web3ContractEvent(self.contract(address, abi), event_name)

    def int_vote_contract(self, address: Address) -> Web3IntVoteContract:
        """Binding usable as a ``VotingMachineServiceFactory`` contract loader"""
        return Web3IntVoteContract(
            self.contract(address, INT_VOTE_INTERFACE_ABI),
            account=self.settings.default_account,
            private_key=self.settings.private_key,
            receipt_timeout=self.settings.tx_receipt_timeout,
        )

    def event_sources(self, address: Address,
                      abi: List[Dict[str, Any]]) -> Callable[[str], Web3ContractEvent]:
        contract = self.contract(address, abi)
        return lambda event_name: Web3ContractEvent(contract, event_name)
