"""
Watcher for VerifyBitcoinDepositRequest events.

Polls the BitcoinPodManager for new event logs and hands each decoded
deposit request to a handler. There is no persisted cursor: on start the
watcher only sees events from blocks mined after it was created.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import structlog

from .signer import BitcoinDepositRequest

logger = structlog.get_logger()

DepositHandler = Callable[[str, str, BitcoinDepositRequest], Any]


@dataclass
class WatcherState:
    """Current watcher state."""

    is_running: bool = False
    last_scanned_block: Optional[int] = None
    events_seen: int = 0
    handler_failures: int = 0


class DepositRequestWatcher:
    """
    Polls VerifyBitcoinDepositRequest logs and dispatches each event.

    Events are handled one at a time, in log order within a poll.
    """

    def __init__(
        self,
        event: Any,
        handler: DepositHandler,
        block_number_fn: Callable[[], int],
        poll_interval: float = 2.0,
        start_block: Optional[int] = None,
    ):
        self.event = event
        self.handler = handler
        self.block_number_fn = block_number_fn
        self.poll_interval = poll_interval
        self.state = WatcherState()
        self.state.last_scanned_block = (
            start_block - 1 if start_block is not None else block_number_fn()
        )

    def poll_once(self) -> int:
        """
        Fetch and dispatch events mined since the last poll.

        Returns the number of events dispatched.
        """
        head = self.block_number_fn()
        from_block = self.state.last_scanned_block + 1
        if head < from_block:
            return 0

        logs = self.event.get_logs(from_block=from_block, to_block=head)
        dispatched = 0

        for log in logs:
            self.state.events_seen += 1
            try:
                pod, operator, request = self._decode(log)
            except (KeyError, TypeError, ValueError) as e:
                self.state.handler_failures += 1
                logger.error(
                    "deposit_request_decode_error",
                    block=log.get("blockNumber"),
                    tx_hash=str(log.get("transactionHash")),
                    error=repr(e),
                )
                continue

            logger.info(
                "deposit_request_detected",
                pod=pod,
                operator=operator,
                txid=request.transaction_id_hex,
                amount=request.amount,
                block=log.get("blockNumber"),
            )
            dispatched += 1

            try:
                self.handler(pod, operator, request)
            except Exception as e:
                self.state.handler_failures += 1
                logger.error(
                    "deposit_request_handler_error",
                    pod=pod,
                    txid=request.transaction_id_hex,
                    error=str(e),
                )

        self.state.last_scanned_block = head
        return dispatched

    @staticmethod
    def _decode(log: Any) -> tuple[str, str, BitcoinDepositRequest]:
        args = log["args"]
        return (
            args["pod"],
            args["operator"],
            BitcoinDepositRequest.from_event(args["bitcoinDepositRequest"]),
        )

    def run(self) -> None:
        """Poll continuously until stop() is called."""
        self.state.is_running = True
        logger.info(
            "watcher_starting",
            from_block=self.state.last_scanned_block + 1,
            poll_interval=self.poll_interval,
        )

        while self.state.is_running:
            try:
                self.poll_once()
            except Exception as e:
                logger.error("watcher_poll_error", error=str(e))

            time.sleep(self.poll_interval)

    def stop(self) -> None:
        """Stop the watcher."""
        self.state.is_running = False
        logger.info(
            "watcher_stopping",
            events_seen=self.state.events_seen,
            handler_failures=self.state.handler_failures,
        )
