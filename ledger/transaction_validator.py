"""
Transaction validation module for the ledger core
Checks transactions against the unspent output pool and commits batches
"""

import logging
import threading
from typing import Callable, Iterable, List, Optional, Tuple

from errors.exceptions import PoolInvariantError, UTXONotFoundError
from ledger.transaction import Output, Transaction
from ledger.utxo_pool import UnspentOutputPool, UTXOKey
from log_utils.structured_logger import get_logger, log_performance
from wallet.wallet import verify_signature

logger = logging.getLogger(__name__)
perf_logger = get_logger(__name__)

VerifyFn = Callable[[bytes, bytes, bytes], bool]


class TransactionValidator:
    """Validates transactions against the unspent output pool it owns"""

    def __init__(self, utxo_pool: UnspentOutputPool, verify: Optional[VerifyFn] = None):
        self._pool = UnspentOutputPool(utxo_pool)
        self._verify = verify or verify_signature
        # One caller at a time; the pool itself is not synchronized
        self._lock = threading.RLock()

    @property
    def utxo_pool(self) -> UnspentOutputPool:
        """Snapshot of the current pool."""
        with self._lock:
            return self._pool.copy()

    def is_valid(self, tx: Transaction) -> bool:
        """
        True if every claimed output is unspent, every input is correctly
        signed by the owner of the output it claims, no output is claimed
        twice, no output value is negative and the inputs cover the outputs.
        Never mutates the pool.
        """
        with self._lock:
            error = self._check_transaction(tx)

        if error is not None:
            if logger.isEnabledFor(logging.DEBUG):
                tx_id = tx.tx_hash.hex()
                logger.debug(f"Rejected transaction {tx_id}: {error}", extra={"tx_id": tx_id})
            return False
        return True

    def _check_transaction(self, tx: Transaction) -> Optional[str]:
        """Return the first rule ``tx`` breaks, or None if it is valid."""
        keys = tx.utxo_keys()

        for key in keys:
            if not self._pool.contains(key):
                return f"claims UTXO {key} which is not in the pool"

        for index, inp in enumerate(tx.inputs):
            claimed = self._claimed_output(keys[index])
            message = tx.get_raw_data_to_sign(index)
            if not self._signature_ok(claimed.recipient, message, inp.signature):
                return f"signature on input {index} does not verify"

        if len(set(keys)) != len(keys):
            return "claims the same UTXO more than once"

        for index, out in enumerate(tx.outputs):
            if out.value < 0:
                return f"output {index} has negative value {out.value}"

        total_in = sum(self._claimed_output(key).value for key in keys)
        total_out = sum(out.value for out in tx.outputs)
        if total_in < total_out:
            return f"outputs total {total_out} exceeds inputs total {total_in}"

        return None

    def _claimed_output(self, key: UTXOKey) -> Output:
        try:
            return self._pool.get(key)
        except UTXONotFoundError as e:
            raise PoolInvariantError(f"UTXO {key} vanished after its presence was checked") from e

    def _signature_ok(self, public_key: bytes, message: bytes, signature: bytes) -> bool:
        try:
            return bool(self._verify(public_key, message, signature))
        except Exception as e:
            logger.warning(f"Signature verifier raised {type(e).__name__}: {e}")
            return False

    @log_performance(perf_logger, "process_batch")
    def process_batch(self, transactions: Iterable[Transaction]) -> List[Transaction]:
        """
        Accept a mutually consistent subset of ``transactions`` and update
        the pool.

        Transactions are checked once each, in the given order, against the
        pool as left by the ones accepted before them. A transaction may
        spend an output created earlier in the same batch; one that spends an
        output created later is rejected. When two transactions claim the
        same UTXO the first one wins. Rejected transactions are dropped.

        Returns the accepted transactions in their original relative order.
        """
        transactions = list(transactions)
        accepted: List[Transaction] = []

        with self._lock:
            for tx in transactions:
                if self.is_valid(tx):
                    self._apply(tx)
                    accepted.append(tx)

        logger.info(
            f"Accepted {len(accepted)} of {len(transactions)} transactions",
            extra={"batch_size": len(transactions), "accepted": len(accepted)}
        )
        return accepted

    handle_txs = process_batch

    def _apply(self, tx: Transaction):
        """Spend the inputs of a validated transaction and add its outputs."""
        tx_hash = tx.tx_hash
        for key in tx.utxo_keys():
            try:
                self._pool.remove_utxo(key)
            except UTXONotFoundError as e:
                raise PoolInvariantError(f"UTXO {key} vanished between validation and spending") from e

        for index, output in enumerate(tx.outputs):
            self._pool.add_utxo(UTXOKey(tx_hash, index), output)

    def simulate_batch(self, transactions: Iterable[Transaction]) -> Tuple[List[Transaction], UnspentOutputPool]:
        """Run process_batch on a copy of the pool, leaving this validator untouched."""
        with self._lock:
            trial = TransactionValidator(self._pool, self._verify)
        accepted = trial.process_batch(transactions)
        return accepted, trial._pool
