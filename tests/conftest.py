# tests/conftest.py
"""
Shared fixtures for the test suite.

Key design points
─────────────────
1.  Make project-root importable so `from ledger.transaction import …` works
    no matter where pytest is launched.
2.  Keys are Ed25519 so signing stays fast; ML-DSA-87 is covered by the
    wallet tests when liboqs is available.
3.  Let tests opt-in to an "always-true" verifier via
    `@pytest.mark.stub_verify`; every other test gets real verification.
"""

from __future__ import annotations
import pathlib
import sys
import pytest

# ─────────────────────────────────────────────────────────────────────────────
#  Ensure the repo root is on sys.path
# ─────────────────────────────────────────────────────────────────────────────
ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from ledger.transaction import Output, Transaction
from ledger.utxo_pool import UnspentOutputPool
from wallet.wallet import ED25519, generate_keypair, sign_message


# ───────────────────── conditional signature-verify stub ────────────────────
@pytest.fixture(autouse=True)
def _maybe_stub_verify(monkeypatch, request):
    """
    With ``@pytest.mark.stub_verify`` validators built inside the test accept
    any signature.
    """
    if request.node.get_closest_marker("stub_verify"):
        monkeypatch.setattr("ledger.transaction_validator.verify_signature",
                            lambda *a, **k: True, raising=True)


# ─────────────────────────────── key pairs ──────────────────────────────────
def _pub(keypair: dict) -> bytes:
    return bytes.fromhex(keypair["publicKey"])


@pytest.fixture(scope="session")
def alice() -> dict:
    return generate_keypair(ED25519)


@pytest.fixture(scope="session")
def bob() -> dict:
    return generate_keypair(ED25519)


@pytest.fixture(scope="session")
def carol() -> dict:
    return generate_keypair(ED25519)


# ──────────────────────────── transaction helpers ───────────────────────────
def sign_inputs(tx: Transaction, *owners: dict) -> Transaction:
    """Sign input i with owners[i]."""
    for index, owner in enumerate(owners):
        message = tx.get_raw_data_to_sign(index)
        tx.add_signature(sign_message(message, owner["privateKey"], owner["scheme"]), index)
    return tx


@pytest.fixture
def make_tx():
    """
    Build and sign a transaction.

    ``spends`` is a list of (prev_tx_hash, index, owner) and ``pays`` a list
    of (value, recipient keypair).
    """
    def _make(spends, pays) -> Transaction:
        tx = Transaction()
        for prev_hash, index, _owner in spends:
            tx.add_input(prev_hash, index)
        for value, recipient in pays:
            tx.add_output(value, _pub(recipient))
        return sign_inputs(tx, *[owner for _h, _i, owner in spends])
    return _make


# ─────────────────────────── genesis and its pool ───────────────────────────
@pytest.fixture
def genesis(alice, bob) -> Transaction:
    """Output 0: 10 to alice, output 1: 4 to alice, output 2: 5 to bob."""
    return Transaction(outputs=[
        Output(value=10, recipient=_pub(alice)),
        Output(value=4, recipient=_pub(alice)),
        Output(value=5, recipient=_pub(bob)),
    ])


@pytest.fixture
def genesis_pool(genesis) -> UnspentOutputPool:
    pool = UnspentOutputPool()
    for key, output in zip(genesis.output_keys(), genesis.outputs):
        pool.add_utxo(key, output)
    return pool
