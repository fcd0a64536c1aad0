"""
Custom exception classes for the ledger core
"""

class LedgerError(Exception):
    """Base exception for ledger operations"""
    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        self.code = code or "LEDGER_ERROR"

class UTXONotFoundError(LedgerError):
    """Requested UTXO is not in the pool"""
    def __init__(self, key):
        super().__init__(f"UTXO {key} not found in pool", "UTXO_NOT_FOUND")
        self.key = key

class PoolInvariantError(LedgerError):
    """Pool state contradicts a check that already passed.

    Raised when an entry confirmed present disappears before it is read or
    removed. This is a programming error, never a transaction rejection.
    """
    def __init__(self, message: str):
        super().__init__(message, "POOL_INVARIANT")

class SigningError(LedgerError):
    """Signing a message failed"""
    def __init__(self, message: str = "Failed to sign message"):
        super().__init__(message, "SIGNING_ERROR")
