import logging
from typing import Dict, Iterator, List, Mapping, NamedTuple, Optional, Union, TYPE_CHECKING

from errors.exceptions import UTXONotFoundError

if TYPE_CHECKING:
    from ledger.transaction import Output

logger = logging.getLogger(__name__)


class UTXOKey(NamedTuple):
    """Handle for an unspent output: producing transaction hash + output position."""
    tx_hash: bytes
    index: int

    def __str__(self):
        return f"{self.tx_hash.hex()}:{self.index}"


class UnspentOutputPool:
    """
    Set of unspent outputs keyed by UTXOKey.

    A pool is plain data: it never validates what is put into it. Every
    constructor copies its source, so two pools never share a mapping.
    """

    def __init__(self, source: Union["UnspentOutputPool", Mapping[UTXOKey, "Output"], None] = None):
        if isinstance(source, UnspentOutputPool):
            source = source._utxos
        self._utxos: Dict[UTXOKey, "Output"] = dict(source or {})

    def contains(self, key: UTXOKey) -> bool:
        return key in self._utxos

    def get(self, key: UTXOKey) -> "Output":
        try:
            return self._utxos[key]
        except KeyError:
            raise UTXONotFoundError(key) from None

    def get_tx_output(self, key: UTXOKey) -> Optional["Output"]:
        return self._utxos.get(key)

    def add_utxo(self, key: UTXOKey, output: "Output"):
        # Keys derive from unique transaction hashes; a repeat replaces the entry
        if key in self._utxos:
            logger.debug(f"Overwriting UTXO {key}")
        self._utxos[key] = output

    def remove_utxo(self, key: UTXOKey):
        try:
            del self._utxos[key]
        except KeyError:
            raise UTXONotFoundError(key) from None

    def copy(self) -> "UnspentOutputPool":
        return UnspentOutputPool(self)

    def all_utxos(self) -> List[UTXOKey]:
        return list(self._utxos)

    def __contains__(self, key) -> bool:
        return self.contains(key)

    def __len__(self) -> int:
        return len(self._utxos)

    def __iter__(self) -> Iterator[UTXOKey]:
        return iter(list(self._utxos))

    def __eq__(self, other) -> bool:
        if not isinstance(other, UnspentOutputPool):
            return NotImplemented
        return self._utxos == other._utxos

    __hash__ = None

    def __repr__(self):
        return f"UnspentOutputPool({len(self._utxos)} utxos)"
