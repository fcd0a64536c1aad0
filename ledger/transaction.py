"""
Transaction data model: outputs, inputs and the transaction that orders them.

Inputs and outputs are immutable pydantic models. A Transaction is a mutable
builder; its identity (``tx_hash``) is always derived from its current
content.
"""

import struct
from typing import List, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ledger.utils import sha256d
from ledger.utxo_pool import UTXOKey
from wallet.wallet import derive_address

_INT64_MIN = -2 ** 63
_INT64_MAX = 2 ** 63 - 1


def _hex_to_bytes(v):
    if isinstance(v, str):
        try:
            return bytes.fromhex(v)
        except ValueError:
            raise ValueError('Must be a hex encoded string or bytes')
    return v

def _pack_bytes(b: bytes) -> bytes:
    return struct.pack(">I", len(b)) + b


class Output(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: int = Field(..., ge=_INT64_MIN, le=_INT64_MAX,
                       description="Amount in base units; may be negative, which makes the transaction invalid")
    recipient: bytes = Field(..., description="Public key allowed to spend this output")

    @field_validator('recipient', mode='before')
    @classmethod
    def validate_recipient(cls, v):
        return _hex_to_bytes(v)

    @property
    def address(self) -> str:
        return derive_address(self.recipient)

    def serialize(self) -> bytes:
        return struct.pack(">q", self.value) + _pack_bytes(self.recipient)


class Input(BaseModel):
    model_config = ConfigDict(frozen=True)

    prev_tx_hash: bytes = Field(..., description="Hash of the transaction that produced the claimed output")
    output_index: int = Field(..., ge=0, le=0xFFFFFFFF, description="Position of the claimed output")
    signature: bytes = Field(b"", description="Signature over the input's signed message bytes")

    @field_validator('prev_tx_hash', 'signature', mode='before')
    @classmethod
    def validate_hex(cls, v):
        return _hex_to_bytes(v)

    @property
    def utxo_key(self) -> UTXOKey:
        return UTXOKey(self.prev_tx_hash, self.output_index)

    def with_signature(self, signature: bytes) -> "Input":
        return Input(prev_tx_hash=self.prev_tx_hash,
                     output_index=self.output_index,
                     signature=signature)

    def serialize_outpoint(self) -> bytes:
        return _pack_bytes(self.prev_tx_hash) + struct.pack(">I", self.output_index)


class Transaction:
    def __init__(self, inputs: List[Input] = None, outputs: List[Output] = None):
        self.inputs: List[Input] = list(inputs or [])
        self.outputs: List[Output] = list(outputs or [])

    def add_input(self, prev_tx_hash: bytes, output_index: int) -> Input:
        inp = Input(prev_tx_hash=prev_tx_hash, output_index=output_index)
        self.inputs.append(inp)
        return inp

    def remove_input(self, which: Union[int, UTXOKey]):
        """Remove an input by position or by the UTXO it claims."""
        if isinstance(which, UTXOKey):
            for i, inp in enumerate(self.inputs):
                if inp.utxo_key == which:
                    del self.inputs[i]
                    return
            raise ValueError(f"No input claims {which}")
        del self.inputs[which]

    def add_output(self, value: int, recipient: bytes) -> Output:
        out = Output(value=value, recipient=recipient)
        self.outputs.append(out)
        return out

    def add_signature(self, signature: bytes, index: int):
        self._check_input_index(index)
        self.inputs[index] = self.inputs[index].with_signature(signature)

    def get_input(self, index: int) -> Input:
        self._check_input_index(index)
        return self.inputs[index]

    def get_output(self, index: int) -> Output:
        if not 0 <= index < len(self.outputs):
            raise IndexError(f"Output index {index} out of range")
        return self.outputs[index]

    def num_inputs(self) -> int:
        return len(self.inputs)

    def num_outputs(self) -> int:
        return len(self.outputs)

    def _check_input_index(self, index: int):
        if not 0 <= index < len(self.inputs):
            raise IndexError(f"Input index {index} out of range")

    def get_raw_data_to_sign(self, index: int) -> bytes:
        """
        Bytes the owner of the output claimed by input ``index`` must sign.

        Covers the claimed outpoint and every output. No signature is part of
        the message, so attaching or altering signatures never changes what
        was signed.
        """
        self._check_input_index(index)
        data = self.inputs[index].serialize_outpoint()
        for out in self.outputs:
            data += out.serialize()
        return data

    def get_raw_tx(self) -> bytes:
        data = struct.pack(">I", len(self.inputs))
        for inp in self.inputs:
            data += inp.serialize_outpoint() + _pack_bytes(inp.signature)
        data += struct.pack(">I", len(self.outputs))
        for out in self.outputs:
            data += out.serialize()
        return data

    @property
    def tx_hash(self) -> bytes:
        return sha256d(self.get_raw_tx())

    def utxo_keys(self) -> List[UTXOKey]:
        """Keys claimed by the inputs, in input order."""
        return [inp.utxo_key for inp in self.inputs]

    def output_keys(self) -> List[UTXOKey]:
        tx_hash = self.tx_hash
        return [UTXOKey(tx_hash, i) for i in range(len(self.outputs))]

    def __repr__(self):
        return (f"Transaction({self.tx_hash.hex()[:16]}, "
                f"inputs={len(self.inputs)}, outputs={len(self.outputs)})")
