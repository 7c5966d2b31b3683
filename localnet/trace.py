"""
trace.py - VM Trace Parsing

The oracle reports traces either as structured step records or as raw,
line-oriented text. Raw text is a sequence of blocks, each opened by a
``stack: [...]`` marker and carrying an ``execute <mnemonic>`` line and a
``code cell hash: <hex>:<offset>:<bits>`` marker. Gas counters cannot be
recovered from the text and are reported as zero.
"""

from __future__ import annotations
from typing import Any, Iterable, Mapping
import re

from .core import Trace, TraceStep


_BLOCK_START = re.compile(r"(?=stack: \[)")
_STACK = re.compile(r"stack:\s*\[(.*?)\]", re.DOTALL)
_CODE_CELL = re.compile(r"code cell hash:\s*([a-f0-9]+):(\d+):\d+", re.IGNORECASE)
_EXECUTE = re.compile(r"execute\s+(.*)", re.IGNORECASE)


def parse_trace(text: str) -> Trace:
    """
    Parse raw trace text into steps.

    Args:
        text: Raw trace text as printed by the VM

    Returns:
        Tuple of TraceStep, numbered from 1. Empty for blank input.
    """
    if not text or not text.strip():
        return ()
    blocks = [b for b in _BLOCK_START.split(text.strip()) if b.strip()]
    return tuple(_parse_block(idx + 1, block) for idx, block in enumerate(blocks))


def _parse_block(step: int, block: str) -> TraceStep:
    stack_match = _STACK.search(block)
    stack = tuple(stack_match.group(1).split()) if stack_match else ()

    code_match = _CODE_CELL.search(block)
    cell_hash = code_match.group(1) if code_match else ""
    offset = code_match.group(2) if code_match else ""

    exec_match = _EXECUTE.search(block)
    cmd_str = exec_match.group(1).strip() if exec_match else ""

    return TraceStep(
        step=step,
        cmd_str=cmd_str,
        stack=stack,
        cmd_code_cell_hash=cell_hash,
        cmd_code_offset=offset,
    )


def coerce_trace(raw: Any) -> Trace:
    """
    Normalise whatever the oracle returned as a trace.

    Accepts None, raw text, TraceStep instances or mappings with TraceStep
    field names.
    """
    if raw is None:
        return ()
    if isinstance(raw, str):
        return parse_trace(raw)
    return tuple(_coerce_step(idx + 1, item) for idx, item in enumerate(_as_iterable(raw)))


def _as_iterable(raw: Any) -> Iterable[Any]:
    if isinstance(raw, (list, tuple)):
        return raw
    raise TypeError(f"Unsupported trace type: {type(raw).__name__}")


def _coerce_step(default_step: int, item: Any) -> TraceStep:
    if isinstance(item, TraceStep):
        return item
    if not isinstance(item, Mapping):
        raise TypeError(f"Unsupported trace step type: {type(item).__name__}")
    return TraceStep(
        step=int(item.get("step", default_step)),
        cmd_str=str(item.get("cmd_str", "")),
        stack=tuple(str(v) for v in item.get("stack", ())),
        cmd_code_cell_hash=str(item.get("cmd_code_cell_hash", "")),
        cmd_code_offset=str(item.get("cmd_code_offset", "")),
        gas_cmd=str(item.get("gas_cmd", "0")),
        gas_used=str(item.get("gas_used", "0")),
        cmd_code_hex=str(item.get("cmd_code_hex", "")),
        cmd_code_rem_bits=str(item.get("cmd_code_rem_bits", "")),
        info_type=str(item.get("info_type", "Normal")),
    )
