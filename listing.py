from ir import Instruction, ARCH_X86
from labels import EMPTY
from masm import unparse_operand
from utils import opcode_bytes
import x86

MNEMONIC_WIDTH = 9
DEFAULT_MAX_BYTES = 8


def generic_operands(inst, labels):
    return [x86.format_operand(inst, i) for i in range(x86.operand_count(inst))]

def render_instruction(inst, max_bytes=0, labels=EMPTY, fallback=generic_operands):
    """ One listing line: "<address>: <mnemonic> <operands> ; BYTES: <hex>"

        max_bytes: how many bytes to dump, 0 disables the byte dump
        fallback: called as fallback(inst, labels) for instructions that don't
                  have x86 expression trees, returns the list of operand strings
    """
    if inst is None:
        return "NULL!"

    if inst.arch == ARCH_X86:
        ops = [unparse_operand(op, inst, labels) for op in inst.operands]
    else:
        ops = fallback(inst, labels)

    s = f"{inst.address:X}: {inst.mnemonic:<{MNEMONIC_WIDTH}} {', '.join(ops)}".rstrip()

    if max_bytes > 0:
        s += f" ; BYTES: {opcode_bytes(inst.raw_bytes, max_bytes)}"
    return s


def render_block(bb, max_bytes=0, block_lines=False, show_reasons=False, labels=EMPTY):
    s = ""
    if show_reasons:
        s += f"; block reason: {bb.reason_string()}\n"
    if bb.static_data:
        s += "; block is static data\n"

    for stmt in bb.statements:
        assert isinstance(stmt, Instruction), f"{bb} contains non-instruction {stmt!r}"
        s += render_instruction(stmt, max_bytes, labels) + "\n"

    if block_lines:
        s += "\n"
    return s

def render_function(fn, max_bytes=0, block_lines=False, show_reasons=False, labels=EMPTY):
    """ Listing of every basic block of fn, in flow order """
    return "".join(render_block(bb, max_bytes, block_lines, show_reasons, labels)
                   for bb in fn.blocks_in_flow_order())
