"""
Builds operand expression trees from iced-x86 instructions.

Memory operands are associated the way older disassemblers built them,
[base + disp] + index*scale, so the listing code has to cope with a
grouping other than its own output order.
"""

from iced_x86 import Code, OpKind, Register

from ir import (
    Add, Multiply, DirectRegister, IndirectRegister, IntegerValue, MemoryReference,
    Instruction, ARCH_X86,
)
from x86 import formatter, is_st, address_bits, IMMEDIATE_BITS

# Instructions with operands we can't express as a tree go through the formatter
ARCH_ICED = "iced"

NEAR_BRANCHES = (OpKind.NEAR_BRANCH16, OpKind.NEAR_BRANCH32, OpKind.NEAR_BRANCH64)


class UnliftableOperand(ValueError):
    pass


def lift_register(reg):
    if is_st(reg):
        return IndirectRegister(Register.ST0, reg - Register.ST0)
    return DirectRegister(reg)

def lift_memory(inst, bitness):
    base = inst.memory_base
    index = inst.memory_index
    disp = inst.memory_displacement

    # iced hands back the displacement at the address size, which a 67h prefix changes
    disp_bits = address_bits(base) or address_bits(index) or bitness
    if base in (Register.RIP, Register.EIP):
        # iced has already folded the next ip into the displacement
        disp_bits = 64 if base == Register.RIP else 32
        base = Register.NONE

    has_disp = inst.memory_displ_size != 0 or index != Register.NONE or base == Register.NONE

    expr = None
    if base != Register.NONE:
        expr = DirectRegister(base)
    if has_disp:
        d = IntegerValue(disp_bits, disp)
        expr = Add(expr, d) if expr is not None else d
    if index != Register.NONE:
        scaled = Multiply(DirectRegister(index), IntegerValue(8, inst.memory_index_scale))
        expr = Add(expr, scaled) if expr is not None else scaled

    segment = None
    if inst.segment_prefix != Register.NONE:
        segment = DirectRegister(inst.segment_prefix)

    return MemoryReference(expr, segment, inst.memory_size)

def lift_operand(inst, op, bitness):
    kind = inst.op_kind(op)
    match kind:
        case OpKind.REGISTER:
            return lift_register(inst.op_register(op))
        case OpKind.MEMORY:
            return lift_memory(inst, bitness)
        case _ if kind in NEAR_BRANCHES:
            return IntegerValue(bitness, inst.near_branch_target)
        case _ if kind in IMMEDIATE_BITS:
            return IntegerValue(IMMEDIATE_BITS[kind], inst.immediate(op))
        case _:
            raise UnliftableOperand(f"Can't lift operand kind {kind} of {inst}")


def lift(inst, data=b"", bitness=32):
    """ Convert an iced-x86 instruction to an ir.Instruction

        data: raw bytes of the instruction
    """
    mnemonic = formatter.format_mnemonic(inst)
    if inst.code == Code.INVALID:
        return Instruction(inst.ip, "(bad)", [], data, ARCH_ICED, inst)

    try:
        operands = [lift_operand(inst, op, bitness) for op in range(inst.op_count)]
    except UnliftableOperand:
        return Instruction(inst.ip, mnemonic, [], data, ARCH_ICED, inst)

    return Instruction(inst.ip, mnemonic, operands, data, ARCH_X86, inst)
