import sys

from iced_x86 import Decoder, Formatter, FormatterSyntax, OpKind, Register, MemorySize

def create_enum_dict(module):
    return {module.__dict__[key]:key.lower() for key in module.__dict__ if isinstance(module.__dict__[key], int)}

MEMSIZE_TO_STRING = create_enum_dict(MemorySize)
REG_TO_STRING = create_enum_dict(Register)


formatter = Formatter(FormatterSyntax.MASM)
formatter.hex_prefix = "0x"
formatter.hex_suffix = ""
formatter.space_after_operand_separator = True


def reg_name(reg):
    try:
        return REG_TO_STRING[reg]
    except KeyError:
        raise ValueError(f"Unknown register: {reg}") from None


PTR_NAMES = {
    MemorySize.UINT8: "byte",
    MemorySize.INT8: "byte",
    MemorySize.UINT16: "word",
    MemorySize.INT16: "word",
    MemorySize.UINT32: "dword",
    MemorySize.INT32: "dword",
    MemorySize.UINT64: "qword",
    MemorySize.INT64: "qword",
    MemorySize.FLOAT32: "float",
    MemorySize.FLOAT64: "double",
    MemorySize.FLOAT80: "ldouble",
    MemorySize.UINT128: "dqword",
    MemorySize.PACKED128_UINT64: "dqword",
    MemorySize.PACKED64_UINT16: "V4word",
    MemorySize.PACKED128_UINT32: "V4dword",
    MemorySize.PACKED128_FLOAT32: "V4float",
    MemorySize.PACKED128_FLOAT64: "V2double",
}

BAD_TYPE = "BAD_TYPE"

def ptr_name(memory_size):
    """ Name used in front of "ptr" when a memory operand needs an explicit size """
    if memory_size is None:
        print("ptr_name: null type", file=sys.stderr)
        return BAD_TYPE

    try:
        return PTR_NAMES[memory_size]
    except KeyError:
        name = MEMSIZE_TO_STRING.get(memory_size, memory_size)
        print(f"ptr_name: unhandled type {name}", file=sys.stderr)
        return BAD_TYPE


def format_operand(inst, i):
    """ Generic operand text, straight from iced's MASM formatter """
    if inst.decoded is None:
        return repr(inst.operands[i])
    return formatter.format_operand(inst.decoded, i)

def operand_count(inst):
    if inst.decoded is None:
        return len(inst.operands)
    return formatter.operand_count(inst.decoded)


def is_st(reg):
    return Register.ST0 <= reg <= Register.ST7

def address_bits(reg):
    """ Width of a general purpose register used in an address, None for anything else """
    if Register.AX <= reg <= Register.R15W:
        return 16
    if Register.EAX <= reg <= Register.R15D:
        return 32
    if Register.RAX <= reg <= Register.R15:
        return 64
    return None

IMMEDIATE_BITS = {
    OpKind.IMMEDIATE8: 8,
    OpKind.IMMEDIATE8_2ND: 8,
    OpKind.IMMEDIATE16: 16,
    OpKind.IMMEDIATE32: 32,
    OpKind.IMMEDIATE64: 64,
    OpKind.IMMEDIATE8TO16: 16,
    OpKind.IMMEDIATE8TO32: 32,
    OpKind.IMMEDIATE8TO64: 64,
    OpKind.IMMEDIATE32TO64: 64,
}


def disassemble(data, addr=0, bitness=32):
    decoder = Decoder(bitness, data, ip=addr)
    instrs = []
    for instr in decoder:
        instrs.append(instr)
    return instrs
