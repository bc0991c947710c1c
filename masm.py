"""
MASM style text for operand expression trees.

Only reads the trees built by the lifter; nothing here keeps state between
calls, labels are passed in by the caller.
"""

from ir import (
    Add, Subtract, Multiply, MemoryReference, DirectRegister,
    IndirectRegister, IntegerValue,
)
from labels import EMPTY
from x86 import reg_name as x86_reg_name, ptr_name

# MASM works out the operand size itself, we only need "dword ptr" and friends
# when it would be ambiguous. We don't try to work out when that is.
AMBIGUOUS_MEMORY_SIZE = False

# Segment overrides that are always printed. Others are dropped.
SHOWN_SEGMENTS = ("fs",)

NULL_OPERAND = "BOGUS:NULL"


class UnsupportedExpressionKind(ValueError):
    def __init__(self, expr):
        super().__init__(f"Unhandled expression kind {expr.__class__.__name__}")
        self.expr = expr


class AddressingMatch:
    """ [base + index*scale + displacement] """
    __match_args__ = ("base", "index", "scale", "displacement")

    def __init__(self, base, index, scale, displacement):
        self.base = base
        self.index = index
        self.scale = scale
        self.displacement = displacement

    def __repr__(self):
        return f"AddressingMatch({self.base!r}, {self.index!r}, {self.scale}, {self.displacement!r})"

    def emit(self, reg_name=x86_reg_name):
        s = f"[{reg_name(self.base.reg)}+{reg_name(self.index.reg)}"
        if self.scale != 1:
            s += f"*{self.scale:x}"
        disp = self.displacement.signed_value
        s += "-" if disp < 0 else "+"
        s += f"0x{abs(disp):x}]"
        return s


def _flatten(expr):
    # The builder gives us either (A+B)+C or A+(B+C)
    match expr:
        case Add(Add(a, b), c):
            return a, b, c
        case Add(a, Add(b, c)):
            return a, b, c
    return None

def _scaled_index(expr):
    match expr:
        case Multiply(DirectRegister() as reg, IntegerValue() as scale):
            return reg, scale
        case Multiply(IntegerValue() as scale, DirectRegister() as reg):
            return reg, scale
    return None

def match_indexed_address(address):
    """ Recognise [base + index*scale + disp] in an address expression.

    Returns an AddressingMatch, or None when the tree isn't exactly one base
    register, one register*literal and one literal.
    """
    operands = _flatten(address)
    if operands is None:
        return None

    base = index = disp = None
    for op in operands:
        match op:
            case DirectRegister():
                if base is not None:
                    return None
                base = op
            case IntegerValue():
                if disp is not None:
                    return None
                disp = op
            case Multiply():
                scaled = _scaled_index(op)
                if scaled is None or index is not None:
                    return None
                index = scaled
            case _:
                return None

    if base is None or index is None or disp is None:
        return None

    index_reg, scale = index
    return AddressingMatch(base, index_reg, scale.value, disp)


def format_integer(bits, value, labels=EMPTY):
    """ Hex literal for an integer of the given width, or its label.

    Values with the sign bit set print as negative, except when the sign bit is
    the only bit set: 0x80 stays 0x80 but 0x81 is -0x7f. Only 32 and 64 bit
    values are looked up as labels.
    """
    if bits not in (8, 16, 32, 64):
        raise ValueError(f"Unsupported integer width: {bits}")

    mask = (1 << bits) - 1
    sign = 1 << (bits - 1)
    v = value & mask

    if bits >= 32 and labels is not None:
        if label := labels.lookup(v):
            return label

    if v & sign and v & (sign - 1):
        return f"-{(~v + 1) & mask:#x}"
    return f"{v:#x}"


def unparse_expression(expr, labels=EMPTY, lea_mode=False, reg_name=x86_reg_name):
    if expr is None:
        return NULL_OPERAND

    def unparse(e, labels=labels):
        return unparse_expression(e, labels, False, reg_name)

    match expr:
        case Add(lhs, rhs):
            l, r = unparse(lhs), unparse(rhs)
            if r.startswith("-"):
                return l + r
            return f"{l}+{r}"

        case Subtract(lhs, rhs):
            return f"{unparse(lhs)}-{unparse(rhs)}"

        case Multiply(lhs, rhs):
            return f"{unparse(lhs)}*{unparse(rhs)}"

        case MemoryReference(address, segment, ty):
            if indexed := match_indexed_address(address):
                return indexed.emit(reg_name)

            s = ""
            if not lea_mode:
                if AMBIGUOUS_MEMORY_SIZE:
                    s += f"{ptr_name(ty)} ptr "
                if segment is not None:
                    segreg = unparse(segment, None)
                    if segreg in SHOWN_SEGMENTS:
                        s += f"{segreg}:"
            return f"{s}[{unparse(address)}]"

        case DirectRegister(reg):
            return reg_name(reg)

        case IndirectRegister(_, index):
            # TODO: name the register bank (st(1) rather than (1)) once
            # reg_name knows about indexed registers
            return f"({index})"

        case IntegerValue(bits, value):
            return format_integer(bits, value, labels)

        case _:
            raise UnsupportedExpressionKind(expr)


def unparse_operand(expr, inst=None, labels=EMPTY, reg_name=x86_reg_name):
    """ Operand text in the context of the instruction it belongs to """
    lea_mode = inst is not None and inst.mnemonic == "lea"
    return unparse_expression(expr, labels, lea_mode, reg_name)
