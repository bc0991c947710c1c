from x86 import REG_TO_STRING, MEMSIZE_TO_STRING

# The operand expression tree. Nodes are built once by the lifter (or by hand)
# and only ever read by the unparser.

class Expression:
    pass

class BinaryExpression(Expression):
    __match_args__ = ("lhs", "rhs")
    op = None

    def __init__(self, lhs, rhs):
        self.lhs = lhs
        self.rhs = rhs

    def __repr__(self):
        return f"{self.__class__.__name__}({self.lhs!r}, {self.rhs!r})"

    def __eq__(self, other):
        return type(self) is type(other) and self.lhs == other.lhs and self.rhs == other.rhs

class Add(BinaryExpression):
    op = "+"

class Subtract(BinaryExpression):
    op = "-"

class Multiply(BinaryExpression):
    op = "*"


class DirectRegister(Expression):
    __match_args__ = ("reg",)

    def __init__(self, reg):
        self.reg = reg

    def __repr__(self):
        return f"DirectRegister({REG_TO_STRING.get(self.reg, self.reg)})"

    def __eq__(self, other):
        if isinstance(other, DirectRegister):
            return self.reg == other.reg
        if isinstance(other, str):
            return REG_TO_STRING.get(self.reg) == other
        return False

class IndirectRegister(Expression):
    # A register bank indexed at runtime, e.g. the x87 stack
    __match_args__ = ("reg", "index")

    def __init__(self, reg, index):
        assert index >= 0
        self.reg = reg
        self.index = index

    def __repr__(self):
        return f"IndirectRegister({REG_TO_STRING.get(self.reg, self.reg)}, {self.index})"


class IntegerValue(Expression):
    __match_args__ = ("bits", "value")

    def __init__(self, bits, value):
        if bits not in (8, 16, 32, 64):
            raise ValueError(f"Unsupported integer width: {bits}")
        self.bits = bits
        self.value = value & ((1 << bits) - 1)

    def __repr__(self):
        return f"IntegerValue({self.bits}, {self.value:#x})"

    def __eq__(self, other):
        if isinstance(other, IntegerValue):
            return self.bits == other.bits and self.value == other.value
        if isinstance(other, int):
            return self.value == other
        return False

    @property
    def negative(self):
        return bool(self.value >> (self.bits - 1))

    @property
    def signed_value(self):
        if self.negative:
            return self.value - (1 << self.bits)
        return self.value


class MemoryReference(Expression):
    __match_args__ = ("address", "segment", "type")

    def __init__(self, address, segment=None, type=None):
        self.address = address
        self.segment = segment
        self.type = type

    def __repr__(self):
        s = f"MemoryReference({self.address!r}"
        if self.segment is not None:
            s += f", segment={self.segment!r}"
        if self.type is not None:
            s += f", type={MEMSIZE_TO_STRING.get(self.type, self.type)}"
        return s + ")"


ARCH_X86 = "x86"

class Instruction:
    """One decoded instruction.

    `operands` holds expression trees when `arch` is ARCH_X86. Any other
    architecture is rendered through a generic formatter, which may use the
    original decoder object kept in `decoded`.
    """

    def __init__(self, address, mnemonic, operands, raw_bytes=b"", arch=ARCH_X86, decoded=None):
        self.address = address
        self.mnemonic = mnemonic
        self.operands = tuple(operands)
        self.raw_bytes = bytes(raw_bytes)
        self.arch = arch
        self.decoded = decoded

    def __repr__(self):
        ops = ", ".join(map(repr, self.operands))
        return f"Instruction({self.address:#x}, {self.mnemonic} {ops})"
