import pytest
from iced_x86 import Register

from function import BasicBlock, BlockReason, Function
from ir import Add, Multiply, MemoryReference, DirectRegister, IntegerValue, Instruction
from labels import LabelMap
from listing import render_instruction, render_function
from masm import UnsupportedExpressionKind
from utils import opcode_bytes

EAX = DirectRegister(Register.EAX)
ECX = DirectRegister(Register.ECX)
EDX = DirectRegister(Register.EDX)


def mov_indexed(grouping=0):
    scaled = Multiply(ECX, IntegerValue(8, 4))
    disp = IntegerValue(32, -8)
    if grouping:
        address = Add(EAX, Add(scaled, disp))
    else:
        address = Add(Add(EAX, disp), scaled)
    return Instruction(0x401000, "mov", [MemoryReference(address), EDX], b"\x89\x54\x88\xf8")


def test_render_instruction():
    assert render_instruction(mov_indexed()) == "401000: mov       [eax+ecx*4-0x8], edx"
    assert render_instruction(mov_indexed(1)) == "401000: mov       [eax+ecx*4-0x8], edx"


def test_render_instruction_bytes():
    inst = mov_indexed()
    assert render_instruction(inst, 8) == "401000: mov       [eax+ecx*4-0x8], edx ; BYTES: 895488F8"
    assert render_instruction(inst, 4) == "401000: mov       [eax+ecx*4-0x8], edx ; BYTES: 895488F8"
    assert render_instruction(inst, 3) == "401000: mov       [eax+ecx*4-0x8], edx ; BYTES: 895488+"


@pytest.mark.parametrize("n", range(0, 6))
@pytest.mark.parametrize("m", range(1, 6))
def test_opcode_bytes_truncation(n, m):
    dump = opcode_bytes(bytes(range(0xa0, 0xa0 + n)), m)
    digits = dump.rstrip("+")
    assert len(digits) == min(n, m) * 2
    assert digits == digits.upper()
    assert dump.endswith("+") == (n > m)


def test_render_no_operands():
    ret = Instruction(0x401005, "ret", [], b"\xc3")
    assert render_instruction(ret) == "401005: ret"
    assert render_instruction(ret, 8) == "401005: ret ; BYTES: C3"


def test_render_long_mnemonic():
    inst = Instruction(0x10, "cvttsd2si", [EAX, EDX])
    assert render_instruction(inst) == "10: cvttsd2si eax, edx"


def test_render_labels():
    call = Instruction(0x401000, "call", [IntegerValue(32, 0x401234)])
    assert render_instruction(call, labels=LabelMap({0x401234: "helper"})) == "401000: call      helper"
    assert render_instruction(call) == "401000: call      0x401234"


def test_render_null():
    assert render_instruction(None) == "NULL!"


def test_render_generic_fallback():
    def fallback(inst, labels):
        return ["r0", "[r1, #4]"]

    inst = Instruction(0x8000, "ldr", [], b"\x04\x00\x91\xe5", arch="arm")
    assert render_instruction(inst, 2, fallback=fallback) == "8000: ldr       r0, [r1, #4] ; BYTES: 0400+"


def test_render_unsupported_is_fatal():
    inst = Instruction(0x10, "mov", [EAX, object()])
    with pytest.raises(UnsupportedExpressionKind):
        render_instruction(inst)


def test_render_function():
    code = BasicBlock(0x401000, 0x401004, [mov_indexed()], BlockReason.ENTRY)
    data = BasicBlock(0x401004, 0x401006, [], BlockReason.DATA | BlockReason.AFTER_TERMINATOR, static_data=True)
    fn = Function("f", 0x401000, [code, data])

    assert render_function(fn) == "401000: mov       [eax+ecx*4-0x8], edx\n; block is static data\n"

    assert render_function(fn, max_bytes=2, block_lines=True, show_reasons=True) == (
        "; block reason: entry\n"
        "401000: mov       [eax+ecx*4-0x8], edx ; BYTES: 8954+\n"
        "\n"
        "; block reason: after terminator, data\n"
        "; block is static data\n"
        "\n"
    )


def test_render_function_rejects_non_instructions():
    bb = BasicBlock(0x1000, 0x1001, ["nop"], BlockReason.ENTRY)
    with pytest.raises(AssertionError):
        render_function(Function("f", 0x1000, [bb]))
