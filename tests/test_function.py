from function import build_function, BlockReason
from labels import LabelMap
from listing import render_function

#   1000: test eax, eax
#   1002: je   1007
#   1004: inc  eax
#   1005: jmp  1008
#   1007: dec  eax
#   1008: ret
CODE = bytes.fromhex("85c0740340eb0148c3")


def test_blocks():
    fn = build_function("f", CODE, 0x1000)

    assert sorted(fn.blocks) == [0x1000, 0x1004, 0x1007, 0x1008]
    assert fn.blocks[0x1000].reason == BlockReason.ENTRY
    assert fn.blocks[0x1004].reason == BlockReason.FALLTHROUGH
    assert fn.blocks[0x1007].reason == BlockReason.JUMP_TARGET | BlockReason.AFTER_TERMINATOR
    assert fn.blocks[0x1008].reason == BlockReason.JUMP_TARGET
    assert [i.mnemonic for i in fn.blocks[0x1000].statements] == ["test", "je"]
    assert [i.mnemonic for i in fn.blocks[0x1004].statements] == ["inc", "jmp"]


def test_block_at():
    fn = build_function("f", CODE, 0x1000)
    assert fn.block_at(0x1003).start == 0x1000
    assert fn.block_at(0x1005).start == 0x1004
    assert fn.block_at(0x1008).start == 0x1008
    assert fn.block_at(0x1009) is None
    assert fn.block_at(0xfff) is None


def test_successors():
    fn = build_function("f", CODE, 0x1000)
    succ = {start: [s.start for s in bb.successors] for start, bb in fn.blocks.items()}
    assert succ == {
        0x1000: [0x1004, 0x1007],
        0x1004: [0x1008],
        0x1007: [0x1008],
        0x1008: [],
    }


def test_flow_order():
    fn = build_function("f", CODE, 0x1000)
    assert [bb.start for bb in fn.blocks_in_flow_order()] == [0x1000, 0x1004, 0x1008, 0x1007]


def test_unreached_blocks_in_address_order():
    # ret followed by nops that nothing jumps to
    fn = build_function("f", bytes.fromhex("c39090"), 0x2000)
    assert [bb.start for bb in fn.blocks_in_flow_order()] == [0x2000, 0x2001]
    assert fn.blocks[0x2001].reason == BlockReason.AFTER_TERMINATOR


def test_static_data():
    fn = build_function("f", bytes.fromhex("c3ffff"), 0x3000)
    data = fn.blocks[0x3001]
    assert data.static_data
    assert data.statements == []
    assert BlockReason.DATA in data.reason

    listing = render_function(fn, show_reasons=True)
    assert "; block is static data\n" in listing
    assert listing.startswith("; block reason: entry\n3000: ret\n")


def test_render():
    fn = build_function("f", CODE, 0x1000)
    labels = LabelMap({0x1007: "skip", 0x1008: "done"})
    assert render_function(fn, max_bytes=4, block_lines=True, labels=labels) == (
        "1000: test      eax, eax ; BYTES: 85C0\n"
        "1002: je        skip ; BYTES: 7403\n"
        "\n"
        "1004: inc       eax ; BYTES: 40\n"
        "1005: jmp       done ; BYTES: EB01\n"
        "\n"
        "1008: ret ; BYTES: C3\n"
        "\n"
        "1007: dec       eax ; BYTES: 48\n"
        "\n"
    )


def test_empty():
    fn = build_function("f", b"", 0x1000)
    assert fn.blocks == {}
    assert render_function(fn) == ""
