from enum import Flag, auto
from itertools import pairwise
import heapq

from iced_x86 import Code, FlowControl
from intervaltree import IntervalTree

from lifter import lift
import x86


class BlockReason(Flag):
    NONE = 0
    ENTRY = auto()
    JUMP_TARGET = auto()
    FALLTHROUGH = auto()
    AFTER_TERMINATOR = auto()
    DATA = auto()

# Flow control that never continues with the next instruction
NO_FALLTHROUGH = (FlowControl.UNCONDITIONAL_BRANCH, FlowControl.INDIRECT_BRANCH, FlowControl.RETURN)
BRANCHES = (FlowControl.UNCONDITIONAL_BRANCH, FlowControl.CONDITIONAL_BRANCH)


class BasicBlock:
    def __init__(self, start, end, statements, reason=BlockReason.NONE, static_data=False):
        self.start = start
        self.end = end
        self.statements = statements
        self.reason = reason
        self.static_data = static_data
        self.successors = []

    def __repr__(self):
        return f"BasicBlock({self.start:#x}-{self.end:#x}, {len(self.statements)} statements)"

    def reason_string(self):
        if not self.reason:
            return "none"
        return ", ".join(r.name.lower().replace("_", " ") for r in BlockReason if r and r in self.reason)

    def empty(self):
        return self.start == self.end

    def last(self):
        return self.statements[-1] if self.statements else None


class Function:
    def __init__(self, name, address, blocks):
        self.name = name
        self.address = address
        self.blocks = {bb.start: bb for bb in blocks}
        self.intervals = IntervalTree()
        for bb in blocks:
            if not bb.empty():
                self.intervals[bb.start:bb.end] = bb

    def __repr__(self):
        return f"Function({self.name}, {self.address:#x}, {len(self.blocks)} blocks)"

    def block_at(self, addr):
        found = self.intervals[addr]
        if not found:
            return None
        return found.pop().data

    def blocks_in_flow_order(self):
        """ Depth first from the entry, fallthrough before branch targets.
            Blocks nothing reaches are picked up in address order. """
        visited = set()
        unvisited = list(self.blocks)
        heapq.heapify(unvisited)
        stack = [self.address] if self.address in self.blocks else []

        def next_bb():
            if stack:
                return stack.pop()
            while unvisited:
                start = heapq.heappop(unvisited)
                if start not in visited:
                    return start
            return None

        while (start := next_bb()) is not None:
            if start in visited:
                continue
            visited.add(start)
            bb = self.blocks[start]
            yield bb
            # push in reverse so the first successor (the fallthrough) comes out first
            for succ in reversed(bb.successors):
                if succ.start not in visited:
                    stack.append(succ.start)


def build_function(name, data, address, bitness=32):
    """ Split data into basic blocks with a linear sweep.

    Runs of bytes that don't decode become static data blocks.
    """
    end_addr = address + len(data)
    insts = x86.disassemble(data, address, bitness)

    reasons = {address: BlockReason.ENTRY}
    def leader(addr, reason):
        if address <= addr < end_addr:
            reasons[addr] = reasons.get(addr, BlockReason.NONE) | reason

    prev_invalid = False
    for inst in insts:
        invalid = inst.code == Code.INVALID
        if invalid != prev_invalid:
            leader(inst.ip, BlockReason.DATA if invalid else BlockReason.AFTER_TERMINATOR)
        prev_invalid = invalid
        if invalid:
            continue

        flow = inst.flow_control
        if flow in BRANCHES:
            leader(inst.near_branch_target, BlockReason.JUMP_TARGET)
        if flow == FlowControl.CONDITIONAL_BRANCH:
            leader(inst.next_ip, BlockReason.FALLTHROUGH)
        elif flow in NO_FALLTHROUGH:
            leader(inst.next_ip, BlockReason.AFTER_TERMINATOR)

    # A jump into the middle of an instruction doesn't start a block
    starts = {inst.ip for inst in insts}
    bounds = sorted(addr for addr in reasons if addr in starts) + [end_addr]

    blocks = []
    insts = iter(insts)
    inst = next(insts, None)
    for start, end in pairwise(bounds):
        stmts = []
        static_data = False
        while inst is not None and inst.ip < end:
            if inst.code == Code.INVALID:
                static_data = True
            else:
                offset = inst.ip - address
                stmts.append(lift(inst, data[offset:offset + inst.len], bitness))
            inst = next(insts, None)
        blocks.append(BasicBlock(start, end, stmts, reasons[start], static_data))

    fn = Function(name, address, blocks)

    for bb, after in pairwise(blocks + [None]):
        last = bb.last()
        if bb.static_data or last is None:
            continue
        flow = last.decoded.flow_control
        if after is not None and flow not in NO_FALLTHROUGH:
            bb.successors.append(after)
        if flow in BRANCHES and (target := fn.block_at(last.decoded.near_branch_target)):
            if target.start == last.decoded.near_branch_target:
                bb.successors.append(target)

    return fn
