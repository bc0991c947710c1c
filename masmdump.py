import argparse
import sys
import time

from function import build_function
from labels import LabelMap, load_labels
from listing import render_function, DEFAULT_MAX_BYTES
from masm import UnsupportedExpressionKind


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Print a MASM style listing of a block of x86 code")
    parser.add_argument("file", help="raw binary to read code from")
    parser.add_argument("--address", type=lambda x: int(x, 0), default=0x401000,
                        help="virtual address of the first byte (default: 0x401000)")
    parser.add_argument("--offset", type=lambda x: int(x, 0), default=0,
                        help="file offset of the code")
    parser.add_argument("--length", type=lambda x: int(x, 0), default=None,
                        help="number of bytes to disassemble (default: to end of file)")
    parser.add_argument("--bitness", type=int, choices=(16, 32, 64), default=32)
    parser.add_argument("--name", default=None, help="function name, also used as a label for --address")
    parser.add_argument("--labels", default=None, help="file of '<address> <name>' lines")
    parser.add_argument("--max-bytes", type=int, default=DEFAULT_MAX_BYTES,
                        help="opcode bytes to show per line, 0 to hide them")
    parser.add_argument("--blocks", action="store_true", help="blank line between basic blocks")
    parser.add_argument("--reasons", action="store_true", help="show why each basic block starts")
    parser.add_argument("-v", "--verbose", action="store_true", help="print timing to stderr")
    return parser.parse_args(argv)


def main(argv=None, out=sys.stdout):
    args = parse_args(argv)

    with open(args.file, "rb") as f:
        f.seek(args.offset)
        data = f.read() if args.length is None else f.read(args.length)

    labels = load_labels(args.labels) if args.labels else LabelMap()
    if args.name:
        labels = labels.merged({args.address: args.name})

    now = time.time()
    fn = build_function(args.name or f"sub_{args.address:x}", data, args.address, args.bitness)

    try:
        listing = render_function(fn, args.max_bytes, args.blocks, args.reasons, labels)
    except UnsupportedExpressionKind as e:
        print(f"{fn.name}: {e}", file=sys.stderr)
        return 1

    if args.verbose:
        elapsed = int((time.time() - now) * 1000)
        print(f"{len(fn.blocks)} blocks, {elapsed} ms", file=sys.stderr)

    out.write(listing)
    return 0


if __name__ == "__main__":
    sys.exit(main())
