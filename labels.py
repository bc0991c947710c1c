from types import MappingProxyType


class LabelMap:
    """ Read-only address -> name table.

    Built once per session and passed explicitly to every rendering call.
    Address 0 never resolves, even if it was given a name.
    """
    __slots__ = ("_labels",)

    def __init__(self, labels=None):
        self._labels = MappingProxyType(dict(labels or {}))

    def __repr__(self):
        return f"LabelMap({len(self._labels)} labels)"

    def __len__(self):
        return len(self._labels)

    def __iter__(self):
        return iter(self._labels.items())

    def __contains__(self, addr):
        return self.lookup(addr) is not None

    def lookup(self, addr):
        if not addr:
            return None
        return self._labels.get(addr)

    def merged(self, labels):
        new = dict(self._labels)
        new.update(labels)
        return LabelMap(new)


EMPTY = LabelMap()


def parse_labels(lines):
    labels = {}
    for lineno, line in enumerate(lines, 1):
        line = line.split("#", 1)[0].strip()
        if not line:
            continue
        try:
            addr, name = line.split(None, 1)
            addr = int(addr, 0)
        except ValueError:
            raise ValueError(f"line {lineno}: expected '<address> <name>', got {line!r}") from None
        labels[addr] = name.strip()
    return LabelMap(labels)

def load_labels(path):
    with open(path, "r") as f:
        return parse_labels(f)
