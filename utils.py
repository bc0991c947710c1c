def hexdump(s, sep=" "):
    return sep.join(["%02x"%x for x in s])

def opcode_bytes(data, max_bytes):
    """ Upper case hex of the first max_bytes bytes, with a trailing "+" if
        anything was cut off """
    s = hexdump(data[:max_bytes], sep="").upper()
    if len(data) > max_bytes:
        s += "+"
    return s
