#!/usr/bin/env python3
"""
Name: printf
Description: formatted output to a file descriptor
License: mit

Formats a string and a list of arguments one byte at a time into a sink.
Only understands %d, %l, %x, %p, %s, %c and %%. Any other sequence is
printed as-is so that it stands out.
"""

import sys
import os
import argparse
import codecs

__version__ = "1.0"

# Constants
EX_SUCCESS = 0
EX_FAILURE = 1
STDOUT = 1
BUFSZ = 21 # 20 digits of a 64-bit decimal, plus the sign
MASK32 = 0xFFFFFFFF
MASK64 = 0xFFFFFFFFFFFFFFFF

DIGITS = b"0123456789ABCDEF"
NULL_STRING = b"(null)"

# Token kinds yielded by scan()
LITERAL = 0
SPECIFIER = 1

# Specifiers that take an argument from the list
CONSUMERS = "dlxpsc"


class FdSink:
    """Writes every byte straight to a file descriptor."""

    def __init__(self, fd):
        self.fd = fd
        self.error = None

    def putc(self, c):
        # A failed write is reported, not raised; the caller decides.
        self.error = None
        try:
            return os.write(self.fd, bytes((c,))) == 1
        except OSError as e:
            self.error = e
            return False


class BufferSink:
    """Collects the formatted bytes in memory."""

    def __init__(self):
        self.data = bytearray()

    def putc(self, c):
        self.data.append(c)
        return True

    def getvalue(self):
        return bytes(self.data)


class StrictSink:
    """
    Wraps another sink and raises OSError on the first byte it fails to
    write, instead of carrying on.
    """

    def __init__(self, sink):
        self.sink = sink

    def putc(self, c):
        if not self.sink.putc(c):
            error = getattr(self.sink, 'error', None)
            if error is not None:
                raise error
            raise OSError("short write")
        return True


def to_int32(value):
    """Reads an integer the way a C int argument would see it."""
    value &= MASK32
    return value - (1 << 32) if value & 0x80000000 else value


def char_value(c):
    """Reads a %c argument (an int or a one-character string) as a byte."""
    if isinstance(c, (str, bytes, bytearray)):
        c = ord(c)
    return c & 0xFF


def print_int(sink, xx, base, sgn):
    """
    Emits an integer in base 10 or 16, most significant digit first.

    With sgn set, xx is printed as is, with a '-' when negative.
    Otherwise the 64-bit pattern of xx is printed as an unsigned number.
    Digits are gathered backwards in a scratch buffer of BUFSZ bytes;
    running out of room raises OverflowError.
    """
    if base not in (10, 16):
        raise ValueError(f"unsupported base {base}")

    buf = bytearray(BUFSZ)

    neg = 0
    if sgn and xx < 0:
        neg = 1
        x = -xx
    elif sgn:
        x = xx
    else:
        x = xx & MASK64

    i = 0
    while True:
        # One slot is always kept free for the sign.
        if i >= BUFSZ - 1:
            raise OverflowError(f"more than {BUFSZ - 1} digits in {xx}")
        x, r = divmod(x, base)
        buf[i] = DIGITS[r]
        i += 1
        if x == 0:
            break

    # The '-' is stored unconditionally; neg only decides whether the
    # emitted range reaches it. Same output as appending it when negative.
    buf[i] = ord('-')
    i += neg

    while i > 0:
        i -= 1
        sink.putc(buf[i])
        buf[i] = 0


def print_ptr(sink, x):
    """Emits a 64-bit address as '0x' and 16 zero-padded hex digits."""
    x &= MASK64
    sink.putc(ord('0'))
    sink.putc(ord('x'))
    for _ in range(16):
        sink.putc(DIGITS[x >> 60])
        x = (x << 4) & MASK64


def print_str(sink, s):
    """Emits a string up to its first NUL, or '(null)' for None."""
    if s is None:
        s = NULL_STRING
    elif isinstance(s, str):
        s = s.encode('utf-8')
    for c in s:
        if c == 0:
            break
        sink.putc(c)


def scan(fmt):
    """
    Walks a format string and yields (LITERAL, byte) for text to copy and
    (SPECIFIER, byte) for the character following each '%'.

    A NUL byte ends the format. A '%' at the very end yields nothing.
    """
    if isinstance(fmt, str):
        fmt = fmt.encode('utf-8')

    state = 0
    for c in fmt:
        if c == 0:
            break
        if state == 0:
            if c == ord('%'):
                state = ord('%')
            else:
                yield LITERAL, c
        elif state == ord('%'):
            yield SPECIFIER, c
            state = 0


def next_arg(ap, spec):
    """Takes the next argument, failing if the list has run out."""
    try:
        return next(ap)
    except StopIteration:
        raise ValueError(f"missing argument for '%{spec}'") from None


def vprintf(sink, fmt, args, strict=False):
    """
    Formats args according to fmt, one putc() call per byte.

    Write failures are ignored unless strict is set, in which case the
    first one raises OSError.
    """
    if strict:
        sink = StrictSink(sink)
    ap = iter(args)

    for kind, c in scan(fmt):
        if kind == LITERAL:
            sink.putc(c)
            continue

        spec = chr(c)
        if spec == 'd':
            print_int(sink, to_int32(next_arg(ap, spec)), 10, True)
        elif spec == 'l':
            print_int(sink, next_arg(ap, spec) & MASK64, 10, False)
        elif spec == 'x':
            print_int(sink, next_arg(ap, spec) & MASK32, 16, False)
        elif spec == 'p':
            print_ptr(sink, next_arg(ap, spec))
        elif spec == 's':
            print_str(sink, next_arg(ap, spec))
        elif spec == 'c':
            sink.putc(char_value(next_arg(ap, spec)))
        elif spec == '%':
            sink.putc(c)
        else:
            # Unknown % sequence. Print it to draw attention.
            sink.putc(ord('%'))
            sink.putc(c)


def fprintf(fd, fmt, *args, strict=False):
    """Formats to a file descriptor, or to any object with a putc() method."""
    sink = FdSink(fd) if isinstance(fd, int) else fd
    vprintf(sink, fmt, args, strict=strict)


def printf(fmt, *args, strict=False):
    fprintf(STDOUT, fmt, *args, strict=strict)


# --- Command line front end ---

def unescape_format(s: str) -> bytes:
    """
    Turns a command line format into the raw bytes it was typed as, with
    backslash escapes (\\n, \\t, \\xHH, \\NNN) replaced.
    """
    # fsencode gives back the exact argv bytes; escapes are then resolved
    # byte for byte so non-ASCII text passes through untouched.
    return codecs.escape_decode(os.fsencode(s))[0]


def parse_number(arg: str) -> int:
    """Parses a signed decimal, octal or hex argument."""
    text = arg.strip()
    sign = -1 if text.startswith('-') else 1
    body = text[1:] if text[:1] in ('-', '+') else text
    try:
        # int(str, 0) knows 0x and 0o; a bare leading 0 also means octal.
        if len(body) > 1 and body.startswith('0') and body[1].isdigit():
            return sign * int(body, 8)
        return sign * int(body, 0)
    except ValueError:
        raise ValueError(f"invalid number '{arg}'") from None


def convert_arguments(fmt: bytes, args: list) -> list:
    """
    Turns command line strings into the values the format will consume,
    in the order its specifiers appear. Strings and characters are kept as
    the bytes they were given as.
    """
    pending = list(args)
    values = []
    for kind, c in scan(fmt):
        spec = chr(c)
        if kind != SPECIFIER or spec not in CONSUMERS:
            continue
        if not pending:
            raise ValueError(f"missing argument for '%{spec}'")
        arg = pending.pop(0)
        if spec == 's':
            values.append(os.fsencode(arg))
        elif spec == 'c':
            values.append(os.fsencode(arg)[:1] or b'\0')
        else:
            values.append(parse_number(arg))
    return values


def main():
    """Parses arguments and prints the formatted result to stdout."""
    parser = argparse.ArgumentParser(
        description="Format and print data to standard output.",
        usage="%(prog)s [-sV] format [argument ...]"
    )
    parser.add_argument(
        '-s', '--strict',
        action='store_true',
        help='stop with an error if a write fails'
    )
    parser.add_argument(
        '-V', '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )
    parser.add_argument(
        'format',
        help='format string; understands %%d %%l %%x %%p %%s %%c and %%%%'
    )
    parser.add_argument(
        'arguments',
        nargs='*',
        help='values consumed by the specifiers, in order'
    )

    args = parser.parse_args()
    program_name = os.path.basename(sys.argv[0])

    try:
        format_string = unescape_format(args.format)
        values = convert_arguments(format_string, args.arguments)
        printf(format_string, *values, strict=args.strict)
    except ValueError as e:
        print(f"{program_name}: {e}", file=sys.stderr)
        sys.exit(EX_FAILURE)
    except OSError as e:
        print(f"{program_name}: write error: {e}", file=sys.stderr)
        sys.exit(EX_FAILURE)

    sys.exit(EX_SUCCESS)

if __name__ == "__main__":
    main()
