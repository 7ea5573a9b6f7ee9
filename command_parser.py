"""Tokenizer for agent-browser command strings."""
from __future__ import annotations

from typing import List, Optional, Sequence

QUOTE_CHARS = ("'", '"')


def parse_command(cmd: str) -> List[str]:
    """
    Split a command string into arguments, respecting quoted spans.

    Both single and double quotes delimit a span; the delimiters are stripped
    and whitespace inside is kept. A quote of the other style is literal
    inside a span. An unterminated quote runs to the end of the string.
    Never raises.

    Examples:
        fill @e2 "hello world"   -> ["fill", "@e2", "hello world"]
        click @e3                -> ["click", "@e3"]
        fill @e2 'some "value"'  -> ["fill", "@e2", 'some "value"']
    """
    args: List[str] = []
    current: List[str] = []
    in_quote: Optional[str] = None

    for ch in cmd or "":
        if in_quote:
            if ch == in_quote:
                in_quote = None
            else:
                current.append(ch)
        elif ch in QUOTE_CHARS:
            in_quote = ch
        elif ch.isspace():
            if current:
                args.append("".join(current))
                current = []
        else:
            current.append(ch)

    if current:
        args.append("".join(current))

    return args


def format_command(args: Sequence[str]) -> str:
    """Join arguments back into a command string that parses to the same tokens."""
    return " ".join(_quote(arg) for arg in args)


def _quote(arg: str) -> str:
    if arg and not any(ch.isspace() or ch in QUOTE_CHARS for ch in arg):
        return arg
    if '"' not in arg:
        return f'"{arg}"'
    if "'" not in arg:
        return f"'{arg}'"
    # Both quote styles: double-quote each run and emit '"' between runs.
    return "'\"'".join(f'"{piece}"' for piece in arg.split('"'))
