"""Query tokenizer.

Splits a raw console query on unquoted whitespace. Quoted segments keep their
quote characters; the parser strips them later.
"""

from __future__ import annotations

QUOTE_CHARS = ('"', "'")


def tokenize(raw: str) -> list[str]:
    """Split `raw` into tokens, honouring `"` and `'` quoting.

    A closing quote ends the current token even when no whitespace follows it.
    An unterminated quote swallows the rest of the input into one token.
    """
    tokens: list[str] = []
    current: list[str] = []
    quote: str | None = None

    for ch in raw:
        if quote is None and ch in QUOTE_CHARS:
            quote = ch
            current.append(ch)
        elif quote is not None and ch == quote:
            current.append(ch)
            tokens.append("".join(current))
            current = []
            quote = None
        elif quote is None and ch.isspace():
            if current:
                tokens.append("".join(current))
                current = []
        else:
            current.append(ch)

    if current:
        tokens.append("".join(current))

    return tokens
