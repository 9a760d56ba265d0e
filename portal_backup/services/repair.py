"""Best-effort repair of ``REPLACE INTO`` statements with broken quoting.

Old dumps wrote string values without escaping commas and some multi-byte
characters. Such a statement fails to execute; the repair splits its value
list on commas, glues back string literals that were split by a comma and
sends every non-empty string literal as a hex blob:
``'abc'`` becomes ``CONVERT(0x616263 USING utf8)``.

The functions here are pure and do not touch the database.
"""
import re
from typing import List, Tuple

REPAIRABLE_PREFIX = "REPLACE INTO"

# Closing paren of the last value tuple followed by the statement delimiter
TERMINATOR = ");"

_VALUES_HEAD = re.compile(r"^(.*?\bVALUES\b\s*)", re.IGNORECASE | re.DOTALL)

def is_repairable(statement: str) -> bool:
    return statement.startswith(REPAIRABLE_PREFIX)

def split_values(statement: str) -> Tuple[str, List[str]]:
    """Split a statement into its head (up to ``VALUES``) and comma tokens.

    Without a ``VALUES`` keyword the whole statement is tokenized.
    """
    match = _VALUES_HEAD.match(statement)
    if match:
        head = match.group(1)
        return head, statement[len(head):].split(",")
    return "", statement.split(",")

def encode_literal(literal: str) -> str:
    """Encode a quoted literal as ``CONVERT(0x... USING utf8)``."""
    raw = literal.strip("'").encode("utf-8")
    return f"CONVERT(0x{raw.hex()} USING utf8)"

def _opens_literal(tokens: List[str], i: int) -> bool:
    """Whether token i starts a string literal that a comma split apart."""
    token = tokens[i]
    if not token.startswith("'"):
        return False
    if not token.endswith("'") or token == "'":
        return True
    if i == len(tokens) - 1:
        return False
    following = tokens[i + 1]
    return (
        not following.startswith("'")
        and following.endswith("'")
        and not following.startswith("('")
    ) or following == "'"

def repair_values(tokens: List[str]) -> List[str]:
    """Repair the comma-split value tokens of a ``REPLACE INTO`` statement.

    Args:
        tokens: Value list split on ',' (the last token carrying ``);``)

    Returns:
        New token list, to be joined with ','
    """
    values = list(tokens)
    if not values:
        return values

    terminated = values[-1].endswith(TERMINATOR)
    if terminated:
        values[-1] = values[-1][:-len(TERMINATOR)]

    i = 0
    while i < len(values):
        opens_tuple = False
        closes_tuple = False

        if values[i].startswith("("):
            opens_tuple = True
            values[i] = values[i].lstrip("(")
        elif (values[i].endswith(")") and not values[i].startswith("'")) \
                or (values[i].endswith("')") and values[i] != "')"):
            closes_tuple = True
            values[i] = values[i].rstrip(")")

        while i + 1 < len(values) and _opens_literal(values, i):
            following = values.pop(i + 1)
            # The tail of the literal may also close the value tuple
            if following.endswith(")") and following.rstrip(")").endswith("'"):
                closes_tuple = True
                following = following.rstrip(")")
            values[i] += "," + following

        if values[i].startswith("'") and values[i].endswith("'") and values[i] != "''" \
                and len(values[i]) > 1:
            values[i] = encode_literal(values[i])

        if opens_tuple:
            values[i] = "(" + values[i]
        if closes_tuple:
            values[i] = values[i] + ")"

        i += 1

    if terminated:
        values[-1] += TERMINATOR

    return values

def repair_statement(statement: str) -> str:
    """Return the repaired text of a failing ``REPLACE INTO`` statement."""
    head, tokens = split_values(statement)
    return head + ",".join(repair_values(tokens))
