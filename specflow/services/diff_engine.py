"""
Line Diff Engine — pure functions, no I/O.

Computes a minimal line-level edit script between two texts (Myers'
O(ND) shortest-edit-script algorithm) and turns it into DiffBlocks that a
renderer can show inline or side by side.

Lines are compared with their terminating newline, so "b" at end of file
and "b\\n" are different lines. Consecutive edits of the same kind form a
change group; each group is re-split on newlines and the empty trailing
piece left by a final newline is dropped before numbering.

Numbering:
    old_line_number  advances on removed + unchanged
    new_line_number  advances on added + unchanged
    line_number      inline: one counter over every block
                     side-by-side: new number for added, old number otherwise

Usage:
    from specflow.services.diff_engine import diff_lines, RenderMode

    blocks = diff_lines(old_body, new_body, RenderMode.SIDE_BY_SIDE)
    payload = [b.to_dict() for b in blocks]
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DiffType(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    UNCHANGED = "unchanged"


class RenderMode(str, Enum):
    INLINE = "inline"
    SIDE_BY_SIDE = "side-by-side"


@dataclass
class DiffBlock:
    """One line of a diff result."""
    type: DiffType
    content: str
    line_number: int
    old_line_number: int | None = None
    new_line_number: int | None = None

    def to_dict(self) -> dict:
        d = {
            "type": self.type.value,
            "content": self.content,
            "line_number": self.line_number,
        }
        if self.old_line_number is not None:
            d["old_line_number"] = self.old_line_number
        if self.new_line_number is not None:
            d["new_line_number"] = self.new_line_number
        return d


# ═════════════════════════════════════════════════════════════════════════════
# Tokenizing
# ═════════════════════════════════════════════════════════════════════════════

def split_lines(text: str | None) -> list[str]:
    """Split into line tokens that keep their trailing newline."""
    if not text:
        return []
    pieces = text.split("\n")
    tokens = [p + "\n" for p in pieces[:-1]]
    if pieces[-1]:
        tokens.append(pieces[-1])
    return tokens


# ═════════════════════════════════════════════════════════════════════════════
# Myers shortest edit script
# ═════════════════════════════════════════════════════════════════════════════

def _shortest_edit(a: list[str], b: list[str]) -> list[tuple[DiffType, str]]:
    """Return a minimal sequence of (type, token) edits turning a into b."""
    n, m = len(a), len(b)
    max_d = n + m
    offset = max_d + 1
    v = [0] * (2 * max_d + 3)
    # trace[d] holds the slice of v in effect at the start of step d,
    # covering diagonals -d-1 .. d+1
    trace: list[list[int]] = []

    for d in range(max_d + 1):
        trace.append(v[offset - d - 1: offset + d + 2])
        for k in range(-d, d + 1, 2):
            if k == -d or (k != d and v[offset + k - 1] < v[offset + k + 1]):
                x = v[offset + k + 1]
            else:
                x = v[offset + k - 1] + 1
            y = x - k
            while x < n and y < m and a[x] == b[y]:
                x += 1
                y += 1
            v[offset + k] = x
            if x >= n and y >= m:
                return _backtrack(trace, a, b)

    return []  # unreachable: d = n + m always reaches the corner


def _backtrack(trace: list[list[int]], a: list[str], b: list[str]) -> list[tuple[DiffType, str]]:
    x, y = len(a), len(b)
    edits: list[tuple[DiffType, str]] = []

    for d in range(len(trace) - 1, -1, -1):
        snap = trace[d]

        def at(k, _snap=snap, _d=d):
            return _snap[k + _d + 1]

        k = x - y
        if k == -d or (k != d and at(k - 1) < at(k + 1)):
            prev_k = k + 1
        else:
            prev_k = k - 1
        prev_x = at(prev_k)
        prev_y = prev_x - prev_k

        while x > prev_x and y > prev_y:
            edits.append((DiffType.UNCHANGED, a[x - 1]))
            x -= 1
            y -= 1
        if d > 0:
            if x == prev_x:
                edits.append((DiffType.ADDED, b[y - 1]))
            else:
                edits.append((DiffType.REMOVED, a[x - 1]))
        x, y = prev_x, prev_y

    edits.reverse()
    return edits


def edit_script(old_text: str | None, new_text: str | None) -> list[tuple[DiffType, str]]:
    """Minimal token-level edit script between two texts.

    Common leading and trailing lines are matched up front; this never
    lengthens the script and keeps the O(ND) core small for typical edits.
    """
    a, b = split_lines(old_text), split_lines(new_text)

    prefix = 0
    while prefix < len(a) and prefix < len(b) and a[prefix] == b[prefix]:
        prefix += 1
    suffix = 0
    while (
        suffix < len(a) - prefix
        and suffix < len(b) - prefix
        and a[len(a) - 1 - suffix] == b[len(b) - 1 - suffix]
    ):
        suffix += 1

    head = [(DiffType.UNCHANGED, t) for t in a[:prefix]]
    tail = [(DiffType.UNCHANGED, t) for t in a[len(a) - suffix:]] if suffix else []
    middle = _shortest_edit(a[prefix:len(a) - suffix], b[prefix:len(b) - suffix])
    return head + middle + tail


def _group(edits: list[tuple[DiffType, str]]) -> list[tuple[DiffType, list[str]]]:
    """Collapse consecutive edits of the same type into change groups."""
    groups: list[tuple[DiffType, list[str]]] = []
    for kind, token in edits:
        if groups and groups[-1][0] == kind:
            groups[-1][1].append(token)
        else:
            groups.append((kind, [token]))
    return groups


def _group_lines(tokens: list[str]) -> list[str]:
    lines = "".join(tokens).split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return lines


# ═════════════════════════════════════════════════════════════════════════════
# Public API
# ═════════════════════════════════════════════════════════════════════════════

def diff_lines(
    old_text: str | None,
    new_text: str | None,
    mode: RenderMode | str = RenderMode.INLINE,
) -> list[DiffBlock]:
    """
    Line-level diff of two texts.

    Args:
        old_text: Earlier content (None is treated as empty).
        new_text: Later content.
        mode: "inline" or "side-by-side"; only changes ``line_number``.

    Returns:
        Ordered DiffBlocks in edit order.

    Raises:
        ValueError: if ``mode`` is not a known render mode.
    """
    mode = RenderMode(mode)
    inline = mode is RenderMode.INLINE

    blocks: list[DiffBlock] = []
    old_no = new_no = line_no = 1

    for kind, tokens in _group(edit_script(old_text, new_text)):
        for line in _group_lines(tokens):
            if kind is DiffType.ADDED:
                blocks.append(DiffBlock(
                    type=kind, content=line,
                    line_number=line_no if inline else new_no,
                    new_line_number=new_no,
                ))
                new_no += 1
            elif kind is DiffType.REMOVED:
                blocks.append(DiffBlock(
                    type=kind, content=line,
                    line_number=line_no if inline else old_no,
                    old_line_number=old_no,
                ))
                old_no += 1
            else:
                blocks.append(DiffBlock(
                    type=kind, content=line,
                    line_number=line_no if inline else old_no,
                    old_line_number=old_no,
                    new_line_number=new_no,
                ))
                old_no += 1
                new_no += 1
            line_no += 1

    return blocks


def diff_stats(blocks: list[DiffBlock]) -> dict:
    """Count blocks per type."""
    stats = {t.value: 0 for t in DiffType}
    for block in blocks:
        stats[block.type.value] += 1
    return stats
