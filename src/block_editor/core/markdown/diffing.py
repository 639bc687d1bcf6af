"""Line diffs for presenting pending changes to a reviewer."""

import difflib
from dataclasses import dataclass
from enum import StrEnum

from block_editor.models.block import AddPayload, DiffAction, PendingDiff


class ChangeKind(StrEnum):
    ADD = "add"
    REMOVE = "remove"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class DiffChange:
    kind: ChangeKind
    value: str


@dataclass(frozen=True)
class DiffResult:
    changes: tuple[DiffChange, ...]
    additions: int
    deletions: int
    unchanged: int


def generate_diff(old_content: str, new_content: str) -> DiffResult:
    """Line diff between two versions of a block's content."""
    old_lines = old_content.splitlines()
    new_lines = new_content.splitlines()
    matcher = difflib.SequenceMatcher(a=old_lines, b=new_lines, autojunk=False)

    changes: list[DiffChange] = []
    additions = deletions = unchanged = 0
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            changes.extend(DiffChange(ChangeKind.UNCHANGED, line) for line in old_lines[i1:i2])
            unchanged += i2 - i1
            continue
        if tag in ("replace", "delete"):
            changes.extend(DiffChange(ChangeKind.REMOVE, line) for line in old_lines[i1:i2])
            deletions += i2 - i1
        if tag in ("replace", "insert"):
            changes.extend(DiffChange(ChangeKind.ADD, line) for line in new_lines[j1:j2])
            additions += j2 - j1

    return DiffResult(
        changes=tuple(changes), additions=additions, deletions=deletions, unchanged=unchanged
    )


def diff_for_pending(diff: PendingDiff) -> DiffResult:
    """Diff a pending change; add diffs compare against empty content."""
    if diff.action == DiffAction.ADD:
        return generate_diff("", AddPayload.from_json(diff.new_content).content)
    return generate_diff(diff.old_content, diff.new_content)


def format_diff_for_display(result: DiffResult) -> str:
    prefixes = {ChangeKind.ADD: "+", ChangeKind.REMOVE: "-", ChangeKind.UNCHANGED: " "}
    return "\n".join(f"{prefixes[c.kind]} {c.value}" for c in result.changes)
