"""Argument construction for git history queries."""

from collections.abc import Callable, Sequence

from gitstream.models import Branch, LogOptions

FIELD_SEPARATOR = "\x1f"

# Order matters: decode_commit reads the fields positionally.
COMMIT_FORMAT_FIELDS = ("%H", "%h", "%P", "%ci", "%cn", "%ce", "%an", "%ae", "%d", "%s")
COMMIT_FIELD_COUNT = len(COMMIT_FORMAT_FIELDS) + 1


def commit_format() -> list[str]:
    """Return the pretty-format and decoration flags for decorated history output."""
    pretty = FIELD_SEPARATOR.join(COMMIT_FORMAT_FIELDS) + FIELD_SEPARATOR
    return [f"--format={pretty}", "--decorate=full", "--date=iso"]


def exclusion_clause(scope: Branch | None, local_branches: Sequence[Branch]) -> str:
    """Build the --not clause that hides every other local branch."""
    names = [b.friendly_name for b in local_branches if b != scope]
    ignore = "--not " + "".join(f"{name} " for name in names)
    return f" {ignore} -- "


def build_log_arguments(
    branch: Branch | None,
    skip: int,
    limit: int,
    options: LogOptions,
    revision_range: str,
    list_local_branches: Callable[[], Sequence[Branch]] | None = None,
) -> list[str]:
    """Build the arguments of a git log query, without the leading "log"."""
    if skip < 0 or limit < 0:
        raise ValueError(f"skip and limit must be >= 0, got skip={skip} limit={limit}")

    arguments = [f"{revision_range} "]

    if branch is not None:
        arguments.append(f"--branches={branch.friendly_name} ")

    if skip > 0:
        arguments.append(f"--skip={skip}")

    if limit > 0:
        arguments.append(f"--max-count={limit}")

    arguments.append("--full-history")

    if LogOptions.TOPOLOGICAL_ORDER in options:
        arguments.append("--topo-order")

    if LogOptions.INCLUDE_MERGES not in options:
        arguments.append("--no-merges")
        arguments.append("--first-parent")

    arguments.extend(commit_format())

    if LogOptions.BRANCH_ONLY_AND_PARENT in options:
        if list_local_branches is None:
            raise ValueError("BRANCH_ONLY_AND_PARENT needs a local branch lister")
        arguments.append(exclusion_clause(branch, list_local_branches()))

    return arguments


REF_LOG_FORMAT_FIELDS = ("%H", "%h", "%gs", "%gd")


def ref_log_format() -> list[str]:
    """Return the format flags for ref log output decoded by decode_ref_log."""
    pretty = FIELD_SEPARATOR.join(REF_LOG_FORMAT_FIELDS) + FIELD_SEPARATOR
    return [f"--format={pretty}", "--date=iso"]
