"""
Budget packing: choose which eligible files fit under a token budget.

Packing runs in two phases. A cheap greedy pass orders the files and admits
them while an estimate of the bundle size stays within the budget; the
estimate only tokenizes marker strings and reuses each file's scanned token
count. Strict mode then renders the real bundle, counts it with the
tokenizer, and drops files from the end until the true count fits.
"""

from constants import MARKDOWN_SLACK_TOKENS, PROMPT_SEPARATOR_TOKENS
from core.file_io import CachingFileReader, FileReader, FilesystemFileReader
from core.models import FileEntry, PackResult, SelectionPolicy
from core.rendering import (
    markdown_markers,
    plain_markers,
    prompt_blocks,
    render,
    tag_markers,
    xml_markers,
)
from core.tokens import (
    FixedTokenBudget,
    TokenBudget,
    TokenCounter,
    get_token_counter,
)
from models import OutputFormat, PackOrder


def order_files(files: list[FileEntry], pack_order: PackOrder) -> list[FileEntry]:
    """
    Sort files for greedy admission.

    All sorts are stable: files with equal token counts keep their incoming
    order.
    """
    if pack_order == PackOrder.SMALL_FIRST:
        return sorted(files, key=lambda f: f.tokens)
    if pack_order == PackOrder.LARGE_FIRST:
        return sorted(files, key=lambda f: -f.tokens)
    return sorted(files, key=lambda f: f.rel_path)


def preamble_tokens(policy: SelectionPolicy, counter: TokenCounter) -> int:
    """Estimate the fixed cost of the header and the instruction blocks."""
    tokens = counter.count(policy.header + "\n\n") if policy.header else 0
    preface, bottom = prompt_blocks(policy.prompt_text)
    if preface:
        tokens += counter.count(preface) + counter.count(bottom) + PROMPT_SEPARATOR_TOKENS
    return tokens


def file_overhead(
    entry: FileEntry, index: int, policy: SelectionPolicy, counter: TokenCounter
) -> int:
    """
    Estimate the wrapper cost of one file in the active rendering mode.

    Args:
        entry: The file being considered.
        index: Its 1-based position in the selection, used by tag-wrap.
        policy: Rendering options.
        counter: Token counter for the marker strings.
    """
    if policy.xml_wrap:
        open_, close = xml_markers(entry)
    elif policy.tags_wrap:
        open_, close = tag_markers(entry, index)
    elif policy.format == OutputFormat.PLAIN:
        open_, close = plain_markers(entry, policy.block_separator)
    else:
        open_, close = markdown_markers(entry, policy.code_fences)
        return counter.count(open_) + counter.count(close) + MARKDOWN_SLACK_TOKENS
    return counter.count(open_) + counter.count(close)


def pack(
    eligible: list[FileEntry],
    policy: SelectionPolicy,
    counter: TokenCounter | None = None,
    reader: FileReader | None = None,
    budget: TokenBudget | None = None,
) -> PackResult:
    """
    Select the files that fit under `policy.max_tokens`.

    Without a budget every eligible file is selected, unordered and
    unrendered. With one, files are ordered by `policy.pack_order` and
    admitted greedily until the first file that does not fit. In strict mode
    the real bundle is then rendered and measured, and files are popped from
    the end until its true token count fits or nothing is left.

    Args:
        eligible: Files that may be included.
        policy: Budget, ordering and rendering options.
        counter: Token counter override.
        reader: File reader override. Contents are cached for the duration of
            the call.
        budget: Budget used for greedy admission. Defaults to a
            FixedTokenBudget capped at `policy.max_tokens`.

    Returns:
        PackResult. In strict mode `rendered` and `tokens` hold the final
        bundle and its exact token count.

    Raises:
        FileReadError: If a selected file cannot be read while rendering.
    """
    if policy.max_tokens is None:
        return PackResult(selected=list(eligible))

    counter = counter or get_token_counter(policy.model, policy.encoding)
    if budget is None:
        budget = FixedTokenBudget(policy.max_tokens)
    budget.spend(preamble_tokens(policy, counter))

    selected: list[FileEntry] = []
    for entry in order_files(eligible, policy.pack_order):
        cost = entry.tokens + file_overhead(entry, len(selected) + 1, policy, counter)
        if not budget.can_afford(cost):
            break
        selected.append(entry)
        budget.spend(cost)

    if not policy.strict:
        return PackResult(selected=selected)

    cached = CachingFileReader(reader or FilesystemFileReader())
    while True:
        rendered = render(selected, policy, cached)
        tokens = counter.count(rendered)
        if tokens <= policy.max_tokens or not selected:
            return PackResult(selected=selected, rendered=rendered, tokens=tokens)
        selected.pop()
