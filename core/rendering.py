"""
Bundle rendering.

Turns a list of selected files into one text blob. There are four mutually
exclusive body modes, chosen in this order of precedence:

1. XML-wrap: a `<ctxpack>` document with CDATA-wrapped header, tree and file
   contents.
2. Tag-wrap: a `<TREE>` block followed by numbered `<FILE_n>` blocks.
3. Markdown or plain text, depending on the output format.
4. JSON metadata, which never includes file bodies unless asked to.

Instruction text, when present, is placed before the body and its
`<INSTRUCTIONS>` block is repeated after it (see `wrap_with_prompt`).
"""

import json
import re
from pathlib import PurePosixPath
from typing import Iterable
from xml.sax.saxutils import escape

from constants import APP_NAME, APP_VERSION, EXT_TO_LANGUAGE, FILENAME_TO_LANGUAGE
from core.file_io import FileReader, FilesystemFileReader
from core.models import FileEntry, SelectionPolicy
from core.tree import render_ascii_tree
from models import OutputFormat

CDATA_OPEN = "<![CDATA["
CDATA_CLOSE = "]]>"
_INSTRUCTIONS_BLOCK = re.compile(r"<INSTRUCTIONS>[\s\S]*?</INSTRUCTIONS>", re.IGNORECASE)


def language_for(rel_path: str, ext: str) -> str:
    """
    Return the code-fence language for a file.

    The extension table wins; `Dockerfile` and `Makefile` are recognized by
    name. Unknown files get an empty string.
    """
    by_ext = EXT_TO_LANGUAGE.get(ext)
    if by_ext:
        return by_ext
    return FILENAME_TO_LANGUAGE.get(PurePosixPath(rel_path).name.lower(), "")


def encode_cdata(text: str) -> str:
    """
    Escape text for placement inside a CDATA section.

    Every `]]>` is split across two sections as `]]]]><![CDATA[>`, so
    concatenating the section contents reproduces the input exactly.
    """
    return text.replace("]]>", "]]]]><![CDATA[>")


def cdata(text: str) -> str:
    return f"{CDATA_OPEN}{encode_cdata(text)}{CDATA_CLOSE}"


def xml_attr(value: object) -> str:
    return escape(str(value), {'"': "&quot;"})


def root_label(policy: SelectionPolicy) -> str:
    return policy.cwd.resolve().name or APP_NAME


# Marker strings are shared with the packer, which estimates per-file
# overhead by counting them without the content in between.


def markdown_markers(entry: FileEntry, code_fences: bool) -> tuple[str, str]:
    """Return the markdown text surrounding a file's content."""
    heading = f"### {entry.rel_path}\n"
    if not code_fences:
        return heading, "\n"
    lang = language_for(entry.rel_path, entry.ext)
    return f"{heading}```{lang}\n", "\n```\n"


def plain_markers(entry: FileEntry, block_separator: str) -> tuple[str, str]:
    """Return the plain-text path line and the separator after a block."""
    return f"{entry.rel_path}\n\n", block_separator


def tag_markers(entry: FileEntry, index: int) -> tuple[str, str]:
    """Return the `<FILE_n>` open/close markers for the 1-based index."""
    return f'<FILE_{index} path="{entry.rel_path}">\n', f"\n</FILE_{index}>\n"


def xml_markers(entry: FileEntry) -> tuple[str, str]:
    """Return the `<file>` element text surrounding the escaped content."""
    lang = language_for(entry.rel_path, entry.ext)
    open_ = (
        f'    <file path="{xml_attr(entry.rel_path)}" bytes="{entry.bytes}" '
        f'lines="{entry.lines}" tokens="{entry.tokens}" '
        f'language="{xml_attr(lang)}">{CDATA_OPEN}'
    )
    return open_, f"{CDATA_CLOSE}</file>\n"


def render_markdown(
    entries: Iterable[FileEntry],
    reader: FileReader,
    header: str | None = None,
    code_fences: bool = True,
) -> str:
    """
    Render files as markdown: a `### path` heading per file followed by the
    content, fenced with a language tag unless `code_fences` is off.
    Trailing whitespace of fenced content is trimmed.
    """
    lines: list[str] = []
    if header:
        lines.extend([header.strip(), ""])

    for entry in entries:
        content = reader.read_file(entry.abs_path)
        lines.append(f"### {entry.rel_path}")
        if code_fences:
            lines.append("```" + language_for(entry.rel_path, entry.ext))
            lines.append(content.rstrip())
            lines.extend(["```", ""])
        else:
            lines.extend([content, ""])
    return "\n".join(lines)


def render_plain(
    entries: Iterable[FileEntry],
    reader: FileReader,
    header: str | None = None,
    block_separator: str = "\n\n",
) -> str:
    """Render files as plain text blocks: path line, blank line, raw content."""
    blocks: list[str] = []
    if header:
        blocks.append(header.strip())
    for entry in entries:
        blocks.append(f"{entry.rel_path}\n\n{reader.read_file(entry.abs_path)}")
    return block_separator.join(blocks)


def render_tags(
    entries: list[FileEntry],
    reader: FileReader,
    root_name: str,
    header: str | None = None,
) -> str:
    """
    Render files as a `<TREE>` block plus numbered `<FILE_n>` blocks.

    Numbering starts at 1 and follows the order of `entries`.
    """
    lines = [
        "<TREE>",
        render_ascii_tree((e.rel_path for e in entries), root_name),
        "</TREE>",
        "",
    ]
    if header:
        lines.extend([f"<HEADER>{header}</HEADER>", ""])

    for i, entry in enumerate(entries, start=1):
        content = reader.read_file(entry.abs_path)
        lines.append(f'<FILE_{i} path="{entry.rel_path}">')
        lines.append(content.rstrip())
        lines.extend([f"</FILE_{i}>", ""])
    return "\n".join(lines)


def render_xml(
    entries: list[FileEntry],
    reader: FileReader,
    root_name: str,
    header: str | None = None,
) -> str:
    """
    Render files as an XML document.

    File contents are CDATA-wrapped without any other change, so reading the
    document with an XML parser yields every file's exact text.
    """
    lines = [f'<{APP_NAME} version="{APP_VERSION}">']
    if header:
        lines.append(f"  <header>{cdata(header)}</header>")
    tree = render_ascii_tree((e.rel_path for e in entries), root_name)
    lines.append(f"  <tree>{cdata(tree)}</tree>")

    lines.append("  <files>")
    for entry in entries:
        open_, close = xml_markers(entry)
        content = reader.read_file(entry.abs_path)
        lines.append(f"{open_}{encode_cdata(content)}{close.rstrip()}")
    lines.append("  </files>")
    lines.append(f"</{APP_NAME}>")
    return "\n".join(lines)


def render_json(
    entries: Iterable[FileEntry],
    include_body: bool = False,
    reader: FileReader | None = None,
) -> str:
    """
    Serialize per-file metadata as a pretty-printed JSON array.

    Each row is `{path, bytes, lines, tokens, skipped, reason}`. With
    `include_body`, rows of non-skipped files also carry a `content` key.
    """
    rows = []
    for entry in entries:
        row: dict = dict(entry.to_report())
        if include_body and not entry.skipped:
            row["content"] = (reader or FilesystemFileReader()).read_file(entry.abs_path)
        rows.append(row)
    return json.dumps(rows, indent=2, ensure_ascii=False)


def render_body(
    selected: list[FileEntry],
    policy: SelectionPolicy,
    reader: FileReader | None = None,
) -> str:
    """
    Render the bundle body for a selection, without instruction wrapping.

    Raises:
        FileReadError: If a selected file can no longer be read.
    """
    reader = reader or FilesystemFileReader()
    if policy.xml_wrap:
        return render_xml(selected, reader, root_label(policy), policy.header)
    if policy.tags_wrap:
        return render_tags(selected, reader, root_label(policy), policy.header)
    if policy.format == OutputFormat.PLAIN:
        return render_plain(selected, reader, policy.header, policy.block_separator)
    if policy.format == OutputFormat.JSON:
        return render_json(selected, reader=reader)
    return render_markdown(selected, reader, policy.header, policy.code_fences)


def prompt_blocks(prompt: str | None) -> tuple[str, str]:
    """
    Split instruction text into the top preface and the repeated bottom block.

    Text already containing `<INSTRUCTIONS>` or `<PROMPT` is used verbatim as
    the preface; anything else is wrapped in `<INSTRUCTIONS>` tags. The
    bottom block is the first `<INSTRUCTIONS>...</INSTRUCTIONS>` section of
    the preface, or the whole preface if there is none.

    Returns:
        (preface, bottom), both empty when there is no prompt.
    """
    if not prompt:
        return "", ""
    if "<INSTRUCTIONS>" in prompt or "<PROMPT" in prompt:
        preface = prompt
    else:
        preface = f"<INSTRUCTIONS>\n{prompt}\n</INSTRUCTIONS>"
    match = _INSTRUCTIONS_BLOCK.search(preface)
    return preface, match.group(0) if match else preface


def wrap_with_prompt(body: str, prompt: str | None) -> str:
    """Place instructions before the body and repeat them after it."""
    if not prompt:
        return body
    preface, bottom = prompt_blocks(prompt)
    return "\n".join([preface, "", body, "", bottom])


def render(
    selected: list[FileEntry],
    policy: SelectionPolicy,
    reader: FileReader | None = None,
) -> str:
    """
    Render the final bundle: body plus instruction wrapping.

    JSON output is metadata only and is never wrapped.
    """
    body = render_body(selected, policy, reader)
    if policy.format == OutputFormat.JSON and not (policy.xml_wrap or policy.tags_wrap):
        return body
    return wrap_with_prompt(body, policy.prompt_text)
