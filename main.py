"""
ctxpack CLI Entry Point.

ctxpack bundles the text files of a project into a single blob for pasting
into a large-language-model prompt, while tracking how many tokens the
bundle costs. The pipeline runs in four stages:

1.  **Configuration**: Defaults, the global config, package manifests, the
    project rc file, an optional profile and command-line flags are merged
    into one SelectionPolicy (`core/config.py`).
2.  **Scan**: Files are discovered through include/exclude globs and ignore
    files, then classified and measured on a pool of worker threads
    (`core/scanning.py`).
3.  **Pack**: Eligible files are ordered and admitted under the token budget;
    strict mode re-measures the real output and trims it until it fits
    (`core/packing.py`).
4.  **Render**: The selection becomes markdown, plain text, tag-wrapped or
    XML output, optionally wrapped with instructions (`core/rendering.py`).

Usage:
    $ ctxpack scan . --by-dir
    $ ctxpack copy . --max-tokens 50000 --prompt "Review this code" --clip

Dependencies:
    - Typer: CLI argument parsing and app structure.
    - Rich: Terminal UI, tables, trees and progress.
    - Inquirer: Interactive saved-prompt picker.
    - tiktoken: Token counting.
    - pathspec: gitignore-style glob matching.
"""

import atexit
from dataclasses import replace
from pathlib import Path
from typing import Annotated
import json

import typer
from rich import print as pr
from rich.console import Console

from adapters.clipboard import ClipboardClient
from constants import APP_NAME, PROJECT_CONFIG_FILE_NAME
from core.config import (
    ConfigLayer,
    find_profile,
    global_config_path,
    resolve_policy,
    write_default_config,
)
from core.exceptions import (
    ClipboardError,
    DiscoveryError,
    FileIOError,
    TokenizerInitError,
)
from core.file_io import FilesystemFileWriter
from core.models import ScanResult, SelectionPolicy
from core.prompts import load_saved_prompts
from core.scanning import scan_with_display
from core.session import (
    SelectionState,
    apply_scan_result,
    eligible_files,
    pack_selection,
)
from core.tokens import dispose_token_counters, get_token_counter
from models import OutputFormat, PackOrder
from ui.progress_display import RichProgressDisplay
from ui.prompts import select_saved_prompts
from ui.report import by_dir_table, print_scan_report, scan_json, tree_view
from utils import human_bytes, split_globs

app = typer.Typer(
    name=APP_NAME,
    help="Bundle project files for an LLM prompt, with token inspection and budgets.",
    no_args_is_help=True,
)

# Bundle text and JSON go to stdout; everything meant for the user goes here.
err_console = Console(stderr=True)

atexit.register(dispose_token_counters)


DirArg = Annotated[
    Path,
    typer.Argument(
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
        help="Directory to scan. Defaults to the current directory.",
    ),
]
IncludeOpt = Annotated[
    list[str] | None,
    typer.Option("--include", help="Include globs (comma separated or repeated)."),
]
ExcludeOpt = Annotated[
    list[str] | None,
    typer.Option("--exclude", help="Exclude globs (comma separated or repeated)."),
]
NoGitignoreOpt = Annotated[
    bool, typer.Option("--no-gitignore", help="Do not respect .gitignore files.")
]
NoIgnoreFileOpt = Annotated[
    bool,
    typer.Option("--no-ignore-file", help="Do not apply .ctxpackignore auto-deselection."),
]
HiddenOpt = Annotated[bool, typer.Option("--hidden", help="Include dotfiles.")]
MaxBytesOpt = Annotated[
    int | None,
    typer.Option("--max-bytes-per-file", min=0, help="Skip files larger than this."),
]
ModelOpt = Annotated[
    str | None, typer.Option("--model", help="Model name used to pick an encoding.")
]
EncodingOpt = Annotated[
    str | None,
    typer.Option("--encoding", help="Explicit tiktoken encoding (overrides --model)."),
]
ProfileOpt = Annotated[
    str | None, typer.Option("--profile", "-P", help="Named profile from config files.")
]


def scan_flags(
    include: list[str] | None,
    exclude: list[str] | None,
    no_gitignore: bool,
    no_ignore_file: bool,
    hidden: bool,
    max_bytes_per_file: int | None,
    model: str | None,
    encoding: str | None,
) -> ConfigLayer:
    """Translate scan-related CLI options into a config layer (unset stays None)."""
    return ConfigLayer(
        include=split_globs(include) or None,
        exclude=split_globs(exclude) or None,
        use_gitignore=False if no_gitignore else None,
        use_ignore_file=False if no_ignore_file else None,
        hidden=True if hidden else None,
        max_bytes_per_file=max_bytes_per_file,
        model=model,
        encoding=encoding,
    )


@app.command()
def init(
    path: DirArg = Path("."),
    global_: Annotated[
        bool,
        typer.Option("--global", help="Write ~/.ctxpack/config.json instead."),
    ] = False,
):
    """
    Create a config file with sensible defaults.

    Writes `.ctxpackrc.json` in the given directory, or the user-global
    config with `--global`. An existing file is overwritten.
    """
    target = global_config_path() if global_ else path / PROJECT_CONFIG_FILE_NAME
    try:
        written = write_default_config(target)
    except FileIOError as e:
        print_file_io_err(e)
        return
    pr(f"[green]Created {written}[/green]")


@app.command()
def scan(
    path: DirArg = Path("."),
    include: IncludeOpt = None,
    exclude: ExcludeOpt = None,
    no_gitignore: NoGitignoreOpt = False,
    no_ignore_file: NoIgnoreFileOpt = False,
    hidden: HiddenOpt = False,
    max_bytes_per_file: MaxBytesOpt = None,
    model: ModelOpt = None,
    encoding: EncodingOpt = None,
    profile: ProfileOpt = None,
    by_dir: Annotated[
        bool, typer.Option("--by-dir", help="Print the top directories by tokens.")
    ] = False,
    as_json: Annotated[
        bool, typer.Option("--json", help="Print JSON instead of a table.")
    ] = False,
):
    """
    Scan a folder and show per-file token usage.
    """
    flags = scan_flags(
        include, exclude, no_gitignore, no_ignore_file, hidden,
        max_bytes_per_file, model, encoding,
    )
    try:
        policy = load_policy(path, flags, profile)
        result = run_scan(policy)
    except (DiscoveryError, TokenizerInitError, FileIOError) as e:
        print_known_err(e)
        return
    except Exception as e:  # noqa: BLE001
        print_unexpected_err(e)
        return

    if as_json:
        typer.echo(json.dumps(scan_json(result), indent=2))
        return
    print_scan_report(result, Console(), by_dir=by_dir)


@app.command()
def copy(
    path: DirArg = Path("."),
    include: IncludeOpt = None,
    exclude: ExcludeOpt = None,
    no_gitignore: NoGitignoreOpt = False,
    no_ignore_file: NoIgnoreFileOpt = False,
    hidden: HiddenOpt = False,
    max_bytes_per_file: MaxBytesOpt = None,
    model: ModelOpt = None,
    encoding: EncodingOpt = None,
    profile: ProfileOpt = None,
    output_format: Annotated[
        OutputFormat | None,
        typer.Option("--format", "-f", help="Output format."),
    ] = None,
    out: Annotated[
        Path | None,
        typer.Option("--out", "-o", dir_okay=False, help="Write the bundle to a file."),
    ] = None,
    clip: Annotated[
        bool, typer.Option("--clip", help="Also copy the bundle to the clipboard.")
    ] = False,
    by_dir: Annotated[
        bool, typer.Option("--by-dir", help="Print the top directories to stderr.")
    ] = False,
    max_tokens: Annotated[
        int | None,
        typer.Option("--max-tokens", min=0, help="Token budget; pack files to fit."),
    ] = None,
    pack_order: Annotated[
        PackOrder | None,
        typer.Option("--pack-order", help="Order in which files are admitted."),
    ] = None,
    no_strict: Annotated[
        bool,
        typer.Option("--no-strict", help="Trust the estimate instead of re-measuring."),
    ] = False,
    no_code_fences: Annotated[
        bool, typer.Option("--no-code-fences", help="Omit ``` fences in markdown.")
    ] = False,
    header: Annotated[
        str | None, typer.Option("--header", help="Text placed before the files.")
    ] = None,
    block_separator: Annotated[
        str | None,
        typer.Option("--block-separator", help="Separator between plain-text blocks."),
    ] = None,
    xml: Annotated[
        bool, typer.Option("--xml", help="Wrap output in XML with CDATA sections.")
    ] = False,
    no_tags: Annotated[
        bool, typer.Option("--no-tags", help="Do not wrap files in <FILE_n> tags.")
    ] = False,
    prompt: Annotated[
        str | None,
        typer.Option("--prompt", help="Instructions placed before and after the files."),
    ] = None,
    prompt_file: Annotated[
        str | None, typer.Option("--prompt-file", help="Read instructions from a file.")
    ] = None,
    prompts_dir: Annotated[
        str | None,
        typer.Option("--prompts-dir", help="Extra directory of saved prompts."),
    ] = None,
    pick_prompts: Annotated[
        bool,
        typer.Option("--pick-prompts", help="Choose saved prompts interactively."),
    ] = False,
):
    """
    Scan, pack and render files into one bundle.

    The bundle is written to stdout (or --out); a summary goes to stderr.
    """
    flags = scan_flags(
        include, exclude, no_gitignore, no_ignore_file, hidden,
        max_bytes_per_file, model, encoding,
    )
    flags = replace(
        flags,
        format=output_format,
        max_tokens=max_tokens,
        pack_order=pack_order,
        strict=False if no_strict else None,
        code_fences=False if no_code_fences else None,
        header=header,
        block_separator=block_separator,
        xml_wrap=True if xml else None,
        tags_wrap=False if no_tags else None,
        prompt=prompt,
        prompt_file=prompt_file,
    )

    try:
        policy = load_policy(path, flags, profile)
        state = SelectionState.from_policy(policy)
        if pick_prompts:
            state.available_prompts = load_saved_prompts(policy.cwd, dir_hint=prompts_dir)
            state.selected_prompts = set(select_saved_prompts(state.available_prompts))

        result = run_scan(policy)
        apply_scan_result(state, result)
        eligible = eligible_files(state)
        counter = get_token_counter(policy.model, policy.encoding)
        text, selected, tokens = pack_selection(state, policy, counter)

        if out is not None:
            FilesystemFileWriter.from_path(out.resolve()).write_file(text)
            err_console.print(f"[green]Wrote {out}[/green]")
        else:
            typer.echo(text)
    except typer.Exit:
        raise
    except (DiscoveryError, TokenizerInitError, FileIOError) as e:
        print_known_err(e)
        return
    except Exception as e:  # noqa: BLE001
        print_unexpected_err(e)
        return

    if clip:
        copy_to_clipboard(text)

    if by_dir and result.by_dir:
        err_console.print(by_dir_table(result))
    err_console.print(
        f"[dim]selected={len(selected)}/{len(eligible)} tokens={tokens} "
        f"lines={sum(f.lines for f in selected)} "
        f"bytes={human_bytes(sum(f.bytes for f in selected))}[/dim]"
    )


@app.command()
def tree(
    path: DirArg = Path("."),
    include: IncludeOpt = None,
    exclude: ExcludeOpt = None,
    no_gitignore: NoGitignoreOpt = False,
    no_ignore_file: NoIgnoreFileOpt = False,
    hidden: HiddenOpt = False,
    max_bytes_per_file: MaxBytesOpt = None,
    model: ModelOpt = None,
    encoding: EncodingOpt = None,
    profile: ProfileOpt = None,
    dirs_only: Annotated[
        bool, typer.Option("--dirs-only", help="Hide individual files.")
    ] = False,
):
    """
    Show the directory tree with inclusion marks and token rollups.
    """
    flags = scan_flags(
        include, exclude, no_gitignore, no_ignore_file, hidden,
        max_bytes_per_file, model, encoding,
    )
    try:
        policy = load_policy(path, flags, profile)
        result = run_scan(policy)
    except (DiscoveryError, TokenizerInitError, FileIOError) as e:
        print_known_err(e)
        return
    except Exception as e:  # noqa: BLE001
        print_unexpected_err(e)
        return

    state = SelectionState()
    apply_scan_result(state, result)
    eligible = {f.rel_path for f in eligible_files(state)}
    dir_tree = state.tree(policy.cwd.name or ".")
    pr(tree_view(dir_tree, eligible, show_files=not dirs_only))


def load_policy(path: Path, flags: ConfigLayer, profile: str | None) -> SelectionPolicy:
    """Resolve the policy, warning when a requested profile does not exist."""
    if profile and find_profile(path, profile) is None:
        err_console.print(
            f"[yellow]⚠ Warning:[/yellow] Profile [bold]{profile}[/bold] not found; ignoring it."
        )
    return resolve_policy(path, flags, profile=profile)


def run_scan(policy: SelectionPolicy) -> ScanResult:
    """Scan with a progress bar on stderr."""
    counter = get_token_counter(policy.model, policy.encoding)
    with RichProgressDisplay() as rpd:
        return scan_with_display(policy, rpd, counter=counter)


def copy_to_clipboard(text: str) -> None:
    """Copy to the clipboard; failures are reported as a warning only."""
    try:
        mechanism = ClipboardClient().copy(text)
    except ClipboardError as e:
        err_console.print(f"[yellow]⚠ Warning:[/yellow] Could not copy to clipboard: {e.message}")
        return
    err_console.print(f"[green]Copied to clipboard ({mechanism}).[/green]")


def print_known_err(e: Exception) -> None:
    if isinstance(e, DiscoveryError):
        print_discovery_err(e)
    elif isinstance(e, TokenizerInitError):
        print_tokenizer_err(e)
    elif isinstance(e, FileIOError):
        print_file_io_err(e)
    else:
        print_unexpected_err(e)


def print_discovery_err(e: DiscoveryError) -> None:
    """
    Displays a user-friendly error message when files cannot be enumerated.

    Raises:
        typer.Exit: Always raises with exit code 1 to terminate the application.
    """
    err_console.print("❌ [bold red]Discovery Error[/bold red]")
    err_console.print(f"The files to scan could not be listed: {e.message}")
    if e.path:
        err_console.print(f"Path or pattern: [yellow]{e.path}[/yellow]")

    err_console.print(
        "\n[yellow]Quick Fix:[/yellow] Check your --include/--exclude globs and directory permissions."
    )
    if e.original_exception:
        err_console.print(f"\nTechnical details: {e.original_exception}")

    raise typer.Exit(code=1) from e


def print_tokenizer_err(e: TokenizerInitError) -> None:
    """
    Displays a user-friendly error message when the tokenizer cannot load.

    Raises:
        typer.Exit: Always raises with exit code 1 to terminate the application.
    """
    err_console.print("❌ [bold red]Tokenizer Error[/bold red]")
    err_console.print(f"Could not load the token encoding [bold]{e.encoding}[/bold].")
    err_console.print(
        "\n[yellow]Quick Fix:[/yellow] Pass a known encoding such as "
        "--encoding o200k_base or cl100k_base. The first run needs network "
        "access to download encoding data."
    )

    err_console.print("\n--- PLEASE REPORT THIS ---")
    err_console.print(f"Error Context: {e}")
    err_console.print(f"Diagnostics: {e.diagnostic_info}")
    raise typer.Exit(code=1) from e


def print_file_io_err(e: FileIOError) -> None:
    """
    Displays a user-friendly error message for file I/O operation failures.

    Prints formatted error messages to inform the user about file read/write
    issues, including the file path and diagnostic information for troubleshooting.

    Args:
        e (FileIOError): The exception that was raised, containing error details
            and file path information.

    Raises:
        typer.Exit: Always raises with exit code 1 to terminate the application.
    """
    err_console.print("❌ [bold red]File I/O Error[/bold red]")
    err_console.print(f"The app encountered an error while working with files: {e.message}")
    if e.file_path:
        err_console.print(f"File path: [yellow]{e.file_path}[/yellow]")

    err_console.print(
        "\n[yellow]Quick Fix:[/yellow] Check file permissions and available disk space."
    )
    if e.original_exception:
        err_console.print(f"\nTechnical details: {e.original_exception}")

    raise typer.Exit(code=1) from e


def print_unexpected_err(e: Exception) -> None:
    """
    Displays a user-friendly error message for unexpected errors.

    This catch-all handler ensures that any unhandled exceptions are presented
    to the user in a friendly way, rather than showing a raw Python stack trace.

    Args:
        e (Exception): The unexpected exception that was raised.

    Raises:
        typer.Exit: Always raises with exit code 1 to terminate the application.
    """
    err_console.print("❌ [bold red]Unexpected Error[/bold red]")
    err_console.print("An unexpected error occurred while processing your request.")
    err_console.print(f"\n[yellow]Error Type:[/yellow] {type(e).__name__}")
    err_console.print(f"[yellow]Error Message:[/yellow] {str(e)}")

    err_console.print("\n[yellow]What to do:[/yellow]")
    err_console.print("1. Check that the directory is readable")
    err_console.print("2. Try running the command again")
    err_console.print("3. If the problem persists, please report this issue")

    err_console.print("\n--- PLEASE REPORT THIS ---")
    err_console.print(f"Error Type: {type(e).__name__}")
    err_console.print(f"Error Message: {e}")
    if e.__cause__:
        err_console.print(f"Caused by: {e.__cause__}")

    raise typer.Exit(code=1) from e


if __name__ == "__main__":
    app()
