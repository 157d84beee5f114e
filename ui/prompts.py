"""
Interactive user prompts for the ctxpack CLI application.

Uses `inquirer` to let the user pick saved prompts to prepend to a bundle.
"""

import inquirer  # type: ignore
from inquirer.themes import GreenPassion  # type: ignore
from rich import print as pr
import typer

from core.prompts import SavedPrompt


def select_saved_prompts(prompts: list[SavedPrompt]) -> list[str]:
    """
    Ask the user which saved prompts to include.

    Args:
        prompts: The prompts available to pick from.

    Returns:
        The names of the chosen prompts. Empty if there is nothing to choose.

    Raises:
        typer.Exit: If the user cancels the prompt.
    """
    if not prompts:
        pr("[yellow]⚠ Warning:[/yellow] No saved prompts found.")
        return []

    pr("[bold green]Which saved prompts should be included?[/bold green]\n")

    choices = [
        (f"{p.name} [{p.origin}]", p.name) for p in prompts
    ]
    questions = [
        inquirer.Checkbox(
            "prompts",
            message="Use [SPACE] to toggle and [ENTER] to confirm",
            choices=choices,
        ),
    ]

    answers = inquirer.prompt(questions, theme=GreenPassion())

    if answers is None:
        raise typer.Exit()

    return list(answers["prompts"])
