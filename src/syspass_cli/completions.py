#!/usr/bin/env python3
"""Shell completion scripts generated from the argparse command tree."""

import argparse
from typing import Dict, List

SHELLS = ("bash", "zsh")


def _subparsers(parser: argparse.ArgumentParser) -> Dict[str, argparse.ArgumentParser]:
    """Subcommand name (aliases included) -> parser."""
    for action in parser._actions:
        if isinstance(action, argparse._SubParsersAction):
            return dict(action.choices)
    return {}


def _options(parser: argparse.ArgumentParser) -> List[str]:
    options = []
    for action in parser._actions:
        if action.help == argparse.SUPPRESS:
            continue
        options.extend(action.option_strings)
    return options


def _words(parser: argparse.ArgumentParser, path: str, table: Dict[str, str]) -> None:
    """Fill table with completion words per space-joined command path."""
    children = _subparsers(parser)
    table[path] = " ".join(sorted(children) + _options(parser))
    for name, child in children.items():
        _words(child, f"{path} {name}".strip(), table)


def bash_script(parser: argparse.ArgumentParser) -> str:
    prog = parser.prog
    func = "_" + prog.replace("-", "_")
    table: Dict[str, str] = {}
    _words(parser, "", table)

    cases = "\n".join(
        f'        "{path}") words="{words}" ;;'
        for path, words in sorted(table.items())
    )

    return f"""{func}() {{
    local cur path words word
    cur="${{COMP_WORDS[COMP_CWORD]}}"
    path=""
    for word in "${{COMP_WORDS[@]:1:COMP_CWORD-1}}"; do
        case "$word" in
            -*) ;;
            *) path="${{path:+$path }}$word" ;;
        esac
    done
    case "$path" in
{cases}
        *) words="" ;;
    esac
    COMPREPLY=($(compgen -W "$words" -- "$cur"))
}}
complete -F {func} {prog}
"""


def zsh_script(parser: argparse.ArgumentParser) -> str:
    return "autoload -U +X bashcompinit && bashcompinit\n" + bash_script(parser)


def generate(parser: argparse.ArgumentParser, shell: str) -> str:
    """Completion script for the given shell."""
    if shell == "zsh":
        return zsh_script(parser)
    return bash_script(parser)
