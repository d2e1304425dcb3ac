#!/usr/bin/env python3
"""syspass-cli - Search, create, edit and remove sysPass vault accounts.

Passwords are copied to the clipboard and cleared after a timeout, or handed
over to ssh for ssh:// accounts.
"""

import argparse
import getpass
import logging
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from importlib.metadata import PackageNotFoundError, version
from typing import Callable, List

from . import __version__
from .api import VaultAdapter, get_adapter
from .clipboard import ClipboardManager, SystemClipboard
from .completions import SHELLS, generate
from .config import Config, load_config
from .errors import (
    EXIT_FAILURE,
    EXIT_INTERRUPTED,
    EXIT_OK,
    ClipboardError,
    SyspassError,
    ValidationError,
)
from .models import Account, AccountSpec, CategorySpec, ClientSpec
from .shell import ShellLauncher
from .usage import UsageStore

logger = logging.getLogger(__name__)

ACCOUNT_TARGETS = ("account", "password", "pass")


@dataclass
class Context:
    """Components shared by one command invocation."""

    config: Config
    adapter: VaultAdapter
    usage: UsageStore
    clipboard: ClipboardManager
    shell: ShellLauncher
    quiet: bool = False
    usage_changed: bool = False
    ask: Callable[[str], str] = field(default=input)

    def close(self) -> None:
        """Persist usage, settle the clipboard and release the connection."""
        try:
            if self.usage_changed:
                self.usage.save(self.config.usage_path)
            self.clipboard.finish()
        finally:
            self.adapter.close()


def get_version():
    try:
        return version("syspass-cli")
    except PackageNotFoundError:
        return __version__


def configure_logging(debug=False, verbose=False, quiet=False):
    """Set the log level from the global flags."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    elif quiet:
        level = logging.CRITICAL + 1
    else:
        level = logging.WARNING

    logging.basicConfig(format="%(message)s", stream=sys.stderr)
    logging.getLogger("syspass_cli").setLevel(level)
    # Request bodies are logged by the transport, not by httpx
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


def build_context(args) -> Context:
    """Load config and wire up the components for one command."""
    config = load_config(args.config)
    usage_enabled = not getattr(args, "disable_usage", False)

    return Context(
        config=config,
        adapter=get_adapter(config),
        usage=UsageStore.load(config.usage_path) if usage_enabled else UsageStore(),
        clipboard=ClipboardManager(config),
        shell=ShellLauncher(config, no_shell=getattr(args, "no_shell", False)),
        quiet=args.quiet,
    )


# ============================================================================
# Prompts
# ============================================================================

def ask_prompt(ctx, text, default="", required=False):
    """Ask for a value, or return the default in quiet mode."""
    if ctx.quiet:
        return default

    suffix = f" [{default}]" if default else ""
    while True:
        try:
            answer = ctx.ask(f"{text}{suffix}: ").strip()
        except EOFError:
            answer = ""
        if answer:
            return answer
        if default or not required:
            return default
        print("A value is required", file=sys.stderr)


def get_value(ctx, given, text, default="", required=False):
    """Use the command-line value when given, prompt otherwise."""
    if given is not None and given != "":
        return given
    return ask_prompt(ctx, text, default, required)


def parse_id(value, label):
    """Parse a positive id typed at a prompt."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {label} id: {value}")
    if number <= 0:
        raise ValidationError(f"Invalid {label} id: {value}")
    return number


def ask_new_password(ctx, given=None, prompt="Password: "):
    """Get a new password from args or prompt (with confirmation)."""
    if given:
        return given
    if ctx.quiet:
        raise ValidationError("Password can't be empty")

    password = getpass.getpass(prompt)
    confirm = getpass.getpass("Confirm password: ")
    if password != confirm:
        raise ValidationError("Passwords do not match")
    if not password:
        raise ValidationError("Password can't be empty")
    return password


def parse_expiration(value):
    """Convert YYYY-MM-DD to a unix timestamp at the end of that day (UTC)."""
    if not value:
        return None
    try:
        day = datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise ValidationError(f"Invalid expiration date (expected YYYY-MM-DD): {value}")
    return int(day.replace(hour=23, minute=59, second=59, tzinfo=timezone.utc).timestamp())


def select_account(ctx, accounts: List[Account]) -> Account:
    """Let the user pick one account from a ranked list."""
    print(f"Number of accounts found: {len(accounts)}")
    for index, account in enumerate(accounts, 1):
        print(f"  {index:>2}) {account}")

    answer = ask_prompt(ctx, "Select the right account", default="1")
    try:
        index = int(answer)
    except ValueError:
        index = 0
    if not 1 <= index <= len(accounts):
        raise ValidationError(f"Invalid selection: {answer}")
    return accounts[index - 1]


def choose_category(ctx, given=None) -> int:
    """Category id from args, an existing category, or a new one."""
    if given is not None:
        return parse_id(given, "category")
    if ctx.quiet:
        raise ValidationError("Category id is required")

    for category in ctx.adapter.list_categories():
        print(f"  {category}")
    answer = ask_prompt(ctx, "Category id (empty for new)")
    if answer:
        return parse_id(answer, "category")

    spec = CategorySpec(
        name=ask_prompt(ctx, "Name", required=True),
        description=ask_prompt(ctx, "Description"),
    )
    spec.validate()
    return ctx.adapter.create_category(spec)


def choose_client(ctx, given=None, is_global=None) -> int:
    """Client id from args, an existing client, or a new one."""
    if given is not None:
        return parse_id(given, "client")
    if ctx.quiet:
        raise ValidationError("Client id is required")

    for client in ctx.adapter.list_clients():
        print(f"  {client}")
    answer = ask_prompt(ctx, "Client id (empty for new)")
    if answer:
        return parse_id(answer, "client")

    spec = ClientSpec(
        name=ask_prompt(ctx, "Name", required=True),
        description=ask_prompt(ctx, "Description"),
        is_global=ask_global(ctx, is_global),
    )
    spec.validate()
    return ctx.adapter.create_client(spec)


def ask_global(ctx, given=None, default=False):
    if given is not None:
        return bool(given)
    answer = ask_prompt(ctx, "Global (y/n)", default="y" if default else "n")
    return answer.lower() in ("y", "yes", "1", "true")


# ============================================================================
# search
# ============================================================================

def print_account(account: Account):
    print(account.name)
    if account.client_name:
        print(f"  Client:   {account.client_name}")
    print(f"  Id:       {account.id}")
    print(f"  Username: {account.login}")
    print(f"  Address:  {account.url or ''}")


def cmd_clear(args, backend=None):
    """Clear the clipboard after a delay (runs detached from a search).

    Needs no server connection; the config is read only when no delay is given.
    """
    delay = args.clear_after
    if delay is None:
        delay = load_config(args.config).password_timeout
        if delay == 0:
            return EXIT_OK

    time.sleep(delay)
    try:
        (backend or SystemClipboard()).clear()
    except ClipboardError as e:
        logger.warning("Could not clear clipboard: %s", e)
    return EXIT_OK


def find_accounts(args, ctx) -> List[Account]:
    if args.id is not None:
        return [ctx.adapter.view_account(parse_id(args.id, "account"))]

    if not args.name:
        raise ValidationError("Name or id is required")
    if args.category is not None:
        parse_id(args.category, "category")

    return ctx.adapter.search(args.name, category_id=args.category)


def cmd_search(args, ctx):
    """Search an account and retrieve its password."""
    if args.clear:
        return cmd_clear(args, ctx.clipboard.backend)

    accounts = ctx.usage.rank(find_accounts(args, ctx))

    if not accounts:
        print("No account found", file=sys.stderr)
        return EXIT_FAILURE

    if len(accounts) > 1:
        if ctx.quiet:
            logger.error("%d accounts match, refine the search", len(accounts))
            return EXIT_FAILURE
        account = select_account(ctx, accounts)
    else:
        account = accounts[0]

    account.password = ctx.adapter.fetch_password(account.id)

    if not args.disable_usage:
        ctx.usage.record_use(account.id)
        ctx.usage_changed = True

    print_account(account)

    if ctx.shell.maybe_launch(account):
        return EXIT_OK

    if args.show_password:
        print(f"  Password: {account.password}")
    elif ctx.clipboard.copy(account.password):
        print("(copied to clipboard)")

    return EXIT_OK


# ============================================================================
# new / edit
# ============================================================================

def save_account(args, ctx):
    """Create a new account."""
    # Everything checkable locally is checked before category/client lookups
    expire_date = parse_expiration(args.expiration)
    name = get_value(ctx, args.name, "Name", required=True)
    if not name or not name.strip():
        raise ValidationError("Account name can't be empty")
    if args.category is not None:
        parse_id(args.category, "category")
    if args.client is not None:
        parse_id(args.client, "client")
    password = ask_new_password(ctx, args.password)

    spec = AccountSpec(
        name=name,
        login=get_value(ctx, args.login, "Username"),
        url=get_value(ctx, args.url, "Url") or None,
        notes=get_value(ctx, args.note, "Notes") or None,
        password=password,
        expire_date=expire_date,
    )
    spec.category_id = choose_category(ctx, args.category)
    spec.client_id = choose_client(ctx, args.client, args.global_)
    spec.validate()

    logger.info("Trying to save account")
    account_id = ctx.adapter.create_account(spec)
    print(f"Account {spec.name} ({account_id}) saved.")
    return EXIT_OK


def edit_account(args, ctx):
    """Edit an existing account's data (not its password)."""
    account_id = parse_id(get_value(ctx, args.id, "Account id", required=True), "account")
    current = ctx.adapter.view_account(account_id)

    spec = AccountSpec(
        name=get_value(ctx, args.name, "Name", current.name, required=True),
        login=get_value(ctx, args.login, "Username", current.login),
        url=get_value(ctx, args.url, "Url", current.url or "") or None,
        notes=get_value(ctx, args.note, "Notes", current.notes or "") or None,
        category_id=parse_id(args.category if args.category is not None else current.category_id,
                             "category"),
        client_id=parse_id(args.client if args.client is not None else current.client_id,
                           "client"),
    )
    spec.validate(require_password=False)

    ctx.adapter.update_account(account_id, spec)
    print(f"Account {spec.name} ({account_id}) saved.")
    return EXIT_OK


def change_password(args, ctx):
    """Change an account's password."""
    account_id = parse_id(args.id, "account")
    expire_date = parse_expiration(args.expiration)
    password = ask_new_password(ctx, args.password, "New password: ")

    logger.info("Trying to change password")
    ctx.adapter.change_password(account_id, password, expire_date)
    print(f"Password changed for account {account_id}.")
    return EXIT_OK


def save_category(args, ctx, new):
    """Create or edit a category."""
    if new:
        category_id, current_name, current_description = None, "", ""
    else:
        category_id = parse_id(get_value(ctx, args.id, "Category id", required=True), "category")
        current = ctx.adapter.get_category(category_id)
        current_name, current_description = current.name, current.description or ""

    spec = CategorySpec(
        name=get_value(ctx, args.name, "Name", current_name, required=True),
        description=get_value(ctx, args.description, "Description", current_description),
    )
    spec.validate()

    if category_id is None:
        category_id = ctx.adapter.create_category(spec)
    else:
        ctx.adapter.update_category(category_id, spec)

    print(f"Category {spec.name} ({category_id}) saved.")
    return EXIT_OK


def save_client(args, ctx, new):
    """Create or edit a client."""
    if new:
        client_id, current_name, current_description, current_global = None, "", "", False
    else:
        client_id = parse_id(get_value(ctx, args.id, "Client id", required=True), "client")
        current = ctx.adapter.get_client(client_id)
        current_name = current.name
        current_description = current.description or ""
        current_global = current.is_global

    if args.global_ not in (None, 0, 1):
        raise ValidationError("Global must be 0 or 1")

    spec = ClientSpec(
        name=get_value(ctx, args.name, "Name", current_name, required=True),
        description=get_value(ctx, args.description, "Description", current_description),
        is_global=ask_global(ctx, args.global_, current_global),
    )
    spec.validate()

    if client_id is None:
        client_id = ctx.adapter.create_client(spec)
    else:
        ctx.adapter.update_client(client_id, spec)

    print(f"Client {spec.name} ({client_id}) saved.")
    return EXIT_OK


def cmd_new(args, ctx):
    """Add a new account, category or client."""
    if args.target in ACCOUNT_TARGETS:
        return save_account(args, ctx)
    if args.target == "category":
        return save_category(args, ctx, new=True)
    return save_client(args, ctx, new=True)


def cmd_edit(args, ctx):
    """Edit an account, password, category or client."""
    if args.target == "account":
        return edit_account(args, ctx)
    if args.target in ("password", "pass"):
        return change_password(args, ctx)
    if args.target == "category":
        return save_category(args, ctx, new=False)
    return save_client(args, ctx, new=False)


# ============================================================================
# remove
# ============================================================================

def cmd_remove(args, ctx):
    """Remove an account, category or client."""
    entity_id = parse_id(args.id, args.target if args.target not in ACCOUNT_TARGETS else "account")

    if args.target in ACCOUNT_TARGETS:
        removed, label = ctx.adapter.delete_account(entity_id), "Account"
    elif args.target == "category":
        removed, label = ctx.adapter.delete_category(entity_id), "Category"
    else:
        removed, label = ctx.adapter.delete_client(entity_id), "Client"

    if not removed:
        print(f"Failed to remove {label.lower()} {entity_id}", file=sys.stderr)
        return EXIT_FAILURE

    print(f"{label} {entity_id} removed.")
    return EXIT_OK


# ============================================================================
# Argument parsing
# ============================================================================

def add_global_options(parser, suppress=False):
    """Options accepted before and after the subcommand."""
    default = {"default": argparse.SUPPRESS} if suppress else {}
    parser.add_argument('-c', '--config', help='Path to config file (default: ~/.syspass/config.json)',
                        **({"default": argparse.SUPPRESS} if suppress else {"default": None}))
    parser.add_argument('-d', '--debug', action='store_true', help='Output debug information', **default)
    parser.add_argument('-v', '--verbose', action='store_true', help='Output more information', **default)
    parser.add_argument('-q', '--quiet', action='store_true', help='Do not output any message or prompt',
                        **default)


def add_account_fields(parser):
    parser.add_argument('-n', '--name', help='Account name')
    parser.add_argument('-l', '--login', help='Username')
    parser.add_argument('-u', '--url', help='Url for site (ssh://host opens a shell on search)')
    parser.add_argument('-o', '--note', help='Notes text')
    parser.add_argument('-a', '--category', type=int, help='Category id')
    parser.add_argument('-i', '--client', type=int, help='Client id')


def add_category_fields(parser):
    parser.add_argument('-i', '--id', type=int, help='Category id')
    parser.add_argument('-n', '--name', help='Name')
    parser.add_argument('-e', '--description', help='Description')


def add_client_fields(parser):
    parser.add_argument('-i', '--id', type=int, help='Client id')
    parser.add_argument('-n', '--name', help='Name')
    parser.add_argument('-e', '--description', help='Description')
    parser.add_argument('-g', '--global', dest='global_', type=int, choices=[0, 1],
                        help='Should the client be global (1) or not (0)')


def build_parser():
    common = argparse.ArgumentParser(add_help=False)
    add_global_options(common, suppress=True)

    parser = argparse.ArgumentParser(
        prog='syspass',
        description="syspass-cli - Command-line client for sysPass password vaults"
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f"%(prog)s {get_version()}"
    )
    add_global_options(parser)
    parser.add_argument('--completions', choices=SHELLS, help='Print shell completion script')
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # search
    search_parser = subparsers.add_parser('search', aliases=['find'], parents=[common],
                                          help='Search for account password')
    search_parser.add_argument('name', nargs='?', help='Search for given account')
    search_parser.add_argument('-i', '--id', type=int, help='Account id')
    search_parser.add_argument('-a', '--category', type=int, help='Category id')
    search_parser.add_argument('-p', '--show-password', action='store_true',
                               help='Show password as plain text. Do not copy to clipboard')
    search_parser.add_argument('-s', '--no-shell', action='store_true',
                               help='Do not open a shell if the url starts with ssh://')
    search_parser.add_argument('-u', '--disable-usage', action='store_true',
                               help='Do not sort by usage and do not track usage history')
    search_parser.add_argument('--clear', action='store_true', help=argparse.SUPPRESS)
    search_parser.add_argument('--clear-after', type=int, help=argparse.SUPPRESS)

    # new
    new_parser = subparsers.add_parser('new', aliases=['add'], help='Add a new entity')
    new_targets = new_parser.add_subparsers(dest='target', required=True)

    new_account = new_targets.add_parser('account', aliases=['password', 'pass'], parents=[common],
                                         help='Add a new account')
    add_account_fields(new_account)
    new_account.add_argument('-g', '--global', dest='global_', type=int, choices=[0, 1],
                             help='Global flag for a client created on the fly')
    new_account.add_argument('-p', '--password', help='Password')
    new_account.add_argument('-e', '--expiration', help='Expiration YYYY-MM-DD')

    add_category_fields(new_targets.add_parser('category', parents=[common], help='Add a new category'))
    add_client_fields(new_targets.add_parser('client', parents=[common], help='Add a new client'))

    # edit
    edit_parser = subparsers.add_parser('edit', aliases=['change'], help='Edit entity')
    edit_targets = edit_parser.add_subparsers(dest='target', required=True)

    edit_account_parser = edit_targets.add_parser('account', parents=[common],
                                                  help='Edit account data')
    edit_account_parser.add_argument('--id', type=int, help='Account id')
    add_account_fields(edit_account_parser)

    edit_password = edit_targets.add_parser('password', aliases=['pass'], parents=[common],
                                            help='Change account password')
    edit_password.add_argument('-i', '--id', type=int, required=True, help='Account id')
    edit_password.add_argument('-p', '--password', help='New password')
    edit_password.add_argument('-e', '--expiration', help='Expiration YYYY-MM-DD')

    add_category_fields(edit_targets.add_parser('category', parents=[common], help='Edit category'))
    add_client_fields(edit_targets.add_parser('client', parents=[common], help='Edit client'))

    # remove
    remove_parser = subparsers.add_parser('remove', aliases=['delete'], help='Remove entity')
    remove_targets = remove_parser.add_subparsers(dest='target', required=True)
    for target, aliases in (('account', ['password', 'pass']), ('category', []), ('client', [])):
        target_parser = remove_targets.add_parser(target, aliases=aliases, parents=[common],
                                                  help=f'Remove {target}')
        target_parser.add_argument('-i', '--id', type=int, required=True, help=f'{target.capitalize()} id')

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.debug, args.verbose, args.quiet)

    if args.completions:
        print(generate(parser, args.completions))
        sys.exit(EXIT_OK)

    if not args.command:
        parser.print_help()
        sys.exit(EXIT_FAILURE)

    commands = {
        'search': cmd_search,
        'find': cmd_search,
        'new': cmd_new,
        'add': cmd_new,
        'edit': cmd_edit,
        'change': cmd_edit,
        'remove': cmd_remove,
        'delete': cmd_remove,
    }

    try:
        if getattr(args, "clear", False):
            sys.exit(cmd_clear(args))

        ctx = build_context(args)
        try:
            code = commands[args.command](args, ctx)
        finally:
            ctx.close()
    except SyspassError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(e.exit_code)
    except KeyboardInterrupt:
        # A pending clipboard clear dies with the process
        print("\nInterrupted", file=sys.stderr)
        sys.exit(EXIT_INTERRUPTED)

    sys.exit(code)


if __name__ == '__main__':
    main()
