"""CLI for QuantaVault: generate, score, audit, import, vault (create/add/list/update/remove/favorite/changepw)."""

import argparse
import logging
import sys
from getpass import getpass

from rich import print
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .auditor import calculate_security_score, run_security_check
from .config import load_config, vault_path
from .errors import QuantaVaultError
from .evaluator import evaluate_password, security_level
from .generator import MIN_LENGTH, MAX_LENGTH, MIN_WORDS, MAX_WORDS, generate, generate_passphrase
from .importer import FORMATS, parse_csv
from .models import CATEGORIES, DEFAULT_CATEGORY, GeneratorConfig
from .service import FAVORITES, PasswordService, validate_form
from .vault import EncryptedVaultStore, change_master_password, create_vault

logger = logging.getLogger("quantavault.cli")

LEVEL_COLOURS = {"high": "green", "medium": "yellow", "low": "red"}
SEVERITY_COLOURS = {"critical": "bold red", "high": "red", "medium": "yellow", "low": "cyan"}


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.WARNING),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=False, show_path=False)],
    )


def mask_password(password: str) -> str:
    return "•" * len(password)


def _bounded(lo: int, hi: int):
    def parse(value: str) -> int:
        n = int(value)
        if not lo <= n <= hi:
            raise argparse.ArgumentTypeError(f"must be between {lo} and {hi}")
        return n
    return parse


def _open_service(args) -> PasswordService:
    path = args.file or vault_path(args.cfg)
    master = getpass("Vault master password: ")
    store = EncryptedVaultStore(master, path)
    return PasswordService(store, args.owner or args.cfg["owner"])


def _generator_defaults(cfg) -> GeneratorConfig:
    known = GeneratorConfig.__dataclass_fields__
    return GeneratorConfig(**{k: v for k, v in cfg.get("generator", {}).items() if k in known})


def _level_text(score: int) -> str:
    level = security_level(score)
    return f"[{LEVEL_COLOURS[level]}]{score} ({level})[/{LEVEL_COLOURS[level]}]"


def cmd_generate(args):
    config = GeneratorConfig(
        length=args.length,
        lowercase=not args.no_lower,
        uppercase=not args.no_upper,
        digits=not args.no_digits,
        symbols=not args.no_symbols,
        exclude_ambiguous=args.exclude_ambiguous,
    )
    for i in range(args.copies):
        pw = generate(config)
        print(f"[bold green]Password #{i+1}:[/bold green] {pw}")


def cmd_passphrase(args):
    for i in range(args.copies):
        print(f"[bold green]Passphrase #{i+1}:[/bold green] {generate_passphrase(args.words, args.separator)}")


def cmd_score(args):
    result = evaluate_password(args.password)
    header = f"Score: {result['score']} / 100 — {result['level']}"
    body = f"Estimated entropy: {result['entropy']:.1f} bits"
    print(Panel(body, title=header, border_style=LEVEL_COLOURS[result["level"]]))
    if result["explanations"]:
        print("[bold]Detections:[/bold]")
        for e in result["explanations"]:
            print(f" • {e}")
    if result["suggestions"]:
        print("\n[bold]Suggestions:[/bold]")
        for s in result["suggestions"]:
            print(f" • {s}")


def cmd_audit(args):
    svc = _open_service(args)
    records = svc.list()
    findings = run_security_check(records)
    two_factor = args.two_factor if args.two_factor is not None else args.cfg.get("two_factor_score", 0)
    score = calculate_security_score(records, two_factor=two_factor)

    breakdown = "\n".join(f"{k}: {v}" for k, v in score.breakdown.items())
    print(Panel(breakdown, title=f"Security score: {score.overall} / 100"))
    if not findings:
        print("[green]No issues found.[/green]")
        return
    titles = {r.id: r.title for r in records}
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Severity")
    table.add_column("Issue")
    table.add_column("Affected")
    for f in findings:
        colour = SEVERITY_COLOURS[f.severity]
        table.add_row(
            f"[{colour}]{f.severity}[/{colour}]",
            f"{f.title}\n{f.description}",
            ", ".join(titles.get(i, i) for i in f.record_ids),
        )
    print(table)


def cmd_import(args):
    with open(args.input, "r", encoding="utf-8") as fh:
        candidates = parse_csv(fh.read(), args.format)
    if not candidates:
        print("[yellow]No valid passwords found in the file.[/yellow]")
        return
    if args.dry_run:
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Title")
        table.add_column("Username")
        table.add_column("URL")
        for c in candidates:
            table.add_row(c.title, c.username, c.url or "")
        print(table)
        print(f"[green]Found {len(candidates)} passwords to import.[/green]")
        return
    result = _open_service(args).import_candidates(candidates)
    if result.imported:
        msg = f"Successfully imported {len(result.imported)} passwords"
        if result.failed:
            msg += f". {len(result.failed)} failed."
        print(f"[green]{msg}[/green]")
    else:
        print("[red]Failed to import any passwords.[/red]")
        return 1


# Vault subcommands

def cmd_vault_create(args):
    path = args.file or vault_path(args.cfg)
    master = getpass("Enter new master password: ")
    confirm = getpass("Confirm master password: ")
    if master != confirm:
        print("[red]Master password mismatch — aborting.[/red]")
        return 1
    create_vault(master, path, args.cfg.get("kdf") or None)
    print(f"[green]Created vault at:[/green] {path}")


def cmd_vault_add(args):
    svc = _open_service(args)
    fields = {
        "title": args.title or input("Title (e.g., site): "),
        "username": args.username or input("Username: "),
        "secret": args.password or getpass("Password (input hidden, empty to generate): "),
        "url": args.url,
        "notes": args.notes,
        "category": args.category,
    }
    if not fields["secret"]:
        fields["secret"] = generate(_generator_defaults(args.cfg))
        print("[cyan]Generated a new password.[/cyan]")
    errors = validate_form(fields)
    if errors:
        for k, v in errors.items():
            print(f"[red]{k}: {v}[/red]")
        return 1
    record = svc.create(**fields)
    print(f"[green]Entry added to vault.[/green] Strength: {_level_text(record.strength_score)}")


def cmd_vault_list(args):
    svc = _open_service(args)
    entries = svc.search(args.search or "", args.category, descending=args.desc)
    if not entries:
        print("[yellow]No entries.[/yellow]")
        return
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID")
    table.add_column("★", width=2)
    table.add_column("Title")
    table.add_column("Username")
    table.add_column("Password")
    table.add_column("Category")
    table.add_column("Strength")
    for e in entries:
        table.add_row(
            e.id[:8],
            "★" if e.favorite else "",
            e.title,
            e.username,
            e.secret if args.show else mask_password(e.secret),
            e.category,
            _level_text(e.strength_score),
        )
    print(table)


def _resolve_id(svc: PasswordService, prefix: str) -> str:
    matches = [r.id for r in svc.list() if r.id.startswith(prefix)]
    if len(matches) != 1:
        raise QuantaVaultError(f"{'no' if not matches else 'ambiguous'} entry id: {prefix}")
    return matches[0]


def cmd_vault_update(args):
    svc = _open_service(args)
    record_id = _resolve_id(svc, args.id)
    fields = {k: getattr(args, k) for k in ("title", "username", "url", "notes", "category") if getattr(args, k) is not None}
    if args.new_password:
        fields["secret"] = getpass("New password (input hidden): ")
    if not fields:
        print("[yellow]Nothing to update.[/yellow]")
        return
    record = svc.update(record_id, **fields)
    print(f"[green]Entry updated.[/green] Strength: {_level_text(record.strength_score)}")


def cmd_vault_remove(args):
    svc = _open_service(args)
    svc.delete(_resolve_id(svc, args.id))
    print("[green]Removed entry.[/green]")


def cmd_vault_favorite(args):
    svc = _open_service(args)
    record = svc.toggle_favorite(_resolve_id(svc, args.id))
    print(f"[green]{record.title} is {'now' if record.favorite else 'no longer'} a favorite.[/green]")


def cmd_vault_changepw(args):
    """Change the master password: decrypt using old password then re-encrypt with new password."""
    path = args.file or vault_path(args.cfg)
    old = getpass("Current master password: ")
    new = getpass("New master password: ")
    confirm = getpass("Confirm new master password: ")
    if new != confirm:
        print("[red]New password mismatch — aborting.[/red]")
        return 1
    change_master_password(old, new, path)
    print("[green]Master password changed and vault re-encrypted.[/green]")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="quantavault")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="cmd", required=True)

    gen = sub.add_parser("generate", help="Generate one or more passwords")
    gen.add_argument("--length", type=_bounded(MIN_LENGTH, MAX_LENGTH), default=16, help="Password length")
    gen.add_argument("--no-symbols", action="store_true", help="Disable symbols")
    gen.add_argument("--no-upper", action="store_true", help="Disable uppercase")
    gen.add_argument("--no-lower", action="store_true", help="Disable lowercase")
    gen.add_argument("--no-digits", action="store_true", help="Disable digits")
    gen.add_argument("--exclude-ambiguous", action="store_true", help="Drop look-alike characters (i l 1 L o O 0)")
    gen.add_argument("--copies", type=int, default=1, help="How many passwords to generate")
    gen.set_defaults(func=cmd_generate)

    pp = sub.add_parser("passphrase", help="Generate a memorable passphrase")
    pp.add_argument("--words", type=_bounded(MIN_WORDS, MAX_WORDS), default=4, help="Number of words")
    pp.add_argument("--separator", type=str, default="-", help="Separator between words")
    pp.add_argument("--copies", type=int, default=1, help="How many passphrases to generate")
    pp.set_defaults(func=cmd_passphrase)

    sc = sub.add_parser("score", help="Score a password and show suggestions")
    sc.add_argument("password", type=str, help="Password to evaluate (wrap in quotes)")
    sc.set_defaults(func=cmd_score)

    def vault_args(p):
        p.add_argument("--file", "-f", type=str, help="Path to vault file")
        p.add_argument("--owner", type=str, help="Owner id (defaults to config)")

    au = sub.add_parser("audit", help="Audit the vault for weak, reused and stale passwords")
    vault_args(au)
    au.add_argument("--two-factor", type=_bounded(0, 100), help="Share of accounts with 2FA enabled (0-100)")
    au.set_defaults(func=cmd_audit)

    im = sub.add_parser("import", help="Import passwords from a CSV export")
    vault_args(im)
    im.add_argument("input", type=str, help="CSV file to import")
    im.add_argument("--format", choices=FORMATS, default="generic", help="Export format")
    im.add_argument("--dry-run", action="store_true", help="Preview parsed entries without importing")
    im.set_defaults(func=cmd_import)

    v = sub.add_parser("vault", help="Vault operations")
    vsub = v.add_subparsers(dest="vcmd", required=True)

    vc_create = vsub.add_parser("create", help="Create a new vault")
    vc_create.add_argument("--file", "-f", type=str, help="Path to vault file")
    vc_create.set_defaults(func=cmd_vault_create)

    vc_add = vsub.add_parser("add", help="Add an entry to the vault")
    vault_args(vc_add)
    vc_add.add_argument("--title", type=str, help="Entry title (site)")
    vc_add.add_argument("--username", type=str, help="Username")
    vc_add.add_argument("--password", type=str, help="Password (avoid passing via CLI in public shells)")
    vc_add.add_argument("--url", type=str, help="Optional URL")
    vc_add.add_argument("--notes", type=str, help="Optional notes")
    vc_add.add_argument("--category", choices=CATEGORIES, default=DEFAULT_CATEGORY)
    vc_add.set_defaults(func=cmd_vault_add)

    vc_list = vsub.add_parser("list", help="List entries in the vault")
    vault_args(vc_list)
    vc_list.add_argument("--search", "-s", type=str, help="Filter by title, username or URL")
    vc_list.add_argument("--category", choices=CATEGORIES + (FAVORITES,), help="Filter by category")
    vc_list.add_argument("--desc", action="store_true", help="Sort titles descending")
    vc_list.add_argument("--show", action="store_true", help="Show passwords instead of masking them")
    vc_list.set_defaults(func=cmd_vault_list)

    vc_up = vsub.add_parser("update", help="Edit an entry")
    vault_args(vc_up)
    vc_up.add_argument("id", type=str, help="Entry id (prefix shown in list)")
    vc_up.add_argument("--title", type=str)
    vc_up.add_argument("--username", type=str)
    vc_up.add_argument("--url", type=str)
    vc_up.add_argument("--notes", type=str)
    vc_up.add_argument("--category", choices=CATEGORIES)
    vc_up.add_argument("--new-password", action="store_true", help="Prompt for a new password")
    vc_up.set_defaults(func=cmd_vault_update)

    vc_rm = vsub.add_parser("remove", help="Remove entry by id")
    vault_args(vc_rm)
    vc_rm.add_argument("id", type=str, help="Entry id (prefix shown in list)")
    vc_rm.set_defaults(func=cmd_vault_remove)

    vc_fav = vsub.add_parser("favorite", help="Toggle the favorite flag of an entry")
    vault_args(vc_fav)
    vc_fav.add_argument("id", type=str, help="Entry id (prefix shown in list)")
    vc_fav.set_defaults(func=cmd_vault_favorite)

    vc_chpw = vsub.add_parser("changepw", help="Change the vault master password")
    vc_chpw.add_argument("--file", "-f", type=str, help="Path to vault file")
    vc_chpw.set_defaults(func=cmd_vault_changepw)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    args.cfg = load_config()
    configure_logging("DEBUG" if args.verbose else args.cfg.get("log_level", "WARNING"))
    try:
        return args.func(args) or 0
    except QuantaVaultError as e:
        print(f"[red]{e}[/red]")
        return 1
    except OSError as e:
        logger.debug("I/O failure", exc_info=True)
        print(f"[red]{e}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
