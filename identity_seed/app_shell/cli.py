import argparse
import logging
import sys
from pathlib import Path

from identity_seed.app_shell.config import Settings, load_settings
from identity_seed.app_shell.context import ServiceContext
from identity_seed.app_shell.startup import (
    StartupError,
    migrate_subsystems,
    run_startup,
    seed_superuser,
)
from identity_seed.components.migrations import resolve_credentials

logger = logging.getLogger("cli")


def get_context(rules_path: str | None) -> ServiceContext:
    try:
        settings = load_settings(Path(rules_path) if rules_path else None)
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        sys.exit(1)
    return ServiceContext.create(settings)


def handle_start(ctx: ServiceContext, args: argparse.Namespace) -> None:
    run_startup(ctx)


def handle_migrate(ctx: ServiceContext, args: argparse.Namespace) -> None:
    names = args.subsystem or None
    try:
        results = migrate_subsystems(ctx, names)
    except KeyError as e:
        logger.error(str(e))
        sys.exit(1)
    for result in results:
        if result.skipped_reason:
            print(f"{result.subsystem}: skipped ({result.skipped_reason})")
        else:
            print(
                f"{result.subsystem}: version {result.current_version} "
                f"(applied {len(result.applied)})"
            )


def handle_seed(ctx: ServiceContext, args: argparse.Namespace) -> None:
    result = seed_superuser(ctx)
    print(f"super-user '{result.participant_id}': {result.state.value}")


def handle_status(ctx: ServiceContext, args: argparse.Namespace) -> None:
    """Print schema versions and super-user presence. Never prints secrets."""
    settings: Settings = ctx.settings
    for migrate_input in settings.subsystems:
        if not migrate_input.enabled:
            print(f"{migrate_input.subsystem}: disabled")
            continue
        store = ctx.connector.connect(resolve_credentials(migrate_input, ctx.vault))
        try:
            if store.has_history():
                print(f"{migrate_input.subsystem}: version {store.current_version()}")
            else:
                print(f"{migrate_input.subsystem}: not migrated")
        finally:
            store.close()

    participant_id = settings.superuser.participant_id
    try:
        present = ctx.directory.exists(participant_id)
    except Exception as e:
        logger.error(f"Could not query directory: {e}")
        sys.exit(1)
    print(f"super-user '{participant_id}': {'present' if present else 'missing'}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Identity service startup tasks")
    parser.add_argument(
        "--rules", help="Path to rules.yaml (default: $IH_RULES_PATH or ./rules.yaml)"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # start
    subparsers.add_parser("start", help="Run all migrations, then seed the super-user")

    # migrate
    migrate_parser = subparsers.add_parser("migrate", help="Apply pending schema migrations")
    migrate_parser.add_argument(
        "--subsystem", action="append", help="Only migrate this subsystem (repeatable)"
    )

    # seed
    subparsers.add_parser("seed", help="Create the super-user if missing")

    # status
    subparsers.add_parser("status", help="Show schema versions and super-user presence")

    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    ctx = get_context(args.rules)

    handlers = {
        "start": handle_start,
        "migrate": handle_migrate,
        "seed": handle_seed,
        "status": handle_status,
    }
    try:
        handlers[args.command](ctx, args)
    except StartupError:
        # already logged at critical
        sys.exit(1)


if __name__ == "__main__":
    main()
