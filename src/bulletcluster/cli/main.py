"""Command-line interface for the spectral pipeline.

Every project task is a subcommand::

    bulletcluster init-config          # write a fresh .env template
    bulletcluster check-config         # validate .env
    bulletcluster create-dirs          # create data/, plots/, logs/, database/
    bulletcluster setup-database       # provision PostgreSQL and apply the schema
    bulletcluster ingest               # load data/raw catalogs into the database
    bulletcluster process              # derive spectral features
    bulletcluster analyze              # environment analysis and plots
    bulletcluster run                  # ingest + process + analyze
    bulletcluster clean                # remove processed products
    bulletcluster check                # configuration, libraries, database
"""

import sys
import argparse
import logging
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from bulletcluster.database import (
    check_connection,
    get_engine,
    provision_database,
    render_schema_sql,
)
from bulletcluster.pipeline import PipelineOrchestrator
from bulletcluster.schemas import CLIConfig, ParamConfig, resolve_config
from bulletcluster.schemas.env_file import (
    ConfigurationError,
    check_env_file,
    write_env_template,
)
from bulletcluster.schemas.initialization import (
    cli_overrides_from_args,
    init_runtime_config,
    load_config,
)
from bulletcluster.setup_directories import clean_processed, setup_output_directories

__all__ = ['build_parser', 'main']

logger = logging.getLogger(__name__)

LIBRARIES = ("numpy", "pandas", "scipy", "pyarrow", "sqlalchemy", "psycopg2-binary",
             "pydantic", "python-dotenv", "matplotlib")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bulletcluster",
        description="Bullet Cluster spectral environment pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  bulletcluster init-config
  bulletcluster --env-file prod.env setup-database
  bulletcluster --base-dir /scratch/bullet run
  bulletcluster -v ingest --batch-size 5000
        """,
    )
    parser.add_argument("--env-file", default=".env",
                        help="Configuration file (default: .env)")
    parser.add_argument("--base-dir",
                        help="Project root for data/, plots/, logs/ (overrides BASE_DIR)")
    parser.add_argument("--database-url",
                        help="SQLAlchemy URL, e.g. sqlite:///data/spectra.db (overrides DATABASE_URL)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable DEBUG logging")

    sub = parser.add_subparsers(dest="command", metavar="<command>")
    sub.required = True

    sub.add_parser("init-config", help="Write a configuration template")
    sub.add_parser("check-config", help="Validate the configuration file")
    sub.add_parser("create-dirs", help="Create the project directory structure")
    sub.add_parser("setup-database", help="Create database, role and schema")

    ingest = sub.add_parser("ingest", help="Load raw catalogs into the database")
    ingest.add_argument("--batch-size", type=int, help="Rows per insert batch (overrides SDSS_BATCH_SIZE)")

    process = sub.add_parser("process", help="Derive spectral features")
    process.add_argument("--chunk-size", type=int, help="Rows read per chunk")

    sub.add_parser("analyze", help="Run environment analysis")

    run = sub.add_parser("run", help="Run ingest, process and analyze")
    run.add_argument("--batch-size", type=int, help="Rows per insert batch")
    run.add_argument("--chunk-size", type=int, help="Rows read per chunk")

    sub.add_parser("clean", help="Remove processed data products")
    sub.add_parser("check", help="Check configuration, libraries and database connection")

    return parser


def _config_without_env(args):
    """Configuration from defaults and CLI only, for commands that work without .env."""
    cli_cfg = CLIConfig.model_validate(cli_overrides_from_args(args))
    return resolve_config(ParamConfig(), None, cli_cfg)


def _optional_config(args):
    """Resolved configuration, falling back to defaults when the env file is missing."""
    if Path(args.env_file).is_file():
        return load_config(args.env_file, cli_overrides_from_args(args))
    return _config_without_env(args)


def cmd_init_config(args) -> int:
    backup = write_env_template(args.env_file)
    if backup:
        print(f"⚠ {args.env_file} already exists. Backup created as {backup}")
    print(f"✓ Configuration template created: {args.env_file}")
    print(f"  Please edit {args.env_file} with your credentials")
    return 0


def cmd_check_config(args) -> int:
    check_env_file(args.env_file)
    config = load_config(args.env_file, cli_overrides_from_args(args))
    print(f"✓ Configuration validated: {args.env_file}")
    print(f"  Database: {config.database.display_url()}")
    return 0


def cmd_create_dirs(args) -> int:
    config = _optional_config(args)
    dirs = setup_output_directories(config.base_dir)
    print("✓ Directory structure created")
    for name, path in dirs.items():
        print(f"  {name:<10} {path}")
    return 0


def cmd_setup_database(args) -> int:
    check_env_file(args.env_file)
    config = init_runtime_config(args)

    schema_file = Path(config.output_dirs["database"]) / "schema.sql"
    if not schema_file.exists():
        schema_file.write_text(render_schema_sql("postgresql", app_user=config.database.user))
        print(f"✓ Schema written: {schema_file}")

    provision_database(config)
    print("✓ Database setup complete")
    return 0


def _run_stages(args, stages) -> int:
    config = init_runtime_config(args)
    orchestrator = PipelineOrchestrator(config)
    results = orchestrator.run(stages=stages)

    if "ingest" in results:
        ok = [r for r in results["ingest"] if "error" not in r]
        failed = [r for r in results["ingest"] if "error" in r]
        print(f"✓ Ingested {len(ok)} file(s), {sum(r['inserted'] for r in ok)} new record(s)")
        for r in failed:
            print(f"❌ {r['file_id']}: {r['error']}")
    if "process" in results:
        print(f"✓ Processed {results['process']['rows']} record(s)")
        if results["process"]["path"]:
            print(f"  Features: {results['process']['path']}")
    if "analyze" in results:
        n_sig = int(results["analyze"]["tests"]["significant"].sum())
        print(f"✓ Analysis complete: {len(results['analyze']['tests'])} feature(s), {n_sig} significant")
        print(f"  Results: {config.output_dirs['results']}")
    print(f"  Log: {orchestrator.log_path}")

    if "ingest" in results and any("error" in r for r in results["ingest"]):
        return 1
    return 0


def cmd_ingest(args) -> int:
    return _run_stages(args, ["ingest"])


def cmd_process(args) -> int:
    return _run_stages(args, ["process"])


def cmd_analyze(args) -> int:
    return _run_stages(args, ["analyze"])


def cmd_run(args) -> int:
    return _run_stages(args, ["ingest", "process", "analyze"])


def cmd_clean(args) -> int:
    config = _optional_config(args)
    dirs = setup_output_directories(config.base_dir)
    removed = clean_processed(dirs)
    print(f"✓ Cleaned {removed} processed item(s) from {dirs['processed']}")
    return 0


def cmd_check(args) -> int:
    check_env_file(args.env_file)
    config = load_config(args.env_file, cli_overrides_from_args(args))
    print(f"✓ Configuration validated: {args.env_file}")

    for name in LIBRARIES:
        try:
            print(f"  {name:<16} {version(name)}")
        except PackageNotFoundError:
            print(f"  {name:<16} not installed")

    engine = get_engine(config)
    try:
        connected = check_connection(engine)
    finally:
        engine.dispose()

    if not connected:
        print("❌ Database connection failed")
        return 1
    print("✓ Database connection OK")
    return 0


COMMANDS = {
    "init-config": cmd_init_config,
    "check-config": cmd_check_config,
    "create-dirs": cmd_create_dirs,
    "setup-database": cmd_setup_database,
    "ingest": cmd_ingest,
    "process": cmd_process,
    "analyze": cmd_analyze,
    "run": cmd_run,
    "clean": cmd_clean,
    "check": cmd_check,
}


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=logging.DEBUG if args.verbose else logging.INFO,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        )

    try:
        return COMMANDS[args.command](args)
    except (ConfigurationError, FileNotFoundError) as e:
        print(f"❌ {e}")
        return 1
    except ValidationError as e:
        print(f"❌ Invalid configuration:\n{e}")
        return 1
    except SQLAlchemyError as e:
        print(f"❌ Database error: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
