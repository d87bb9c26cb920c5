from __future__ import annotations

import argparse
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

from inventory_import.auth.session import load_session
from inventory_import.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config_or_default
from inventory_import.db.connection import connect
from inventory_import.db.store import DataStore, PostgresStore, StoreError
from inventory_import.logging.error_log import ErrorLogBuffer
from inventory_import.logging.init import log_summary, set_debug, setup_logging
from inventory_import.models.config_models import ImportConfig
from inventory_import.models.import_result import ImportResult
from inventory_import.models.record_kind import ImportRecordKind
from inventory_import.services.detector import detect
from inventory_import.services.orchestrator import import_csv
from inventory_import.services.summary import render_summary_line
from inventory_import.services.templates import render_template
from inventory_import.tabular.reader import CSVParseError

"""CLI entrypoint.

Subcommands:
    detect PATH                      print the detected CSV kind
    template KIND [-o FILE]          write the CSV template for KIND
    import PATH --user-id ID [...]   import PATH into the store

Exit codes (import): 0 every row succeeded, 2 partial failure, 1 fatal or
nothing imported. detect / template return 0 on success and 1 otherwise.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


@contextmanager
def _open_store(cfg: ImportConfig) -> Iterator[DataStore]:  # pragma: no cover (thin wrapper; tests patch it)
    with connect(cfg.database) as conn:
        yield PostgresStore(conn)


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env via python-dotenv (override=True: .env wins over the environment)."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="inventory-import",
        description="CSV bulk import for products / inventory / orders",
    )
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    p_detect = sub.add_parser("detect", help="Print the detected CSV kind")
    p_detect.add_argument("path", type=Path)

    p_tpl = sub.add_parser("template", help="Write a CSV template")
    p_tpl.add_argument("kind", choices=["products", "inventory", "orders"])
    p_tpl.add_argument("-o", "--output", type=Path, default=None, help="Output file (default: stdout)")

    p_imp = sub.add_parser("import", help="Import a CSV file")
    p_imp.add_argument("path", type=Path)
    p_imp.add_argument("--user-id", required=True, help="Acting user id")
    p_imp.add_argument("--tenant-id", default=None, help="Tenant id for permission lookup")
    p_imp.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config file")
    p_imp.add_argument("--debug", action="store_true", default=argparse.SUPPRESS, help="Enable debug logging")
    return p.parse_args(argv)


def _cmd_detect(path: Path) -> int:
    logger = setup_logging()
    try:
        kind = detect(path.read_bytes())
    except OSError as e:
        logger.error(f"cannot read {path}: {e}")
        return EXIT_FATAL
    except CSVParseError as e:
        logger.error(f"{path.name}: {e}")
        return EXIT_FATAL
    logger.info(f"{path.name}: kind={kind.value}")
    return EXIT_SUCCESS_ALL if kind is not ImportRecordKind.UNKNOWN else EXIT_FATAL


def _cmd_template(kind_name: str, output: Path | None) -> int:
    logger = setup_logging()
    text = render_template(ImportRecordKind.from_name(kind_name))
    if output is None:
        sys.stdout.write(text)
        return EXIT_SUCCESS_ALL
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    logger.info(f"template written: {output}")
    return EXIT_SUCCESS_ALL


def exit_code_for(result: ImportResult) -> int:
    if not result.success:
        return EXIT_FATAL
    if result.failed_rows > 0 or result.errors:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def _cmd_import(args: argparse.Namespace) -> int:
    logger = setup_logging()
    # .env を最優先で読み込む (DB 接続パラメータ優先順位保証)
    _load_env_file(Path(".env"), override=True)

    try:
        cfg = load_config_or_default(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    path: Path = args.path
    try:
        raw = path.read_bytes()
    except OSError as e:
        logger.error(f"cannot read {path}: {e}")
        return EXIT_FATAL

    error_log = ErrorLogBuffer(cfg.settings.error_log_dir)
    try:
        with _open_store(cfg) as store:
            try:
                session = load_session(store, args.user_id, args.tenant_id)
            except StoreError as e:
                logger.error(f"session: {e}")
                return EXIT_FATAL
            logger.info(f"Importing {path.name} as user={session.user_id} role={session.role.value}")
            result = import_csv(raw, store, session, config=cfg, source=path.name, error_log=error_log)
    except psycopg2.Error as e:
        logger.error(f"database connection failed: {e}")
        return EXIT_FATAL

    for message in result.errors:
        logger.warning(message)

    # log_summary が "SUMMARY " を付けるので先頭を落とす
    log_summary(render_summary_line(result)[len("SUMMARY "):])

    log_path = error_log.flush()
    if log_path is not None:
        logger.info(f"error log: {log_path}")

    return exit_code_for(result)


def main(argv: list[str] | None = None) -> int:
    setup_logging()
    # None のときのみシステム引数を読む ([] をそのまま渡せるように)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    if getattr(args, "debug", False):
        set_debug(True)
        setup_logging().debug("debug mode enabled")

    if args.command == "detect":
        return _cmd_detect(args.path)
    if args.command == "template":
        return _cmd_template(args.kind, args.output)
    return _cmd_import(args)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
