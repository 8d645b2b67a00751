from __future__ import annotations

import argparse
import os
import sys
import zipfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from civreg_import.config.entities import get_entity, load_entities
from civreg_import.config.loader import DEFAULT_CONFIG_PATH, ConfigError, ImportConfig, load_config
from civreg_import.db.memory_store import InMemoryRecordStore
from civreg_import.db.record_store import PostgresRecordStore, RecordStore
from civreg_import.excel.reader import SheetHeaderError, read_rows
from civreg_import.logging.error_log import ErrorLogBuffer
from civreg_import.logging.init import log_summary, setup_logging
from civreg_import.models.entity import EntityDefinition
from civreg_import.models.error_record import ErrorRecord
from civreg_import.services.date_normalizer import DateNormalizer
from civreg_import.services.orchestrator import ImportFailedError, run_import
from civreg_import.services.progress import ProgressTracker
from civreg_import.services.row_normalizer import normalize_header
from civreg_import.services.summary import render_summary_line

"""civreg-import command line entry point.

Flow:
- load .env (overrides the process environment), config and entity definitions
- collect workbooks (arguments, or every .xlsx in source_directory)
- import each workbook as one batch of the selected kind
- one SUMMARY line per workbook, rejections flushed to logs/errors-*.log

Exit codes: 0 every workbook imported (zero-valid no-ops included),
2 at least one workbook failed, 1 fatal (config, unknown kind, no source).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

READ_ERROR = "READ_ERROR"
STORE_ERROR = "STORE_ERROR"


@contextmanager
def _db_connection(cfg: ImportConfig) -> Iterator[Any]:  # pragma: no cover (needs a live server)
    """Yield a psycopg2 connection.

    Connection settings resolve in this order:
        1. variables loaded from `.env` (loaded with override in main())
        2. process environment: DATABASE_URL / PGDSN for a full DSN, else
           PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
        3. the ``database`` section of the config file
    """
    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if not dsn:
        host = os.getenv("PGHOST", db_cfg.host or "localhost")
        port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
        user = os.getenv("PGUSER", db_cfg.user or "postgres")
        password = os.getenv("PGPASSWORD", db_cfg.password or "")
        database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
        dsn = f"host={host} port={port} user={user} dbname={database}"
        if password:
            dsn += f" password={password}"

    conn = psycopg2.connect(dsn)
    conn.autocommit = False
    try:
        yield conn
    finally:
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env; its values win over variables already in the environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="civreg-import",
        description="Spreadsheet -> civil registry bulk importer",
    )
    p.add_argument("files", nargs="*", type=Path, help="Workbooks to import (default: every .xlsx in source_directory)")
    p.add_argument("--kind", help="Record kind (ktp, kk, akta_kelahiran, ...); default from config")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config file (default: %(default)s)")
    p.add_argument("--dry-run", action="store_true", help="Run against an in-memory store, write nothing")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-headers", action="store_true", help="Print normalized headers per workbook then exit")
    return p.parse_args(argv)


def scan_workbooks(directory: Path) -> list[Path]:
    """Non-recursive, sorted by name."""
    return sorted(p for p in directory.iterdir() if p.is_file() and p.suffix == ".xlsx")


def _inspect_headers(files: list[Path], cfg: ImportConfig, logger: Any) -> int:
    for f in files:
        try:
            sheet = read_rows(f, header_row=cfg.header_row)
        except (OSError, ValueError, zipfile.BadZipFile, SheetHeaderError) as e:
            logger.error(f"inspect: {f.name}: {e}")
            continue
        headers = [normalize_header(c) for c in sheet.columns]
        logger.info(f"{f.name} sheet={sheet.sheet_name} rows={len(sheet.rows)} headers={headers}")
    return EXIT_SUCCESS_ALL


def _import_files(
    files: list[Path],
    entity: EntityDefinition,
    store: RecordStore,
    cfg: ImportConfig,
    error_log: ErrorLogBuffer,
    logger: Any,
) -> int:
    """Import every workbook; returns the number of failed workbooks."""
    date_normalizer = DateNormalizer(cfg.date_prefixes)

    def _activity(action: str, description: str) -> None:
        logger.info(f"activity action={action!r} description={description!r}")

    failed = 0
    with ProgressTracker(len(files)) as progress:
        for f in files:
            progress.start_file(f)
            try:
                sheet = read_rows(f, header_row=cfg.header_row)
            except (OSError, ValueError, zipfile.BadZipFile, SheetHeaderError) as e:
                failed += 1
                logger.error(f"read: {f.name}: {e}")
                error_log.append(ErrorRecord.create(f.name, entity.kind, -1, READ_ERROR, str(e)))
                progress.finish_file(failed=failed)
                continue

            try:
                result = run_import(
                    sheet.rows,
                    entity,
                    store,
                    chunk_size=cfg.chunk_size,
                    max_workers=cfg.max_workers,
                    date_normalizer=date_normalizer,
                    error_log=error_log,
                    source_name=f.name,
                    activity_log=_activity,
                    headers=sheet.columns,
                )
            except ImportFailedError as e:
                failed += 1
                logger.error(f"{f.name}: {e}")
                error_log.append(ErrorRecord.create(f.name, entity.kind, -1, STORE_ERROR, str(e)))
                progress.finish_file(failed=failed)
                continue

            if result.valid_count == 0:
                logger.warning(
                    f"{f.name}: no valid {entity.kind} rows; headers seen: {result.sample_headers}"
                )
            log_summary(render_summary_line(result)[len("SUMMARY "):])
            progress.finish_file(upserted=result.inserted_or_updated_count, failed=failed)
    return failed


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)

    try:
        cfg = load_config(args.config)
        entities = load_entities(overrides=cfg.entity_overrides)
        kind = args.kind or cfg.default_kind
        if not kind:
            raise ConfigError("no record kind given (use --kind or default_kind)")
        entity = get_entity(kind, entities)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.files:
        files = list(args.files)
    else:
        directory = Path(cfg.source_directory)
        if not directory.is_dir():
            logger.error(f"directory not found: {directory}")
            return EXIT_FATAL
        files = scan_workbooks(directory)
        logger.info(f"Processing files from: {directory}")

    if args.inspect_headers:
        return _inspect_headers(files, cfg, logger)

    if not files:
        logger.info("no .xlsx files to import")
        return EXIT_SUCCESS_ALL

    error_log = ErrorLogBuffer()
    mock = args.dry_run or os.getenv("DISABLE_DB_CONNECT") == "1"
    if mock:
        logger.info(f"mode=mock kind={entity.kind} files={len(files)}")
        failed = _import_files(files, entity, InMemoryRecordStore(entities), cfg, error_log, logger)
    else:
        try:
            with _db_connection(cfg) as conn:
                logger.info(f"mode=live kind={entity.kind} table={entity.table} files={len(files)}")
                store = PostgresRecordStore(conn, entities, page_size=cfg.upsert_page_size)
                failed = _import_files(files, entity, store, cfg, error_log, logger)
        except psycopg2.OperationalError as e:
            logger.error(f"database connection failed: {e}")
            return EXIT_FATAL

    log_path = error_log.flush()
    if log_path is not None:
        logger.info(f"rejections written to {log_path}")

    if failed > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
