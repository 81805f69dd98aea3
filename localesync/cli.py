import argparse
import os
import sys

from .config import load_config
from .errors import LocaleSyncError
from .exchange import build_translation_prompt, parse_edit_text, read_edit_batch, write_exchange_table
from .reconciler import Reconciler

EXIT_OK = 0
EXIT_CHECK_FAILED = 1
EXIT_ERROR = 2


def build_parser():
    parser = argparse.ArgumentParser(
        prog="localesync",
        description="Keep locale JSON files in sync with the translation keys used in the source code.")
    parser.add_argument("--config", help="Path to a localesync.json config file.")
    parser.add_argument("--source-dir", help="Root directory of the code to scan.")
    parser.add_argument("--locales-dir", help="Directory holding <locale>.json files.")
    parser.add_argument("--schema-path", help="Where the generated key schema is written.")
    parser.add_argument("--locales", help="Comma-separated locale list, e.g. en,de,fr.")
    parser.add_argument("--workers", type=int, help="Processes used to scan source files.")
    parser.add_argument("--no-progress", action="store_true", help="Hide progress bars.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser("sync", help="Scan, regenerate the schema, prune unused keys and export missing ones.")
    sync_parser.add_argument("--output", help="Exchange table to write (.csv or .xlsx).")
    sync_parser.add_argument("--prompt", help="Also write a translation prompt to this file.")

    merge_parser = subparsers.add_parser("merge", help="Merge a filled-in exchange table into the locale files.")
    merge_parser.add_argument("table", help="Filled-in table (.csv or .xlsx), or '-' to read CSV text from stdin.")

    subparsers.add_parser("check", help="Report missing and unused keys without changing anything.")

    missing_parser = subparsers.add_parser("missing", help="Export keys missing from the locale files using the existing schema.")
    missing_parser.add_argument("--output", help="Exchange table to write (.csv or .xlsx).")
    return parser


def config_from_args(args):
    locales = [l.strip() for l in args.locales.split(',') if l.strip()] if args.locales else None
    return load_config(
        args.config,
        source_dir=args.source_dir,
        locales_dir=args.locales_dir,
        schema_path=args.schema_path,
        locales=locales,
        workers=args.workers,
        show_progress=False if args.no_progress else None,
    )


def export_missing(report, config, output_path, prompt_path=None):
    if not report.missing:
        return
    locales = report.loaded_locales or config.locales
    output_path = output_path or config.exchange_path
    row_count = write_exchange_table(report.missing, locales, output_path)
    print(f"INFO: Wrote {row_count} rows to exchange table: {output_path}")
    if prompt_path:
        with open(prompt_path, 'w', encoding='utf-8') as f:
            f.write(build_translation_prompt(report.missing, locales, config.source_locale))
        print(f"INFO: Wrote translation prompt: {prompt_path}")


def run_command(args):
    config = config_from_args(args)
    reconciler = Reconciler(config)

    if args.command == "sync":
        report = reconciler.run()
        export_missing(report, config, args.output, args.prompt)
        lines = report.summary_lines()
        exit_code = EXIT_OK
    elif args.command == "missing":
        report = reconciler.missing_from_schema()
        export_missing(report, config, args.output)
        lines = report.summary_lines()
        exit_code = EXIT_OK
    elif args.command == "merge":
        if args.table == "-":
            edits = parse_edit_text(sys.stdin.read(), config.locales)
        else:
            edits = read_edit_batch(os.path.abspath(args.table), config.locales)
        print(f"INFO: Read {len(edits)} edits.")
        report = reconciler.merge_edits(edits)
        lines = report.summary_lines()
        exit_code = EXIT_ERROR if report.failed else EXIT_OK
    else:
        report = reconciler.check()
        lines = report.summary_lines()
        exit_code = EXIT_OK if report.ok else EXIT_CHECK_FAILED

    print("\n--- Summary ---")
    for line in lines:
        print(line)
    return exit_code


def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        return run_command(args)
    except LocaleSyncError as e:
        print(f"ERROR: {e}")
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
