from __future__ import annotations

import argparse
import csv
import json
import logging
import sys
from typing import List, Optional

from .config import ReadOptions
from .errors import AppError, friendly_message
from .header import unique_names
from .reader import iter_records, read_xlsx, record_columns


EXIT_OK = 0
EXIT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="sheet_reader",
        description="Read one sheet range of an .xlsx file as records.",
    )
    p.add_argument("path", help="Path to the .xlsx file")
    p.add_argument("address", nargs="?", help="Data address, e.g. 'Sheet1'!A1:C10")
    p.add_argument("--options", help="JSON file with read options")
    p.add_argument("--header", action="store_true", default=None,
                   help="Use the first row of the range as column names")
    p.add_argument("--keep-undefined-rows", action="store_true", default=None,
                   help="Emit all-null records for absent or blank rows")
    p.add_argument("--streaming", action="store_true",
                   help="Open the workbook read-only and stream rows")
    p.add_argument("--row-number-column", help="Append the source row number under this name")
    p.add_argument("--format", choices=("csv", "jsonl"), default="csv")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return p


def _merge_options(args: argparse.Namespace) -> ReadOptions:
    options = ReadOptions.load_json(args.options) if args.options else ReadOptions()
    if args.header is not None:
        options.header = True
    if args.keep_undefined_rows is not None:
        options.keep_undefined_rows = True
    if args.streaming and options.max_rows_in_memory is None:
        options.max_rows_in_memory = 1000
    if args.row_number_column:
        options.column_name_of_row_number = args.row_number_column
    return options


def _cell_text(value):
    if value is None:
        return ""
    return str(value)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(message)s",
        stream=sys.stderr,
    )

    try:
        options = _merge_options(args)
        rows = read_xlsx(args.path, args.address, options)
        row_number_column = options.column_name_of_row_number
        columns = record_columns(rows, row_number_column)

        out = sys.stdout
        if args.format == "jsonl":
            keys = unique_names(columns)
            for record in iter_records(rows, row_number_column):
                out.write(json.dumps(dict(zip(keys, record)), default=str) + "\n")
        else:
            writer = csv.writer(out)
            writer.writerow(columns)
            for record in iter_records(rows, row_number_column):
                writer.writerow([_cell_text(v) for v in record])
    except AppError as e:
        print(friendly_message(e), file=sys.stderr)
        return EXIT_ERROR

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
