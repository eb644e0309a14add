#!/usr/bin/env python3
"""
Export a QRZ logbook to an ADIF file.

Fetches every matching QSO (paging through the API) and writes them out
one record per line.

Usage:
    python -m scripts.export_logbook mylog.adi
    python -m scripts.export_logbook - --band 20m --mode CW

The API key is read from the QRZ_API_KEY environment variable.
"""

import argparse
import asyncio
import logging
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from adif import encode_records
from config import config
from models import FetchOptions
from qrz_client import QRZLogbookClient

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def build_options(args: argparse.Namespace) -> FetchOptions:
    options = FetchOptions()
    if args.band:
        options.with_band(args.band)
    if args.mode:
        options.with_mode(args.mode)
    if args.call:
        options.with_call(args.call.upper())
    if not (args.band or args.mode or args.call):
        options.all = True
    return options


async def export_logbook(outfile: str, options: FetchOptions) -> int:
    """Fetch all QSOs and write them to outfile ('-' for stdout)."""
    client = QRZLogbookClient(config.require("QRZ_API_KEY"))
    qsos = await client.fetch_all_qsos(options)

    text = encode_records(qsos)
    if outfile == "-":
        print(text)
    else:
        with open(outfile, "w", encoding="utf-8") as fd:
            fd.write(text)
            fd.write("\n")

    logger.info(f"Exported {len(qsos)} QSOs to {outfile}")
    return len(qsos)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Export a QRZ logbook to ADIF")
    parser.add_argument("outfile", help="ADIF filename, or - for stdout")
    parser.add_argument("--band", help="Only export this band (e.g. 20m)")
    parser.add_argument("--mode", help="Only export this mode (e.g. SSB)")
    parser.add_argument("--call", help="Only export QSOs with this callsign")
    args = parser.parse_args(argv)

    return asyncio.run(export_logbook(args.outfile, build_options(args)))


if __name__ == "__main__":
    main()
