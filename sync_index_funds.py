#!/usr/bin/env python3
"""
Fetch the AMFI daily NAV dump, select index-like funds and write them to
data/index-funds-cache.json for offline use.

Usage:
    python sync_index_funds.py
"""
import logging
import sys
from pathlib import Path

# Run from project root
sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))

from fund_list_export import previous_fund_count, write_fund_list
from mf_data_provider import MfDataProvider, MfDataProviderError
from nav_settings import Settings

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

OUTPUT_NAME = "index-funds-cache.json"


def main() -> int:
    settings = Settings.from_env()
    output_path = settings.data_dir / OUTPUT_NAME

    previous = previous_fund_count(output_path)

    try:
        provider = MfDataProvider(settings=settings)
        funds = provider.get_index_funds()
    except MfDataProviderError as e:
        logger.error(f"[daily-fund-sync] Failed: {e}")
        return 1

    write_fund_list(output_path, funds, source=settings.amfi_nav_url, annotate=True)
    print(f"[daily-fund-sync] Wrote {len(funds)} funds to {output_path}")
    if previous is not None:
        print(f"[daily-fund-sync] Previous snapshot had {previous} funds ({len(funds) - previous:+d})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
