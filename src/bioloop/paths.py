"""
Path definitions for Bioloop.

All paths are derived from configuration (config.yaml or environment variables).
"""

from pathlib import Path

from bioloop.common.config import get_config

# Get configuration
config = get_config()

# Root directories
RAW_ROOT = config.get_data_dir('raw')         # Data/Raw/
OUTPUT_ROOT = config.get_data_dir('output')   # Data/Output/

# Raw Health Auto Export directories
RAW_HAE_DIR = RAW_ROOT / "HAE"
RAW_HAE_CSV_DIR = RAW_HAE_DIR / "CSV"
RAW_HAE_SLEEP_DIR = RAW_HAE_DIR / "Sleep"

# Outputs
SCORE_HISTORY_PATH = OUTPUT_ROOT / "daily_scores.csv"

__all__ = [
    "RAW_ROOT",
    "OUTPUT_ROOT",
    "RAW_HAE_DIR",
    "RAW_HAE_CSV_DIR",
    "RAW_HAE_SLEEP_DIR",
    "SCORE_HISTORY_PATH",
]
