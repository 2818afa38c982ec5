#!/usr/bin/env python3
"""
Burned area progression mapping script.

Command-line interface for per-date unsupervised burned area mapping from
Sentinel-1 backscatter time series.

Usage:
    python run_burned_area_mapping.py --config megara_2023.yaml

Author: Diego Bengochea
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from burned_area_mapping.core.mapping_pipeline import BurnedAreaMappingPipeline


def parse_arguments():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Unsupervised burned area progression mapping from Sentinel-1 SAR",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    
    parser.add_argument(
        '--config',
        type=str,
        help='Path to configuration file (default: component config.yaml)'
    )
    
    return parser.parse_args()


def main():
    """Main entry point for burned area mapping script."""
    args = parse_arguments()
    pipeline = BurnedAreaMappingPipeline(args.config)
    success = pipeline.run_full_pipeline()
    
    return success


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
